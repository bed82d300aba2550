import pytest
from fastapi import HTTPException
from fastapi.security import HTTPBasicCredentials
from unittest.mock import MagicMock
from dependencies import auth
from sqlalchemy.exc import IntegrityError
from models.models import User


def make_credentials(username=None, password=None):
    return HTTPBasicCredentials(username=username or "", password=password or "")


def test_no_credentials_is_unauthenticated():
    mock_db = MagicMock()

    assert auth.get_current_user_id(None, db=mock_db) is None
    assert auth.get_current_user_id(make_credentials(), db=mock_db) is None
    mock_db.query.assert_not_called()


def test_get_current_user_id_username_no_password():
    creds = make_credentials(username="user", password=None)

    with pytest.raises(HTTPException) as e:
        auth.get_current_user_id(creds, db=MagicMock())

    assert e.value.status_code == 401
    assert "Password is required" in e.value.detail


def test_get_current_user_id_existing_user():
    mock_db = MagicMock()
    mock_db.query.return_value.filter_by.return_value.first.return_value = User(
        id=5, username="examiner", password="s3cret"
    )

    user_id = auth.get_current_user_id(make_credentials("examiner", "s3cret"), db=mock_db)

    assert user_id == 5
    mock_db.add.assert_not_called()


def test_get_current_user_id_wrong_password():
    mock_db = MagicMock()
    existing_user = User(id=1, username="existinguser", password="correctpass")
    mock_db.query.return_value.filter_by.return_value.first.return_value = existing_user

    with pytest.raises(HTTPException) as exc_info:
        auth.get_current_user_id(make_credentials("existinguser", "wrongpass"), db=mock_db)

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Incorrect password."


def test_get_current_user_id_auto_registers_new_user():
    mock_db = MagicMock()
    mock_db.query.return_value.filter_by.return_value.first.return_value = None
    mock_db.add.side_effect = lambda user: setattr(user, "id", 999)

    user_id = auth.get_current_user_id(make_credentials("newuser", "newpass"), db=mock_db)

    assert user_id == 999
    mock_db.add.assert_called_once()
    mock_db.commit.assert_called_once()


def test_get_current_user_id_user_not_exists_auto_create_fail():
    mock_db = MagicMock()
    mock_db.query.return_value.filter_by.return_value.first.return_value = None
    mock_db.commit.side_effect = IntegrityError("fail", {}, None)

    with pytest.raises(HTTPException) as e:
        auth.get_current_user_id(make_credentials("newuser", "newpass"), db=mock_db)

    assert e.value.status_code == 500
    assert "User creation failed" in e.value.detail
    mock_db.rollback.assert_called()
