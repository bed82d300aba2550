# dependencies/auth.py

import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from database.db import get_db
from models.models import User

security = HTTPBasic(auto_error=False)


def get_current_user_id(
    credentials: Optional[HTTPBasicCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Optional[int]:
    """Resolve the caller from HTTP Basic credentials.

    Returns None when no credentials were sent; the detection and dashboard
    services turn that into their own unauthenticated errors.
    """
    if credentials is None or (not credentials.username and not credentials.password):
        return None

    username = credentials.username
    password = credentials.password

    if username and not password:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Password is required when username is provided."
        )

    user = db.query(User).filter_by(username=username).first()

    if user:
        if secrets.compare_digest(user.password.encode("utf-8"), password.encode("utf-8")):
            return user.id
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect password."
        )
    else:
        # Auto-register
        try:
            new_user = User(username=username, password=password)
            db.add(new_user)
            db.commit()
            db.refresh(new_user)
            return new_user.id
        except IntegrityError:
            db.rollback()
            raise HTTPException(
                status_code=500,
                detail="User creation failed due to integrity error."
            )
