import unittest
from unittest.mock import MagicMock, patch
from fastapi.testclient import TestClient
from app import app
from database.db import get_db
from dependencies.auth import get_current_user_id
from services.errors import CaseNotFound


class TestCaseStageEndpoint(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(app)
        self.mock_db = MagicMock()
        app.dependency_overrides[get_db] = lambda: self.mock_db
        app.dependency_overrides[get_current_user_id] = lambda: 7

    def tearDown(self):
        app.dependency_overrides = {}

    @patch("controllers.cases.get_case_stage_summary")
    def test_stage_summary(self, mock_summary):
        mock_summary.return_value = {
            "case_id": "case-1",
            "recalculation_needed": True,
            "recorded_oldest_stage": "instar_1",
            "current_oldest_stage": "pupa",
        }

        response = self.client.get("/cases/case-1/stage")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["current_oldest_stage"], "pupa")
        mock_summary.assert_called_once_with(self.mock_db, 7, "case-1")

    @patch("controllers.cases.get_case_stage_summary", side_effect=CaseNotFound())
    def test_foreign_case(self, mock_summary):
        response = self.client.get("/cases/case-1/stage")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"detail": "Case not found or unauthorized."})


if __name__ == "__main__":
    unittest.main()
