import os
from datetime import datetime
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from database.db import Base
from models.models import AnalysisResult, Case, Detection, Upload, User


class Seeder:
    """Inserts related users, cases, uploads and detections for a test."""

    def __init__(self, db):
        self.db = db
        self._users = 0

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, username: Optional[str] = None) -> User:
        self._users += 1
        return self._save(User(username=username or f"user-{self._users}", password="secret"))

    def case(self, user: User, status: str = "active", case_date: datetime = datetime(2025, 6, 1, 12, 0)) -> Case:
        return self._save(Case(user_id=user.id, case_name="Test Case", status=status, case_date=case_date,
                               temperature_celsius=25.0))

    def upload(self, case: Case, name: str = "test-image.jpg") -> Upload:
        return self._save(Upload(case_id=case.id, name=name, key=f"uploads/{name}"))

    def detection(
        self,
        upload: Upload,
        label: str = "instar_1",
        status: str = "model_generated",
        confidence: Optional[float] = 0.9,
        original_label: Optional[str] = None,
        original_confidence: Optional[float] = None,
        box=(0.0, 0.0, 100.0, 100.0),
        deleted: bool = False,
    ) -> Detection:
        x_min, y_min, x_max, y_max = box
        return self._save(Detection(
            upload_id=upload.id,
            label=label,
            original_label=original_label or label,
            confidence=confidence,
            original_confidence=confidence if original_confidence is None else original_confidence,
            x_min=x_min,
            y_min=y_min,
            x_max=x_max,
            y_max=y_max,
            status=status,
            deleted_at=datetime(2025, 6, 2) if deleted else None,
        ))

    def analysis(self, case: Case, pmi_hours: Optional[float] = None, oldest_stage: Optional[str] = None) -> AnalysisResult:
        return self._save(AnalysisResult(case_id=case.id, status="completed", pmi_hours=pmi_hours,
                                         oldest_stage_detected=oldest_stage))


@pytest.fixture
def db_session(tmp_path):
    engine = create_engine(
        f"sqlite:///{os.path.join(tmp_path, 'test.db')}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def seed(db_session):
    return Seeder(db_session)
