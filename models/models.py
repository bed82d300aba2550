import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, String, DateTime, Integer, Float, ForeignKey
from sqlalchemy.orm import relationship

from database.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


# Detection status values
MODEL_GENERATED = "model_generated"
USER_CREATED = "user_created"
USER_CONFIRMED = "user_confirmed"
USER_EDITED = "user_edited"
USER_EDITED_CONFIRMED = "user_edited_confirmed"

DETECTION_STATUSES = (
    MODEL_GENERATED,
    USER_CREATED,
    USER_CONFIRMED,
    USER_EDITED,
    USER_EDITED_CONFIRMED,
)
VERIFIED_STATUSES = frozenset({USER_CONFIRMED, USER_EDITED_CONFIRMED})
USER_ALTERED_STATUSES = frozenset({USER_CREATED, USER_EDITED, USER_EDITED_CONFIRMED})

# Case status values
CASE_DRAFT = "draft"
CASE_ACTIVE = "active"


class User(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, unique=True, nullable=False)
    # Plaintext placeholder until callers are resolved by the external identity service
    password = Column(String, nullable=False)

    cases = relationship("Case", back_populates="user")


class Case(Base):
    __tablename__ = 'cases'

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    case_name = Column(String, nullable=False)
    status = Column(String, nullable=False, default=CASE_DRAFT)
    case_date = Column(DateTime, nullable=False, default=utcnow)
    temperature_celsius = Column(Float)
    recalculation_needed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="cases")
    uploads = relationship("Upload", back_populates="case")
    analysis_result = relationship("AnalysisResult", back_populates="case", uselist=False)


class Upload(Base):
    __tablename__ = 'uploads'

    id = Column(String, primary_key=True, default=new_id)
    case_id = Column(String, ForeignKey('cases.id'), nullable=False, index=True)
    name = Column(String)
    key = Column(String)
    created_at = Column(DateTime, default=utcnow)

    case = relationship("Case", back_populates="uploads")
    detections = relationship("Detection", back_populates="upload")


class Detection(Base):
    __tablename__ = 'detections'

    id = Column(String, primary_key=True, default=new_id)
    upload_id = Column(String, ForeignKey('uploads.id'), nullable=False, index=True)
    label = Column(String, nullable=False)
    original_label = Column(String, nullable=False)
    # Legacy rows mix the 0-1 and 0-100 scales; see services.analytics.normalize_confidence
    confidence = Column(Float)
    original_confidence = Column(Float)
    x_min = Column(Float, nullable=False)
    y_min = Column(Float, nullable=False)
    x_max = Column(Float, nullable=False)
    y_max = Column(Float, nullable=False)
    status = Column(String, nullable=False, default=MODEL_GENERATED)
    created_by_id = Column(Integer, ForeignKey('users.id'))
    last_modified_by_id = Column(Integer, ForeignKey('users.id'))
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    upload = relationship("Upload", back_populates="detections")


class AnalysisResult(Base):
    __tablename__ = 'analysis_results'

    case_id = Column(String, ForeignKey('cases.id'), primary_key=True)
    status = Column(String, default="pending")
    pmi_hours = Column(Float, nullable=True)
    oldest_stage_detected = Column(String, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    case = relationship("Case", back_populates="analysis_result")
