from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


NewDetectionStatus = Literal[
    "user_created",
    "user_confirmed",
    "user_edited",
    "user_edited_confirmed",
]

DetectionStatus = Literal[
    "model_generated",
    "user_created",
    "user_confirmed",
    "user_edited",
    "user_edited_confirmed",
]


class BoundingBox(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    x_min: float
    y_min: float
    x_max: float
    y_max: float


class NewDetection(BoundingBox):
    label: str
    confidence: Optional[float] = None
    status: NewDetectionStatus = "user_created"


class DetectionEdit(BoundingBox):
    id: str
    label: str
    confidence: Optional[float] = None
    status: DetectionStatus


class ChangeSet(BaseModel):
    """Client-side edits to one image's detections."""

    added: List[NewDetection] = Field(default_factory=list)
    modified: List[DetectionEdit] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.added or self.modified or self.deleted)
