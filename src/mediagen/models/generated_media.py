"""GeneratedMedia entity - one produced image or video artifact."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class GeneratedMedia(SQLModel, table=True):
    """GeneratedMedia is written once by the executor and never updated by it.

    Approval and deletion are user actions handled outside this package.
    """

    __tablename__ = "generated_media"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    job_id: Optional[UUID] = Field(default=None, foreign_key="generation_jobs.id", index=True)
    variation_number: int = Field(ge=1)
    storage_path: str
    thumb_storage_path: Optional[str] = Field(default=None)
    preview_storage_path: Optional[str] = Field(default=None)
    mime_type: str = Field(max_length=100)
    file_size: Optional[int] = Field(default=None)
    media_type: MediaType = Field(default=MediaType.IMAGE)
    approval_status: ApprovalStatus = Field(default=ApprovalStatus.PENDING)
    scene_id: Optional[UUID] = Field(default=None, index=True)
    scene_name: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=datetime.utcnow)
