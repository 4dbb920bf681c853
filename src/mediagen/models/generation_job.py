"""GenerationJob entity - a request for N generated media variations."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class JobStatus(str, Enum):
    """Generation job lifecycle status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class JobType(str, Enum):
    """Kind of media a job produces."""

    IMAGE = "image"
    VIDEO = "video"


# Statuses the executor is still allowed to write over.
ACTIVE_STATUSES: tuple[JobStatus, ...] = (JobStatus.PENDING, JobStatus.RUNNING)

TERMINAL_STATUSES: tuple[JobStatus, ...] = (
    JobStatus.COMPLETED,
    JobStatus.FAILED,
    JobStatus.CANCELLED,
)


class GenerationJob(SQLModel, table=True):
    """GenerationJob tracks progress of one batched generation request.

    Created by the API layer with status=pending. Counters and status are
    only ever advanced by the executor (or flipped to cancelled externally).
    """

    __tablename__ = "generation_jobs"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    product_id: UUID = Field(index=True)
    reference_set_id: Optional[UUID] = Field(default=None)
    scene_id: Optional[UUID] = Field(default=None)
    final_prompt: str = Field(default="")
    variation_count: int = Field(default=1, ge=1)
    resolution: str = Field(default="4K", max_length=20)
    aspect_ratio: str = Field(default="16:9", max_length=20)
    generation_model: str = Field(default="", max_length=100)
    job_type: JobType = Field(default=JobType.IMAGE)

    completed_count: int = Field(default=0, ge=0)
    failed_count: int = Field(default=0, ge=0)

    status: JobStatus = Field(default=JobStatus.PENDING, index=True)
    error_message: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def remaining(self) -> int:
        """Variations not yet accounted for by either counter."""
        return max(0, self.variation_count - self.completed_count - self.failed_count)
