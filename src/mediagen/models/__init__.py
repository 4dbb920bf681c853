"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
for Alembic autogenerate support.
"""

from mediagen.models.generated_media import ApprovalStatus, GeneratedMedia, MediaType
from mediagen.models.generation_job import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    GenerationJob,
    JobStatus,
    JobType,
)
from mediagen.models.reference_image import ReferenceImage
from mediagen.models.scene import StoryboardScene

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "ApprovalStatus",
    "GeneratedMedia",
    "GenerationJob",
    "JobStatus",
    "JobType",
    "MediaType",
    "ReferenceImage",
    "StoryboardScene",
]
