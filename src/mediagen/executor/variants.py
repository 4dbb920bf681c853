"""Typed job variants, derived once from the job row at executor entry."""

from dataclasses import dataclass
from typing import Union
from uuid import UUID

from mediagen.models.generation_job import GenerationJob, JobType
from mediagen.services.exceptions import ConfigurationError


@dataclass(frozen=True)
class ImageJob:
    id: UUID
    product_id: UUID
    reference_set_id: UUID
    prompt: str
    variation_count: int
    resolution: str
    aspect_ratio: str
    generation_model: str


@dataclass(frozen=True)
class VideoJob:
    id: UUID
    product_id: UUID
    scene_id: UUID
    generation_model: str

    # A video job always produces a single clip.
    variation_count: int = 1


JobVariant = Union[ImageJob, VideoJob]


def to_job_variant(job: GenerationJob) -> JobVariant:
    """Convert a job row into its typed variant.

    Raises:
        ConfigurationError: If the field the job type depends on is missing
    """
    if job.job_type == JobType.VIDEO:
        if job.scene_id is None:
            raise ConfigurationError("Video job missing scene_id")
        return VideoJob(
            id=job.id,
            product_id=job.product_id,
            scene_id=job.scene_id,
            generation_model=job.generation_model,
        )

    if job.reference_set_id is None:
        raise ConfigurationError("Image job missing reference_set_id")
    return ImageJob(
        id=job.id,
        product_id=job.product_id,
        reference_set_id=job.reference_set_id,
        prompt=job.final_prompt,
        variation_count=job.variation_count,
        resolution=job.resolution,
        aspect_ratio=job.aspect_ratio,
        generation_model=job.generation_model,
    )
