"""Collaborator interfaces consumed by the generation job executor.

The executor only talks to these protocols. Concrete SQL and storage backed
implementations live in mediagen.executor.adapters; tests use in-memory fakes.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Optional, Protocol
from uuid import UUID

from mediagen.models.generated_media import GeneratedMedia
from mediagen.models.generation_job import GenerationJob, JobStatus
from mediagen.models.scene import StoryboardScene


@dataclass(frozen=True)
class ReferenceAsset:
    """Reference image already materialised in memory."""

    data: bytes
    mime_type: str


@dataclass(frozen=True)
class FrameReference:
    """Signed, time-limited URL to a start or end frame for video generation."""

    url: str
    mime_type: str = "image/png"


@dataclass(frozen=True)
class VideoFrames:
    start: Optional[FrameReference] = None
    end: Optional[FrameReference] = None


@dataclass(frozen=True)
class GeneratedPayload:
    """Raw bytes returned by a generation service."""

    data: bytes
    mime_type: str


@dataclass(frozen=True)
class Rendition:
    """A transcoded derivative (thumbnail or preview) of a generated image."""

    data: bytes
    mime_type: str
    extension: str


class JobStore(Protocol):
    async def get(self, job_id: UUID) -> GenerationJob | None: ...

    async def get_status(self, job_id: UUID) -> JobStatus | None: ...

    async def conditional_update(
        self, job_id: UUID, values: dict[str, Any], allowed_statuses: Iterable[JobStatus]
    ) -> bool: ...


class UnitStore(Protocol):
    async def insert(self, media: GeneratedMedia) -> GeneratedMedia: ...


class ReferenceAssetReader(Protocol):
    async def load_reference_set(self, reference_set_id: UUID) -> list[ReferenceAsset]: ...

    async def resolve_frame(self, media_id: UUID) -> FrameReference | None: ...


class SceneReader(Protocol):
    async def get_scene(self, scene_id: UUID) -> StoryboardScene | None: ...


class ImageGenerationService(Protocol):
    async def generate(
        self,
        prompt: str,
        resolution: str,
        aspect_ratio: str,
        reference_assets: list[ReferenceAsset],
        credential: Optional[str] = None,
        model: Optional[str] = None,
    ) -> GeneratedPayload: ...


class VideoGenerationService(Protocol):
    async def generate(self, prompt: str, frames: VideoFrames, model: str) -> GeneratedPayload: ...


class MediaTranscoder(Protocol):
    async def thumbnail(self, data: bytes) -> Rendition: ...

    async def preview(self, data: bytes) -> Rendition: ...


class ObjectStore(Protocol):
    async def upload(self, bucket: str, path: str, data: bytes, mime_type: str) -> None: ...

    async def download(self, bucket: str, path: str) -> bytes: ...

    async def signed_read(self, bucket: str, path: str, expires_in: int) -> str: ...


@dataclass
class Collaborators:
    """Everything the executor needs from the outside world."""

    jobs: JobStore
    units: UnitStore
    references: ReferenceAssetReader
    scenes: SceneReader
    images: ImageGenerationService
    videos: VideoGenerationService
    transcoder: MediaTranscoder
    storage: ObjectStore
    image_credential: Optional[str] = None
