"""Datastore and storage backed implementations of the executor ports.

Every call opens its own short-lived UnitOfWork so concurrent pool workers
never share a session.
"""

from collections.abc import Awaitable, Callable, Iterable
from typing import Any
from uuid import UUID

import structlog

from mediagen.executor.ports import FrameReference, ObjectStore, ReferenceAsset
from mediagen.models.generated_media import GeneratedMedia
from mediagen.models.generation_job import GenerationJob, JobStatus
from mediagen.models.scene import StoryboardScene
from mediagen.services.exceptions import ServiceError
from mediagen.uow import UnitOfWork

logger = structlog.get_logger(__name__)

REFERENCE_BUCKET = "reference-images"
FRAME_BUCKET = "generated-images"
SIGNED_URL_TTL_SECONDS = 6 * 60 * 60

UowFactory = Callable[[], Awaitable[UnitOfWork]]


class SqlJobStore:
    """JobStore over the generation_jobs table."""

    def __init__(self, uow_factory: UowFactory):
        self.uow_factory = uow_factory

    async def get(self, job_id: UUID) -> GenerationJob | None:
        async with await self.uow_factory() as uow:
            return await uow.generation_jobs.get_by_id(job_id)

    async def get_status(self, job_id: UUID) -> JobStatus | None:
        async with await self.uow_factory() as uow:
            return await uow.generation_jobs.get_status(job_id)

    async def conditional_update(
        self, job_id: UUID, values: dict[str, Any], allowed_statuses: Iterable[JobStatus]
    ) -> bool:
        async with await self.uow_factory() as uow:
            return await uow.generation_jobs.conditional_update(job_id, values, allowed_statuses)


class SqlUnitStore:
    """UnitStore over the generated_media table."""

    def __init__(self, uow_factory: UowFactory):
        self.uow_factory = uow_factory

    async def insert(self, media: GeneratedMedia) -> GeneratedMedia:
        async with await self.uow_factory() as uow:
            return await uow.generated_media.add(media)


class SqlSceneReader:
    def __init__(self, uow_factory: UowFactory):
        self.uow_factory = uow_factory

    async def get_scene(self, scene_id: UUID) -> StoryboardScene | None:
        async with await self.uow_factory() as uow:
            return await uow.scenes.get_by_id(scene_id)


class StorageReferenceReader:
    """Materialises reference images and signs frame URLs from object storage."""

    def __init__(self, uow_factory: UowFactory, storage: ObjectStore):
        self.uow_factory = uow_factory
        self.storage = storage

    async def load_reference_set(self, reference_set_id: UUID) -> list[ReferenceAsset]:
        """Download every image of a reference set, in display order.

        Images that cannot be downloaded are skipped so one broken upload does
        not block the whole job.

        Args:
            reference_set_id: Reference set to load

        Returns:
            ReferenceAsset list (possibly empty)
        """
        async with await self.uow_factory() as uow:
            images = await uow.reference_images.list_by_set(reference_set_id)

        assets: list[ReferenceAsset] = []
        for image in images:
            try:
                data = await self.storage.download(REFERENCE_BUCKET, image.storage_path)
            except ServiceError as e:
                logger.warning(
                    "reference.download_failed",
                    reference_set_id=str(reference_set_id),
                    storage_path=image.storage_path,
                    error=str(e),
                )
                continue
            assets.append(ReferenceAsset(data=data, mime_type=image.mime_type or "image/png"))

        return assets

    async def resolve_frame(self, media_id: UUID) -> FrameReference | None:
        """Sign a read URL for a previously generated image used as a video frame.

        Returns:
            FrameReference, or None if the media row no longer exists
        """
        async with await self.uow_factory() as uow:
            media = await uow.generated_media.get_by_id(media_id)

        if media is None or not media.storage_path:
            logger.warning("video.frame_missing", media_id=str(media_id))
            return None

        url = await self.storage.signed_read(
            FRAME_BUCKET, media.storage_path, SIGNED_URL_TTL_SECONDS
        )
        return FrameReference(url=url, mime_type=media.mime_type or "image/png")
