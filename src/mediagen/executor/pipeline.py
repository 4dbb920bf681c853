"""Per-unit pipelines: one image variation, or one scene video.

Each pipeline either leaves exactly one GeneratedMedia row behind or raises.
Uploads are independent writes without rollback; a failure after an upload
leaves an orphaned object but no row.
"""

import asyncio
import time
from typing import Optional
from uuid import UUID

import structlog

from mediagen.executor.ports import (
    Collaborators,
    FrameReference,
    ReferenceAsset,
    VideoFrames,
)
from mediagen.executor.variants import ImageJob, VideoJob
from mediagen.models.generated_media import GeneratedMedia, MediaType
from mediagen.services.exceptions import ConfigurationError, PermanentError, TransientError
from mediagen.services.media.paths import (
    build_image_storage_path,
    build_preview_path,
    build_thumbnail_path,
    build_video_storage_path,
    resolve_extension,
    slugify,
    video_extension,
)

logger = structlog.get_logger(__name__)

IMAGE_BUCKET = "generated-images"
VIDEO_BUCKET = "generated-videos"
PROMPT_SLUG_LENGTH = 30


class ImageVariationPipeline:
    """Generate, transcode, upload and record one image variation."""

    def __init__(self, collaborators: Collaborators, variation_timeout_ms: int):
        self.collaborators = collaborators
        self.variation_timeout = variation_timeout_ms / 1000

    async def run(
        self,
        job: ImageJob,
        variation_number: int,
        reference_assets: list[ReferenceAsset],
    ) -> GeneratedMedia:
        start_time = time.time()
        c = self.collaborators

        try:
            payload = await asyncio.wait_for(
                c.images.generate(
                    prompt=job.prompt,
                    resolution=job.resolution,
                    aspect_ratio=job.aspect_ratio,
                    reference_assets=reference_assets,
                    credential=c.image_credential,
                    model=job.generation_model or None,
                ),
                timeout=self.variation_timeout,
            )
        except asyncio.TimeoutError as e:
            raise TransientError(
                f"Image generation timeout after {self.variation_timeout:g}s (aborted)"
            ) from e

        extension = resolve_extension(payload.mime_type)
        thumb = await c.transcoder.thumbnail(payload.data)
        preview = await c.transcoder.preview(payload.data)

        storage_path = build_image_storage_path(
            job.product_id,
            job.id,
            variation_number,
            slugify(job.prompt, PROMPT_SLUG_LENGTH),
            extension,
        )
        thumb_path = build_thumbnail_path(storage_path, thumb.extension)
        preview_path = build_preview_path(storage_path, preview.extension)

        # Failures after generation are not retried.
        try:
            await c.storage.upload(IMAGE_BUCKET, storage_path, payload.data, payload.mime_type)
            await c.storage.upload(IMAGE_BUCKET, thumb_path, thumb.data, thumb.mime_type)
            await c.storage.upload(IMAGE_BUCKET, preview_path, preview.data, preview.mime_type)

            media = await c.units.insert(
                GeneratedMedia(
                    job_id=job.id,
                    variation_number=variation_number,
                    storage_path=storage_path,
                    thumb_storage_path=thumb_path,
                    preview_storage_path=preview_path,
                    mime_type=payload.mime_type,
                    file_size=len(payload.data),
                    media_type=MediaType.IMAGE,
                )
            )
        except PermanentError:
            raise
        except Exception as e:
            logger.error(
                "variation.persist_failed",
                job_id=str(job.id),
                variation_number=variation_number,
                storage_path=storage_path,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            raise PermanentError(str(e) or type(e).__name__) from e

        logger.info(
            "variation.succeeded",
            job_id=str(job.id),
            variation_number=variation_number,
            storage_path=storage_path,
            file_size=len(payload.data),
            duration_seconds=round(time.time() - start_time, 3),
        )
        return media


class VideoPipeline:
    """Generate one clip for a storyboard scene. Never retried."""

    def __init__(self, collaborators: Collaborators):
        self.collaborators = collaborators

    async def run(self, job: VideoJob) -> GeneratedMedia:
        start_time = time.time()
        c = self.collaborators

        scene = await c.scenes.get_scene(job.scene_id)
        if scene is None:
            raise ConfigurationError("Scene not found")
        if not scene.motion_prompt:
            raise ConfigurationError("Scene has no motion prompt")

        model = job.generation_model or scene.generation_model
        frames = VideoFrames(
            start=await self._resolve(scene.start_frame_image_id),
            end=await self._resolve(scene.end_frame_image_id),
        )

        logger.info(
            "video.generation.started",
            job_id=str(job.id),
            scene_id=str(scene.id),
            model=model,
            has_start_frame=frames.start is not None,
            has_end_frame=frames.end is not None,
        )

        payload = await c.videos.generate(scene.motion_prompt, frames, model)

        storage_path = build_video_storage_path(
            job.product_id,
            scene.id,
            scene.motion_prompt,
            video_extension(payload.mime_type),
        )
        await c.storage.upload(VIDEO_BUCKET, storage_path, payload.data, payload.mime_type)

        media = await c.units.insert(
            GeneratedMedia(
                job_id=job.id,
                variation_number=1,
                storage_path=storage_path,
                mime_type=payload.mime_type,
                file_size=len(payload.data),
                media_type=MediaType.VIDEO,
                scene_id=scene.id,
                scene_name=scene.title,
            )
        )

        logger.info(
            "video.generation.succeeded",
            job_id=str(job.id),
            scene_id=str(scene.id),
            storage_path=storage_path,
            duration_seconds=round(time.time() - start_time, 3),
        )
        return media

    async def _resolve(self, media_id: Optional[UUID]) -> Optional[FrameReference]:
        if media_id is None:
            return None
        return await self.collaborators.references.resolve_frame(media_id)
