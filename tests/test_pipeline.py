"""Per-unit pipeline tests: storage layout, media rows and failure atomicity."""

import re
from uuid import uuid4

import pytest

from mediagen.executor.pipeline import IMAGE_BUCKET, VIDEO_BUCKET, ImageVariationPipeline, VideoPipeline
from mediagen.executor.ports import FrameReference
from mediagen.executor.variants import ImageJob, VideoJob
from mediagen.models.generated_media import ApprovalStatus, MediaType
from mediagen.services.exceptions import (
    ConfigurationError,
    PermanentError,
    StorageError,
    StorageNetworkError,
    TransientError,
)


def image_job(harness, **overrides) -> ImageJob:
    values = {
        "id": uuid4(),
        "product_id": harness.product_id,
        "reference_set_id": uuid4(),
        "prompt": "Hero shot: red sneaker, studio light!",
        "variation_count": 3,
        "resolution": "2K",
        "aspect_ratio": "1:1",
        "generation_model": "",
    }
    values.update(overrides)
    return ImageJob(**values)


@pytest.mark.asyncio
async def test_image_variation_uploads_three_objects_and_records_one_row(harness):
    job = image_job(harness)
    pipeline = ImageVariationPipeline(harness.collaborators, variation_timeout_ms=300_000)

    media = await pipeline.run(job, 7, harness.references.assets)

    prefix = f"products/{job.product_id}/jobs/{job.id}/"
    assert re.fullmatch(
        re.escape(prefix) + r"gen-07-hero-shot-red-sneaker-studio-l-\d+\.png",
        media.storage_path,
    )
    base_name = media.storage_path.rsplit("/", 1)[1].rsplit(".", 1)[0]
    assert media.thumb_storage_path == f"{prefix}thumbs/{base_name}.webp"
    assert media.preview_storage_path == f"{prefix}previews/{base_name}.webp"

    assert set(harness.storage.objects) == {
        (IMAGE_BUCKET, media.storage_path),
        (IMAGE_BUCKET, media.thumb_storage_path),
        (IMAGE_BUCKET, media.preview_storage_path),
    }
    assert harness.units.inserted == [media]
    assert media.job_id == job.id
    assert media.variation_number == 7
    assert media.mime_type == "image/png"
    assert media.media_type == MediaType.IMAGE
    assert media.approval_status == ApprovalStatus.PENDING
    assert media.file_size == len(b"\x89PNG-generated")


@pytest.mark.asyncio
async def test_image_request_carries_job_settings(harness):
    job = image_job(harness, generation_model="gemini-custom")
    harness_collaborators = harness.collaborators
    harness_collaborators.image_credential = "per-job-key"
    pipeline = ImageVariationPipeline(harness_collaborators, variation_timeout_ms=300_000)

    await pipeline.run(job, 1, harness.references.assets)

    call = harness.images.calls[0]
    assert call["prompt"] == job.prompt
    assert call["resolution"] == "2K"
    assert call["aspect_ratio"] == "1:1"
    assert call["credential"] == "per-job-key"
    assert call["model"] == "gemini-custom"


@pytest.mark.asyncio
async def test_upload_failure_writes_no_row(harness):
    harness.storage.fail_uploads = StorageError("Upload failed (403)")
    pipeline = ImageVariationPipeline(harness.collaborators, variation_timeout_ms=300_000)

    with pytest.raises(StorageError):
        await pipeline.run(image_job(harness), 1, [])

    assert harness.units.inserted == []


@pytest.mark.asyncio
async def test_network_upload_failure_is_not_retriable(harness):
    harness.storage.fail_uploads = StorageNetworkError("Upload failed: service unavailable (503)")
    pipeline = ImageVariationPipeline(harness.collaborators, variation_timeout_ms=300_000)

    with pytest.raises(PermanentError) as exc_info:
        await pipeline.run(image_job(harness), 1, [])

    assert not isinstance(exc_info.value, TransientError)
    assert isinstance(exc_info.value.__cause__, StorageNetworkError)
    assert harness.units.inserted == []


@pytest.mark.asyncio
async def test_insert_failure_is_not_retriable(harness):
    async def broken_insert(media):
        raise ConnectionError("server closed the connection unexpectedly (timeout)")

    harness.units.insert = broken_insert
    pipeline = ImageVariationPipeline(harness.collaborators, variation_timeout_ms=300_000)

    with pytest.raises(PermanentError, match="server closed the connection"):
        await pipeline.run(image_job(harness), 1, [])

    assert len(harness.images.calls) == 1


@pytest.mark.asyncio
async def test_video_clip_is_stored_under_the_scene(harness):
    start_id, end_id = uuid4(), uuid4()
    harness.references.frames[start_id] = FrameReference(url="https://frames/start.png")
    harness.references.frames[end_id] = FrameReference(url="https://frames/end.png")
    scene = harness.add_scene(
        title="Opening",
        generation_model="ltx",
        start_frame_image_id=start_id,
        end_frame_image_id=end_id,
    )
    job = VideoJob(id=uuid4(), product_id=harness.product_id, scene_id=scene.id, generation_model="")

    media = await VideoPipeline(harness.collaborators).run(job)

    prompt, frames, model = harness.videos.calls[0]
    assert prompt == "Slow dolly in on the sneaker"
    assert model == "ltx"
    assert frames.start.url == "https://frames/start.png"
    assert frames.end.url == "https://frames/end.png"

    assert re.fullmatch(
        rf"products/{job.product_id}/scenes/{scene.id}/video-slow-dolly-in-on-the-sneaker-\d+\.mp4",
        media.storage_path,
    )
    assert (VIDEO_BUCKET, media.storage_path) in harness.storage.objects
    assert media.media_type == MediaType.VIDEO
    assert media.variation_number == 1
    assert media.scene_id == scene.id
    assert media.scene_name == "Opening"
    assert media.job_id == job.id


@pytest.mark.asyncio
async def test_video_job_model_overrides_scene_model(harness):
    scene = harness.add_scene(generation_model="ltx")
    job = VideoJob(
        id=uuid4(), product_id=harness.product_id, scene_id=scene.id, generation_model="veo3"
    )

    await VideoPipeline(harness.collaborators).run(job)

    assert harness.videos.calls[0][2] == "veo3"


@pytest.mark.asyncio
async def test_missing_frames_are_omitted(harness):
    scene = harness.add_scene(start_frame_image_id=uuid4())
    job = VideoJob(id=uuid4(), product_id=harness.product_id, scene_id=scene.id, generation_model="veo3")

    await VideoPipeline(harness.collaborators).run(job)

    frames = harness.videos.calls[0][1]
    assert frames.start is None
    assert frames.end is None


@pytest.mark.asyncio
async def test_video_scene_not_found(harness):
    job = VideoJob(id=uuid4(), product_id=harness.product_id, scene_id=uuid4(), generation_model="veo3")

    with pytest.raises(ConfigurationError, match="Scene not found"):
        await VideoPipeline(harness.collaborators).run(job)
