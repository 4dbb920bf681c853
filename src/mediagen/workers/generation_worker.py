"""Generation worker: wires collaborators and drains runnable jobs.

Used by both the HTTP worker route and the process_jobs CLI. A drain picks the
oldest pending/running jobs and runs image and video jobs in two concurrent
lanes, each with its own job concurrency. Every job gets one bounded executor
invocation; unfinished jobs are picked up again on the next trigger.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import UUID

import structlog

from mediagen.core.config import Settings
from mediagen.executor.adapters import (
    SqlJobStore,
    SqlSceneReader,
    SqlUnitStore,
    StorageReferenceReader,
)
from mediagen.executor.options import ExecutorOptions
from mediagen.executor.ports import Collaborators, ImageGenerationService
from mediagen.executor.router import process_generation_job
from mediagen.models.generation_job import GenerationJob, JobType
from mediagen.services.exceptions import ConfigurationError
from mediagen.services.image_generation.gemini_client import GeminiImageClient
from mediagen.services.image_generation.replicate_client import ReplicateImageClient
from mediagen.services.media.transcoder import PillowTranscoder
from mediagen.services.storage.supabase_storage import SupabaseStorageClient
from mediagen.services.video_generation.ltx_client import LtxVideoClient
from mediagen.services.video_generation.router import VideoModelRouter
from mediagen.services.video_generation.veo_client import VeoVideoClient
from mediagen.uow import UnitOfWork

logger = structlog.get_logger(__name__)

UowFactory = Callable[[], Awaitable[UnitOfWork]]
JobProcessor = Callable[[UUID], Awaitable[Any]]


def build_image_service(settings: Settings) -> ImageGenerationService:
    """Select the image provider from IMAGE_PROVIDER.

    Raises:
        ConfigurationError: Unknown provider name
    """
    provider = settings.image_provider.strip().lower()
    if provider == "gemini":
        return GeminiImageClient(
            api_key=settings.gemini_api_key,
            model=settings.gemini_image_model,
            default_resolution=settings.gemini_image_resolution_default,
        )
    if provider == "replicate":
        return ReplicateImageClient(
            api_token=settings.replicate_api_token,
            model_version=settings.replicate_model_version,
        )
    raise ConfigurationError(f"Unsupported IMAGE_PROVIDER: {settings.image_provider}")


def build_collaborators(settings: Settings, uow_factory: UowFactory) -> Collaborators:
    """Wire the production adapters for process_generation_job."""
    storage = SupabaseStorageClient(settings.supabase_url, settings.supabase_service_role_key)

    videos = VideoModelRouter(
        veo=VeoVideoClient(
            api_key=settings.google_ai_api_key,
            model=settings.veo_model,
            aspect_ratio=settings.veo_aspect_ratio,
            resolution=settings.veo_resolution,
            poll_interval_ms=settings.veo_poll_interval_ms,
            poll_timeout_ms=settings.veo_poll_timeout_ms,
        ),
        ltx=LtxVideoClient(
            api_key=settings.ltx_api_key,
            base_url=settings.ltx_api_base_url,
            model=settings.ltx_model,
            duration=settings.ltx_duration,
            resolution=settings.ltx_resolution,
        ),
    )

    return Collaborators(
        jobs=SqlJobStore(uow_factory),
        units=SqlUnitStore(uow_factory),
        references=StorageReferenceReader(uow_factory, storage),
        scenes=SqlSceneReader(uow_factory),
        images=build_image_service(settings),
        videos=videos,
        transcoder=PillowTranscoder(),
        storage=storage,
    )


@dataclass
class DrainResult:
    """Per-job results of one drain, in lane order (image lane first)."""

    results: list[dict[str, Any]] = field(default_factory=list)
    errors: list[dict[str, str]] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"processed": self.processed, "results": self.results}
        if self.errors:
            data["errors"] = self.errors
        return data


async def run_lane(
    jobs: list[GenerationJob],
    concurrency: int,
    process: JobProcessor,
    lane: str,
) -> DrainResult:
    """Run jobs with at most `concurrency` in flight.

    A job that raises is logged and reported in `errors`; it does not stop
    the rest of the lane.
    """
    lane_result = DrainResult()
    if not jobs:
        return lane_result

    cursor = 0

    async def worker() -> None:
        nonlocal cursor
        while cursor < len(jobs):
            job = jobs[cursor]
            cursor += 1
            try:
                result = await process(job.id)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(
                    "job.processing_failed",
                    lane=lane,
                    job_id=str(job.id),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                lane_result.errors.append({"job_id": str(job.id), "error": str(e)})
                continue
            lane_result.results.append(result.to_dict())

    workers = max(1, concurrency)
    await asyncio.gather(*(worker() for _ in range(min(workers, len(jobs)))))
    return lane_result


async def run_pending_jobs(
    uow_factory: UowFactory,
    process: JobProcessor,
    job_limit: int,
    image_concurrency: int,
    video_concurrency: int,
) -> DrainResult:
    """Drain up to job_limit oldest runnable jobs in image and video lanes.

    Args:
        uow_factory: Factory for the job listing query
        process: Runs one executor invocation for a job id
        job_limit: Maximum jobs to pick up this drain
        image_concurrency: Image jobs processed concurrently
        video_concurrency: Video jobs processed concurrently

    Returns:
        DrainResult with one entry per processed job
    """
    async with await uow_factory() as uow:
        jobs = await uow.generation_jobs.list_runnable(limit=max(1, job_limit))

    if not jobs:
        logger.debug("worker.no_runnable_jobs")
        return DrainResult()

    image_jobs = [job for job in jobs if job.job_type != JobType.VIDEO]
    video_jobs = [job for job in jobs if job.job_type == JobType.VIDEO]

    logger.info(
        "worker.drain_started",
        image_jobs=len(image_jobs),
        video_jobs=len(video_jobs),
        image_concurrency=image_concurrency,
        video_concurrency=video_concurrency,
    )

    image_result, video_result = await asyncio.gather(
        run_lane(image_jobs, image_concurrency, process, "image"),
        run_lane(video_jobs, video_concurrency, process, "video"),
    )

    drained = DrainResult(
        results=image_result.results + video_result.results,
        errors=image_result.errors + video_result.errors,
    )
    logger.info("worker.drain_completed", processed=drained.processed, errors=len(drained.errors))
    return drained


async def trigger_generation(
    settings: Settings,
    uow_factory: UowFactory,
    collaborators: Collaborators,
    *,
    job_id: Optional[UUID] = None,
    batch_size: Optional[float] = None,
    parallelism: Optional[float] = None,
    time_budget_ms: Optional[float] = None,
    job_limit: Optional[float] = None,
    image_concurrency: Optional[float] = None,
    video_concurrency: Optional[float] = None,
) -> DrainResult:
    """Process one job, or drain the queue, with per-trigger overrides.

    Raises:
        JobNotFoundError: If job_id is given and does not exist
    """
    options = ExecutorOptions.resolve(
        settings,
        batch_size=batch_size,
        parallelism=parallelism,
        time_budget_ms=time_budget_ms,
    )

    logger.info(
        "worker.triggered",
        job_id=str(job_id) if job_id else None,
        batch_size=options.batch_size,
        parallelism=options.parallelism,
        time_budget_ms=options.time_budget_ms,
    )

    async def process(target: UUID):
        return await process_generation_job(target, collaborators, options)

    if job_id is not None:
        result = await process(job_id)
        return DrainResult(results=[result.to_dict()])

    return await run_pending_jobs(
        uow_factory,
        process,
        job_limit=_positive_int(job_limit, settings.generation_job_batch_size),
        image_concurrency=_positive_int(
            image_concurrency, settings.resolved_image_job_concurrency
        ),
        video_concurrency=_positive_int(
            video_concurrency, settings.resolved_video_job_concurrency
        ),
    )


def _positive_int(value: Optional[float], fallback: int) -> int:
    if value is not None and value > 0:
        return int(value)
    return fallback if fallback > 0 else 1
