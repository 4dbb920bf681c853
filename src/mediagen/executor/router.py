"""Generation job executor entry point.

process_generation_job drives one invocation of one job:

1. Load the job row once; terminal jobs return immediately.
2. pending -> running (status-guarded).
3. Convert the row to its typed variant (ImageJob | VideoJob).
4. Image jobs: load references, plan a batch, run it through the worker pool.
   Video jobs: run the single video unit once, without retry.
5. Persist counters and compute the resulting status.

Invocations are safe to repeat: planning is a pure function of the persisted
counters, so a job is finished by calling this until the status is terminal.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog

from mediagen.executor.options import ExecutorOptions
from mediagen.executor.pipeline import ImageVariationPipeline, VideoPipeline
from mediagen.executor.planner import plan_batch
from mediagen.executor.pool import PoolResult, run_worker_pool
from mediagen.executor.ports import Collaborators
from mediagen.executor.progress import JobRunResult, ProgressRecorder
from mediagen.executor.retry import RetryPolicy
from mediagen.executor.stop import CancellationWatcher, StopCondition, TimeBudget
from mediagen.executor.variants import ImageJob, VideoJob, to_job_variant
from mediagen.models.generation_job import (
    ACTIVE_STATUSES,
    GenerationJob,
    JobStatus,
    JobType,
)
from mediagen.services.exceptions import ConfigurationError, JobNotFoundError

logger = structlog.get_logger(__name__)


async def process_generation_job(
    job_id: UUID,
    collaborators: Collaborators,
    options: Optional[ExecutorOptions] = None,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> JobRunResult:
    """Run one bounded invocation of a generation job.

    Args:
        job_id: Job to process
        collaborators: Datastore, storage and generation services
        options: Tuning (batch size, parallelism, budgets, retries)
        clock: Monotonic clock for the time budget and status polling
        sleep: Backoff sleep between retries

    Returns:
        JobRunResult with processed/completed/failed counters and status

    Raises:
        JobNotFoundError: If the job does not exist
    """
    options = options or ExecutorOptions()
    recorder = ProgressRecorder(collaborators.jobs)

    job = await collaborators.jobs.get(job_id)
    if job is None:
        raise JobNotFoundError(f"Generation job {job_id} not found")

    if job.is_terminal:
        logger.info("job.skipped_terminal", job_id=str(job.id), status=job.status.value)
        return JobRunResult(
            job_id=job.id,
            processed=0,
            completed=job.completed_count,
            failed=job.failed_count,
            status=job.status,
        )

    if job.status == JobStatus.PENDING:
        started = await collaborators.jobs.conditional_update(
            job.id,
            {"status": JobStatus.RUNNING, "started_at": datetime.utcnow()},
            ACTIVE_STATUSES,
        )
        if not started:
            current = await collaborators.jobs.get_status(job.id)
            if current is None:
                raise JobNotFoundError(f"Generation job {job_id} not found")
            if current not in ACTIVE_STATUSES:
                # Cancelled or finalized between the load and the start.
                logger.info("job.start_rejected", job_id=str(job.id), status=current.value)
                return JobRunResult(
                    job_id=job.id,
                    processed=0,
                    completed=job.completed_count,
                    failed=job.failed_count,
                    status=current,
                )

    logger.info(
        "job.started",
        job_id=str(job.id),
        job_type=job.job_type.value,
        variation_count=job.variation_count,
        completed=job.completed_count,
        failed=job.failed_count,
        batch_size=options.batch_size,
        parallelism=options.parallelism,
        time_budget_ms=options.time_budget_ms,
    )

    try:
        variant = to_job_variant(job)
    except ConfigurationError as e:
        if job.job_type == JobType.VIDEO:
            # Recorded as one failed unit so the job reports processed=1, failed=1.
            outcome = PoolResult(processed=1, failed=1, last_error=str(e))
            return await recorder.record(job, outcome, variation_target=1)
        return await recorder.fail_job(job, str(e))

    if isinstance(variant, VideoJob):
        return await _run_video_job(job, variant, collaborators, recorder)
    return await _run_image_job(job, variant, collaborators, recorder, options, clock, sleep)


async def _run_image_job(
    job: GenerationJob,
    variant: ImageJob,
    collaborators: Collaborators,
    recorder: ProgressRecorder,
    options: ExecutorOptions,
    clock: Callable[[], float],
    sleep: Callable[[float], Awaitable[None]],
) -> JobRunResult:
    budget = TimeBudget(options.time_budget_ms, clock=clock)

    work = plan_batch(
        variation_count=job.variation_count,
        completed_count=job.completed_count,
        failed_count=job.failed_count,
        batch_size=options.batch_size,
    )
    if not work:
        return await recorder.record(job, PoolResult(), variation_target=job.variation_count)

    reference_assets = await collaborators.references.load_reference_set(variant.reference_set_id)
    logger.info(
        "job.batch_planned",
        job_id=str(job.id),
        variation_numbers=work,
        reference_images=len(reference_assets),
    )

    pipeline = ImageVariationPipeline(collaborators, options.variation_timeout_ms)
    stop = StopCondition(budget, CancellationWatcher(job.id, collaborators.jobs, clock=clock))

    outcome = await run_worker_pool(
        work,
        parallelism=options.parallelism,
        run_unit=lambda n: pipeline.run(variant, n, reference_assets),
        retry_policy=RetryPolicy(
            max_retries=options.max_retries,
            base_delay_ms=options.retry_base_ms,
            sleep=sleep,
        ),
        stop=stop,
    )

    logger.info(
        "job.batch_finished",
        job_id=str(job.id),
        processed=outcome.processed,
        succeeded=outcome.succeeded,
        failed=outcome.failed,
        cancelled=outcome.cancelled,
        budget_exhausted=stop.budget_exhausted,
    )
    return await recorder.record(job, outcome, variation_target=job.variation_count)


async def _run_video_job(
    job: GenerationJob,
    variant: VideoJob,
    collaborators: Collaborators,
    recorder: ProgressRecorder,
) -> JobRunResult:
    if job.completed_count + job.failed_count >= variant.variation_count:
        return await recorder.record(job, PoolResult(), variation_target=variant.variation_count)

    try:
        await VideoPipeline(collaborators).run(variant)
        outcome = PoolResult(processed=1, succeeded=1)
    except Exception as e:
        logger.error(
            "video.generation.failed",
            job_id=str(job.id),
            scene_id=str(variant.scene_id),
            error_type=type(e).__name__,
            error_message=str(e),
        )
        outcome = PoolResult(processed=1, failed=1, last_error=str(e) or type(e).__name__)

    return await recorder.record(job, outcome, variation_target=variant.variation_count)
