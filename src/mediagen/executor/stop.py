"""Cooperative stop conditions checked by workers between units.

Neither check interrupts a unit that is already running; only the unit's own
per-call timeout can do that.
"""

import time
from collections.abc import Callable
from uuid import UUID

import structlog

from mediagen.executor.ports import JobStore
from mediagen.models.generation_job import JobStatus

logger = structlog.get_logger(__name__)

STATUS_POLL_INTERVAL_SECONDS = 3.0


class TimeBudget:
    """Absolute deadline for claiming new units in one invocation."""

    def __init__(self, budget_ms: int, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self.started_at = clock()
        self.deadline = self.started_at + budget_ms / 1000

    def exceeded(self) -> bool:
        return self.clock() > self.deadline

    @property
    def elapsed_seconds(self) -> float:
        return self.clock() - self.started_at


class CancellationWatcher:
    """Throttled poll of the job's persisted status.

    Reads the status at most once per poll_interval seconds and answers from
    the last read in between. Once cancellation is seen it is sticky.
    """

    def __init__(
        self,
        job_id: UUID,
        jobs: JobStore,
        poll_interval: float = STATUS_POLL_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.job_id = job_id
        self.jobs = jobs
        self.poll_interval = poll_interval
        self.clock = clock
        self.cancelled = False
        self._last_poll: float | None = None

    async def is_cancelled(self) -> bool:
        if self.cancelled:
            return True

        now = self.clock()
        if self._last_poll is not None and now - self._last_poll < self.poll_interval:
            return self.cancelled
        self._last_poll = now

        try:
            status = await self.jobs.get_status(self.job_id)
        except Exception as e:
            # A failed poll keeps the previous answer; the next poll retries.
            logger.warning(
                "job.status_poll_failed",
                job_id=str(self.job_id),
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return self.cancelled

        if status == JobStatus.CANCELLED:
            logger.info("job.cancellation_detected", job_id=str(self.job_id))
            self.cancelled = True
        return self.cancelled


class StopCondition:
    """Combined check used by the worker pool before each claim."""

    def __init__(self, budget: TimeBudget, watcher: CancellationWatcher):
        self.budget = budget
        self.watcher = watcher
        self.budget_exhausted = False

    @property
    def cancelled(self) -> bool:
        return self.watcher.cancelled

    async def should_stop(self) -> bool:
        # The deadline check never touches the datastore.
        if self.budget.exceeded():
            if not self.budget_exhausted:
                logger.info(
                    "job.time_budget_exhausted",
                    job_id=str(self.watcher.job_id),
                    elapsed_seconds=round(self.budget.elapsed_seconds, 3),
                )
            self.budget_exhausted = True
            return True
        return await self.watcher.is_cancelled()
