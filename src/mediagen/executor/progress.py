"""Progress persistence and terminal status computation."""

from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

import structlog

from mediagen.executor.pool import PoolResult
from mediagen.executor.ports import JobStore
from mediagen.models.generation_job import ACTIVE_STATUSES, GenerationJob, JobStatus

logger = structlog.get_logger(__name__)

ALL_FAILED_MESSAGE = "All variations failed"


@dataclass
class JobRunResult:
    """Outcome of one executor invocation, as returned to the trigger."""

    job_id: UUID
    processed: int
    completed: int
    failed: int
    status: JobStatus

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["job_id"] = str(self.job_id)
        data["status"] = self.status.value
        return data


class ProgressRecorder:
    """Writes an invocation's counters back to the job row and finalizes it.

    All writes go through the status-guarded update, so nothing is written
    once another invocation (or a user cancel) has moved the job to a
    terminal status.
    """

    def __init__(self, jobs: JobStore, now: Callable[[], datetime] = datetime.utcnow):
        self.jobs = jobs
        self.now = now

    async def record(
        self,
        job: GenerationJob,
        outcome: PoolResult,
        variation_target: int,
    ) -> JobRunResult:
        """Persist counters and decide the job's status after a run.

        Args:
            job: Job snapshot loaded at the start of the invocation
            outcome: What this invocation did
            variation_target: Units the job needs in total (1 for video jobs)

        Returns:
            JobRunResult with the status the job ended this invocation in.
            When the guarded write is rejected (cancelled or finalized
            elsewhere) the counters are the row's persisted values.
        """
        completed = job.completed_count + outcome.succeeded
        failed = job.failed_count + outcome.failed
        status = JobStatus.RUNNING

        values: dict[str, Any] = {
            "completed_count": completed,
            "failed_count": failed,
            "status": JobStatus.RUNNING,
        }
        if outcome.last_error:
            values["error_message"] = outcome.last_error

        if not outcome.cancelled and completed + failed >= variation_target:
            status = (
                JobStatus.FAILED if completed == 0 and failed > 0 else JobStatus.COMPLETED
            )
            values["status"] = status
            values["completed_at"] = self.now()
            if status == JobStatus.FAILED:
                values["error_message"] = (
                    outcome.last_error or job.error_message or ALL_FAILED_MESSAGE
                )

        applied = await self.jobs.conditional_update(job.id, values, ACTIVE_STATUSES)

        if not applied:
            # Report what the row actually holds, not the counts this run could not write.
            current = await self.jobs.get(job.id)
            logger.warning(
                "job.progress_write_rejected",
                job_id=str(job.id),
                current_status=current.status.value if current else None,
                unpersisted_succeeded=outcome.succeeded,
                unpersisted_failed=outcome.failed,
            )
            if current is not None:
                completed = current.completed_count
                failed = current.failed_count
                status = current.status

        if outcome.cancelled:
            status = JobStatus.CANCELLED

        if applied and status in (JobStatus.COMPLETED, JobStatus.FAILED):
            logger.info(
                "job.finalized",
                job_id=str(job.id),
                status=status.value,
                completed=completed,
                failed=failed,
                error_message=values.get("error_message"),
            )

        return JobRunResult(
            job_id=job.id,
            processed=outcome.processed,
            completed=completed,
            failed=failed,
            status=status,
        )

    async def fail_job(self, job: GenerationJob, message: str) -> JobRunResult:
        """Fail a job at setup time without attempting any unit.

        Args:
            job: Job snapshot
            message: Configuration error to store in error_message

        Returns:
            JobRunResult with status=failed and processed=0
        """
        await self.jobs.conditional_update(
            job.id,
            {
                "status": JobStatus.FAILED,
                "error_message": message,
                "completed_at": self.now(),
            },
            ACTIVE_STATUSES,
        )
        logger.error("job.configuration_error", job_id=str(job.id), error_message=message)
        return JobRunResult(
            job_id=job.id,
            processed=0,
            completed=job.completed_count,
            failed=job.failed_count,
            status=JobStatus.FAILED,
        )
