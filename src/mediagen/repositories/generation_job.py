"""GenerationJob repository for mediagen.

Provides data access methods for GenerationJob entities, including the
status-guarded update the executor relies on for optimistic concurrency.
"""

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mediagen.models.generation_job import ACTIVE_STATUSES, GenerationJob, JobStatus


class GenerationJobRepository:
    """Repository for GenerationJob entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def add(self, job: GenerationJob) -> GenerationJob:
        """Persist new generation job to database.

        Args:
            job: GenerationJob entity to persist

        Returns:
            Persisted job with generated ID
        """
        self.session.add(job)
        await self.session.flush()
        return job

    async def get_by_id(self, job_id: UUID) -> GenerationJob | None:
        """Retrieve generation job by UUID.

        Args:
            job_id: Job's unique identifier

        Returns:
            GenerationJob if found, None otherwise
        """
        result = await self.session.execute(
            select(GenerationJob).where(GenerationJob.id == job_id)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def get_status(self, job_id: UUID) -> JobStatus | None:
        """Read only the current status column (cheap cancellation poll).

        Args:
            job_id: Job's unique identifier

        Returns:
            Current JobStatus, or None if the job no longer exists
        """
        result = await self.session.execute(
            select(GenerationJob.status).where(GenerationJob.id == job_id)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def conditional_update(
        self,
        job_id: UUID,
        values: dict[str, Any],
        allowed_statuses: Iterable[JobStatus] = ACTIVE_STATUSES,
    ) -> bool:
        """Apply an update only while the job's status is in allowed_statuses.

        Query:
            UPDATE generation_jobs
            SET ...
            WHERE id = :job_id AND status IN (:allowed_statuses)

        This is a compare-and-swap on the status column, not a lock: two
        callers that both observe 'running' can both write.

        Args:
            job_id: Job's unique identifier
            values: Column values to set
            allowed_statuses: Statuses the row must currently hold

        Returns:
            True if a row was updated, False if the guard rejected the write
        """
        result = await self.session.execute(
            update(GenerationJob)
            .where(GenerationJob.id == job_id)  # type: ignore[arg-type]
            .where(GenerationJob.status.in_(list(allowed_statuses)))  # type: ignore[attr-defined]
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0  # type: ignore[attr-defined]

    async def list_runnable(self, limit: int = 1) -> list[GenerationJob]:
        """Retrieve the oldest jobs that still have work to do.

        Query explanation:
        - WHERE status IN ('pending', 'running'): Not yet finalized
        - ORDER BY created_at ASC: Process oldest first (FIFO)
        - LIMIT: Number of jobs this trigger will drive

        Args:
            limit: Maximum number of jobs to retrieve (default: 1)

        Returns:
            List of runnable jobs, oldest first
        """
        result = await self.session.execute(
            select(GenerationJob)
            .where(GenerationJob.status.in_(list(ACTIVE_STATUSES)))  # type: ignore[attr-defined]
            .order_by(GenerationJob.created_at.asc())  # type: ignore[attr-defined]
            .limit(max(1, limit))
        )
        return list(result.scalars().all())
