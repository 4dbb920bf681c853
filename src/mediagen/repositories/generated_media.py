"""GeneratedMedia repository for mediagen.

Provides data access methods for GeneratedMedia entities.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mediagen.models.generated_media import GeneratedMedia


class GeneratedMediaRepository:
    """Repository for GeneratedMedia entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def add(self, media: GeneratedMedia) -> GeneratedMedia:
        """Persist a new media record.

        Args:
            media: GeneratedMedia entity to persist

        Returns:
            Persisted record with generated ID
        """
        self.session.add(media)
        await self.session.flush()
        return media

    async def get_by_id(self, media_id: UUID) -> GeneratedMedia | None:
        """Retrieve a media record by UUID.

        Args:
            media_id: Record's unique identifier

        Returns:
            GeneratedMedia if found, None otherwise
        """
        result = await self.session.execute(
            select(GeneratedMedia).where(GeneratedMedia.id == media_id)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def list_by_job(self, job_id: UUID) -> list[GeneratedMedia]:
        """Retrieve all media produced for a job, ordered by variation number.

        Args:
            job_id: Owning job's unique identifier

        Returns:
            List of records ordered by variation_number ascending
        """
        result = await self.session.execute(
            select(GeneratedMedia)
            .where(GeneratedMedia.job_id == job_id)  # type: ignore[arg-type]
            .order_by(GeneratedMedia.variation_number.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())
