"""ReferenceImage repository for mediagen."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mediagen.models.reference_image import ReferenceImage


class ReferenceImageRepository:
    """Read access to reference images."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_by_set(self, reference_set_id: UUID) -> list[ReferenceImage]:
        """Retrieve a reference set's images in display order.

        Args:
            reference_set_id: Reference set's unique identifier

        Returns:
            List of images ordered by display_order ascending
        """
        result = await self.session.execute(
            select(ReferenceImage)
            .where(ReferenceImage.reference_set_id == reference_set_id)  # type: ignore[arg-type]
            .order_by(ReferenceImage.display_order.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())
