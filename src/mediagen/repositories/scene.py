"""StoryboardScene repository for mediagen."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mediagen.models.scene import StoryboardScene


class SceneRepository:
    """Read access to storyboard scenes."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, scene_id: UUID) -> StoryboardScene | None:
        result = await self.session.execute(
            select(StoryboardScene).where(StoryboardScene.id == scene_id)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()
