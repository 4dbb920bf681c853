"""StoryboardScene entity - source of video generation jobs."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class StoryboardScene(SQLModel, table=True):
    """A storyboard scene with an optional start/end frame and a motion prompt."""

    __tablename__ = "storyboard_scenes"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    product_id: UUID = Field(index=True)
    title: Optional[str] = Field(default=None, max_length=255)
    motion_prompt: Optional[str] = Field(default=None)
    generation_model: str = Field(default="veo3", max_length=100)
    start_frame_image_id: Optional[UUID] = Field(default=None)
    end_frame_image_id: Optional[UUID] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
