"""ReferenceImage entity - an uploaded image belonging to a reference set."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class ReferenceImage(SQLModel, table=True):
    """ReferenceImage rows are managed by the API layer; the executor only reads them."""

    __tablename__ = "reference_images"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    reference_set_id: UUID = Field(index=True)
    storage_path: str
    file_name: str = Field(default="", max_length=255)
    mime_type: str = Field(default="image/png", max_length=100)
    display_order: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
