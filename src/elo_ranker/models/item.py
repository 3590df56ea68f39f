import uuid
from datetime import UTC, datetime

from sqlalchemy import Double
from sqlmodel import Field, SQLModel


class Item(SQLModel, table=True):
    """A ranked item (an uploaded image with a display name)."""

    __tablename__ = "items"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(min_length=1)
    image_url: str | None = None
    rating: float = Field(default=1200.0, index=True, sa_type=Double)
    matches_played: int = Field(default=0, ge=0)
    version: int = 0  # bumped on every rating write; used for compare-and-swap
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
