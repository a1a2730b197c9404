from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel


class Media(SQLModel, table=True):
    """
    Metadata for a stored media object.
    `owner_id` and `product_id` are soft references kept consistent by the
    deletion cascade.
    """

    __tablename__ = "media"

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        primary_key=True,
        max_length=64,
    )

    owner_id: str = Field(
        index=True,
        max_length=64,
        nullable=False,
        description="The ID of the uploading user",
    )

    product_id: Optional[str] = Field(
        default=None,
        index=True,
        max_length=64,
        nullable=True,
        description="The ID of the product this media belongs to, if any",
    )

    filename: str = Field(max_length=255, nullable=False)

    content_type: str = Field(max_length=100, nullable=False)

    file_size: int = Field(default=0, nullable=False)

    storage_key: str = Field(
        max_length=512, nullable=False, description="Object key in the media bucket"
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
