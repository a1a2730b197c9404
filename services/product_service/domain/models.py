from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from sqlalchemy import Column, DateTime, Numeric
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Product(SQLModel, table=True):
    """
    A product listed by a seller.

    `owner_id` is a soft reference to a user-service User; it is kept
    consistent only by the user-deletion cascade.
    """

    __tablename__ = "products"

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        primary_key=True,
        max_length=64,
        description="Unique identifier for the product.",
    )
    owner_id: str = Field(
        index=True,
        max_length=64,
        nullable=False,
        description="Logical reference to the selling user's ID.",
    )
    name: str = Field(max_length=255, nullable=False)
    description: Optional[str] = Field(default=None, max_length=2000, nullable=True)
    price: Decimal = Field(sa_column=Column(Numeric(12, 2), nullable=False))
    quantity: int = Field(default=0, nullable=False)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class ProductCreate(SQLModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    quantity: int = Field(ge=0)


class ProductUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    price: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    quantity: Optional[int] = Field(default=None, ge=0)
