from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from sqlalchemy import JSON, Column, DateTime, Numeric
from sqlmodel import Field, SQLModel

CENT = Decimal("0.01")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def average_value(total: Decimal, count: int) -> Decimal:
    """total / count rounded half-up to cents; zero when count is zero."""
    if count <= 0:
        return Decimal("0.00")
    return (Decimal(total) / count).quantize(CENT, rounding=ROUND_HALF_UP)


class UserProfile(SQLModel, table=True):
    __tablename__ = "user_profiles"

    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: str = Field(
        index=True,
        unique=True,
        max_length=64,
        nullable=False,
        description="Logical reference to user-service User ID",
    )

    total_orders: int = Field(default=0, nullable=False)

    total_spent: Decimal = Field(
        default=Decimal("0.00"), sa_column=Column(Numeric(12, 2), nullable=False)
    )

    average_order_value: Decimal = Field(
        default=Decimal("0.00"), sa_column=Column(Numeric(12, 2), nullable=False)
    )

    purchased_product_counts: Dict[str, int] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
        description="productId -> units bought",
    )

    most_purchased_product_ids: List[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )

    last_order_date: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    # Write counter; checked only when optimistic locking is enabled
    version: int = Field(default=0, nullable=False)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class SellerProfile(SQLModel, table=True):
    __tablename__ = "seller_profiles"

    id: Optional[int] = Field(default=None, primary_key=True)

    seller_id: str = Field(
        index=True,
        unique=True,
        max_length=64,
        nullable=False,
        description="Logical reference to user-service User ID of the seller",
    )

    store_name: str = Field(max_length=255, nullable=False)

    total_products_sold: int = Field(default=0, nullable=False)

    total_revenue: Decimal = Field(
        default=Decimal("0.00"), sa_column=Column(Numeric(12, 2), nullable=False)
    )

    average_order_value: Decimal = Field(
        default=Decimal("0.00"), sa_column=Column(Numeric(12, 2), nullable=False)
    )

    sold_product_counts: Dict[str, int] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
        description="productId -> units sold",
    )

    best_selling_product_ids: List[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )

    last_order_date: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    version: int = Field(default=0, nullable=False)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
