"""
Event schemas for the marketplace consistency layer.

Every event is an immutable pydantic record carrying a common envelope
(event id, timestamp, source) and a `kind` discriminant. The wire format is
UTF-8 JSON with camelCase field names; decoding also accepts snake_case.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Iterable, Literal, Optional, Tuple, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)
from pydantic.alias_generators import to_camel

from shared.libs.events.exceptions import SchemaValidationError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventRecord(BaseModel):
    """Base for every record that travels on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class BaseEvent(EventRecord):
    """
    Common envelope fields.
    `event_id` is generated at creation; no consumer deduplicates on it
    unless the idempotency ledger is enabled.
    """

    event_id: str = Field(
        default_factory=lambda: str(uuid4()), description="Unique event identifier"
    )
    timestamp: datetime = Field(default_factory=_utcnow)
    source: Optional[str] = Field(None, description="Service that emitted the event")
    version: str = Field("1.0", description="Schema version")

    @property
    def partition_key(self) -> str:
        return partition_key(self)


# === Order events ===


class ItemSnapshot(EventRecord):
    """A line of an order frozen at order time."""

    product_id: str = Field(..., min_length=1)
    seller_id: str = Field(..., min_length=1)
    product_name: str = ""
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., gt=0)
    subtotal: Decimal

    @model_validator(mode="after")
    def _check_subtotal(self) -> "ItemSnapshot":
        if self.subtotal != self.unit_price * self.quantity:
            raise ValueError("subtotal must equal unitPrice * quantity")
        return self

    @classmethod
    def of(
        cls,
        product_id: str,
        seller_id: str,
        product_name: str,
        quantity: int,
        unit_price: Decimal,
    ) -> "ItemSnapshot":
        unit_price = Decimal(str(unit_price))
        return cls(
            product_id=product_id,
            seller_id=seller_id,
            product_name=product_name,
            quantity=quantity,
            unit_price=unit_price,
            subtotal=unit_price * quantity,
        )


class OrderCreated(BaseEvent):
    """Published once per placed order; fans out into buyer and seller profiles."""

    kind: Literal["OrderCreated"] = "OrderCreated"
    order_id: str = Field(..., min_length=1)
    buyer_id: str = Field(..., min_length=1)
    buyer_email: Optional[str] = None
    items: Tuple[ItemSnapshot, ...] = Field(..., min_length=1)
    total_price: Decimal
    shipping_address: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _check_total(self) -> "OrderCreated":
        expected = sum((item.subtotal for item in self.items), Decimal("0"))
        if self.total_price != expected:
            raise ValueError("totalPrice must equal the sum of item subtotals")
        return self

    @classmethod
    def build(
        cls,
        order_id: str,
        buyer_id: str,
        items: Iterable[ItemSnapshot],
        buyer_email: Optional[str] = None,
        shipping_address: Optional[str] = None,
        **envelope: Any,
    ) -> "OrderCreated":
        items = tuple(items)
        return cls(
            order_id=order_id,
            buyer_id=buyer_id,
            buyer_email=buyer_email,
            items=items,
            total_price=sum((item.subtotal for item in items), Decimal("0")),
            shipping_address=shipping_address,
            **envelope,
        )


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"
    REFUNDED = "REFUNDED"


class OrderStatusChanged(BaseEvent):
    kind: Literal["OrderStatusChanged"] = "OrderStatusChanged"
    order_id: str = Field(..., min_length=1)
    buyer_id: str
    buyer_email: Optional[str] = None
    old_status: Optional[OrderStatus] = None
    new_status: OrderStatus
    reason: Optional[str] = None
    changed_at: datetime = Field(default_factory=_utcnow)


class CartAction(str, Enum):
    ITEM_ADDED = "ITEM_ADDED"
    ITEM_REMOVED = "ITEM_REMOVED"
    QUANTITY_CHANGED = "QUANTITY_CHANGED"
    CLEARED = "CLEARED"


class CartUpdated(BaseEvent):
    """Analytics-only cart activity."""

    kind: Literal["CartUpdated"] = "CartUpdated"
    cart_id: str = Field(..., min_length=1)
    user_id: str
    action: CartAction
    product_id: Optional[str] = None
    quantity: Optional[int] = None
    price: Optional[Decimal] = None
    total_items: Optional[int] = None
    total_price: Optional[Decimal] = None
    updated_at: datetime = Field(default_factory=_utcnow)


# === Product events ===


class ProductEventType(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"


class ProductEvent(BaseEvent):
    """
    Product lifecycle event. `event_type` selects the payload shape:
    CREATED/UPDATED carry the product details, DELETED carries none.
    """

    kind: Literal["ProductEvent"] = "ProductEvent"
    event_type: ProductEventType
    product_id: str = Field(..., min_length=1)
    seller_id: str = Field(..., min_length=1)
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    quantity: Optional[int] = None

    @model_validator(mode="after")
    def _check_details(self) -> "ProductEvent":
        details = (self.name, self.description, self.price, self.quantity)
        if self.event_type is ProductEventType.DELETED:
            if any(value is not None for value in details):
                raise ValueError("DELETED product events carry no product details")
        elif self.name is None or self.price is None or self.quantity is None:
            raise ValueError(
                f"{self.event_type.value} product events require name, price and quantity"
            )
        return self


# === User events ===


class UserDeleted(BaseEvent):
    kind: Literal["UserDeleted"] = "UserDeleted"
    user_id: str = Field(..., min_length=1)
    user_role: Optional[str] = None


Event = Annotated[
    Union[OrderCreated, OrderStatusChanged, CartUpdated, ProductEvent, UserDeleted],
    Field(discriminator="kind"),
]

_EVENT_ADAPTER: TypeAdapter = TypeAdapter(Event)

_KEY_FIELDS = {
    "OrderCreated": "order_id",
    "OrderStatusChanged": "order_id",
    "CartUpdated": "cart_id",
    "ProductEvent": "product_id",
    "UserDeleted": "user_id",
}


def partition_key(event: BaseEvent) -> str:
    """Aggregate id whose events must stay ordered (the Kafka message key)."""
    return getattr(event, _KEY_FIELDS[event.kind])


def encode_event(event: BaseEvent) -> bytes:
    return event.model_dump_json(by_alias=True).encode("utf-8")


def decode_event(raw: Union[bytes, str, dict]) -> BaseEvent:
    """
    Decode a wire payload into a typed event.

    Raises:
        SchemaValidationError: On malformed JSON, unknown kind or invalid payload.
    """
    try:
        if isinstance(raw, dict):
            return _EVENT_ADAPTER.validate_python(raw)
        return _EVENT_ADAPTER.validate_json(raw)
    except ValidationError as e:
        raise SchemaValidationError(f"Event validation failed: {e}") from e
