# mealhub/schemas/order.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, Field, field_validator

from mealhub.domain.status import OrderStatus, PaymentMethod, PaymentStatus
from mealhub.schemas.common import CamelModel, as_utc

MIN_PHONE_LENGTH = 10


class OrderItemCreate(CamelModel):
    meal_id: uuid.UUID
    quantity: int = Field(ge=1)
    price_at_order: float = Field(ge=0)


class OrderCreate(CamelModel):
    """
    Payload for placing an order (checkout).

    Backend derives:
      - customer_id from token
      - status = PENDING, payment = cash on delivery / PENDING
      - total_amount from the items
    """

    model_config = ConfigDict(extra="forbid")

    provider_id: uuid.UUID
    items: list[OrderItemCreate] = Field(min_length=1)
    delivery_address: str
    contact_phone: str
    order_notes: str | None = None

    @field_validator("delivery_address")
    @classmethod
    def address_not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("delivery address cannot be empty")
        return v

    @field_validator("contact_phone")
    @classmethod
    def phone_min_length(cls, v: str) -> str:
        # Only checked, never reformatted.
        if len(v.strip()) < MIN_PHONE_LENGTH:
            raise ValueError(
                f"contact phone must be at least {MIN_PHONE_LENGTH} characters"
            )
        return v

    @field_validator("order_notes")
    @classmethod
    def normalize_notes(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class OrderCancel(CamelModel):
    """Customer cancellation payload."""

    model_config = ConfigDict(extra="forbid")

    reason: str


class OrderStatusUpdate(CamelModel):
    """
    Provider payload to change order status.

    `note` is required when status is CANCELLED (enforced by the service).
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
    note: str | None = None


class StatusHistoryRead(CamelModel):
    model_config = ConfigDict(frozen=True)

    status: OrderStatus
    note: str | None = None
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class OrderItemRead(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    meal_id: uuid.UUID
    quantity: int
    price_at_order: float
    line_total: float


class OrderRead(CamelModel):
    """
    Order without items/history (list views).
    """

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    customer_id: uuid.UUID
    provider_id: uuid.UUID
    status: OrderStatus
    total_amount: float
    delivery_address: str
    contact_phone: str
    order_notes: str | None = None
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    payment_status: PaymentStatus = PaymentStatus.PENDING
    estimated_delivery_time: datetime | None = None
    actual_delivery_time: datetime | None = None
    cancellation_reason: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator(
        "estimated_delivery_time",
        "actual_delivery_time",
        "created_at",
        "updated_at",
    )
    @classmethod
    def timestamps_utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v)


class OrderDetailRead(OrderRead):
    """
    Full order view: items plus status history (oldest first).
    """

    order_items: tuple[OrderItemRead, ...] = ()
    status_history: tuple[StatusHistoryRead, ...] = ()
