# mealhub/models/order.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field

from mealhub.domain.status import OrderStatus, PaymentMethod, PaymentStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(SQLModel, table=True):
    """
    A purchase from one customer to one provider.

    Lifecycle:
      - created in PENDING by checkout
      - mutated only by customer cancel / provider status advance
      - never deleted; DELIVERED and CANCELLED are end states
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    customer_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    provider_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    status: OrderStatus = Field(
        default=OrderStatus.PENDING,
        index=True,
        description="Order status lifecycle",
    )

    # Fixed at creation: sum(price_at_order * quantity)
    total_amount: float = Field(
        ge=0,
        description="Order total in currency units",
    )

    delivery_address: str = Field(description="Full delivery address")
    contact_phone: str = Field(description="Contact phone number for delivery")
    order_notes: str | None = Field(
        default=None,
        description="Optional note / special instructions",
    )

    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH_ON_DELIVERY)
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)

    estimated_delivery_time: datetime | None = Field(default=None)
    actual_delivery_time: datetime | None = Field(default=None)

    # Only set when status becomes CANCELLED
    cancellation_reason: str | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=utcnow,
        index=True,
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last status change (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order.

    price_at_order is captured at checkout and never follows later menu
    price changes.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    meal_id: uuid.UUID = Field(index=True)

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    price_at_order: float = Field(
        ge=0,
        description="Unit price at time of order",
    )

    created_at: datetime = Field(default_factory=utcnow)


class OrderStatusHistory(SQLModel, table=True):
    """
    Append-only audit log: one row per status an order has held.

    Rows are inserted once per transition and never updated or deleted.
    """

    __tablename__ = "order_status_history"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    status: OrderStatus

    note: str | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=utcnow,
        index=True,
    )
