# mealhub/services/order_service.py
import logging
import math
import uuid
from datetime import datetime, timedelta

from fastapi import HTTPException, status
from sqlmodel import Session

from mealhub.domain.status import (
    DEFAULT_CANCEL_WINDOW,
    CancelWindow,
    InvalidCancellationReason,
    InvalidTransition,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Role,
    ensure_transition,
    resolve_reason,
)
from mealhub.models.order import Order, OrderItem, OrderStatusHistory, utcnow
from mealhub.models.user import User
from mealhub.repositories.order_repo import OrderRepository
from mealhub.schemas.common import Pagination, as_utc
from mealhub.schemas.order import (
    OrderCancel,
    OrderCreate,
    OrderDetailRead,
    OrderItemRead,
    OrderRead,
    OrderStatusUpdate,
    StatusHistoryRead,
)

logger = logging.getLogger(__name__)

DEFAULT_ESTIMATED_DELIVERY_MINUTES = 45


class OrderService:
    """
    Business logic for the order lifecycle.

    Responsibilities:
      - Create orders (PENDING, total fixed from price_at_order * quantity)
      - Scope reads to the owning customer / addressed provider
      - Re-validate every status change against the state machine
      - Append exactly one history row per successful transition
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cancel_window: CancelWindow = DEFAULT_CANCEL_WINDOW,
        estimated_delivery_minutes: int = DEFAULT_ESTIMATED_DELIVERY_MINUTES,
    ):
        self.order_repo = order_repo
        self.cancel_window = cancel_window
        self.estimated_delivery_minutes = estimated_delivery_minutes

    # -------- Customer-facing operations --------

    def create_order(
        self,
        session: Session,
        customer: User,
        payload: OrderCreate,
    ) -> OrderDetailRead:
        """
        Place an order.

        Steps:
          1. Reject ordering from yourself.
          2. Compute total_amount from the submitted line items.
          3. Create Order row (status=PENDING, cash on delivery).
          4. Create OrderItem rows.
          5. Write the initial PENDING history entry.
          6. Commit and return the full order.
        """
        if payload.provider_id == customer.id:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Cannot order from yourself",
            )

        total_amount = round(
            sum(item.price_at_order * item.quantity for item in payload.items), 2
        )

        now = utcnow()
        order = Order(
            customer_id=customer.id,
            provider_id=payload.provider_id,
            status=OrderStatus.PENDING,
            total_amount=total_amount,
            delivery_address=payload.delivery_address,
            contact_phone=payload.contact_phone,
            order_notes=payload.order_notes,
            payment_method=PaymentMethod.CASH_ON_DELIVERY,
            payment_status=PaymentStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        order = self.order_repo.create_order(session, order)

        self.order_repo.create_items(
            session,
            [
                OrderItem(
                    order_id=order.id,
                    meal_id=item.meal_id,
                    quantity=item.quantity,
                    price_at_order=item.price_at_order,
                    created_at=now,
                )
                for item in payload.items
            ],
        )
        self.order_repo.append_history(
            session,
            OrderStatusHistory(
                order_id=order.id,
                status=OrderStatus.PENDING,
                note="Order placed",
                created_at=now,
            ),
        )

        session.commit()
        session.refresh(order)
        logger.info("Order %s placed by customer %s", order.id, customer.id)
        return self._build_detail(session, order)

    def list_orders(
        self,
        session: Session,
        *,
        customer_id: uuid.UUID | None = None,
        provider_id: uuid.UUID | None = None,
        order_status: OrderStatus | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[OrderRead], Pagination]:
        """
        One page of orders, newest first, plus pagination metadata.

        Scope by customer (own orders), provider (addressed orders) or
        neither (admin).
        """
        scope = dict(
            customer_id=customer_id,
            provider_id=provider_id,
            status=order_status,
        )
        total = self.order_repo.count_orders(session, **scope)
        orders = self.order_repo.list_orders(
            session,
            skip=(page - 1) * limit,
            limit=limit,
            **scope,
        )
        pagination = Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 0,
        )
        return [OrderRead.model_validate(o) for o in orders], pagination

    def get_customer_order(
        self,
        session: Session,
        customer_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderDetailRead:
        """
        Single order belonging to the customer.

        - 404 if not found or owned by someone else.
        """
        order = self._get_owned(session, order_id, customer_id=customer_id)
        return self._build_detail(session, order)

    def cancel_order(
        self,
        session: Session,
        customer_id: uuid.UUID,
        order_id: uuid.UUID,
        payload: OrderCancel,
    ) -> OrderDetailRead:
        """
        Customer cancellation.

        Allowed only while the order is inside the configured cancel window.
        The reason is stored on the order and on the CANCELLED history row.
        """
        try:
            reason = resolve_reason(payload.reason)
        except InvalidCancellationReason as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=str(e),
            )

        order = self._get_owned(session, order_id, customer_id=customer_id)
        order = self._transition(
            session, order, OrderStatus.CANCELLED, Role.CUSTOMER, note=reason
        )
        return self._build_detail(session, order)

    # -------- Provider operations --------

    def get_provider_order(
        self,
        session: Session,
        provider_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderDetailRead:
        order = self._get_owned(session, order_id, provider_id=provider_id)
        return self._build_detail(session, order)

    def update_status(
        self,
        session: Session,
        provider_id: uuid.UUID,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
    ) -> OrderDetailRead:
        """
        Provider status change, validated against the state machine:

          PENDING          -> CONFIRMED, CANCELLED
          CONFIRMED        -> PREPARING, CANCELLED
          PREPARING        -> OUT_FOR_DELIVERY, CANCELLED
          READY_FOR_PICKUP -> OUT_FOR_DELIVERY, CANCELLED
          OUT_FOR_DELIVERY -> DELIVERED
          DELIVERED        -> (terminal)
          CANCELLED        -> (terminal)

        Any invalid transition raises 409. Cancelling requires a note.
        """
        note = (payload.note or "").strip() or None
        if payload.status == OrderStatus.CANCELLED and note is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="A reason is required to cancel an order",
            )

        order = self._get_owned(session, order_id, provider_id=provider_id)
        order = self._transition(session, order, payload.status, Role.PROVIDER, note=note)
        return self._build_detail(session, order)

    # -------- Admin operations --------

    def get_order_admin(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> OrderDetailRead:
        order = self._get_owned(session, order_id)
        return self._build_detail(session, order)

    # -------- Helpers --------

    def _get_owned(
        self,
        session: Session,
        order_id: uuid.UUID,
        customer_id: uuid.UUID | None = None,
        provider_id: uuid.UUID | None = None,
    ) -> Order:
        """
        Load an order visible to the caller.

        Someone else's order is reported as missing, not forbidden.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if (
            order is None
            or (customer_id is not None and order.customer_id != customer_id)
            or (provider_id is not None and order.provider_id != provider_id)
        ):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    def _next_timestamp(self, order: Order) -> datetime:
        """Now, nudged forward so updated_at and history strictly increase."""
        now = utcnow()
        previous = as_utc(order.updated_at)
        if previous is not None and now <= previous:
            now = previous + timedelta(microseconds=1)
        return now

    def _transition(
        self,
        session: Session,
        order: Order,
        target: OrderStatus,
        role: Role,
        note: str | None = None,
    ) -> Order:
        current = OrderStatus(order.status)
        try:
            ensure_transition(current, target, role, self.cancel_window)
        except InvalidTransition as e:
            logger.info("Rejected transition on order %s: %s", order.id, e)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=str(e),
            )

        now = self._next_timestamp(order)
        order.status = target
        order.updated_at = now

        if target == OrderStatus.CONFIRMED:
            order.estimated_delivery_time = now + timedelta(
                minutes=self.estimated_delivery_minutes
            )
        elif target == OrderStatus.DELIVERED:
            order.actual_delivery_time = now
            if order.payment_method == PaymentMethod.CASH_ON_DELIVERY:
                order.payment_status = PaymentStatus.PAID
        elif target == OrderStatus.CANCELLED:
            order.cancellation_reason = note

        self.order_repo.update_order(session, order)
        self.order_repo.append_history(
            session,
            OrderStatusHistory(
                order_id=order.id,
                status=target,
                note=note,
                created_at=now,
            ),
        )
        session.commit()
        session.refresh(order)

        logger.info(
            "Order %s moved %s -> %s by %s",
            order.id,
            current.value,
            target.value,
            role.value.lower(),
        )
        return order

    def _build_detail(self, session: Session, order: Order) -> OrderDetailRead:
        """
        Compose OrderDetailRead from ORM rows, including line totals and
        the status history (oldest first).
        """
        items = self.order_repo.list_items_for_order(session, order.id)
        history = self.order_repo.list_history_for_order(session, order.id)

        base = OrderRead.model_validate(order)
        return OrderDetailRead(
            **base.model_dump(),
            order_items=tuple(
                OrderItemRead(
                    id=it.id,
                    meal_id=it.meal_id,
                    quantity=it.quantity,
                    price_at_order=it.price_at_order,
                    line_total=round(it.quantity * it.price_at_order, 2),
                )
                for it in items
            ),
            status_history=tuple(
                StatusHistoryRead.model_validate(h) for h in history
            ),
        )
