# mealhub/repositories/order_repo.py
import uuid

from sqlalchemy import func
from sqlmodel import Session, select

from mealhub.domain.status import OrderStatus
from mealhub.models.order import Order, OrderItem, OrderStatusHistory


class OrderRepository:
    """
    Data access layer for orders, order_items and order_status_history.

    NOTE:
      - No commits here; every status change is a multi-row write.
        The service is responsible for calling session.commit().
    """

    # ---- Orders ----

    def _filtered(
        self,
        customer_id: uuid.UUID | None = None,
        provider_id: uuid.UUID | None = None,
        status: OrderStatus | None = None,
    ):
        conditions = []
        if customer_id is not None:
            conditions.append(Order.customer_id == customer_id)
        if provider_id is not None:
            conditions.append(Order.provider_id == provider_id)
        if status is not None:
            conditions.append(Order.status == status)
        return conditions

    def list_orders(
        self,
        session: Session,
        *,
        customer_id: uuid.UUID | None = None,
        provider_id: uuid.UUID | None = None,
        status: OrderStatus | None = None,
        skip: int = 0,
        limit: int = 10,
    ) -> list[Order]:
        """Newest first, optionally scoped to a customer / provider / status."""
        stmt = (
            select(Order)
            .where(*self._filtered(customer_id, provider_id, status))
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def count_orders(
        self,
        session: Session,
        *,
        customer_id: uuid.UUID | None = None,
        provider_id: uuid.UUID | None = None,
        status: OrderStatus | None = None,
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(Order)
            .where(*self._filtered(customer_id, provider_id, status))
        )
        return session.exec(stmt).one()

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        session.refresh(order)
        return order

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.created_at)
        )
        return list(session.exec(stmt).all())

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items

    # ---- Status history (append-only) ----

    def list_history_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderStatusHistory]:
        stmt = (
            select(OrderStatusHistory)
            .where(OrderStatusHistory.order_id == order_id)
            .order_by(OrderStatusHistory.created_at)
        )
        return list(session.exec(stmt).all())

    def append_history(
        self,
        session: Session,
        entry: OrderStatusHistory,
    ) -> OrderStatusHistory:
        session.add(entry)
        session.flush()
        return entry
