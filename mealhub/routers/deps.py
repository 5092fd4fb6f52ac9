# mealhub/routers/deps.py
from fastapi import Query

from mealhub.core.config import get_settings
from mealhub.domain.status import OrderStatus
from mealhub.repositories.order_repo import OrderRepository
from mealhub.services.order_service import OrderService

settings = get_settings()

order_repo = OrderRepository()
service = OrderService(
    order_repo,
    cancel_window=settings.CUSTOMER_CANCEL_WINDOW,
    estimated_delivery_minutes=settings.ESTIMATED_DELIVERY_MINUTES,
)


class ListParams:
    """Shared `page` / `limit` / `status` query parameters for list endpoints."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
        status: OrderStatus | None = None,
    ):
        self.page = page
        self.limit = limit
        self.status = status
