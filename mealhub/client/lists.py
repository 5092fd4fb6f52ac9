# mealhub/client/lists.py
"""Order list controllers. Lists load on demand and never poll."""
import logging

import httpx

from mealhub.client.api import OrdersApi
from mealhub.client.errors import ApiError, OrderClientError, classify
from mealhub.domain.status import OrderStatus, Role
from mealhub.schemas.common import Pagination
from mealhub.schemas.order import OrderRead

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


class OrderListController:
    """
    Paginated order list for one role (customer history, provider queue,
    admin overview), optionally filtered by status.

    Lists do not poll; they reload on page or filter changes.
    """

    def __init__(
        self,
        api: OrdersApi,
        role: Role,
        limit: int = DEFAULT_PAGE_SIZE,
        status: OrderStatus | None = None,
    ):
        self.api = api
        self.role = role
        self.status = status
        self.orders: list[OrderRead] = []
        self.pagination = Pagination(page=1, limit=limit, total=0, total_pages=0)
        self.loading = False
        self.error: OrderClientError | None = None

    @property
    def empty(self) -> bool:
        return not self.loading and self.error is None and not self.orders

    async def load(self, page: int = 1) -> list[OrderRead]:
        self.loading = True
        self.error = None
        try:
            orders, pagination = await self.api.list_orders(
                self.role,
                page=max(page, 1),
                limit=self.pagination.limit,
                status=self.status,
            )
        except (httpx.HTTPError, ApiError) as e:
            self.error = classify(e)
            logger.error("Failed to fetch %s orders: %s", self.role.value.lower(), self.error.message)
            return self.orders
        finally:
            self.loading = False

        self.orders = orders
        self.pagination = pagination
        return self.orders

    async def set_status_filter(self, status: OrderStatus | None) -> list[OrderRead]:
        """Change the filter and go back to the first page."""
        self.status = status
        return await self.load(1)

    async def next_page(self) -> list[OrderRead]:
        if self.pagination.page >= self.pagination.total_pages:
            return self.orders
        return await self.load(self.pagination.page + 1)

    async def previous_page(self) -> list[OrderRead]:
        if self.pagination.page <= 1:
            return self.orders
        return await self.load(self.pagination.page - 1)
