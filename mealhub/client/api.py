# mealhub/client/api.py
"""
Async HTTP client for the order endpoints.

Speaks the JSON envelope `{success, data?, error?, message?, pagination?}`
and raises `ApiError` for anything that is not a success. It does not
classify failures; session controllers do that via `errors.classify`.
"""
import logging
import uuid
from typing import Any, Callable

import httpx
import pydantic

from mealhub.client.errors import INVALID_RESPONSE, ApiError
from mealhub.core.config import get_settings
from mealhub.domain.status import OrderStatus, Role
from mealhub.schemas.common import Pagination
from mealhub.schemas.order import OrderCreate, OrderDetailRead, OrderRead

logger = logging.getLogger(__name__)

MALFORMED_MESSAGE = "Unexpected response from the server"

# Role -> path prefix of the order endpoints it reads from
ORDER_PATHS: dict[Role, str] = {
    Role.CUSTOMER: "/orders",
    Role.PROVIDER: "/provider/orders",
    Role.ADMIN: "/admin/orders",
}


def _malformed() -> ApiError:
    # A 2xx whose body is not a usable envelope is reported as a bad gateway.
    return ApiError(502, INVALID_RESPONSE, MALFORMED_MESSAGE)


class OrdersApi:
    """
    Thin async wrapper over httpx.AsyncClient.

    Args:
        base_url: API origin incl. prefix, defaults to settings.API_BASE_URL
        token_provider: returns the current bearer token (or None)
        on_unauthorized: called on any 401, e.g. ClientContext.logout
        timeout: per-request timeout in seconds (None = transport default)
        transport: custom httpx transport (tests, ASGI)
    """

    def __init__(
        self,
        base_url: str | None = None,
        token_provider: Callable[[], str | None] | None = None,
        on_unauthorized: Callable[[], None] | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.token_provider = token_provider or (lambda: None)
        self.on_unauthorized = on_unauthorized
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> "OrdersApi":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # -------- Low-level --------

    async def _request(self, method: str, url: str, **kwargs) -> dict[str, Any]:
        headers = {}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        response = await self._client.request(method, url, headers=headers, **kwargs)

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            if response.is_success:
                raise _malformed()
            body = {}

        if response.status_code == 401 and self.on_unauthorized is not None:
            self.on_unauthorized()

        if response.is_error or not body.get("success", False):
            message = (
                body.get("message")
                or body.get("error")
                or response.reason_phrase
                or "Request failed"
            )
            raise ApiError(response.status_code, body.get("error"), message)

        return body

    @staticmethod
    def _parse(model, data: Any):
        try:
            return model.model_validate(data)
        except pydantic.ValidationError as e:
            logger.warning("Malformed %s in response: %s", model.__name__, e)
            raise _malformed()

    def _order(self, body: dict[str, Any]) -> OrderDetailRead:
        return self._parse(OrderDetailRead, body.get("data"))

    # -------- Orders --------

    async def get_order(self, role: Role, order_id: uuid.UUID | str) -> OrderDetailRead:
        body = await self._request("GET", f"{ORDER_PATHS[role]}/{order_id}")
        return self._order(body)

    async def list_orders(
        self,
        role: Role,
        page: int = 1,
        limit: int = 10,
        status: OrderStatus | None = None,
    ) -> tuple[list[OrderRead], Pagination]:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if status is not None:
            params["status"] = status.value
        body = await self._request("GET", ORDER_PATHS[role], params=params)

        data = body.get("data")
        if data is None:
            data = []
        if not isinstance(data, list):
            raise _malformed()
        orders = [self._parse(OrderRead, o) for o in data]
        pagination = body.get("pagination")
        if pagination is None:
            pagination = {
                "page": page,
                "limit": limit,
                "total": len(orders),
                "totalPages": 1 if orders else 0,
            }
        return orders, self._parse(Pagination, pagination)

    async def place_order(self, payload: OrderCreate) -> OrderDetailRead:
        body = await self._request(
            "POST",
            ORDER_PATHS[Role.CUSTOMER],
            json=payload.model_dump(mode="json", by_alias=True),
        )
        return self._order(body)

    async def cancel_order(self, order_id: uuid.UUID | str, reason: str) -> OrderDetailRead:
        body = await self._request(
            "PATCH",
            f"{ORDER_PATHS[Role.CUSTOMER]}/{order_id}/cancel",
            json={"reason": reason},
        )
        return self._order(body)

    async def update_status(
        self,
        order_id: uuid.UUID | str,
        status: OrderStatus,
        note: str | None = None,
    ) -> OrderDetailRead:
        payload: dict[str, Any] = {"status": status.value}
        if note is not None:
            payload["note"] = note
        body = await self._request(
            "PATCH",
            f"{ORDER_PATHS[Role.PROVIDER]}/{order_id}/status",
            json=payload,
        )
        return self._order(body)
