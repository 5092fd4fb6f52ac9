import uuid

import httpx
import pytest

from mealhub.client.api import OrdersApi
from mealhub.client.checkout import place_order
from mealhub.client.context import CartItem, ClientContext
from mealhub.client.errors import (
    INVALID_RESPONSE,
    ApiError,
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    TransientError,
    ValidationError,
    classify,
)
from mealhub.domain.status import Role

REQUEST = httpx.Request("GET", "http://api.test/api/orders")


@pytest.mark.parametrize(
    "exc, expected",
    [
        (httpx.ConnectError("refused", request=REQUEST), TransientError),
        (httpx.ReadTimeout("slow", request=REQUEST), TransientError),
        (httpx.DecodingError("bad gzip", request=REQUEST), TransientError),
        (httpx.TooManyRedirects("loop", request=REQUEST), TransientError),
        (ApiError(401, "UNAUTHORIZED", "Authentication required"), AuthorizationError),
        (ApiError(403, "FORBIDDEN", "Forbidden"), AuthorizationError),
        (ApiError(404, "NOT_FOUND", "Order not found"), NotFoundError),
        (ApiError(409, "INVALID_TRANSITION", "Cannot cancel"), InvalidTransitionError),
        (ApiError(422, "VALIDATION_ERROR", "Bad phone"), ValidationError),
        (ApiError(429, None, "Slow down"), TransientError),
        (ApiError(502, INVALID_RESPONSE, "Unexpected response"), TransientError),
    ],
)
def test_classify(exc, expected):
    error = classify(exc)
    assert type(error) is expected
    assert error.retryable == (expected is TransientError)


def test_classify_passes_classified_errors_through():
    error = NotFoundError("gone", status_code=404)
    assert classify(error) is error


def test_classify_reraises_programming_errors():
    with pytest.raises(KeyError):
        classify(KeyError("data"))


def api_returning(*bodies) -> OrdersApi:
    responses = list(bodies)

    def handler(request: httpx.Request) -> httpx.Response:
        body = responses.pop(0)
        if isinstance(body, bytes):
            return httpx.Response(200, content=body)
        return httpx.Response(200, json=body)

    return OrdersApi("http://api.test/api", transport=httpx.MockTransport(handler))


@pytest.mark.anyio
@pytest.mark.parametrize(
    "body",
    [
        {"success": True},
        {"success": True, "data": {"status": "PENDING"}},
        b"not json",
        [1, 2, 3],
    ],
)
async def test_malformed_order_response_is_invalid(body):
    async with api_returning(body) as api:
        with pytest.raises(ApiError) as exc_info:
            await api.get_order(Role.CUSTOMER, uuid.uuid4())

    assert exc_info.value.code == INVALID_RESPONSE
    assert isinstance(classify(exc_info.value), TransientError)


@pytest.mark.anyio
async def test_malformed_list_response_is_invalid():
    async with api_returning({"success": True, "data": {"not": "a list"}}) as api:
        with pytest.raises(ApiError) as exc_info:
            await api.list_orders(Role.CUSTOMER)
    assert exc_info.value.code == INVALID_RESPONSE


@pytest.mark.anyio
async def test_checkout_keeps_cart_when_response_is_malformed():
    context = ClientContext()
    context.add_item(
        CartItem(meal_id=uuid.uuid4(), provider_id=uuid.uuid4(), name="Soup", price=6.0)
    )

    async with api_returning({"success": True}) as api:
        with pytest.raises(TransientError):
            await place_order(api, context, "12 Market Street", "0123456789")

    assert context.item_count() == 1
