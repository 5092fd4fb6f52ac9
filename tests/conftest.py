import os

# Settings are read once at import time; configure before importing mealhub.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("CUSTOMER_CANCEL_WINDOW", "PENDING_OR_CONFIRMED")

import uuid

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import SQLModel

from mealhub.client.api import OrdersApi
from mealhub.database import engine
from mealhub.domain.status import Role
from mealhub.main import app


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def fresh_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


def make_token(user_id: uuid.UUID, role: Role, email: str | None = None) -> str:
    return jwt.encode(
        {
            "sub": str(user_id),
            "email": email or f"{role.value.lower()}-{user_id.hex[:8]}@example.com",
            "role": role.value,
        },
        "test-secret",
        algorithm="HS256",
    )


class Principal:
    def __init__(self, role: Role):
        self.id = uuid.uuid4()
        self.role = role
        self.token = make_token(self.id, role)

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture
def customer() -> Principal:
    return Principal(Role.CUSTOMER)


@pytest.fixture
def other_customer() -> Principal:
    return Principal(Role.CUSTOMER)


@pytest.fixture
def provider() -> Principal:
    return Principal(Role.PROVIDER)


@pytest.fixture
def other_provider() -> Principal:
    return Principal(Role.PROVIDER)


@pytest.fixture
def admin() -> Principal:
    return Principal(Role.ADMIN)


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def order_payload(provider_id: uuid.UUID, **overrides) -> dict:
    payload = {
        "providerId": str(provider_id),
        "items": [
            {"mealId": str(uuid.uuid4()), "quantity": 2, "priceAtOrder": 8.00},
            {"mealId": str(uuid.uuid4()), "quantity": 1, "priceAtOrder": 5.50},
        ],
        "deliveryAddress": "12 Market Street",
        "contactPhone": "0123456789",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def place_order(client, customer, provider):
    """Place an order as `customer` addressed to `provider`; returns its JSON."""

    def _place(**overrides) -> dict:
        response = client.post(
            "/api/orders",
            json=order_payload(provider.id, **overrides),
            headers=customer.headers,
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _place


@pytest.fixture
def asgi_api():
    """OrdersApi bound to the in-process app for a given principal."""
    def _make(principal: Principal, **kwargs) -> OrdersApi:
        api = OrdersApi(
            "http://testserver/api",
            token_provider=lambda: principal.token,
            transport=httpx.ASGITransport(app=app),
            **kwargs,
        )
        return api

    return _make
