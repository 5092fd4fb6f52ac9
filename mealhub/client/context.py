# mealhub/client/context.py
"""
Client session context: auth token, signed-in user and cart.

Constructed explicitly and handed to whatever needs it. `hydrate` restores
it from a JSON file, `logout` clears it; every change is persisted.
"""
import logging
import uuid
from pathlib import Path

from pydantic import BaseModel, Field

from mealhub.client.api import OrdersApi
from mealhub.domain.status import Role

logger = logging.getLogger(__name__)


class ClientUser(BaseModel):
    id: uuid.UUID
    email: str
    name: str
    role: Role


class CartItem(BaseModel):
    meal_id: uuid.UUID
    provider_id: uuid.UUID
    name: str
    price: float = Field(ge=0)
    quantity: int = Field(default=1, ge=1)


class ClientState(BaseModel):
    token: str | None = None
    user: ClientUser | None = None
    cart: list[CartItem] = []


class ClientContext:
    def __init__(self, path: Path | str | None = None, state: ClientState | None = None):
        self.path = Path(path) if path is not None else None
        self.state = state or ClientState()

    @classmethod
    def hydrate(cls, path: Path | str) -> "ClientContext":
        """Restore from `path`; a missing or unreadable file starts empty."""
        path = Path(path)
        state = ClientState()
        if path.exists():
            try:
                state = ClientState.model_validate_json(path.read_text(encoding="utf-8"))
            except ValueError as e:
                logger.warning("Ignoring unreadable client state at %s: %s", path, e)
        return cls(path, state)

    def persist(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self.state.model_dump_json(), encoding="utf-8")

    # -------- Auth --------

    @property
    def token(self) -> str | None:
        return self.state.token

    @property
    def user(self) -> ClientUser | None:
        return self.state.user

    @property
    def is_authenticated(self) -> bool:
        return self.state.token is not None and self.state.user is not None

    def set_auth(self, user: ClientUser, token: str) -> None:
        self.state.user = user
        self.state.token = token
        self.persist()

    def logout(self) -> None:
        """Clear token, user and cart."""
        self.state = ClientState()
        self.persist()

    def api(self, base_url: str | None = None, **kwargs) -> OrdersApi:
        """OrdersApi that sends this context's token and logs out on 401."""
        return OrdersApi(
            base_url,
            token_provider=lambda: self.state.token,
            on_unauthorized=self.logout,
            **kwargs,
        )

    # -------- Cart --------

    @property
    def cart(self) -> list[CartItem]:
        return self.state.cart

    def add_item(self, item: CartItem) -> None:
        """
        Add one unit of a meal.

        A cart holds meals from a single provider; adding from another
        provider starts a new cart.
        """
        cart = self.state.cart
        for existing in cart:
            if existing.meal_id == item.meal_id:
                existing.quantity += 1
                self.persist()
                return

        if cart and cart[0].provider_id != item.provider_id:
            self.state.cart = [item.model_copy(update={"quantity": 1})]
        else:
            cart.append(item.model_copy(update={"quantity": 1}))
        self.persist()

    def remove_item(self, meal_id: uuid.UUID) -> None:
        self.state.cart = [i for i in self.state.cart if i.meal_id != meal_id]
        self.persist()

    def update_quantity(self, meal_id: uuid.UUID, quantity: int) -> None:
        if quantity <= 0:
            self.remove_item(meal_id)
            return
        for item in self.state.cart:
            if item.meal_id == meal_id:
                item.quantity = quantity
        self.persist()

    def clear_cart(self) -> None:
        self.state.cart = []
        self.persist()

    def total(self) -> float:
        return round(sum(i.price * i.quantity for i in self.state.cart), 2)

    def item_count(self) -> int:
        return sum(i.quantity for i in self.state.cart)
