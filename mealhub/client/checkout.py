# mealhub/client/checkout.py
"""Checkout: turn the cart into an order and open its tracker."""
import logging

import httpx
import pydantic

from mealhub.client.api import OrdersApi
from mealhub.client.context import CartItem, ClientContext
from mealhub.client.errors import ApiError, ValidationError, classify
from mealhub.client.session import CustomerOrderSession
from mealhub.schemas.order import OrderCreate, OrderItemCreate

logger = logging.getLogger(__name__)


def validate_checkout(
    cart: list[CartItem],
    delivery_address: str,
    contact_phone: str,
    order_notes: str | None = None,
) -> OrderCreate:
    """
    Build the checkout payload, refusing it before any request is made.

    Raises:
        ValidationError: empty cart, mixed providers, empty address or a
            phone number below the minimum length.
    """
    if not cart:
        raise ValidationError("Your cart is empty")

    providers = {item.provider_id for item in cart}
    if len(providers) > 1:
        raise ValidationError("All items must come from the same restaurant")

    try:
        return OrderCreate(
            provider_id=cart[0].provider_id,
            items=[
                OrderItemCreate(
                    meal_id=item.meal_id,
                    quantity=item.quantity,
                    price_at_order=item.price,
                )
                for item in cart
            ],
            delivery_address=delivery_address,
            contact_phone=contact_phone,
            order_notes=order_notes,
        )
    except pydantic.ValidationError as e:
        messages = "; ".join(err["msg"] for err in e.errors())
        raise ValidationError(messages)


async def place_order(
    api: OrdersApi,
    context: ClientContext,
    delivery_address: str,
    contact_phone: str,
    order_notes: str | None = None,
    **session_kwargs,
) -> CustomerOrderSession:
    """
    Place the cart as an order and open its detail view in just-placed
    mode (success banner, Load and Poll already running).

    The cart is cleared only after the server accepted the order. The
    caller owns the returned session and must close it.
    """
    payload = validate_checkout(context.cart, delivery_address, contact_phone, order_notes)
    try:
        order = await api.place_order(payload)
    except (httpx.HTTPError, ApiError) as e:
        error = classify(e)
        logger.error("Checkout failed: %s", error.message)
        raise error

    context.clear_cart()
    logger.info("Order %s placed", order.id)

    session = CustomerOrderSession(api, order.id, just_placed=True, **session_kwargs)
    return await session.open()
