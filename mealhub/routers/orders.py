# mealhub/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from mealhub.core.auth import require_customer
from mealhub.database import get_session
from mealhub.models.user import User
from mealhub.routers.deps import ListParams, service
from mealhub.schemas.common import ApiResponse, PaginatedResponse
from mealhub.schemas.order import (
    OrderCancel,
    OrderCreate,
    OrderDetailRead,
    OrderRead,
)

router = APIRouter(prefix="/orders", tags=["Orders"])


# -------- Customer endpoints --------


@router.post(
    "",
    response_model=ApiResponse[OrderDetailRead],
    status_code=status.HTTP_201_CREATED,
)
def place_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """
    Place an order (checkout).

    Auth:
      - Only CUSTOMER can place orders.
    """
    order = service.create_order(session, current_user, payload)
    return ApiResponse(success=True, data=order, message="Order placed")


@router.get(
    "",
    response_model=PaginatedResponse[OrderRead],
)
def list_my_orders(
    params: ListParams = Depends(),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """
    List the authenticated customer's orders (newest first, paginated).
    """
    orders, pagination = service.list_orders(
        session,
        customer_id=current_user.id,
        order_status=params.status,
        page=params.page,
        limit=params.limit,
    )
    return PaginatedResponse(success=True, data=orders, pagination=pagination)


@router.get(
    "/{order_id}",
    response_model=ApiResponse[OrderDetailRead],
)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """
    Get a single order (items + status history) owned by the current customer.
    """
    order = service.get_customer_order(session, current_user.id, order_id)
    return ApiResponse(success=True, data=order)


@router.patch(
    "/{order_id}/cancel",
    response_model=ApiResponse[OrderDetailRead],
)
def cancel_my_order(
    order_id: uuid.UUID,
    payload: OrderCancel,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """
    Cancel one of the customer's orders.

    Only while the order is inside the cancel window; 409 otherwise.
    """
    order = service.cancel_order(session, current_user.id, order_id, payload)
    return ApiResponse(success=True, data=order, message="Order cancelled")
