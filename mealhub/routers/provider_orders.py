# mealhub/routers/provider_orders.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from mealhub.core.auth import require_provider
from mealhub.database import get_session
from mealhub.models.user import User
from mealhub.routers.deps import ListParams, service
from mealhub.schemas.common import ApiResponse, PaginatedResponse
from mealhub.schemas.order import OrderDetailRead, OrderRead, OrderStatusUpdate

router = APIRouter(prefix="/provider/orders", tags=["Provider Orders"])


@router.get(
    "",
    response_model=PaginatedResponse[OrderRead],
)
def list_provider_orders(
    params: ListParams = Depends(),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_provider),
):
    """
    Orders addressed to the current provider, filterable by `status`.
    """
    orders, pagination = service.list_orders(
        session,
        provider_id=current_user.id,
        order_status=params.status,
        page=params.page,
        limit=params.limit,
    )
    return PaginatedResponse(success=True, data=orders, pagination=pagination)


@router.get(
    "/{order_id}",
    response_model=ApiResponse[OrderDetailRead],
)
def get_provider_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_provider),
):
    order = service.get_provider_order(session, current_user.id, order_id)
    return ApiResponse(success=True, data=order)


@router.patch(
    "/{order_id}/status",
    response_model=ApiResponse[OrderDetailRead],
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_provider),
):
    """
    Advance (or cancel) an order addressed to the current provider.

      PENDING          -> CONFIRMED, CANCELLED

      CONFIRMED        -> PREPARING, CANCELLED

      PREPARING        -> OUT_FOR_DELIVERY, CANCELLED

      OUT_FOR_DELIVERY -> DELIVERED

    DELIVERED and CANCELLED accept nothing.
    """
    order = service.update_status(session, current_user.id, order_id, payload)
    return ApiResponse(success=True, data=order, message="Order status updated")
