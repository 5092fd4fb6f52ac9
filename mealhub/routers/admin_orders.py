# mealhub/routers/admin_orders.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from mealhub.core.auth import require_admin
from mealhub.database import get_session
from mealhub.routers.deps import ListParams, service
from mealhub.schemas.common import ApiResponse, PaginatedResponse
from mealhub.schemas.order import OrderDetailRead, OrderRead

router = APIRouter(prefix="/admin/orders", tags=["Admin Orders"])


@router.get(
    "",
    response_model=PaginatedResponse[OrderRead],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    params: ListParams = Depends(),
    session: Session = Depends(get_session),
):
    """
    List all orders (admin only, read-only).
    """
    orders, pagination = service.list_orders(
        session,
        order_status=params.status,
        page=params.page,
        limit=params.limit,
    )
    return PaginatedResponse(success=True, data=orders, pagination=pagination)


@router.get(
    "/{order_id}",
    response_model=ApiResponse[OrderDetailRead],
    dependencies=[Depends(require_admin)],
)
def get_order_admin(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get any order with items and history (admin only).
    """
    return ApiResponse(success=True, data=service.get_order_admin(session, order_id))
