"""
Table-side ordering routes
"""

from fastapi import APIRouter, Depends, Request

from app.api.deps import get_order_service
from app.schemas.order import OrderCreate
from app.services.notification_service import notification_service
from app.services.order_service import OrderService
from app.utils.responses import success_response, rate_limit_error
from app.utils.security import RATE_WINDOW_SECONDS, order_rate_key, rate_limit_check

router = APIRouter()

@router.post("/{number}/orders")
async def place_order(
    number: int,
    order_data: OrderCreate,
    request: Request,
    orders: OrderService = Depends(get_order_service)
):
    """Send an order request from a table to the backoffice"""
    if not rate_limit_check(order_rate_key(request, number)):
        rate_limit_error(RATE_WINDOW_SECONDS)

    order = orders.place_order(number, order_data)
    await notification_service.order_created(order)

    return success_response(
        message="Order sent, waiting for confirmation",
        data={**order.model_dump(), "total": order.total},
        status_code=201
    )
