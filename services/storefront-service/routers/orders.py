"""Orders API router."""
from typing import List

from fastapi import APIRouter, Depends

from dependencies import get_order_service, get_session_id
from schemas import OrderResponse, PlaceOrderRequest
from services.order_service import OrderService

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", response_model=OrderResponse)
def place_order(
    request: PlaceOrderRequest,
    session_id: str = Depends(get_session_id),
    order_service: OrderService = Depends(get_order_service)
):
    """Place an order from the session's cart and empty the cart."""
    order = order_service.place_order(session_id, request)
    return OrderResponse.from_order(order)


@router.get("", response_model=List[OrderResponse])
def get_orders(
    session_id: str = Depends(get_session_id),
    order_service: OrderService = Depends(get_order_service)
):
    """List the session's orders, newest first."""
    return [OrderResponse.from_order(order) for order in order_service.list_orders(session_id)]
