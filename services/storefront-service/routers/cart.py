"""Cart API router."""
from typing import List

from fastapi import APIRouter, Depends

from dependencies import get_cart_service, get_session_id
from schemas import AddToCartRequest, CartItemResponse, SuccessResponse, UpdateCartItemRequest
from services.cart_service import CartService

router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.get("", response_model=List[CartItemResponse])
def get_cart(
    session_id: str = Depends(get_session_id),
    cart_service: CartService = Depends(get_cart_service)
):
    """Get the session's cart with live product data."""
    return [CartItemResponse.from_line(line) for line in cart_service.list_for_session(session_id)]


@router.post("", response_model=CartItemResponse)
def add_to_cart(
    request: AddToCartRequest,
    session_id: str = Depends(get_session_id),
    cart_service: CartService = Depends(get_cart_service)
):
    """Add a product to the cart, merging with an existing line."""
    line = cart_service.add_to_cart(
        session_id=session_id,
        product_id=request.product_id,
        quantity=request.quantity
    )
    return CartItemResponse.from_line(line)


@router.patch("/{item_id}", response_model=CartItemResponse)
def update_cart_item(
    item_id: str,
    request: UpdateCartItemRequest,
    session_id: str = Depends(get_session_id),
    cart_service: CartService = Depends(get_cart_service)
):
    """Set the quantity of one of the session's cart items."""
    line = cart_service.update_quantity(session_id, item_id, request.quantity)
    return CartItemResponse.from_line(line)


@router.delete("/{item_id}", response_model=SuccessResponse)
def remove_cart_item(
    item_id: str,
    session_id: str = Depends(get_session_id),
    cart_service: CartService = Depends(get_cart_service)
):
    """Remove one of the session's cart items."""
    cart_service.remove_item(session_id, item_id)
    return SuccessResponse()
