"""Cart management service."""
import logging
from typing import List

from opentelemetry import trace

from config import MAX_CART_LINES, MAX_ITEM_QUANTITY
from entities import CartItem, CartLine
from errors import (
    CartLineLimitExceededError,
    NotFoundError,
    OutOfStockError,
    QuantityLimitExceededError,
    ValidationError,
)
from monitoring import cart_additions_counter, cart_rejections_counter
from services.catalog_service import CatalogService
from storage.base import StorageBackend

logger = logging.getLogger(__name__)


def _check_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or not 1 <= quantity <= MAX_ITEM_QUANTITY:
        raise ValidationError(
            f"Quantity must be an integer between 1 and {MAX_ITEM_QUANTITY}",
            fields=["quantity"]
        )


class CartService:
    """
    Session-scoped shopping carts.

    A line item is only visible to the session that created it. Foreign item ids
    are reported exactly like missing ones.
    """

    def __init__(self, storage: StorageBackend, catalog: CatalogService):
        self.storage = storage
        self.catalog = catalog

    def add_to_cart(self, session_id: str, product_id: str, quantity: int) -> CartLine:
        """
        Add ``quantity`` of a product, merging with an existing line item.

        Raises:
            ValidationError: If quantity is outside 1..99
            NotFoundError: If the product does not exist
            OutOfStockError: If the product is flagged out of stock
            QuantityLimitExceededError: If the merged quantity would exceed 99;
                the stored quantity is left unchanged
            CartLineLimitExceededError: If the product is new to a cart that already
                holds MAX_CART_LINES distinct products
        """
        _check_quantity(quantity)

        span = trace.get_current_span()
        span.set_attribute("product.id", product_id)
        span.set_attribute("quantity", quantity)

        product = self.catalog.find_product(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        if not product.in_stock:
            cart_rejections_counter.add(1, {"reason": "out_of_stock"})
            raise OutOfStockError("Product is out of stock")

        lines = self.storage.list_cart_items(session_id)
        if len(lines) >= MAX_CART_LINES and all(line.product_id != product_id for line in lines):
            cart_rejections_counter.add(1, {"reason": "cart_line_limit"})
            raise CartLineLimitExceededError(
                f"Cart cannot hold more than {MAX_CART_LINES} different products"
            )

        try:
            item = self.storage.add_cart_quantity(
                session_id=session_id,
                product_id=product_id,
                quantity=quantity,
                max_quantity=MAX_ITEM_QUANTITY
            )
        except QuantityLimitExceededError:
            cart_rejections_counter.add(1, {"reason": "quantity_limit"})
            logger.info("Rejected add to cart over quantity limit", extra={
                "session_id": session_id,
                "product_id": product_id,
                "quantity": quantity
            })
            raise

        cart_additions_counter.add(1, {"category": product.category})
        logger.info("Added product to cart", extra={
            "session_id": session_id,
            "product_id": product_id,
            "product_name": product.name,
            "quantity": quantity,
            "line_quantity": item.quantity
        })
        return CartLine(item=item, product=product)

    def _owned_item(self, session_id: str, item_id: str) -> CartItem:
        item = self.storage.get_cart_item(item_id)
        if item is None or item.session_id != session_id:
            raise NotFoundError("Cart item not found")
        return item

    def _join(self, item: CartItem) -> CartLine:
        return CartLine(item=item, product=self.catalog.find_product(item.product_id))

    def update_quantity(self, session_id: str, item_id: str, quantity: int) -> CartLine:
        """
        Overwrite the quantity of one of the session's line items.

        Raises:
            ValidationError: If quantity is outside 1..99
            NotFoundError: If the item is missing or belongs to another session
        """
        _check_quantity(quantity)
        self._owned_item(session_id, item_id)

        item = self.storage.set_cart_item_quantity(item_id, quantity)
        if item is None:
            raise NotFoundError("Cart item not found")

        logger.info("Updated cart item quantity", extra={
            "session_id": session_id,
            "cart_item_id": item_id,
            "quantity": quantity
        })
        return self._join(item)

    def remove_item(self, session_id: str, item_id: str) -> None:
        """
        Delete one of the session's line items.

        Raises:
            NotFoundError: If the item is missing or belongs to another session
        """
        self._owned_item(session_id, item_id)
        if not self.storage.delete_cart_item(item_id):
            raise NotFoundError("Cart item not found")

        logger.info("Removed cart item", extra={
            "session_id": session_id,
            "cart_item_id": item_id
        })

    def list_for_session(self, session_id: str) -> List[CartLine]:
        """
        Return the session's line items joined with live catalog data.

        An item whose product has since been deleted is returned with
        ``product=None`` so the shopper can still remove it; checkout rejects it.
        """
        lines = []
        for item in self.storage.list_cart_items(session_id):
            product = self.catalog.find_product(item.product_id)
            if product is None:
                logger.warning("Cart item references missing product", extra={
                    "session_id": session_id,
                    "cart_item_id": item.id,
                    "product_id": item.product_id
                })
            lines.append(CartLine(item=item, product=product))
        return lines

    def clear(self, session_id: str) -> int:
        """Delete every line item of the session. Safe to repeat."""
        removed = self.storage.clear_cart(session_id)
        logger.info("Cleared cart", extra={"session_id": session_id, "removed": removed})
        return removed
