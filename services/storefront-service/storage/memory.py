"""In-memory storage backend."""
import logging
import threading
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

from entities import CartItem, Order, Product, new_id
from errors import CartChangedError, QuantityLimitExceededError
from storage.base import StorageBackend

logger = logging.getLogger(__name__)


class MemoryStorage(StorageBackend):
    """
    Dictionary-backed storage for development and tests.

    Records are immutable dataclasses, so returning them directly never exposes
    mutable state. A single re-entrant lock serialises every mutation, which makes
    the cart merge and order placement atomic.
    """

    name = "memory"

    def __init__(self):
        self._lock = threading.RLock()
        self._products: Dict[str, Product] = {}
        self._cart_items: Dict[str, CartItem] = {}
        self._orders: Dict[str, Order] = {}

    def list_products(self) -> List[Product]:
        with self._lock:
            return list(self._products.values())

    def get_product(self, product_id: str) -> Optional[Product]:
        with self._lock:
            return self._products.get(product_id)

    def create_product(self, product: Product) -> Product:
        with self._lock:
            self._products[product.id] = product
        return product

    def update_product(self, product_id: str, changes: Dict[str, Any]) -> Optional[Product]:
        changes = {k: v for k, v in changes.items() if k != "id"}
        with self._lock:
            product = self._products.get(product_id)
            if product is None:
                return None
            updated = replace(product, **changes)
            self._products[product_id] = updated
            return updated

    def delete_product(self, product_id: str) -> bool:
        with self._lock:
            return self._products.pop(product_id, None) is not None

    def list_cart_items(self, session_id: str) -> List[CartItem]:
        with self._lock:
            return [item for item in self._cart_items.values() if item.session_id == session_id]

    def get_cart_item(self, item_id: str) -> Optional[CartItem]:
        with self._lock:
            return self._cart_items.get(item_id)

    def add_cart_quantity(
        self,
        session_id: str,
        product_id: str,
        quantity: int,
        max_quantity: int
    ) -> CartItem:
        with self._lock:
            existing = next(
                (
                    item for item in self._cart_items.values()
                    if item.session_id == session_id and item.product_id == product_id
                ),
                None
            )
            new_quantity = quantity + (existing.quantity if existing else 0)
            if new_quantity > max_quantity:
                raise QuantityLimitExceededError(
                    f"Cannot add more than {max_quantity} items of the same product"
                )

            if existing:
                item = replace(existing, quantity=new_quantity)
            else:
                item = CartItem(
                    id=new_id(),
                    session_id=session_id,
                    product_id=product_id,
                    quantity=new_quantity
                )
            self._cart_items[item.id] = item
            return item

    def set_cart_item_quantity(self, item_id: str, quantity: int) -> Optional[CartItem]:
        with self._lock:
            item = self._cart_items.get(item_id)
            if item is None:
                return None
            updated = replace(item, quantity=quantity)
            self._cart_items[item_id] = updated
            return updated

    def delete_cart_item(self, item_id: str) -> bool:
        with self._lock:
            return self._cart_items.pop(item_id, None) is not None

    def clear_cart(self, session_id: str) -> int:
        with self._lock:
            doomed = [item_id for item_id, item in self._cart_items.items() if item.session_id == session_id]
            for item_id in doomed:
                del self._cart_items[item_id]
            return len(doomed)

    def create_order(self, order: Order) -> Order:
        with self._lock:
            self._orders[order.id] = order
        return order

    def list_orders(self, session_id: str) -> List[Order]:
        with self._lock:
            orders = [order for order in self._orders.values() if order.session_id == session_id]
        return sorted(orders, key=lambda order: order.created_at, reverse=True)

    def place_order(self, order: Order, cart_items: Sequence[CartItem]) -> Order:
        with self._lock:
            for item in cart_items:
                current = self._cart_items.get(item.id)
                if current is None or current.session_id != order.session_id or current.quantity != item.quantity:
                    raise CartChangedError("Cart changed during checkout")
            stored = self.create_order(order)
            for item in cart_items:
                del self._cart_items[item.id]
            return stored
