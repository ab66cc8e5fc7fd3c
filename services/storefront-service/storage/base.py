"""Storage backend interface."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from entities import CartItem, Order, Product


class StorageBackend(ABC):
    """
    Persistence for products, cart items and orders.

    One instance is built at startup and shared by every request. Implementations
    raise ``errors.StorageError`` for backend failures and
    ``errors.QuantityLimitExceededError`` from ``add_cart_quantity``; "not found"
    is signalled with ``None``/``False`` return values.
    """

    name = "base"

    # Products

    @abstractmethod
    def list_products(self) -> List[Product]:
        """Return every product in a stable order."""

    @abstractmethod
    def get_product(self, product_id: str) -> Optional[Product]:
        ...

    @abstractmethod
    def create_product(self, product: Product) -> Product:
        ...

    @abstractmethod
    def update_product(self, product_id: str, changes: Dict[str, Any]) -> Optional[Product]:
        """Merge ``changes`` into the stored product. The id is never changed."""

    @abstractmethod
    def delete_product(self, product_id: str) -> bool:
        ...

    # Cart

    @abstractmethod
    def list_cart_items(self, session_id: str) -> List[CartItem]:
        ...

    @abstractmethod
    def get_cart_item(self, item_id: str) -> Optional[CartItem]:
        ...

    @abstractmethod
    def add_cart_quantity(
        self,
        session_id: str,
        product_id: str,
        quantity: int,
        max_quantity: int
    ) -> CartItem:
        """
        Atomically create or increment the (session, product) line item.

        The merged quantity is checked against ``max_quantity`` inside the same
        atomic step as the write; when it would be exceeded nothing is written
        and ``QuantityLimitExceededError`` is raised.
        """

    @abstractmethod
    def set_cart_item_quantity(self, item_id: str, quantity: int) -> Optional[CartItem]:
        ...

    @abstractmethod
    def delete_cart_item(self, item_id: str) -> bool:
        ...

    @abstractmethod
    def clear_cart(self, session_id: str) -> int:
        """Delete every line item of the session. Returns the number removed."""

    # Orders

    @abstractmethod
    def create_order(self, order: Order) -> Order:
        ...

    @abstractmethod
    def list_orders(self, session_id: str) -> List[Order]:
        """Orders of the session, newest first."""

    @abstractmethod
    def place_order(self, order: Order, cart_items: Sequence[CartItem]) -> Order:
        """
        Persist ``order`` and delete the cart lines it was assembled from.

        Only ``cart_items`` are deleted, and only while each still exists with the
        quantity that was read, so lines added to the cart meanwhile survive. If
        any of them changed, nothing is written and ``CartChangedError`` is raised.
        """

    def close(self) -> None:
        """Release connections held by the backend."""
