"""Document-store backend on Cloud Firestore.

Collections (optionally prefixed): ``products``, ``cartItems``, ``orders``.
Decimal amounts are stored as strings so cent precision survives the round
trip.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Sequence

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from entities import (
    CartItem,
    Order,
    OrderItem,
    Product,
    ShippingContact,
    new_id,
    to_money,
)
from errors import CartChangedError, QuantityLimitExceededError, StorageError
from storage.base import StorageBackend

logger = logging.getLogger(__name__)

PRODUCTS = "products"
CART_ITEMS = "cartItems"
ORDERS = "orders"

MAX_BATCH_WRITES = 500

# entity attribute -> document field
_PRODUCT_FIELDS = {
    "id": "id",
    "name": "name",
    "description": "description",
    "price": "price",
    "original_price": "originalPrice",
    "category": "category",
    "image": "image",
    "images": "images",
    "rating": "rating",
    "review_count": "reviewCount",
    "in_stock": "inStock",
    "featured": "featured",
    "tags": "tags",
}


def _field_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, tuple):
        return list(value)
    return value


def _product_document(values: Dict[str, Any]) -> Dict[str, Any]:
    return {_PRODUCT_FIELDS[name]: _field_value(value) for name, value in values.items()}


def _product_from_document(data: Dict[str, Any]) -> Product:
    original_price = data.get("originalPrice")
    return Product(
        id=data["id"],
        name=data["name"],
        description=data.get("description", ""),
        price=to_money(data["price"]),
        original_price=to_money(original_price) if original_price is not None else None,
        category=data.get("category", ""),
        image=data.get("image", ""),
        images=tuple(data.get("images") or ()),
        rating=Decimal(str(data.get("rating", "4.5"))),
        review_count=int(data.get("reviewCount", 0)),
        in_stock=bool(data.get("inStock", True)),
        featured=bool(data.get("featured", False)),
        tags=tuple(data.get("tags") or ()),
    )


def _cart_item_from_document(data: Dict[str, Any]) -> CartItem:
    return CartItem(
        id=data["id"],
        session_id=data["sessionId"],
        product_id=data["productId"],
        quantity=int(data["quantity"]),
    )


def _order_document(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "sessionId": order.session_id,
        "items": [
            {
                "productId": item.product_id,
                "quantity": item.quantity,
                "price": str(item.unit_price),
                "name": item.name,
            }
            for item in order.items
        ],
        "subtotal": str(order.subtotal),
        "shipping": str(order.shipping),
        "tax": str(order.tax),
        "total": str(order.total),
        "shippingName": order.contact.name,
        "shippingEmail": order.contact.email,
        "shippingAddress": order.contact.address,
        "shippingCity": order.contact.city,
        "shippingZip": order.contact.zip,
        "shippingCountry": order.contact.country,
        "createdAt": order.created_at,
    }


def _order_from_document(data: Dict[str, Any]) -> Order:
    return Order(
        id=data["id"],
        session_id=data["sessionId"],
        items=tuple(
            OrderItem(
                product_id=item["productId"],
                quantity=int(item["quantity"]),
                unit_price=to_money(item["price"]),
                name=item["name"],
            )
            for item in data.get("items", [])
        ),
        subtotal=to_money(data.get("subtotal", data["total"])),
        shipping=to_money(data.get("shipping", "0")),
        tax=to_money(data.get("tax", "0")),
        total=to_money(data["total"]),
        contact=ShippingContact(
            name=data["shippingName"],
            email=data["shippingEmail"],
            address=data["shippingAddress"],
            city=data["shippingCity"],
            zip=data["shippingZip"],
            country=data["shippingCountry"],
        ),
        created_at=data.get("createdAt") or datetime.min.replace(tzinfo=timezone.utc),
    )


class FirestoreStorage(StorageBackend):
    """Storage on Cloud Firestore collections."""

    name = "firestore"

    def __init__(self, client: firestore.Client, collection_prefix: str = ""):
        self.client = client
        self.collection_prefix = collection_prefix

    def _collection(self, name: str):
        return self.client.collection(f"{self.collection_prefix}{name}")

    def _session_query(self, collection: str, session_id: str):
        return self._collection(collection).where(filter=FieldFilter("sessionId", "==", session_id))

    @contextmanager
    def _operation(self, operation: str) -> Iterator[None]:
        try:
            yield
        except gcp_exceptions.GoogleAPICallError as e:
            logger.error("Firestore operation failed", extra={
                "operation": operation,
                "error": str(e)
            })
            raise StorageError(f"Failed to {operation}") from e

    # Products

    def list_products(self) -> List[Product]:
        with self._operation("list products"):
            return [
                _product_from_document(snapshot.to_dict())
                for snapshot in self._collection(PRODUCTS).stream()
            ]

    def get_product(self, product_id: str) -> Optional[Product]:
        with self._operation("fetch product"):
            snapshot = self._collection(PRODUCTS).document(product_id).get()
            return _product_from_document(snapshot.to_dict()) if snapshot.exists else None

    def create_product(self, product: Product) -> Product:
        values = {name: getattr(product, name) for name in _PRODUCT_FIELDS}
        with self._operation("create product"):
            self._collection(PRODUCTS).document(product.id).set(_product_document(values))
        return product

    def update_product(self, product_id: str, changes: Dict[str, Any]) -> Optional[Product]:
        changes = {name: value for name, value in changes.items() if name != "id"}
        with self._operation("update product"):
            reference = self._collection(PRODUCTS).document(product_id)
            if not reference.get().exists:
                return None
            if changes:
                reference.update(_product_document(changes))
            return _product_from_document(reference.get().to_dict())

    def delete_product(self, product_id: str) -> bool:
        with self._operation("delete product"):
            reference = self._collection(PRODUCTS).document(product_id)
            if not reference.get().exists:
                return False
            reference.delete()
            return True

    # Cart

    def list_cart_items(self, session_id: str) -> List[CartItem]:
        with self._operation("fetch cart"):
            return [
                _cart_item_from_document(snapshot.to_dict())
                for snapshot in self._session_query(CART_ITEMS, session_id).stream()
            ]

    def get_cart_item(self, item_id: str) -> Optional[CartItem]:
        with self._operation("fetch cart item"):
            snapshot = self._collection(CART_ITEMS).document(item_id).get()
            return _cart_item_from_document(snapshot.to_dict()) if snapshot.exists else None

    def add_cart_quantity(
        self,
        session_id: str,
        product_id: str,
        quantity: int,
        max_quantity: int
    ) -> CartItem:
        query = (
            self._session_query(CART_ITEMS, session_id)
            .where(filter=FieldFilter("productId", "==", product_id))
            .limit(1)
        )

        @firestore.transactional
        def merge(transaction) -> Optional[CartItem]:
            existing = next(iter(transaction.get(query)), None)
            if existing is not None:
                data = existing.to_dict()
                new_quantity = int(data["quantity"]) + quantity
                if new_quantity > max_quantity:
                    return None
                transaction.update(existing.reference, {"quantity": new_quantity})
                data["quantity"] = new_quantity
                return _cart_item_from_document(data)

            if quantity > max_quantity:
                return None
            data = {
                "id": new_id(),
                "sessionId": session_id,
                "productId": product_id,
                "quantity": quantity,
            }
            transaction.set(self._collection(CART_ITEMS).document(data["id"]), data)
            return _cart_item_from_document(data)

        with self._operation("add to cart"):
            item = merge(self.client.transaction())

        if item is None:
            raise QuantityLimitExceededError(
                f"Cannot add more than {max_quantity} items of the same product"
            )
        return item

    def set_cart_item_quantity(self, item_id: str, quantity: int) -> Optional[CartItem]:
        with self._operation("update cart item"):
            reference = self._collection(CART_ITEMS).document(item_id)
            snapshot = reference.get()
            if not snapshot.exists:
                return None
            reference.update({"quantity": quantity})
            data = snapshot.to_dict()
            data["quantity"] = quantity
            return _cart_item_from_document(data)

    def delete_cart_item(self, item_id: str) -> bool:
        with self._operation("remove cart item"):
            reference = self._collection(CART_ITEMS).document(item_id)
            if not reference.get().exists:
                return False
            reference.delete()
            return True

    def clear_cart(self, session_id: str) -> int:
        with self._operation("clear cart"):
            references = [
                snapshot.reference
                for snapshot in self._session_query(CART_ITEMS, session_id).stream()
            ]
            # Firestore caps a write batch at MAX_BATCH_WRITES operations
            for start in range(0, len(references), MAX_BATCH_WRITES):
                batch = self.client.batch()
                for reference in references[start:start + MAX_BATCH_WRITES]:
                    batch.delete(reference)
                batch.commit()
            return len(references)

    # Orders

    def create_order(self, order: Order) -> Order:
        with self._operation("create order"):
            self._collection(ORDERS).document(order.id).set(_order_document(order))
        return order

    def list_orders(self, session_id: str) -> List[Order]:
        with self._operation("fetch orders"):
            orders = [
                _order_from_document(snapshot.to_dict())
                for snapshot in self._session_query(ORDERS, session_id).stream()
            ]
        return sorted(orders, key=lambda order: order.created_at, reverse=True)

    def place_order(self, order: Order, cart_items: Sequence[CartItem]) -> Order:
        """
        Write the order and delete its cart lines in one transaction.

        The transaction re-reads every line first, so a concurrent change to one of
        them either aborts the checkout or retries it against the new state.
        """
        references = [self._collection(CART_ITEMS).document(item.id) for item in cart_items]

        @firestore.transactional
        def commit(transaction) -> None:
            snapshots = {snapshot.id: snapshot for snapshot in transaction.get_all(references)}
            for item in cart_items:
                snapshot = snapshots.get(item.id)
                if snapshot is None or not snapshot.exists:
                    raise CartChangedError("Cart changed during checkout")
                data = snapshot.to_dict()
                if data.get("sessionId") != order.session_id or int(data["quantity"]) != item.quantity:
                    raise CartChangedError("Cart changed during checkout")

            transaction.set(self._collection(ORDERS).document(order.id), _order_document(order))
            for reference in references:
                transaction.delete(reference)

        with self._operation("create order"):
            commit(self.client.transaction())
        return order

    def close(self) -> None:
        self.client.close()
