"""Storage-independent domain records.

Backends convert their rows/documents to and from these frozen dataclasses, so
services never hold a live reference into a backend's state.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

CENT = Decimal("0.01")


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_money(value) -> Decimal:
    """Coerce a price-like value to a Decimal with two-digit cent precision."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    description: str
    price: Decimal
    category: str
    image: str
    images: Tuple[str, ...] = ()
    original_price: Optional[Decimal] = None
    rating: Decimal = Decimal("4.5")
    review_count: int = 0
    in_stock: bool = True
    featured: bool = False
    tags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CartItem:
    id: str
    session_id: str
    product_id: str
    quantity: int


@dataclass(frozen=True)
class CartLine:
    """A cart item joined with the live catalog record it references.

    ``product`` is None when the product was deleted after the item was added.
    """
    item: CartItem
    product: Optional[Product]

    @property
    def line_total(self) -> Optional[Decimal]:
        if self.product is None:
            return None
        return self.product.price * self.item.quantity


@dataclass(frozen=True)
class OrderItem:
    """Priced snapshot of one cart line, captured at order time."""
    product_id: str
    quantity: int
    unit_price: Decimal
    name: str


@dataclass(frozen=True)
class ShippingContact:
    name: str
    email: str
    address: str
    city: str
    zip: str
    country: str


@dataclass(frozen=True)
class Order:
    id: str
    session_id: str
    items: Tuple[OrderItem, ...]
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal
    contact: ShippingContact
    created_at: datetime = field(default_factory=utcnow)
