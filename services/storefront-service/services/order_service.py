"""Order management service."""
import logging
from typing import Any, List, Mapping, Tuple, Union

from opentelemetry import trace

from entities import CartItem, Order, OrderItem, ShippingContact, new_id, utcnow
from errors import CartChangedError, EmptyCartError, ProductMissingError
from monitoring import order_amount_histogram, orders_placed_counter
from schemas import PlaceOrderRequest, parse_payload
from services.cart_service import CartService
from services.pricing import compute_totals
from storage.base import StorageBackend

logger = logging.getLogger(__name__)

CHECKOUT_ATTEMPTS = 3


class OrderService:
    """Turns a session's cart into an immutable, priced order."""

    def __init__(self, storage: StorageBackend, cart_service: CartService):
        """
        Initialize order service.

        Args:
            storage: Shared storage backend
            cart_service: Cart service used to read the session's cart
        """
        self.storage = storage
        self.cart_service = cart_service
        self.tracer = trace.get_tracer(__name__)

    def place_order(
        self,
        session_id: str,
        shipping: Union[PlaceOrderRequest, Mapping[str, Any]]
    ) -> Order:
        """
        Place an order from the session's current cart.

        The priced item snapshot is taken from the catalog at this instant. The
        order is written together with the removal of exactly the cart lines it
        was built from. Lines added meanwhile stay in the cart; a line changed or
        removed meanwhile fails the write and the order is assembled again.

        Args:
            session_id: Owning session
            shipping: Shipping contact fields

        Returns:
            The stored order

        Raises:
            ValidationError: If shipping fields are missing or malformed
            EmptyCartError: If the session's cart has no items
            ProductMissingError: If a cart item references a deleted product
            CartChangedError: If the cart kept changing across every attempt
        """
        contact_fields = parse_payload(PlaceOrderRequest, shipping, "Missing or invalid shipping details")
        contact = ShippingContact(
            name=contact_fields.shipping_name,
            email=contact_fields.shipping_email,
            address=contact_fields.shipping_address,
            city=contact_fields.shipping_city,
            zip=contact_fields.shipping_zip,
            country=contact_fields.shipping_country,
        )

        for attempt in range(1, CHECKOUT_ATTEMPTS + 1):
            order, cart_items = self._assemble(session_id, contact)
            try:
                stored = self.storage.place_order(order, cart_items)
                break
            except CartChangedError:
                if attempt == CHECKOUT_ATTEMPTS:
                    logger.warning("Checkout abandoned, cart kept changing", extra={
                        "session_id": session_id,
                        "attempts": attempt
                    })
                    raise
                logger.info("Cart changed during checkout, retrying", extra={
                    "session_id": session_id,
                    "attempt": attempt
                })

        orders_placed_counter.add(1, {"country": order.contact.country})
        order_amount_histogram.record(float(order.total), {"country": order.contact.country})
        logger.info("Order placed", extra={
            "session_id": session_id,
            "order_id": order.id,
            "items": len(order.items),
            "subtotal": str(order.subtotal),
            "shipping": str(order.shipping),
            "tax": str(order.tax),
            "total": str(order.total)
        })
        return stored

    def _assemble(self, session_id: str, contact: ShippingContact) -> Tuple[Order, List[CartItem]]:
        """Price the current cart into an order, returning the cart items it was read from."""
        with self.tracer.start_as_current_span("order.assemble") as span:
            span.set_attribute("session.id", session_id)

            lines = self.cart_service.list_for_session(session_id)
            if not lines:
                raise EmptyCartError("Cart is empty")

            missing = [line.item.product_id for line in lines if line.product is None]
            if missing:
                logger.error("Order assembly failed: product missing", extra={
                    "session_id": session_id,
                    "product_ids": missing
                })
                raise ProductMissingError(f"Product {missing[0]} not found")

            items = tuple(
                OrderItem(
                    product_id=line.product.id,
                    quantity=line.item.quantity,
                    unit_price=line.product.price,
                    name=line.product.name,
                )
                for line in lines
            )
            totals = compute_totals((item.unit_price, item.quantity) for item in items)

            span.set_attribute("order.items", len(items))
            span.set_attribute("order.total", float(totals.total))

        order = Order(
            id=new_id(),
            session_id=session_id,
            items=items,
            subtotal=totals.subtotal,
            shipping=totals.shipping,
            tax=totals.tax,
            total=totals.total,
            contact=contact,
            created_at=utcnow(),
        )
        return order, [line.item for line in lines]

    def list_orders(self, session_id: str) -> List[Order]:
        """Orders placed by the session, newest first."""
        return self.storage.list_orders(session_id)
