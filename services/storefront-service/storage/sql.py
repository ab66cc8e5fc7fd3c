"""Relational storage backend built on SQLAlchemy."""
import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from database import create_session_factory, init_db
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
from models import CartItemRecord, OrderRecord, ProductRecord
from storage.base import StorageBackend

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _product_from_record(record: ProductRecord) -> Product:
    return Product(
        id=record.id,
        name=record.name,
        description=record.description,
        price=to_money(record.price),
        original_price=to_money(record.original_price) if record.original_price is not None else None,
        category=record.category,
        image=record.image,
        images=tuple(record.images or ()),
        rating=Decimal(str(record.rating)),
        review_count=record.review_count,
        in_stock=record.in_stock,
        featured=record.featured,
        tags=tuple(record.tags or ()),
    )


def _column_value(value: Any) -> Any:
    return list(value) if isinstance(value, tuple) else value


def _cart_item_from_record(record: CartItemRecord) -> CartItem:
    return CartItem(
        id=record.id,
        session_id=record.session_id,
        product_id=record.product_id,
        quantity=record.quantity,
    )


def _order_from_record(record: OrderRecord) -> Order:
    return Order(
        id=record.id,
        session_id=record.session_id,
        items=tuple(
            OrderItem(
                product_id=item["product_id"],
                quantity=item["quantity"],
                unit_price=to_money(item["unit_price"]),
                name=item["name"],
            )
            for item in record.items
        ),
        subtotal=to_money(record.subtotal),
        shipping=to_money(record.shipping),
        tax=to_money(record.tax),
        total=to_money(record.total),
        contact=ShippingContact(
            name=record.shipping_name,
            email=record.shipping_email,
            address=record.shipping_address,
            city=record.shipping_city,
            zip=record.shipping_zip,
            country=record.shipping_country,
        ),
        created_at=record.created_at,
    )


def _order_record(order: Order) -> OrderRecord:
    return OrderRecord(
        id=order.id,
        session_id=order.session_id,
        items=[
            {
                "product_id": item.product_id,
                "quantity": item.quantity,
                "unit_price": str(item.unit_price),
                "name": item.name,
            }
            for item in order.items
        ],
        subtotal=order.subtotal,
        shipping=order.shipping,
        tax=order.tax,
        total=order.total,
        shipping_name=order.contact.name,
        shipping_email=order.contact.email,
        shipping_address=order.contact.address,
        shipping_city=order.contact.city,
        shipping_zip=order.contact.zip,
        shipping_country=order.contact.country,
        created_at=order.created_at,
    )


class SQLStorage(StorageBackend):
    """Storage on any SQLAlchemy-supported database."""

    name = "sql"

    def __init__(self, engine: Engine, session_factory: Optional[sessionmaker] = None):
        self.engine = engine
        self.session_factory = session_factory or create_session_factory(engine)
        init_db(engine)

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Session]:
        """Run one unit of work; commit on success, translate driver errors."""
        try:
            with self.session_factory() as db, db.begin():
                yield db
        except SQLAlchemyError as e:
            logger.error("Database operation failed", extra={
                "operation": operation,
                "error": str(e)
            })
            raise StorageError(f"Failed to {operation}") from e

    # Products

    def list_products(self) -> List[Product]:
        with self._transaction("list products") as db:
            records = db.scalars(
                select(ProductRecord).order_by(ProductRecord.created_at, ProductRecord.id)
            ).all()
            return [_product_from_record(record) for record in records]

    def get_product(self, product_id: str) -> Optional[Product]:
        with self._transaction("fetch product") as db:
            record = db.get(ProductRecord, product_id)
            return _product_from_record(record) if record else None

    def create_product(self, product: Product) -> Product:
        with self._transaction("create product") as db:
            record = ProductRecord(**{
                name: _column_value(getattr(product, name))
                for name in Product.__dataclass_fields__
            })
            db.add(record)
            db.flush()
            return _product_from_record(record)

    def update_product(self, product_id: str, changes: Dict[str, Any]) -> Optional[Product]:
        with self._transaction("update product") as db:
            record = db.get(ProductRecord, product_id)
            if record is None:
                return None
            for name, value in changes.items():
                if name != "id":
                    setattr(record, name, _column_value(value))
            db.flush()
            return _product_from_record(record)

    def delete_product(self, product_id: str) -> bool:
        with self._transaction("delete product") as db:
            result = db.execute(delete(ProductRecord).where(ProductRecord.id == product_id))
            return result.rowcount > 0

    # Cart

    def list_cart_items(self, session_id: str) -> List[CartItem]:
        with self._transaction("fetch cart") as db:
            records = db.scalars(
                select(CartItemRecord)
                .where(CartItemRecord.session_id == session_id)
                .order_by(CartItemRecord.created_at, CartItemRecord.id)
            ).all()
            return [_cart_item_from_record(record) for record in records]

    def get_cart_item(self, item_id: str) -> Optional[CartItem]:
        with self._transaction("fetch cart item") as db:
            record = db.get(CartItemRecord, item_id)
            return _cart_item_from_record(record) if record else None

    def add_cart_quantity(
        self,
        session_id: str,
        product_id: str,
        quantity: int,
        max_quantity: int
    ) -> CartItem:
        if quantity > max_quantity:
            raise QuantityLimitExceededError(
                f"Cannot add more than {max_quantity} items of the same product"
            )

        with self._transaction("add to cart") as db:
            insert = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
            if insert is None:
                item = self._add_cart_quantity_locked(db, session_id, product_id, quantity, max_quantity)
            else:
                table = CartItemRecord.__table__
                stmt = insert(table).values(
                    id=new_id(),
                    session_id=session_id,
                    product_id=product_id,
                    quantity=quantity,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=[table.c.session_id, table.c.product_id],
                    set_={"quantity": table.c.quantity + stmt.excluded.quantity},
                    where=(table.c.quantity + stmt.excluded.quantity) <= max_quantity,
                ).returning(table.c.id, table.c.session_id, table.c.product_id, table.c.quantity)
                row = db.execute(stmt).first()
                item = CartItem(*row) if row is not None else None

            if item is None:
                raise QuantityLimitExceededError(
                    f"Cannot add more than {max_quantity} items of the same product"
                )
            return item

    def _add_cart_quantity_locked(
        self,
        db: Session,
        session_id: str,
        product_id: str,
        quantity: int,
        max_quantity: int
    ) -> Optional[CartItem]:
        """Row-locking merge for dialects without ON CONFLICT support."""
        record = db.scalars(
            select(CartItemRecord)
            .where(
                CartItemRecord.session_id == session_id,
                CartItemRecord.product_id == product_id,
            )
            .with_for_update()
        ).first()

        if record is None:
            record = CartItemRecord(
                id=new_id(),
                session_id=session_id,
                product_id=product_id,
                quantity=quantity,
            )
            db.add(record)
        elif record.quantity + quantity > max_quantity:
            return None
        else:
            record.quantity += quantity

        db.flush()
        return _cart_item_from_record(record)

    def set_cart_item_quantity(self, item_id: str, quantity: int) -> Optional[CartItem]:
        with self._transaction("update cart item") as db:
            record = db.get(CartItemRecord, item_id)
            if record is None:
                return None
            record.quantity = quantity
            db.flush()
            return _cart_item_from_record(record)

    def delete_cart_item(self, item_id: str) -> bool:
        with self._transaction("remove cart item") as db:
            result = db.execute(delete(CartItemRecord).where(CartItemRecord.id == item_id))
            return result.rowcount > 0

    def clear_cart(self, session_id: str) -> int:
        with self._transaction("clear cart") as db:
            result = db.execute(delete(CartItemRecord).where(CartItemRecord.session_id == session_id))
            return result.rowcount

    # Orders

    def create_order(self, order: Order) -> Order:
        with self._transaction("create order") as db:
            db.add(_order_record(order))
        return order

    def list_orders(self, session_id: str) -> List[Order]:
        with self._transaction("fetch orders") as db:
            records = db.scalars(
                select(OrderRecord)
                .where(OrderRecord.session_id == session_id)
                .order_by(OrderRecord.created_at.desc())
            ).all()
            return [_order_from_record(record) for record in records]

    def place_order(self, order: Order, cart_items: Sequence[CartItem]) -> Order:
        """
        Insert the order and delete its cart lines in one transaction.

        Each delete is conditional on the quantity read at checkout; a miss rolls
        the whole transaction back, order included.
        """
        with self._transaction("create order") as db:
            db.add(_order_record(order))
            db.flush()
            for item in cart_items:
                result = db.execute(
                    delete(CartItemRecord).where(
                        CartItemRecord.id == item.id,
                        CartItemRecord.session_id == order.session_id,
                        CartItemRecord.quantity == item.quantity,
                    )
                )
                if result.rowcount != 1:
                    raise CartChangedError("Cart changed during checkout")
        return order

    def close(self) -> None:
        self.engine.dispose()
