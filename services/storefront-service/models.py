"""Database models for the relational storage backend."""
from datetime import datetime, timezone
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProductRecord(Base):
    """Product model."""
    __tablename__ = "products"

    id = Column(String(36), primary_key=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    original_price = Column(Numeric(10, 2), nullable=True)
    category = Column(Text, nullable=False)
    image = Column(Text, nullable=False)
    images = Column(JSON, nullable=False, default=list)
    rating = Column(Numeric(2, 1), nullable=False, default=4.5)
    review_count = Column(Integer, nullable=False, default=0)
    in_stock = Column(Boolean, nullable=False, default=True)
    featured = Column(Boolean, nullable=False, default=False)
    tags = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class CartItemRecord(Base):
    """Cart item model. One row per (session, product)."""
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("session_id", "product_id", name="uq_cart_items_session_product"),
    )

    id = Column(String(36), primary_key=True)
    session_id = Column(String(64), index=True, nullable=False)
    product_id = Column(String(36), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class OrderRecord(Base):
    """Order model. ``items`` holds the priced snapshot taken at checkout."""
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True)
    session_id = Column(String(64), index=True, nullable=False)
    items = Column(JSON, nullable=False)
    subtotal = Column(Numeric(18, 2), nullable=False)
    shipping = Column(Numeric(18, 2), nullable=False)
    tax = Column(Numeric(18, 2), nullable=False)
    total = Column(Numeric(18, 2), nullable=False)
    shipping_name = Column(Text, nullable=False)
    shipping_email = Column(Text, nullable=False)
    shipping_address = Column(Text, nullable=False)
    shipping_city = Column(Text, nullable=False)
    shipping_zip = Column(Text, nullable=False)
    shipping_country = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
