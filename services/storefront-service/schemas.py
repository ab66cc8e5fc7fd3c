"""Pydantic schemas for request/response validation."""
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from config import MAX_ITEM_QUANTITY
from entities import CartLine, Order
from errors import ValidationError


class ProductCreate(BaseModel):
    """Schema for creating a product."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    original_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    category: str = Field(min_length=1)
    image: str = Field(min_length=1, description="Primary image URL")
    images: Optional[List[str]] = Field(None, description="Gallery; defaults to [image]")
    rating: Decimal = Field(Decimal("4.5"), ge=0, le=5, max_digits=2, decimal_places=1)
    review_count: int = Field(0, ge=0)
    in_stock: bool = True
    featured: bool = False
    tags: List[str] = Field(default_factory=list)

    @field_validator("images", "tags")
    @classmethod
    def _no_blank_entries(cls, value):
        if value is not None and any(not entry.strip() for entry in value):
            raise ValueError("entries must not be blank")
        return value


class ProductUpdate(BaseModel):
    """Schema for a partial product update. Only supplied fields are applied."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    original_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    category: Optional[str] = Field(None, min_length=1)
    image: Optional[str] = Field(None, min_length=1)
    images: Optional[List[str]] = Field(None, min_length=1)
    rating: Optional[Decimal] = Field(None, ge=0, le=5, max_digits=2, decimal_places=1)
    review_count: Optional[int] = Field(None, ge=0)
    in_stock: Optional[bool] = None
    featured: Optional[bool] = None
    tags: Optional[List[str]] = None

    @field_validator(
        "name", "description", "price", "category", "image", "images",
        "rating", "review_count", "in_stock", "featured", "tags",
        mode="before"
    )
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("cannot be null")
        return value


class ProductResponse(BaseModel):
    """Schema for product response."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    price: Decimal
    original_price: Optional[Decimal]
    category: str
    image: str
    images: List[str]
    rating: Decimal
    review_count: int
    in_stock: bool
    featured: bool
    tags: List[str]


class AddToCartRequest(BaseModel):
    """Schema for add to cart request."""
    model_config = ConfigDict(str_strip_whitespace=True)

    product_id: str = Field(min_length=1)
    quantity: int = Field(1, ge=1, le=MAX_ITEM_QUANTITY)


class UpdateCartItemRequest(BaseModel):
    """Schema for cart item quantity update."""
    quantity: int = Field(ge=1, le=MAX_ITEM_QUANTITY)


class CartItemResponse(BaseModel):
    """Cart line item joined with the live product record."""
    id: str
    product_id: str
    quantity: int
    line_total: Optional[Decimal]
    product: Optional[ProductResponse]

    @classmethod
    def from_line(cls, line: CartLine) -> "CartItemResponse":
        return cls(
            id=line.item.id,
            product_id=line.item.product_id,
            quantity=line.item.quantity,
            line_total=line.line_total,
            product=ProductResponse.model_validate(line.product) if line.product else None,
        )


class PlaceOrderRequest(BaseModel):
    """Shipping contact fields required to place an order."""
    model_config = ConfigDict(str_strip_whitespace=True)

    shipping_name: str = Field(min_length=1)
    shipping_email: str = Field(min_length=3)
    shipping_address: str = Field(min_length=1)
    shipping_city: str = Field(min_length=1)
    shipping_zip: str = Field(min_length=1)
    shipping_country: str = Field(min_length=1)

    @field_validator("shipping_email")
    @classmethod
    def _looks_like_email(cls, value: str) -> str:
        local, _, domain = value.partition("@")
        if not local or not domain:
            raise ValueError("must be an email address")
        return value


class OrderItemResponse(BaseModel):
    product_id: str
    quantity: int
    unit_price: Decimal
    name: str


class OrderResponse(BaseModel):
    """Schema for order response."""
    id: str
    items: List[OrderItemResponse]
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal
    shipping_name: str
    shipping_email: str
    shipping_address: str
    shipping_city: str
    shipping_zip: str
    shipping_country: str
    created_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            items=[
                OrderItemResponse(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    name=item.name,
                )
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


class SuccessResponse(BaseModel):
    success: bool = True


class ImageUploadResponse(BaseModel):
    url: str


class ErrorResponse(BaseModel):
    error: str
    code: str
    fields: Optional[List[str]] = None


SchemaT = TypeVar("SchemaT", bound=BaseModel)


def parse_payload(
    schema: Type[SchemaT],
    data: Union[SchemaT, Mapping[str, Any]],
    message: str = "Invalid input"
) -> SchemaT:
    """Validate ``data`` against ``schema``, raising the domain ``ValidationError``."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        fields = [str(error["loc"][0]) for error in e.errors() if error["loc"]]
        raise ValidationError(message, fields=fields) from e
