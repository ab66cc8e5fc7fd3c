"""Product catalog management."""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Union

from opentelemetry import trace

from entities import Product, new_id, to_money
from errors import NotFoundError
from monitoring import admin_product_changes_counter
from schemas import ProductCreate, ProductUpdate, parse_payload
from storage.base import StorageBackend

logger = logging.getLogger(__name__)


def _entity_values(values: Dict[str, Any]) -> Dict[str, Any]:
    """Convert validated schema values to the types stored on ``Product``."""
    converted = {}
    for name, value in values.items():
        if name in ("price", "original_price") and value is not None:
            value = to_money(value)
        elif name == "rating":
            value = Decimal(value)
        elif name in ("images", "tags"):
            value = tuple(value)
        converted[name] = value
    return converted


class CatalogService:
    """Create, read, update and delete products."""

    def __init__(self, storage: StorageBackend):
        self.storage = storage

    def list_products(self) -> List[Product]:
        return self.storage.list_products()

    def find_product(self, product_id: str) -> Optional[Product]:
        return self.storage.get_product(product_id)

    def get_product(self, product_id: str) -> Product:
        """
        Fetch a product by id.

        Raises:
            NotFoundError: If no product has this id
        """
        product = self.storage.get_product(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        return product

    def create_product(self, data: Union[ProductCreate, Mapping[str, Any]]) -> Product:
        """
        Validate and store a new product under a freshly generated id.

        Raises:
            ValidationError: If required fields are missing or out of range
        """
        payload = parse_payload(ProductCreate, data, "Invalid product data")
        values = payload.model_dump()
        if not values["images"]:
            values["images"] = [values["image"]]

        product = self.storage.create_product(Product(id=new_id(), **_entity_values(values)))

        admin_product_changes_counter.add(1, {"action": "create"})
        logger.info("Created product", extra={
            "product_id": product.id,
            "product_name": product.name,
            "category": product.category,
            "price": str(product.price)
        })
        return product

    def update_product(self, product_id: str, data: Union[ProductUpdate, Mapping[str, Any]]) -> Product:
        """
        Merge the supplied fields into an existing product.

        Replacing the primary image without an explicit gallery resets the gallery
        to that image.

        Raises:
            ValidationError: If a supplied field is invalid
            NotFoundError: If no product has this id
        """
        payload = parse_payload(ProductUpdate, data, "Invalid product data")
        changes = payload.model_dump(exclude_unset=True)
        if "image" in changes and "images" not in changes:
            changes["images"] = [changes["image"]]

        trace.get_current_span().set_attribute("product.id", product_id)

        product = self.storage.update_product(product_id, _entity_values(changes))
        if product is None:
            raise NotFoundError("Product not found")

        admin_product_changes_counter.add(1, {"action": "update"})
        logger.info("Updated product", extra={
            "product_id": product_id,
            "fields": sorted(changes)
        })
        return product

    def delete_product(self, product_id: str) -> bool:
        """Remove a product. Returns whether a record existed."""
        deleted = self.storage.delete_product(product_id)
        if deleted:
            admin_product_changes_counter.add(1, {"action": "delete"})
            logger.info("Deleted product", extra={"product_id": product_id})
        return deleted
