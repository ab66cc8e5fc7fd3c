"""Sample catalog loaded into an empty store at startup."""
import logging
from decimal import Decimal

from entities import Product, new_id
from storage.base import StorageBackend

logger = logging.getLogger(__name__)

_PLACEHOLDER = "https://via.placeholder.com/400?text={}"

SAMPLE_PRODUCTS = [
    {
        "name": "Premium Organic Almonds",
        "description": "Nutrient-dense organic almonds, raw and unsalted. Rich in protein, fiber and healthy fats.",
        "price": "18.99",
        "original_price": "22.99",
        "category": "Nuts",
        "image_text": "Almonds",
        "rating": "4.8",
        "review_count": 156,
        "featured": True,
        "tags": ("Organic", "Raw", "Natural"),
    },
    {
        "name": "Golden Flax Seeds",
        "description": "Golden flax seeds packed with omega-3 fatty acids and fiber. Non-GMO and certified organic.",
        "price": "12.99",
        "category": "Grains",
        "image_text": "FlaxSeeds",
        "rating": "4.7",
        "review_count": 89,
        "featured": True,
        "tags": ("Organic", "Vegan", "High-Fiber"),
    },
    {
        "name": "Exotic Spice Blend",
        "description": "A blend of 12 hand-picked, freshly ground spices for rice, vegetables and meat.",
        "price": "14.99",
        "original_price": "18.99",
        "category": "Spices",
        "image_text": "Spices",
        "rating": "4.6",
        "review_count": 203,
        "featured": True,
        "tags": ("Premium", "Organic"),
    },
    {
        "name": "Naturally Sweet Dried Mango",
        "description": "Sun-dried mango slices with no added sugar or preservatives.",
        "price": "9.99",
        "category": "Dried Fruits",
        "image_text": "Mango",
        "rating": "4.9",
        "review_count": 342,
        "featured": True,
        "tags": ("Sugar-Free", "Natural"),
    },
    {
        "name": "Cold-Pressed Coconut Oil",
        "description": "Virgin, unrefined coconut oil for cooking, baking or skincare.",
        "price": "16.99",
        "category": "Organic Products",
        "image_text": "CoconutOil",
        "rating": "4.8",
        "review_count": 127,
        "tags": ("Organic", "Vegan", "Kosher"),
    },
    {
        "name": "Natural Face Serum",
        "description": "Lightweight hydrating serum with plant extracts. Dermatologist tested and cruelty-free.",
        "price": "32.99",
        "original_price": "39.99",
        "category": "Skincare",
        "image_text": "Serum",
        "rating": "4.7",
        "review_count": 78,
        "tags": ("Cruelty-Free", "Natural"),
    },
]


def _sample_product(spec: dict) -> Product:
    image = _PLACEHOLDER.format(spec["image_text"])
    original_price = spec.get("original_price")
    return Product(
        id=new_id(),
        name=spec["name"],
        description=spec["description"],
        price=Decimal(spec["price"]),
        original_price=Decimal(original_price) if original_price else None,
        category=spec["category"],
        image=image,
        images=(image,) * 4,
        rating=Decimal(spec["rating"]),
        review_count=spec["review_count"],
        in_stock=True,
        featured=spec.get("featured", False),
        tags=spec["tags"],
    )


def seed_catalog(storage: StorageBackend) -> int:
    """Insert the sample products when the catalog is empty. Returns how many were added."""
    if storage.list_products():
        return 0

    products = [_sample_product(spec) for spec in SAMPLE_PRODUCTS]
    for product in products:
        storage.create_product(product)

    logger.info("Seeded catalog with sample products", extra={
        "backend": storage.name,
        "count": len(products)
    })
    return len(products)
