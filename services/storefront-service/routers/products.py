"""Products API router."""
from typing import List

from fastapi import APIRouter, Depends, Path
from opentelemetry import trace

from dependencies import get_catalog_service
from monitoring import product_detail_views_counter, product_views_counter
from schemas import ProductResponse
from services.catalog_service import CatalogService

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("", response_model=List[ProductResponse])
def list_products(catalog: CatalogService = Depends(get_catalog_service)):
    """List the whole catalog."""
    products = catalog.list_products()

    trace.get_current_span().set_attribute("product.count", len(products))
    product_views_counter.add(1)

    return [ProductResponse.model_validate(product) for product in products]


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: str = Path(..., description="Product ID"),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Get a single product."""
    product = catalog.get_product(product_id)

    trace.get_current_span().set_attribute("product.id", product_id)
    product_detail_views_counter.add(1, {"category": product.category})

    return ProductResponse.model_validate(product)
