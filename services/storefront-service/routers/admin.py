"""Admin API router: product CRUD and image upload."""
import time

from fastapi import APIRouter, Depends, File, UploadFile

from auth import verify_admin_token
from dependencies import get_catalog_service, get_image_client
from errors import NotFoundError, ValidationError
from schemas import ImageUploadResponse, ProductCreate, ProductResponse, ProductUpdate, SuccessResponse
from services.catalog_service import CatalogService
from services.image_service import ImageUploadClient

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(verify_admin_token)]
)


@router.post("/products", response_model=ProductResponse)
def create_product(
    request: ProductCreate,
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Create a product."""
    return ProductResponse.model_validate(catalog.create_product(request))


@router.put("/products/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    request: ProductUpdate,
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Apply a partial update to a product."""
    return ProductResponse.model_validate(catalog.update_product(product_id, request))


@router.delete("/products/{product_id}", response_model=SuccessResponse)
def delete_product(
    product_id: str,
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Delete a product. Orders already placed keep their snapshot."""
    if not catalog.delete_product(product_id):
        raise NotFoundError("Product not found")
    return SuccessResponse()


@router.post("/upload-image", response_model=ImageUploadResponse)
async def upload_image(
    image: UploadFile = File(...),
    image_client: ImageUploadClient = Depends(get_image_client)
):
    """Upload a product image and return its hosted URL."""
    if image.content_type and not image.content_type.startswith("image/"):
        raise ValidationError("File must be an image", fields=["image"])

    content = await image.read()
    if not content:
        raise ValidationError("No image file provided", fields=["image"])

    filename = f"product-{int(time.time() * 1000)}-{image.filename or 'upload'}"
    url = await image_client.upload(content, filename, image.content_type)
    return ImageUploadResponse(url=url)
