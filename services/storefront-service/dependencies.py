"""Dependency injection for services."""
import httpx
from fastapi import Depends, Request, Response

import config
from services.cart_service import CartService
from services.catalog_service import CatalogService
from services.image_service import ImageUploadClient
from services.order_service import OrderService
from services.session_service import SessionResolver
from storage.base import StorageBackend


def get_storage(request: Request) -> StorageBackend:
    """Get the process-wide storage backend from app state."""
    return request.app.state.storage


def get_session_resolver(request: Request) -> SessionResolver:
    return request.app.state.session_resolver


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Get HTTP client from app state."""
    return request.app.state.http_client


def get_session_id(
    request: Request,
    response: Response,
    resolver: SessionResolver = Depends(get_session_resolver)
) -> str:
    """Resolve the caller's session and attach a cookie when a new one was issued."""
    resolution = resolver.resolve(request.cookies.get(resolver.cookie_name))
    cookie = resolution.cookie
    if cookie is not None:
        response.set_cookie(
            key=cookie.name,
            value=cookie.value,
            max_age=cookie.max_age,
            httponly=cookie.httponly,
            samesite=cookie.samesite,
            secure=cookie.secure,
        )
    return resolution.session_id


def get_catalog_service(storage: StorageBackend = Depends(get_storage)) -> CatalogService:
    return CatalogService(storage)


def get_cart_service(
    storage: StorageBackend = Depends(get_storage),
    catalog: CatalogService = Depends(get_catalog_service)
) -> CartService:
    return CartService(storage, catalog)


def get_order_service(
    storage: StorageBackend = Depends(get_storage),
    cart_service: CartService = Depends(get_cart_service)
) -> OrderService:
    return OrderService(storage, cart_service)


def get_image_client(http_client: httpx.AsyncClient = Depends(get_http_client)) -> ImageUploadClient:
    return ImageUploadClient(http_client, config.IMGBB_API_KEY, config.IMGBB_UPLOAD_URL)
