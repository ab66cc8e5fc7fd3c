"""Application factory: wiring of storage, sessions, middleware and routers."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from errors import StorefrontError, ValidationError
from monitoring import init_profiling, init_telemetry
from rate_limiter import RedisRateLimiter
from routers import admin, cart, orders, products
from services.session_service import SessionResolver
from storage.base import StorageBackend
from storage.factory import create_storage
from storage.seed import seed_catalog

logger = logging.getLogger(__name__)


def _instrument(app: FastAPI, storage: StorageBackend, http_client: httpx.AsyncClient, redis_client) -> None:
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

    FastAPIInstrumentor.instrument_app(app)
    HTTPXClientInstrumentor().instrument_client(http_client)

    engine = getattr(storage, "engine", None)
    if engine is not None:
        from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
        SQLAlchemyInstrumentor().instrument(engine=engine)

    if redis_client is not None:
        from opentelemetry.instrumentation.redis import RedisInstrumentor
        RedisInstrumentor().instrument()


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError):
        if exc.status_code >= 500:
            logger.error("Request failed", extra={
                "path": request.url.path,
                "code": exc.code,
                "error": exc.message
            })
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = []
        for error in exc.errors():
            loc = [str(part) for part in error.get("loc", ())]
            if loc:
                fields.append(loc[1] if len(loc) > 1 else loc[0])
        error = ValidationError("Invalid input", fields=fields)
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return JSONResponse(status_code=500, content={"error": "Internal server error", "code": "internal_error"})


def create_app(
    storage: Optional[StorageBackend] = None,
    redis_client: Optional[redis.Redis] = None,
    seed: Optional[bool] = None,
    rate_limit_per_minute: Optional[int] = None
) -> FastAPI:
    """
    Build the storefront application.

    ``storage`` and ``redis_client`` default to what the environment configures;
    passing them in lets callers (tests, scripts) inject their own. The storage
    backend is created once here or in the lifespan and shared by every request.
    """
    if redis_client is None and config.REDIS_URL:
        redis_client = redis.from_url(config.REDIS_URL, decode_responses=True)
    if seed is None:
        seed = config.SEED_SAMPLE_PRODUCTS

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting application...")

        backend = storage if storage is not None else create_storage()
        if seed:
            seed_catalog(backend)
        app.state.storage = backend

        app.state.session_resolver = SessionResolver(
            cookie_name=config.SESSION_COOKIE_NAME,
            max_age_seconds=config.SESSION_MAX_AGE_DAYS * 24 * 60 * 60,
            secure=config.SESSION_COOKIE_SECURE,
            redis_client=redis_client
        )

        http_client = httpx.AsyncClient(timeout=30.0)
        app.state.http_client = http_client

        if config.OTEL_ENABLED:
            init_telemetry()
            _instrument(app, backend, http_client, redis_client)
        init_profiling()

        logger.info("Application startup complete", extra={"storage": backend.name})

        yield

        logger.info("Shutting down application...")
        await http_client.aclose()
        if storage is None:
            backend.close()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Storefront Service",
        version=config.API_VERSION,
        lifespan=lifespan
    )

    if redis_client is not None:
        app.add_middleware(
            RedisRateLimiter,
            redis_client=redis_client,
            requests_per_minute=rate_limit_per_minute or config.RATE_LIMIT_PER_MINUTE
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)

    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint."""
        return {"status": "healthy", "storage": request.app.state.storage.name}

    app.include_router(products.router)
    app.include_router(cart.router)
    app.include_router(orders.router)
    app.include_router(admin.router)

    return app

