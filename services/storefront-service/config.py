"""Configuration settings for the storefront service."""
import os
from typing import List, Optional


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Storage Configuration
# One of: auto, memory, sql, firestore
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "auto").strip().lower()
DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")
SEED_SAMPLE_PRODUCTS = _env_flag("SEED_SAMPLE_PRODUCTS", "true")

# Firestore Configuration
FIREBASE_PROJECT_ID: Optional[str] = os.getenv("FIREBASE_PROJECT_ID")
FIREBASE_CLIENT_EMAIL: Optional[str] = os.getenv("FIREBASE_CLIENT_EMAIL")
FIREBASE_PRIVATE_KEY: Optional[str] = os.getenv("FIREBASE_PRIVATE_KEY")
FIREBASE_COLLECTION_PREFIX = (os.getenv("FIREBASE_COLLECTION_PREFIX") or "").strip()

# Redis (session registry + rate limiting)
REDIS_URL: Optional[str] = os.getenv("REDIS_URL")
RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "600"))

# Sessions
ENVIRONMENT = os.getenv("ENVIRONMENT", "development").strip().lower()
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "sessionId")
SESSION_MAX_AGE_DAYS = int(os.getenv("SESSION_MAX_AGE_DAYS", "30"))
SESSION_COOKIE_SECURE = ENVIRONMENT == "production"

# Admin
ADMIN_TOKEN: Optional[str] = os.getenv("ADMIN_TOKEN")

# Image hosting
IMGBB_API_KEY: Optional[str] = os.getenv("IMGBB_API_KEY")
IMGBB_UPLOAD_URL = os.getenv("IMGBB_UPLOAD_URL", "https://api.imgbb.com/1/upload")

# Observability
OTEL_ENABLED = _env_flag("OTEL_ENABLED", "false")
OTEL_EXPORTER_OTLP_ENDPOINT = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")
PYROSCOPE_SERVER: Optional[str] = os.getenv("PYROSCOPE_SERVER_ADDRESS")

# CORS
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",")
    if origin.strip()
]

# Application Settings
SERVICE_NAME = "storefront-service"
API_VERSION = "1.0.0"

# Cart and pricing policy
MAX_ITEM_QUANTITY = 99
# Distinct products per cart
MAX_CART_LINES = 100
