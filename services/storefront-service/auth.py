"""Admin authentication."""
from typing import Optional
import hmac
import logging

from fastapi import Header

from config import ADMIN_TOKEN
from errors import AuthenticationError

logger = logging.getLogger(__name__)


def verify_admin_token(authorization: Optional[str] = Header(None)) -> None:
    """
    Guard admin routes with a shared bearer token.

    When ``ADMIN_TOKEN`` is not configured the admin panel is open, as in local
    development.

    Raises:
        AuthenticationError: If a token is configured and the header is missing or wrong
    """
    if not ADMIN_TOKEN:
        return

    if authorization is None:
        logger.warning("Admin authentication failed: Missing authorization header")
        raise AuthenticationError("Missing authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.warning("Admin authentication failed: Invalid authorization header format")
        raise AuthenticationError("Invalid authorization header format")

    if not hmac.compare_digest(parts[1], ADMIN_TOKEN):
        logger.warning("Admin authentication failed: Invalid token", extra={
            "token_prefix": parts[1][:4] + "..."
        })
        raise AuthenticationError("Invalid token")
