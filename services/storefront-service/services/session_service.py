"""Anonymous session resolution."""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

import redis

from monitoring import sessions_created_counter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionCookie:
    """Instruction to attach a session token to the outgoing response."""
    name: str
    value: str
    max_age: int
    secure: bool
    httponly: bool = True
    samesite: str = "lax"


@dataclass(frozen=True)
class SessionResolution:
    session_id: str
    cookie: Optional[SessionCookie] = None

    @property
    def is_new(self) -> bool:
        return self.cookie is not None


def _is_token(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


class SessionResolver:
    """
    Map an inbound session token to a session id, minting one when needed.

    Resolution never mutates the response itself; a newly issued token comes back
    as a ``SessionCookie`` for the HTTP layer to attach. With a Redis client,
    issued tokens are registered with the session lifetime and unknown or
    expired tokens are replaced. Without one, the cookie expiry is trusted.
    """

    KEY_PREFIX = "session:"

    def __init__(
        self,
        cookie_name: str,
        max_age_seconds: int,
        secure: bool,
        redis_client: Optional[redis.Redis] = None
    ):
        self.cookie_name = cookie_name
        self.max_age_seconds = max_age_seconds
        self.secure = secure
        self.redis_client = redis_client

    def resolve(self, token: Optional[str]) -> SessionResolution:
        if _is_token(token) and self._is_active(token):
            return SessionResolution(session_id=token)
        return self._issue()

    def _is_active(self, token: str) -> bool:
        if self.redis_client is None:
            return True
        key = f"{self.KEY_PREFIX}{token}"
        try:
            # Sliding expiry: every request that presents the token renews it
            return bool(self.redis_client.expire(key, self.max_age_seconds))
        except redis.RedisError as e:
            logger.error("Session registry unavailable, trusting cookie", extra={"error": str(e)})
            return True

    def _issue(self) -> SessionResolution:
        session_id = str(uuid.uuid4())
        if self.redis_client is not None:
            try:
                self.redis_client.set(f"{self.KEY_PREFIX}{session_id}", 1, ex=self.max_age_seconds)
            except redis.RedisError as e:
                logger.error("Failed to register session", extra={"error": str(e)})

        sessions_created_counter.add(1)
        logger.info("Issued new session", extra={"session_id": session_id})

        return SessionResolution(
            session_id=session_id,
            cookie=SessionCookie(
                name=self.cookie_name,
                value=session_id,
                max_age=self.max_age_seconds,
                secure=self.secure,
            )
        )
