import uuid

import pytest
import redis

from services.session_service import SessionResolver

MAX_AGE = 30 * 24 * 60 * 60


@pytest.fixture
def resolver():
    return SessionResolver(cookie_name="sessionId", max_age_seconds=MAX_AGE, secure=False)


@pytest.fixture
def registry_resolver(redis_client):
    return SessionResolver(
        cookie_name="sessionId",
        max_age_seconds=MAX_AGE,
        secure=True,
        redis_client=redis_client
    )


def test_first_contact_issues_cookie(resolver):
    resolution = resolver.resolve(None)

    assert resolution.is_new
    cookie = resolution.cookie
    assert cookie.value == resolution.session_id
    assert cookie.name == "sessionId"
    assert cookie.max_age == MAX_AGE
    assert cookie.httponly is True
    assert cookie.samesite == "lax"
    assert cookie.secure is False
    uuid.UUID(resolution.session_id)


def test_existing_token_is_reused(resolver):
    token = str(uuid.uuid4())

    resolution = resolver.resolve(token)

    assert resolution.session_id == token
    assert resolution.cookie is None


@pytest.mark.parametrize("token", ["", "not-a-uuid", "../../etc/passwd"])
def test_malformed_token_is_replaced(resolver, token):
    resolution = resolver.resolve(token)

    assert resolution.is_new
    assert resolution.session_id != token


def test_every_new_session_is_distinct(resolver):
    ids = {resolver.resolve(None).session_id for _ in range(20)}

    assert len(ids) == 20


def test_registry_records_issued_sessions(registry_resolver, redis_client):
    resolution = registry_resolver.resolve(None)

    key = f"session:{resolution.session_id}"
    assert redis_client.exists(key)
    assert 0 < redis_client.ttl(key) <= MAX_AGE
    assert resolution.cookie.secure is True


def test_registered_token_is_reused_and_refreshed(registry_resolver, redis_client):
    session_id = registry_resolver.resolve(None).session_id
    key = f"session:{session_id}"
    redis_client.expire(key, 10)

    resolution = registry_resolver.resolve(session_id)

    assert resolution.session_id == session_id
    assert not resolution.is_new
    assert redis_client.ttl(key) > 10


def test_unregistered_token_is_replaced(registry_resolver):
    stale = str(uuid.uuid4())

    resolution = registry_resolver.resolve(stale)

    assert resolution.is_new
    assert resolution.session_id != stale


class _BrokenRedis:
    def expire(self, *args, **kwargs):
        raise redis.ConnectionError("down")

    def set(self, *args, **kwargs):
        raise redis.ConnectionError("down")


def test_registry_outage_trusts_cookie():
    resolver = SessionResolver("sessionId", MAX_AGE, False, redis_client=_BrokenRedis())
    token = str(uuid.uuid4())

    assert resolver.resolve(token).session_id == token
    assert resolver.resolve(None).is_new
