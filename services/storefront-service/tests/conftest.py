"""Shared pytest fixtures for storefront tests."""
import os
import uuid
from decimal import Decimal

import fakeredis
import pytest
from fastapi.testclient import TestClient

from application import create_app
from database import create_db_engine
from entities import Product, new_id
from services.cart_service import CartService
from services.catalog_service import CatalogService
from services.order_service import OrderService
from storage.memory import MemoryStorage
from storage.sql import SQLStorage

SHIPPING = {
    "shipping_name": "Ada Lovelace",
    "shipping_email": "ada@example.com",
    "shipping_address": "12 Analytical Row",
    "shipping_city": "London",
    "shipping_zip": "N1 9GU",
    "shipping_country": "UK",
}


def _firestore_storage():
    from google.cloud import firestore
    from storage.firestore import FirestoreStorage

    client = firestore.Client(project=os.getenv("FIRESTORE_TEST_PROJECT", "storefront-test"))
    return FirestoreStorage(client, collection_prefix=f"test-{uuid.uuid4().hex[:8]}-")


@pytest.fixture(params=[
    "memory",
    "sql",
    pytest.param("firestore", marks=pytest.mark.skipif(
        not os.getenv("FIRESTORE_EMULATOR_HOST"),
        reason="requires the Firestore emulator"
    )),
])
def storage(request, tmp_path):
    """Every storage backend, each starting empty."""
    if request.param == "memory":
        backend = MemoryStorage()
    elif request.param == "sql":
        backend = SQLStorage(create_db_engine(f"sqlite:///{tmp_path / 'store.db'}"))
    else:
        backend = _firestore_storage()
    yield backend
    backend.close()


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def make_product(storage):
    """Insert a product into ``storage``; keyword arguments override defaults."""
    def _make(**overrides):
        values = {
            "id": new_id(),
            "name": "Golden Flax Seeds",
            "description": "Omega-3 rich seeds",
            "price": Decimal("20.00"),
            "category": "Grains",
            "image": "https://img.example/flax.png",
            "images": ("https://img.example/flax.png",),
        }
        values.update(overrides)
        return storage.create_product(Product(**values))
    return _make


@pytest.fixture
def catalog(storage):
    return CatalogService(storage)


@pytest.fixture
def cart_service(storage, catalog):
    return CartService(storage, catalog)


@pytest.fixture
def order_service(storage, cart_service):
    return OrderService(storage, cart_service)


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def app(memory_storage):
    return create_app(storage=memory_storage, seed=False)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def product_payload():
    return {
        "name": "Premium Organic Almonds",
        "description": "Raw and unsalted",
        "price": 60.00,
        "category": "Nuts",
        "image": "https://img.example/almonds.png",
        "tags": ["Organic", "Raw"],
    }


@pytest.fixture
def shipping():
    return dict(SHIPPING)
