from decimal import Decimal

import pytest

from errors import CartChangedError, EmptyCartError, ProductMissingError, StorageError, ValidationError
from services.cart_service import CartService
from services.catalog_service import CatalogService
from services.order_service import OrderService
from storage.memory import MemoryStorage


def test_place_order_prices_and_clears_cart(order_service, cart_service, make_product, shipping):
    product = make_product(price=Decimal("60.00"))
    cart_service.add_to_cart("session-a", product.id, 2)

    order = order_service.place_order("session-a", shipping)

    assert order.subtotal == Decimal("120.00")
    assert order.shipping == Decimal("0")
    assert order.tax == Decimal("12.00")
    assert order.total == Decimal("132.00")
    assert [(i.product_id, i.quantity, i.unit_price) for i in order.items] == [
        (product.id, 2, Decimal("60.00"))
    ]
    assert order.contact.country == "UK"
    assert cart_service.list_for_session("session-a") == []


def test_small_order_pays_shipping(order_service, cart_service, make_product, shipping):
    product = make_product(price=Decimal("20.00"))
    cart_service.add_to_cart("session-a", product.id, 1)

    order = order_service.place_order("session-a", shipping)

    assert order.shipping == Decimal("10.00")
    assert order.total == Decimal("32.00")


def test_snapshot_survives_catalog_changes(order_service, cart_service, catalog, make_product, shipping):
    product = make_product(price=Decimal("20.00"), name="Flax")
    cart_service.add_to_cart("session-a", product.id, 3)
    order = order_service.place_order("session-a", shipping)

    catalog.update_product(product.id, {"price": "99.00", "name": "Renamed"})
    catalog.delete_product(product.id)

    [stored] = order_service.list_orders("session-a")
    assert stored.id == order.id
    assert stored.items[0].unit_price == Decimal("20.00")
    assert stored.items[0].name == "Flax"
    assert stored.total == order.total


def test_other_sessions_cart_untouched(order_service, cart_service, make_product, shipping):
    product = make_product()
    cart_service.add_to_cart("session-a", product.id, 1)
    cart_service.add_to_cart("session-b", product.id, 4)

    order_service.place_order("session-a", shipping)

    [line] = cart_service.list_for_session("session-b")
    assert line.item.quantity == 4
    assert order_service.list_orders("session-b") == []


def test_empty_cart_creates_no_order(order_service, shipping):
    with pytest.raises(EmptyCartError):
        order_service.place_order("session-a", shipping)

    assert order_service.list_orders("session-a") == []


def test_missing_shipping_fields(order_service, cart_service, make_product, shipping):
    product = make_product()
    cart_service.add_to_cart("session-a", product.id, 1)
    del shipping["shipping_city"]
    shipping["shipping_email"] = "not-an-email"

    with pytest.raises(ValidationError) as exc_info:
        order_service.place_order("session-a", shipping)

    assert exc_info.value.fields == ["shipping_city", "shipping_email"]
    assert len(cart_service.list_for_session("session-a")) == 1


def test_deleted_product_blocks_checkout(order_service, cart_service, catalog, make_product, shipping):
    product = make_product()
    cart_service.add_to_cart("session-a", product.id, 1)
    catalog.delete_product(product.id)

    with pytest.raises(ProductMissingError):
        order_service.place_order("session-a", shipping)

    assert order_service.list_orders("session-a") == []
    assert len(cart_service.list_for_session("session-a")) == 1


def test_consecutive_orders_listed_newest_first(order_service, cart_service, make_product, shipping):
    product = make_product()
    cart_service.add_to_cart("session-a", product.id, 1)
    first = order_service.place_order("session-a", shipping)
    cart_service.add_to_cart("session-a", product.id, 2)
    second = order_service.place_order("session-a", shipping)

    assert [o.id for o in order_service.list_orders("session-a")] == [second.id, first.id]


class _FailingOrderStorage(MemoryStorage):
    def create_order(self, order):
        raise StorageError("Failed to save order")


def test_failed_order_write_keeps_cart(shipping):
    storage = _FailingOrderStorage()
    catalog = CatalogService(storage)
    cart_service = CartService(storage, catalog)
    orders = OrderService(storage, cart_service)
    product = catalog.create_product({
        "name": "Almonds",
        "description": "Raw",
        "price": "18.99",
        "category": "Nuts",
        "image": "https://img.example/almonds.png",
    })
    cart_service.add_to_cart("session-a", product.id, 2)

    with pytest.raises(StorageError):
        orders.place_order("session-a", shipping)

    assert len(cart_service.list_for_session("session-a")) == 1


def _after_each_read(monkeypatch, cart_service, action):
    """Run ``action`` right after checkout reads the cart, before the order is written."""
    read = cart_service.list_for_session
    calls = []

    def list_then_act(session_id):
        lines = read(session_id)
        calls.append(session_id)
        action(len(calls), lines)
        return lines

    monkeypatch.setattr(cart_service, "list_for_session", list_then_act)
    return calls


def test_item_added_during_checkout_stays_in_cart(
    monkeypatch, order_service, cart_service, make_product, shipping
):
    almonds = make_product(name="Almonds")
    flax = make_product(name="Flax")
    cart_service.add_to_cart("session-a", almonds.id, 2)

    def add_flax(call, lines):
        if call == 1:
            cart_service.add_to_cart("session-a", flax.id, 3)

    _after_each_read(monkeypatch, cart_service, add_flax)
    order = order_service.place_order("session-a", shipping)
    monkeypatch.undo()

    assert [(i.product_id, i.quantity) for i in order.items] == [(almonds.id, 2)]
    [line] = cart_service.list_for_session("session-a")
    assert (line.item.product_id, line.item.quantity) == (flax.id, 3)


def test_quantity_changed_during_checkout_is_ordered(
    monkeypatch, order_service, cart_service, make_product, shipping
):
    product = make_product(price=Decimal("20.00"))
    line = cart_service.add_to_cart("session-a", product.id, 2)

    def bump(call, lines):
        if call == 1:
            cart_service.update_quantity("session-a", line.item.id, 5)

    calls = _after_each_read(monkeypatch, cart_service, bump)
    order = order_service.place_order("session-a", shipping)
    monkeypatch.undo()

    assert len(calls) == 2
    assert order.items[0].quantity == 5
    assert order.subtotal == Decimal("100.00")
    assert cart_service.list_for_session("session-a") == []


def test_checkout_gives_up_when_cart_keeps_changing(
    monkeypatch, order_service, cart_service, make_product, shipping
):
    product = make_product()
    line = cart_service.add_to_cart("session-a", product.id, 1)

    def bump(call, lines):
        cart_service.update_quantity("session-a", line.item.id, call + 1)

    _after_each_read(monkeypatch, cart_service, bump)
    with pytest.raises(CartChangedError):
        order_service.place_order("session-a", shipping)
    monkeypatch.undo()

    assert order_service.list_orders("session-a") == []
    [kept] = cart_service.list_for_session("session-a")
    assert kept.item.quantity == 4
