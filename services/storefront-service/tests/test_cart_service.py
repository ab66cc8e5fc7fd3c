from decimal import Decimal

import pytest

from errors import (
    CartLineLimitExceededError,
    NotFoundError,
    OutOfStockError,
    QuantityLimitExceededError,
    ValidationError,
)


def test_add_creates_line_with_live_product(cart_service, make_product):
    product = make_product()

    line = cart_service.add_to_cart("session-a", product.id, 3)

    assert line.item.quantity == 3
    assert line.product == product
    assert line.line_total == Decimal("60.00")


def test_repeated_adds_merge(cart_service, make_product):
    product = make_product()

    cart_service.add_to_cart("session-a", product.id, 2)
    cart_service.add_to_cart("session-a", product.id, 5)

    [line] = cart_service.list_for_session("session-a")
    assert line.item.quantity == 7


def test_merge_beyond_limit_is_rejected_and_quantity_kept(cart_service, make_product):
    product = make_product()
    cart_service.add_to_cart("session-a", product.id, 95)

    with pytest.raises(QuantityLimitExceededError):
        cart_service.add_to_cart("session-a", product.id, 10)

    [line] = cart_service.list_for_session("session-a")
    assert line.item.quantity == 95


@pytest.mark.parametrize("quantity", [0, -1, 100, True, 2.5])
def test_invalid_quantity(cart_service, make_product, quantity):
    product = make_product()

    with pytest.raises(ValidationError) as exc_info:
        cart_service.add_to_cart("session-a", product.id, quantity)

    assert exc_info.value.fields == ["quantity"]
    assert cart_service.list_for_session("session-a") == []


def test_unknown_product(cart_service):
    with pytest.raises(NotFoundError):
        cart_service.add_to_cart("session-a", "does-not-exist", 1)


def test_out_of_stock_product(cart_service, make_product):
    product = make_product(in_stock=False)

    with pytest.raises(OutOfStockError):
        cart_service.add_to_cart("session-a", product.id, 1)

    assert cart_service.list_for_session("session-a") == []


def test_update_quantity_overwrites(cart_service, make_product):
    product = make_product()
    line = cart_service.add_to_cart("session-a", product.id, 2)

    updated = cart_service.update_quantity("session-a", line.item.id, 9)

    assert updated.item.quantity == 9
    assert updated.line_total == Decimal("180.00")


def test_update_quantity_validates_range(cart_service, make_product):
    product = make_product()
    line = cart_service.add_to_cart("session-a", product.id, 2)

    with pytest.raises(ValidationError):
        cart_service.update_quantity("session-a", line.item.id, 0)

    assert cart_service.list_for_session("session-a")[0].item.quantity == 2


def test_other_sessions_items_look_missing(cart_service, make_product):
    product = make_product()
    line = cart_service.add_to_cart("session-a", product.id, 2)

    with pytest.raises(NotFoundError):
        cart_service.update_quantity("session-b", line.item.id, 5)
    with pytest.raises(NotFoundError):
        cart_service.remove_item("session-b", line.item.id)

    assert cart_service.list_for_session("session-a")[0].item.quantity == 2


def test_remove_item(cart_service, make_product):
    product = make_product()
    line = cart_service.add_to_cart("session-a", product.id, 2)

    cart_service.remove_item("session-a", line.item.id)

    assert cart_service.list_for_session("session-a") == []
    with pytest.raises(NotFoundError):
        cart_service.remove_item("session-a", line.item.id)


def test_listing_reflects_live_prices(cart_service, catalog, make_product):
    product = make_product()
    cart_service.add_to_cart("session-a", product.id, 2)

    catalog.update_product(product.id, {"price": "25.00"})

    [line] = cart_service.list_for_session("session-a")
    assert line.product.price == Decimal("25.00")
    assert line.line_total == Decimal("50.00")


def test_deleted_product_line_is_listed_and_removable(cart_service, catalog, make_product):
    product = make_product()
    line = cart_service.add_to_cart("session-a", product.id, 2)

    catalog.delete_product(product.id)

    [orphan] = cart_service.list_for_session("session-a")
    assert orphan.product is None
    assert orphan.line_total is None
    cart_service.remove_item("session-a", line.item.id)
    assert cart_service.list_for_session("session-a") == []


def test_clear_is_idempotent(cart_service, make_product):
    product = make_product()
    cart_service.add_to_cart("session-a", product.id, 2)

    assert cart_service.clear("session-a") == 1
    assert cart_service.clear("session-a") == 0


def test_distinct_products_are_capped(monkeypatch, cart_service, make_product):
    monkeypatch.setattr("services.cart_service.MAX_CART_LINES", 2)
    almonds = make_product(name="Almonds")
    flax = make_product(name="Flax")
    chia = make_product(name="Chia")
    cart_service.add_to_cart("session-a", almonds.id, 1)
    cart_service.add_to_cart("session-a", flax.id, 1)

    with pytest.raises(CartLineLimitExceededError):
        cart_service.add_to_cart("session-a", chia.id, 1)

    line = cart_service.add_to_cart("session-a", flax.id, 2)
    assert line.item.quantity == 3
    assert len(cart_service.list_for_session("session-a")) == 2
    cart_service.add_to_cart("session-b", chia.id, 1)
