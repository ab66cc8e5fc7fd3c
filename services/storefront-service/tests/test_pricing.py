from decimal import Decimal

import pytest

from services.pricing import compute_totals


def test_free_shipping_above_threshold():
    totals = compute_totals([(Decimal("60.00"), 2)])

    assert totals.subtotal == Decimal("120.00")
    assert totals.shipping == Decimal("0")
    assert totals.tax == Decimal("12.00")
    assert totals.total == Decimal("132.00")


def test_flat_shipping_at_or_below_threshold():
    totals = compute_totals([(Decimal("20.00"), 1)])

    assert totals.subtotal == Decimal("20.00")
    assert totals.shipping == Decimal("10.00")
    assert totals.tax == Decimal("2.00")
    assert totals.total == Decimal("32.00")


def test_exactly_one_hundred_still_pays_shipping():
    totals = compute_totals([(Decimal("25.00"), 4)])

    assert totals.shipping == Decimal("10.00")
    assert totals.total == Decimal("120.00")


def test_subtotal_is_summed_exactly_before_rounding():
    totals = compute_totals([(Decimal("0.335"), 1), (Decimal("0.335"), 1)])

    # Per-line rounding would give 0.34 + 0.34
    assert totals.subtotal == Decimal("0.67")


def test_tax_rounds_half_up():
    totals = compute_totals([(Decimal("0.05"), 1)])

    assert totals.tax == Decimal("0.01")
    assert totals.total == Decimal("10.06")


@pytest.mark.parametrize("lines", [
    [(Decimal("18.99"), 3), (Decimal("12.99"), 1)],
    [(Decimal("9.99"), 7)],
    [(Decimal("32.99"), 2), (Decimal("14.99"), 5), (Decimal("0.01"), 99)],
])
def test_total_is_sum_of_parts(lines):
    totals = compute_totals(lines)

    assert totals.total == totals.subtotal + totals.shipping + totals.tax
    assert totals.tax.as_tuple().exponent == -2
