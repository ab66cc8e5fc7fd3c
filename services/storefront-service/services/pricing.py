"""Order pricing policy."""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Tuple

from entities import CENT

FREE_SHIPPING_THRESHOLD = Decimal("100")
SHIPPING_FEE = Decimal("10.00")
TAX_RATE = Decimal("0.10")


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal


def compute_totals(lines: Iterable[Tuple[Decimal, int]]) -> OrderTotals:
    """
    Price a set of ``(unit_price, quantity)`` lines.

    The subtotal is summed exactly and rounded once at the end. Shipping is free
    strictly above the threshold. Tax is a flat rate on the subtotal; the total
    is rounded to cents, which makes it equal to subtotal + shipping + the
    half-up rounded tax.
    """
    raw_subtotal = sum((price * quantity for price, quantity in lines), Decimal("0"))
    subtotal = raw_subtotal.quantize(CENT, rounding=ROUND_HALF_UP)

    shipping = Decimal("0.00") if subtotal > FREE_SHIPPING_THRESHOLD else SHIPPING_FEE
    raw_tax = subtotal * TAX_RATE
    total = (subtotal + shipping + raw_tax).quantize(CENT, rounding=ROUND_HALF_UP)

    return OrderTotals(
        subtotal=subtotal,
        shipping=shipping,
        tax=raw_tax.quantize(CENT, rounding=ROUND_HALF_UP),
        total=total,
    )
