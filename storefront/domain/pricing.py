# storefront/domain/pricing.py
"""Cart aggregate math.

Always computed from freshly read items; nothing here is stored.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from storefront.utils.settings import DELIVERY_FEE

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class CartTotals:
    total_items: int
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal


def effective_price(price: Decimal, sale_price: Decimal | None) -> Decimal:
    return sale_price if sale_price is not None else price


def to_cents(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def compute_totals(lines: Iterable[tuple[Decimal, int]], delivery_fee: Decimal = DELIVERY_FEE) -> CartTotals:
    """lines: (unit price, quantity) pairs."""
    total_items = 0
    subtotal = ZERO
    for unit_price, quantity in lines:
        total_items += quantity
        subtotal += unit_price * quantity

    subtotal = subtotal.quantize(CENT)
    fee = delivery_fee.quantize(CENT) if total_items > 0 else ZERO
    return CartTotals(
        total_items=total_items,
        subtotal=subtotal,
        delivery_fee=fee,
        total=subtotal + fee,
    )
