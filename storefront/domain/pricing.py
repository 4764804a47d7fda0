# storefront/domain/pricing.py
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Tuple

from storefront.utils.settings import CheckoutConfig

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping_fee: Decimal
    tax: Decimal
    total_amount: Decimal


def compute_totals(lines: Iterable[Tuple[Decimal, int]], config: CheckoutConfig) -> OrderTotals:
    """
    Totals for (unit_price, quantity) pairs.

    Rounding to minor units happens once, after summing. The total is the sum
    of the rounded parts, so total == subtotal + shipping_fee + tax holds exactly.
    """
    subtotal = sum((Decimal(str(price)) * quantity for price, quantity in lines), Decimal("0"))

    shipping_fee = Decimal("0") if subtotal > config.free_shipping_threshold else config.flat_shipping_fee
    tax = subtotal * config.tax_rate

    subtotal, shipping_fee, tax = to_money(subtotal), to_money(shipping_fee), to_money(tax)
    return OrderTotals(
        subtotal=subtotal,
        shipping_fee=shipping_fee,
        tax=tax,
        total_amount=subtotal + shipping_fee + tax,
    )
