"""Pricing, discount and IVA arithmetic for albaranes.

All functions work on :class:`decimal.Decimal` at full precision. Rounding to
cents is a display concern and only happens through :func:`quantize_money`.
The functions assume valid items; validation lives in
:mod:`albaran_system.validation`.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Iterable

from .domain import OrderItem

TAX_RATE = Decimal("0.21")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class Totals:
    """Base imponible, IVA and grand total of a list of items."""

    base: Decimal
    tax: Decimal
    total: Decimal

    def rounded(self) -> "Totals":
        return Totals(
            base=quantize_money(self.base),
            tax=quantize_money(self.tax),
            total=quantize_money(self.total),
        )


def line_subtotal(item: OrderItem) -> Decimal:
    """Return ``quantity * price * (1 - discount / 100)`` for one line."""

    return Decimal(item.quantity) * item.price * (1 - item.discount / HUNDRED)


def order_base(items: Iterable[OrderItem]) -> Decimal:
    return sum((line_subtotal(item) for item in items), Decimal("0"))


def order_tax(items: Iterable[OrderItem], tax_rate: Decimal = TAX_RATE) -> Decimal:
    return order_base(items) * tax_rate


def order_total(items: Iterable[OrderItem], tax_rate: Decimal = TAX_RATE) -> Decimal:
    return compute_totals(items, tax_rate).total


def compute_totals(items: Iterable[OrderItem], tax_rate: Decimal = TAX_RATE) -> Totals:
    base = order_base(items)
    tax = base * tax_rate
    return Totals(base=base, tax=tax, total=base + tax)


def totals_from_total(total: Decimal, tax_rate: Decimal = TAX_RATE) -> Totals:
    """Re-derive the breakdown from a persisted tax-inclusive total."""

    base = total / (1 + tax_rate)
    return Totals(base=base, tax=total - base, total=total)


def quantize_money(value: Decimal) -> Decimal:
    with localcontext() as context:
        # Room for every integer digit plus the two decimals.
        context.prec = max(context.prec, value.adjusted() + 4)
        return value.quantize(CENT, rounding=ROUND_HALF_UP)


__all__ = [
    "TAX_RATE",
    "Totals",
    "line_subtotal",
    "order_base",
    "order_tax",
    "order_total",
    "compute_totals",
    "totals_from_total",
    "quantize_money",
]
