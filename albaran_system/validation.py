"""Invariant checks for line items submitted by callers."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Sequence

from .domain import OrderItem
from .errors import ValidationError


def validate_item(item: OrderItem) -> None:
    label = f"Item {item.id!r}"
    quantity = item.quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(f"{label}: quantity must be a whole number")
    if quantity < 1:
        raise ValidationError(f"{label}: quantity must be at least 1")
    price, discount = item.price, item.discount
    if not isinstance(price, Decimal) or not isinstance(discount, Decimal):
        raise ValidationError(f"{label}: price and discount must be decimal amounts")
    if not price.is_finite() or price < 0:
        raise ValidationError(f"{label}: price must be a non-negative amount")
    if not discount.is_finite() or discount < 0 or discount > 100:
        raise ValidationError(f"{label}: discount must be between 0 and 100")


def validate_items(items: Sequence[OrderItem]) -> List[OrderItem]:
    """Validate a full batch before anything is applied.

    Returns the items as a new list so callers never keep a reference to the
    caller-owned sequence.
    """

    if not items:
        raise ValidationError("An order must contain at least one item")
    seen = set()
    for item in items:
        if item.id in seen:
            raise ValidationError(f"Item id {item.id!r} appears more than once")
        seen.add(item.id)
        validate_item(item)
    return list(items)


__all__ = ["validate_item", "validate_items"]
