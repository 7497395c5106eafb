"""Exceptions raised by the albarán order desk."""

from __future__ import annotations

from typing import Optional


class AlbaranError(RuntimeError):
    """Base exception for rejected requests."""


class ValidationError(AlbaranError):
    """Raised when an order or line item violates its invariants."""


class NotFoundError(AlbaranError):
    """Raised when a referenced order or client does not exist."""


class InvalidTransitionError(AlbaranError):
    """Raised when a trigger is not allowed for the order's current status."""

    def __init__(
        self,
        message: str,
        *,
        order_id: Optional[str] = None,
        status: Optional[str] = None,
        trigger: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.order_id = order_id
        self.status = status
        self.trigger = trigger


__all__ = [
    "AlbaranError",
    "ValidationError",
    "NotFoundError",
    "InvalidTransitionError",
]
