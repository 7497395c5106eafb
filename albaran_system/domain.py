"""Core data structures for the albarán order desk."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import List, Optional

from .errors import ValidationError


class OrderStatus(str, Enum):
    """Lifecycle stages of an albarán between capture and the ERP."""

    MANUAL_REVIEW = "MANUAL_REVIEW"
    PENDING_FACTUSOL = "PENDING_FACTUSOL"
    COMPLETED = "COMPLETED"
    FACTUSOL_ERROR = "FACTUSOL_ERROR"

    @property
    def label(self) -> str:
        return {
            OrderStatus.MANUAL_REVIEW: "Revisión manual",
            OrderStatus.PENDING_FACTUSOL: "Pendiente Factusol",
            OrderStatus.COMPLETED: "Completado",
            OrderStatus.FACTUSOL_ERROR: "Error Factusol",
        }[self]


class OrderAction(str, Enum):
    """User actions the dashboard may offer for an order."""

    REVIEW = "review"
    EXPORT = "export"
    VIEW_DOCUMENT = "view_document"
    VIEW_LOG = "view_log"


class Trigger(str, Enum):
    """Triggers understood by the lifecycle engine."""

    REVIEW_AND_SAVE = "review_and_save"
    EXPORT_TO_ERP = "export_to_erp"


@dataclass(frozen=True, slots=True)
class Client:
    """Client master data owned by the client directory."""

    id: str
    name: str
    address: str
    cif: str
    email: str = ""


@dataclass(slots=True)
class OrderItem:
    """A single line of an albarán."""

    id: int
    code: str
    concept: str
    quantity: int
    price: Decimal
    discount: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        # Accept ints, floats and strings from callers but keep Decimal internally.
        try:
            if not isinstance(self.price, Decimal):
                self.price = Decimal(str(self.price))
            if not isinstance(self.discount, Decimal):
                self.discount = Decimal(str(self.discount))
        except InvalidOperation as exc:
            raise ValidationError(
                f"Item {self.id!r}: price and discount must be numbers"
            ) from exc


@dataclass(slots=True)
class Order:
    """An albarán moving through review and export."""

    id: str
    client_id: str
    date: date
    items: List[OrderItem] = field(default_factory=list)
    status: OrderStatus = OrderStatus.MANUAL_REVIEW
    total: Decimal = Decimal("0")
    failure_reason: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Outcome reported by the export gateway."""

    ok: bool
    reason: str = ""
    reference: str = ""

    @classmethod
    def success(cls, reference: str = "") -> "ExportResult":
        return cls(ok=True, reference=reference)

    @classmethod
    def failure(cls, reason: str) -> "ExportResult":
        return cls(ok=False, reason=reason or "Unknown gateway failure")


__all__ = [
    "OrderStatus",
    "OrderAction",
    "Trigger",
    "Client",
    "OrderItem",
    "Order",
    "ExportResult",
]
