"""Order desk for albaranes captured by voice or chat.

This package provides the order model, the pricing and IVA calculator, the
review and export lifecycle towards the Factusol ERP, and the data behind the
printable delivery note.
"""

from .calculator import TAX_RATE, Totals, compute_totals
from .domain import (
    Client,
    ExportResult,
    Order,
    OrderAction,
    OrderItem,
    OrderStatus,
)
from .errors import (
    AlbaranError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from .services import AlbaranService, DeliveryNote

__all__ = [
    "TAX_RATE",
    "Totals",
    "compute_totals",
    "Client",
    "ExportResult",
    "Order",
    "OrderAction",
    "OrderItem",
    "OrderStatus",
    "AlbaranError",
    "InvalidTransitionError",
    "NotFoundError",
    "ValidationError",
    "AlbaranService",
    "DeliveryNote",
]
