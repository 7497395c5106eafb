"""Export gateway contract for the Factusol ERP.

The order desk never speaks the ERP wire protocol itself. It hands an order,
its client and its lines to an :class:`ExportGateway` and only interprets the
two possible outcomes carried by :class:`~albaran_system.domain.ExportResult`.
Timeouts and transport errors are the gateway's business and must surface as
a failure result.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .calculator import compute_totals, line_subtotal, quantize_money
from .domain import Client, ExportResult, Order, OrderItem

logger = logging.getLogger(__name__)


def build_export_payload(
    order: Order, client: Client, items: Sequence[OrderItem]
) -> Dict[str, Any]:
    """Transport-neutral representation of an albarán for the ERP."""

    totals = compute_totals(items)
    return {
        "albaran": order.id,
        "fecha": order.date.isoformat(),
        "cliente": {
            "id": client.id,
            "nombre": client.name,
            "cif": client.cif,
            "direccion": client.address,
            "email": client.email,
        },
        "lineas": [
            {
                "codigo": item.code,
                "concepto": item.concept,
                "cantidad": item.quantity,
                "precio": str(item.price),
                "descuento": str(item.discount),
                "subtotal": str(quantize_money(line_subtotal(item))),
            }
            for item in items
        ],
        "base_imponible": str(quantize_money(totals.base)),
        "iva": str(quantize_money(totals.tax)),
        "total": str(quantize_money(totals.total)),
    }


class ExportGateway(ABC):
    """Abstract integration point with the ERP."""

    name = "factusol"

    @abstractmethod
    def submit(
        self, order: Order, client: Client, items: Sequence[OrderItem]
    ) -> ExportResult:
        """Send the albarán and report success or failure."""


class CallableExportGateway(ExportGateway):
    """Adapts a plain function receiving the export payload."""

    def __init__(self, handler: Callable[[Dict[str, Any]], ExportResult]) -> None:
        self._handler = handler

    def submit(
        self, order: Order, client: Client, items: Sequence[OrderItem]
    ) -> ExportResult:
        return self._handler(build_export_payload(order, client, items))


class ScriptedExportGateway(ExportGateway):
    """Gateway returning preconfigured outcomes, recording every submission.

    Outcomes can be set per order id; anything else falls back to ``default``.
    Useful for demos and tests where no ERP is reachable.
    """

    def __init__(
        self,
        default: Optional[ExportResult] = None,
        *,
        outcomes: Optional[Dict[str, ExportResult]] = None,
        hook: Optional[Callable[[Order], None]] = None,
    ) -> None:
        self.default = default or ExportResult.success()
        self.outcomes: Dict[str, ExportResult] = dict(outcomes or {})
        self.submissions: List[Tuple[str, Dict[str, Any]]] = []
        self._hook = hook
        self._lock = threading.Lock()

    def fail_order(self, order_id: str, reason: str) -> None:
        self.outcomes[order_id] = ExportResult.failure(reason)

    def submit(
        self, order: Order, client: Client, items: Sequence[OrderItem]
    ) -> ExportResult:
        payload = build_export_payload(order, client, items)
        with self._lock:
            self.submissions.append((order.id, payload))
        if self._hook is not None:
            self._hook(order)
        return self.outcomes.get(order.id, self.default)


class FailingExportGateway(ExportGateway):
    """Gateway for environments without ERP access; every export fails."""

    def __init__(self, reason: str = "Factusol endpoint is not configured") -> None:
        self.reason = reason

    def submit(
        self, order: Order, client: Client, items: Sequence[OrderItem]
    ) -> ExportResult:
        logger.warning("Export of %s refused: %s", order.id, self.reason)
        return ExportResult.failure(self.reason)


__all__ = [
    "ExportGateway",
    "CallableExportGateway",
    "ScriptedExportGateway",
    "FailingExportGateway",
    "build_export_payload",
]
