"""Order lifecycle state machine.

::

    MANUAL_REVIEW --review_and_save--> PENDING_FACTUSOL
    PENDING_FACTUSOL --export_to_erp--> COMPLETED | FACTUSOL_ERROR

``FACTUSOL_ERROR`` only accepts ``export_to_erp`` again when export retries are
enabled in the configuration. Every other (status, trigger) pair is rejected
with :class:`InvalidTransitionError` and leaves the order untouched.
"""

from __future__ import annotations

import logging
import threading
from decimal import Decimal
from typing import Dict, FrozenSet, Optional, Sequence, Tuple

from .calculator import TAX_RATE, order_total
from .directory import ClientDirectory
from .domain import Client, ExportResult, Order, OrderAction, OrderItem, OrderStatus, Trigger
from .errors import InvalidTransitionError
from .gateway import ExportGateway
from .repository import OrderRepository
from .validation import validate_items

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[Tuple[OrderStatus, Trigger], FrozenSet[OrderStatus]] = {
    (OrderStatus.MANUAL_REVIEW, Trigger.REVIEW_AND_SAVE): frozenset(
        {OrderStatus.PENDING_FACTUSOL}
    ),
    (OrderStatus.PENDING_FACTUSOL, Trigger.EXPORT_TO_ERP): frozenset(
        {OrderStatus.COMPLETED, OrderStatus.FACTUSOL_ERROR}
    ),
}

RETRY_TRANSITION = (OrderStatus.FACTUSOL_ERROR, Trigger.EXPORT_TO_ERP)

_ACTIONS = {
    OrderStatus.MANUAL_REVIEW: (OrderAction.REVIEW,),
    OrderStatus.PENDING_FACTUSOL: (OrderAction.EXPORT,),
    OrderStatus.COMPLETED: (OrderAction.VIEW_DOCUMENT,),
    OrderStatus.FACTUSOL_ERROR: (OrderAction.VIEW_LOG,),
}


class OrderLifecycleEngine:
    """Applies status transitions and their side effects to stored orders."""

    def __init__(
        self,
        orders: OrderRepository,
        clients: ClientDirectory,
        gateway: ExportGateway,
        *,
        tax_rate: Decimal = TAX_RATE,
        allow_export_retry: bool = False,
    ) -> None:
        self.orders = orders
        self.clients = clients
        self.gateway = gateway
        self.tax_rate = tax_rate
        self.allow_export_retry = allow_export_retry
        self._export_locks: Dict[str, threading.Lock] = {}
        self._export_locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def can_transition(self, status: OrderStatus, trigger: Trigger) -> bool:
        if (status, trigger) in TRANSITIONS:
            return True
        return self.allow_export_retry and (status, trigger) == RETRY_TRANSITION

    def legal_actions(self, status: OrderStatus) -> Tuple[OrderAction, ...]:
        actions = _ACTIONS[status]
        if status == OrderStatus.FACTUSOL_ERROR and self.allow_export_retry:
            actions = (OrderAction.EXPORT,) + actions
        return actions

    def _require(self, order: Order, trigger: Trigger) -> None:
        if not self.can_transition(order.status, trigger):
            logger.warning(
                "Rejected %s on %s: status is %s", trigger.value, order.id, order.status.value
            )
            raise InvalidTransitionError(
                f"Cannot {trigger.value} order {order.id} in status {order.status.value}",
                order_id=order.id,
                status=order.status.value,
                trigger=trigger.value,
            )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def review_and_save(self, order_id: str, edited_items: Sequence[OrderItem]) -> Order:
        """Commit a reviewed item list and mark the order ready for export.

        The whole batch is validated before anything changes.
        """

        with self.orders.lock:
            order = self.orders.get(order_id)
            self._require(order, Trigger.REVIEW_AND_SAVE)
            items = validate_items(edited_items)
            order.items = items
            order.total = order_total(items, self.tax_rate)
            order.status = OrderStatus.PENDING_FACTUSOL
            order.failure_reason = None
            self.orders.upsert(order)
        logger.info(
            "Order %s reviewed: %d lines, total %s EUR",
            order_id,
            len(items),
            order.total,
        )
        return self.orders.get(order_id)

    def export_to_erp(self, order_id: str) -> Order:
        """Send the order to the ERP and record the outcome.

        Attempts for the same order are serialized; a caller that waited
        behind a finished export sees the new status and is rejected.
        A gateway failure is a normal outcome recorded as ``FACTUSOL_ERROR``.
        """

        with self._export_lock(order_id):
            order = self.orders.get(order_id)
            self._require(order, Trigger.EXPORT_TO_ERP)
            client = self.clients.resolve(order.client_id)

            logger.info(
                "[API CALL] Sending albarán %s for client %s to %s",
                order.id,
                client.cif,
                self.gateway.name,
            )
            result = self._submit(order, client)

            with self.orders.lock:
                current = self.orders.get(order_id)
                if result.ok:
                    current.status = OrderStatus.COMPLETED
                    current.failure_reason = None
                    logger.info(
                        "[API RESP] Albarán %s created in Factusol %s", order_id, result.reference
                    )
                else:
                    current.status = OrderStatus.FACTUSOL_ERROR
                    current.failure_reason = result.reason
                    logger.error(
                        "[API RESP] Factusol rejected albarán %s: %s", order_id, result.reason
                    )
                self.orders.upsert(current)
            return current

    def _submit(self, order: Order, client: Client) -> ExportResult:
        try:
            result = self.gateway.submit(order, client, list(order.items))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Export gateway raised while sending %s", order.id)
            return ExportResult.failure(str(exc) or exc.__class__.__name__)
        if not isinstance(result, ExportResult):
            logger.error("Export gateway returned %r for %s", result, order.id)
            return ExportResult.failure(
                f"Gateway returned an unexpected result: {type(result).__name__}"
            )
        return result

    def _export_lock(self, order_id: str) -> threading.Lock:
        with self._export_locks_guard:
            lock = self._export_locks.get(order_id)
            if lock is None:
                lock = self._export_locks[order_id] = threading.Lock()
            return lock

    def in_flight(self, order_id: str) -> bool:
        lock: Optional[threading.Lock] = self._export_locks.get(order_id)
        return lock is not None and lock.locked()


__all__ = ["OrderLifecycleEngine", "TRANSITIONS", "RETRY_TRANSITION"]
