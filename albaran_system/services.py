"""Service layer that implements the albarán use-cases."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .calculator import TAX_RATE, Totals, compute_totals, line_subtotal, order_total
from .config import AppConfig, IssuerDetails
from .directory import ClientDirectory, InMemoryClientDirectory
from .domain import Client, Order, OrderAction, OrderItem, OrderStatus
from .errors import ValidationError
from .gateway import ExportGateway, FailingExportGateway
from .lifecycle import OrderLifecycleEngine
from .repository import ALL, OrderRepository, StatusFilter
from .validation import validate_items

logger = logging.getLogger(__name__)

ORDER_ID_PATTERN = re.compile(r"^#(\d+)$")
ORDER_ID_WIDTH = 5


def parse_order_sequence(order_id: str) -> int:
    """Numeric suffix of ``#NNNNN`` ids; anything else counts as 0."""

    match = ORDER_ID_PATTERN.match(order_id or "")
    return int(match.group(1)) if match else 0


def format_order_id(sequence: int) -> str:
    return f"#{sequence:0{ORDER_ID_WIDTH}d}"


def next_order_id(existing_ids: Iterable[str]) -> str:
    highest = max((parse_order_sequence(order_id) for order_id in existing_ids), default=0)
    return format_order_id(highest + 1)


class OrderCreationService:
    """Validates and stores brand-new albaranes."""

    def __init__(
        self,
        orders: OrderRepository,
        clients: ClientDirectory,
        *,
        tax_rate: Decimal = TAX_RATE,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.orders = orders
        self.clients = clients
        self.tax_rate = tax_rate
        self._today = today

    def create_order(self, client_id: str, items: Sequence[OrderItem]) -> Order:
        validated = validate_items(items)
        self.clients.resolve(client_id)
        with self.orders.lock:
            order = Order(
                id=next_order_id(self.orders.ids()),
                client_id=client_id,
                date=self._today(),
                items=validated,
                status=OrderStatus.MANUAL_REVIEW,
                total=order_total(validated, self.tax_rate),
            )
            self.orders.upsert(order)
        logger.info(
            "Created order %s for client %s with %d lines", order.id, client_id, len(validated)
        )
        return self.orders.get(order.id)


@dataclass(frozen=True, slots=True)
class DeliveryNoteLine:
    item: OrderItem
    subtotal: Decimal


@dataclass(frozen=True, slots=True)
class DeliveryNote:
    """Everything the printable albarán needs, read-only."""

    order: Order
    client: Client
    issuer: IssuerDetails
    lines: Tuple[DeliveryNoteLine, ...]
    totals: Totals
    tax_rate: Decimal

    @property
    def tax_percentage(self) -> Decimal:
        return (self.tax_rate * 100).normalize()


class AlbaranService:
    """Facade that exposes the order desk use-cases to clients."""

    def __init__(
        self,
        order_repo: Optional[OrderRepository] = None,
        client_directory: Optional[ClientDirectory] = None,
        gateway: Optional[ExportGateway] = None,
        config: Optional[AppConfig] = None,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.orders = order_repo or OrderRepository()
        self.clients = client_directory or InMemoryClientDirectory()
        self.gateway = gateway or FailingExportGateway()
        self.config = config or AppConfig()
        self.engine = OrderLifecycleEngine(
            self.orders,
            self.clients,
            self.gateway,
            tax_rate=self.config.tax_rate,
            allow_export_retry=self.config.allow_export_retry,
        )
        self.creation = OrderCreationService(
            self.orders, self.clients, tax_rate=self.config.tax_rate, today=today
        )

    # ------------------------------------------------------------------
    # Master data
    # ------------------------------------------------------------------
    def register_client(
        self, client_id: str, name: str, address: str, cif: str, *, email: str = ""
    ) -> Client:
        if not isinstance(self.clients, InMemoryClientDirectory):
            raise TypeError("Clients can only be registered in the in-memory directory")
        client = Client(id=client_id, name=name, address=address, cif=cif, email=email)
        return self.clients.register(client)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------
    def create_order(self, client_id: str, items: Sequence[OrderItem]) -> Order:
        return self.creation.create_order(client_id, items)

    def seed_order(self, order: Order) -> Order:
        """Load an order captured elsewhere, keeping its id and status.

        The total is recomputed from the items so stored totals always match
        the calculator.
        """

        items = validate_items(order.items)
        seeded = replace(order, items=items, total=order_total(items, self.config.tax_rate))
        with self.orders.lock:
            if seeded.id in self.orders:
                raise ValidationError(f"Order {seeded.id!r} already exists")
            self.orders.upsert(seeded)
            return self.orders.get(seeded.id)

    def get_order(self, order_id: str) -> Order:
        return self.orders.get(order_id)

    def list_orders(self, status: StatusFilter = ALL) -> List[Order]:
        return self.orders.find_by_status(status)

    def review_and_save(self, order_id: str, edited_items: Sequence[OrderItem]) -> Order:
        return self.engine.review_and_save(order_id, edited_items)

    def export_to_erp(self, order_id: str) -> Order:
        return self.engine.export_to_erp(order_id)

    def legal_actions(self, order_id: str) -> Tuple[OrderAction, ...]:
        return self.engine.legal_actions(self.orders.get(order_id).status)

    def set_allow_export_retry(self, enabled: bool) -> None:
        self.config.set_allow_export_retry(enabled)
        self.engine.allow_export_retry = self.config.allow_export_retry

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------
    def build_delivery_note(self, order_id: str) -> DeliveryNote:
        order = self.orders.get(order_id)
        client = self.clients.resolve(order.client_id)
        lines = tuple(
            DeliveryNoteLine(item=item, subtotal=line_subtotal(item)) for item in order.items
        )
        return DeliveryNote(
            order=order,
            client=client,
            issuer=self.config.issuer,
            lines=lines,
            totals=compute_totals(order.items, self.config.tax_rate),
            tax_rate=self.config.tax_rate,
        )


__all__ = [
    "AlbaranService",
    "DeliveryNote",
    "DeliveryNoteLine",
    "OrderCreationService",
    "format_order_id",
    "next_order_id",
    "parse_order_sequence",
]
