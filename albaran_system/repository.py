"""In-memory repositories used by the albarán service layer."""

from __future__ import annotations

import copy
import threading
from collections import OrderedDict
from typing import Dict, Generic, Iterator, List, MutableMapping, TypeVar, Union

from .domain import Order, OrderStatus
from .errors import NotFoundError, ValidationError

T = TypeVar("T")

ALL = "ALL"
StatusFilter = Union[OrderStatus, str]


class InMemoryRepository(Generic[T]):
    """Generic repository backed by a simple dictionary."""

    def __init__(self) -> None:
        self._items: MutableMapping[str, T] = {}

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def add(self, item_id: str, item: T) -> None:
        if item_id in self._items:
            raise ValueError(f"Record with id {item_id!r} already exists")
        self._items[item_id] = item

    def get(self, item_id: str) -> T:
        try:
            return self._items[item_id]
        except KeyError as exc:
            raise NotFoundError(f"Record with id {item_id!r} not found") from exc

    def list(self) -> List[T]:
        return list(self._items.values())

    def __iter__(self) -> Iterator[T]:
        return iter(self._items.values())


class OrderRepository:
    """Orders keyed by id, kept most-recent-first for display.

    Reads hand out deep copies and writes store deep copies, so stored records
    only ever change through :meth:`upsert`.
    """

    def __init__(self) -> None:
        self._orders: "OrderedDict[str, Order]" = OrderedDict()
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        """Lock held by callers that must read and write as one step."""

        return self._lock

    def __contains__(self, order_id: object) -> bool:
        with self._lock:
            return order_id in self._orders

    def __len__(self) -> int:
        with self._lock:
            return len(self._orders)

    def get(self, order_id: str) -> Order:
        with self._lock:
            try:
                return copy.deepcopy(self._orders[order_id])
            except KeyError as exc:
                raise NotFoundError(f"Order {order_id!r} not found") from exc

    def upsert(self, order: Order) -> None:
        """Replace the stored record, or insert it at the head when new."""

        snapshot = copy.deepcopy(order)
        with self._lock:
            is_new = order.id not in self._orders
            self._orders[order.id] = snapshot
            if is_new:
                self._orders.move_to_end(order.id, last=False)

    def list(self) -> List[Order]:
        with self._lock:
            return copy.deepcopy(list(self._orders.values()))

    def find_by_status(self, status: StatusFilter = ALL) -> List[Order]:
        if status == ALL:
            return self.list()
        try:
            wanted = OrderStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Unknown order status {status!r}") from exc
        with self._lock:
            return copy.deepcopy(
                [order for order in self._orders.values() if order.status == wanted]
            )

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._orders.keys())

    def count_by_status(self) -> Dict[OrderStatus, int]:
        counts = {status: 0 for status in OrderStatus}
        with self._lock:
            for order in self._orders.values():
                counts[order.status] += 1
        return counts


__all__ = ["ALL", "InMemoryRepository", "OrderRepository", "StatusFilter"]
