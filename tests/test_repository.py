"""Tests for the in-memory order repository."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from albaran_system.domain import Order, OrderStatus
from albaran_system.errors import NotFoundError, ValidationError
from albaran_system.repository import ALL, OrderRepository

from .conftest import make_item


def _order(order_id, status=OrderStatus.MANUAL_REVIEW):
    return Order(
        id=order_id,
        client_id="C001",
        date=date(2024, 1, 1),
        items=[make_item()],
        status=status,
        total=Decimal("12.10"),
    )


@pytest.fixture
def repo():
    repository = OrderRepository()
    repository.upsert(_order("#00001", OrderStatus.COMPLETED))
    repository.upsert(_order("#00002", OrderStatus.PENDING_FACTUSOL))
    repository.upsert(_order("#00003"))
    return repository


def test_list_is_most_recent_first(repo):
    assert [order.id for order in repo.list()] == ["#00003", "#00002", "#00001"]


def test_upsert_replaces_in_place(repo):
    replacement = _order("#00002", OrderStatus.COMPLETED)
    repo.upsert(replacement)

    assert [order.id for order in repo.list()] == ["#00003", "#00002", "#00001"]
    assert repo.get("#00002").status == OrderStatus.COMPLETED
    assert len(repo) == 3


def test_get_missing_order_raises(repo):
    with pytest.raises(NotFoundError):
        repo.get("#99999")


def test_reads_are_snapshots(repo):
    listed = repo.list()
    listed[0].status = OrderStatus.COMPLETED
    listed[0].items.append(make_item(2))
    fetched = repo.get("#00003")
    fetched.total = Decimal("0")

    stored = repo.get("#00003")
    assert stored.status == OrderStatus.MANUAL_REVIEW
    assert len(stored.items) == 1
    assert stored.total == Decimal("12.10")


def test_upsert_stores_a_copy(repo):
    order = _order("#00004")
    repo.upsert(order)
    order.status = OrderStatus.COMPLETED

    assert repo.get("#00004").status == OrderStatus.MANUAL_REVIEW


def test_find_by_status(repo):
    assert [o.id for o in repo.find_by_status(OrderStatus.PENDING_FACTUSOL)] == ["#00002"]
    assert [o.id for o in repo.find_by_status("COMPLETED")] == ["#00001"]
    assert len(repo.find_by_status(ALL)) == 3
    assert repo.find_by_status(OrderStatus.FACTUSOL_ERROR) == []


def test_find_by_unknown_status_is_rejected(repo):
    with pytest.raises(ValidationError):
        repo.find_by_status("SHIPPED")


def test_count_by_status(repo):
    counts = repo.count_by_status()

    assert counts[OrderStatus.MANUAL_REVIEW] == 1
    assert counts[OrderStatus.FACTUSOL_ERROR] == 0
