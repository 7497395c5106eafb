from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from albaran_system.domain import OrderItem
from albaran_system.gateway import ScriptedExportGateway
from albaran_system.services import AlbaranService

FIXED_DAY = date(2024, 5, 17)


def make_item(item_id=1, quantity=1, price="10.00", discount="0", code=None, concept=None):
    return OrderItem(
        id=item_id,
        code=code or f"P-{item_id:03d}",
        concept=concept or f"Producto {item_id}",
        quantity=quantity,
        price=Decimal(price),
        discount=Decimal(discount),
    )


@pytest.fixture
def gateway():
    return ScriptedExportGateway()


@pytest.fixture
def service(gateway):
    erp = AlbaranService(gateway=gateway, today=lambda: FIXED_DAY)
    erp.register_client(
        "C001",
        name="Bar La Plaza",
        address="Plaza Mayor 1, Salamanca",
        cif="B37000001",
        email="pedidos@barlaplaza.es",
    )
    return erp


@pytest.fixture
def pending_order(service):
    order = service.create_order("C001", [make_item(1, quantity=2, price="10.00")])
    return service.review_and_save(order.id, service.get_order(order.id).items)
