"""Tests for the export gateway implementations."""

from __future__ import annotations

from decimal import Decimal

from albaran_system.domain import Client, ExportResult, Order
from albaran_system.gateway import (
    CallableExportGateway,
    FailingExportGateway,
    ScriptedExportGateway,
    build_export_payload,
)

from .conftest import FIXED_DAY, make_item

CLIENT = Client(id="C001", name="Bar La Plaza", address="Plaza Mayor 1", cif="B37000001")


def _order():
    items = [make_item(1, 2, "10.00"), make_item(2, 3, "5.00", "50")]
    return Order(id="#00005", client_id="C001", date=FIXED_DAY, items=items, total=Decimal("33.275"))


def test_payload_contains_client_lines_and_totals():
    order = _order()

    payload = build_export_payload(order, CLIENT, order.items)

    assert payload["albaran"] == "#00005"
    assert payload["fecha"] == "2024-05-17"
    assert payload["cliente"]["cif"] == "B37000001"
    assert [line["subtotal"] for line in payload["lineas"]] == ["20.00", "7.50"]
    assert payload["base_imponible"] == "27.50"
    assert payload["iva"] == "5.78"
    assert payload["total"] == "33.28"


def test_callable_gateway_receives_payload():
    seen = []

    def handler(payload):
        seen.append(payload["albaran"])
        return ExportResult.success("FS-77")

    result = CallableExportGateway(handler).submit(_order(), CLIENT, _order().items)

    assert result.ok
    assert result.reference == "FS-77"
    assert seen == ["#00005"]


def test_scripted_gateway_outcomes():
    gateway = ScriptedExportGateway()
    gateway.fail_order("#00005", "sin stock")

    result = gateway.submit(_order(), CLIENT, _order().items)

    assert not result.ok
    assert result.reason == "sin stock"
    assert len(gateway.submissions) == 1


def test_failing_gateway_always_fails():
    result = FailingExportGateway().submit(_order(), CLIENT, _order().items)

    assert not result.ok
    assert "not configured" in result.reason


def test_failure_without_reason_gets_default():
    assert ExportResult.failure("").reason == "Unknown gateway failure"
