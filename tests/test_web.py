"""Tests for the FastAPI web interface."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from albaran_system.domain import OrderStatus
from albaran_system.web.app import create_app


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


def _line(item_id=1, quantity=1, price="10.00", discount="0"):
    return {
        "id": item_id,
        "code": f"P-{item_id}",
        "concept": "Producto",
        "quantity": quantity,
        "price": price,
        "discount": discount,
    }


def test_demo_data_is_loaded(client):
    response = client.get("/api/orders")

    assert response.status_code == 200
    assert [order["id"] for order in response.json()] == ["#00004", "#00003", "#00002", "#00001"]


def test_filter_by_status(client):
    response = client.get("/api/orders", params={"status": "FACTUSOL_ERROR"})

    assert [order["id"] for order in response.json()] == ["#00002"]
    assert response.json()[0]["actions"] == ["view_log"]


def test_unknown_status_filter_is_rejected(client):
    assert client.get("/api/orders", params={"status": "LOST"}).status_code == 422


def test_create_review_and_export_flow(client):
    created = client.post(
        "/api/orders",
        json={"client_id": "C001", "items": [_line(quantity=2)]},
    )
    assert created.status_code == 201
    body = created.json()
    assert body["id"] == "#00005"
    assert body["status"] == OrderStatus.MANUAL_REVIEW.value
    assert body["total_display"] == "24.20"

    reviewed = client.post(
        "/api/orders/00005/review",
        json={"items": [_line(quantity=3, price="5.00", discount="50")]},
    )
    assert reviewed.status_code == 200
    assert reviewed.json()["status"] == "PENDING_FACTUSOL"
    assert reviewed.json()["total_display"] == "9.08"

    exported = client.post("/api/orders/00005/export")
    assert exported.status_code == 200
    assert exported.json()["status"] == "COMPLETED"
    assert exported.json()["actions"] == ["view_document"]


def test_gateway_failure_is_a_successful_response(client, gateway):
    gateway.fail_order("#00003", "Factusol caído")

    response = client.post("/api/orders/00003/export")

    assert response.status_code == 200
    assert response.json()["status"] == "FACTUSOL_ERROR"
    assert response.json()["failure_reason"] == "Factusol caído"


def test_errors_map_to_status_codes(client):
    invalid = client.post("/api/orders", json={"client_id": "C001", "items": [_line(quantity=0)]})
    missing_client = client.post("/api/orders", json={"client_id": "NOPE", "items": [_line()]})
    missing_order = client.post("/api/orders/00099/export")
    wrong_state = client.post("/api/orders/00004/export")

    assert invalid.status_code == 422
    assert missing_client.status_code == 404
    assert missing_order.status_code == 404
    assert wrong_state.status_code == 409
    assert wrong_state.json()["status"] == "MANUAL_REVIEW"


def test_dashboard_renders_actions(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "Exportar a Factusol" in response.text
    assert "Ver PDF" in response.text
    assert "Revisar" in response.text


def test_dashboard_export_redirects(client):
    response = client.post("/orders/00003/export", follow_redirects=False)

    assert response.status_code == 303
    assert "notice=" in response.headers["location"]
    assert "creado en Factusol" in client.get(response.headers["location"]).text
    assert client.get("/api/orders/00003").json()["status"] == "COMPLETED"


def test_review_form_submission(client):
    response = client.post(
        "/orders/00004/review",
        data={
            "item_id": ["1", "2"],
            "quantity": ["10", "48"],
            "price": ["0.45", "0.90"],
            "discount": ["0", "15"],
        },
        follow_redirects=False,
    )

    assert response.status_code == 303
    order = client.get("/api/orders/00004").json()
    assert order["status"] == "PENDING_FACTUSOL"
    assert [item["quantity"] for item in order["items"]] == [10, 48]
    assert order["items"][0]["code"] == "AG-050"


def test_delivery_note_document(client):
    response = client.get("/orders/00001/document")

    assert response.status_code == 200
    assert "ALBARÁN" in response.text
    assert "Bar La Plaza" in response.text
    assert "Base Imponible" in response.text
    assert "157.30" in response.text


def test_config_roundtrip_hides_secret(client):
    updated = client.put(
        "/api/config",
        json={
            "endpoint_url": "https://factusol.example",
            "client_id": "desk",
            "client_secret": "x",
            "discount_option1": "7.5",
        },
    )

    assert updated.status_code == 200
    assert updated.json()["credentials"]["client_secret"] == "********"
    assert client.get("/api/config").json()["discount_presets"]["option1"] == "7.5"


def test_config_rejects_out_of_range_discount(client):
    response = client.put("/api/config", json={"discount_option2": "150"})

    assert response.status_code == 422


def test_dashboard_export_rejection_is_reported(client):
    response = client.post("/orders/00004/export", follow_redirects=False)

    assert response.status_code == 303
    assert "error=" in response.headers["location"]
    page = client.get(response.headers["location"])
    assert "Solicitud rechazada" in page.text
    assert client.get("/api/orders/00004").json()["status"] == "MANUAL_REVIEW"


def test_dashboard_export_gateway_failure_is_a_notice(client, gateway):
    gateway.fail_order("#00003", "CIF desconocido")

    response = client.post("/orders/00003/export", follow_redirects=False)

    location = response.headers["location"]
    assert "notice=" in location
    assert "error=" not in location
    assert "CIF desconocido" in client.get(location).text
