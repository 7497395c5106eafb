"""FastAPI-based web interface for the albarán order desk."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlencode

from fastapi import FastAPI, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, Field

from ..calculator import line_subtotal, quantize_money
from ..config import AppConfig, load_config
from ..domain import Order, OrderItem, OrderStatus
from ..errors import AlbaranError, InvalidTransitionError, NotFoundError, ValidationError
from ..gateway import ExportGateway, ScriptedExportGateway
from ..repository import ALL
from ..services import AlbaranService

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["money"] = lambda value: f"{quantize_money(Decimal(value)):.2f}"


class OrderItemPayload(BaseModel):
    id: int
    code: str = ""
    concept: str = ""
    quantity: int
    price: Decimal
    discount: Decimal = Decimal("0")

    def to_domain(self) -> OrderItem:
        return OrderItem(
            id=self.id,
            code=self.code,
            concept=self.concept,
            quantity=self.quantity,
            price=self.price,
            discount=self.discount,
        )


class CreateOrderRequest(BaseModel):
    client_id: str
    items: List[OrderItemPayload] = Field(default_factory=list)


class ReviewRequest(BaseModel):
    items: List[OrderItemPayload] = Field(default_factory=list)


class ConfigUpdate(BaseModel):
    endpoint_url: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    stt_endpoint: Optional[str] = None
    smtp_user: Optional[str] = None
    discount_option1: Optional[Decimal] = None
    discount_option2: Optional[Decimal] = None
    discount_option3: Optional[Decimal] = None


def serialize_order(order: Order, service: AlbaranService) -> dict:
    client = service.clients.find(order.client_id)
    return {
        "id": order.id,
        "client_id": order.client_id,
        "client_name": client.name if client else None,
        "date": order.date.isoformat(),
        "status": order.status.value,
        "status_label": order.status.label,
        "total": str(order.total),
        "total_display": str(quantize_money(order.total)),
        "failure_reason": order.failure_reason,
        "actions": [action.value for action in service.engine.legal_actions(order.status)],
        "items": [
            {
                "id": item.id,
                "code": item.code,
                "concept": item.concept,
                "quantity": item.quantity,
                "price": str(item.price),
                "discount": str(item.discount),
                "subtotal": str(quantize_money(line_subtotal(item))),
            }
            for item in order.items
        ],
    }


def create_app(
    service: Optional[AlbaranService] = None,
    *,
    config: Optional[AppConfig] = None,
    gateway: Optional[ExportGateway] = None,
    demo_data: bool = True,
) -> FastAPI:
    if service is None:
        service = AlbaranService(
            config=config or load_config(".env"),
            gateway=gateway or ScriptedExportGateway(),
        )
    if demo_data:
        ensure_demo_data(service)

    app = FastAPI(title="Albaranes Factusol")
    app.state.albaran_service = service

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse({"error": "validation", "detail": str(exc)}, status_code=422)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse({"error": "not_found", "detail": str(exc)}, status_code=404)

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
        return JSONResponse(
            {
                "error": "invalid_transition",
                "detail": str(exc),
                "status": exc.status,
                "trigger": exc.trigger,
            },
            status_code=409,
        )

    # ------------------------------------------------------------------
    # HTML views
    # ------------------------------------------------------------------
    @app.get("/", response_class=HTMLResponse)
    def dashboard(request: Request, status: str = ALL, notice: str = "", error: str = ""):
        service: AlbaranService = request.app.state.albaran_service
        orders = service.list_orders(status)
        rows = [
            {
                "order": order,
                "client": service.clients.find(order.client_id),
                "actions": service.engine.legal_actions(order.status),
            }
            for order in orders
        ]
        return templates.TemplateResponse(
            request,
            "dashboard.html",
            {
                "rows": rows,
                "statuses": list(OrderStatus),
                "selected_status": status,
                "counts": service.orders.count_by_status(),
                "notice": notice,
                "error": error,
            },
        )

    @app.post("/orders/{order_id}/export")
    def export_order_form(order_id: str, request: Request):
        service: AlbaranService = request.app.state.albaran_service
        try:
            order = service.export_to_erp(_decode_id(order_id))
        except AlbaranError as exc:
            logger.warning("Export from dashboard rejected: %s", exc)
            query = {"error": f"Solicitud rechazada: {exc}"}
        else:
            if order.status == OrderStatus.COMPLETED:
                query = {"notice": f"Albarán {order.id} creado en Factusol"}
            else:
                query = {
                    "notice": f"Factusol rechazó el albarán {order.id}: {order.failure_reason}"
                }
        return RedirectResponse(f"/?{urlencode(query)}", status_code=303)

    @app.post("/orders/{order_id}/review")
    def review_order_form(
        order_id: str,
        request: Request,
        item_id: List[int] = Form(...),
        quantity: List[int] = Form(...),
        price: List[Decimal] = Form(...),
        discount: List[Decimal] = Form(...),
    ):
        service: AlbaranService = request.app.state.albaran_service
        order = service.get_order(_decode_id(order_id))
        if not len(item_id) == len(quantity) == len(price) == len(discount):
            raise ValidationError("Every review line needs quantity, price and discount")
        current = {item.id: item for item in order.items}
        edited = []
        for index, line_id in enumerate(item_id):
            original = current.get(line_id)
            edited.append(
                OrderItem(
                    id=line_id,
                    code=original.code if original else "",
                    concept=original.concept if original else "",
                    quantity=quantity[index],
                    price=price[index],
                    discount=discount[index],
                )
            )
        service.review_and_save(order.id, edited)
        return RedirectResponse("/", status_code=303)

    @app.get("/orders/{order_id}/document", response_class=HTMLResponse)
    def delivery_note(order_id: str, request: Request):
        service: AlbaranService = request.app.state.albaran_service
        note = service.build_delivery_note(_decode_id(order_id))
        return templates.TemplateResponse(request, "delivery_note.html", {"note": note})

    # ------------------------------------------------------------------
    # JSON API
    # ------------------------------------------------------------------
    @app.get("/api/orders")
    def list_orders(request: Request, status: str = ALL):
        service: AlbaranService = request.app.state.albaran_service
        return [serialize_order(order, service) for order in service.list_orders(status)]

    @app.post("/api/orders", status_code=201)
    def create_order(payload: CreateOrderRequest, request: Request):
        service: AlbaranService = request.app.state.albaran_service
        order = service.create_order(
            payload.client_id, [item.to_domain() for item in payload.items]
        )
        return serialize_order(order, service)

    @app.get("/api/orders/{order_id}")
    def get_order(order_id: str, request: Request):
        service: AlbaranService = request.app.state.albaran_service
        return serialize_order(service.get_order(_decode_id(order_id)), service)

    @app.post("/api/orders/{order_id}/review")
    def review_order(order_id: str, payload: ReviewRequest, request: Request):
        service: AlbaranService = request.app.state.albaran_service
        order = service.review_and_save(
            _decode_id(order_id), [item.to_domain() for item in payload.items]
        )
        return serialize_order(order, service)

    @app.post("/api/orders/{order_id}/export")
    def export_order(order_id: str, request: Request):
        service: AlbaranService = request.app.state.albaran_service
        order = service.export_to_erp(_decode_id(order_id))
        return serialize_order(order, service)

    @app.get("/api/config")
    def get_config(request: Request):
        service: AlbaranService = request.app.state.albaran_service
        return service.config.public_view()

    @app.put("/api/config")
    def update_config(payload: ConfigUpdate, request: Request):
        service: AlbaranService = request.app.state.albaran_service
        config = service.config
        for slot, value in (
            (1, payload.discount_option1),
            (2, payload.discount_option2),
            (3, payload.discount_option3),
        ):
            if value is not None:
                config.set_discount_preset(slot, value)
        if payload.endpoint_url is not None:
            config.set_endpoint_url(payload.endpoint_url)
        if payload.client_id is not None or payload.client_secret is not None:
            config.set_credentials(
                payload.client_id if payload.client_id is not None else config.credentials.client_id,
                payload.client_secret,
            )
        if payload.stt_endpoint is not None:
            config.set_stt_endpoint(payload.stt_endpoint)
        if payload.smtp_user is not None:
            config.set_smtp_user(payload.smtp_user)
        logger.info("Configuration updated")
        return config.public_view()

    return app


def _decode_id(order_id: str) -> str:
    """Order ids start with ``#``; URLs may carry them without it."""

    return order_id if order_id.startswith("#") else f"#{order_id}"


def ensure_demo_data(service: AlbaranService) -> None:
    if len(service.orders) > 0:
        return

    for client_id, name, address, cif, email in (
        ("C001", "Bar La Plaza", "Plaza Mayor 1, Salamanca", "B37000001", "pedidos@barlaplaza.es"),
        ("C002", "Restaurante El Arco", "Calle Toro 22, Salamanca", "B37000002", "compras@elarco.es"),
        ("C003", "Hostal Los Arcos", "Av. Portugal 8, Salamanca", "12345678Z", "hostal@losarcos.es"),
    ):
        if client_id not in service.clients:
            service.register_client(client_id, name, address, cif, email=email)

    today = date.today()
    captured = [
        Order(
            id="#00001",
            client_id="C001",
            date=today - timedelta(days=3),
            status=OrderStatus.COMPLETED,
            items=[
                OrderItem(
                    id=1,
                    code="AC-001",
                    concept="Aceite de oliva 5L",
                    quantity=4,
                    price=Decimal("32.50"),
                ),
            ],
        ),
        Order(
            id="#00002",
            client_id="C002",
            date=today - timedelta(days=2),
            status=OrderStatus.FACTUSOL_ERROR,
            failure_reason="Cliente sin forma de pago en Factusol",
            items=[
                OrderItem(
                    id=1,
                    code="VN-010",
                    concept="Vino tinto crianza",
                    quantity=12,
                    price=Decimal("6.80"),
                    discount=Decimal("10"),
                ),
            ],
        ),
        Order(
            id="#00003",
            client_id="C003",
            date=today - timedelta(days=1),
            status=OrderStatus.PENDING_FACTUSOL,
            items=[
                OrderItem(
                    id=1,
                    code="QS-200",
                    concept="Queso curado",
                    quantity=2,
                    price=Decimal("18.00"),
                ),
                OrderItem(
                    id=2,
                    code="JM-100",
                    concept="Jamón ibérico",
                    quantity=1,
                    price=Decimal("120.00"),
                    discount=Decimal("5"),
                ),
            ],
        ),
        Order(
            id="#00004",
            client_id="C001",
            date=today,
            status=OrderStatus.MANUAL_REVIEW,
            items=[
                OrderItem(
                    id=1,
                    code="AG-050",
                    concept="Agua mineral 1.5L",
                    quantity=24,
                    price=Decimal("0.45"),
                ),
                OrderItem(
                    id=2,
                    code="CV-330",
                    concept="Cerveza tercio",
                    quantity=48,
                    price=Decimal("0.90"),
                    discount=Decimal("15"),
                ),
            ],
        ),
    ]
    for order in captured:
        service.seed_order(order)
