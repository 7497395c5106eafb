"""Demonstration script for the albarán order desk."""

from __future__ import annotations

from decimal import Decimal
from pprint import pprint

from . import AlbaranService, ExportResult, OrderItem
from .config import configure_logging
from .gateway import ScriptedExportGateway


def main() -> None:
    configure_logging()
    gateway = ScriptedExportGateway()
    erp = AlbaranService(gateway=gateway)

    # Clientes
    bar = erp.register_client(
        "C001",
        name="Bar La Plaza",
        address="Plaza Mayor 1, Salamanca",
        cif="B37000001",
        email="pedidos@barlaplaza.es",
    )
    hostal = erp.register_client(
        "C002",
        name="Hostal Los Arcos",
        address="Av. Portugal 8, Salamanca",
        cif="12345678Z",
        email="hostal@losarcos.es",
    )

    # Pedido capturado por voz
    first = erp.create_order(
        bar.id,
        [
            OrderItem(id=1, code="AC-001", concept="Aceite de oliva 5L", quantity=2, price=Decimal("10.00")),
            OrderItem(id=2, code="CV-330", concept="Cerveza tercio", quantity=3, price=Decimal("5.00"), discount=Decimal("50")),
        ],
    )
    second = erp.create_order(
        hostal.id,
        [OrderItem(id=1, code="QS-200", concept="Queso curado", quantity=1, price=Decimal("18.00"))],
    )
    print(f"Creados {first.id} y {second.id}")

    # Revisión manual: el vendedor corrige la cantidad de aceite
    reviewed = erp.review_and_save(
        first.id,
        [
            OrderItem(id=1, code="AC-001", concept="Aceite de oliva 5L", quantity=4, price=Decimal("10.00")),
            *erp.get_order(first.id).items[1:],
        ],
    )
    print(f"{reviewed.id} -> {reviewed.status.value}, total {reviewed.total}")

    # Exportación: el primero entra en Factusol, el segundo es rechazado
    gateway.outcomes[second.id] = ExportResult.failure("CIF no registrado en Factusol")
    erp.review_and_save(second.id, erp.get_order(second.id).items)
    exported = erp.export_to_erp(first.id)
    failed = erp.export_to_erp(second.id)
    print(f"{exported.id} -> {exported.status.value}")
    print(f"{failed.id} -> {failed.status.value} ({failed.failure_reason})")

    note = erp.build_delivery_note(first.id)
    pprint(
        {
            "albaran": note.order.id,
            "cliente": note.client.name,
            "base": note.totals.rounded().base,
            "iva": note.totals.rounded().tax,
            "total": note.totals.rounded().total,
        }
    )


if __name__ == "__main__":
    main()
