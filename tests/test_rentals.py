from datetime import date
from decimal import Decimal

import pytest

from app.db import models
from app.services import rentals
from app.services.rentals import RentalConflictError, RentalNotFoundError, RentalValidationError
from tests.factories import make_fleet, make_tenant


def _rent(db, tenant, vehiculo, cliente, empleado, **kwargs):
    params = {"fecha_renta": date(2024, 1, 30), "cantidad_dias": 4}
    params.update(kwargs)
    return rentals.create_rental(
        db,
        tenant.id,
        empleado_id=empleado.id,
        vehiculo_id=vehiculo.id,
        cliente_id=cliente.id,
        **params,
    )


def test_compute_total_and_return_date():
    assert rentals.compute_total(Decimal("50.00"), 4) == Decimal("200.00")
    assert rentals.compute_total("33.335", 1) == Decimal("33.34")
    assert rentals.scheduled_return_date(date(2024, 1, 30), 3) == date(2024, 2, 2)
    assert rentals.format_rental_number(7, prefix="R") == "R000007"


def test_create_rental_marks_vehicle_unavailable(db_session):
    tenant = make_tenant(db_session)
    vehiculo, cliente, empleado = make_fleet(db_session, tenant)

    renta = _rent(db_session, tenant, vehiculo, cliente, empleado, user_id="u-1")

    assert renta.monto_total == Decimal("200.00")
    assert renta.fecha_devolucion_programada == date(2024, 2, 3)
    assert renta.estado_renta == models.RENTA_ACTIVA
    assert renta.numero_renta.endswith("000001")
    db_session.refresh(vehiculo)
    assert vehiculo.disponible is False
    audit = db_session.query(models.AuditLog).filter(models.AuditLog.action == "renta.created").one()
    assert audit.resource_id == renta.id
    assert audit.user_id == "u-1"
    assert audit.payload_resumen["numero_renta"] == renta.numero_renta
    assert audit.payload_resumen["monto_total"] == "200.00"


def test_unavailable_vehicle_is_rejected_without_changes(db_session):
    tenant = make_tenant(db_session)
    vehiculo, cliente, empleado = make_fleet(db_session, tenant)
    _rent(db_session, tenant, vehiculo, cliente, empleado)

    with pytest.raises(RentalConflictError):
        _rent(db_session, tenant, vehiculo, cliente, empleado)
    assert db_session.query(models.Renta).count() == 1


def test_rental_numbers_are_sequential_per_tenant(db_session):
    tenant = make_tenant(db_session)
    other = make_tenant(db_session, slug="otra")
    vehiculo, cliente, empleado = make_fleet(db_session, tenant)
    first = _rent(db_session, tenant, vehiculo, cliente, empleado)
    rentals.return_vehicle(db_session, tenant.id, first.id, confirm=True)
    second = _rent(db_session, tenant, vehiculo, cliente, empleado)

    v2, c2, e2 = make_fleet(db_session, other)
    third = _rent(db_session, other, v2, c2, e2)

    assert first.numero_renta[-6:] == "000001"
    assert second.numero_renta[-6:] == "000002"
    assert third.numero_renta[-6:] == "000001"


def test_other_tenant_records_are_not_found(db_session):
    tenant = make_tenant(db_session)
    other = make_tenant(db_session, slug="otra")
    vehiculo, cliente, empleado = make_fleet(db_session, tenant)
    with pytest.raises(RentalNotFoundError):
        _rent(db_session, other, vehiculo, cliente, empleado)


def test_invalid_days_rejected(db_session):
    tenant = make_tenant(db_session)
    vehiculo, cliente, empleado = make_fleet(db_session, tenant)
    with pytest.raises(RentalValidationError):
        _rent(db_session, tenant, vehiculo, cliente, empleado, cantidad_dias=0)


def test_inspection_must_match_vehicle(db_session):
    tenant = make_tenant(db_session)
    vehiculo, cliente, empleado = make_fleet(db_session, tenant)
    otro = models.Vehiculo(
        tenant_id=tenant.id,
        descripcion="Honda Civic",
        numero_chasis="CH-2",
        numero_motor="MT-2",
        numero_placa="B654321",
        precio_por_dia=Decimal("40.00"),
    )
    db_session.add(otro)
    db_session.flush()
    inspeccion = models.Inspeccion(tenant_id=tenant.id, vehiculo_id=otro.id, cliente_id=cliente.id, empleado_id=empleado.id)
    db_session.add(inspeccion)
    db_session.commit()

    with pytest.raises(RentalConflictError):
        _rent(db_session, tenant, vehiculo, cliente, empleado, inspeccion_id=inspeccion.id)
    db_session.refresh(vehiculo)
    assert vehiculo.disponible is True


def test_return_requires_confirmation(db_session):
    tenant = make_tenant(db_session)
    vehiculo, cliente, empleado = make_fleet(db_session, tenant)
    renta = _rent(db_session, tenant, vehiculo, cliente, empleado)

    with pytest.raises(RentalValidationError):
        rentals.return_vehicle(db_session, tenant.id, renta.id, confirm=False)
    db_session.refresh(renta)
    assert renta.estado_renta == models.RENTA_ACTIVA


def test_return_restores_availability(db_session):
    tenant = make_tenant(db_session)
    vehiculo, cliente, empleado = make_fleet(db_session, tenant)
    renta = _rent(db_session, tenant, vehiculo, cliente, empleado)

    returned = rentals.return_vehicle(db_session, tenant.id, renta.id, confirm=True, today=date(2024, 2, 2))

    assert returned.estado_renta == models.RENTA_DEVUELTA
    assert returned.fecha_devolucion_real == date(2024, 2, 2)
    db_session.refresh(vehiculo)
    assert vehiculo.disponible is True
    with pytest.raises(RentalConflictError):
        rentals.return_vehicle(db_session, tenant.id, renta.id, confirm=True)


def test_overdue_sweep_and_return(db_session):
    tenant = make_tenant(db_session)
    vehiculo, cliente, empleado = make_fleet(db_session, tenant)
    renta = _rent(db_session, tenant, vehiculo, cliente, empleado, cantidad_dias=2)

    assert rentals.mark_overdue_rentals(db_session, today=date(2024, 2, 1)) == 0
    assert rentals.mark_overdue_rentals(db_session, today=date(2024, 2, 2)) == 1
    db_session.refresh(renta)
    assert renta.estado_renta == models.RENTA_VENCIDA
    assert rentals.mark_overdue_rentals(db_session, today=date(2024, 2, 5)) == 0

    rentals.return_vehicle(db_session, tenant.id, renta.id, confirm=True)
    db_session.refresh(vehiculo)
    assert vehiculo.disponible is True
