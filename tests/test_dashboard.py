from datetime import date, timedelta
from decimal import Decimal

from app.db import models
from app.services.dashboard import dashboard_stats
from tests.factories import make_fleet, make_tenant

TODAY = date(2024, 6, 15)


def _renta(tenant, vehiculo, cliente, empleado, numero, fecha, total, estado):
    return models.Renta(
        tenant_id=tenant.id,
        numero_renta=numero,
        vehiculo_id=vehiculo.id,
        cliente_id=cliente.id,
        empleado_id=empleado.id,
        fecha_renta=fecha,
        fecha_devolucion_programada=fecha + timedelta(days=1),
        monto_por_dia=Decimal(total),
        cantidad_dias=1,
        monto_total=Decimal(total),
        estado_renta=estado,
    )


def test_dashboard_counts_and_income(db_session):
    tenant = make_tenant(db_session)
    vehiculo, cliente, empleado = make_fleet(db_session, tenant)
    vehiculo.disponible = False
    db_session.add_all(
        [
            _renta(tenant, vehiculo, cliente, empleado, "R000001", TODAY, "100.00", models.RENTA_ACTIVA),
            _renta(tenant, vehiculo, cliente, empleado, "R000002", TODAY - timedelta(days=3), "50.00", models.RENTA_VENCIDA),
            _renta(tenant, vehiculo, cliente, empleado, "R000003", TODAY - timedelta(days=20), "25.50", models.RENTA_DEVUELTA),
            _renta(tenant, vehiculo, cliente, empleado, "R000004", TODAY - timedelta(days=45), "999.00", models.RENTA_DEVUELTA),
        ]
    )
    other = make_tenant(db_session, slug="otra")
    v2, c2, e2 = make_fleet(db_session, other)
    db_session.add(_renta(other, v2, c2, e2, "R000001", TODAY, "700.00", models.RENTA_ACTIVA))
    db_session.commit()

    stats = dashboard_stats(db_session, tenant.id, today=TODAY)

    assert stats["total_vehicles"] == 1
    assert stats["available_vehicles"] == 0
    assert stats["total_clients"] == 1
    assert stats["total_employees"] == 1
    assert stats["active_rentals"] == 1
    assert stats["overdue_rentals"] == 1
    assert stats["today_rentals"] == 1
    assert stats["today_income"] == "100.00"
    assert stats["weekly_income"] == "150.00"
    assert stats["monthly_income"] == "175.50"


def test_dashboard_empty_tenant(db_session):
    tenant = make_tenant(db_session)
    stats = dashboard_stats(db_session, tenant.id, today=TODAY)
    assert stats["total_vehicles"] == 0
    assert stats["monthly_income"] == "0.00"


def test_superadmin_dashboard_spans_tenants(db_session):
    for slug in ("a", "b"):
        tenant = make_tenant(db_session, slug=slug)
        make_fleet(db_session, tenant)
    assert dashboard_stats(db_session, None, today=TODAY)["total_vehicles"] == 2
