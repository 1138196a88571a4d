from datetime import date
from decimal import Decimal
from io import BytesIO

import pytest
from openpyxl import load_workbook

from app.db import models
from app.services import reports
from app.services.reports import ReportError, ReportFilters
from tests.factories import make_fleet, make_tenant

PERIOD = ReportFilters(fecha_inicio=date(2024, 3, 1), fecha_fin=date(2024, 3, 31))


def _add_renta(db, tenant, vehiculo, cliente, empleado, numero, fecha, total, dias=1, estado=models.RENTA_DEVUELTA):
    renta = models.Renta(
        tenant_id=tenant.id,
        numero_renta=numero,
        vehiculo_id=vehiculo.id,
        cliente_id=cliente.id,
        empleado_id=empleado.id,
        fecha_renta=fecha,
        fecha_devolucion_programada=fecha,
        monto_por_dia=Decimal(total) / dias,
        cantidad_dias=dias,
        monto_total=Decimal(total),
        estado_renta=estado,
    )
    db.add(renta)
    return renta


def _second_vehicle(db, tenant):
    vehiculo = models.Vehiculo(
        tenant_id=tenant.id,
        descripcion="Hyundai Tucson",
        numero_chasis="CH-9",
        numero_motor="MT-9",
        numero_placa="G000009",
        precio_por_dia=Decimal("80.00"),
    )
    db.add(vehiculo)
    db.flush()
    return vehiculo


@pytest.fixture()
def seeded(db_session):
    tenant = make_tenant(db_session)
    vehiculo, cliente, empleado = make_fleet(db_session, tenant)
    otro = _second_vehicle(db_session, tenant)
    for i in range(3):
        _add_renta(db_session, tenant, vehiculo, cliente, empleado, f"R00000{i + 1}", date(2024, 3, 2 + i), "100.00", dias=2)
    for i in range(5):
        _add_renta(db_session, tenant, otro, cliente, empleado, f"R00001{i}", date(2024, 3, 10 + i), "80.00")
    _add_renta(db_session, tenant, otro, cliente, empleado, "R000099", date(2024, 4, 2), "80.00")
    db_session.commit()
    return tenant, vehiculo, otro


def test_filters_validation():
    with pytest.raises(ReportError, match="selecciona las fechas"):
        ReportFilters(fecha_inicio=None, fecha_fin=date(2024, 1, 1)).validate()
    with pytest.raises(ReportError, match="no puede ser mayor"):
        ReportFilters(fecha_inicio=date(2024, 2, 1), fecha_fin=date(2024, 1, 1)).validate()
    with pytest.raises(ReportError):
        ReportFilters(fecha_inicio=date(2024, 1, 1), fecha_fin=date(2024, 1, 2), estado_renta="Perdida").validate()


def test_pick_leader_breaks_ties():
    groups = {
        "b": {"id": "b", "count": 2, "ingresos": Decimal("10")},
        "a": {"id": "a", "count": 2, "ingresos": Decimal("10")},
        "c": {"id": "c", "count": 2, "ingresos": Decimal("30")},
        "d": {"id": "d", "count": 1, "ingresos": Decimal("999")},
    }
    assert reports.pick_leader(groups)["id"] == "c"
    del groups["c"]
    assert reports.pick_leader(groups)["id"] == "a"
    assert reports.pick_leader({}) is None


def test_build_report_totals_and_leaders(db_session, seeded):
    tenant, vehiculo, otro = seeded
    report = reports.build_report(db_session, tenant.id, PERIOD)

    assert report["total_rentas"] == 8
    assert report["ingreso_total"] == "700.00"
    assert report["promedio_por_renta"] == "87.50"
    assert report["dias_totales"] == 11
    leader = report["vehiculo_mas_rentado"]
    assert leader["id"] == otro.id
    assert leader["count"] == 5
    assert leader["ingresos"] == "400.00"
    assert leader["detalle"] == "G000009"
    assert report["cliente_frecuente"]["count"] == 8
    assert report["rentas"][0]["numero_renta"] == "R000014"


def test_report_is_tenant_scoped_and_filtered(db_session, seeded):
    tenant, vehiculo, _ = seeded
    other = make_tenant(db_session, slug="otra")
    assert reports.build_report(db_session, other.id, PERIOD)["total_rentas"] == 0

    by_estado = ReportFilters(fecha_inicio=PERIOD.fecha_inicio, fecha_fin=PERIOD.fecha_fin, estado_renta=models.RENTA_ACTIVA)
    empty = reports.build_report(db_session, tenant.id, by_estado)
    assert empty["total_rentas"] == 0
    assert empty["promedio_por_renta"] == "0.00"
    assert empty["vehiculo_mas_rentado"] is None


def test_export_filename():
    assert reports.export_filename(PERIOD, "csv") == "Reporte_Rentas_01-03-2024_a_31-03-2024.csv"


def test_csv_export(db_session, seeded):
    tenant, _, _ = seeded
    content, filename = reports.build_csv(reports.build_report(db_session, tenant.id, PERIOD), PERIOD)
    text = content.decode("utf-8")

    assert filename.endswith(".csv")
    assert text.startswith("\ufeff")
    lines = text.lstrip("\ufeff").split("\n")
    assert lines[0] == ",".join(reports.CSV_HEADERS)
    assert "RESUMEN DEL REPORTE" in lines
    assert "Total de Rentas:,8" in lines
    assert "Ingresos Total:,$700.00" in lines
    assert "Vehiculo Mas Rentado:,Hyundai Tucson" in lines


def test_exports_refuse_empty_report(db_session):
    tenant = make_tenant(db_session)
    report = reports.build_report(db_session, tenant.id, PERIOD)
    with pytest.raises(ReportError, match="No hay datos"):
        reports.build_csv(report, PERIOD)
    with pytest.raises(ReportError):
        reports.build_xlsx(report, PERIOD)
    with pytest.raises(ReportError):
        reports.render_print_html(report, PERIOD)


def test_xlsx_export(db_session, seeded):
    tenant, _, _ = seeded
    content, filename = reports.build_xlsx(reports.build_report(db_session, tenant.id, PERIOD), PERIOD)
    wb = load_workbook(BytesIO(content))

    assert filename == "Reporte_Rentas_01-03-2024_a_31-03-2024.xlsx"
    assert wb.sheetnames == ["RENTAS", "RESUMEN"]
    assert [c.value for c in wb["RENTAS"][1]] == reports.CSV_HEADERS
    assert wb["RENTAS"].max_row == 9


def test_print_html(db_session, seeded):
    tenant, _, _ = seeded
    html = reports.render_print_html(reports.build_report(db_session, tenant.id, PERIOD), PERIOD)
    assert "window.print()" in html
    assert "01/03/2024 - 31/03/2024" in html
    assert "Hyundai Tucson" in html
