import csv
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO, StringIO
from typing import Iterable, Optional, Tuple

from jinja2 import Template
from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session, joinedload

from app.db import models
from app.services.rentals import money

logger = logging.getLogger("rentcar.reports")

CSV_HEADERS = [
    "Numero de Renta",
    "Fecha de Renta",
    "Cliente",
    "Vehiculo",
    "Placa",
    "Empleado",
    "Cantidad de Dias",
    "Monto por Dia",
    "Monto Total",
    "Estado",
]


class ReportError(Exception):
    pass


@dataclass
class ReportFilters:
    fecha_inicio: Optional[date]
    fecha_fin: Optional[date]
    tipo_vehiculo_id: Optional[str] = None
    cliente_id: Optional[str] = None
    empleado_id: Optional[str] = None
    estado_renta: Optional[str] = None

    def validate(self) -> None:
        if not self.fecha_inicio or not self.fecha_fin:
            raise ReportError("Por favor selecciona las fechas de inicio y fin")
        if self.fecha_inicio > self.fecha_fin:
            raise ReportError("La fecha de inicio no puede ser mayor que la fecha de fin")
        if self.estado_renta and self.estado_renta not in models.ESTADOS_RENTA:
            raise ReportError("Estado de renta inválido")


def _fmt_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def fetch_rentals(db: Session, tenant_id: Optional[str], filters: ReportFilters) -> list[models.Renta]:
    filters.validate()
    query = (
        db.query(models.Renta)
        .options(
            joinedload(models.Renta.vehiculo),
            joinedload(models.Renta.cliente),
            joinedload(models.Renta.empleado),
        )
        .filter(
            models.Renta.estado.is_(True),
            models.Renta.fecha_renta >= filters.fecha_inicio,
            models.Renta.fecha_renta <= filters.fecha_fin,
        )
    )
    if tenant_id:
        query = query.filter(models.Renta.tenant_id == tenant_id)
    if filters.estado_renta:
        query = query.filter(models.Renta.estado_renta == filters.estado_renta)
    if filters.cliente_id:
        query = query.filter(models.Renta.cliente_id == filters.cliente_id)
    if filters.empleado_id:
        query = query.filter(models.Renta.empleado_id == filters.empleado_id)
    if filters.tipo_vehiculo_id:
        query = query.join(models.Vehiculo, models.Vehiculo.id == models.Renta.vehiculo_id).filter(
            models.Vehiculo.tipo_vehiculo_id == filters.tipo_vehiculo_id
        )
    return query.order_by(models.Renta.fecha_renta.desc(), models.Renta.numero_renta.desc()).all()


def pick_leader(groups: dict[str, dict]) -> Optional[dict]:
    """Highest count wins; ties go to higher revenue, then to the lowest id."""
    if not groups:
        return None
    return min(groups.values(), key=lambda g: (-g["count"], -g["ingresos"], g["id"]))


def _tally(groups: dict[str, dict], key: Optional[str], entity, monto: Decimal) -> None:
    if not key:
        return
    group = groups.get(key)
    if group is None:
        group = groups[key] = {"id": key, "entity": entity, "count": 0, "ingresos": Decimal("0")}
    group["count"] += 1
    group["ingresos"] += monto


def aggregate(rentas: Iterable[models.Renta]) -> dict:
    vehiculos: dict[str, dict] = {}
    clientes: dict[str, dict] = {}
    empleados: dict[str, dict] = {}
    total_rentas = 0
    ingreso_total = Decimal("0")
    dias_totales = 0
    for renta in rentas:
        monto = Decimal(str(renta.monto_total or 0))
        total_rentas += 1
        ingreso_total += monto
        dias_totales += renta.cantidad_dias or 0
        _tally(vehiculos, renta.vehiculo_id, renta.vehiculo, monto)
        _tally(clientes, renta.cliente_id, renta.cliente, monto)
        _tally(empleados, renta.empleado_id, renta.empleado, monto)
    promedio = (ingreso_total / total_rentas).quantize(Decimal("0.01")) if total_rentas else Decimal("0.00")
    return {
        "total_rentas": total_rentas,
        "ingreso_total": ingreso_total,
        "promedio_por_renta": promedio,
        "dias_totales": dias_totales,
        "vehiculo_mas_rentado": pick_leader(vehiculos),
        "cliente_frecuente": pick_leader(clientes),
        "empleado_destacado": pick_leader(empleados),
    }


def _serialize_leader(leader: Optional[dict], name_field: str, detail_field: str) -> Optional[dict]:
    if leader is None:
        return None
    entity = leader["entity"]
    return {
        "id": leader["id"],
        "nombre": getattr(entity, name_field, None) if entity else None,
        "detalle": getattr(entity, detail_field, None) if entity else None,
        "count": leader["count"],
        "ingresos": money(leader["ingresos"]),
    }


def serialize_rental_row(renta: models.Renta) -> dict:
    return {
        "id": renta.id,
        "numero_renta": renta.numero_renta,
        "fecha_renta": renta.fecha_renta,
        "cliente": renta.cliente.nombre if renta.cliente else None,
        "vehiculo": renta.vehiculo.descripcion if renta.vehiculo else None,
        "placa": renta.vehiculo.numero_placa if renta.vehiculo else None,
        "empleado": renta.empleado.nombre if renta.empleado else None,
        "cantidad_dias": renta.cantidad_dias,
        "monto_por_dia": money(renta.monto_por_dia),
        "monto_total": money(renta.monto_total),
        "estado_renta": renta.estado_renta,
    }


def build_report(db: Session, tenant_id: Optional[str], filters: ReportFilters) -> dict:
    rentas = fetch_rentals(db, tenant_id, filters)
    summary = aggregate(rentas)
    logger.info(
        "report built tenant_id=%s rentas=%s desde=%s hasta=%s",
        tenant_id,
        summary["total_rentas"],
        filters.fecha_inicio,
        filters.fecha_fin,
    )
    return {
        "fecha_inicio": filters.fecha_inicio,
        "fecha_fin": filters.fecha_fin,
        "total_rentas": summary["total_rentas"],
        "ingreso_total": money(summary["ingreso_total"]),
        "promedio_por_renta": money(summary["promedio_por_renta"]),
        "dias_totales": summary["dias_totales"],
        "vehiculo_mas_rentado": _serialize_leader(summary["vehiculo_mas_rentado"], "descripcion", "numero_placa"),
        "cliente_frecuente": _serialize_leader(summary["cliente_frecuente"], "nombre", "cedula"),
        "empleado_destacado": _serialize_leader(summary["empleado_destacado"], "nombre", "cedula"),
        "rentas": [serialize_rental_row(renta) for renta in rentas],
    }


def export_filename(filters: ReportFilters, extension: str) -> str:
    inicio = filters.fecha_inicio.strftime("%d-%m-%Y")
    fin = filters.fecha_fin.strftime("%d-%m-%Y")
    return f"Reporte_Rentas_{inicio}_a_{fin}.{extension}"


def _summary_rows(report: dict) -> list[list]:
    rows: list[list] = [
        ["RESUMEN DEL REPORTE"],
        ["Total de Rentas:", report["total_rentas"]],
        ["Ingresos Total:", f"${report['ingreso_total']}"],
        ["Promedio por Renta:", f"${report['promedio_por_renta']}"],
    ]
    leaders = (
        ("vehiculo_mas_rentado", "Vehiculo Mas Rentado:"),
        ("cliente_frecuente", "Cliente Mas Frecuente:"),
        ("empleado_destacado", "Empleado Destacado:"),
    )
    for key, label in leaders:
        leader = report.get(key)
        if not leader:
            continue
        rows.append([])
        rows.append([label, leader["nombre"] or "N/A"])
        rows.append(["Cantidad de Rentas:", leader["count"]])
    return rows


def _table_rows(report: dict) -> list[list]:
    return [
        [
            row["numero_renta"],
            _fmt_date(row["fecha_renta"]),
            row["cliente"] or "N/A",
            row["vehiculo"] or "N/A",
            row["placa"] or "N/A",
            row["empleado"] or "N/A",
            row["cantidad_dias"],
            row["monto_por_dia"],
            row["monto_total"],
            row["estado_renta"],
        ]
        for row in report["rentas"]
    ]


def build_csv(report: dict, filters: ReportFilters) -> Tuple[bytes, str]:
    if not report["rentas"]:
        raise ReportError("No hay datos para exportar")
    out = StringIO()
    writer = csv.writer(out, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(CSV_HEADERS)
    writer.writerows(_table_rows(report))
    writer.writerow([])
    writer.writerows(_summary_rows(report))
    content = "\ufeff" + out.getvalue()
    return content.encode("utf-8"), export_filename(filters, "csv")


def build_xlsx(report: dict, filters: ReportFilters) -> Tuple[bytes, str]:
    if not report["rentas"]:
        raise ReportError("No hay datos para exportar")
    wb = Workbook()
    ws = wb.active
    ws.title = "RENTAS"
    ws.append(CSV_HEADERS)
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in _table_rows(report):
        ws.append(row)
    ws.freeze_panes = "A2"
    for idx, _ in enumerate(CSV_HEADERS, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = 20

    resumen = wb.create_sheet("RESUMEN")
    resumen.append(["Periodo", f"{_fmt_date(filters.fecha_inicio)} - {_fmt_date(filters.fecha_fin)}"])
    for row in _summary_rows(report):
        resumen.append(row)
    resumen.column_dimensions["A"].width = 26
    resumen.column_dimensions["B"].width = 32

    out = BytesIO()
    wb.save(out)
    return out.getvalue(), export_filename(filters, "xlsx")


_PRINT_TEMPLATE = Template(
    """
<!doctype html>
<html lang="es">
<head>
  <meta charset="utf-8" />
  <title>Reporte de Rentas</title>
  <style>
    * { box-sizing: border-box; }
    body { font-family: "Segoe UI", Arial, sans-serif; color: #1f2937; padding: 40px; }
    .header { text-align: center; border-bottom: 3px solid #2563eb; padding-bottom: 20px; margin-bottom: 30px; }
    .header h1 { color: #2563eb; margin: 0 0 8px; font-size: 28px; }
    .period { color: #6b7280; margin: 4px 0; font-size: 14px; }
    .summary-grid { display: grid; grid-template-columns: repeat(4, 1fr); gap: 16px; margin-bottom: 30px; }
    .summary-card { border: 1px solid #e5e7eb; border-radius: 10px; padding: 16px; text-align: center; background: #f8fafc; }
    .summary-card .label { font-size: 12px; color: #6b7280; text-transform: uppercase; }
    .summary-card .value { font-size: 22px; font-weight: bold; margin-top: 6px; }
    .highlights { display: grid; grid-template-columns: repeat(3, 1fr); gap: 16px; margin-bottom: 30px; }
    .highlight-card { border: 1px solid #e5e7eb; border-radius: 10px; padding: 16px; }
    .highlight-card h3 { margin: 0 0 8px; font-size: 14px; color: #374151; }
    .highlight-card .name { font-weight: bold; font-size: 16px; }
    .highlight-card .detail { color: #6b7280; font-size: 12px; }
    .highlight-card .stats { display: flex; justify-content: space-between; margin-top: 10px; font-size: 13px; }
    table { width: 100%; border-collapse: collapse; font-size: 13px; }
    th { background: #2563eb; color: #fff; text-align: left; padding: 10px; }
    td { padding: 8px 10px; border-bottom: 1px solid #e5e7eb; }
    .amount { color: #10b981; font-weight: bold; }
    .status { padding: 3px 10px; border-radius: 999px; font-size: 11px; font-weight: 600; }
    .status-activa { background: #d1fae5; color: #065f46; }
    .status-devuelta { background: #dbeafe; color: #1e40af; }
    .status-vencida { background: #fee2e2; color: #991b1b; }
    .footer { margin-top: 40px; padding-top: 20px; border-top: 2px solid #e5e7eb; text-align: center; color: #6b7280; font-size: 12px; }
    @media print {
      body { padding: 20px; }
      .summary-grid { page-break-inside: avoid; }
      tr { page-break-inside: avoid; page-break-after: auto; }
    }
  </style>
</head>
<body>
  <div class="header">
    <h1>Reporte de Rentas</h1>
    <p class="period">Período: {{ fecha_inicio }} - {{ fecha_fin }}</p>
    <p class="period">Generado el: {{ generado_en }}</p>
  </div>

  <div class="summary-grid">
    <div class="summary-card"><div class="label">Total Rentas</div><div class="value">{{ report.total_rentas }}</div></div>
    <div class="summary-card"><div class="label">Ingresos Total</div><div class="value">{{ report.ingreso_total }}</div></div>
    <div class="summary-card"><div class="label">Promedio/Renta</div><div class="value">{{ report.promedio_por_renta }}</div></div>
    <div class="summary-card"><div class="label">Días Totales</div><div class="value">{{ report.dias_totales }}</div></div>
  </div>

  <div class="highlights">
    {% for title, leader in leaders %}
    {% if leader %}
    <div class="highlight-card">
      <h3>{{ title }}</h3>
      <div class="name">{{ leader.nombre or "N/A" }}</div>
      <div class="detail">{{ leader.detalle or "" }}</div>
      <div class="stats"><span>{{ leader.count }} rentas</span><span>{{ leader.ingresos }}</span></div>
    </div>
    {% endif %}
    {% endfor %}
  </div>

  <h2 style="font-size: 18px;">Detalle de Rentas</h2>
  <table>
    <thead>
      <tr>
        <th>Número</th><th>Fecha</th><th>Cliente</th><th>Vehículo</th>
        <th>Empleado</th><th>Días</th><th>Total</th><th>Estado</th>
      </tr>
    </thead>
    <tbody>
      {% for row in report.rentas %}
      <tr>
        <td>{{ row.numero_renta }}</td>
        <td>{{ row.fecha_renta.strftime("%d/%m/%Y") }}</td>
        <td>{{ row.cliente or "N/A" }}</td>
        <td>{{ row.vehiculo or "N/A" }} - {{ row.placa or "" }}</td>
        <td>{{ row.empleado or "N/A" }}</td>
        <td>{{ row.cantidad_dias }}</td>
        <td class="amount">{{ row.monto_total }}</td>
        <td><span class="status status-{{ row.estado_renta|lower }}">{{ row.estado_renta }}</span></td>
      </tr>
      {% endfor %}
    </tbody>
  </table>

  <div class="footer">
    <p><strong>Sistema de Gestión de Rentas de Vehículos</strong></p>
    <p>Este documento es un reporte generado automáticamente</p>
  </div>

  <script>
    window.onload = function() {
      window.print();
      window.onafterprint = function() { window.close(); };
    };
  </script>
</body>
</html>
""",
    autoescape=True,
)


def render_print_html(report: dict, filters: ReportFilters, generated_at: Optional[datetime] = None) -> str:
    if not report["rentas"]:
        raise ReportError("No hay datos para exportar")
    leaders = [
        ("Vehículo Más Rentado", report["vehiculo_mas_rentado"]),
        ("Cliente Más Frecuente", report["cliente_frecuente"]),
        ("Empleado Destacado", report["empleado_destacado"]),
    ]
    return _PRINT_TEMPLATE.render(
        report=report,
        leaders=leaders,
        fecha_inicio=_fmt_date(filters.fecha_inicio),
        fecha_fin=_fmt_date(filters.fecha_fin),
        generado_en=(generated_at or datetime.now()).strftime("%d/%m/%Y %H:%M"),
    )
