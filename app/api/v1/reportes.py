from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import HTMLResponse, Response
from sqlalchemy.orm import Session

from app.core.authorization import SessionContext, get_session_context
from app.db.session import get_db
from app.services import reports
from app.services.reports import ReportError, ReportFilters

router = APIRouter(tags=["Reportes"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def report_filters(
    fecha_inicio: date | None = Query(default=None),
    fecha_fin: date | None = Query(default=None),
    tipo_vehiculo_id: str | None = None,
    cliente_id: str | None = None,
    empleado_id: str | None = None,
    estado_renta: str | None = None,
) -> ReportFilters:
    return ReportFilters(
        fecha_inicio=fecha_inicio,
        fecha_fin=fecha_fin,
        tipo_vehiculo_id=tipo_vehiculo_id or None,
        cliente_id=cliente_id or None,
        empleado_id=empleado_id or None,
        estado_renta=estado_renta or None,
    )


def _build(db: Session, context: SessionContext, filters: ReportFilters) -> dict:
    try:
        return reports.build_report(db, context.tenant_id, filters)
    except ReportError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/reportes")
def get_report(
    filters: ReportFilters = Depends(report_filters),
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    return _build(db, context, filters)


@router.get("/reportes/csv")
def export_csv(
    filters: ReportFilters = Depends(report_filters),
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    report = _build(db, context, filters)
    try:
        content, filename = reports.build_csv(report, filters)
    except ReportError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/reportes/xlsx")
def export_xlsx(
    filters: ReportFilters = Depends(report_filters),
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    report = _build(db, context, filters)
    try:
        content, filename = reports.build_xlsx(report, filters)
    except ReportError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/reportes/imprimir", response_class=HTMLResponse)
def print_report(
    filters: ReportFilters = Depends(report_filters),
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    report = _build(db, context, filters)
    try:
        return HTMLResponse(reports.render_print_html(report, filters))
    except ReportError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
