import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.authorization import (
    SessionContext,
    apply_tenant_scope,
    get_session_context,
    require_admin,
    require_editor,
    resolve_target_tenant,
)
from app.db import models
from app.db.session import get_db
from app.services import rentals
from app.services.rentals import (
    RentalConflictError,
    RentalError,
    RentalNotFoundError,
    RentalValidationError,
    money,
)

logger = logging.getLogger("rentcar.rentals")

router = APIRouter(tags=["Rentas"])


class RentaCreate(BaseModel):
    tenant_id: str | None = None
    vehiculo_id: str
    cliente_id: str
    empleado_id: str
    inspeccion_id: str | None = None
    fecha_renta: date = Field(default_factory=date.today)
    cantidad_dias: int = Field(..., ge=1)
    comentario: str | None = None


class DevolucionRequest(BaseModel):
    confirmar: bool = False


class OverdueSweepRequest(BaseModel):
    fecha: date | None = None


def _serialize_renta(r: models.Renta) -> dict:
    return {
        "id": r.id,
        "tenant_id": r.tenant_id,
        "numero_renta": r.numero_renta,
        "vehiculo_id": r.vehiculo_id,
        "vehiculo": r.vehiculo.descripcion if r.vehiculo else None,
        "placa": r.vehiculo.numero_placa if r.vehiculo else None,
        "cliente_id": r.cliente_id,
        "cliente": r.cliente.nombre if r.cliente else None,
        "empleado_id": r.empleado_id,
        "empleado": r.empleado.nombre if r.empleado else None,
        "inspeccion_id": r.inspeccion_id,
        "fecha_renta": r.fecha_renta,
        "fecha_devolucion_programada": r.fecha_devolucion_programada,
        "fecha_devolucion_real": r.fecha_devolucion_real,
        "monto_por_dia": money(r.monto_por_dia),
        "cantidad_dias": r.cantidad_dias,
        "monto_total": money(r.monto_total),
        "comentario": r.comentario,
        "estado_renta": r.estado_renta,
        "created_at": r.created_at,
    }


def _raise_http(exc: RentalError) -> None:
    if isinstance(exc, RentalNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, RentalConflictError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, RentalValidationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    logger.exception("rental operation failed")
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Ocurrió un error, intenta de nuevo.")


@router.get("/rentas")
def list_rentas(
    q: str | None = None,
    estado_renta: str | None = None,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    query = db.query(models.Renta).filter(models.Renta.estado.is_(True))
    query = apply_tenant_scope(query, context, models.Renta.tenant_id)
    if estado_renta:
        if estado_renta not in models.ESTADOS_RENTA:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Estado de renta inválido")
        query = query.filter(models.Renta.estado_renta == estado_renta)
    if q:
        term = f"%{q.strip()}%"
        query = query.join(models.Cliente, models.Cliente.id == models.Renta.cliente_id).filter(
            or_(models.Renta.numero_renta.ilike(term), models.Cliente.nombre.ilike(term))
        )
    rentas = query.order_by(models.Renta.created_at.desc()).all()
    return {"rentas": [_serialize_renta(r) for r in rentas]}


@router.post("/rentas/vencidas/procesar")
def process_overdue(
    payload: OverdueSweepRequest | None = None,
    context: SessionContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    today = payload.fecha if payload and payload.fecha else date.today()
    marked = rentals.mark_overdue_rentals(db, today=today, tenant_id=context.tenant_id, user_id=context.user_id)
    return {"vencidas": marked, "fecha": today}


@router.get("/rentas/{renta_id}")
def get_renta(
    renta_id: str,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    try:
        return _serialize_renta(rentals.get_rental(db, context.tenant_id, renta_id))
    except RentalError as exc:
        _raise_http(exc)


@router.post("/rentas", status_code=status.HTTP_201_CREATED)
def create_renta(
    payload: RentaCreate,
    context: SessionContext = Depends(require_editor),
    db: Session = Depends(get_db),
):
    tenant_id = resolve_target_tenant(db, context, payload.tenant_id)
    try:
        renta = rentals.create_rental(
            db,
            tenant_id,
            empleado_id=payload.empleado_id,
            vehiculo_id=payload.vehiculo_id,
            cliente_id=payload.cliente_id,
            inspeccion_id=payload.inspeccion_id,
            fecha_renta=payload.fecha_renta,
            cantidad_dias=payload.cantidad_dias,
            comentario=payload.comentario,
            user_id=context.user_id,
        )
    except RentalError as exc:
        _raise_http(exc)
    except IntegrityError:
        logger.warning("integrity error creating rental tenant_id=%s", tenant_id)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="No se pudo registrar la renta, intenta de nuevo."
        )
    return _serialize_renta(renta)


@router.post("/rentas/{renta_id}/devolver")
def return_renta(
    renta_id: str,
    payload: DevolucionRequest,
    context: SessionContext = Depends(require_editor),
    db: Session = Depends(get_db),
):
    try:
        renta = rentals.return_vehicle(
            db,
            context.tenant_id,
            renta_id,
            confirm=payload.confirmar,
            user_id=context.user_id,
        )
    except RentalError as exc:
        _raise_http(exc)
    return _serialize_renta(renta)
