from datetime import date
from decimal import Decimal
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.authorization import (
    SessionContext,
    apply_tenant_scope,
    get_session_context,
    require_admin,
    resolve_target_tenant,
)
from app.core.validators import format_cedula, get_validation_message
from app.db import models
from app.db.session import get_db
from app.services import tenant_limits
from app.services.tenant_limits import LimitReachedError

router = APIRouter(tags=["Empleados"])

Tanda = Literal["Matutina", "Vespertina", "Nocturna"]


def _cedula(value: str) -> str:
    message = get_validation_message("cedula", value)
    if message:
        raise ValueError(message)
    return format_cedula(value)


class EmpleadoCreate(BaseModel):
    tenant_id: str | None = None
    nombre: str = Field(..., min_length=1)
    cedula: str
    tanda_labor: Tanda = "Matutina"
    porciento_comision: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    fecha_ingreso: date = Field(default_factory=date.today)
    telefono: str | None = None
    direccion: str | None = None

    @field_validator("cedula")
    @classmethod
    def _check_cedula(cls, value: str) -> str:
        return _cedula(value)


class EmpleadoUpdate(BaseModel):
    nombre: str | None = None
    cedula: str | None = None
    tanda_labor: Tanda | None = None
    porciento_comision: Decimal | None = Field(default=None, ge=0, le=100)
    fecha_ingreso: date | None = None
    telefono: str | None = None
    direccion: str | None = None

    @field_validator("cedula")
    @classmethod
    def _check_cedula(cls, value: str | None) -> str | None:
        return _cedula(value) if value is not None else value


def _serialize_empleado(e: models.Empleado) -> dict:
    return {
        "id": e.id,
        "tenant_id": e.tenant_id,
        "nombre": e.nombre,
        "cedula": e.cedula,
        "tanda_labor": e.tanda_labor,
        "porciento_comision": f"{Decimal(str(e.porciento_comision or 0)):.2f}",
        "fecha_ingreso": e.fecha_ingreso,
        "telefono": e.telefono,
        "direccion": e.direccion,
        "estado": e.estado,
        "created_at": e.created_at,
    }


def _get_empleado(db: Session, context: SessionContext, empleado_id: str) -> models.Empleado:
    query = db.query(models.Empleado).filter(models.Empleado.id == empleado_id, models.Empleado.estado.is_(True))
    empleado = apply_tenant_scope(query, context, models.Empleado.tenant_id).first()
    if not empleado:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Empleado no encontrado")
    return empleado


def _check_duplicate_cedula(db: Session, tenant_id: str, cedula: str, exclude_id: str | None = None) -> None:
    query = db.query(models.Empleado).filter(
        models.Empleado.tenant_id == tenant_id,
        models.Empleado.cedula == cedula,
        models.Empleado.estado.is_(True),
    )
    if exclude_id:
        query = query.filter(models.Empleado.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Ya existe un empleado con esta cédula.")


@router.get("/empleados")
def list_empleados(
    q: str | None = None,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    query = db.query(models.Empleado).filter(models.Empleado.estado.is_(True))
    query = apply_tenant_scope(query, context, models.Empleado.tenant_id)
    if q:
        term = f"%{q.strip()}%"
        query = query.filter(or_(models.Empleado.nombre.ilike(term), models.Empleado.cedula.ilike(term)))
    empleados = query.order_by(models.Empleado.nombre.asc()).all()
    return {"empleados": [_serialize_empleado(e) for e in empleados]}


@router.get("/empleados/{empleado_id}")
def get_empleado(
    empleado_id: str,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    return _serialize_empleado(_get_empleado(db, context, empleado_id))


@router.post("/empleados", status_code=status.HTTP_201_CREATED)
def create_empleado(
    payload: EmpleadoCreate,
    context: SessionContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    tenant_id = resolve_target_tenant(db, context, payload.tenant_id)
    try:
        tenant_limits.ensure_can_add(db, tenant_id, tenant_limits.EMPLOYEES, context.is_superadmin)
    except LimitReachedError as exc:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(exc))
    _check_duplicate_cedula(db, tenant_id, payload.cedula)

    empleado = models.Empleado(tenant_id=tenant_id, **payload.model_dump(exclude={"tenant_id"}))
    db.add(empleado)
    tenant_limits.refresh_usage(db, tenant_id)
    db.commit()
    db.refresh(empleado)
    return _serialize_empleado(empleado)


@router.put("/empleados/{empleado_id}")
def update_empleado(
    empleado_id: str,
    payload: EmpleadoUpdate,
    context: SessionContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    empleado = _get_empleado(db, context, empleado_id)
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "cedula" in data:
        _check_duplicate_cedula(db, empleado.tenant_id, data["cedula"], exclude_id=empleado.id)
    for field, value in data.items():
        setattr(empleado, field, value)
    db.commit()
    db.refresh(empleado)
    return _serialize_empleado(empleado)


@router.delete("/empleados/{empleado_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_empleado(
    empleado_id: str,
    context: SessionContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    empleado = _get_empleado(db, context, empleado_id)
    empleado.estado = False
    tenant_limits.refresh_usage(db, empleado.tenant_id)
    db.commit()
    return None
