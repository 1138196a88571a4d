from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.authorization import (
    SessionContext,
    apply_tenant_scope,
    get_session_context,
    require_editor,
    resolve_target_tenant,
)
from app.db import models
from app.db.session import get_db
from app.services import tenant_limits
from app.services.rentals import money
from app.services.tenant_limits import LimitReachedError

router = APIRouter(tags=["Vehiculos"])

_LOOKUP_FIELDS = {
    "tipo_vehiculo_id": models.TipoVehiculo,
    "marca_id": models.Marca,
    "modelo_id": models.Modelo,
    "tipo_combustible_id": models.TipoCombustible,
}
_REQUIRED_FIELDS = {"descripcion", "numero_chasis", "numero_motor", "numero_placa", "precio_por_dia"}


class VehiculoCreate(BaseModel):
    tenant_id: str | None = None
    descripcion: str = Field(..., min_length=1)
    numero_chasis: str = Field(..., min_length=1)
    numero_motor: str = Field(..., min_length=1)
    numero_placa: str = Field(..., min_length=1)
    tipo_vehiculo_id: str | None = None
    marca_id: str | None = None
    modelo_id: str | None = None
    tipo_combustible_id: str | None = None
    precio_por_dia: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    imagen_url: str | None = None


class VehiculoUpdate(BaseModel):
    descripcion: str | None = None
    numero_chasis: str | None = None
    numero_motor: str | None = None
    numero_placa: str | None = None
    tipo_vehiculo_id: str | None = None
    marca_id: str | None = None
    modelo_id: str | None = None
    tipo_combustible_id: str | None = None
    precio_por_dia: Decimal | None = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    imagen_url: str | None = None


def _serialize_vehiculo(v: models.Vehiculo) -> dict:
    return {
        "id": v.id,
        "tenant_id": v.tenant_id,
        "descripcion": v.descripcion,
        "numero_chasis": v.numero_chasis,
        "numero_motor": v.numero_motor,
        "numero_placa": v.numero_placa,
        "tipo_vehiculo_id": v.tipo_vehiculo_id,
        "tipo_vehiculo": v.tipo_vehiculo.descripcion if v.tipo_vehiculo else None,
        "marca_id": v.marca_id,
        "marca": v.marca.descripcion if v.marca else None,
        "modelo_id": v.modelo_id,
        "modelo": v.modelo.descripcion if v.modelo else None,
        "tipo_combustible_id": v.tipo_combustible_id,
        "tipo_combustible": v.tipo_combustible.descripcion if v.tipo_combustible else None,
        "precio_por_dia": money(v.precio_por_dia),
        "imagen_url": v.imagen_url,
        "estado": v.estado,
        "disponible": v.disponible,
        "created_at": v.created_at,
    }


def _get_vehiculo(db: Session, context: SessionContext, vehiculo_id: str) -> models.Vehiculo:
    query = db.query(models.Vehiculo).filter(models.Vehiculo.id == vehiculo_id, models.Vehiculo.estado.is_(True))
    vehiculo = apply_tenant_scope(query, context, models.Vehiculo.tenant_id).first()
    if not vehiculo:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vehículo no encontrado")
    return vehiculo


def _check_lookups(db: Session, tenant_id: str, values: dict) -> None:
    for field, model in _LOOKUP_FIELDS.items():
        lookup_id = values.get(field)
        if not lookup_id:
            continue
        exists = (
            db.query(model)
            .filter(model.id == lookup_id, model.tenant_id == tenant_id, model.estado.is_(True))
            .first()
        )
        if not exists:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{field} inválido")


def _check_placa(db: Session, tenant_id: str, placa: str, exclude_id: str | None = None) -> None:
    query = db.query(models.Vehiculo).filter(
        models.Vehiculo.tenant_id == tenant_id,
        models.Vehiculo.numero_placa == placa,
        models.Vehiculo.estado.is_(True),
    )
    if exclude_id:
        query = query.filter(models.Vehiculo.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Ya existe un vehículo con esta placa.")


@router.get("/vehiculos")
def list_vehiculos(
    q: str | None = None,
    disponible: bool | None = None,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    query = db.query(models.Vehiculo).filter(models.Vehiculo.estado.is_(True))
    query = apply_tenant_scope(query, context, models.Vehiculo.tenant_id)
    if disponible is not None:
        query = query.filter(models.Vehiculo.disponible.is_(disponible))
    if q:
        term = f"%{q.strip()}%"
        query = query.filter(
            or_(models.Vehiculo.descripcion.ilike(term), models.Vehiculo.numero_placa.ilike(term))
        )
    vehiculos = query.order_by(models.Vehiculo.created_at.desc()).all()
    return {"vehiculos": [_serialize_vehiculo(v) for v in vehiculos]}


@router.get("/vehiculos/{vehiculo_id}")
def get_vehiculo(
    vehiculo_id: str,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    return _serialize_vehiculo(_get_vehiculo(db, context, vehiculo_id))


@router.post("/vehiculos", status_code=status.HTTP_201_CREATED)
def create_vehiculo(
    payload: VehiculoCreate,
    context: SessionContext = Depends(require_editor),
    db: Session = Depends(get_db),
):
    tenant_id = resolve_target_tenant(db, context, payload.tenant_id)
    try:
        tenant_limits.ensure_can_add(db, tenant_id, tenant_limits.VEHICLES, context.is_superadmin)
    except LimitReachedError as exc:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(exc))
    data = payload.model_dump(exclude={"tenant_id"})
    _check_lookups(db, tenant_id, data)
    _check_placa(db, tenant_id, payload.numero_placa)

    vehiculo = models.Vehiculo(tenant_id=tenant_id, **data)
    db.add(vehiculo)
    tenant_limits.refresh_usage(db, tenant_id)
    db.commit()
    db.refresh(vehiculo)
    return _serialize_vehiculo(vehiculo)


@router.put("/vehiculos/{vehiculo_id}")
def update_vehiculo(
    vehiculo_id: str,
    payload: VehiculoUpdate,
    context: SessionContext = Depends(require_editor),
    db: Session = Depends(get_db),
):
    vehiculo = _get_vehiculo(db, context, vehiculo_id)
    data = payload.model_dump(exclude_unset=True)
    _check_lookups(db, vehiculo.tenant_id, data)
    if data.get("numero_placa"):
        _check_placa(db, vehiculo.tenant_id, data["numero_placa"], exclude_id=vehiculo.id)
    for field, value in data.items():
        if value is None and field in _REQUIRED_FIELDS:
            continue
        setattr(vehiculo, field, value)
    db.commit()
    db.refresh(vehiculo)
    return _serialize_vehiculo(vehiculo)


@router.delete("/vehiculos/{vehiculo_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_vehiculo(
    vehiculo_id: str,
    context: SessionContext = Depends(require_editor),
    db: Session = Depends(get_db),
):
    vehiculo = _get_vehiculo(db, context, vehiculo_id)
    rented = (
        db.query(models.Renta)
        .filter(
            models.Renta.vehiculo_id == vehiculo.id,
            models.Renta.estado.is_(True),
            models.Renta.estado_renta.in_([models.RENTA_ACTIVA, models.RENTA_VENCIDA]),
        )
        .first()
    )
    if rented:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="El vehículo tiene una renta activa")
    vehiculo.estado = False
    tenant_limits.refresh_usage(db, vehiculo.tenant_id)
    db.commit()
    return None
