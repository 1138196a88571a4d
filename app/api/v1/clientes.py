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
    require_editor,
    resolve_target_tenant,
)
from app.core.validators import format_cedula, get_validation_message
from app.db import models
from app.db.session import get_db
from app.services import tenant_limits
from app.services.rentals import money
from app.services.tenant_limits import LimitReachedError

router = APIRouter(tags=["Clientes"])

DUPLICATE_CEDULA = "Ya existe un cliente con esta cédula."


def _validated(field: str, value):
    message = get_validation_message(field, value)
    if message:
        raise ValueError(message)
    return value


class ClienteCreate(BaseModel):
    tenant_id: str | None = None
    nombre: str = Field(..., min_length=1)
    cedula: str
    numero_tarjeta_credito: str | None = None
    limite_credito: Decimal
    tipo_persona: Literal["Física", "Jurídica"] = "Física"
    telefono: str | None = None
    direccion: str | None = None

    @field_validator("cedula")
    @classmethod
    def _check_cedula(cls, value: str) -> str:
        return format_cedula(_validated("cedula", value))

    @field_validator("limite_credito", mode="before")
    @classmethod
    def _check_limite(cls, value):
        return _validated("limite_credito", value)


class ClienteUpdate(BaseModel):
    nombre: str | None = None
    cedula: str | None = None
    numero_tarjeta_credito: str | None = None
    limite_credito: Decimal | None = None
    tipo_persona: Literal["Física", "Jurídica"] | None = None
    telefono: str | None = None
    direccion: str | None = None

    @field_validator("cedula")
    @classmethod
    def _check_cedula(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return format_cedula(_validated("cedula", value))

    @field_validator("limite_credito", mode="before")
    @classmethod
    def _check_limite(cls, value):
        if value is None:
            return value
        return _validated("limite_credito", value)


def _serialize_cliente(c: models.Cliente) -> dict:
    return {
        "id": c.id,
        "tenant_id": c.tenant_id,
        "nombre": c.nombre,
        "cedula": c.cedula,
        "numero_tarjeta_credito": c.numero_tarjeta_credito,
        "limite_credito": money(c.limite_credito),
        "tipo_persona": c.tipo_persona,
        "telefono": c.telefono,
        "direccion": c.direccion,
        "estado": c.estado,
        "created_at": c.created_at,
    }


def _get_cliente(db: Session, context: SessionContext, cliente_id: str) -> models.Cliente:
    query = db.query(models.Cliente).filter(models.Cliente.id == cliente_id, models.Cliente.estado.is_(True))
    cliente = apply_tenant_scope(query, context, models.Cliente.tenant_id).first()
    if not cliente:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cliente no encontrado")
    return cliente


def _check_duplicate_cedula(db: Session, tenant_id: str, cedula: str, exclude_id: str | None = None) -> None:
    query = db.query(models.Cliente).filter(
        models.Cliente.tenant_id == tenant_id,
        models.Cliente.cedula == cedula,
        models.Cliente.estado.is_(True),
    )
    if exclude_id:
        query = query.filter(models.Cliente.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_CEDULA)


@router.get("/clientes")
def list_clientes(
    q: str | None = None,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    query = db.query(models.Cliente).filter(models.Cliente.estado.is_(True))
    query = apply_tenant_scope(query, context, models.Cliente.tenant_id)
    if q:
        term = f"%{q.strip()}%"
        query = query.filter(or_(models.Cliente.nombre.ilike(term), models.Cliente.cedula.ilike(term)))
    clientes = query.order_by(models.Cliente.created_at.desc()).all()
    return {"clientes": [_serialize_cliente(c) for c in clientes]}


@router.get("/clientes/{cliente_id}")
def get_cliente(
    cliente_id: str,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    return _serialize_cliente(_get_cliente(db, context, cliente_id))


@router.post("/clientes", status_code=status.HTTP_201_CREATED)
def create_cliente(
    payload: ClienteCreate,
    context: SessionContext = Depends(require_editor),
    db: Session = Depends(get_db),
):
    tenant_id = resolve_target_tenant(db, context, payload.tenant_id)
    try:
        tenant_limits.ensure_can_add(db, tenant_id, tenant_limits.CLIENTS, context.is_superadmin)
    except LimitReachedError as exc:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(exc))
    _check_duplicate_cedula(db, tenant_id, payload.cedula)

    cliente = models.Cliente(tenant_id=tenant_id, **payload.model_dump(exclude={"tenant_id"}))
    db.add(cliente)
    tenant_limits.refresh_usage(db, tenant_id)
    db.commit()
    db.refresh(cliente)
    return _serialize_cliente(cliente)


@router.put("/clientes/{cliente_id}")
def update_cliente(
    cliente_id: str,
    payload: ClienteUpdate,
    context: SessionContext = Depends(require_editor),
    db: Session = Depends(get_db),
):
    cliente = _get_cliente(db, context, cliente_id)
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "cedula" in data:
        _check_duplicate_cedula(db, cliente.tenant_id, data["cedula"], exclude_id=cliente.id)
    for field, value in data.items():
        setattr(cliente, field, value)
    db.commit()
    db.refresh(cliente)
    return _serialize_cliente(cliente)


@router.delete("/clientes/{cliente_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_cliente(
    cliente_id: str,
    context: SessionContext = Depends(require_editor),
    db: Session = Depends(get_db),
):
    cliente = _get_cliente(db, context, cliente_id)
    cliente.estado = False
    tenant_limits.refresh_usage(db, cliente.tenant_id)
    db.commit()
    return None
