from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
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

router = APIRouter(tags=["Inspecciones"])


class InspeccionCreate(BaseModel):
    tenant_id: str | None = None
    vehiculo_id: str
    cliente_id: str
    empleado_id: str
    tiene_ralladuras: bool = False
    cantidad_combustible: Literal["1/4", "1/2", "3/4", "Lleno"] = "Lleno"
    tiene_goma_respuesta: bool = True
    tiene_gato: bool = True
    tiene_roturas_cristal: bool = False
    estado_goma_delantera_izq: bool = True
    estado_goma_delantera_der: bool = True
    estado_goma_trasera_izq: bool = True
    estado_goma_trasera_der: bool = True
    estado_goma_respuesta: bool = True
    observaciones: str | None = None
    fecha_inspeccion: date = Field(default_factory=date.today)


def _serialize_inspeccion(i: models.Inspeccion) -> dict:
    return {
        "id": i.id,
        "tenant_id": i.tenant_id,
        "vehiculo_id": i.vehiculo_id,
        "vehiculo": i.vehiculo.descripcion if i.vehiculo else None,
        "cliente_id": i.cliente_id,
        "cliente": i.cliente.nombre if i.cliente else None,
        "empleado_id": i.empleado_id,
        "empleado": i.empleado.nombre if i.empleado else None,
        "tiene_ralladuras": i.tiene_ralladuras,
        "cantidad_combustible": i.cantidad_combustible,
        "tiene_goma_respuesta": i.tiene_goma_respuesta,
        "tiene_gato": i.tiene_gato,
        "tiene_roturas_cristal": i.tiene_roturas_cristal,
        "estado_goma_delantera_izq": i.estado_goma_delantera_izq,
        "estado_goma_delantera_der": i.estado_goma_delantera_der,
        "estado_goma_trasera_izq": i.estado_goma_trasera_izq,
        "estado_goma_trasera_der": i.estado_goma_trasera_der,
        "estado_goma_respuesta": i.estado_goma_respuesta,
        "observaciones": i.observaciones,
        "fecha_inspeccion": i.fecha_inspeccion,
        "created_at": i.created_at,
    }


def _require_active(db: Session, model, item_id: str, tenant_id: str, detail: str):
    item = (
        db.query(model)
        .filter(model.id == item_id, model.tenant_id == tenant_id, model.estado.is_(True))
        .first()
    )
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return item


@router.get("/inspecciones")
def list_inspecciones(
    vehiculo_id: str | None = None,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    query = db.query(models.Inspeccion).filter(models.Inspeccion.estado.is_(True))
    query = apply_tenant_scope(query, context, models.Inspeccion.tenant_id)
    if vehiculo_id:
        query = query.filter(models.Inspeccion.vehiculo_id == vehiculo_id)
    inspecciones = query.order_by(models.Inspeccion.fecha_inspeccion.desc(), models.Inspeccion.created_at.desc()).all()
    return {"inspecciones": [_serialize_inspeccion(i) for i in inspecciones]}


@router.get("/inspecciones/{inspeccion_id}")
def get_inspeccion(
    inspeccion_id: str,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    query = db.query(models.Inspeccion).filter(models.Inspeccion.id == inspeccion_id)
    inspeccion = apply_tenant_scope(query, context, models.Inspeccion.tenant_id).first()
    if not inspeccion or not inspeccion.estado:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inspección no encontrada")
    return _serialize_inspeccion(inspeccion)


@router.post("/inspecciones", status_code=status.HTTP_201_CREATED)
def create_inspeccion(
    payload: InspeccionCreate,
    context: SessionContext = Depends(require_editor),
    db: Session = Depends(get_db),
):
    tenant_id = resolve_target_tenant(db, context, payload.tenant_id)
    _require_active(db, models.Vehiculo, payload.vehiculo_id, tenant_id, "Vehículo no encontrado")
    _require_active(db, models.Cliente, payload.cliente_id, tenant_id, "Cliente no encontrado")
    _require_active(db, models.Empleado, payload.empleado_id, tenant_id, "Empleado no encontrado")

    inspeccion = models.Inspeccion(tenant_id=tenant_id, **payload.model_dump(exclude={"tenant_id"}))
    db.add(inspeccion)
    db.commit()
    db.refresh(inspeccion)
    return _serialize_inspeccion(inspeccion)
