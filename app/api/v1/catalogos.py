from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.authorization import (
    SessionContext,
    apply_tenant_scope,
    get_session_context,
    require_admin,
    resolve_target_tenant,
)
from app.db import models
from app.db.session import get_db

router = APIRouter(tags=["Catalogos"])

CATALOGOS = {
    "tipos-vehiculo": models.TipoVehiculo,
    "marcas": models.Marca,
    "modelos": models.Modelo,
    "tipos-combustible": models.TipoCombustible,
}


class CatalogoCreate(BaseModel):
    tenant_id: str | None = None
    descripcion: str = Field(..., min_length=1)
    marca_id: str | None = None


class CatalogoUpdate(BaseModel):
    descripcion: str | None = Field(default=None, min_length=1)
    marca_id: str | None = None


def _catalogo(catalogo: str):
    model = CATALOGOS.get(catalogo)
    if model is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Catálogo no encontrado")
    return model


def _serialize_item(item) -> dict:
    data = {
        "id": item.id,
        "tenant_id": item.tenant_id,
        "descripcion": item.descripcion,
        "estado": item.estado,
        "created_at": item.created_at,
    }
    if isinstance(item, models.Modelo):
        data["marca_id"] = item.marca_id
        data["marca"] = item.marca.descripcion if item.marca else None
    return data


def _get_item(db: Session, context: SessionContext, model, item_id: str):
    query = db.query(model).filter(model.id == item_id, model.estado.is_(True))
    item = apply_tenant_scope(query, context, model.tenant_id).first()
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Registro no encontrado")
    return item


def _check_marca(db: Session, tenant_id: str, marca_id: str | None) -> None:
    if not marca_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="marca_id es requerido")
    marca = (
        db.query(models.Marca)
        .filter(models.Marca.id == marca_id, models.Marca.tenant_id == tenant_id, models.Marca.estado.is_(True))
        .first()
    )
    if not marca:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Marca no encontrada")


@router.get("/catalogos/{catalogo}")
def list_items(
    catalogo: str,
    marca_id: str | None = None,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    model = _catalogo(catalogo)
    query = db.query(model).filter(model.estado.is_(True))
    query = apply_tenant_scope(query, context, model.tenant_id)
    if marca_id and model is models.Modelo:
        query = query.filter(models.Modelo.marca_id == marca_id)
    items = query.order_by(model.descripcion.asc()).all()
    return {"items": [_serialize_item(item) for item in items]}


@router.post("/catalogos/{catalogo}", status_code=status.HTTP_201_CREATED)
def create_item(
    catalogo: str,
    payload: CatalogoCreate,
    context: SessionContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    model = _catalogo(catalogo)
    tenant_id = resolve_target_tenant(db, context, payload.tenant_id)
    if model is models.Modelo:
        _check_marca(db, tenant_id, payload.marca_id)
        item = models.Modelo(tenant_id=tenant_id, descripcion=payload.descripcion, marca_id=payload.marca_id)
    else:
        item = model(tenant_id=tenant_id, descripcion=payload.descripcion)
    db.add(item)
    db.commit()
    db.refresh(item)
    return _serialize_item(item)


@router.put("/catalogos/{catalogo}/{item_id}")
def update_item(
    catalogo: str,
    item_id: str,
    payload: CatalogoUpdate,
    context: SessionContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    model = _catalogo(catalogo)
    item = _get_item(db, context, model, item_id)
    if payload.descripcion is not None:
        item.descripcion = payload.descripcion
    if payload.marca_id is not None and model is models.Modelo:
        _check_marca(db, item.tenant_id, payload.marca_id)
        item.marca_id = payload.marca_id
    db.commit()
    db.refresh(item)
    return _serialize_item(item)


@router.delete("/catalogos/{catalogo}/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(
    catalogo: str,
    item_id: str,
    context: SessionContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    model = _catalogo(catalogo)
    item = _get_item(db, context, model, item_id)
    item.estado = False
    db.commit()
    return None
