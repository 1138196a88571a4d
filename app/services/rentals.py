import logging
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.db import models
from app.services import audit

logger = logging.getLogger("rentcar.rentals")

CENTS = Decimal("0.01")
RETURNABLE_STATES = (models.RENTA_ACTIVA, models.RENTA_VENCIDA)


class RentalError(Exception):
    pass


class RentalNotFoundError(RentalError):
    pass


class RentalConflictError(RentalError):
    pass


class RentalValidationError(RentalError):
    pass


def money(value) -> str:
    return f"{Decimal(str(value or 0)):.2f}"


def compute_total(monto_por_dia, cantidad_dias: int) -> Decimal:
    return (Decimal(str(monto_por_dia)) * cantidad_dias).quantize(CENTS, rounding=ROUND_HALF_UP)


def scheduled_return_date(fecha_renta: date, cantidad_dias: int) -> date:
    return fecha_renta + timedelta(days=cantidad_dias)


def format_rental_number(sequence: int, prefix: Optional[str] = None) -> str:
    return f"{settings.RENTAL_NUMBER_PREFIX if prefix is None else prefix}{sequence:06d}"


def next_rental_number(db: Session, tenant_id: str) -> str:
    counter = (
        db.query(models.RentaSecuencia)
        .filter(models.RentaSecuencia.tenant_id == tenant_id)
        .with_for_update()
        .first()
    )
    if counter is None:
        counter = models.RentaSecuencia(tenant_id=tenant_id, ultimo_numero=0)
        db.add(counter)
    counter.ultimo_numero = (counter.ultimo_numero or 0) + 1
    return format_rental_number(counter.ultimo_numero)


def _scoped(db: Session, model, tenant_id: Optional[str]):
    query = db.query(model)
    if tenant_id:
        query = query.filter(model.tenant_id == tenant_id)
    return query


def get_rental(db: Session, tenant_id: Optional[str], renta_id: str) -> models.Renta:
    renta = _scoped(db, models.Renta, tenant_id).filter(models.Renta.id == renta_id).first()
    if not renta or not renta.estado:
        raise RentalNotFoundError("Renta no encontrada")
    return renta


def create_rental(
    db: Session,
    tenant_id: str,
    *,
    empleado_id: str,
    vehiculo_id: str,
    cliente_id: str,
    fecha_renta: date,
    cantidad_dias: int,
    inspeccion_id: Optional[str] = None,
    comentario: Optional[str] = None,
    user_id: Optional[str] = None,
) -> models.Renta:
    """Create a rental and mark its vehicle unavailable in a single transaction."""
    if cantidad_dias is None or cantidad_dias < 1:
        raise RentalValidationError("La cantidad de días debe ser al menos 1")

    try:
        vehiculo = (
            _scoped(db, models.Vehiculo, tenant_id)
            .filter(models.Vehiculo.id == vehiculo_id)
            .with_for_update()
            .first()
        )
        if not vehiculo or not vehiculo.estado:
            raise RentalNotFoundError("Vehículo no encontrado")
        if not vehiculo.disponible:
            raise RentalConflictError("El vehículo no está disponible")

        cliente = _scoped(db, models.Cliente, tenant_id).filter(models.Cliente.id == cliente_id).first()
        if not cliente or not cliente.estado:
            raise RentalNotFoundError("Cliente no encontrado")
        empleado = _scoped(db, models.Empleado, tenant_id).filter(models.Empleado.id == empleado_id).first()
        if not empleado or not empleado.estado:
            raise RentalNotFoundError("Empleado no encontrado")
        if inspeccion_id:
            inspeccion = (
                _scoped(db, models.Inspeccion, tenant_id)
                .filter(models.Inspeccion.id == inspeccion_id)
                .first()
            )
            if not inspeccion or not inspeccion.estado:
                raise RentalNotFoundError("Inspección no encontrada")
            if inspeccion.vehiculo_id != vehiculo.id:
                raise RentalConflictError("La inspección no corresponde al vehículo seleccionado")

        monto_por_dia = Decimal(str(vehiculo.precio_por_dia)).quantize(CENTS)
        renta = models.Renta(
            tenant_id=tenant_id,
            numero_renta=next_rental_number(db, tenant_id),
            empleado_id=empleado.id,
            vehiculo_id=vehiculo.id,
            cliente_id=cliente.id,
            inspeccion_id=inspeccion_id or None,
            fecha_renta=fecha_renta,
            fecha_devolucion_programada=scheduled_return_date(fecha_renta, cantidad_dias),
            monto_por_dia=monto_por_dia,
            cantidad_dias=cantidad_dias,
            monto_total=compute_total(monto_por_dia, cantidad_dias),
            comentario=comentario,
            estado_renta=models.RENTA_ACTIVA,
        )
        db.add(renta)
        vehiculo.disponible = False
        db.flush()
        audit.record(
            db,
            "renta.created",
            tenant_id=tenant_id,
            user_id=user_id,
            resource_type="renta",
            resource_id=renta.id,
            payload={"numero_renta": renta.numero_renta, "vehiculo_id": vehiculo.id, "monto_total": str(renta.monto_total)},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(renta)
    logger.info("rental created tenant_id=%s numero=%s", tenant_id, renta.numero_renta)
    return renta


def return_vehicle(
    db: Session,
    tenant_id: Optional[str],
    renta_id: str,
    *,
    confirm: bool,
    user_id: Optional[str] = None,
    today: Optional[date] = None,
) -> models.Renta:
    """Close a rental and make its vehicle available again in a single transaction."""
    if not confirm:
        raise RentalValidationError("Debes confirmar la devolución del vehículo")

    try:
        renta = get_rental(db, tenant_id, renta_id)
        if renta.estado_renta not in RETURNABLE_STATES:
            raise RentalConflictError("La renta ya fue devuelta")
        renta.fecha_devolucion_real = today or date.today()
        renta.estado_renta = models.RENTA_DEVUELTA
        vehiculo = renta.vehiculo
        if vehiculo is not None:
            vehiculo.disponible = True
        audit.record(
            db,
            "renta.returned",
            tenant_id=renta.tenant_id,
            user_id=user_id,
            resource_type="renta",
            resource_id=renta.id,
            payload={"numero_renta": renta.numero_renta, "fecha_devolucion_real": renta.fecha_devolucion_real.isoformat()},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(renta)
    logger.info("rental returned tenant_id=%s numero=%s", renta.tenant_id, renta.numero_renta)
    return renta


def mark_overdue_rentals(
    db: Session,
    today: Optional[date] = None,
    tenant_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> int:
    """Move active rentals past their scheduled return date to Vencida."""
    today = today or date.today()
    query = _scoped(db, models.Renta, tenant_id).filter(
        models.Renta.estado.is_(True),
        models.Renta.estado_renta == models.RENTA_ACTIVA,
        models.Renta.fecha_devolucion_programada < today,
    )
    try:
        rentas = query.all()
        for renta in rentas:
            renta.estado_renta = models.RENTA_VENCIDA
            audit.record(
                db,
                "renta.overdue",
                tenant_id=renta.tenant_id,
                user_id=user_id,
                resource_type="renta",
                resource_id=renta.id,
                payload={"numero_renta": renta.numero_renta},
            )
        db.commit()
    except Exception:
        db.rollback()
        raise
    if rentas:
        logger.info("overdue sweep marked=%s today=%s", len(rentas), today.isoformat())
    return len(rentas)
