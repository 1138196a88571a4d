import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.db import models

logger = logging.getLogger("rentcar.limits")

VEHICLES = "vehicles"
CLIENTS = "clients"
EMPLOYEES = "employees"


@dataclass(frozen=True)
class _Resource:
    current_field: str
    max_field: str
    model: type
    label: str


RESOURCES = {
    VEHICLES: _Resource("current_vehicles", "max_vehicles", models.Vehiculo, "vehículos"),
    CLIENTS: _Resource("current_clients", "max_clients", models.Cliente, "clientes"),
    EMPLOYEES: _Resource("current_employees", "max_employees", models.Empleado, "empleados"),
}

# Caps for a tenant created without a plan. A plan with null limits is unlimited.
DEFAULT_LIMITS = {"max_vehicles": 30, "max_clients": 30, "max_employees": 10}


class LimitReachedError(Exception):
    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(f"Has alcanzado el límite de {RESOURCES[resource].label} para tu plan actual.")


def can_add(limits: Optional[models.TenantLimits], resource: str, is_superadmin: bool = False) -> bool:
    if is_superadmin or limits is None:
        return True
    resource_def = RESOURCES[resource]
    maximum = getattr(limits, resource_def.max_field)
    if maximum is None:
        return True
    return (getattr(limits, resource_def.current_field) or 0) < maximum


def can_add_vehicle(limits: Optional[models.TenantLimits], is_superadmin: bool = False) -> bool:
    return can_add(limits, VEHICLES, is_superadmin)


def can_add_client(limits: Optional[models.TenantLimits], is_superadmin: bool = False) -> bool:
    return can_add(limits, CLIENTS, is_superadmin)


def can_add_employee(limits: Optional[models.TenantLimits], is_superadmin: bool = False) -> bool:
    return can_add(limits, EMPLOYEES, is_superadmin)


def get_usage(limits: Optional[models.TenantLimits], resource: str) -> dict:
    # No limits row reads as 0/0 even though can_add treats it as unlimited.
    if limits is None:
        return {"current": 0, "max": 0, "percentage": 0}
    resource_def = RESOURCES[resource]
    current = getattr(limits, resource_def.current_field) or 0
    maximum = getattr(limits, resource_def.max_field)
    percentage = (current / maximum * 100) if maximum else 0
    return {"current": current, "max": maximum, "percentage": percentage}


def get_tenant_limits(db: Session, tenant_id: Optional[str]) -> Optional[models.TenantLimits]:
    if not tenant_id:
        return None
    return db.query(models.TenantLimits).filter(models.TenantLimits.tenant_id == tenant_id).first()


def usage_summary(limits: Optional[models.TenantLimits], is_superadmin: bool = False) -> dict:
    return {
        resource: {**get_usage(limits, resource), "can_add": can_add(limits, resource, is_superadmin)}
        for resource in RESOURCES
    }


def ensure_can_add(db: Session, tenant_id: str, resource: str, is_superadmin: bool = False) -> None:
    limits = get_tenant_limits(db, tenant_id)
    if not can_add(limits, resource, is_superadmin):
        logger.info("limit reached tenant_id=%s resource=%s", tenant_id, resource)
        raise LimitReachedError(resource)


def refresh_usage(db: Session, tenant_id: str) -> Optional[models.TenantLimits]:
    """Recompute the current_* counters from active rows. Does not commit."""
    db.flush()
    limits = get_tenant_limits(db, tenant_id)
    if limits is None:
        return None
    for resource_def in RESOURCES.values():
        count = (
            db.query(resource_def.model)
            .filter(resource_def.model.tenant_id == tenant_id, resource_def.model.estado.is_(True))
            .count()
        )
        setattr(limits, resource_def.current_field, count)
    return limits


def apply_plan_limits(db: Session, tenant_id: str, plan: models.SubscriptionPlan) -> models.TenantLimits:
    limits = get_tenant_limits(db, tenant_id)
    if limits is None:
        limits = models.TenantLimits(tenant_id=tenant_id)
        db.add(limits)
    limits.max_vehicles = plan.vehicle_limit
    limits.max_clients = plan.client_limit
    limits.max_employees = plan.employee_limit
    refresh_usage(db, tenant_id)
    return limits
