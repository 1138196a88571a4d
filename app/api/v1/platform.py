import logging
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.authorization import SessionContext, require_superadmin
from app.core.validators import get_validation_message
from app.db import models
from app.db.session import get_db
from app.services import audit, tenant_limits
from app.services.rentals import money

logger = logging.getLogger("rentcar.platform")

router = APIRouter(prefix="/platform", tags=["Platform"])

SLUG_PATTERN = r"^[a-z0-9-]+$"
SubscriptionStatus = Literal["active", "inactive", "cancelled", "expired"]
TenantRole = Literal["admin", "empleado", "solo_lectura"]


def _check_email(value: str | None) -> str | None:
    if value is None:
        return value
    message = get_validation_message("email", value)
    if message:
        raise ValueError(message)
    return value.strip().lower()


class TenantCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., pattern=SLUG_PATTERN)
    email: str
    phone: str | None = None
    address: str | None = None
    logo_url: str | None = None
    is_active: bool = True
    plan_id: str | None = None

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str | None) -> str | None:
        return _check_email(value)


class TenantUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    slug: str | None = Field(default=None, pattern=SLUG_PATTERN)
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    logo_url: str | None = None
    is_active: bool | None = None

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str | None) -> str | None:
        return _check_email(value)


class PlanCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str | None = None
    price_usd: Decimal = Field(..., ge=0)
    price_dop: Decimal = Field(..., ge=0)
    vehicle_limit: int | None = Field(default=None, ge=0)
    client_limit: int | None = Field(default=None, ge=0)
    employee_limit: int | None = Field(default=None, ge=0)
    features: list[str] = Field(default_factory=list)
    is_active: bool = True


class PlanUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    price_usd: Decimal | None = Field(default=None, ge=0)
    price_dop: Decimal | None = Field(default=None, ge=0)
    vehicle_limit: int | None = Field(default=None, ge=0)
    client_limit: int | None = Field(default=None, ge=0)
    employee_limit: int | None = Field(default=None, ge=0)
    features: list[str] | None = None
    is_active: bool | None = None


class SubscriptionAssign(BaseModel):
    tenant_id: str
    plan_id: str
    ends_at: datetime | None = None
    auto_renew: bool = True


class SubscriptionStatusUpdate(BaseModel):
    status: SubscriptionStatus


class TenantUserCreate(BaseModel):
    email: str
    role: TenantRole = "empleado"

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str | None) -> str | None:
        return _check_email(value)


class TenantUserUpdate(BaseModel):
    role: TenantRole | None = None
    is_active: bool | None = None


def _serialize_tenant(tenant: models.Tenant) -> dict:
    return {
        "id": tenant.id,
        "name": tenant.name,
        "slug": tenant.slug,
        "email": tenant.email,
        "phone": tenant.phone,
        "address": tenant.address,
        "logo_url": tenant.logo_url,
        "is_active": tenant.is_active,
        "created_at": tenant.created_at,
        "updated_at": tenant.updated_at,
    }


def _serialize_plan(plan: models.SubscriptionPlan) -> dict:
    return {
        "id": plan.id,
        "name": plan.name,
        "description": plan.description,
        "price_usd": money(plan.price_usd),
        "price_dop": money(plan.price_dop),
        "vehicle_limit": plan.vehicle_limit,
        "client_limit": plan.client_limit,
        "employee_limit": plan.employee_limit,
        "features": plan.features or [],
        "is_active": plan.is_active,
        "created_at": plan.created_at,
    }


def _serialize_subscription(subscription: models.TenantSubscription) -> dict:
    return {
        "id": subscription.id,
        "tenant_id": subscription.tenant_id,
        "tenant_name": subscription.tenant.name if subscription.tenant else None,
        "plan_id": subscription.plan_id,
        "plan_name": subscription.plan.name if subscription.plan else None,
        "status": subscription.status,
        "starts_at": subscription.starts_at,
        "ends_at": subscription.ends_at,
        "auto_renew": subscription.auto_renew,
        "created_at": subscription.created_at,
        "updated_at": subscription.updated_at,
    }


def _serialize_membership(membership: models.TenantUser) -> dict:
    return {
        "id": membership.id,
        "tenant_id": membership.tenant_id,
        "user_id": membership.user_id,
        "email": membership.user.email if membership.user else None,
        "role": membership.role,
        "is_active": membership.is_active,
        "created_at": membership.created_at,
    }


def _get_tenant(db: Session, tenant_id: str) -> models.Tenant:
    tenant = db.query(models.Tenant).filter(models.Tenant.id == tenant_id).first()
    if not tenant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Empresa no encontrada")
    return tenant


def _get_plan(db: Session, plan_id: str) -> models.SubscriptionPlan:
    plan = db.query(models.SubscriptionPlan).filter(models.SubscriptionPlan.id == plan_id).first()
    if not plan:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plan no encontrado")
    return plan


def _check_slug(db: Session, slug: str, exclude_id: Optional[str] = None) -> None:
    query = db.query(models.Tenant).filter(models.Tenant.slug == slug)
    if exclude_id:
        query = query.filter(models.Tenant.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="El slug ya está en uso")


def _active_subscription(db: Session, tenant_id: str) -> Optional[models.TenantSubscription]:
    return (
        db.query(models.TenantSubscription)
        .filter(
            models.TenantSubscription.tenant_id == tenant_id,
            models.TenantSubscription.status == "active",
        )
        .order_by(models.TenantSubscription.created_at.desc())
        .first()
    )


def _deactivate_active_subscriptions(db: Session, tenant_id: str, keep_id: Optional[str] = None) -> None:
    query = db.query(models.TenantSubscription).filter(
        models.TenantSubscription.tenant_id == tenant_id,
        models.TenantSubscription.status == "active",
    )
    if keep_id:
        query = query.filter(models.TenantSubscription.id != keep_id)
    query.update({models.TenantSubscription.status: "inactive"}, synchronize_session="fetch")


def _assign_plan(
    db: Session,
    tenant: models.Tenant,
    plan: models.SubscriptionPlan,
    ends_at: Optional[datetime] = None,
    auto_renew: bool = True,
) -> models.TenantSubscription:
    if not plan.is_active:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="El plan está inactivo")
    _deactivate_active_subscriptions(db, tenant.id)
    subscription = models.TenantSubscription(
        tenant_id=tenant.id,
        plan_id=plan.id,
        status="active",
        starts_at=datetime.utcnow(),
        ends_at=ends_at,
        auto_renew=auto_renew,
    )
    db.add(subscription)
    tenant_limits.apply_plan_limits(db, tenant.id, plan)
    return subscription


def _commit(db: Session, detail: str) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("integrity error on platform write: %s", detail)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


@router.get("/tenants")
def list_tenants(
    q: str | None = None,
    context: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    query = db.query(models.Tenant)
    if q:
        term = f"%{q.strip()}%"
        query = query.filter(
            or_(models.Tenant.name.ilike(term), models.Tenant.slug.ilike(term), models.Tenant.email.ilike(term))
        )
    tenants = query.order_by(models.Tenant.created_at.desc()).all()
    items = []
    for tenant in tenants:
        subscription = _active_subscription(db, tenant.id)
        items.append(
            {
                **_serialize_tenant(tenant),
                "plan_name": subscription.plan.name if subscription and subscription.plan else None,
            }
        )
    return {"tenants": items}


@router.post("/tenants", status_code=status.HTTP_201_CREATED)
def create_tenant(
    payload: TenantCreate,
    request: Request,
    context: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    _check_slug(db, payload.slug)
    tenant = models.Tenant(**payload.model_dump(exclude={"plan_id"}))
    db.add(tenant)
    db.flush()
    if payload.plan_id:
        _assign_plan(db, tenant, _get_plan(db, payload.plan_id))
    else:
        db.add(models.TenantLimits(tenant_id=tenant.id, **tenant_limits.DEFAULT_LIMITS))
    audit.record(
        db,
        "platform.tenant.created",
        tenant_id=tenant.id,
        user_id=context.user_id,
        resource_type="tenant",
        resource_id=tenant.id,
        payload={"slug": tenant.slug, "plan_id": payload.plan_id},
        request=request,
    )
    _commit(db, "El slug ya está en uso")
    db.refresh(tenant)
    logger.info("tenant created tenant_id=%s slug=%s", tenant.id, tenant.slug)
    return _serialize_tenant(tenant)


@router.get("/tenants/{tenant_id}")
def get_tenant(
    tenant_id: str,
    context: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    tenant = _get_tenant(db, tenant_id)
    subscription = _active_subscription(db, tenant.id)
    limits = tenant_limits.get_tenant_limits(db, tenant.id)
    return {
        **_serialize_tenant(tenant),
        "subscription": _serialize_subscription(subscription) if subscription else None,
        "limits": tenant_limits.usage_summary(limits),
    }


@router.put("/tenants/{tenant_id}")
def update_tenant(
    tenant_id: str,
    payload: TenantUpdate,
    request: Request,
    context: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    tenant = _get_tenant(db, tenant_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("slug"):
        _check_slug(db, data["slug"], exclude_id=tenant.id)
    for field, value in data.items():
        if value is None and field in {"name", "slug", "email", "is_active"}:
            continue
        setattr(tenant, field, value)
    audit.record(
        db,
        "platform.tenant.updated",
        tenant_id=tenant.id,
        user_id=context.user_id,
        resource_type="tenant",
        resource_id=tenant.id,
        payload={"fields": sorted(data.keys())},
        request=request,
    )
    _commit(db, "El slug ya está en uso")
    db.refresh(tenant)
    return _serialize_tenant(tenant)


@router.delete("/tenants/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tenant(
    tenant_id: str,
    request: Request,
    context: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    tenant = _get_tenant(db, tenant_id)
    audit.record(
        db,
        "platform.tenant.deleted",
        tenant_id=tenant.id,
        user_id=context.user_id,
        resource_type="tenant",
        resource_id=tenant.id,
        payload={"slug": tenant.slug, "name": tenant.name},
        request=request,
    )
    db.delete(tenant)
    db.commit()
    logger.info("tenant deleted tenant_id=%s", tenant_id)
    return None


@router.get("/plans")
def list_plans(
    include_inactive: bool = True,
    context: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    query = db.query(models.SubscriptionPlan)
    if not include_inactive:
        query = query.filter(models.SubscriptionPlan.is_active.is_(True))
    plans = query.order_by(models.SubscriptionPlan.price_usd.asc()).all()
    return {"plans": [_serialize_plan(plan) for plan in plans]}


@router.post("/plans", status_code=status.HTTP_201_CREATED)
def create_plan(
    payload: PlanCreate,
    request: Request,
    context: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    plan = models.SubscriptionPlan(**payload.model_dump())
    db.add(plan)
    db.flush()
    audit.record(
        db,
        "platform.plan.created",
        user_id=context.user_id,
        resource_type="plan",
        resource_id=plan.id,
        payload={"name": plan.name},
        request=request,
    )
    _commit(db, "Ya existe un plan con ese nombre")
    db.refresh(plan)
    return _serialize_plan(plan)


@router.put("/plans/{plan_id}")
def update_plan(
    plan_id: str,
    payload: PlanUpdate,
    request: Request,
    context: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    plan = _get_plan(db, plan_id)
    data = payload.model_dump(exclude_unset=True)
    for field, value in data.items():
        if value is None and field in {"name", "price_usd", "price_dop", "features", "is_active"}:
            continue
        setattr(plan, field, value)
    audit.record(
        db,
        "platform.plan.updated",
        user_id=context.user_id,
        resource_type="plan",
        resource_id=plan.id,
        payload={"fields": sorted(data.keys())},
        request=request,
    )
    _commit(db, "Ya existe un plan con ese nombre")
    db.refresh(plan)
    return _serialize_plan(plan)


@router.delete("/plans/{plan_id}")
def deactivate_plan(
    plan_id: str,
    request: Request,
    context: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    plan = _get_plan(db, plan_id)
    plan.is_active = False
    audit.record(
        db,
        "platform.plan.deactivated",
        user_id=context.user_id,
        resource_type="plan",
        resource_id=plan.id,
        request=request,
    )
    db.commit()
    db.refresh(plan)
    return _serialize_plan(plan)


@router.get("/subscriptions")
def list_subscriptions(
    tenant_id: str | None = None,
    status_filter: SubscriptionStatus | None = None,
    context: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    query = db.query(models.TenantSubscription)
    if tenant_id:
        query = query.filter(models.TenantSubscription.tenant_id == tenant_id)
    if status_filter:
        query = query.filter(models.TenantSubscription.status == status_filter)
    subscriptions = query.order_by(models.TenantSubscription.created_at.desc()).all()
    return {"subscriptions": [_serialize_subscription(s) for s in subscriptions]}


@router.post("/subscriptions", status_code=status.HTTP_201_CREATED)
def assign_subscription(
    payload: SubscriptionAssign,
    request: Request,
    context: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    tenant = _get_tenant(db, payload.tenant_id)
    plan = _get_plan(db, payload.plan_id)
    subscription = _assign_plan(db, tenant, plan, ends_at=payload.ends_at, auto_renew=payload.auto_renew)
    db.flush()
    audit.record(
        db,
        "platform.subscription.assigned",
        tenant_id=tenant.id,
        user_id=context.user_id,
        resource_type="subscription",
        resource_id=subscription.id,
        payload={"plan_id": plan.id, "plan_name": plan.name},
        request=request,
    )
    db.commit()
    db.refresh(subscription)
    logger.info("plan assigned tenant_id=%s plan=%s", tenant.id, plan.name)
    return _serialize_subscription(subscription)


@router.patch("/subscriptions/{subscription_id}")
def update_subscription_status(
    subscription_id: str,
    payload: SubscriptionStatusUpdate,
    request: Request,
    context: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    subscription = (
        db.query(models.TenantSubscription)
        .filter(models.TenantSubscription.id == subscription_id)
        .first()
    )
    if not subscription:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Suscripción no encontrada")
    previous = subscription.status
    if payload.status == "active" and previous != "active":
        _deactivate_active_subscriptions(db, subscription.tenant_id, keep_id=subscription.id)
        tenant_limits.apply_plan_limits(db, subscription.tenant_id, subscription.plan)
    subscription.status = payload.status
    audit.record(
        db,
        "platform.subscription.status",
        tenant_id=subscription.tenant_id,
        user_id=context.user_id,
        resource_type="subscription",
        resource_id=subscription.id,
        payload={"from": previous, "to": payload.status},
        request=request,
    )
    db.commit()
    db.refresh(subscription)
    return _serialize_subscription(subscription)


@router.get("/tenants/{tenant_id}/users")
def list_tenant_users(
    tenant_id: str,
    context: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    _get_tenant(db, tenant_id)
    memberships = (
        db.query(models.TenantUser)
        .filter(models.TenantUser.tenant_id == tenant_id)
        .order_by(models.TenantUser.created_at.desc())
        .all()
    )
    return {"users": [_serialize_membership(m) for m in memberships]}


@router.post("/tenants/{tenant_id}/users", status_code=status.HTTP_201_CREATED)
def add_tenant_user(
    tenant_id: str,
    payload: TenantUserCreate,
    request: Request,
    context: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    tenant = _get_tenant(db, tenant_id)
    user = db.query(models.User).filter(func.lower(models.User.email) == payload.email).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuario no encontrado")
    existing = (
        db.query(models.TenantUser)
        .filter(models.TenantUser.tenant_id == tenant.id, models.TenantUser.user_id == user.id)
        .first()
    )
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="El usuario ya pertenece a esta empresa")
    membership = models.TenantUser(tenant_id=tenant.id, user_id=user.id, role=payload.role)
    db.add(membership)
    db.flush()
    audit.record(
        db,
        "platform.membership.created",
        tenant_id=tenant.id,
        user_id=context.user_id,
        resource_type="tenant_user",
        resource_id=membership.id,
        payload={"user_id": user.id, "role": payload.role},
        request=request,
    )
    _commit(db, "El usuario ya pertenece a esta empresa")
    db.refresh(membership)
    return _serialize_membership(membership)


@router.patch("/tenant-users/{membership_id}")
def update_tenant_user(
    membership_id: str,
    payload: TenantUserUpdate,
    request: Request,
    context: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    membership = db.query(models.TenantUser).filter(models.TenantUser.id == membership_id).first()
    if not membership:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Membresía no encontrada")
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in data.items():
        setattr(membership, field, value)
    audit.record(
        db,
        "platform.membership.updated",
        tenant_id=membership.tenant_id,
        user_id=context.user_id,
        resource_type="tenant_user",
        resource_id=membership.id,
        payload=data,
        request=request,
    )
    db.commit()
    db.refresh(membership)
    return _serialize_membership(membership)


@router.get("/stats")
def platform_stats(
    context: SessionContext = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    total_tenants = db.query(models.Tenant).count()
    active_tenants = db.query(models.Tenant).filter(models.Tenant.is_active.is_(True)).count()
    active_subscriptions = (
        db.query(models.TenantSubscription).filter(models.TenantSubscription.status == "active").count()
    )
    monthly_revenue = (
        db.query(func.sum(models.SubscriptionPlan.price_usd))
        .join(models.TenantSubscription, models.TenantSubscription.plan_id == models.SubscriptionPlan.id)
        .filter(models.TenantSubscription.status == "active")
        .scalar()
    )
    return {
        "total_tenants": total_tenants,
        "active_tenants": active_tenants,
        "active_subscriptions": active_subscriptions,
        "monthly_revenue_usd": money(monthly_revenue),
        "total_vehicles": db.query(models.Vehiculo).filter(models.Vehiculo.estado.is_(True)).count(),
        "total_clients": db.query(models.Cliente).filter(models.Cliente.estado.is_(True)).count(),
        "total_rentals": db.query(models.Renta).filter(models.Renta.estado.is_(True)).count(),
    }
