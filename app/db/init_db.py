import logging
import os
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import get_password_hash
from app.db import models
from app.db.session import SessionLocal
from app.services import tenant_limits

logger = logging.getLogger("rentcar")

superadmin_password = os.getenv("SUPERADMIN_PASSWORD", "admin123")
demo_admin_email = "admin@rentcar.com"
demo_admin_password = os.getenv("DEMO_ADMIN_PASSWORD", "admin123")

DEFAULT_PLANS = [
    {
        "name": "Plan Básico",
        "description": "Perfecto para empresas pequeñas",
        "price_usd": Decimal("25.00"),
        "price_dop": Decimal("1500.00"),
        "vehicle_limit": 30,
        "client_limit": 30,
        "employee_limit": 10,
        "features": ["Gestión básica", "Reportes simples", "Soporte por email"],
    },
    {
        "name": "Plan Intermedio",
        "description": "Ideal para empresas en crecimiento",
        "price_usd": Decimal("50.00"),
        "price_dop": Decimal("3000.00"),
        "vehicle_limit": 100,
        "client_limit": 100,
        "employee_limit": 25,
        "features": ["Gestión avanzada", "Reportes detallados", "Soporte prioritario", "Múltiples usuarios"],
    },
    {
        "name": "Plan Avanzado",
        "description": "Para empresas grandes sin límites",
        "price_usd": Decimal("83.33"),
        "price_dop": Decimal("5000.00"),
        "vehicle_limit": None,
        "client_limit": None,
        "employee_limit": None,
        "features": ["Sin límites", "Reportes personalizados", "Soporte 24/7", "API access", "Integraciones"],
    },
]

DEMO_LOOKUPS = {
    models.TipoVehiculo: ["Sedán", "SUV", "Camioneta", "Compacto"],
    models.TipoCombustible: ["Gasolina", "Diésel", "GLP", "Eléctrico"],
    models.Marca: ["Toyota", "Honda", "Hyundai"],
}


def seed_plans(db: Session) -> list[models.SubscriptionPlan]:
    plans = []
    for data in DEFAULT_PLANS:
        plan = db.query(models.SubscriptionPlan).filter(models.SubscriptionPlan.name == data["name"]).first()
        if not plan:
            plan = models.SubscriptionPlan(**data)
            db.add(plan)
        plans.append(plan)
    db.flush()
    return plans


def ensure_user(db: Session, email: str, password: str) -> models.User:
    user = db.query(models.User).filter(models.User.email == email).first()
    if not user:
        user = models.User(email=email, password_hash=get_password_hash(password))
        db.add(user)
        db.flush()
    return user


def _seed_demo_tenant(db: Session, plan: models.SubscriptionPlan) -> models.Tenant:
    tenant = db.query(models.Tenant).filter(models.Tenant.slug == "demo").first()
    if tenant:
        return tenant
    tenant = models.Tenant(
        name="RentCar Demo",
        slug="demo",
        email="demo@rentcar.com",
        phone="809-555-0123",
        address="Av. Principal #123, Santo Domingo",
    )
    db.add(tenant)
    db.flush()
    db.add(models.TenantSubscription(tenant_id=tenant.id, plan_id=plan.id, status="active"))
    tenant_limits.apply_plan_limits(db, tenant.id, plan)
    for model, descripciones in DEMO_LOOKUPS.items():
        for descripcion in descripciones:
            db.add(model(tenant_id=tenant.id, descripcion=descripcion))

    admin = ensure_user(db, demo_admin_email, demo_admin_password)
    db.add(models.TenantUser(tenant_id=tenant.id, user_id=admin.id, role=models.ROLE_ADMIN))
    return tenant


def seed_initial_data(db: Optional[Session] = None) -> None:
    owns_session = db is None
    db = db or SessionLocal()
    try:
        plans = seed_plans(db)
        ensure_user(db, settings.SUPERADMIN_EMAIL, superadmin_password)
        if settings.SEED_DEMO_DATA:
            _seed_demo_tenant(db, plans[0])
        db.commit()
        logger.info("seed ok superadmin=%s demo=%s", settings.SUPERADMIN_EMAIL, settings.SEED_DEMO_DATA)
    except Exception:
        db.rollback()
        logger.exception("seed failed")
        raise
    finally:
        if owns_session:
            db.close()
