from datetime import date
from decimal import Decimal

from app.core.config import settings
from app.core.security import create_access_token
from app.db import models
from app.services.tenant_limits import DEFAULT_LIMITS


def make_tenant(db, slug="acme", limits=None, is_active=True):
    tenant = models.Tenant(name=f"Empresa {slug}", slug=slug, email=f"{slug}@example.com", is_active=is_active)
    db.add(tenant)
    db.flush()
    if limits is not None:
        db.add(models.TenantLimits(tenant_id=tenant.id, **{**DEFAULT_LIMITS, **limits}))
    db.commit()
    return tenant


def make_user(db, email, tenant=None, role=models.ROLE_ADMIN):
    user = models.User(email=email, password_hash="x")
    db.add(user)
    db.flush()
    if tenant is not None:
        db.add(models.TenantUser(tenant_id=tenant.id, user_id=user.id, role=role))
    db.commit()
    return user


def make_superadmin(db):
    return make_user(db, settings.SUPERADMIN_EMAIL)


def auth_headers(user) -> dict:
    token = create_access_token({"sub": user.id, "email": user.email})
    return {"Authorization": f"Bearer {token}"}


def make_fleet(db, tenant, precio=Decimal("50.00")):
    """One vehicle, client and employee ready to rent."""
    vehiculo = models.Vehiculo(
        tenant_id=tenant.id,
        descripcion="Toyota Corolla",
        numero_chasis="CH-1",
        numero_motor="MT-1",
        numero_placa="A123456",
        precio_por_dia=precio,
    )
    cliente = models.Cliente(tenant_id=tenant.id, nombre="Juan Pérez", cedula="001-0000000-1", limite_credito=0)
    empleado = models.Empleado(
        tenant_id=tenant.id,
        nombre="Ana Gómez",
        cedula="002-0000000-2",
        fecha_ingreso=date(2023, 1, 1),
    )
    db.add_all([vehiculo, cliente, empleado])
    db.commit()
    return vehiculo, cliente, empleado
