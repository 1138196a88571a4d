import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Query, Session

from app.core.config import settings
from app.core.security import get_current_user
from app.db import models
from app.db.session import get_db

logger = logging.getLogger("rentcar.auth")

EDITOR_ROLES = {models.ROLE_SUPERADMIN, models.ROLE_ADMIN, models.ROLE_EMPLEADO}
ADMIN_ROLES = {models.ROLE_SUPERADMIN, models.ROLE_ADMIN}


class AuthorizationError(Exception):
    pass


@dataclass(frozen=True)
class SessionContext:
    """Role and tenant of the authenticated principal, resolved once per request."""

    user_id: str
    email: str
    role: str
    tenant_id: Optional[str]

    @property
    def is_superadmin(self) -> bool:
        return self.role == models.ROLE_SUPERADMIN

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def can_edit(self) -> bool:
        return self.role in EDITOR_ROLES

    @property
    def is_read_only(self) -> bool:
        return self.role == models.ROLE_SOLO_LECTURA

    def as_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "role": self.role,
            "tenant_id": self.tenant_id,
            "is_superadmin": self.is_superadmin,
            "is_admin": self.is_admin,
            "can_edit": self.can_edit,
            "is_read_only": self.is_read_only,
        }


def is_superadmin_email(email: Optional[str]) -> bool:
    return bool(email) and email.strip().lower() == settings.SUPERADMIN_EMAIL


def resolve_session_context(db: Session, user: models.User) -> SessionContext:
    if is_superadmin_email(user.email):
        return SessionContext(user_id=user.id, email=user.email, role=models.ROLE_SUPERADMIN, tenant_id=None)

    membership = (
        db.query(models.TenantUser)
        .filter(models.TenantUser.user_id == user.id, models.TenantUser.is_active.is_(True))
        .order_by(models.TenantUser.created_at.desc())
        .first()
    )
    if not membership:
        logger.warning("user without tenant membership denied user_id=%s", user.id)
        raise AuthorizationError("El usuario no tiene una empresa asignada")
    if membership.role not in models.TENANT_ROLES:
        raise AuthorizationError("Rol de usuario inválido")
    tenant = membership.tenant
    if not tenant or not tenant.is_active:
        raise AuthorizationError("La empresa está inactiva")
    return SessionContext(user_id=user.id, email=user.email, role=membership.role, tenant_id=tenant.id)


def get_session_context(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SessionContext:
    try:
        return resolve_session_context(db, user)
    except AuthorizationError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))


def require_editor(context: SessionContext = Depends(get_session_context)) -> SessionContext:
    if not context.can_edit:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permiso denegado")
    return context


def require_admin(context: SessionContext = Depends(get_session_context)) -> SessionContext:
    if not context.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permiso denegado")
    return context


def require_superadmin(context: SessionContext = Depends(get_session_context)) -> SessionContext:
    if not context.is_superadmin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Acceso restringido al superadministrador")
    return context


def apply_tenant_scope(query: Query, context: SessionContext, tenant_field) -> Query:
    if context.is_superadmin:
        return query
    return query.filter(tenant_field == context.tenant_id)


def resolve_target_tenant(db: Session, context: SessionContext, tenant_id: Optional[str]) -> str:
    """Tenant that owns a new row: the caller's own, or an explicit one for the superadmin."""
    if not context.is_superadmin:
        return context.tenant_id
    if not tenant_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="tenant_id es requerido")
    tenant = db.query(models.Tenant).filter(models.Tenant.id == tenant_id).first()
    if not tenant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Empresa no encontrada")
    return tenant.id
