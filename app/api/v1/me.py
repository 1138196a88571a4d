from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.authorization import SessionContext, get_session_context
from app.db import models
from app.db.session import get_db
from app.services import tenant_limits

router = APIRouter(tags=["Usuario"])


@router.get("/me")
def get_me(
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    tenant = None
    if context.tenant_id:
        tenant = db.query(models.Tenant).filter(models.Tenant.id == context.tenant_id).first()
    limits = tenant_limits.get_tenant_limits(db, context.tenant_id)
    return {
        "user": context.as_dict(),
        "tenant": {"id": tenant.id, "name": tenant.name, "slug": tenant.slug} if tenant else None,
        "limits": tenant_limits.usage_summary(limits, context.is_superadmin),
    }


@router.get("/limits")
def get_limits(
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    limits = tenant_limits.get_tenant_limits(db, context.tenant_id)
    return tenant_limits.usage_summary(limits, context.is_superadmin)
