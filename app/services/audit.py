from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session

from app.db import models


def record(
    db: Session,
    action: str,
    *,
    tenant_id: Optional[str] = None,
    user_id: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    payload: Optional[dict] = None,
    request: Optional[Request] = None,
) -> models.AuditLog:
    """Stage an audit row; it is committed together with the change it describes."""
    log = models.AuditLog(
        tenant_id=tenant_id,
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        payload_resumen=payload or {},
        ip=request.client.host if request and request.client else None,
        user_agent=request.headers.get("user-agent") if request else None,
    )
    db.add(log)
    return log
