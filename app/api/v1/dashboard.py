from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.authorization import SessionContext, get_session_context
from app.db.session import get_db
from app.services.dashboard import dashboard_stats

router = APIRouter(tags=["Dashboard"])


@router.get("/dashboard/summary")
def dashboard_summary(
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    return dashboard_stats(db, context.tenant_id)
