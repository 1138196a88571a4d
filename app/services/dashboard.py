from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db import models


def _money_sum(query) -> str:
    total = query.scalar()
    return f"{Decimal(str(total or 0)):.2f}"


def dashboard_stats(db: Session, tenant_id: Optional[str], today: Optional[date] = None) -> dict:
    """Summary cards. "Today" is the calendar day; week and month are rolling 7/30 day windows."""
    today = today or date.today()
    week_ago = today - timedelta(days=7)
    month_ago = today - timedelta(days=30)

    def scoped(model):
        query = db.query(model).filter(model.estado.is_(True))
        if tenant_id:
            query = query.filter(model.tenant_id == tenant_id)
        return query

    def income_since(*criteria):
        query = db.query(func.sum(models.Renta.monto_total)).filter(models.Renta.estado.is_(True), *criteria)
        if tenant_id:
            query = query.filter(models.Renta.tenant_id == tenant_id)
        return query

    total_vehicles = scoped(models.Vehiculo).count()
    available_vehicles = scoped(models.Vehiculo).filter(models.Vehiculo.disponible.is_(True)).count()
    total_clients = scoped(models.Cliente).count()
    total_employees = scoped(models.Empleado).count()
    active_rentals = scoped(models.Renta).filter(models.Renta.estado_renta == models.RENTA_ACTIVA).count()
    overdue_rentals = scoped(models.Renta).filter(models.Renta.estado_renta == models.RENTA_VENCIDA).count()
    today_rentals = scoped(models.Renta).filter(models.Renta.fecha_renta == today).count()

    return {
        "total_vehicles": total_vehicles,
        "available_vehicles": available_vehicles,
        "total_clients": total_clients,
        "total_employees": total_employees,
        "active_rentals": active_rentals,
        "overdue_rentals": overdue_rentals,
        "today_rentals": today_rentals,
        "today_income": _money_sum(income_since(models.Renta.fecha_renta == today)),
        "weekly_income": _money_sum(income_since(models.Renta.fecha_renta >= week_ago)),
        "monthly_income": _money_sum(income_since(models.Renta.fecha_renta >= month_ago)),
    }
