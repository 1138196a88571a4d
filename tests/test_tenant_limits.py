import pytest

from app.db import models
from app.services import tenant_limits
from app.services.tenant_limits import LimitReachedError
from tests.factories import make_fleet, make_tenant


def _limits(**values):
    return models.TenantLimits(**values)


def test_can_add_below_and_at_limit():
    assert tenant_limits.can_add_client(_limits(current_clients=29, max_clients=30))
    assert not tenant_limits.can_add_client(_limits(current_clients=30, max_clients=30))
    assert not tenant_limits.can_add_vehicle(_limits(current_vehicles=31, max_vehicles=30))
    assert tenant_limits.can_add_employee(_limits(current_employees=0, max_employees=10))


def test_unlimited_and_superadmin_always_allowed():
    assert tenant_limits.can_add_vehicle(_limits(current_vehicles=500, max_vehicles=None))
    assert tenant_limits.can_add_client(_limits(current_clients=30, max_clients=30), is_superadmin=True)
    assert tenant_limits.can_add_employee(None)


def test_usage():
    limits = _limits(current_vehicles=15, max_vehicles=30, current_clients=3, max_clients=None)
    assert tenant_limits.get_usage(limits, tenant_limits.VEHICLES) == {"current": 15, "max": 30, "percentage": 50}
    assert tenant_limits.get_usage(limits, tenant_limits.CLIENTS)["percentage"] == 0
    assert tenant_limits.get_usage(None, tenant_limits.EMPLOYEES) == {"current": 0, "max": 0, "percentage": 0}


def test_usage_summary_flags():
    summary = tenant_limits.usage_summary(_limits(current_vehicles=30, max_vehicles=30, current_clients=0, max_clients=30, current_employees=0, max_employees=10))
    assert summary["vehicles"]["can_add"] is False
    assert summary["clients"]["can_add"] is True
    assert set(summary) == {"vehicles", "clients", "employees"}


def test_ensure_can_add_raises_with_message(db_session):
    tenant = make_tenant(db_session, limits={"current_clients": 30, "max_clients": 30})
    with pytest.raises(LimitReachedError) as exc:
        tenant_limits.ensure_can_add(db_session, tenant.id, tenant_limits.CLIENTS)
    assert str(exc.value) == "Has alcanzado el límite de clientes para tu plan actual."
    tenant_limits.ensure_can_add(db_session, tenant.id, tenant_limits.CLIENTS, is_superadmin=True)


def test_refresh_usage_counts_active_rows(db_session):
    tenant = make_tenant(db_session, limits={})
    vehiculo, cliente, _ = make_fleet(db_session, tenant)
    cliente.estado = False
    limits = tenant_limits.refresh_usage(db_session, tenant.id)
    db_session.commit()
    assert limits.current_vehicles == 1
    assert limits.current_clients == 0
    assert limits.current_employees == 1


def test_apply_plan_limits_creates_row(db_session):
    tenant = make_tenant(db_session)
    plan = models.SubscriptionPlan(name="Ilimitado", vehicle_limit=None, client_limit=5, employee_limit=2, features=[])
    db_session.add(plan)
    db_session.flush()
    limits = tenant_limits.apply_plan_limits(db_session, tenant.id, plan)
    db_session.commit()
    db_session.expire_all()
    assert limits.max_vehicles is None
    assert limits.max_clients == 5
    assert limits.max_employees == 2
    assert tenant_limits.get_tenant_limits(db_session, tenant.id).id == limits.id


def test_factory_limits_start_from_default_caps(db_session):
    tenant = make_tenant(db_session, limits={"max_clients": None})
    limits = tenant_limits.get_tenant_limits(db_session, tenant.id)
    assert limits.max_vehicles == tenant_limits.DEFAULT_LIMITS["max_vehicles"]
    assert limits.max_clients is None
    assert limits.max_employees == tenant_limits.DEFAULT_LIMITS["max_employees"]
