import pytest

from app.core.authorization import AuthorizationError, SessionContext, is_superadmin_email, resolve_session_context
from app.core.config import settings
from app.db import models
from tests.factories import make_superadmin, make_tenant, make_user


def test_superadmin_email_is_case_insensitive():
    assert is_superadmin_email(settings.SUPERADMIN_EMAIL.upper())
    assert not is_superadmin_email("otro@example.com")
    assert not is_superadmin_email(None)


def test_superadmin_context_has_no_tenant(db_session):
    user = make_superadmin(db_session)
    context = resolve_session_context(db_session, user)
    assert context.is_superadmin
    assert context.tenant_id is None
    assert context.can_edit and context.is_admin


def test_membership_resolves_role_and_tenant(db_session):
    tenant = make_tenant(db_session)
    user = make_user(db_session, "empleado@example.com", tenant, role=models.ROLE_EMPLEADO)
    context = resolve_session_context(db_session, user)
    assert context.role == models.ROLE_EMPLEADO
    assert context.tenant_id == tenant.id
    assert context.can_edit
    assert not context.is_admin


def test_missing_membership_is_denied(db_session):
    user = make_user(db_session, "nadie@example.com")
    with pytest.raises(AuthorizationError):
        resolve_session_context(db_session, user)


def test_inactive_tenant_is_denied(db_session):
    tenant = make_tenant(db_session, is_active=False)
    user = make_user(db_session, "admin@example.com", tenant)
    with pytest.raises(AuthorizationError):
        resolve_session_context(db_session, user)


def test_unknown_role_is_denied(db_session):
    tenant = make_tenant(db_session)
    user = make_user(db_session, "raro@example.com", tenant, role="owner")
    with pytest.raises(AuthorizationError):
        resolve_session_context(db_session, user)


@pytest.mark.parametrize(
    "role,can_edit,is_admin,read_only",
    [
        (models.ROLE_ADMIN, True, True, False),
        (models.ROLE_EMPLEADO, True, False, False),
        (models.ROLE_SOLO_LECTURA, False, False, True),
    ],
)
def test_capabilities_per_role(role, can_edit, is_admin, read_only):
    context = SessionContext(user_id="u", email="u@example.com", role=role, tenant_id="t")
    assert context.can_edit is can_edit
    assert context.is_admin is is_admin
    assert context.is_read_only is read_only
    assert context.as_dict()["role"] == role
