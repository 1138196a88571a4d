import unittest
from datetime import date
from decimal import Decimal

from fastapi.testclient import TestClient

from app.db import models
from app.main import app
from tests.factories import auth_headers, make_fleet, make_superadmin, make_tenant, make_user

VALID_CEDULA = "001-0000000-9"


def _cliente_payload(**overrides):
    payload = {"nombre": "María Rodríguez", "cedula": "00100000009", "limite_credito": "1500.00"}
    payload.update(overrides)
    return payload


def test_client_limit_returns_402_without_inserting(client, db_session):
    tenant = make_tenant(db_session, limits={"current_clients": 30, "max_clients": 30})
    admin = make_user(db_session, "admin@acme.com", tenant)

    res = client.post("/api/clientes", json=_cliente_payload(), headers=auth_headers(admin))

    assert res.status_code == 402
    assert res.json()["detail"] == "Has alcanzado el límite de clientes para tu plan actual."
    assert db_session.query(models.Cliente).count() == 0


def _vehiculo_payload(**overrides):
    payload = {
        "descripcion": "Hyundai Accent",
        "numero_chasis": "CH-9",
        "numero_motor": "MT-9",
        "numero_placa": "G000999",
        "precio_por_dia": "45.00",
    }
    payload.update(overrides)
    return payload


def test_vehicle_limit_returns_402_without_inserting(client, db_session):
    tenant = make_tenant(db_session, limits={"current_vehicles": 30, "max_vehicles": 30})
    admin = make_user(db_session, "admin@acme.com", tenant)

    res = client.post("/api/vehiculos", json=_vehiculo_payload(), headers=auth_headers(admin))

    assert res.status_code == 402
    assert res.json()["detail"] == "Has alcanzado el límite de vehículos para tu plan actual."
    assert db_session.query(models.Vehiculo).count() == 0


def test_employee_limit_returns_402_without_inserting(client, db_session):
    tenant = make_tenant(db_session, limits={"current_employees": 10, "max_employees": 10})
    admin = make_user(db_session, "admin@acme.com", tenant)
    payload = {"nombre": "Pedro Díaz", "cedula": "00200000008", "fecha_ingreso": "2024-01-15"}

    res = client.post("/api/empleados", json=payload, headers=auth_headers(admin))

    assert res.status_code == 402
    assert res.json()["detail"] == "Has alcanzado el límite de empleados para tu plan actual."
    assert db_session.query(models.Empleado).count() == 0


def test_create_client_formats_cedula_and_updates_usage(client, db_session):
    tenant = make_tenant(db_session, limits={})
    admin = make_user(db_session, "admin@acme.com", tenant)

    res = client.post("/api/clientes", json=_cliente_payload(), headers=auth_headers(admin))

    assert res.status_code == 201
    body = res.json()
    assert body["cedula"] == VALID_CEDULA
    assert body["limite_credito"] == "1500.00"
    limits = client.get("/api/limits", headers=auth_headers(admin)).json()
    assert limits["clients"]["current"] == 1


def test_duplicate_cedula_conflicts(client, db_session):
    tenant = make_tenant(db_session, limits={})
    admin = make_user(db_session, "admin@acme.com", tenant)
    headers = auth_headers(admin)

    assert client.post("/api/clientes", json=_cliente_payload(), headers=headers).status_code == 201
    res = client.post("/api/clientes", json=_cliente_payload(nombre="Otra"), headers=headers)

    assert res.status_code == 409
    assert res.json()["detail"] == "Ya existe un cliente con esta cédula."


def test_invalid_client_fields_rejected(client, db_session):
    tenant = make_tenant(db_session, limits={})
    admin = make_user(db_session, "admin@acme.com", tenant)
    headers = auth_headers(admin)

    assert client.post("/api/clientes", json=_cliente_payload(cedula="00100000001"), headers=headers).status_code == 422
    assert client.post("/api/clientes", json=_cliente_payload(limite_credito="-1"), headers=headers).status_code == 422


def test_user_without_membership_is_forbidden(client, db_session):
    user = make_user(db_session, "suelto@example.com")
    assert client.get("/api/vehiculos", headers=auth_headers(user)).status_code == 403
    assert client.get("/api/me", headers=auth_headers(user)).status_code == 403


def test_missing_token_is_unauthorized(client):
    assert client.get("/api/vehiculos").status_code == 401


def test_read_only_user_cannot_write(client, db_session):
    tenant = make_tenant(db_session, limits={})
    viewer = make_user(db_session, "viewer@acme.com", tenant, role=models.ROLE_SOLO_LECTURA)
    headers = auth_headers(viewer)

    assert client.get("/api/clientes", headers=headers).status_code == 200
    assert client.post("/api/clientes", json=_cliente_payload(), headers=headers).status_code == 403


def test_tenants_only_see_their_own_rows(client, db_session):
    acme = make_tenant(db_session, slug="acme")
    other = make_tenant(db_session, slug="otra")
    make_fleet(db_session, other)
    admin = make_user(db_session, "admin@acme.com", acme)

    res = client.get("/api/vehiculos", headers=auth_headers(admin))

    assert res.status_code == 200
    assert res.json()["vehiculos"] == []


def test_rental_flow_over_http(client, db_session):
    tenant = make_tenant(db_session, limits={})
    vehiculo, cliente, empleado = make_fleet(db_session, tenant)
    empleado_user = make_user(db_session, "caja@acme.com", tenant, role=models.ROLE_EMPLEADO)
    headers = auth_headers(empleado_user)
    payload = {
        "vehiculo_id": vehiculo.id,
        "cliente_id": cliente.id,
        "empleado_id": empleado.id,
        "fecha_renta": "2024-01-30",
        "cantidad_dias": 3,
    }

    created = client.post("/api/rentas", json=payload, headers=headers)
    assert created.status_code == 201
    renta = created.json()
    assert renta["monto_total"] == "150.00"
    assert renta["fecha_devolucion_programada"] == "2024-02-02"

    assert client.post("/api/rentas", json=payload, headers=headers).status_code == 409
    assert client.post(f"/api/rentas/{renta['id']}/devolver", json={}, headers=headers).status_code == 400

    returned = client.post(f"/api/rentas/{renta['id']}/devolver", json={"confirmar": True}, headers=headers)
    assert returned.status_code == 200
    assert returned.json()["estado_renta"] == models.RENTA_DEVUELTA
    db_session.expire_all()
    assert db_session.get(models.Vehiculo, vehiculo.id).disponible is True


def _renta_payload(vehiculo, cliente, empleado):
    return {
        "vehiculo_id": vehiculo.id,
        "cliente_id": cliente.id,
        "empleado_id": empleado.id,
        "fecha_renta": "2024-03-01",
        "cantidad_dias": 2,
    }


def test_vehicle_edit_cannot_release_rented_vehicle(client, db_session):
    tenant = make_tenant(db_session, limits={})
    vehiculo, cliente, empleado = make_fleet(db_session, tenant)
    admin = make_user(db_session, "admin@acme.com", tenant)
    headers = auth_headers(admin)
    payload = _renta_payload(vehiculo, cliente, empleado)
    assert client.post("/api/rentas", json=payload, headers=headers).status_code == 201

    res = client.put(
        f"/api/vehiculos/{vehiculo.id}",
        json={"disponible": True, "precio_por_dia": "60.00"},
        headers=headers,
    )

    assert res.status_code == 200
    assert res.json()["disponible"] is False
    assert res.json()["precio_por_dia"] == "60.00"
    again = client.post("/api/rentas", json=payload, headers=headers)
    assert again.status_code == 409
    assert again.json()["detail"] == "El vehículo no está disponible"


def test_new_vehicle_ignores_disponible_flag(client, db_session):
    tenant = make_tenant(db_session, limits={})
    admin = make_user(db_session, "admin@acme.com", tenant)

    res = client.post("/api/vehiculos", json=_vehiculo_payload(disponible=False), headers=auth_headers(admin))

    assert res.status_code == 201
    assert res.json()["disponible"] is True


def test_rental_number_collision_returns_409(client, db_session):
    tenant = make_tenant(db_session, limits={})
    vehiculo, cliente, empleado = make_fleet(db_session, tenant)
    # A row already holds the first number while the tenant has no counter yet.
    db_session.add(
        models.Renta(
            tenant_id=tenant.id,
            numero_renta="R000001",
            vehiculo_id=vehiculo.id,
            cliente_id=cliente.id,
            empleado_id=empleado.id,
            fecha_renta=date(2024, 1, 1),
            fecha_devolucion_programada=date(2024, 1, 2),
            monto_por_dia=Decimal("50.00"),
            cantidad_dias=1,
            monto_total=Decimal("50.00"),
            estado_renta=models.RENTA_DEVUELTA,
        )
    )
    db_session.commit()
    admin = make_user(db_session, "admin@acme.com", tenant)

    res = client.post("/api/rentas", json=_renta_payload(vehiculo, cliente, empleado), headers=auth_headers(admin))

    assert res.status_code == 409
    assert res.json()["detail"] == "No se pudo registrar la renta, intenta de nuevo."
    db_session.expire_all()
    assert db_session.query(models.Renta).count() == 1
    assert db_session.get(models.Vehiculo, vehiculo.id).disponible is True


def test_report_endpoints(client, db_session):
    tenant = make_tenant(db_session, limits={})
    vehiculo, cliente, empleado = make_fleet(db_session, tenant)
    admin = make_user(db_session, "admin@acme.com", tenant)
    headers = auth_headers(admin)
    client.post(
        "/api/rentas",
        json={
            "vehiculo_id": vehiculo.id,
            "cliente_id": cliente.id,
            "empleado_id": empleado.id,
            "fecha_renta": date(2024, 5, 10).isoformat(),
            "cantidad_dias": 2,
        },
        headers=headers,
    )
    params = {"fecha_inicio": "2024-05-01", "fecha_fin": "2024-05-31"}

    report = client.get("/api/reportes", params=params, headers=headers)
    assert report.status_code == 200
    assert report.json()["total_rentas"] == 1

    csv_res = client.get("/api/reportes/csv", params=params, headers=headers)
    assert csv_res.status_code == 200
    assert "Reporte_Rentas_01-05-2024_a_31-05-2024.csv" in csv_res.headers["content-disposition"]

    bad = client.get("/api/reportes", params={"fecha_inicio": "2024-06-01", "fecha_fin": "2024-05-01"}, headers=headers)
    assert bad.status_code == 400
    empty = client.get("/api/reportes/csv", params={"fecha_inicio": "2023-01-01", "fecha_fin": "2023-01-31"}, headers=headers)
    assert empty.status_code == 404


def test_platform_requires_superadmin(client, db_session):
    tenant = make_tenant(db_session)
    admin = make_user(db_session, "admin@acme.com", tenant)
    assert client.get("/api/platform/tenants", headers=auth_headers(admin)).status_code == 403

    root = make_superadmin(db_session)
    res = client.get("/api/platform/tenants", headers=auth_headers(root))
    assert res.status_code == 200
    assert [t["slug"] for t in res.json()["tenants"]] == ["acme"]


def test_superadmin_creates_tenant_with_plan(client, db_session):
    root = make_superadmin(db_session)
    plan = models.SubscriptionPlan(name="Plan Básico", vehicle_limit=30, client_limit=30, employee_limit=10, features=[])
    db_session.add(plan)
    db_session.commit()
    headers = auth_headers(root)

    res = client.post(
        "/api/platform/tenants",
        json={"name": "Autos del Este", "slug": "autos-este", "email": "info@autoseste.do", "plan_id": plan.id},
        headers=headers,
    )
    assert res.status_code == 201
    tenant_id = res.json()["id"]

    dup = client.post(
        "/api/platform/tenants",
        json={"name": "Otro", "slug": "autos-este", "email": "otro@autoseste.do"},
        headers=headers,
    )
    assert dup.status_code == 409

    db_session.expire_all()
    limits = db_session.query(models.TenantLimits).filter(models.TenantLimits.tenant_id == tenant_id).one()
    assert limits.max_clients == 30
    assert db_session.query(models.AuditLog).filter(models.AuditLog.action == "platform.tenant.created").count() == 1


def test_tenant_limits_default_and_unlimited_plan(client, db_session):
    root = make_superadmin(db_session)
    plan = models.SubscriptionPlan(name="Ilimitado", vehicle_limit=None, client_limit=None, employee_limit=None, features=[])
    db_session.add(plan)
    db_session.commit()
    headers = auth_headers(root)

    sin_plan = client.post(
        "/api/platform/tenants",
        json={"name": "Sin Plan", "slug": "sin-plan", "email": "info@sinplan.do"},
        headers=headers,
    )
    ilimitado = client.post(
        "/api/platform/tenants",
        json={"name": "Flota Grande", "slug": "flota-grande", "email": "info@flota.do", "plan_id": plan.id},
        headers=headers,
    )
    assert sin_plan.status_code == 201
    assert ilimitado.status_code == 201

    db_session.expire_all()

    def _limits(tenant_id):
        return db_session.query(models.TenantLimits).filter(models.TenantLimits.tenant_id == tenant_id).one()

    default = _limits(sin_plan.json()["id"])
    assert (default.max_vehicles, default.max_clients, default.max_employees) == (30, 30, 10)
    unlimited = _limits(ilimitado.json()["id"])
    assert (unlimited.max_vehicles, unlimited.max_clients, unlimited.max_employees) == (None, None, None)


def test_signup_and_login(client):
    res = client.post("/api/auth/signup", json={"email": "Nuevo@Example.com", "password": "secreto1"})
    assert res.status_code == 201
    assert res.json()["email"] == "nuevo@example.com"
    assert client.post("/api/auth/signup", json={"email": "nuevo@example.com", "password": "secreto1"}).status_code == 409

    login = client.post("/api/auth/login", json={"email": "nuevo@example.com", "password": "secreto1"})
    assert login.status_code == 200
    body = login.json()
    assert body["role"] is None
    assert body["tenant_id"] is None

    bad = client.post("/api/auth/login", json={"email": "nuevo@example.com", "password": "otra"})
    assert bad.status_code == 401


class HealthEndpointTests(unittest.TestCase):
    def test_health_ok(self):
        client = TestClient(app)
        res = client.get("/api/health")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json().get("status"), "ok")
