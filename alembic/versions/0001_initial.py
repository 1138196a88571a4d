"""rentcar initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

NOW = sa.text("(CURRENT_TIMESTAMP)")


def _tenant_fk() -> sa.Column:
    return sa.Column("tenant_id", sa.String(), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)


def _lookup_table(name: str, *extra: sa.Column) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.String(), primary_key=True),
        _tenant_fk(),
        *extra,
        sa.Column("descripcion", sa.String(), nullable=False),
        sa.Column("estado", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
    )
    op.create_index(f"ix_{name}_tenant_id", name, ["tenant_id"])


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False, unique=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("logo_url", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=NOW),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
    )

    op.create_table(
        "tenant_users",
        sa.Column("id", sa.String(), primary_key=True),
        _tenant_fk(),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(), nullable=False, server_default="empleado"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
        sa.UniqueConstraint("tenant_id", "user_id", name="uq_tenant_user"),
    )
    op.create_index("ix_tenant_users_tenant_id", "tenant_users", ["tenant_id"])
    op.create_index("ix_tenant_users_user_id", "tenant_users", ["user_id"])

    op.create_table(
        "subscription_plans",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("price_usd", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("price_dop", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("vehicle_limit", sa.Integer(), nullable=True),
        sa.Column("client_limit", sa.Integer(), nullable=True),
        sa.Column("employee_limit", sa.Integer(), nullable=True),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
    )

    op.create_table(
        "tenant_subscriptions",
        sa.Column("id", sa.String(), primary_key=True),
        _tenant_fk(),
        sa.Column("plan_id", sa.String(), sa.ForeignKey("subscription_plans.id"), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("starts_at", sa.DateTime(), nullable=False, server_default=NOW),
        sa.Column("ends_at", sa.DateTime(), nullable=True),
        sa.Column("auto_renew", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=NOW),
    )
    op.create_index("ix_tenant_subscriptions_tenant_id", "tenant_subscriptions", ["tenant_id"])

    op.create_table(
        "tenant_limits",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("tenant_id", sa.String(), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("current_vehicles", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_clients", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_employees", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_vehicles", sa.Integer(), nullable=True),
        sa.Column("max_clients", sa.Integer(), nullable=True),
        sa.Column("max_employees", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=NOW),
    )

    _lookup_table("tipos_vehiculos")
    _lookup_table("marcas")
    _lookup_table("modelos", sa.Column("marca_id", sa.String(), sa.ForeignKey("marcas.id"), nullable=False))
    _lookup_table("tipos_combustible")

    op.create_table(
        "vehiculos",
        sa.Column("id", sa.String(), primary_key=True),
        _tenant_fk(),
        sa.Column("descripcion", sa.String(), nullable=False),
        sa.Column("numero_chasis", sa.String(), nullable=False),
        sa.Column("numero_motor", sa.String(), nullable=False),
        sa.Column("numero_placa", sa.String(), nullable=False),
        sa.Column("tipo_vehiculo_id", sa.String(), sa.ForeignKey("tipos_vehiculos.id"), nullable=True),
        sa.Column("marca_id", sa.String(), sa.ForeignKey("marcas.id"), nullable=True),
        sa.Column("modelo_id", sa.String(), sa.ForeignKey("modelos.id"), nullable=True),
        sa.Column("tipo_combustible_id", sa.String(), sa.ForeignKey("tipos_combustible.id"), nullable=True),
        sa.Column("precio_por_dia", sa.Numeric(10, 2), nullable=False),
        sa.Column("imagen_url", sa.String(), nullable=True),
        sa.Column("estado", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("disponible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
    )
    op.create_index("ix_vehiculos_tenant_id", "vehiculos", ["tenant_id"])

    op.create_table(
        "clientes",
        sa.Column("id", sa.String(), primary_key=True),
        _tenant_fk(),
        sa.Column("nombre", sa.String(), nullable=False),
        sa.Column("cedula", sa.String(), nullable=False),
        sa.Column("numero_tarjeta_credito", sa.String(), nullable=True),
        sa.Column("limite_credito", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("tipo_persona", sa.String(), nullable=False, server_default="Física"),
        sa.Column("telefono", sa.String(), nullable=True),
        sa.Column("direccion", sa.String(), nullable=True),
        sa.Column("estado", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
    )
    op.create_index("ix_clientes_tenant_id", "clientes", ["tenant_id"])
    op.create_index("ix_clientes_cedula", "clientes", ["cedula"])

    op.create_table(
        "empleados",
        sa.Column("id", sa.String(), primary_key=True),
        _tenant_fk(),
        sa.Column("nombre", sa.String(), nullable=False),
        sa.Column("cedula", sa.String(), nullable=False),
        sa.Column("tanda_labor", sa.String(), nullable=False, server_default="Matutina"),
        sa.Column("porciento_comision", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("fecha_ingreso", sa.Date(), nullable=False),
        sa.Column("telefono", sa.String(), nullable=True),
        sa.Column("direccion", sa.String(), nullable=True),
        sa.Column("estado", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
    )
    op.create_index("ix_empleados_tenant_id", "empleados", ["tenant_id"])
    op.create_index("ix_empleados_cedula", "empleados", ["cedula"])

    op.create_table(
        "inspecciones",
        sa.Column("id", sa.String(), primary_key=True),
        _tenant_fk(),
        sa.Column("vehiculo_id", sa.String(), sa.ForeignKey("vehiculos.id"), nullable=False),
        sa.Column("cliente_id", sa.String(), sa.ForeignKey("clientes.id"), nullable=False),
        sa.Column("empleado_id", sa.String(), sa.ForeignKey("empleados.id"), nullable=False),
        sa.Column("tiene_ralladuras", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("cantidad_combustible", sa.String(), nullable=False, server_default="Lleno"),
        sa.Column("tiene_goma_respuesta", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("tiene_gato", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("tiene_roturas_cristal", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("estado_goma_delantera_izq", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("estado_goma_delantera_der", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("estado_goma_trasera_izq", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("estado_goma_trasera_der", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("estado_goma_respuesta", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("observaciones", sa.String(), nullable=True),
        sa.Column("fecha_inspeccion", sa.Date(), nullable=False),
        sa.Column("estado", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
    )
    op.create_index("ix_inspecciones_tenant_id", "inspecciones", ["tenant_id"])

    op.create_table(
        "rentas",
        sa.Column("id", sa.String(), primary_key=True),
        _tenant_fk(),
        sa.Column("numero_renta", sa.String(), nullable=False),
        sa.Column("empleado_id", sa.String(), sa.ForeignKey("empleados.id"), nullable=False),
        sa.Column("vehiculo_id", sa.String(), sa.ForeignKey("vehiculos.id"), nullable=False),
        sa.Column("cliente_id", sa.String(), sa.ForeignKey("clientes.id"), nullable=False),
        sa.Column("inspeccion_id", sa.String(), sa.ForeignKey("inspecciones.id"), nullable=True),
        sa.Column("fecha_renta", sa.Date(), nullable=False),
        sa.Column("fecha_devolucion_programada", sa.Date(), nullable=False),
        sa.Column("fecha_devolucion_real", sa.Date(), nullable=True),
        sa.Column("monto_por_dia", sa.Numeric(10, 2), nullable=False),
        sa.Column("cantidad_dias", sa.Integer(), nullable=False),
        sa.Column("monto_total", sa.Numeric(12, 2), nullable=False),
        sa.Column("comentario", sa.String(), nullable=True),
        sa.Column("estado_renta", sa.String(), nullable=False, server_default="Activa"),
        sa.Column("estado", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=NOW),
        sa.UniqueConstraint("tenant_id", "numero_renta", name="uq_renta_tenant_numero"),
    )
    op.create_index("ix_rentas_tenant_id", "rentas", ["tenant_id"])
    op.create_index("ix_rentas_fecha_renta", "rentas", ["fecha_renta"])

    op.create_table(
        "renta_secuencias",
        sa.Column("tenant_id", sa.String(), sa.ForeignKey("tenants.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("ultimo_numero", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("tenant_id", sa.String(), nullable=True),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("resource_type", sa.String(), nullable=True),
        sa.Column("resource_id", sa.String(), nullable=True),
        sa.Column("payload_resumen", sa.JSON(), nullable=True),
        sa.Column("ip", sa.String(), nullable=True),
        sa.Column("user_agent", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
    )
    op.create_index("ix_audit_logs_tenant_id", "audit_logs", ["tenant_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_tenant_id", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_table("renta_secuencias")
    op.drop_index("ix_rentas_fecha_renta", table_name="rentas")
    op.drop_index("ix_rentas_tenant_id", table_name="rentas")
    op.drop_table("rentas")
    op.drop_index("ix_inspecciones_tenant_id", table_name="inspecciones")
    op.drop_table("inspecciones")
    op.drop_index("ix_empleados_cedula", table_name="empleados")
    op.drop_index("ix_empleados_tenant_id", table_name="empleados")
    op.drop_table("empleados")
    op.drop_index("ix_clientes_cedula", table_name="clientes")
    op.drop_index("ix_clientes_tenant_id", table_name="clientes")
    op.drop_table("clientes")
    op.drop_index("ix_vehiculos_tenant_id", table_name="vehiculos")
    op.drop_table("vehiculos")
    for name in ("tipos_combustible", "modelos", "marcas", "tipos_vehiculos"):
        op.drop_index(f"ix_{name}_tenant_id", table_name=name)
        op.drop_table(name)
    op.drop_table("tenant_limits")
    op.drop_index("ix_tenant_subscriptions_tenant_id", table_name="tenant_subscriptions")
    op.drop_table("tenant_subscriptions")
    op.drop_table("subscription_plans")
    op.drop_index("ix_tenant_users_user_id", table_name="tenant_users")
    op.drop_index("ix_tenant_users_tenant_id", table_name="tenant_users")
    op.drop_table("tenant_users")
    op.drop_table("users")
    op.drop_table("tenants")
