import uuid
from datetime import date, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

RENTA_ACTIVA = "Activa"
RENTA_DEVUELTA = "Devuelta"
RENTA_VENCIDA = "Vencida"
ESTADOS_RENTA = (RENTA_ACTIVA, RENTA_DEVUELTA, RENTA_VENCIDA)

ROLE_SUPERADMIN = "superadmin"
ROLE_ADMIN = "admin"
ROLE_EMPLEADO = "empleado"
ROLE_SOLO_LECTURA = "solo_lectura"
TENANT_ROLES = (ROLE_ADMIN, ROLE_EMPLEADO, ROLE_SOLO_LECTURA)

SUBSCRIPTION_STATUSES = ("active", "inactive", "cancelled", "expired")
TIPOS_PERSONA = ("Física", "Jurídica")
TANDAS_LABOR = ("Matutina", "Vespertina", "Nocturna")
NIVELES_COMBUSTIBLE = ("1/4", "1/2", "3/4", "Lleno")


def _uuid() -> str:
    return str(uuid.uuid4())


def _tenant_fk():
    return Column(String, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    logo_url = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    memberships = relationship("TenantUser", back_populates="tenant", cascade="all, delete-orphan")
    subscriptions = relationship("TenantSubscription", back_populates="tenant", cascade="all, delete-orphan")
    limits = relationship("TenantLimits", back_populates="tenant", uselist=False, cascade="all, delete-orphan")
    rentas = relationship("Renta", cascade="all, delete-orphan")
    inspecciones = relationship("Inspeccion", cascade="all, delete-orphan")
    vehiculos = relationship("Vehiculo", cascade="all, delete-orphan")
    clientes = relationship("Cliente", cascade="all, delete-orphan")
    empleados = relationship("Empleado", cascade="all, delete-orphan")
    modelos = relationship("Modelo", cascade="all, delete-orphan")
    marcas = relationship("Marca", cascade="all, delete-orphan")
    tipos_vehiculos = relationship("TipoVehiculo", cascade="all, delete-orphan")
    tipos_combustible = relationship("TipoCombustible", cascade="all, delete-orphan")
    secuencia_rentas = relationship("RentaSecuencia", uselist=False, cascade="all, delete-orphan")


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_uuid)
    email = Column(String, nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    memberships = relationship("TenantUser", back_populates="user", cascade="all, delete-orphan")


class TenantUser(Base):
    __tablename__ = "tenant_users"
    __table_args__ = (UniqueConstraint("tenant_id", "user_id", name="uq_tenant_user"),)

    id = Column(String, primary_key=True, default=_uuid)
    tenant_id = _tenant_fk()
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String, nullable=False, default=ROLE_EMPLEADO)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    tenant = relationship("Tenant", back_populates="memberships")
    user = relationship("User", back_populates="memberships")


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False, unique=True)
    description = Column(String, nullable=True)
    price_usd = Column(Numeric(10, 2), nullable=False, default=0)
    price_dop = Column(Numeric(10, 2), nullable=False, default=0)
    vehicle_limit = Column(Integer, nullable=True)
    client_limit = Column(Integer, nullable=True)
    employee_limit = Column(Integer, nullable=True)
    features = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    subscriptions = relationship("TenantSubscription", back_populates="plan")


class TenantSubscription(Base):
    __tablename__ = "tenant_subscriptions"

    id = Column(String, primary_key=True, default=_uuid)
    tenant_id = _tenant_fk()
    plan_id = Column(String, ForeignKey("subscription_plans.id"), nullable=False)
    status = Column(String, nullable=False, default="active")
    starts_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    ends_at = Column(DateTime, nullable=True)
    auto_renew = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    tenant = relationship("Tenant", back_populates="subscriptions")
    plan = relationship("SubscriptionPlan", back_populates="subscriptions")


class TenantLimits(Base):
    __tablename__ = "tenant_limits"

    id = Column(String, primary_key=True, default=_uuid)
    tenant_id = Column(String, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, unique=True)
    current_vehicles = Column(Integer, nullable=False, default=0)
    current_clients = Column(Integer, nullable=False, default=0)
    current_employees = Column(Integer, nullable=False, default=0)
    max_vehicles = Column(Integer, nullable=True)
    max_clients = Column(Integer, nullable=True)
    max_employees = Column(Integer, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    tenant = relationship("Tenant", back_populates="limits")


class TipoVehiculo(Base):
    __tablename__ = "tipos_vehiculos"

    id = Column(String, primary_key=True, default=_uuid)
    tenant_id = _tenant_fk()
    descripcion = Column(String, nullable=False)
    estado = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Marca(Base):
    __tablename__ = "marcas"

    id = Column(String, primary_key=True, default=_uuid)
    tenant_id = _tenant_fk()
    descripcion = Column(String, nullable=False)
    estado = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    modelos = relationship("Modelo", back_populates="marca")


class Modelo(Base):
    __tablename__ = "modelos"

    id = Column(String, primary_key=True, default=_uuid)
    tenant_id = _tenant_fk()
    marca_id = Column(String, ForeignKey("marcas.id"), nullable=False)
    descripcion = Column(String, nullable=False)
    estado = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    marca = relationship("Marca", back_populates="modelos")


class TipoCombustible(Base):
    __tablename__ = "tipos_combustible"

    id = Column(String, primary_key=True, default=_uuid)
    tenant_id = _tenant_fk()
    descripcion = Column(String, nullable=False)
    estado = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Vehiculo(Base):
    __tablename__ = "vehiculos"

    id = Column(String, primary_key=True, default=_uuid)
    tenant_id = _tenant_fk()
    descripcion = Column(String, nullable=False)
    numero_chasis = Column(String, nullable=False)
    numero_motor = Column(String, nullable=False)
    numero_placa = Column(String, nullable=False)
    tipo_vehiculo_id = Column(String, ForeignKey("tipos_vehiculos.id"), nullable=True)
    marca_id = Column(String, ForeignKey("marcas.id"), nullable=True)
    modelo_id = Column(String, ForeignKey("modelos.id"), nullable=True)
    tipo_combustible_id = Column(String, ForeignKey("tipos_combustible.id"), nullable=True)
    precio_por_dia = Column(Numeric(10, 2), nullable=False)
    imagen_url = Column(String, nullable=True)
    estado = Column(Boolean, default=True, nullable=False)
    disponible = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    tipo_vehiculo = relationship("TipoVehiculo")
    marca = relationship("Marca")
    modelo = relationship("Modelo")
    tipo_combustible = relationship("TipoCombustible")


class Cliente(Base):
    __tablename__ = "clientes"

    id = Column(String, primary_key=True, default=_uuid)
    tenant_id = _tenant_fk()
    nombre = Column(String, nullable=False)
    cedula = Column(String, nullable=False, index=True)
    numero_tarjeta_credito = Column(String, nullable=True)
    limite_credito = Column(Numeric(12, 2), nullable=False, default=0)
    tipo_persona = Column(String, nullable=False, default="Física")
    telefono = Column(String, nullable=True)
    direccion = Column(String, nullable=True)
    estado = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Empleado(Base):
    __tablename__ = "empleados"

    id = Column(String, primary_key=True, default=_uuid)
    tenant_id = _tenant_fk()
    nombre = Column(String, nullable=False)
    cedula = Column(String, nullable=False, index=True)
    tanda_labor = Column(String, nullable=False, default="Matutina")
    porciento_comision = Column(Numeric(5, 2), nullable=False, default=0)
    fecha_ingreso = Column(Date, nullable=False, default=date.today)
    telefono = Column(String, nullable=True)
    direccion = Column(String, nullable=True)
    estado = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Inspeccion(Base):
    __tablename__ = "inspecciones"

    id = Column(String, primary_key=True, default=_uuid)
    tenant_id = _tenant_fk()
    vehiculo_id = Column(String, ForeignKey("vehiculos.id"), nullable=False)
    cliente_id = Column(String, ForeignKey("clientes.id"), nullable=False)
    empleado_id = Column(String, ForeignKey("empleados.id"), nullable=False)
    tiene_ralladuras = Column(Boolean, default=False, nullable=False)
    cantidad_combustible = Column(String, nullable=False, default="Lleno")
    tiene_goma_respuesta = Column(Boolean, default=True, nullable=False)
    tiene_gato = Column(Boolean, default=True, nullable=False)
    tiene_roturas_cristal = Column(Boolean, default=False, nullable=False)
    estado_goma_delantera_izq = Column(Boolean, default=True, nullable=False)
    estado_goma_delantera_der = Column(Boolean, default=True, nullable=False)
    estado_goma_trasera_izq = Column(Boolean, default=True, nullable=False)
    estado_goma_trasera_der = Column(Boolean, default=True, nullable=False)
    estado_goma_respuesta = Column(Boolean, default=True, nullable=False)
    observaciones = Column(String, nullable=True)
    fecha_inspeccion = Column(Date, nullable=False, default=date.today)
    estado = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    vehiculo = relationship("Vehiculo")
    cliente = relationship("Cliente")
    empleado = relationship("Empleado")


class Renta(Base):
    __tablename__ = "rentas"
    __table_args__ = (UniqueConstraint("tenant_id", "numero_renta", name="uq_renta_tenant_numero"),)

    id = Column(String, primary_key=True, default=_uuid)
    tenant_id = _tenant_fk()
    numero_renta = Column(String, nullable=False)
    empleado_id = Column(String, ForeignKey("empleados.id"), nullable=False)
    vehiculo_id = Column(String, ForeignKey("vehiculos.id"), nullable=False)
    cliente_id = Column(String, ForeignKey("clientes.id"), nullable=False)
    inspeccion_id = Column(String, ForeignKey("inspecciones.id"), nullable=True)
    fecha_renta = Column(Date, nullable=False, index=True)
    fecha_devolucion_programada = Column(Date, nullable=False)
    fecha_devolucion_real = Column(Date, nullable=True)
    monto_por_dia = Column(Numeric(10, 2), nullable=False)
    cantidad_dias = Column(Integer, nullable=False)
    monto_total = Column(Numeric(12, 2), nullable=False)
    comentario = Column(String, nullable=True)
    estado_renta = Column(String, nullable=False, default=RENTA_ACTIVA)
    estado = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    vehiculo = relationship("Vehiculo")
    cliente = relationship("Cliente")
    empleado = relationship("Empleado")
    inspeccion = relationship("Inspeccion")


class RentaSecuencia(Base):
    __tablename__ = "renta_secuencias"

    tenant_id = Column(String, ForeignKey("tenants.id", ondelete="CASCADE"), primary_key=True)
    ultimo_numero = Column(Integer, nullable=False, default=0)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String, primary_key=True, default=_uuid)
    tenant_id = Column(String, nullable=True, index=True)
    user_id = Column(String, nullable=True)
    action = Column(String, nullable=False)
    resource_type = Column(String, nullable=True)
    resource_id = Column(String, nullable=True)
    payload_resumen = Column(JSON, nullable=True)
    ip = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
