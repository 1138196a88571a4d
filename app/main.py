import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.auth import router as auth_router
from app.api.v1.me import router as me_router
from app.api.v1.dashboard import router as dashboard_router
from app.api.v1.vehiculos import router as vehiculos_router
from app.api.v1.clientes import router as clientes_router
from app.api.v1.empleados import router as empleados_router
from app.api.v1.inspecciones import router as inspecciones_router
from app.api.v1.rentas import router as rentas_router
from app.api.v1.catalogos import router as catalogos_router
from app.api.v1.reportes import router as reportes_router
from app.api.v1.platform import router as platform_router
from app.core.config import settings
from app.db import models
from app.db.init_db import seed_initial_data
from app.db.session import engine

if not logging.getLogger().handlers:
    logging.basicConfig(level=logging.INFO)

logger = logging.getLogger("rentcar")

app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="RentCar - Administración de renta de vehículos multiempresa",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    models.Base.metadata.create_all(bind=engine)
    seed_initial_data()
    if settings.ENV.lower() == "production":
        if settings.SECRET_KEY == "dev-secret-change-me":
            logger.warning("SECRET_KEY está usando el valor por defecto en producción.")
        if settings.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
            logger.warning("SQLALCHEMY_DATABASE_URI apunta a SQLite en producción.")


app.include_router(auth_router, prefix="/api")
app.include_router(me_router, prefix="/api")
app.include_router(dashboard_router, prefix="/api")
app.include_router(vehiculos_router, prefix="/api")
app.include_router(clientes_router, prefix="/api")
app.include_router(empleados_router, prefix="/api")
app.include_router(inspecciones_router, prefix="/api")
app.include_router(rentas_router, prefix="/api")
app.include_router(catalogos_router, prefix="/api")
app.include_router(reportes_router, prefix="/api")
app.include_router(platform_router, prefix="/api")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "request method=%s path=%s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


@app.get("/api/health")
def health():
    return {"status": "ok"}
