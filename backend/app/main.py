# backend/app/main.py
"""
Punto de entrada principal de la aplicación FastAPI.

Este módulo configura y inicializa la aplicación FastAPI completa,
incluyendo el logging, la configuración de rutas, los manejadores de
errores y los eventos del ciclo de vida de la aplicación.

Características principales:
- Configuración centralizada de la aplicación
- Registro de routers de la API con prefijos
- Traducción de errores de dominio a respuestas HTTP uniformes
- Eventos del ciclo de vida (creación de tablas, cierre del pool de Redis)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings  # Configuración centralizada de la aplicación
from app.core.exceptions import AppError
from app.api.v1.api_router import api_router_v1  # Router principal de la API v1
from app.api.v1.endpoints import health
from app.db.database import create_tables
from app.db.redis_client import close_redis_client

# ========================================
# CONFIGURACIÓN DE LOGGING
# ========================================

logging.basicConfig(level=settings.LOG_LEVEL, format=settings.LOG_FORMAT)
logger = logging.getLogger(__name__)

# ========================================
# CONFIGURACIÓN DE LA APLICACIÓN FASTAPI
# ========================================

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    version=settings.PROJECT_VERSION,
    description="API de comercio electrónico: catálogo con caché, carrito, pedidos, clientes, reseñas y analíticas"
)

# ========================================
# MANEJADORES DE ERRORES
# ========================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Traduce los errores de dominio a {"detail", "errors"} con su código HTTP."""
    if exc.status_code >= 500:
        logger.error(f"❌ ERROR: {request.method} {request.url.path} -> {exc.message}")
    else:
        logger.debug(f"⚠️ PETICIÓN: {request.method} {request.url.path} -> {exc.status_code} {exc.code}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "errors": exc.to_error_list()},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"❌ ERROR: Fallo de base de datos en {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Database operation failed",
            "errors": [{"field": None, "message": "Database operation failed", "code": "store_error"}],
        },
    )

# ========================================
# REGISTRO DE ROUTERS DE LA API
# ========================================

# El prefijo se obtiene de settings (típicamente "/api/v1")
app.include_router(api_router_v1, prefix=settings.API_V1_STR)
app.include_router(health.router, tags=["Health"])


# ========================================
# ENDPOINTS RAÍZ
# ========================================

@app.get("/", tags=["Root"])
async def read_root():
    """
    Endpoint raíz para verificación básica del estado de la API.

    Returns:
        dict: Mensaje de bienvenida con nombre y versión del proyecto

    Example:
        GET /
        Response: {"message": "Bienvenido a Comercia API v0.1.0"}
    """
    return {"message": f"Bienvenido a {settings.PROJECT_NAME} v{settings.PROJECT_VERSION}"}

# ========================================
# EVENTOS DEL CICLO DE VIDA DE LA APLICACIÓN
# ========================================

@app.on_event("startup")
async def startup_event():
    """
    Evento ejecutado al iniciar la aplicación.

    Crea las tablas que falten si CREATE_TABLES_ON_STARTUP está activo.
    El pool de Redis se crea de forma lazy en la primera petición.
    """
    logger.info(f"🚀 {settings.PROJECT_NAME} arrancando ({settings.APP_ENVIRONMENT})")
    if settings.CREATE_TABLES_ON_STARTUP:
        await create_tables()
        logger.info("✅ Tablas verificadas en PostgreSQL")


@app.on_event("shutdown")
async def shutdown_event():
    """Libera el pool de conexiones de Redis."""
    await close_redis_client()
    logger.info(f"👋 {settings.PROJECT_NAME} detenido")
