# backend/app/db/database.py

"""
Configuración principal de la base de datos para la aplicación.

Este módulo establece la conexión con PostgreSQL usando SQLAlchemy y define
los componentes básicos que serán utilizados por toda la aplicación:
- Motor de base de datos (engine)
- Fábrica de sesiones (AsyncSessionLocal)
- Clase base para modelos (Base)

La función get_db() vive en app/api/deps.py para mantener las dependencias
de FastAPI separadas de la configuración.
"""

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from app.core.config import settings # Importamos nuestra configuración

# Crear el motor de base de datos asíncrono.
# command_timeout acota cada sentencia al mismo plazo que las operaciones de Redis.
engine = create_async_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args={"command_timeout": settings.OPERATION_TIMEOUT_SECONDS},
)

# Crear un sessionmaker asíncrono
# expire_on_commit=False es importante para que los objetos sigan siendo utilizables
# después de que la transacción se haya confirmado.
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# Clase base declarativa para todos los modelos ORM
Base = declarative_base()


async def create_tables() -> None:
    """Crea las tablas que falten. Se invoca en el arranque de la aplicación."""
    # Registrar todos los modelos en los metadatos antes de crear
    from app.db.models import (  # noqa: F401
        product_model, customer_model, order_model, review_model, inventory_log_model
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
