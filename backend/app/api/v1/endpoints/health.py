# backend/app/api/v1/endpoints/health.py
"""
Comprobación de estado de las dependencias del servicio.

PostgreSQL es imprescindible (503 si no responde). Redis no lo es: sin caché
los productos se sirven desde la base de datos, por lo que su caída se
informa como "degraded".
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.api import deps

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(deps.get_db),
    redis: Redis = Depends(deps.get_redis),
):
    database = "ok"
    cache = "ok"
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"❌ SALUD: PostgreSQL no responde: {e}")
        database = "unavailable"
    try:
        await redis.ping()
    except RedisError as e:
        logger.warning(f"⚠️ SALUD: Redis no responde: {e}")
        cache = "unavailable"

    if database != "ok":
        overall, status_code = "unhealthy", 503
    elif cache != "ok":
        overall, status_code = "degraded", 200
    else:
        overall, status_code = "healthy", 200
    return JSONResponse(status_code=status_code, content={"status": overall, "database": database, "cache": cache})
