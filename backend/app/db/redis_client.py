# backend/app/db/redis_client.py
"""
Conexión compartida a Redis.

Un único pool de conexiones por proceso, creado de forma lazy y entregado a
los servicios mediante inyección de dependencias (get_redis en app/api/deps.py).
Ningún servicio construye su propio cliente, lo que permite sustituirlo por
un doble de pruebas.
"""
import logging
from typing import Optional

from redis.asyncio import Redis, ConnectionPool

from app.core.config import settings

logger = logging.getLogger(__name__)

_pool: Optional[ConnectionPool] = None
_redis_client: Optional[Redis] = None


def get_redis_client() -> Redis:
    """Inicializa y devuelve el cliente de Redis compartido."""
    global _pool, _redis_client
    if _redis_client is None:
        _pool = ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=settings.OPERATION_TIMEOUT_SECONDS,
            socket_connect_timeout=settings.OPERATION_TIMEOUT_SECONDS,
        )
        _redis_client = Redis(connection_pool=_pool)
        logger.info(f"🔌 REDIS: Pool creado para {settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}")
    return _redis_client


async def close_redis_client() -> None:
    """Cierra el cliente y libera el pool. Se invoca en el apagado."""
    global _pool, _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        if _pool is not None:
            await _pool.disconnect()
        _redis_client = None
        _pool = None
        logger.info("🔌 REDIS: Pool cerrado")
