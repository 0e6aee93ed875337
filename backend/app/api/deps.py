# backend/app/api/deps.py
"""
Módulo de dependencias para FastAPI.

Este archivo centraliza todas las dependencias que pueden ser inyectadas
en los endpoints de la API: sesión de base de datos, configuración, cliente
de Redis compartido y los servicios construidos sobre ellos.

En los tests basta con sobrescribir get_db y get_redis mediante
app.dependency_overrides para sustituir PostgreSQL y Redis.
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends
from openai import AsyncOpenAI
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import AsyncSessionLocal
from app.db.redis_client import get_redis_client
from app.core.config import settings, Settings
from app.services.product_cache import CatalogCacheManager
from app.services.product_service import ProductService
from app.services.cart_service import CartService
from app.services.review_service import ReviewService
from app.services.report_service import ReportService, build_openai_client

_openai_client: Optional[AsyncOpenAI] = None
_openai_client_built = False


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependencia de FastAPI para obtener una sesión de base de datos asíncrona.
    Se asegura de que la sesión se cierre siempre después de la petición.
    """
    async with AsyncSessionLocal() as session:
        yield session


def get_settings() -> Settings:
    """
    Dependencia de FastAPI para obtener el objeto de configuración.
    """
    return settings


def get_redis() -> Redis:
    """Cliente de Redis del pool compartido del proceso."""
    return get_redis_client()


def get_openai_client(settings: Settings = Depends(get_settings)) -> Optional[AsyncOpenAI]:
    """Cliente de OpenAI construido una sola vez; None si la IA está desactivada."""
    global _openai_client, _openai_client_built
    if not _openai_client_built:
        _openai_client = build_openai_client(settings)
        _openai_client_built = True
    return _openai_client


def get_product_cache(
    redis: Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> CatalogCacheManager:
    return CatalogCacheManager(
        redis,
        ttl_seconds=settings.PRODUCT_CACHE_TTL_SECONDS,
        recent_limit=settings.RECENT_PRODUCTS_LIMIT,
    )


def get_product_service(cache: CatalogCacheManager = Depends(get_product_cache)) -> ProductService:
    return ProductService(cache)


def get_cart_service(
    redis: Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> CartService:
    """
    Dependencia para obtener el servicio de carrito.
    """
    return CartService(redis, settings)


def get_review_service(cache: CatalogCacheManager = Depends(get_product_cache)) -> ReviewService:
    return ReviewService(cache)


def get_report_service(
    openai_client: Optional[AsyncOpenAI] = Depends(get_openai_client),
    settings: Settings = Depends(get_settings),
) -> ReportService:
    return ReportService(openai_client, settings)
