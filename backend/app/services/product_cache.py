# backend/app/services/product_cache.py
"""
Gestor de la caché de productos en Redis (patrón cache-aside).

Mantiene una copia con TTL de los productos del catálogo, consistente con
PostgreSQL, que es siempre la fuente de verdad. Estructura de claves:

- product:{sku}     instantánea JSON del producto (TTL fijo)
- sku:{sku}         puntero al propio SKU (mismo TTL)
- category:{nombre} lista de SKUs de la categoría (TTL renovado en cada escritura)
- products:recent   lista de los SKUs escritos más recientemente, acotada

La caché es de mejor esfuerzo: ningún error de Redis sale de esta clase.
Las lecturas fallidas son un fallo de caché (None) y las escrituras devuelven
un CacheWriteResult que el llamador puede ignorar.
"""

import logging
from dataclasses import dataclass
from typing import Optional, List, Iterable

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.schemas.product_schema import ProductResponse

logger = logging.getLogger(__name__)

RECENT_PRODUCTS_KEY = "products:recent"


def product_key(sku: str) -> str:
    return f"product:{sku}"


def sku_key(sku: str) -> str:
    return f"sku:{sku}"


def category_key(category: str) -> str:
    return f"category:{category}"


@dataclass(frozen=True)
class CacheWriteResult:
    """Resultado de una escritura en caché. Solo sirve para registro."""
    sku: str
    ok: bool
    error: Optional[str] = None


class CatalogCacheManager:
    """
    Caché de productos indexada por SKU.

    Recibe un cliente de Redis ya construido (pool compartido); nunca abre
    conexiones propias.
    """

    def __init__(self, redis: Redis, ttl_seconds: int = 86400, recent_limit: int = 100):
        self.redis = redis
        self.ttl_seconds = ttl_seconds
        self.recent_limit = recent_limit

    # ========================================
    # LECTURA
    # ========================================

    async def get_by_sku(self, sku: str) -> Optional[ProductResponse]:
        """
        Busca un producto en caché.

        Devuelve None ante cualquier fallo: clave ausente, puntero sin cuerpo,
        JSON corrupto o Redis no disponible. El llamador debe ir a la base de datos.
        """
        try:
            pointer = await self.redis.get(sku_key(sku))
            if pointer is None:
                logger.debug(f"🔍 CACHE: MISS para SKU '{sku}'")
                return None
            raw = await self.redis.get(product_key(pointer))
        except RedisError as e:
            logger.warning(f"⚠️ CACHE: Error leyendo SKU '{sku}', se trata como fallo de caché: {e}")
            return None

        if raw is None:
            logger.warning(f"⚠️ CACHE: Puntero sku:{sku} sin cuerpo product:{pointer}, se trata como fallo de caché")
            return None

        try:
            return ProductResponse.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"⚠️ CACHE: Instantánea corrupta para SKU '{sku}': {e}")
            return None

    async def recent_skus(self, limit: Optional[int] = None) -> List[str]:
        """SKUs escritos más recientemente. Lista vacía si Redis falla."""
        limit = limit or self.recent_limit
        try:
            return await self.redis.lrange(RECENT_PRODUCTS_KEY, 0, limit - 1)
        except RedisError as e:
            logger.warning(f"⚠️ CACHE: No se pudo leer {RECENT_PRODUCTS_KEY}: {e}")
            return []

    async def category_skus(self, category: str) -> List[str]:
        try:
            return await self.redis.lrange(category_key(category), 0, -1)
        except RedisError as e:
            logger.warning(f"⚠️ CACHE: No se pudo leer la categoría '{category}': {e}")
            return []

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except RedisError as e:
            logger.warning(f"⚠️ CACHE: Ping fallido: {e}")
            return False

    # ========================================
    # ESCRITURA
    # ========================================

    async def put(self, product: ProductResponse) -> CacheWriteResult:
        """
        Guarda o sobrescribe un producto en caché en una única transacción.

        Antes de cada LPUSH se elimina el SKU de la lista, de modo que repetir
        put() sobre el mismo producto no acumula duplicados.
        """
        sku = product.sku
        try:
            payload = product.model_dump_json()
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.set(product_key(sku), payload, ex=self.ttl_seconds)
                pipe.set(sku_key(sku), sku, ex=self.ttl_seconds)

                cat_key = category_key(product.category)
                pipe.lrem(cat_key, 0, sku)
                pipe.lpush(cat_key, sku)
                pipe.expire(cat_key, self.ttl_seconds)

                pipe.lrem(RECENT_PRODUCTS_KEY, 0, sku)
                pipe.lpush(RECENT_PRODUCTS_KEY, sku)
                pipe.ltrim(RECENT_PRODUCTS_KEY, 0, self.recent_limit - 1)
                pipe.expire(RECENT_PRODUCTS_KEY, self.ttl_seconds)
                await pipe.execute()
        except RedisError as e:
            logger.warning(f"⚠️ CACHE: No se pudo cachear SKU '{sku}': {e}")
            return CacheWriteResult(sku=sku, ok=False, error=str(e))

        logger.debug(f"💾 CACHE: Producto '{sku}' cacheado (TTL {self.ttl_seconds}s)")
        return CacheWriteResult(sku=sku, ok=True)

    async def remove(self, product: ProductResponse) -> CacheWriteResult:
        """Elimina el producto y sus referencias en las listas, en una única transacción."""
        sku = product.sku
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.delete(product_key(sku), sku_key(sku))
                pipe.lrem(category_key(product.category), 0, sku)
                pipe.lrem(RECENT_PRODUCTS_KEY, 0, sku)
                await pipe.execute()
        except RedisError as e:
            logger.warning(f"⚠️ CACHE: No se pudo invalidar SKU '{sku}': {e}")
            return CacheWriteResult(sku=sku, ok=False, error=str(e))

        logger.debug(f"🧹 CACHE: Producto '{sku}' invalidado")
        return CacheWriteResult(sku=sku, ok=True)

    async def put_many(self, products: Iterable[ProductResponse]) -> List[CacheWriteResult]:
        """Aplica put() a cada producto. Un fallo no impide cachear el resto."""
        results = [await self.put(product) for product in products]
        failed = [r.sku for r in results if not r.ok]
        if failed:
            logger.warning(f"⚠️ CACHE: {len(failed)}/{len(results)} productos sin cachear: {failed}")
        return results
