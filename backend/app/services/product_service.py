# backend/app/services/product_service.py

"""
Capa de servicios para operaciones de negocio relacionadas con productos.

Orquesta PostgreSQL (fuente de verdad) y la caché de productos en Redis
siguiendo una política fija:

- Lectura: caché primero; si falla, base de datos y se cachea el resultado.
- Creación/edición: primero se confirma en base de datos, después se actualiza
  la caché con el mejor esfuerzo.
- Borrado: primero se borra en base de datos, después se invalida la caché.

Un fallo de caché nunca hace fallar la petición. Cada operación devuelve
también el estado de caché que los endpoints publican en la cabecera X-Cache.
"""

import logging
import secrets
import time
from typing import List, Optional, Dict, Any, Tuple

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, InvalidOperationError, ConflictError
from app.crud import product_crud
from app.db.models.product_model import Product, empty_stock
from app.schemas import product_schema
from app.schemas.common_schema import BulkOperationResponse, FieldError
from app.services.product_cache import CatalogCacheManager

logger = logging.getLogger(__name__)

# Valores de la cabecera X-Cache
CACHE_HIT = "HIT"
CACHE_MISS = "MISS"
CACHE_REFRESHED = "REFRESHED"
CACHE_DELETED = "DELETED"
CACHE_BULK_CREATED = "BULK-CREATED"
CACHE_BULK_REFRESHED = "BULK-REFRESHED"
CACHE_BULK_DELETED = "BULK-DELETED"

SKU_MIN_LENGTH = 3
SKU_MAX_LENGTH = 50


def validate_sku(sku: Optional[str], field: str = "sku") -> str:
    """Valida la longitud del SKU. Lanza InvalidOperationError si no es válido."""
    if not sku or not isinstance(sku, str):
        raise InvalidOperationError("SKU is required", field=field, code="missing_sku")
    if not SKU_MIN_LENGTH <= len(sku) <= SKU_MAX_LENGTH:
        raise InvalidOperationError(
            f"SKU must be between {SKU_MIN_LENGTH} and {SKU_MAX_LENGTH} characters",
            field=field,
            code="invalid_sku",
        )
    return sku


def _sku_prefix(value: str) -> str:
    letters = "".join(ch for ch in value if ch.isalnum())
    return (letters[:3] or "GEN").upper()


def generate_sku(brand: str, category: str) -> str:
    """
    Genera un SKU con el formato MARCA-CAT-timestamp-XXXX.

    El sufijo aleatorio evita colisiones entre productos de la misma marca y
    categoría creados en el mismo segundo.
    """
    return f"{_sku_prefix(brand)}-{_sku_prefix(category)}-{int(time.time())}-{secrets.token_hex(2).upper()}"


class ProductService:
    """
    Servicio para operaciones de negocio relacionadas con productos.

    Recibe el gestor de caché ya construido, de modo que los endpoints lo
    obtienen por inyección de dependencias y los tests pueden usar un Redis falso.
    """

    def __init__(self, cache: CatalogCacheManager):
        self.cache = cache

    # ========================================
    # LECTURA
    # ========================================

    async def get_product(self, db: AsyncSession, sku: str) -> Tuple[product_schema.ProductResponse, str]:
        """
        Obtiene un producto por SKU pasando por la caché.

        Devuelve el producto y el estado HIT o MISS. Lanza NotFoundError si
        tampoco está en base de datos (no se cachean ausencias).
        """
        validate_sku(sku)
        cached = await self.cache.get_by_sku(sku)
        if cached is not None:
            logger.debug(f"⚡ PRODUCTO: '{sku}' servido desde caché")
            return cached, CACHE_HIT

        product_db = await product_crud.get_product_by_sku(db, sku)
        if not product_db:
            logger.warning(f"⚠️ PRODUCTO: No encontrado SKU '{sku}'")
            raise NotFoundError(f"Product with SKU '{sku}' not found", field="sku")

        product = product_schema.ProductResponse.model_validate(product_db)
        await self.cache.put(product)
        return product, CACHE_MISS

    async def list_products(self, db: AsyncSession, **filters) -> List[product_schema.ProductResponse]:
        products = await product_crud.get_products(db, **filters)
        return [product_schema.ProductResponse.model_validate(p) for p in products]

    async def list_categories(self, db: AsyncSession) -> List[product_schema.CategoryCount]:
        rows = await product_crud.get_category_counts(db)
        return [product_schema.CategoryCount(category=name, count=count) for name, count in rows]

    async def recent_skus(self, limit: int) -> List[str]:
        return await self.cache.recent_skus(limit)

    # ========================================
    # CREACIÓN
    # ========================================

    async def create_products(
        self, db: AsyncSession, products_in: List[product_schema.ProductCreate]
    ) -> List[product_schema.ProductResponse]:
        """
        Crea un lote de productos con SKU generado, stock a cero, valoraciones
        a cero y estado activo. Después los cachea todos.
        """
        if not products_in:
            raise InvalidOperationError("At least one product is required", field="products", code="empty_request")

        rows = []
        for product_in in products_in:
            row = Product(
                sku=generate_sku(product_in.brand, product_in.category),
                stock=empty_stock(),
                ratings={"average": 0.0, "count": 0},
                status="active",
                **product_in.model_dump(),
            )
            rows.append(row)
            logger.info(f"🆕 PRODUCTO: Creando producto '{row.name}' con SKU '{row.sku}'")

        try:
            created = await product_crud.create_products(db, rows)
        except IntegrityError as e:
            await db.rollback()
            logger.error(f"❌ ERROR: SKU duplicado al crear productos: {e}")
            raise ConflictError("A product with the generated SKU already exists", field="sku", code="duplicate_sku") from e

        products = [product_schema.ProductResponse.model_validate(p) for p in created]
        await self.cache.put_many(products)
        logger.info(f"✅ PRODUCTO: {len(products)} productos creados")
        return products

    # ========================================
    # EDICIÓN
    # ========================================

    def _parse_patch(self, payload: Dict[str, Any], field_prefix: str = "") -> product_schema.ProductPatch:
        try:
            patch, stripped = product_schema.ProductPatch.from_payload(payload)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise InvalidOperationError(
                first.get("msg", "Invalid field"),
                field=f"{field_prefix}{location}",
                code="validation_error",
            ) from e

        if stripped:
            logger.info(f"✂️ PRODUCTO: Campos no editables descartados: {stripped}")
        if not patch.changes():
            raise InvalidOperationError("No valid fields to update", field=field_prefix or None, code="no_valid_fields")
        return patch

    async def _refresh_cache(self, previous: Optional[product_schema.ProductResponse], product: product_schema.ProductResponse):
        # Si cambió la categoría, el SKU debe salir de la lista anterior
        if previous is not None and previous.category != product.category:
            await self.cache.remove(previous)
        await self.cache.put(product)

    async def update_product(
        self, db: AsyncSession, sku: str, payload: Dict[str, Any]
    ) -> Tuple[product_schema.ProductResponse, str]:
        """Aplica una edición parcial y refresca la caché."""
        validate_sku(sku)
        patch = self._parse_patch(payload)
        logger.info(f"🔄 PRODUCTO: Actualizando producto SKU '{sku}' ({sorted(patch.changes())})")

        previous_db = await product_crud.get_product_by_sku(db, sku)
        if not previous_db:
            raise NotFoundError(f"Product with SKU '{sku}' not found", field="sku")
        previous = product_schema.ProductResponse.model_validate(previous_db)

        updated_db = await product_crud.update_product_fields(db, sku, patch.changes())
        if not updated_db:
            raise NotFoundError(f"Product with SKU '{sku}' not found", field="sku")

        product = product_schema.ProductResponse.model_validate(updated_db)
        await self._refresh_cache(previous, product)
        logger.info(f"✅ PRODUCTO: Actualizado exitosamente SKU '{sku}'")
        return product, CACHE_REFRESHED

    async def bulk_update(self, db: AsyncSession, items: List[Dict[str, Any]]) -> BulkOperationResponse:
        """
        Edición masiva. Cada elemento lleva su 'sku' y los campos a cambiar.

        Los errores se recogen por elemento sin abortar el resto del lote.
        """
        if not items:
            raise InvalidOperationError("At least one product is required", field="products", code="empty_request")

        errors: List[FieldError] = []
        success = 0
        for index, item in enumerate(items):
            field = f"[{index}].sku"
            try:
                if not isinstance(item, dict):
                    raise InvalidOperationError("Each item must be an object", field=f"[{index}]", code="invalid_item")
                sku = validate_sku(item.get("sku"), field=field)
                patch = self._parse_patch(item, field_prefix=f"[{index}].")

                previous_db = await product_crud.get_product_by_sku(db, sku)
                if not previous_db:
                    raise NotFoundError(f"Product with SKU '{sku}' not found", field=field)
                previous = product_schema.ProductResponse.model_validate(previous_db)

                updated_db = await product_crud.update_product_fields(db, sku, patch.changes())
                if not updated_db:
                    raise NotFoundError(f"Product with SKU '{sku}' not found", field=field)
                await self._refresh_cache(previous, product_schema.ProductResponse.model_validate(updated_db))
                success += 1
            except (InvalidOperationError, NotFoundError) as e:
                errors.append(FieldError(field=e.field or field, message=e.message, code=e.code))
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"❌ ERROR: Fallo de base de datos en edición masiva, elemento {index}: {e}")
                errors.append(FieldError(field=field, message="Failed to update product", code="store_error"))

        logger.info(f"📦 PRODUCTOS: Edición masiva {success}/{len(items)} correctos")
        return BulkOperationResponse(
            message=f"Updated {success} of {len(items)} products",
            success_count=success,
            total_requested=len(items),
            errors=errors,
            error_count=len(errors),
        )

    # ========================================
    # BORRADO
    # ========================================

    async def delete_product(self, db: AsyncSession, sku: str) -> Tuple[product_schema.ProductResponse, str]:
        """Borra en base de datos y después invalida la caché."""
        validate_sku(sku)
        logger.info(f"🗑️ PRODUCTO: Eliminando producto SKU '{sku}'")
        deleted_db = await product_crud.delete_product_by_sku(db, sku)
        if not deleted_db:
            raise NotFoundError(f"Product with SKU '{sku}' not found", field="sku")

        product = product_schema.ProductResponse.model_validate(deleted_db)
        await self.cache.remove(product)
        logger.info(f"✅ PRODUCTO: Eliminado exitosamente SKU '{sku}'")
        return product, CACHE_DELETED

    async def bulk_delete(self, db: AsyncSession, items: List[Dict[str, Any]]) -> BulkOperationResponse:
        if not items:
            raise InvalidOperationError("At least one product is required", field="products", code="empty_request")

        errors: List[FieldError] = []
        success = 0
        for index, item in enumerate(items):
            field = f"[{index}].sku"
            try:
                if not isinstance(item, dict):
                    raise InvalidOperationError("Each item must be an object", field=f"[{index}]", code="invalid_item")
                sku = validate_sku(item.get("sku"), field=field)
                deleted_db = await product_crud.delete_product_by_sku(db, sku)
                if not deleted_db:
                    raise NotFoundError(f"Product with SKU '{sku}' not found", field=field)
                await self.cache.remove(product_schema.ProductResponse.model_validate(deleted_db))
                success += 1
            except (InvalidOperationError, NotFoundError) as e:
                errors.append(FieldError(field=e.field or field, message=e.message, code=e.code))
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"❌ ERROR: Fallo de base de datos en borrado masivo, elemento {index}: {e}")
                errors.append(FieldError(field=field, message="Failed to delete product", code="store_error"))

        logger.info(f"📦 PRODUCTOS: Borrado masivo {success}/{len(items)} correctos")
        return BulkOperationResponse(
            message=f"Deleted {success} of {len(items)} products",
            success_count=success,
            total_requested=len(items),
            errors=errors,
            error_count=len(errors),
        )

    # ========================================
    # INVENTARIO
    # ========================================

    async def adjust_stock(
        self, db: AsyncSession, sku: str, adjustment: product_schema.StockAdjustment
    ) -> product_schema.ProductResponse:
        """Ajusta el stock de un almacén, registra el movimiento y refresca la caché."""
        validate_sku(sku)
        product_db = await product_crud.get_product_by_sku(db, sku)
        if not product_db:
            raise NotFoundError(f"Product with SKU '{sku}' not found", field="sku")

        current = int((product_db.stock or {}).get(adjustment.warehouse) or 0)
        if adjustment.quantity_after is not None:
            quantity_after = adjustment.quantity_after
        else:
            quantity_after = current + adjustment.delta
        if quantity_after < 0:
            raise InvalidOperationError(
                f"Stock in {adjustment.warehouse} cannot go below zero (current {current})",
                field="delta",
                code="insufficient_stock",
            )

        updated_db, log = await product_crud.adjust_stock(
            db, product_db, adjustment.warehouse, quantity_after,
            adjustment.change_type, adjustment.reason, adjustment.performed_by,
        )
        logger.info(
            f"📦 INVENTARIO: '{sku}' {adjustment.warehouse} {log.quantity_before} -> {log.quantity_after} "
            f"({adjustment.change_type})"
        )
        product = product_schema.ProductResponse.model_validate(updated_db)
        await self.cache.put(product)
        return product

    async def inventory_logs(self, db: AsyncSession, sku: str, limit: int = 50) -> List[product_schema.InventoryLogResponse]:
        validate_sku(sku)
        logs = await product_crud.get_inventory_logs(db, sku, limit)
        return [product_schema.InventoryLogResponse.model_validate(log) for log in logs]

    async def refresh_product(self, product_db: Product) -> None:
        """Vuelve a cachear un producto modificado por otro dominio (p. ej. valoraciones)."""
        await self.cache.put(product_schema.ProductResponse.model_validate(product_db))
