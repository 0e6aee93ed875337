# backend/app/crud/product_crud.py

"""
Operaciones CRUD para el modelo Product.

Este módulo implementa las operaciones de Create, Read, Update, Delete para
productos, siendo el corazón del sistema de catálogo. PostgreSQL es la fuente
de verdad; la caché de Redis se gestiona aparte en services/product_cache.py.

Funcionalidades principales:
- Búsqueda por SKU, por id y listados filtrados y paginados
- Inserción por lotes con SKU ya generado
- Actualización parcial de campos, recalculando el total de stock
- Borrado que devuelve el producto eliminado
- Ajustes de inventario con registro de auditoría
- Conteo de categorías distintas sin distinguir mayúsculas
"""

from datetime import datetime, timezone
from typing import List, Optional, Dict, Any, Tuple
from sqlalchemy import or_, select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.product_model import Product, recalculate_stock_total
from app.db.models.inventory_log_model import InventoryLog

import logging

logger = logging.getLogger(__name__)

# ========================================
# OPERACIONES DE LECTURA (READ)
# ========================================

async def get_product_by_sku(db: AsyncSession, sku: str) -> Optional[Product]:
    """Obtiene un producto por su SKU."""
    result = await db.execute(select(Product).filter(Product.sku == sku))
    return result.scalars().first()


async def get_product_by_id(db: AsyncSession, product_id: str) -> Optional[Product]:
    result = await db.execute(select(Product).filter(Product.id == product_id))
    return result.scalars().first()


async def get_products(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 100,
    category: Optional[str] = None,
    brand: Optional[str] = None,
    status: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
) -> List[Product]:
    """
    Obtiene una lista filtrada y paginada de productos.
    """
    query = select(Product)

    if category:
        query = query.filter(func.lower(Product.category) == category.lower())
    if brand:
        query = query.filter(Product.brand.ilike(f"%{brand}%"))
    if status:
        query = query.filter(Product.status == status)
    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)

    query = query.order_by(Product.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


async def search_products(db: AsyncSession, term: str, limit: int = 10) -> List[Product]:
    """Búsqueda sin distinguir mayúsculas en nombre, descripción, categoría y SKU."""
    pattern = f"%{term}%"
    query = select(Product).filter(
        or_(
            Product.name.ilike(pattern),
            Product.description.ilike(pattern),
            Product.category.ilike(pattern),
            Product.sku.ilike(pattern),
        )
    ).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


async def get_category_counts(db: AsyncSession) -> List[Tuple[str, int]]:
    """
    Categorías distintas con su número de productos.

    Agrupa sin distinguir mayúsculas y muestra la primera grafía en orden
    alfabético de cada grupo.
    """
    query = (
        select(func.min(Product.category), func.count(Product.id))
        .group_by(func.lower(Product.category))
        .order_by(func.lower(Product.category))
    )
    result = await db.execute(query)
    return [(row[0], row[1]) for row in result.all()]


async def get_active_products(db: AsyncSession) -> List[Product]:
    result = await db.execute(select(Product).filter(Product.status == "active"))
    return result.scalars().all()


# ========================================
# OPERACIONES DE ESCRITURA (CREATE, UPDATE, DELETE)
# ========================================

async def create_products(db: AsyncSession, products: List[Product]) -> List[Product]:
    """Inserta un lote de productos en una sola transacción."""
    db.add_all(products)
    await db.commit()
    for product in products:
        await db.refresh(product)
    return products


async def update_product_fields(db: AsyncSession, sku: str, fields: Dict[str, Any]) -> Optional[Product]:
    """
    Actualiza campos de un producto. Devuelve None si el SKU no existe.

    Si se modifica el stock, el total se recalcula como suma de los almacenes.
    """
    product = await get_product_by_sku(db, sku)
    if not product:
        return None

    for field, value in fields.items():
        if field == "stock":
            value = recalculate_stock_total(value)
        setattr(product, field, value)
    product.updated_at = datetime.now(timezone.utc)

    await db.commit()
    await db.refresh(product)
    return product


async def update_ratings(db: AsyncSession, product_id: str, average: float, count: int) -> Optional[Product]:
    product = await get_product_by_id(db, product_id)
    if not product:
        return None
    product.ratings = {"average": average, "count": count}
    product.updated_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(product)
    return product


async def delete_product_by_sku(db: AsyncSession, sku: str) -> Optional[Product]:
    """Elimina un producto y devuelve el registro eliminado, o None si no existía."""
    product = await get_product_by_sku(db, sku)
    if not product:
        return None
    await db.delete(product)
    await db.commit()
    return product


# ========================================
# INVENTARIO
# ========================================

async def adjust_stock(
    db: AsyncSession,
    product: Product,
    warehouse: str,
    quantity_after: int,
    change_type: str,
    reason: Optional[str] = None,
    performed_by: Optional[str] = None,
) -> Tuple[Product, InventoryLog]:
    """
    Fija el stock de un almacén, recalcula el total y registra el movimiento
    en la misma transacción.
    """
    stock = dict(product.stock or {})
    quantity_before = int(stock.get(warehouse) or 0)
    stock[warehouse] = quantity_after
    product.stock = recalculate_stock_total(stock)
    product.updated_at = datetime.now(timezone.utc)

    log = InventoryLog(
        product_id=product.id,
        sku=product.sku,
        warehouse=warehouse,
        change_type=change_type,
        quantity_before=quantity_before,
        quantity_after=quantity_after,
        quantity_change=quantity_after - quantity_before,
        reason=reason,
        performed_by=performed_by,
    )
    db.add(log)
    await db.commit()
    await db.refresh(product)
    await db.refresh(log)
    return product, log


async def get_inventory_logs(db: AsyncSession, sku: str, limit: int = 50) -> List[InventoryLog]:
    result = await db.execute(
        select(InventoryLog)
        .filter(InventoryLog.sku == sku)
        .order_by(InventoryLog.created_at.desc())
        .limit(limit)
    )
    return result.scalars().all()
