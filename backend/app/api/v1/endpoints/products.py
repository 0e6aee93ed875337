# backend/app/api/v1/endpoints/products.py

"""
Endpoints REST para operaciones CRUD de productos.

Las lecturas por SKU pasan por la caché de Redis y todas las respuestas de
producto incluyen la cabecera X-Cache con el camino seguido:
HIT, MISS, REFRESHED, DELETED o sus variantes BULK-*.
"""

from fastapi import APIRouter, Depends, status, Query, Body, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Dict, Any, Literal
import logging

from app.api import deps
from app.schemas import product_schema
from app.schemas.common_schema import BulkOperationResponse
from app.services.product_service import (
    ProductService, CACHE_BULK_CREATED, CACHE_BULK_REFRESHED, CACHE_BULK_DELETED,
)

logger = logging.getLogger(__name__)
router = APIRouter()

CACHE_HEADER = "X-Cache"


def _bulk_response(result: BulkOperationResponse, cache_status: str) -> JSONResponse:
    return JSONResponse(
        status_code=result.http_status(),
        content=result.model_dump(mode="json"),
        headers={CACHE_HEADER: cache_status},
    )


# ========================================
# LISTADOS Y CONSULTAS AUXILIARES
# ========================================

@router.get("/", response_model=List[product_schema.ProductResponse])
async def read_products(
    db: AsyncSession = Depends(deps.get_db),
    product_service: ProductService = Depends(deps.get_product_service),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=200),
    category: Optional[str] = None,
    brand: Optional[str] = None,
    status_filter: Optional[Literal["active", "inactive", "deleted"]] = Query(default=None, alias="status"),
    min_price: Optional[float] = Query(default=None, ge=0),
    max_price: Optional[float] = Query(default=None, ge=0),
) -> List[product_schema.ProductResponse]:
    """Obtiene una lista filtrada y paginada de productos."""
    logger.debug(f"📋 PRODUCTOS: Listando con filtros - skip={skip}, limit={limit}")
    products = await product_service.list_products(
        db, skip=skip, limit=limit, category=category, brand=brand,
        status=status_filter, min_price=min_price, max_price=max_price,
    )
    logger.debug(f"📋 PRODUCTOS: Encontrados {len(products)} resultados")
    return products


@router.get("/categories", response_model=List[product_schema.CategoryCount])
async def read_categories(
    db: AsyncSession = Depends(deps.get_db),
    product_service: ProductService = Depends(deps.get_product_service),
) -> List[product_schema.CategoryCount]:
    """Categorías distintas del catálogo con su número de productos."""
    return await product_service.list_categories(db)


@router.get("/recent", response_model=product_schema.RecentProductsResponse)
async def read_recent_products(
    limit: int = Query(default=20, ge=1, le=100),
    product_service: ProductService = Depends(deps.get_product_service),
) -> product_schema.RecentProductsResponse:
    """SKUs escritos recientemente según la caché. Es solo una pista, no un índice."""
    skus = await product_service.recent_skus(limit)
    return product_schema.RecentProductsResponse(skus=skus, count=len(skus))


# ========================================
# CREACIÓN Y OPERACIONES MASIVAS
# ========================================

@router.post("/", response_model=product_schema.ProductCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_products(
    *,
    response: Response,
    db: AsyncSession = Depends(deps.get_db),
    product_service: ProductService = Depends(deps.get_product_service),
    products_in: List[product_schema.ProductCreate],
) -> product_schema.ProductCreateResponse:
    """Crea uno o varios productos. El SKU se genera a partir de marca y categoría."""
    logger.info(f"🆕 PRODUCTO: Petición de alta de {len(products_in)} productos")
    products = await product_service.create_products(db, products_in)
    response.headers[CACHE_HEADER] = CACHE_BULK_CREATED
    return product_schema.ProductCreateResponse(products=products, count=len(products))


@router.put("/bulk", response_model=BulkOperationResponse)
async def bulk_update_products(
    items: List[Any] = Body(...),
    db: AsyncSession = Depends(deps.get_db),
    product_service: ProductService = Depends(deps.get_product_service),
):
    """
    Edición masiva. Responde 200 si todo fue bien, 207 con éxitos parciales
    y 400 si no se actualizó ningún producto.
    """
    result = await product_service.bulk_update(db, items)
    return _bulk_response(result, CACHE_BULK_REFRESHED)


@router.delete("/bulk", response_model=BulkOperationResponse)
async def bulk_delete_products(
    items: List[Any] = Body(...),
    db: AsyncSession = Depends(deps.get_db),
    product_service: ProductService = Depends(deps.get_product_service),
):
    """Borrado masivo con la misma semántica de códigos que la edición masiva."""
    result = await product_service.bulk_delete(db, items)
    return _bulk_response(result, CACHE_BULK_DELETED)


# ========================================
# OPERACIONES POR SKU
# ========================================

@router.get("/{sku}", response_model=product_schema.ProductResponse)
async def read_product(
    *,
    sku: str,
    response: Response,
    db: AsyncSession = Depends(deps.get_db),
    product_service: ProductService = Depends(deps.get_product_service),
) -> product_schema.ProductResponse:
    """Obtiene los detalles de un producto por SKU."""
    logger.debug(f"🔍 PRODUCTO: Buscando producto SKU '{sku}'")
    product, cache_status = await product_service.get_product(db, sku)
    response.headers[CACHE_HEADER] = cache_status
    return product


@router.put("/{sku}", response_model=product_schema.ProductResponse)
async def update_product(
    *,
    sku: str,
    response: Response,
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(deps.get_db),
    product_service: ProductService = Depends(deps.get_product_service),
) -> product_schema.ProductResponse:
    """Actualiza un producto existente. sku, id y created_at no son editables."""
    product, cache_status = await product_service.update_product(db, sku, payload)
    response.headers[CACHE_HEADER] = cache_status
    return product


@router.delete("/{sku}", response_model=product_schema.ProductDeleteResponse)
async def delete_product(
    *,
    sku: str,
    response: Response,
    db: AsyncSession = Depends(deps.get_db),
    product_service: ProductService = Depends(deps.get_product_service),
) -> product_schema.ProductDeleteResponse:
    """Elimina un producto del sistema."""
    product, cache_status = await product_service.delete_product(db, sku)
    response.headers[CACHE_HEADER] = cache_status
    return product_schema.ProductDeleteResponse(message="Product deleted successfully", deleted_sku=product.sku)


# ========================================
# INVENTARIO
# ========================================

@router.post("/{sku}/stock", response_model=product_schema.ProductResponse)
async def adjust_product_stock(
    *,
    sku: str,
    response: Response,
    adjustment: product_schema.StockAdjustment,
    db: AsyncSession = Depends(deps.get_db),
    product_service: ProductService = Depends(deps.get_product_service),
) -> product_schema.ProductResponse:
    """Ajusta el stock de un almacén y registra el movimiento."""
    product = await product_service.adjust_stock(db, sku, adjustment)
    response.headers[CACHE_HEADER] = "REFRESHED"
    return product


@router.get("/{sku}/inventory-logs", response_model=List[product_schema.InventoryLogResponse])
async def read_inventory_logs(
    sku: str,
    limit: int = Query(default=50, ge=1, le=500),
    db: AsyncSession = Depends(deps.get_db),
    product_service: ProductService = Depends(deps.get_product_service),
) -> List[product_schema.InventoryLogResponse]:
    """Historial de movimientos de inventario, del más reciente al más antiguo."""
    return await product_service.inventory_logs(db, sku, limit)
