# backend/app/api/v1/endpoints/orders.py
"""
Endpoints REST para pedidos.

El alta acepta un lote de pedidos: cada pedido se valida contra su cliente y
los que fallan se devuelven en failed_orders sin impedir crear el resto.
"""

from fastapi import APIRouter, Depends, Query, Body, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Dict, Any
import logging

from app.api import deps
from app.schemas import order_schema
from app.schemas.common_schema import BulkOperationResponse
from app.services.order_service import order_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=List[order_schema.OrderResponse])
async def read_orders(
    db: AsyncSession = Depends(deps.get_db),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=200),
    status_filter: Optional[order_schema.OrderStatus] = Query(default=None, alias="status"),
    customer_id: Optional[str] = None,
):
    """Lista de pedidos, del más reciente al más antiguo."""
    return await order_service.list_orders(db, skip=skip, limit=limit, status=status_filter, customer_id=customer_id)


@router.post("/", response_model=order_schema.OrderBulkCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_orders(
    orders_in: List[order_schema.OrderCreate],
    db: AsyncSession = Depends(deps.get_db),
):
    """
    Crea uno o varios pedidos.

    Responde 201 si se crearon todos, 207 si alguno falló y 400 si no se
    pudo crear ninguno.
    """
    logger.info(f"🆕 PEDIDO: Petición de alta de {len(orders_in)} pedidos")
    created, failed = await order_service.create_orders(db, orders_in)
    response = order_schema.OrderBulkCreateResponse(
        orders=[order_schema.OrderResponse.model_validate(o) for o in created],
        count=len(created),
        failed_orders=failed,
    )
    if not failed:
        status_code = status.HTTP_201_CREATED
    elif created:
        status_code = status.HTTP_207_MULTI_STATUS
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json"))


@router.put("/bulk", response_model=BulkOperationResponse)
async def bulk_update_orders(
    items: List[Any] = Body(...),
    db: AsyncSession = Depends(deps.get_db),
):
    """Edición masiva de pedidos identificados por order_number."""
    result = await order_service.bulk_update(db, items)
    return JSONResponse(status_code=result.http_status(), content=result.model_dump(mode="json"))


@router.delete("/bulk", response_model=BulkOperationResponse)
async def bulk_delete_orders(
    items: List[Any] = Body(...),
    db: AsyncSession = Depends(deps.get_db),
):
    result = await order_service.bulk_delete(db, items)
    return JSONResponse(status_code=result.http_status(), content=result.model_dump(mode="json"))


@router.get("/{order_number}", response_model=order_schema.OrderResponse)
async def read_order(order_number: str, db: AsyncSession = Depends(deps.get_db)):
    """Obtiene un pedido por su número."""
    return await order_service.get_order(db, order_number)


@router.put("/{order_number}", response_model=order_schema.OrderResponse)
async def update_order(
    order_number: str,
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(deps.get_db),
):
    """
    Actualiza estado, direcciones, pago, notas o descuento de un pedido.
    Un cambio de estado queda registrado en el timeline.
    """
    return await order_service.update_order(db, order_number, payload)


@router.delete("/{order_number}", response_model=order_schema.OrderDeleteResponse)
async def delete_order(order_number: str, db: AsyncSession = Depends(deps.get_db)):
    deleted = await order_service.delete_order(db, order_number)
    return order_schema.OrderDeleteResponse(message="Order deleted successfully", deleted_order_number=deleted.order_number)
