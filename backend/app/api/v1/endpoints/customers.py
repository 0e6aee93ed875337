# backend/app/api/v1/endpoints/customers.py
"""
Endpoints REST para clientes, sus direcciones y sus pedidos.
"""

from fastapi import APIRouter, Depends, Query, Body, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Dict, Any
import logging

from app.api import deps
from app.schemas import customer_schema
from app.schemas.common_schema import Address
from app.schemas.order_schema import OrderResponse
from app.services.customer_service import customer_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=List[customer_schema.CustomerResponse])
async def read_customers(
    db: AsyncSession = Depends(deps.get_db),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=200),
):
    customers = await customer_service.list_customers(db, skip=skip, limit=limit)
    return [customer_service.to_response(c) for c in customers]


@router.post("/", response_model=customer_schema.CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_in: customer_schema.CustomerCreate,
    db: AsyncSession = Depends(deps.get_db),
):
    """
    Registra un cliente nuevo. El email debe ser único y la contraseña se
    guarda como hash, nunca se devuelve.
    """
    customer = await customer_service.create_customer(db, customer_in)
    return customer_service.to_response(customer)


@router.get("/segments", response_model=customer_schema.CustomerSegmentsResponse)
async def read_customer_segments(db: AsyncSession = Depends(deps.get_db)):
    """Segmentación de clientes por total gastado."""
    return await customer_service.get_spending_segments(db)


@router.get("/{customer_id}", response_model=customer_schema.CustomerResponse)
async def read_customer(customer_id: str, db: AsyncSession = Depends(deps.get_db)):
    customer = await customer_service.get_customer(db, customer_id)
    return customer_service.to_response(customer)


@router.put("/{customer_id}", response_model=customer_schema.CustomerResponse)
async def update_customer(
    customer_id: str,
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(deps.get_db),
):
    """
    Actualiza datos del cliente. Email, contraseña, direcciones y contadores
    de pedidos no se editan por esta vía.
    """
    customer = await customer_service.update_customer(db, customer_id, payload)
    return customer_service.to_response(customer)


@router.delete("/{customer_id}", response_model=customer_schema.CustomerDeleteResponse)
async def delete_customer(customer_id: str, db: AsyncSession = Depends(deps.get_db)):
    deleted = await customer_service.delete_customer(db, customer_id)
    return customer_schema.CustomerDeleteResponse(message="Customer deleted successfully", deleted_id=deleted.id)


@router.get("/{customer_id}/orders", response_model=customer_schema.CustomerOrdersResponse)
async def read_customer_orders(
    customer_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(deps.get_db),
):
    """Pedidos del cliente paginados, con resumen de gasto."""
    orders, pagination, summary = await customer_service.get_customer_orders(db, customer_id, page, limit)
    return customer_schema.CustomerOrdersResponse(
        customer_id=customer_id,
        orders=[OrderResponse.model_validate(o) for o in orders],
        pagination=pagination,
        summary=summary,
    )


# ========================================
# DIRECCIONES
# ========================================

@router.post("/{customer_id}/addresses", response_model=customer_schema.CustomerResponse, status_code=status.HTTP_201_CREATED)
async def add_customer_address(
    customer_id: str,
    address: Address,
    db: AsyncSession = Depends(deps.get_db),
):
    customer = await customer_service.add_address(db, customer_id, address)
    return customer_service.to_response(customer)


@router.put("/{customer_id}/addresses/{index}", response_model=customer_schema.CustomerResponse)
async def update_customer_address(
    customer_id: str,
    index: int,
    address: Address,
    db: AsyncSession = Depends(deps.get_db),
):
    customer = await customer_service.update_address(db, customer_id, index, address)
    return customer_service.to_response(customer)


@router.delete("/{customer_id}/addresses/{index}", response_model=customer_schema.CustomerResponse)
async def delete_customer_address(
    customer_id: str,
    index: int,
    db: AsyncSession = Depends(deps.get_db),
):
    """
    Elimina una dirección. No se puede borrar la última; si se borra la
    dirección por defecto, pasa a serlo la primera restante.
    """
    customer = await customer_service.delete_address(db, customer_id, index)
    return customer_service.to_response(customer)
