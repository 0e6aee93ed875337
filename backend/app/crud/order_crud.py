# backend/app/crud/order_crud.py
"""
Operaciones CRUD para el modelo Order.

Este módulo proporciona funciones para crear, consultar, editar y borrar
pedidos. Los totales, el número de pedido y las fechas del ciclo de vida se
calculan en services/order_service.py antes de llegar aquí.
"""

from datetime import datetime, timezone
from typing import List, Optional, Dict, Any
from sqlalchemy import func, select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.order_model import Order, OrderItem


async def get_order_by_number(db: AsyncSession, order_number: str) -> Optional[Order]:
    """
    Obtiene un pedido por su número de pedido, con sus líneas.
    """
    result = await db.execute(select(Order).filter(Order.order_number == order_number))
    return result.scalars().first()


async def get_order_by_id(db: AsyncSession, order_id: str) -> Optional[Order]:
    result = await db.execute(select(Order).filter(Order.id == order_id))
    return result.scalars().first()


async def get_orders(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 100,
    status: Optional[str] = None,
    customer_id: Optional[str] = None,
) -> List[Order]:
    query = select(Order)
    if status:
        query = query.filter(Order.status == status)
    if customer_id:
        query = query.filter(Order.customer_id == customer_id)
    query = query.order_by(Order.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


async def count_orders_by_customer(db: AsyncSession, customer_id: str) -> int:
    result = await db.execute(select(func.count(Order.id)).filter(Order.customer_id == customer_id))
    return result.scalar() or 0


async def get_customer_spending(db: AsyncSession, customer_id: str) -> float:
    """Suma de grand_total de los pedidos no cancelados de un cliente."""
    result = await db.execute(
        select(func.coalesce(func.sum(Order.grand_total), 0))
        .filter(Order.customer_id == customer_id, Order.status != "cancelled")
    )
    return float(result.scalar() or 0)


async def order_contains_product(db: AsyncSession, order_id: str, product_id: str) -> bool:
    result = await db.execute(
        select(func.count(OrderItem.item_id))
        .filter(OrderItem.order_id == order_id, OrderItem.product_id == product_id)
    )
    return (result.scalar() or 0) > 0


async def search_orders(db: AsyncSession, term: str, limit: int = 10) -> List[Order]:
    pattern = f"%{term}%"
    query = select(Order).filter(
        or_(
            Order.order_number.ilike(pattern),
            Order.customer_email.ilike(pattern),
            Order.status.ilike(pattern),
            Order.notes.ilike(pattern),
        )
    ).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


async def create_order(db: AsyncSession, order: Order) -> Order:
    """
    Inserta un pedido con sus líneas y lo devuelve recargado.
    """
    db.add(order)
    await db.commit()
    return await get_order_by_number(db, order.order_number)


async def update_order_fields(db: AsyncSession, order_number: str, fields: Dict[str, Any]) -> Optional[Order]:
    db_order = await get_order_by_number(db, order_number)
    if not db_order:
        return None
    for field, value in fields.items():
        setattr(db_order, field, value)
    db_order.updated_at = datetime.now(timezone.utc)
    await db.commit()
    return await get_order_by_number(db, order_number)


async def delete_order_by_number(db: AsyncSession, order_number: str) -> Optional[Order]:
    """Elimina un pedido y devuelve el registro eliminado."""
    db_order = await get_order_by_number(db, order_number)
    if not db_order:
        return None
    await db.delete(db_order)
    await db.commit()
    return db_order
