# backend/app/crud/analytics_crud.py
"""
Consultas de solo lectura para los informes de ventas y productos.

Solo cuentan como venta los pedidos en estado shipped, delivered o completed.
"""

from datetime import datetime
from typing import List, Optional, Dict, Any
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.order_model import Order, OrderItem

REVENUE_STATUSES = ("shipped", "delivered", "completed")


def _date_filters(query, start: Optional[datetime], end_exclusive: Optional[datetime]):
    if start is not None:
        query = query.filter(Order.created_at >= start)
    if end_exclusive is not None:
        query = query.filter(Order.created_at < end_exclusive)
    return query


async def get_revenue_orders(
    db: AsyncSession, start: Optional[datetime] = None, end_exclusive: Optional[datetime] = None
) -> List[Order]:
    query = select(Order).filter(Order.status.in_(REVENUE_STATUSES))
    query = _date_filters(query, start, end_exclusive).order_by(Order.created_at)
    result = await db.execute(query)
    return result.scalars().all()


async def get_top_products(
    db: AsyncSession,
    limit: int = 10,
    sort_by: str = "revenue",
    start: Optional[datetime] = None,
    end_exclusive: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Productos más vendidos agregando las líneas de pedido."""
    total_revenue = func.sum(OrderItem.quantity * OrderItem.unit_price).label("total_revenue")
    total_sold = func.sum(OrderItem.quantity).label("total_sold")
    query = (
        select(
            OrderItem.product_id,
            func.min(OrderItem.name).label("product_name"),
            func.min(OrderItem.sku).label("sku"),
            total_revenue,
            total_sold,
            func.avg(OrderItem.unit_price).label("avg_price"),
            func.count(OrderItem.item_id).label("order_count"),
        )
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.status.in_(REVENUE_STATUSES))
    )
    query = _date_filters(query, start, end_exclusive)
    sort_column = total_sold if sort_by == "quantity" else total_revenue
    query = query.group_by(OrderItem.product_id).order_by(sort_column.desc()).limit(limit)

    result = await db.execute(query)
    return [dict(row._mapping) for row in result.all()]
