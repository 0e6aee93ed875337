# backend/app/services/analytics_service.py
"""
Servicio de analíticas: ventas agrupadas por periodo, productos más
vendidos y estado del inventario.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple, List, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidOperationError
from app.crud import analytics_crud, product_crud
from app.schemas import analytics_schema

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"


def parse_date_range(start_date: Optional[str], end_date: Optional[str]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Convierte fechas AAAA-MM-DD en un rango [inicio, fin + 1 día).

    La fecha final es inclusiva.
    """
    def _parse(value: Optional[str], field: str) -> Optional[datetime]:
        if not value:
            return None
        try:
            return datetime.strptime(value, DATE_FORMAT).replace(tzinfo=timezone.utc)
        except ValueError:
            raise InvalidOperationError(f"{field} must use the format YYYY-MM-DD", field=field, code="invalid_date")

    start = _parse(start_date, "start_date")
    end = _parse(end_date, "end_date")
    if start and end and start > end:
        raise InvalidOperationError("start_date must not be after end_date", field="start_date", code="invalid_date_range")
    return start, (end + timedelta(days=1)) if end else None


def period_label(moment: datetime, group_by: str) -> str:
    if group_by == "week":
        year, week, _ = moment.isocalendar()
        return f"Week {week:02d}, {year}"
    if group_by == "month":
        return moment.strftime("%B %Y")
    return moment.strftime(DATE_FORMAT)


def _period_key(moment: datetime, group_by: str) -> Tuple[int, ...]:
    if group_by == "week":
        year, week, _ = moment.isocalendar()
        return (year, week)
    if group_by == "month":
        return (moment.year, moment.month)
    return (moment.year, moment.month, moment.day)


def stock_status(total: int, reorder_level: int) -> str:
    if total == 0:
        return "out_of_stock"
    if total < reorder_level:
        return "low_stock"
    if total < reorder_level * 2:
        return "medium_stock"
    return "in_stock"


class AnalyticsService:
    """
    Informes de negocio calculados sobre PostgreSQL.
    """

    async def sales(
        self, db: AsyncSession, start_date: Optional[str], end_date: Optional[str], group_by: str = "day"
    ) -> analytics_schema.SalesReport:
        start, end_exclusive = parse_date_range(start_date, end_date)
        orders = await analytics_crud.get_revenue_orders(db, start, end_exclusive)

        groups: Dict[Tuple[int, ...], dict] = {}
        for order in orders:
            key = _period_key(order.created_at, group_by)
            group = groups.setdefault(key, {
                "date": period_label(order.created_at, group_by),
                "orders": 0,
                "revenue": 0.0,
                "customers": set(),
            })
            group["orders"] += 1
            group["revenue"] += float(order.grand_total or 0)
            group["customers"].add(order.customer_id)

        sales = [
            analytics_schema.SalesPeriod(
                date=g["date"],
                total_orders=g["orders"],
                total_revenue=round(g["revenue"], 2),
                avg_order_value=round(g["revenue"] / g["orders"], 2),
                unique_customers=len(g["customers"]),
            )
            for _, g in sorted(groups.items())
        ]
        logger.debug(f"📊 ANALÍTICAS: {len(orders)} pedidos en {len(sales)} periodos ({group_by})")
        return analytics_schema.SalesReport(
            start_date=start_date, end_date=end_date, group_by=group_by, sales=sales, count=len(sales)
        )

    async def top_products(
        self,
        db: AsyncSession,
        limit: int = 10,
        sort_by: str = "revenue",
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> analytics_schema.TopProductsReport:
        start, end_exclusive = parse_date_range(start_date, end_date)
        rows = await analytics_crud.get_top_products(db, limit, sort_by, start, end_exclusive)
        products = [
            analytics_schema.TopProduct(
                product_id=row["product_id"],
                product_name=row["product_name"],
                sku=row["sku"],
                total_revenue=round(float(row["total_revenue"] or 0), 2),
                total_sold=int(row["total_sold"] or 0),
                avg_price=round(float(row["avg_price"] or 0), 2),
                order_count=int(row["order_count"] or 0),
            )
            for row in rows
        ]
        return analytics_schema.TopProductsReport(sort_by=sort_by, products=products, count=len(products))

    async def inventory_status(self, db: AsyncSession, alerts_only: bool = False) -> analytics_schema.InventoryReport:
        """
        Estado de stock de los productos activos, de menor a mayor stock.

        Con alerts_only solo se incluyen los que están por debajo del nivel de reposición.
        """
        items: List[analytics_schema.InventoryStatusItem] = []
        for product in await product_crud.get_active_products(db):
            stock = product.stock or {}
            total = int(stock.get("total") or 0)
            reorder_level = int(stock.get("reorder_level") or 0)
            if alerts_only and not total < reorder_level:
                continue
            items.append(analytics_schema.InventoryStatusItem(
                product_id=product.id,
                product_name=product.name,
                sku=product.sku,
                category=product.category,
                current_stock=total,
                reorder_level=reorder_level,
                stock_status=stock_status(total, reorder_level),
                last_updated=product.updated_at,
            ))
        items.sort(key=lambda item: item.current_stock)
        return analytics_schema.InventoryReport(alerts_only=alerts_only, products=items, count=len(items))


analytics_service = AnalyticsService()
