# backend/app/api/v1/endpoints/analytics.py
"""
Endpoints de analíticas de negocio e informes generados con IA.

Las fechas se reciben como YYYY-MM-DD y end_date es inclusivo.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, Literal
import logging

from app.api import deps
from app.schemas import analytics_schema
from app.schemas.customer_schema import CustomerSegmentsResponse
from app.services.analytics_service import analytics_service
from app.services.customer_service import customer_service
from app.services.report_service import ReportService

logger = logging.getLogger(__name__)
router = APIRouter()


# ========================================
# ANALÍTICAS
# ========================================

@router.get("/sales", response_model=analytics_schema.SalesReport)
async def sales_analytics(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    group_by: Literal["day", "week", "month"] = "day",
    db: AsyncSession = Depends(deps.get_db),
):
    """Ingresos de pedidos enviados, entregados o completados agrupados por periodo."""
    return await analytics_service.sales(db, start_date, end_date, group_by)


@router.get("/top-products", response_model=analytics_schema.TopProductsReport)
async def top_products_analytics(
    limit: int = Query(default=10, ge=1, le=100),
    sort_by: Literal["revenue", "quantity"] = "revenue",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    db: AsyncSession = Depends(deps.get_db),
):
    return await analytics_service.top_products(db, limit, sort_by, start_date, end_date)


@router.get("/inventory", response_model=analytics_schema.InventoryReport)
async def inventory_analytics(
    alerts_only: bool = False,
    db: AsyncSession = Depends(deps.get_db),
):
    """Estado de stock de los productos activos; con alerts_only, solo los que necesitan reposición."""
    return await analytics_service.inventory_status(db, alerts_only)


@router.get("/customers/segments", response_model=CustomerSegmentsResponse)
async def customer_segments_analytics(db: AsyncSession = Depends(deps.get_db)):
    return await customer_service.get_spending_segments(db)


# ========================================
# INFORMES CON IA
# ========================================

@router.get("/ai/sales", response_model=analytics_schema.AIReportResponse)
async def ai_sales_report(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    db: AsyncSession = Depends(deps.get_db),
    report_service: ReportService = Depends(deps.get_report_service),
):
    logger.info("🤖 IA: Solicitado informe de ventas")
    return await report_service.sales_report(db, start_date, end_date)


@router.get("/ai/customers", response_model=analytics_schema.AIReportResponse)
async def ai_customer_insights(
    db: AsyncSession = Depends(deps.get_db),
    report_service: ReportService = Depends(deps.get_report_service),
):
    logger.info("🤖 IA: Solicitado informe de clientes")
    return await report_service.customer_insights(db)


@router.get("/ai/inventory", response_model=analytics_schema.AIReportResponse)
async def ai_inventory_report(
    alerts_only: bool = False,
    db: AsyncSession = Depends(deps.get_db),
    report_service: ReportService = Depends(deps.get_report_service),
):
    logger.info("🤖 IA: Solicitado informe de inventario")
    return await report_service.inventory_report(db, alerts_only)


@router.get("/ai/top-products", response_model=analytics_schema.AIReportResponse)
async def ai_top_products_report(
    limit: int = Query(default=10, ge=1, le=100),
    sort_by: Literal["revenue", "quantity"] = "revenue",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    db: AsyncSession = Depends(deps.get_db),
    report_service: ReportService = Depends(deps.get_report_service),
):
    logger.info("🤖 IA: Solicitado informe de productos top")
    return await report_service.top_products_report(db, limit, sort_by, start_date, end_date)
