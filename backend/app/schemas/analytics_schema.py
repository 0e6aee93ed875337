# backend/app/schemas/analytics_schema.py
"""
Esquemas Pydantic para analíticas, búsqueda global e informes con IA.
"""

from datetime import datetime
from typing import Optional, List, Any, Literal
from pydantic import BaseModel

# ========================================
# VENTAS
# ========================================

class SalesPeriod(BaseModel):
    date: str  # Etiqueta del periodo: "2024-03-01", "Week 09, 2024" o "March 2024"
    total_orders: int
    total_revenue: float
    avg_order_value: float
    unique_customers: int


class SalesReport(BaseModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    group_by: Literal["day", "week", "month"]
    sales: List[SalesPeriod]
    count: int


class TopProduct(BaseModel):
    product_id: str
    product_name: str
    sku: str
    total_revenue: float
    total_sold: int
    avg_price: float
    order_count: int


class TopProductsReport(BaseModel):
    sort_by: Literal["revenue", "quantity"]
    products: List[TopProduct]
    count: int


# ========================================
# INVENTARIO
# ========================================

StockStatus = Literal["out_of_stock", "low_stock", "medium_stock", "in_stock"]


class InventoryStatusItem(BaseModel):
    product_id: str
    product_name: str
    sku: str
    category: str
    current_stock: int
    reorder_level: int
    stock_status: StockStatus
    last_updated: datetime


class InventoryReport(BaseModel):
    alerts_only: bool
    products: List[InventoryStatusItem]
    count: int


# ========================================
# BÚSQUEDA
# ========================================

class SearchHit(BaseModel):
    type: Literal["product", "customer", "order", "review"]
    id: str
    title: str
    snippet: str


class SearchResponse(BaseModel):
    query: str
    products: List[SearchHit] = []
    customers: List[SearchHit] = []
    orders: List[SearchHit] = []
    reviews: List[SearchHit] = []
    total: int = 0


# ========================================
# INFORMES CON IA
# ========================================

class AIReportData(BaseModel):
    raw_data: Any
    ai_insights: Optional[str] = None
    summary: str
    error: Optional[str] = None


class AIReportResponse(BaseModel):
    status: str
    report_type: str
    data: AIReportData
    generated_at: datetime
    ai_enabled: bool
