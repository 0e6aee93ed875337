# backend/app/schemas/order_schema.py
"""
Esquemas Pydantic para pedidos.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any, Literal, Tuple
from pydantic import BaseModel, Field, ConfigDict, EmailStr, field_validator

from .common_schema import Address, reject_null

OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]

# ========================================
# ESQUEMAS AUXILIARES
# ========================================

class Payment(BaseModel):
    method: Literal["credit_card", "debit_card", "paypal", "cash"]
    status: Literal["pending", "completed", "failed", "refunded"] = "pending"
    transaction_id: Optional[str] = Field(default=None, max_length=100)


class OrderItemCreate(BaseModel):
    product_id: str
    sku: str = Field(..., min_length=3, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., ge=1)
    unit_price: float = Field(..., gt=0)


class OrderItemResponse(BaseModel):
    product_id: str
    sku: str
    name: str
    quantity: int
    unit_price: float
    subtotal: float

    model_config = ConfigDict(from_attributes=True)


class Timeline(BaseModel):
    ordered_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    estimated_delivery: Optional[datetime] = None


# ========================================
# ESQUEMAS PARA OPERACIONES
# ========================================

class OrderCreate(BaseModel):
    """Nuevo pedido. Totales, número de pedido y estado los calcula el servidor."""
    customer_id: str
    customer_email: EmailStr
    items: List[OrderItemCreate] = Field(..., min_length=1)
    shipping_address: Address
    billing_address: Optional[Address] = None
    payment: Payment
    discount: float = Field(default=0.0, ge=0)
    notes: Optional[str] = Field(default=None, max_length=1000)


class OrderPatch(BaseModel):
    """
    Edición parcial de un pedido. order_number, customer_id, customer_email,
    los items y las fechas de creación no son modificables.
    """
    status: Optional[OrderStatus] = None
    shipping_address: Optional[Address] = None
    billing_address: Optional[Address] = None
    payment: Optional[Payment] = None
    discount: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=1000)

    check_not_null = field_validator("status", "shipping_address", "payment", "discount")(reject_null)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> Tuple["OrderPatch", List[str]]:
        allowed = set(cls.model_fields)
        stripped = sorted(key for key in payload if key not in allowed)
        patch = cls.model_validate({k: v for k, v in payload.items() if k in allowed})
        return patch, stripped

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, mode="json")


# ========================================
# ESQUEMAS DE RESPUESTA
# ========================================

class OrderResponse(BaseModel):
    id: str
    order_number: str
    customer_id: str
    customer_email: str
    status: OrderStatus
    items: List[OrderItemResponse]
    subtotal: float
    tax: float
    shipping_cost: float
    discount: float
    grand_total: float
    shipping_address: Address
    billing_address: Optional[Address] = None
    payment: Payment
    timeline: Timeline
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FailedOrder(BaseModel):
    index: int
    customer_email: Optional[str] = None
    message: str
    code: str


class OrderBulkCreateResponse(BaseModel):
    orders: List[OrderResponse]
    count: int
    failed_orders: List[FailedOrder] = []


class OrderDeleteResponse(BaseModel):
    message: str
    deleted_order_number: str
