# backend/app/schemas/customer_schema.py
"""
Esquemas Pydantic para clientes.

La contraseña solo aparece en CustomerCreate; ningún esquema de respuesta
expone la contraseña ni su hash.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any, Literal, Tuple
from pydantic import BaseModel, Field, ConfigDict, EmailStr, field_validator

from .common_schema import Address, reject_null
from .order_schema import OrderResponse


class Preferences(BaseModel):
    newsletter: bool = True
    sms_notifications: bool = False
    email_notifications: bool = True
    language: Literal["en", "fr", "es"] = "en"
    currency: Literal["CAD", "USD", "EUR"] = "CAD"
    favorite_categories: List[str] = []


# ========================================
# ESQUEMAS PARA OPERACIONES
# ========================================

class CustomerCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone: Optional[str] = Field(default=None, min_length=10, max_length=20)
    addresses: List[Address] = []
    preferences: Preferences = Preferences()


class CustomerPatch(BaseModel):
    """Campos modificables de un cliente. email y password no se editan aquí."""
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    phone: Optional[str] = Field(default=None, min_length=10, max_length=20)
    preferences: Optional[Preferences] = None
    loyalty_points: Optional[int] = Field(default=None, ge=0)
    account_status: Optional[Literal["active", "inactive", "suspended"]] = None
    email_verified: Optional[bool] = None
    phone_verified: Optional[bool] = None

    check_not_null = field_validator(
        "first_name", "last_name", "preferences", "loyalty_points", "account_status", "email_verified", "phone_verified"
    )(reject_null)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> Tuple["CustomerPatch", List[str]]:
        allowed = set(cls.model_fields)
        stripped = sorted(key for key in payload if key not in allowed)
        patch = cls.model_validate({k: v for k, v in payload.items() if k in allowed})
        return patch, stripped

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, mode="json")


# ========================================
# ESQUEMAS DE RESPUESTA
# ========================================

class CustomerResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    addresses: List[Address] = []
    preferences: Preferences
    loyalty_points: int
    loyalty_tier: str = "Bronze"
    account_status: str
    email_verified: bool
    phone_verified: bool
    total_orders: int
    total_spent: float
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class OrdersSummary(BaseModel):
    total_orders: int
    total_spent: float


class CustomerOrdersResponse(BaseModel):
    customer_id: str
    orders: List[OrderResponse]
    pagination: Pagination
    summary: OrdersSummary


class CustomerSegment(BaseModel):
    segment: str
    min_spent: float
    max_spent: float
    customer_count: int
    avg_orders: float
    total_spent: float
    avg_spent_per_customer: float


class CustomerSegmentsResponse(BaseModel):
    segments: List[CustomerSegment]
    total_customers: int


class CustomerDeleteResponse(BaseModel):
    message: str
    deleted_id: str
