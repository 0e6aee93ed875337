# backend/app/schemas/review_schema.py
"""
Esquemas Pydantic para reseñas de productos.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple
from pydantic import BaseModel, Field, ConfigDict, field_validator

from .common_schema import reject_null


class ReviewCreate(BaseModel):
    customer_id: str
    order_id: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    title: str = Field(..., min_length=2, max_length=200)
    comment: Optional[str] = Field(default=None, max_length=2000)


class ReviewPatch(BaseModel):
    """Solo el contenido de la reseña es editable."""
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    title: Optional[str] = Field(default=None, min_length=2, max_length=200)
    comment: Optional[str] = Field(default=None, max_length=2000)
    helpful_count: Optional[int] = Field(default=None, ge=0)

    check_not_null = field_validator("rating", "title", "helpful_count")(reject_null)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> Tuple["ReviewPatch", List[str]]:
        allowed = set(cls.model_fields)
        stripped = sorted(key for key in payload if key not in allowed)
        patch = cls.model_validate({k: v for k, v in payload.items() if k in allowed})
        return patch, stripped

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class ReviewResponse(BaseModel):
    id: str
    product_id: str
    customer_id: str
    order_id: Optional[str] = None
    rating: int
    title: str
    comment: Optional[str] = None
    verified_purchase: bool
    helpful_count: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReviewListResponse(BaseModel):
    reviews: List[ReviewResponse]
    count: int


class ReviewDeleteResponse(BaseModel):
    message: str
    deleted_id: str
