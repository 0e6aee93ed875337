# backend/app/schemas/cart_schema.py
"""
Esquemas Pydantic para la gestión del carrito de la compra.
"""

from pydantic import BaseModel, Field
from typing import Dict


class CartItemCreate(BaseModel):
    """Esquema para añadir un item al carrito."""
    sku: str = Field(..., min_length=3, max_length=50)
    quantity: int = Field(default=1, ge=1)


class CartItemUpdate(BaseModel):
    """Nueva cantidad de un item. 0 lo elimina del carrito."""
    quantity: int = Field(..., ge=0)


class CartItem(BaseModel):
    """Línea del carrito. El precio es el del producto en el momento de añadirlo."""
    product_id: str
    sku: str
    product_name: str
    price: float
    quantity: int
    subtotal: float
    added_at: str


class Cart(BaseModel):
    """Esquema que representa el estado completo del carrito."""
    session_id: str
    items: Dict[str, CartItem] = {}  # La clave es el SKU del producto
    subtotal: float = 0.0
    tax: float = 0.0
    shipping: float = 0.0
    total: float = 0.0
    item_count: int = 0
    last_updated: str = ""
    expires_at: str = ""


class CartClearResponse(BaseModel):
    message: str
    session_id: str
