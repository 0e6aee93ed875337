# backend/app/db/models/product_model.py
"""
Modelo de producto del catálogo.

Las partes con forma de documento (stock por almacén, atributos, imágenes,
valoraciones y etiquetas) se guardan en columnas JSONB.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, Numeric
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP

from app.db.database import Base

WAREHOUSE_FIELDS = ("warehouse_main", "warehouse_east", "warehouse_west")
DEFAULT_REORDER_LEVEL = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def empty_stock() -> dict:
    """Stock inicial de un producto recién creado."""
    stock = {field: 0 for field in WAREHOUSE_FIELDS}
    stock["total"] = 0
    stock["reorder_level"] = DEFAULT_REORDER_LEVEL
    return stock


def recalculate_stock_total(stock: dict) -> dict:
    """Devuelve una copia del stock con total = suma de los almacenes."""
    recalculated = dict(stock)
    recalculated["total"] = sum(int(recalculated.get(field) or 0) for field in WAREHOUSE_FIELDS)
    recalculated.setdefault("reorder_level", DEFAULT_REORDER_LEVEL)
    return recalculated


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=_new_id)
    sku = Column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=False, index=True)
    subcategory = Column(String(100), nullable=True)
    brand = Column(String(100), nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="CAD")
    stock = Column(JSONB, nullable=False, default=empty_stock)
    attributes = Column(JSONB, nullable=False, default=dict)
    images = Column(JSONB, nullable=False, default=list)
    ratings = Column(JSONB, nullable=False, default=lambda: {"average": 0.0, "count": 0})
    tags = Column(JSONB, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="active", index=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<Product(sku='{self.sku}', name='{self.name}', status='{self.status}')>"
