# backend/app/db/models/inventory_log_model.py
"""
Registro de auditoría de movimientos de inventario.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, ForeignKey
from sqlalchemy.dialects.postgresql import TIMESTAMP

from app.db.database import Base

CHANGE_TYPES = ("restock", "sale", "adjustment", "return", "damage")


class InventoryLog(Base):
    __tablename__ = "inventory_logs"

    log_id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    sku = Column(String(50), nullable=False, index=True)
    warehouse = Column(String(30), nullable=False)
    change_type = Column(String(20), nullable=False)
    quantity_before = Column(Integer, nullable=False)
    quantity_after = Column(Integer, nullable=False)
    quantity_change = Column(Integer, nullable=False)
    reason = Column(Text, nullable=True)
    performed_by = Column(String(100), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<InventoryLog(sku='{self.sku}', warehouse='{self.warehouse}', change={self.quantity_change})>"
