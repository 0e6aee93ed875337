# backend/app/db/models/customer_model.py
"""
Se encarga de definir el modelo de cliente para la aplicación.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, Numeric, Boolean
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP

from app.db.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def default_preferences() -> dict:
    return {
        "newsletter": True,
        "sms_notifications": False,
        "email_notifications": True,
        "language": "en",
        "currency": "CAD",
        "favorite_categories": [],
    }


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    phone = Column(String(20), nullable=True)
    addresses = Column(JSONB, nullable=False, default=list)
    preferences = Column(JSONB, nullable=False, default=default_preferences)
    loyalty_points = Column(Integer, nullable=False, default=0)
    account_status = Column(String(20), nullable=False, default="active")
    email_verified = Column(Boolean, nullable=False, default=False)
    phone_verified = Column(Boolean, nullable=False, default=False)
    total_orders = Column(Integer, nullable=False, default=0)
    total_spent = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<Customer(email='{self.email}')>"
