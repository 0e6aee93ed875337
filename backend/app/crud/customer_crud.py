# backend/app/crud/customer_crud.py
"""
Este archivo contiene las operaciones CRUD para el modelo Customer.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List, Dict, Any
from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.customer_model import Customer


async def get_customer_by_id(db: AsyncSession, customer_id: str) -> Optional[Customer]:
    result = await db.execute(select(Customer).filter(Customer.id == customer_id))
    return result.scalars().first()


async def get_customer_by_email(db: AsyncSession, email: str) -> Optional[Customer]:
    """
    Busca un cliente por su dirección de correo electrónico, sin distinguir mayúsculas.
    """
    result = await db.execute(select(Customer).filter(func.lower(Customer.email) == email.lower()))
    return result.scalars().first()


async def get_customers(db: AsyncSession, skip: int = 0, limit: int = 100) -> List[Customer]:
    result = await db.execute(
        select(Customer).order_by(Customer.created_at.desc()).offset(skip).limit(limit)
    )
    return result.scalars().all()


async def get_all_customers(db: AsyncSession) -> List[Customer]:
    result = await db.execute(select(Customer))
    return result.scalars().all()


async def search_customers(db: AsyncSession, term: str, limit: int = 10) -> List[Customer]:
    pattern = f"%{term}%"
    query = select(Customer).filter(
        or_(
            Customer.first_name.ilike(pattern),
            Customer.last_name.ilike(pattern),
            Customer.email.ilike(pattern),
            Customer.phone.ilike(pattern),
        )
    ).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


async def create_customer(db: AsyncSession, customer: Customer) -> Customer:
    db.add(customer)
    await db.commit()
    await db.refresh(customer)
    return customer


async def update_customer_fields(db: AsyncSession, customer_id: str, fields: Dict[str, Any]) -> Optional[Customer]:
    customer = await get_customer_by_id(db, customer_id)
    if not customer:
        return None
    for field, value in fields.items():
        setattr(customer, field, value)
    customer.updated_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(customer)
    return customer


async def record_order(db: AsyncSession, customer: Customer, amount: Decimal) -> Customer:
    """Suma un pedido a las estadísticas del cliente."""
    customer.total_orders = (customer.total_orders or 0) + 1
    customer.total_spent = Decimal(str(customer.total_spent or 0)) + amount
    await db.commit()
    await db.refresh(customer)
    return customer


async def delete_customer(db: AsyncSession, customer_id: str) -> Optional[Customer]:
    customer = await get_customer_by_id(db, customer_id)
    if not customer:
        return None
    await db.delete(customer)
    await db.commit()
    return customer
