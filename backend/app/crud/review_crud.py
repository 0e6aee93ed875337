# backend/app/crud/review_crud.py
"""
Operaciones CRUD para reseñas de productos.
"""

from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.review_model import Review

# Columna por la que se filtra según la entidad pedida
REVIEW_FILTERS = {
    "product": Review.product_id,
    "customer": Review.customer_id,
    "order": Review.order_id,
}


async def get_review(db: AsyncSession, review_id: str) -> Optional[Review]:
    result = await db.execute(select(Review).filter(Review.id == review_id))
    return result.scalars().first()


async def get_reviews_for(db: AsyncSession, entity: str, entity_id: str, skip: int = 0, limit: int = 100) -> List[Review]:
    """Reseñas de un producto, un cliente o un pedido."""
    column = REVIEW_FILTERS[entity]
    result = await db.execute(
        select(Review).filter(column == entity_id).order_by(Review.created_at.desc()).offset(skip).limit(limit)
    )
    return result.scalars().all()


async def get_review_by_product_and_customer(db: AsyncSession, product_id: str, customer_id: str) -> Optional[Review]:
    result = await db.execute(
        select(Review).filter(Review.product_id == product_id, Review.customer_id == customer_id)
    )
    return result.scalars().first()


async def get_rating_stats(db: AsyncSession, product_id: str) -> Tuple[float, int]:
    """Media (redondeada a 2 decimales) y número de reseñas de un producto."""
    result = await db.execute(
        select(func.avg(Review.rating), func.count(Review.id)).filter(Review.product_id == product_id)
    )
    average, count = result.one()
    return (round(float(average), 2) if average is not None else 0.0), int(count or 0)


async def search_reviews(db: AsyncSession, term: str, limit: int = 10) -> List[Review]:
    pattern = f"%{term}%"
    result = await db.execute(
        select(Review).filter(or_(Review.title.ilike(pattern), Review.comment.ilike(pattern))).limit(limit)
    )
    return result.scalars().all()


async def create_review(db: AsyncSession, review: Review) -> Review:
    db.add(review)
    await db.commit()
    await db.refresh(review)
    return review


async def update_review_fields(db: AsyncSession, review: Review, fields: Dict[str, Any]) -> Review:
    for field, value in fields.items():
        setattr(review, field, value)
    review.updated_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(review)
    return review


async def delete_review(db: AsyncSession, review: Review) -> Review:
    await db.delete(review)
    await db.commit()
    return review
