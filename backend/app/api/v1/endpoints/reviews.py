# backend/app/api/v1/endpoints/reviews.py
"""
Endpoints REST para reseñas de productos.

Las reseñas se consultan por entidad (?item=product|customer|order&id=...).
Crear, editar o borrar una reseña recalcula la valoración media del producto
y la refresca en la caché.
"""

from fastapi import APIRouter, Depends, Query, Body, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, Any
import logging

from app.api import deps
from app.schemas import review_schema
from app.services.review_service import ReviewService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=review_schema.ReviewListResponse)
async def read_reviews(
    item: str = Query(..., description="product, customer u order"),
    id: str = Query(..., min_length=1),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=200),
    db: AsyncSession = Depends(deps.get_db),
    review_service: ReviewService = Depends(deps.get_review_service),
):
    reviews = await review_service.list_reviews(db, item, id, skip=skip, limit=limit)
    return review_schema.ReviewListResponse(
        reviews=[review_schema.ReviewResponse.model_validate(r) for r in reviews],
        count=len(reviews),
    )


@router.post("/", response_model=review_schema.ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    review_in: review_schema.ReviewCreate,
    item: str = Query(default="product"),
    id: str = Query(..., min_length=1),
    db: AsyncSession = Depends(deps.get_db),
    review_service: ReviewService = Depends(deps.get_review_service),
):
    """Crea una reseña para el producto indicado en ?id=."""
    if item != "product":
        raise HTTPException(status_code=400, detail="Solo se pueden crear reseñas de productos (item=product)")
    return await review_service.create_review(db, id, review_in)


@router.put("/{review_id}", response_model=review_schema.ReviewResponse)
async def update_review(
    review_id: str,
    product_id: str = Query(..., min_length=1),
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(deps.get_db),
    review_service: ReviewService = Depends(deps.get_review_service),
):
    return await review_service.update_review(db, review_id, product_id, payload)


@router.delete("/{review_id}", response_model=review_schema.ReviewDeleteResponse)
async def delete_review(
    review_id: str,
    product_id: str = Query(..., min_length=1),
    db: AsyncSession = Depends(deps.get_db),
    review_service: ReviewService = Depends(deps.get_review_service),
):
    deleted = await review_service.delete_review(db, review_id, product_id)
    return review_schema.ReviewDeleteResponse(message="Review deleted successfully", deleted_id=deleted.id)
