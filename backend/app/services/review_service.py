# backend/app/services/review_service.py
"""
Servicio de reseñas.

Al crear, editar o borrar una reseña se recalcula la valoración media del
producto y se vuelve a cachear, para que la caché no sirva una valoración
antigua hasta que expire el TTL.
"""

import logging
from typing import List, Dict, Any

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ConflictError, InvalidOperationError
from app.crud import review_crud, product_crud, customer_crud, order_crud
from app.db.models.review_model import Review
from app.schemas import review_schema
from app.schemas.product_schema import ProductResponse
from app.services.product_cache import CatalogCacheManager

logger = logging.getLogger(__name__)

REVIEW_ENTITIES = ("product", "customer", "order")


class ReviewService:
    """
    Operaciones de negocio sobre reseñas.
    """

    def __init__(self, cache: CatalogCacheManager):
        self.cache = cache

    async def _refresh_product_rating(self, db: AsyncSession, product_id: str) -> None:
        average, count = await review_crud.get_rating_stats(db, product_id)
        product = await product_crud.update_ratings(db, product_id, average, count)
        if product:
            logger.debug(f"⭐ RESEÑA: Valoración de '{product.sku}' -> {average} ({count})")
            await self.cache.put(ProductResponse.model_validate(product))

    async def list_reviews(self, db: AsyncSession, entity: str, entity_id: str, skip: int = 0, limit: int = 100) -> List[Review]:
        if entity not in REVIEW_ENTITIES:
            raise InvalidOperationError(
                f"item must be one of {', '.join(REVIEW_ENTITIES)}", field="item", code="invalid_entity"
            )
        return await review_crud.get_reviews_for(db, entity, entity_id, skip=skip, limit=limit)

    async def create_review(self, db: AsyncSession, product_id: str, review_in: review_schema.ReviewCreate) -> Review:
        """
        Crea una reseña.

        El producto y el cliente deben existir. Si se indica pedido, debe ser
        del cliente y contener el producto (compra verificada). Un cliente solo
        puede reseñar cada producto una vez.
        """
        if not await product_crud.get_product_by_id(db, product_id):
            raise NotFoundError(f"Product '{product_id}' not found", field="product_id")
        if not await customer_crud.get_customer_by_id(db, review_in.customer_id):
            raise NotFoundError(f"Customer '{review_in.customer_id}' not found", field="customer_id")

        verified = False
        if review_in.order_id:
            order = await order_crud.get_order_by_id(db, review_in.order_id)
            if not order:
                raise NotFoundError(f"Order '{review_in.order_id}' not found", field="order_id")
            if order.customer_id != review_in.customer_id:
                raise InvalidOperationError("Order does not belong to the customer", field="order_id", code="order_mismatch")
            if not await order_crud.order_contains_product(db, order.id, product_id):
                raise InvalidOperationError("Order does not contain the product", field="order_id", code="product_not_in_order")
            verified = True

        if await review_crud.get_review_by_product_and_customer(db, product_id, review_in.customer_id):
            raise ConflictError("Customer has already reviewed this product", field="customer_id", code="duplicate_review")

        review = Review(product_id=product_id, verified_purchase=verified, **review_in.model_dump())
        try:
            created = await review_crud.create_review(db, review)
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError("Customer has already reviewed this product", field="customer_id", code="duplicate_review") from e

        await self._refresh_product_rating(db, product_id)
        logger.info(f"⭐ RESEÑA: Nueva reseña {created.rating}/5 para producto '{product_id}'")
        return created

    async def _get_scoped(self, db: AsyncSession, review_id: str, product_id: str) -> Review:
        review = await review_crud.get_review(db, review_id)
        if not review or review.product_id != product_id:
            raise NotFoundError(f"Review '{review_id}' not found for product '{product_id}'", field="review_id")
        return review

    async def update_review(self, db: AsyncSession, review_id: str, product_id: str, payload: Dict[str, Any]) -> Review:
        try:
            patch, stripped = review_schema.ReviewPatch.from_payload(payload)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise InvalidOperationError(first.get("msg", "Invalid field"), field=location, code="validation_error") from e
        if stripped:
            logger.info(f"✂️ RESEÑA: Campos no editables descartados: {stripped}")
        changes = patch.changes()
        if not changes:
            raise InvalidOperationError("No valid fields to update", code="no_valid_fields")

        review = await self._get_scoped(db, review_id, product_id)
        updated = await review_crud.update_review_fields(db, review, changes)
        if "rating" in changes:
            await self._refresh_product_rating(db, product_id)
        return updated

    async def delete_review(self, db: AsyncSession, review_id: str, product_id: str) -> Review:
        review = await self._get_scoped(db, review_id, product_id)
        deleted = await review_crud.delete_review(db, review)
        await self._refresh_product_rating(db, product_id)
        logger.info(f"🗑️ RESEÑA: Eliminada '{review_id}'")
        return deleted
