# backend/app/services/search_service.py
"""
Búsqueda global sin distinguir mayúsculas sobre productos, clientes,
pedidos y reseñas.

Cada sección se consulta por separado: si una falla, se registra y se
devuelve vacía sin afectar al resto.
"""

import logging
from typing import List, Callable, Awaitable, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import product_crud, customer_crud, order_crud, review_crud
from app.schemas.analytics_schema import SearchHit, SearchResponse

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 150


def make_snippet(text: str, length: int = SNIPPET_LENGTH) -> str:
    text = (text or "").strip()
    if len(text) <= length:
        return text
    return text[:length] + "..."


class SearchService:

    async def _section(
        self, db: AsyncSession, name: str, fetch: Callable[[], Awaitable[List[Any]]], to_hit: Callable[[Any], SearchHit]
    ) -> List[SearchHit]:
        try:
            return [to_hit(row) for row in await fetch()]
        except SQLAlchemyError as e:
            logger.warning(f"⚠️ BÚSQUEDA: Falló la sección '{name}': {e}")
            await db.rollback()
            return []

    async def search(self, db: AsyncSession, query: str, limit: int = 10) -> SearchResponse:
        term = query.strip()
        logger.info(f"🎯 BÚSQUEDA: Iniciando búsqueda para '{term}' con limit={limit}")

        products = await self._section(
            db, "products",
            lambda: product_crud.search_products(db, term, limit),
            lambda p: SearchHit(type="product", id=p.sku, title=p.name, snippet=make_snippet(p.description or "")),
        )
        customers = await self._section(
            db, "customers",
            lambda: customer_crud.search_customers(db, term, limit),
            lambda c: SearchHit(type="customer", id=c.id, title=f"{c.first_name} {c.last_name}", snippet=c.email),
        )
        orders = await self._section(
            db, "orders",
            lambda: order_crud.search_orders(db, term, limit),
            lambda o: SearchHit(
                type="order", id=o.order_number, title=f"{o.order_number} ({o.status})",
                snippet=make_snippet(o.notes or o.customer_email),
            ),
        )
        reviews = await self._section(
            db, "reviews",
            lambda: review_crud.search_reviews(db, term, limit),
            lambda r: SearchHit(type="review", id=r.id, title=r.title, snippet=make_snippet(r.comment or "")),
        )

        total = len(products) + len(customers) + len(orders) + len(reviews)
        logger.info(f"✅ BÚSQUEDA: {total} resultados para '{term}'")
        return SearchResponse(
            query=term, products=products, customers=customers, orders=orders, reviews=reviews, total=total
        )


search_service = SearchService()
