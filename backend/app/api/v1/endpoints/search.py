# backend/app/api/v1/endpoints/search.py
"""
Búsqueda global sobre productos, clientes, pedidos y reseñas.
"""

from fastapi import APIRouter, Depends, Query, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.schemas.analytics_schema import SearchResponse
from app.services.search_service import search_service

router = APIRouter()


@router.get("/", response_model=SearchResponse)
async def search(
    q: str = Query(..., min_length=1, max_length=200),
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(deps.get_db),
):
    """
    Búsqueda sin distinguir mayúsculas. Cada sección devuelve como máximo
    `limit` resultados y una sección que falla se devuelve vacía.
    """
    if not q.strip():
        raise HTTPException(status_code=400, detail="El parámetro q no puede estar vacío")
    return await search_service.search(db, q, limit)
