# backend/app/api/v1/endpoints/cart.py
"""
Este archivo contiene los endpoints para el carrito de compras.

El carrito se identifica por un session_id opaco que envía el cliente y vive
solo en Redis. La comprobación de stock se hace aquí, antes de llamar al
servicio de carrito, usando el producto servido por la caché del catálogo.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.api import deps
from app.services.cart_service import CartService
from app.services.product_service import ProductService
from app.schemas.cart_schema import CartItemCreate, CartItemUpdate, Cart, CartClearResponse

logger = logging.getLogger(__name__)

# Router para el carrito de compras
router = APIRouter()


@router.get("/{session_id}", response_model=Cart)
async def get_cart(
    session_id: str,
    cart_service: CartService = Depends(deps.get_cart_service),
):
    """
    Obtiene el contenido del carrito. Una sesión desconocida o expirada
    devuelve un carrito vacío.
    """
    return await cart_service.get_cart(session_id)


@router.post("/{session_id}/items", status_code=status.HTTP_201_CREATED, response_model=Cart)
async def add_item_to_cart(
    session_id: str,
    item: CartItemCreate,
    db: AsyncSession = Depends(deps.get_db),
    cart_service: CartService = Depends(deps.get_cart_service),
    product_service: ProductService = Depends(deps.get_product_service),
):
    """
    Añade un producto al carrito, verificando el stock disponible.
    """
    product, _ = await product_service.get_product(db, item.sku)
    if product.status != "active":
        raise HTTPException(status_code=400, detail=f"El producto {product.sku} no está disponible")

    # --- VERIFICACIÓN DE STOCK ---
    cart = await cart_service.get_cart(session_id)
    in_cart = cart.items[item.sku].quantity if item.sku in cart.items else 0
    available = product.stock.total
    if in_cart + item.quantity > available:
        logger.warning(
            f"⚠️ CARRITO: Stock insuficiente para '{item.sku}' (pedido {in_cart + item.quantity}, disponible {available})"
        )
        raise HTTPException(
            status_code=409,  # Conflict
            detail=f"Stock insuficiente para {product.name}. Solicitado: {in_cart + item.quantity}, Disponible: {available}"
        )

    return await cart_service.add_item(session_id, item.sku, item.quantity, product)


@router.put("/{session_id}/items/{sku}", response_model=Cart)
async def update_cart_item(
    session_id: str,
    sku: str,
    item: CartItemUpdate,
    cart_service: CartService = Depends(deps.get_cart_service),
):
    """
    Fija la cantidad de una línea del carrito. Cantidad 0 elimina la línea.
    """
    return await cart_service.update_item_quantity(session_id, sku, item.quantity)


@router.delete("/{session_id}/items/{sku}", response_model=Cart)
async def remove_item_from_cart(
    session_id: str,
    sku: str,
    cart_service: CartService = Depends(deps.get_cart_service),
):
    """
    Elimina un producto del carrito. Si no estaba, devuelve el carrito sin cambios.
    """
    return await cart_service.remove_item(session_id, sku)


@router.delete("/{session_id}", response_model=CartClearResponse)
async def clear_cart(
    session_id: str,
    cart_service: CartService = Depends(deps.get_cart_service),
):
    """
    Vacía completamente el carrito de una sesión.
    """
    await cart_service.clear(session_id)
    return CartClearResponse(message="Cart cleared successfully", session_id=session_id)
