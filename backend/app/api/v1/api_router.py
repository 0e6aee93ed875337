# backend/app/api/v1/api_router.py
"""
Este archivo contiene el router principal para la API versión 1.

Se encarga de registrar y configurar todos los routers de la versión 1 de la API.
"""

from fastapi import APIRouter

# Importación de routers especializados por dominio de negocio
from app.api.v1.endpoints import (
    products,
    cart,
    orders,
    customers,
    reviews,
    search,
    analytics,
)

# ========================================
# CONFIGURACIÓN DEL ROUTER PRINCIPAL V1
# ========================================

api_router_v1 = APIRouter()

# ========================================
# REGISTRO DE ROUTERS POR DOMINIO DE NEGOCIO
# ========================================

# ROUTER DE PRODUCTOS
# Catálogo con caché en Redis, operaciones masivas e inventario
api_router_v1.include_router(
    products.router,
    prefix="/products",
    tags=["Products"]
)

# ROUTER DEL CARRITO
# Carrito de compras por sesión, solo en Redis
api_router_v1.include_router(
    cart.router,
    prefix="/cart",
    tags=["Cart"]
)

# ROUTER DE PEDIDOS
api_router_v1.include_router(
    orders.router,
    prefix="/orders",
    tags=["Orders"]
)

# ROUTER DE CLIENTES
api_router_v1.include_router(
    customers.router,
    prefix="/customers",
    tags=["Customers"]
)

# ROUTER DE RESEÑAS
api_router_v1.include_router(
    reviews.router,
    prefix="/reviews",
    tags=["Reviews"]
)

# ROUTER DE BÚSQUEDA GLOBAL
api_router_v1.include_router(
    search.router,
    prefix="/search",
    tags=["Search"]
)

# ROUTER DE ANALÍTICAS E INFORMES CON IA
api_router_v1.include_router(
    analytics.router,
    prefix="/analytics",
    tags=["Analytics"]
)
