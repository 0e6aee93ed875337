# backend/app/services/cart_service.py
"""
Servicio de Carrito de Compras para la aplicación.

El carrito vive únicamente en Redis, con TTL deslizante:

- cart:{session_id}             hash con los totales del carrito
- cart:{session_id}:item:{sku}  un hash por línea del carrito

El session_id no puede contener ":" para que las claves de dos sesiones no se
solapen.

Cada mutación lee el carrito completo, lo modifica, recalcula los totales y lo
guarda en una única transacción. Dos mutaciones simultáneas sobre la misma
sesión pueden pisarse (gana la última escritura); es una limitación conocida.
"""
import logging
from datetime import datetime, timezone, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.core.config import Settings
from app.core.exceptions import ItemNotFoundError, InvalidOperationError, StoreError
from app.schemas.cart_schema import Cart, CartItem
from app.schemas.product_schema import ProductResponse

logger = logging.getLogger(__name__)

MONEY_PRECISION = Decimal("0.01")

_GLOB_SPECIAL = "\\*?[]"


def to_money(value) -> Decimal:
    """Convierte a Decimal redondeado a céntimos (ROUND_HALF_UP)."""
    return Decimal(str(value)).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def _escape_glob(value: str) -> str:
    return "".join(f"\\{ch}" if ch in _GLOB_SPECIAL else ch for ch in value)


def _rfc3339(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class CartService:
    """
    Servicio para gestionar el carrito de compras de una sesión en Redis.

    Cada mutación lee el carrito, lo modifica y lo guarda en un pipeline.
    Dos peticiones simultáneas sobre la misma sesión pueden pisarse: gana
    la última escritura.
    """
    def __init__(self, redis: Redis, settings: Settings):
        self.redis = redis
        self.settings = settings
        self.ttl_seconds = settings.CART_TTL_SECONDS
        self.tax_rate = Decimal(str(settings.CART_TAX_RATE))
        self.free_shipping_threshold = to_money(settings.CART_FREE_SHIPPING_THRESHOLD)
        self.shipping_flat_rate = to_money(settings.CART_SHIPPING_FLAT_RATE)

    def _check_session_id(self, session_id: str) -> None:
        # ":" separa los segmentos de la clave
        if not session_id or ":" in session_id:
            raise InvalidOperationError(
                "session_id must be non-empty and cannot contain ':'", field="session_id", code="invalid_session_id"
            )

    def _get_cart_key(self, session_id: str) -> str:
        return f"cart:{session_id}"

    def _get_item_key(self, session_id: str, sku: str) -> str:
        return f"cart:{session_id}:item:{sku}"

    def _get_item_pattern(self, session_id: str) -> str:
        return f"cart:{_escape_glob(session_id)}:item:*"

    def _empty_cart(self, session_id: str) -> Cart:
        now = datetime.now(timezone.utc)
        return Cart(
            session_id=session_id,
            items={},
            last_updated=_rfc3339(now),
            expires_at=_rfc3339(now + timedelta(seconds=self.ttl_seconds)),
        )

    # ========================================
    # TOTALES
    # ========================================

    def recalculate(self, cart: Cart) -> Cart:
        """
        Recalcula los totales a partir de las líneas.

        subtotal = suma de subtotales, tax = 10% redondeado a céntimos,
        envío gratuito a partir del umbral (incluido) y también con subtotal 0.
        """
        subtotal = sum((to_money(item.subtotal) for item in cart.items.values()), Decimal("0.00"))
        tax = (subtotal * self.tax_rate).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)
        if Decimal("0") < subtotal < self.free_shipping_threshold:
            shipping = self.shipping_flat_rate
        else:
            shipping = Decimal("0.00")

        cart.subtotal = float(subtotal)
        cart.tax = float(tax)
        cart.shipping = float(shipping)
        cart.total = float(subtotal + tax + shipping)
        cart.item_count = sum(item.quantity for item in cart.items.values())
        return cart

    def _touch(self, cart: Cart) -> None:
        now = datetime.now(timezone.utc)
        cart.last_updated = _rfc3339(now)
        cart.expires_at = _rfc3339(now + timedelta(seconds=self.ttl_seconds))

    # ========================================
    # LECTURA
    # ========================================

    async def get_cart(self, session_id: str) -> Cart:
        """
        Obtiene el carrito de una sesión.

        Si no existe (nunca creado o expirado) devuelve un carrito vacío sin
        escribir nada en Redis.
        """
        self._check_session_id(session_id)
        try:
            metadata = await self.redis.hgetall(self._get_cart_key(session_id))
            if not metadata:
                return self._empty_cart(session_id)

            items = {}
            async for key in self.redis.scan_iter(match=self._get_item_pattern(session_id), count=100):
                data = await self.redis.hgetall(key)
                if not data:
                    # Expiró entre el SCAN y la lectura
                    continue
                item = CartItem(
                    product_id=data.get("product_id", ""),
                    sku=data["sku"],
                    product_name=data.get("product_name", ""),
                    price=float(data.get("price", 0)),
                    quantity=int(data.get("quantity", 0)),
                    subtotal=float(data.get("subtotal", 0)),
                    added_at=data.get("added_at", ""),
                )
                items[item.sku] = item
        except RedisError as e:
            logger.error(f"❌ CARRITO: Error leyendo el carrito '{session_id}': {e}")
            raise StoreError("cart storage unavailable", code="cart_unavailable") from e

        return Cart(
            session_id=session_id,
            items=items,
            subtotal=float(metadata.get("subtotal", 0)),
            tax=float(metadata.get("tax", 0)),
            shipping=float(metadata.get("shipping", 0)),
            total=float(metadata.get("total", 0)),
            item_count=int(metadata.get("item_count", 0)),
            last_updated=metadata.get("last_updated", ""),
            expires_at=metadata.get("expires_at", ""),
        )

    # ========================================
    # MUTACIONES
    # ========================================

    async def add_item(self, session_id: str, sku: str, quantity: int, product: ProductResponse) -> Cart:
        """
        Añade unidades de un producto al carrito.

        Si el SKU ya está, suma la cantidad y conserva el precio con el que se
        añadió. Si es nuevo, toma el precio actual del producto. La comprobación
        de stock es responsabilidad del llamador.
        """
        if quantity < 1:
            raise InvalidOperationError("quantity must be at least 1", field="quantity", code="invalid_quantity")

        cart = await self.get_cart(session_id)
        existing = cart.items.get(sku)
        if existing:
            existing.quantity += quantity
            existing.subtotal = float(to_money(existing.price) * existing.quantity)
        else:
            price = to_money(product.price)
            cart.items[sku] = CartItem(
                product_id=product.id,
                sku=sku,
                product_name=product.name,
                price=float(price),
                quantity=quantity,
                subtotal=float(price * quantity),
                added_at=_rfc3339(datetime.now(timezone.utc)),
            )

        self._touch(cart)
        self.recalculate(cart)
        await self._save(cart)
        logger.info(f"🛒 CARRITO: +{quantity} x '{sku}' en sesión '{session_id}' (total {cart.total:.2f})")
        return cart

    async def update_item_quantity(self, session_id: str, sku: str, quantity: int) -> Cart:
        """
        Fija la cantidad de una línea. 0 la elimina.

        Lanza ItemNotFoundError si el SKU no está en el carrito.
        """
        if quantity < 0:
            raise InvalidOperationError("quantity must be zero or greater", field="quantity", code="invalid_quantity")

        cart = await self.get_cart(session_id)
        if sku not in cart.items:
            raise ItemNotFoundError(sku)
        return await self._apply_quantity(cart, sku, quantity)

    async def remove_item(self, session_id: str, sku: str) -> Cart:
        """
        Elimina una línea del carrito.

        Es idempotente: si el SKU no está, devuelve el carrito sin cambios.
        """
        cart = await self.get_cart(session_id)
        if sku not in cart.items:
            logger.debug(f"🛒 CARRITO: '{sku}' no está en la sesión '{session_id}', nada que eliminar")
            return cart
        return await self._apply_quantity(cart, sku, 0)

    async def clear(self, session_id: str) -> None:
        """Borra los totales y todas las líneas de la sesión. Idempotente."""
        self._check_session_id(session_id)
        try:
            keys = [self._get_cart_key(session_id)]
            async for key in self.redis.scan_iter(match=self._get_item_pattern(session_id), count=100):
                keys.append(key)
            await self.redis.delete(*keys)
        except RedisError as e:
            logger.error(f"❌ CARRITO: Error vaciando el carrito '{session_id}': {e}")
            raise StoreError("cart storage unavailable", code="cart_unavailable") from e
        logger.info(f"🧹 CARRITO: Sesión '{session_id}' vaciada ({len(keys) - 1} líneas)")

    async def _apply_quantity(self, cart: Cart, sku: str, quantity: int) -> Cart:
        removed: List[str] = []
        if quantity == 0:
            del cart.items[sku]
            removed.append(sku)
        else:
            item = cart.items[sku]
            item.quantity = quantity
            item.subtotal = float(to_money(item.price) * quantity)

        self._touch(cart)
        self.recalculate(cart)
        await self._save(cart, removed_skus=removed)
        logger.info(f"🛒 CARRITO: '{sku}' -> {quantity} en sesión '{cart.session_id}' (total {cart.total:.2f})")
        return cart

    async def _save(self, cart: Cart, removed_skus: Optional[List[str]] = None) -> None:
        """Guarda totales y líneas en una única transacción y renueva todos los TTL."""
        session_id = cart.session_id
        cart_key = self._get_cart_key(session_id)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                for sku in removed_skus or []:
                    pipe.delete(self._get_item_key(session_id, sku))

                pipe.hset(cart_key, mapping={
                    "subtotal": f"{cart.subtotal:.2f}",
                    "tax": f"{cart.tax:.2f}",
                    "shipping": f"{cart.shipping:.2f}",
                    "total": f"{cart.total:.2f}",
                    "item_count": str(cart.item_count),
                    "last_updated": cart.last_updated,
                    "expires_at": cart.expires_at,
                })
                pipe.expire(cart_key, self.ttl_seconds)

                for item in cart.items.values():
                    item_key = self._get_item_key(session_id, item.sku)
                    pipe.hset(item_key, mapping={
                        "product_id": item.product_id,
                        "sku": item.sku,
                        "product_name": item.product_name,
                        "price": f"{item.price:.2f}",
                        "quantity": str(item.quantity),
                        "subtotal": f"{item.subtotal:.2f}",
                        "added_at": item.added_at,
                    })
                    pipe.expire(item_key, self.ttl_seconds)
                await pipe.execute()
        except RedisError as e:
            logger.error(f"❌ CARRITO: Error guardando el carrito '{session_id}': {e}")
            raise StoreError("cart storage unavailable", code="cart_unavailable") from e
