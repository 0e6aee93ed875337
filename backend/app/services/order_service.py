# backend/app/services/order_service.py
"""
Servicio de pedidos.

Calcula los totales (impuesto del 13%, envío de 15.00 por debajo de 100),
genera el número de pedido ORD-AAAAMMDD-HHMMSS-NNN y mantiene la línea de
tiempo del pedido según sus cambios de estado.
"""

import logging
from datetime import datetime, timezone, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Dict, Any, Tuple

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError, InvalidOperationError, ConflictError
from app.crud import order_crud, customer_crud
from app.db.models.order_model import Order, OrderItem
from app.schemas import order_schema
from app.schemas.common_schema import BulkOperationResponse, FieldError

logger = logging.getLogger(__name__)

MONEY_PRECISION = Decimal("0.01")
ORDER_NUMBER_MIN_LENGTH = 3
ORDER_NUMBER_MAX_LENGTH = 100
CANCELLABLE_STATUSES = ("pending", "processing")
ORDER_NUMBER_ATTEMPTS = 50


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def generate_order_number(now: datetime = None) -> str:
    """Número de pedido con el formato ORD-AAAAMMDD-HHMMSS-mmm (milisegundos)."""
    now = now or datetime.now(timezone.utc)
    return f"ORD-{now.strftime('%Y%m%d-%H%M%S')}-{now.microsecond // 1000:03d}"


def validate_order_number(order_number: str, field: str = "order_number") -> str:
    if not order_number or not isinstance(order_number, str):
        raise InvalidOperationError("Order number is required", field=field, code="missing_order_number")
    if not ORDER_NUMBER_MIN_LENGTH <= len(order_number) <= ORDER_NUMBER_MAX_LENGTH:
        raise InvalidOperationError(
            f"Order number must be between {ORDER_NUMBER_MIN_LENGTH} and {ORDER_NUMBER_MAX_LENGTH} characters",
            field=field,
            code="invalid_order_number",
        )
    return order_number


def calculate_totals(items: List[order_schema.OrderItemCreate], discount: float = 0.0) -> Dict[str, Decimal]:
    """
    Totales del pedido.

    grand_total = subtotal + impuesto + envío - descuento.
    """
    subtotal = sum((_money(item.unit_price) * item.quantity for item in items), Decimal("0.00"))
    tax = (subtotal * Decimal(str(settings.ORDER_TAX_RATE))).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)
    if subtotal >= _money(settings.ORDER_FREE_SHIPPING_THRESHOLD):
        shipping = Decimal("0.00")
    else:
        shipping = _money(settings.ORDER_SHIPPING_FLAT_RATE)
    discount = _money(discount)
    return {
        "subtotal": subtotal,
        "tax": tax,
        "shipping_cost": shipping,
        "discount": discount,
        "grand_total": subtotal + tax + shipping - discount,
    }


def apply_status_to_timeline(timeline: Dict[str, Any], status: str, now: datetime = None) -> Dict[str, Any]:
    """
    Sella en la línea de tiempo la fecha correspondiente al nuevo estado.

    Las fechas ya fijadas no se sobrescriben; la entrega estimada se
    recalcula en cada envío.
    """
    now = now or datetime.now(timezone.utc)
    updated = dict(timeline or {})
    stamp = {
        "processing": "paid_at",
        "shipped": "shipped_at",
        "delivered": "delivered_at",
        "cancelled": "cancelled_at",
    }.get(status)
    if stamp and not updated.get(stamp):
        updated[stamp] = now.isoformat()
    if status == "shipped":
        updated["estimated_delivery"] = (now + timedelta(days=settings.ORDER_ESTIMATED_DELIVERY_DAYS)).isoformat()
    return updated


class OrderService:
    """
    Operaciones de negocio sobre pedidos.
    """

    async def get_order(self, db: AsyncSession, order_number: str) -> Order:
        validate_order_number(order_number)
        order = await order_crud.get_order_by_number(db, order_number)
        if not order:
            raise NotFoundError(f"Order '{order_number}' not found", field="order_number")
        return order

    async def list_orders(self, db: AsyncSession, **filters) -> List[Order]:
        return await order_crud.get_orders(db, **filters)

    # ========================================
    # CREACIÓN
    # ========================================

    async def _free_order_number(self, db: AsyncSession, now: datetime) -> str:
        """
        Primer número libre a partir de now, avanzando de milisegundo en
        milisegundo si ya existe un pedido con ese número.
        """
        for offset in range(ORDER_NUMBER_ATTEMPTS):
            candidate = generate_order_number(now + timedelta(milliseconds=offset))
            if not await order_crud.get_order_by_number(db, candidate):
                return candidate
        raise ConflictError("Could not allocate an order number, please retry", field="order_number", code="duplicate_order")

    async def _create_one(self, db: AsyncSession, order_in: order_schema.OrderCreate) -> Order:
        customer = await customer_crud.get_customer_by_email(db, order_in.customer_email)
        if not customer:
            raise NotFoundError(f"Customer with email '{order_in.customer_email}' not found", field="customer_email")
        if customer.id != order_in.customer_id:
            raise InvalidOperationError(
                "customer_id does not match the customer registered with that email",
                field="customer_id",
                code="customer_mismatch",
            )

        totals = calculate_totals(order_in.items, order_in.discount)
        if totals["grand_total"] < 0:
            raise InvalidOperationError("Discount cannot exceed the order total", field="discount", code="invalid_discount")

        now = datetime.now(timezone.utc)
        order = Order(
            order_number=await self._free_order_number(db, now),
            customer_id=customer.id,
            customer_email=customer.email,
            status="pending",
            shipping_address=order_in.shipping_address.model_dump(),
            billing_address=order_in.billing_address.model_dump() if order_in.billing_address else None,
            payment=order_in.payment.model_dump(),
            timeline={"ordered_at": now.isoformat()},
            notes=order_in.notes,
            items=[
                OrderItem(
                    product_id=item.product_id,
                    sku=item.sku,
                    name=item.name,
                    quantity=item.quantity,
                    unit_price=_money(item.unit_price),
                    subtotal=_money(item.unit_price) * item.quantity,
                )
                for item in order_in.items
            ],
            **totals,
        )

        try:
            created = await order_crud.create_order(db, order)
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError("Order number collision, please retry", field="order_number", code="duplicate_order") from e

        await customer_crud.record_order(db, customer, totals["grand_total"])
        logger.info(f"🧾 PEDIDO: Creado '{created.order_number}' para '{customer.email}' (total {totals['grand_total']})")
        return created

    async def create_orders(
        self, db: AsyncSession, orders_in: List[order_schema.OrderCreate]
    ) -> Tuple[List[Order], List[order_schema.FailedOrder]]:
        """
        Crea un lote de pedidos. Los fallos se devuelven por elemento y no
        impiden crear el resto.
        """
        if not orders_in:
            raise InvalidOperationError("At least one order is required", field="orders", code="empty_request")

        created: List[Order] = []
        failed: List[order_schema.FailedOrder] = []
        for index, order_in in enumerate(orders_in):
            try:
                created.append(await self._create_one(db, order_in))
            except (NotFoundError, InvalidOperationError, ConflictError) as e:
                failed.append(order_schema.FailedOrder(
                    index=index, customer_email=order_in.customer_email, message=e.message, code=e.code
                ))
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"❌ ERROR: Fallo de base de datos creando el pedido {index}: {e}")
                failed.append(order_schema.FailedOrder(
                    index=index, customer_email=order_in.customer_email, message="Failed to create order", code="store_error"
                ))
        return created, failed

    # ========================================
    # EDICIÓN
    # ========================================

    def _parse_patch(self, payload: Dict[str, Any], field_prefix: str = "") -> order_schema.OrderPatch:
        try:
            patch, stripped = order_schema.OrderPatch.from_payload(payload)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise InvalidOperationError(first.get("msg", "Invalid field"), field=f"{field_prefix}{location}", code="validation_error") from e
        if stripped:
            logger.info(f"✂️ PEDIDO: Campos no editables descartados: {stripped}")
        if not patch.changes():
            raise InvalidOperationError("No valid fields to update", field=field_prefix or None, code="no_valid_fields")
        return patch

    def _build_changes(self, order: Order, patch: order_schema.OrderPatch) -> Dict[str, Any]:
        changes = patch.changes()
        new_status = changes.get("status")
        if new_status and new_status != order.status:
            if new_status == "cancelled" and order.status not in CANCELLABLE_STATUSES:
                raise InvalidOperationError(
                    f"Order in status '{order.status}' cannot be cancelled", field="status", code="invalid_status_transition"
                )
            changes["timeline"] = apply_status_to_timeline(order.timeline, new_status)

        if "discount" in changes:
            items = [
                order_schema.OrderItemCreate(
                    product_id=i.product_id, sku=i.sku, name=i.name, quantity=i.quantity, unit_price=float(i.unit_price)
                )
                for i in order.items
            ]
            totals = calculate_totals(items, changes["discount"])
            if totals["grand_total"] < 0:
                raise InvalidOperationError("Discount cannot exceed the order total", field="discount", code="invalid_discount")
            changes.update(totals)
        return changes

    async def update_order(self, db: AsyncSession, order_number: str, payload: Dict[str, Any]) -> Order:
        patch = self._parse_patch(payload)
        order = await self.get_order(db, order_number)
        changes = self._build_changes(order, patch)
        updated = await order_crud.update_order_fields(db, order_number, changes)
        if not updated:
            raise NotFoundError(f"Order '{order_number}' not found", field="order_number")
        logger.info(f"🔄 PEDIDO: Actualizado '{order_number}' ({sorted(patch.changes())})")
        return updated

    async def bulk_update(self, db: AsyncSession, items: List[Dict[str, Any]]) -> BulkOperationResponse:
        if not items:
            raise InvalidOperationError("At least one order is required", field="orders", code="empty_request")
        errors: List[FieldError] = []
        success = 0
        for index, item in enumerate(items):
            field = f"[{index}].order_number"
            try:
                if not isinstance(item, dict):
                    raise InvalidOperationError("Each item must be an object", field=f"[{index}]", code="invalid_item")
                order_number = validate_order_number(item.get("order_number"), field=field)
                patch = self._parse_patch(item, field_prefix=f"[{index}].")
                order = await order_crud.get_order_by_number(db, order_number)
                if not order:
                    raise NotFoundError(f"Order '{order_number}' not found", field=field)
                await order_crud.update_order_fields(db, order_number, self._build_changes(order, patch))
                success += 1
            except (InvalidOperationError, NotFoundError) as e:
                errors.append(FieldError(field=e.field or field, message=e.message, code=e.code))
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"❌ ERROR: Fallo de base de datos en edición masiva de pedidos, elemento {index}: {e}")
                errors.append(FieldError(field=field, message="Failed to update order", code="store_error"))
        return BulkOperationResponse(
            message=f"Updated {success} of {len(items)} orders",
            success_count=success, total_requested=len(items), errors=errors, error_count=len(errors),
        )

    # ========================================
    # BORRADO
    # ========================================

    async def delete_order(self, db: AsyncSession, order_number: str) -> Order:
        validate_order_number(order_number)
        deleted = await order_crud.delete_order_by_number(db, order_number)
        if not deleted:
            raise NotFoundError(f"Order '{order_number}' not found", field="order_number")
        logger.info(f"🗑️ PEDIDO: Eliminado '{order_number}'")
        return deleted

    async def bulk_delete(self, db: AsyncSession, items: List[Dict[str, Any]]) -> BulkOperationResponse:
        if not items:
            raise InvalidOperationError("At least one order is required", field="orders", code="empty_request")
        errors: List[FieldError] = []
        success = 0
        for index, item in enumerate(items):
            field = f"[{index}].order_number"
            try:
                if not isinstance(item, dict):
                    raise InvalidOperationError("Each item must be an object", field=f"[{index}]", code="invalid_item")
                order_number = validate_order_number(item.get("order_number"), field=field)
                if not await order_crud.delete_order_by_number(db, order_number):
                    raise NotFoundError(f"Order '{order_number}' not found", field=field)
                success += 1
            except (InvalidOperationError, NotFoundError) as e:
                errors.append(FieldError(field=e.field or field, message=e.message, code=e.code))
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"❌ ERROR: Fallo de base de datos en borrado masivo de pedidos, elemento {index}: {e}")
                errors.append(FieldError(field=field, message="Failed to delete order", code="store_error"))
        return BulkOperationResponse(
            message=f"Deleted {success} of {len(items)} orders",
            success_count=success, total_requested=len(items), errors=errors, error_count=len(errors),
        )


order_service = OrderService()
