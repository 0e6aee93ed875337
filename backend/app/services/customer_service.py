# backend/app/services/customer_service.py
"""
Servicio de clientes: alta con contraseña cifrada, edición, direcciones,
historial de pedidos paginado y segmentación por gasto.
"""

import base64
import hashlib
import hmac
import logging
import math
import secrets
from typing import List, Dict, Any, Tuple

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ConflictError, InvalidOperationError
from app.crud import customer_crud, order_crud
from app.db.models.customer_model import Customer
from app.schemas import customer_schema
from app.schemas.common_schema import Address

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 390000

# Límites inferiores de cada tramo de gasto y su etiqueta
SPENDING_SEGMENTS = [
    (0, 500, "New (0-500)"),
    (500, 2000, "Regular (500-2000)"),
    (2000, 5000, "Loyal (2000-5000)"),
    (5000, 10000, "VIP (5000-10000)"),
    (10000, 50000, "Premium (10000-50000)"),
    (50000, None, "Premium Plus (50000+)"),
]


# ========================================
# CONTRASEÑAS
# ========================================

def hash_password(password: str) -> str:
    """PBKDF2-SHA256 con sal aleatoria. Formato: pbkdf2_sha256$iteraciones$sal$hash."""
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return "pbkdf2_sha256${}${}${}".format(
        PBKDF2_ITERATIONS,
        base64.b64encode(salt).decode("ascii"),
        base64.b64encode(digest).decode("ascii"),
    )


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt_b64, digest_b64 = encoded.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), base64.b64decode(salt_b64), int(iterations)
    )
    return hmac.compare_digest(digest, base64.b64decode(digest_b64))


def loyalty_tier(points: int) -> str:
    if points >= 10000:
        return "Platinum"
    if points >= 5000:
        return "Gold"
    if points >= 1000:
        return "Silver"
    return "Bronze"


def spending_segment(total_spent: float) -> str:
    for _, upper, label in SPENDING_SEGMENTS:
        if upper is None or total_spent < upper:
            return label


def _normalize_addresses(addresses: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Garantiza exactamente una dirección por defecto (la primera si ninguna lo es)."""
    if not addresses:
        return addresses
    default_index = next((i for i, a in enumerate(addresses) if a.get("is_default")), 0)
    return [dict(a, is_default=(i == default_index)) for i, a in enumerate(addresses)]


class CustomerService:
    """
    Operaciones de negocio sobre clientes.
    """

    def to_response(self, customer: Customer) -> customer_schema.CustomerResponse:
        response = customer_schema.CustomerResponse.model_validate(customer)
        response.loyalty_tier = loyalty_tier(customer.loyalty_points or 0)
        return response

    async def list_customers(self, db: AsyncSession, skip: int = 0, limit: int = 100) -> List[Customer]:
        return await customer_crud.get_customers(db, skip=skip, limit=limit)

    async def get_customer(self, db: AsyncSession, customer_id: str) -> Customer:
        customer = await customer_crud.get_customer_by_id(db, customer_id)
        if not customer:
            raise NotFoundError(f"Customer '{customer_id}' not found", field="id")
        return customer

    async def create_customer(self, db: AsyncSession, customer_in: customer_schema.CustomerCreate) -> Customer:
        if await customer_crud.get_customer_by_email(db, customer_in.email):
            raise ConflictError(
                f"Customer with email '{customer_in.email}' already exists", field="email", code="duplicate_email"
            )

        customer = Customer(
            email=customer_in.email.lower(),
            password_hash=hash_password(customer_in.password),
            first_name=customer_in.first_name,
            last_name=customer_in.last_name,
            phone=customer_in.phone,
            addresses=_normalize_addresses([a.model_dump() for a in customer_in.addresses]),
            preferences=customer_in.preferences.model_dump(),
        )
        try:
            created = await customer_crud.create_customer(db, customer)
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError(
                f"Customer with email '{customer_in.email}' already exists", field="email", code="duplicate_email"
            ) from e
        logger.info(f"👤 CLIENTE: Alta de '{created.email}'")
        return created

    async def update_customer(self, db: AsyncSession, customer_id: str, payload: Dict[str, Any]) -> Customer:
        try:
            patch, stripped = customer_schema.CustomerPatch.from_payload(payload)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise InvalidOperationError(first.get("msg", "Invalid field"), field=location, code="validation_error") from e
        if stripped:
            logger.info(f"✂️ CLIENTE: Campos no editables descartados: {stripped}")
        changes = patch.changes()
        if not changes:
            raise InvalidOperationError("No valid fields to update", code="no_valid_fields")

        updated = await customer_crud.update_customer_fields(db, customer_id, changes)
        if not updated:
            raise NotFoundError(f"Customer '{customer_id}' not found", field="id")
        return updated

    async def delete_customer(self, db: AsyncSession, customer_id: str) -> Customer:
        try:
            deleted = await customer_crud.delete_customer(db, customer_id)
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError("Customer has orders and cannot be deleted", field="id", code="customer_has_orders") from e
        if not deleted:
            raise NotFoundError(f"Customer '{customer_id}' not found", field="id")
        logger.info(f"🗑️ CLIENTE: Eliminado '{customer_id}'")
        return deleted

    # ========================================
    # DIRECCIONES
    # ========================================

    async def add_address(self, db: AsyncSession, customer_id: str, address: Address) -> Customer:
        customer = await self.get_customer(db, customer_id)
        addresses = [dict(a) for a in customer.addresses or []]
        new_address = address.model_dump()
        if new_address["is_default"]:
            addresses = [dict(a, is_default=False) for a in addresses]
        addresses.append(new_address)
        return await customer_crud.update_customer_fields(db, customer_id, {"addresses": _normalize_addresses(addresses)})

    async def update_address(self, db: AsyncSession, customer_id: str, index: int, address: Address) -> Customer:
        customer = await self.get_customer(db, customer_id)
        addresses = [dict(a) for a in customer.addresses or []]
        if not 0 <= index < len(addresses):
            raise NotFoundError(f"Address index {index} not found", field="index", code="address_not_found")
        updated = address.model_dump()
        if updated["is_default"]:
            addresses = [dict(a, is_default=False) for a in addresses]
        elif addresses[index].get("is_default"):
            # No se puede quitar la marca de la única dirección por defecto
            updated["is_default"] = True
        addresses[index] = updated
        return await customer_crud.update_customer_fields(db, customer_id, {"addresses": _normalize_addresses(addresses)})

    async def delete_address(self, db: AsyncSession, customer_id: str, index: int) -> Customer:
        customer = await self.get_customer(db, customer_id)
        addresses = [dict(a) for a in customer.addresses or []]
        if not 0 <= index < len(addresses):
            raise NotFoundError(f"Address index {index} not found", field="index", code="address_not_found")
        if len(addresses) == 1:
            raise InvalidOperationError("Cannot delete the only address", field="index", code="last_address")
        removed = addresses.pop(index)
        if removed.get("is_default"):
            addresses[0]["is_default"] = True
        return await customer_crud.update_customer_fields(db, customer_id, {"addresses": _normalize_addresses(addresses)})

    # ========================================
    # PEDIDOS Y SEGMENTOS
    # ========================================

    async def get_customer_orders(
        self, db: AsyncSession, customer_id: str, page: int = 1, limit: int = 10
    ) -> Tuple[list, customer_schema.Pagination, customer_schema.OrdersSummary]:
        await self.get_customer(db, customer_id)
        total = await order_crud.count_orders_by_customer(db, customer_id)
        orders = await order_crud.get_orders(db, skip=(page - 1) * limit, limit=limit, customer_id=customer_id)
        spent = await order_crud.get_customer_spending(db, customer_id)
        pagination = customer_schema.Pagination(
            page=page, limit=limit, total=total, pages=math.ceil(total / limit) if total else 0
        )
        summary = customer_schema.OrdersSummary(total_orders=total, total_spent=round(spent, 2))
        return orders, pagination, summary

    async def get_spending_segments(self, db: AsyncSession) -> customer_schema.CustomerSegmentsResponse:
        """Agrupa a los clientes por total gastado en tramos fijos."""
        customers = await customer_crud.get_all_customers(db)
        buckets: Dict[str, List[Customer]] = {}
        for customer in customers:
            buckets.setdefault(spending_segment(float(customer.total_spent or 0)), []).append(customer)

        segments = []
        for _, _, label in SPENDING_SEGMENTS:
            members = buckets.get(label)
            if not members:
                continue
            spent = [float(c.total_spent or 0) for c in members]
            segments.append(customer_schema.CustomerSegment(
                segment=label,
                min_spent=round(min(spent), 2),
                max_spent=round(max(spent), 2),
                customer_count=len(members),
                avg_orders=round(sum(c.total_orders or 0 for c in members) / len(members), 2),
                total_spent=round(sum(spent), 2),
                avg_spent_per_customer=round(sum(spent) / len(members), 2),
            ))
        return customer_schema.CustomerSegmentsResponse(segments=segments, total_customers=len(customers))


customer_service = CustomerService()
