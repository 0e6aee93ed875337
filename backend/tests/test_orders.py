"""
Tests for order totals, timeline stamping and the order service
"""

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from app.core.exceptions import InvalidOperationError
from app.schemas.order_schema import OrderItemCreate, OrderCreate
from app.services.order_service import (
    calculate_totals, apply_status_to_timeline, generate_order_number, validate_order_number, order_service,
)

NOW = datetime(2024, 3, 1, 10, 30, 15, tzinfo=timezone.utc)


def item(quantity, unit_price, sku="SKU-001"):
    return OrderItemCreate(product_id="prod-1", sku=sku, name="Drill", quantity=quantity, unit_price=unit_price)


def order_payload(**overrides):
    data = dict(
        customer_id="cust-1",
        customer_email="ana@example.com",
        items=[item(2, 30.0)],
        shipping_address={"street": "1 Main St", "city": "Toronto", "province": "ON", "postal_code": "M5V 2T6"},
        payment={"method": "credit_card"},
    )
    data.update(overrides)
    return OrderCreate(**data)


class TestOrderTotals:

    def test_totals_below_free_shipping(self):
        totals = calculate_totals([item(2, 30.0)])

        assert totals["subtotal"] == Decimal("60.00")
        assert totals["tax"] == Decimal("7.80")
        assert totals["shipping_cost"] == Decimal("15.00")
        assert totals["grand_total"] == Decimal("82.80")

    def test_free_shipping_from_threshold(self):
        totals = calculate_totals([item(1, 100.0)])

        assert totals["shipping_cost"] == Decimal("0.00")
        assert totals["grand_total"] == Decimal("113.00")

    def test_discount_is_subtracted(self):
        totals = calculate_totals([item(1, 100.0)], discount=13.0)

        assert totals["discount"] == Decimal("13.00")
        assert totals["grand_total"] == Decimal("100.00")


class TestOrderNumbers:

    def test_format_uses_milliseconds(self):
        assert generate_order_number(NOW) == "ORD-20240301-103015-000"
        assert generate_order_number(NOW.replace(microsecond=123999)) == "ORD-20240301-103015-123"

    async def test_taken_number_moves_to_next_millisecond(self, mock_db):
        taken = SimpleNamespace(order_number="ORD-20240301-103015-000")
        lookup = AsyncMock(side_effect=[taken, None])
        with patch("app.services.order_service.order_crud.get_order_by_number", new=lookup):
            number = await order_service._free_order_number(mock_db, NOW)

        assert number == "ORD-20240301-103015-001"
        assert [c.args[1] for c in lookup.await_args_list] == ["ORD-20240301-103015-000", "ORD-20240301-103015-001"]

    @pytest.mark.parametrize("value", [None, "", "AB", "X" * 101])
    def test_invalid(self, value):
        with pytest.raises(InvalidOperationError):
            validate_order_number(value)


class TestTimeline:

    def test_processing_stamps_paid_at(self):
        timeline = apply_status_to_timeline({"ordered_at": "2024-02-28T00:00:00+00:00"}, "processing", NOW)

        assert timeline["paid_at"] == NOW.isoformat()
        assert timeline["ordered_at"] == "2024-02-28T00:00:00+00:00"

    def test_shipped_sets_estimated_delivery(self):
        timeline = apply_status_to_timeline({}, "shipped", NOW)

        assert timeline["shipped_at"] == NOW.isoformat()
        assert timeline["estimated_delivery"].startswith("2024-03-06")

    def test_existing_stamp_is_kept(self):
        timeline = apply_status_to_timeline({"paid_at": "2024-01-01T00:00:00+00:00"}, "processing", NOW)

        assert timeline["paid_at"] == "2024-01-01T00:00:00+00:00"

    def test_pending_stamps_nothing(self):
        assert apply_status_to_timeline({}, "pending", NOW) == {}


class TestOrderService:

    async def test_create_reports_unknown_customer_per_item(self, mock_db):
        with patch("app.services.order_service.customer_crud.get_customer_by_email", new=AsyncMock(return_value=None)):
            created, failed = await order_service.create_orders(mock_db, [order_payload()])

        assert created == []
        assert failed[0].index == 0
        assert failed[0].code == "not_found"

    async def test_create_rejects_customer_id_mismatch(self, mock_db):
        customer = SimpleNamespace(id="someone-else", email="ana@example.com")
        with patch("app.services.order_service.customer_crud.get_customer_by_email", new=AsyncMock(return_value=customer)):
            _, failed = await order_service.create_orders(mock_db, [order_payload()])

        assert failed[0].code == "customer_mismatch"

    async def test_create_rejects_discount_above_total(self, mock_db):
        customer = SimpleNamespace(id="cust-1", email="ana@example.com")
        with patch("app.services.order_service.customer_crud.get_customer_by_email", new=AsyncMock(return_value=customer)):
            _, failed = await order_service.create_orders(mock_db, [order_payload(discount=1000)])

        assert failed[0].code == "invalid_discount"

    async def test_create_empty_batch_is_rejected(self, mock_db):
        with pytest.raises(InvalidOperationError):
            await order_service.create_orders(mock_db, [])

    async def test_cancel_shipped_order_is_rejected(self, mock_db):
        order = SimpleNamespace(order_number="ORD-1", status="shipped", timeline={}, items=[])
        with patch("app.services.order_service.order_crud.get_order_by_number", new=AsyncMock(return_value=order)):
            with pytest.raises(InvalidOperationError) as exc_info:
                await order_service.update_order(mock_db, "ORD-1", {"status": "cancelled"})

        assert exc_info.value.code == "invalid_status_transition"

    async def test_status_change_updates_timeline(self, mock_db):
        order = SimpleNamespace(order_number="ORD-1", status="pending", timeline={"ordered_at": "x"}, items=[])
        with patch("app.services.order_service.order_crud.get_order_by_number", new=AsyncMock(return_value=order)), \
                patch("app.services.order_service.order_crud.update_order_fields", new=AsyncMock(return_value=order)) as update:
            await order_service.update_order(mock_db, "ORD-1", {"status": "processing", "order_number": "ignored"})

        changes = update.await_args.args[2]
        assert changes["status"] == "processing"
        assert "paid_at" in changes["timeline"]
        assert "order_number" not in changes

    async def test_bulk_delete_mixed_results(self, mock_db):
        async def delete_by_number(db, order_number):
            return SimpleNamespace(order_number=order_number) if order_number == "ORD-1" else None

        with patch("app.services.order_service.order_crud.delete_order_by_number", new=delete_by_number):
            result = await order_service.bulk_delete(mock_db, [{"order_number": "ORD-1"}, {"order_number": "ORD-2"}, {}])

        assert result.success_count == 1
        assert result.error_count == 2
        assert result.http_status() == 207

    async def test_null_status_is_a_validation_error(self, mock_db):
        with patch("app.services.order_service.order_crud.update_order_fields", new=AsyncMock()) as update:
            with pytest.raises(InvalidOperationError) as exc_info:
                await order_service.update_order(mock_db, "ORD-1", {"status": None})

        assert exc_info.value.code == "validation_error"
        assert exc_info.value.field == "status"
        update.assert_not_awaited()

    async def test_bulk_update_null_field_fails_only_that_item(self, mock_db):
        order = SimpleNamespace(order_number="ORD-2", status="pending", timeline={}, items=[])
        with patch("app.services.order_service.order_crud.get_order_by_number", new=AsyncMock(return_value=order)), \
                patch("app.services.order_service.order_crud.update_order_fields", new=AsyncMock(return_value=order)):
            result = await order_service.bulk_update(mock_db, [
                {"order_number": "ORD-1", "payment": None},
                {"order_number": "ORD-2", "notes": "Leave at the door"},
            ])

        assert result.success_count == 1
        assert result.errors[0].field == "[0].payment"
        assert result.errors[0].code == "validation_error"
        assert result.http_status() == 207
