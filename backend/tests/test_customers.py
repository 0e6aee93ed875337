"""
Tests for customer helpers and the customer service
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from app.core.exceptions import ConflictError, InvalidOperationError, NotFoundError
from app.schemas.common_schema import Address
from app.services.customer_service import (
    hash_password, verify_password, loyalty_tier, spending_segment, customer_service,
)

CRUD = "app.services.customer_service.customer_crud"


def address(street, is_default=False):
    return {"street": street, "city": "Toronto", "province": "ON", "postal_code": "M5V 2T6",
            "country": "Canada", "is_default": is_default}


class TestPasswords:

    def test_hash_round_trip(self):
        encoded = hash_password("s3cret-pass")

        assert encoded.startswith("pbkdf2_sha256$")
        assert "s3cret-pass" not in encoded
        assert verify_password("s3cret-pass", encoded) is True
        assert verify_password("wrong-pass", encoded) is False

    def test_hashes_are_salted(self):
        assert hash_password("same-password") != hash_password("same-password")

    def test_malformed_hash_does_not_verify(self):
        assert verify_password("anything", "not-a-hash") is False


class TestTiersAndSegments:

    @pytest.mark.parametrize("points,tier", [(0, "Bronze"), (999, "Bronze"), (1000, "Silver"), (5000, "Gold"), (10000, "Platinum")])
    def test_loyalty_tier(self, points, tier):
        assert loyalty_tier(points) == tier

    @pytest.mark.parametrize("spent,label", [
        (0, "New (0-500)"),
        (499.99, "New (0-500)"),
        (500, "Regular (500-2000)"),
        (4999, "Loyal (2000-5000)"),
        (12000, "Premium (10000-50000)"),
        (75000, "Premium Plus (50000+)"),
    ])
    def test_spending_segment(self, spent, label):
        assert spending_segment(spent) == label

    async def test_segments_summary(self, mock_db):
        customers = [
            SimpleNamespace(total_spent=100, total_orders=1),
            SimpleNamespace(total_spent=300, total_orders=3),
            SimpleNamespace(total_spent=6000, total_orders=10),
        ]
        with patch(f"{CRUD}.get_all_customers", new=AsyncMock(return_value=customers)):
            result = await customer_service.get_spending_segments(mock_db)

        assert result.total_customers == 3
        new, vip = result.segments
        assert new.segment == "New (0-500)"
        assert new.customer_count == 2
        assert new.avg_spent_per_customer == 200.0
        assert new.min_spent == 100.0
        assert new.max_spent == 300.0
        assert vip.segment == "VIP (5000-10000)"


class TestCustomerService:

    async def test_duplicate_email_is_conflict(self, mock_db):
        from app.schemas.customer_schema import CustomerCreate

        customer_in = CustomerCreate(email="ana@example.com", password="password123", first_name="Ana", last_name="Ruiz")
        with patch(f"{CRUD}.get_customer_by_email", new=AsyncMock(return_value=SimpleNamespace(id="c1"))):
            with pytest.raises(ConflictError) as exc_info:
                await customer_service.create_customer(mock_db, customer_in)

        assert exc_info.value.code == "duplicate_email"

    async def test_update_strips_protected_fields(self, mock_db):
        updated = SimpleNamespace(id="c1")
        with patch(f"{CRUD}.update_customer_fields", new=AsyncMock(return_value=updated)) as update:
            await customer_service.update_customer(
                mock_db, "c1", {"first_name": "Ana", "email": "x@example.com", "password": "nope", "total_spent": 1}
            )

        assert update.await_args.args[2] == {"first_name": "Ana"}

    async def test_cannot_delete_last_address(self, mock_db):
        customer = SimpleNamespace(id="c1", addresses=[address("1 Main St", True)])
        with patch(f"{CRUD}.get_customer_by_id", new=AsyncMock(return_value=customer)):
            with pytest.raises(InvalidOperationError) as exc_info:
                await customer_service.delete_address(mock_db, "c1", 0)

        assert exc_info.value.code == "last_address"

    async def test_deleting_default_promotes_first_remaining(self, mock_db):
        customer = SimpleNamespace(id="c1", addresses=[address("1 Main St", True), address("2 King St")])
        with patch(f"{CRUD}.get_customer_by_id", new=AsyncMock(return_value=customer)), \
                patch(f"{CRUD}.update_customer_fields", new=AsyncMock(return_value=customer)) as update:
            await customer_service.delete_address(mock_db, "c1", 0)

        addresses = update.await_args.args[2]["addresses"]
        assert [a["street"] for a in addresses] == ["2 King St"]
        assert addresses[0]["is_default"] is True

    async def test_new_default_address_clears_previous_default(self, mock_db):
        customer = SimpleNamespace(id="c1", addresses=[address("1 Main St", True)])
        with patch(f"{CRUD}.get_customer_by_id", new=AsyncMock(return_value=customer)), \
                patch(f"{CRUD}.update_customer_fields", new=AsyncMock(return_value=customer)) as update:
            await customer_service.add_address(mock_db, "c1", Address(**address("2 King St", True)))

        addresses = update.await_args.args[2]["addresses"]
        assert [a["is_default"] for a in addresses] == [False, True]

    async def test_unknown_address_index(self, mock_db):
        customer = SimpleNamespace(id="c1", addresses=[address("1 Main St", True)])
        with patch(f"{CRUD}.get_customer_by_id", new=AsyncMock(return_value=customer)):
            with pytest.raises(NotFoundError):
                await customer_service.update_address(mock_db, "c1", 3, Address(**address("9 Queen St")))

    @pytest.mark.parametrize("field", ["first_name", "preferences", "account_status", "email_verified"])
    async def test_null_on_required_field_is_rejected(self, mock_db, field):
        with patch(f"{CRUD}.update_customer_fields", new=AsyncMock()) as update:
            with pytest.raises(InvalidOperationError) as exc_info:
                await customer_service.update_customer(mock_db, "c1", {field: None})

        assert exc_info.value.code == "validation_error"
        assert exc_info.value.field == field
        update.assert_not_awaited()

    async def test_null_phone_clears_it(self, mock_db):
        with patch(f"{CRUD}.update_customer_fields", new=AsyncMock(return_value=SimpleNamespace(id="c1"))) as update:
            await customer_service.update_customer(mock_db, "c1", {"phone": None})

        assert update.await_args.args[2] == {"phone": None}
