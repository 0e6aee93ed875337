"""
Tests for the product service (cache-aside policy)
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import NotFoundError, InvalidOperationError
from app.schemas.product_schema import ProductCreate
from app.services.product_service import (
    validate_sku, generate_sku, CACHE_HIT, CACHE_MISS, CACHE_REFRESHED, CACHE_DELETED,
)
from factories import make_product, make_product_row

CRUD = "app.services.product_service.product_crud"


class TestSkuHelpers:

    @pytest.mark.parametrize("sku", ["ABC", "A" * 50, "ACM-TOO-1700000000-AB12"])
    def test_valid_skus(self, sku):
        assert validate_sku(sku) == sku

    @pytest.mark.parametrize("sku,code", [(None, "missing_sku"), ("", "missing_sku"), ("AB", "invalid_sku"), ("A" * 51, "invalid_sku")])
    def test_invalid_skus(self, sku, code):
        with pytest.raises(InvalidOperationError) as exc_info:
            validate_sku(sku)
        assert exc_info.value.code == code

    def test_generated_sku_format(self):
        sku = generate_sku("Acme Corp", "power tools")

        brand, category, timestamp, suffix = sku.split("-")
        assert brand == "ACM"
        assert category == "POW"
        assert timestamp.isdigit()
        assert len(suffix) == 4
        assert 3 <= len(sku) <= 50


class TestGetProduct:

    async def test_miss_then_hit(self, product_service, mock_db):
        """First read comes from the database and fills the cache."""
        row = make_product_row(sku="SKU-001")
        with patch(f"{CRUD}.get_product_by_sku", new=AsyncMock(return_value=row)) as get_by_sku:
            first, first_status = await product_service.get_product(mock_db, "SKU-001")
            second, second_status = await product_service.get_product(mock_db, "SKU-001")

        assert first_status == CACHE_MISS
        assert second_status == CACHE_HIT
        assert first == second
        get_by_sku.assert_awaited_once()

    async def test_unknown_sku_is_not_found_and_not_cached(self, product_service, mock_db, fake_redis):
        with patch(f"{CRUD}.get_product_by_sku", new=AsyncMock(return_value=None)):
            with pytest.raises(NotFoundError):
                await product_service.get_product(mock_db, "SKU-404")

        assert fake_redis.keys_snapshot == []

    async def test_cache_outage_falls_back_to_database(self, product_service, mock_db, fake_redis):
        fake_redis.fail = True
        row = make_product_row(sku="SKU-001")
        with patch(f"{CRUD}.get_product_by_sku", new=AsyncMock(return_value=row)):
            product, cache_status = await product_service.get_product(mock_db, "SKU-001")

        assert product.sku == "SKU-001"
        assert cache_status == CACHE_MISS

    async def test_invalid_sku_never_reaches_database(self, product_service, mock_db):
        with patch(f"{CRUD}.get_product_by_sku", new=AsyncMock()) as get_by_sku:
            with pytest.raises(InvalidOperationError):
                await product_service.get_product(mock_db, "AB")
        get_by_sku.assert_not_awaited()


class TestWrites:

    async def test_create_caches_every_product(self, product_service, cache, mock_db):
        products_in = [
            ProductCreate(name="Drill", category="Tools", brand="Acme", price=99.0),
            ProductCreate(name="Hammer", category="Tools", brand="Acme", price=19.0),
        ]

        async def fake_create(db, rows):
            return [make_product_row(sku=row.sku, name=row.name, price=float(row.price)) for row in rows]

        with patch(f"{CRUD}.create_products", new=fake_create):
            created = await product_service.create_products(mock_db, products_in)

        assert len(created) == 2
        for product in created:
            assert product.sku.startswith("ACM-TOO-")
            assert await cache.get_by_sku(product.sku) == product

    async def test_create_survives_cache_outage(self, product_service, fake_redis, mock_db):
        fake_redis.fail = True

        async def fake_create(db, rows):
            return [make_product_row(sku=row.sku) for row in rows]

        with patch(f"{CRUD}.create_products", new=fake_create):
            created = await product_service.create_products(
                mock_db, [ProductCreate(name="Drill", category="Tools", brand="Acme", price=99.0)]
            )

        assert len(created) == 1

    async def test_create_empty_list_is_rejected(self, product_service, mock_db):
        with pytest.raises(InvalidOperationError) as exc_info:
            await product_service.create_products(mock_db, [])
        assert exc_info.value.code == "empty_request"

    async def test_update_strips_immutable_fields(self, product_service, mock_db, cache):
        row = make_product_row(sku="SKU-001", price=10.0)
        updated = make_product_row(sku="SKU-001", price=12.0)
        with patch(f"{CRUD}.get_product_by_sku", new=AsyncMock(return_value=row)), \
                patch(f"{CRUD}.update_product_fields", new=AsyncMock(return_value=updated)) as update_fields:
            product, cache_status = await product_service.update_product(
                mock_db, "SKU-001", {"price": 12.0, "sku": "HACKED", "id": "x", "created_at": "2020-01-01"}
            )

        update_fields.assert_awaited_once_with(mock_db, "SKU-001", {"price": 12.0})
        assert cache_status == CACHE_REFRESHED
        assert (await cache.get_by_sku("SKU-001")).price == 12.0

    async def test_update_with_only_immutable_fields_is_rejected(self, product_service, mock_db):
        with pytest.raises(InvalidOperationError) as exc_info:
            await product_service.update_product(mock_db, "SKU-001", {"sku": "NEW-SKU"})
        assert exc_info.value.code == "no_valid_fields"

    async def test_update_invalid_value_is_rejected(self, product_service, mock_db):
        with pytest.raises(InvalidOperationError) as exc_info:
            await product_service.update_product(mock_db, "SKU-001", {"price": -5})
        assert exc_info.value.code == "validation_error"
        assert exc_info.value.field == "price"

    @pytest.mark.parametrize("field", ["name", "category", "brand", "price", "status", "stock"])
    async def test_update_explicit_null_on_required_field_is_rejected(self, product_service, mock_db, field):
        with patch(f"{CRUD}.update_product_fields", new=AsyncMock()) as update_fields:
            with pytest.raises(InvalidOperationError) as exc_info:
                await product_service.update_product(mock_db, "SKU-001", {field: None})

        assert exc_info.value.code == "validation_error"
        assert exc_info.value.field == field
        update_fields.assert_not_awaited()

    async def test_update_null_on_optional_field_clears_it(self, product_service, mock_db):
        row = make_product_row(sku="SKU-001", description="Old")
        updated = make_product_row(sku="SKU-001", description=None)
        with patch(f"{CRUD}.get_product_by_sku", new=AsyncMock(return_value=row)), \
                patch(f"{CRUD}.update_product_fields", new=AsyncMock(return_value=updated)) as update_fields:
            await product_service.update_product(mock_db, "SKU-001", {"description": None})

        update_fields.assert_awaited_once_with(mock_db, "SKU-001", {"description": None})

    async def test_category_change_moves_sku_between_lists(self, product_service, mock_db, cache):
        before = make_product_row(sku="SKU-001", category="Tools")
        after = make_product_row(sku="SKU-001", category="Garden")
        await cache.put(make_product(sku="SKU-001", category="Tools"))
        with patch(f"{CRUD}.get_product_by_sku", new=AsyncMock(return_value=before)), \
                patch(f"{CRUD}.update_product_fields", new=AsyncMock(return_value=after)):
            await product_service.update_product(mock_db, "SKU-001", {"category": "Garden"})

        assert await cache.category_skus("Tools") == []
        assert await cache.category_skus("Garden") == ["SKU-001"]

    async def test_delete_evicts_cache(self, product_service, mock_db, cache):
        await cache.put(make_product(sku="SKU-001"))
        with patch(f"{CRUD}.delete_product_by_sku", new=AsyncMock(return_value=make_product_row(sku="SKU-001"))):
            product, cache_status = await product_service.delete_product(mock_db, "SKU-001")

        assert cache_status == CACHE_DELETED
        assert product.sku == "SKU-001"
        assert await cache.get_by_sku("SKU-001") is None

    async def test_delete_unknown_sku(self, product_service, mock_db):
        with patch(f"{CRUD}.delete_product_by_sku", new=AsyncMock(return_value=None)):
            with pytest.raises(NotFoundError):
                await product_service.delete_product(mock_db, "SKU-404")


class TestBulkOperations:

    async def test_bulk_update_collects_per_item_errors(self, product_service, mock_db):
        rows = {"SKU-001": make_product_row(sku="SKU-001")}

        async def get_by_sku(db, sku):
            return rows.get(sku)

        items = [
            {"sku": "SKU-001", "price": 15.0},
            {"price": 15.0},
            {"sku": "SKU-404", "price": 15.0},
            {"sku": "SKU-001", "sku_only": True},
        ]
        with patch(f"{CRUD}.get_product_by_sku", new=get_by_sku), \
                patch(f"{CRUD}.update_product_fields", new=AsyncMock(return_value=rows["SKU-001"])):
            result = await product_service.bulk_update(mock_db, items)

        assert result.success_count == 1
        assert result.total_requested == 4
        assert result.error_count == 3
        assert [e.code for e in result.errors] == ["missing_sku", "not_found", "no_valid_fields"]
        assert result.errors[0].field == "[1].sku"
        assert result.http_status() == 207

    async def test_bulk_update_null_fields_fail_per_item(self, product_service, mock_db):
        rows = {"SKU-001": make_product_row(sku="SKU-001"), "SKU-002": make_product_row(sku="SKU-002")}

        async def get_by_sku(db, sku):
            return rows.get(sku)

        items = [
            {"sku": "SKU-001", "stock": None},
            {"sku": "SKU-002", "name": "Hammer"},
            {"sku": "SKU-001", "name": None},
        ]
        with patch(f"{CRUD}.get_product_by_sku", new=get_by_sku), \
                patch(f"{CRUD}.update_product_fields", new=AsyncMock(return_value=rows["SKU-002"])) as update_fields:
            result = await product_service.bulk_update(mock_db, items)

        assert result.success_count == 1
        assert result.error_count == 2
        assert [e.field for e in result.errors] == ["[0].stock", "[2].name"]
        assert {e.code for e in result.errors} == {"validation_error"}
        assert result.http_status() == 207
        update_fields.assert_awaited_once_with(mock_db, "SKU-002", {"name": "Hammer"})

    async def test_bulk_delete_survives_cache_outage(self, product_service, mock_db, fake_redis):
        fake_redis.fail = True
        delete_by_sku = AsyncMock(side_effect=lambda db, sku: make_product_row(sku=sku))

        with patch(f"{CRUD}.delete_product_by_sku", new=delete_by_sku):
            result = await product_service.bulk_delete(mock_db, [{"sku": "SKU-001"}, {"sku": "SKU-002"}])

        assert result.success_count == 2
        assert result.http_status() == 200
        assert delete_by_sku.await_count == 2

    async def test_bulk_update_store_failure_is_reported(self, product_service, mock_db):
        with patch(f"{CRUD}.get_product_by_sku", new=AsyncMock(side_effect=OperationalError("stmt", {}, Exception("down")))):
            result = await product_service.bulk_update(mock_db, [{"sku": "SKU-001", "price": 1.0}])

        assert result.success_count == 0
        assert result.errors[0].code == "store_error"
        assert result.http_status() == 400
        mock_db.rollback.assert_awaited()

    async def test_bulk_delete_all_ok(self, product_service, mock_db):
        async def delete_by_sku(db, sku):
            return make_product_row(sku=sku)

        with patch(f"{CRUD}.delete_product_by_sku", new=delete_by_sku):
            result = await product_service.bulk_delete(mock_db, [{"sku": "SKU-001"}, {"sku": "SKU-002"}])

        assert result.success_count == 2
        assert result.http_status() == 200
