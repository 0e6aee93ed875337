"""
Tests for the review service
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from app.core.exceptions import InvalidOperationError, NotFoundError
from app.services.review_service import ReviewService
from factories import make_product_row

CRUD = "app.services.review_service.review_crud"
PRODUCT_CRUD = "app.services.review_service.product_crud"


@pytest.fixture
def review_service(cache):
    return ReviewService(cache)


def review(**overrides):
    data = dict(id="r1", product_id="id-SKU-001", customer_id="c1", rating=4, title="Solid drill", comment="Works")
    data.update(overrides)
    return SimpleNamespace(**data)


class TestUpdateReview:

    @pytest.mark.parametrize("field", ["rating", "title", "helpful_count"])
    async def test_null_on_required_field_is_rejected(self, review_service, mock_db, field):
        with patch(f"{CRUD}.update_review_fields", new=AsyncMock()) as update:
            with pytest.raises(InvalidOperationError) as exc_info:
                await review_service.update_review(mock_db, "r1", "id-SKU-001", {field: None})

        assert exc_info.value.code == "validation_error"
        assert exc_info.value.field == field
        update.assert_not_awaited()

    async def test_rating_change_refreshes_cached_product(self, review_service, mock_db, cache):
        existing = review()
        product = make_product_row(sku="SKU-001", ratings={"average": 5.0, "count": 1})
        with patch(f"{CRUD}.get_review", new=AsyncMock(return_value=existing)), \
                patch(f"{CRUD}.update_review_fields", new=AsyncMock(return_value=review(rating=5))) as update, \
                patch(f"{CRUD}.get_rating_stats", new=AsyncMock(return_value=(5.0, 1))), \
                patch(f"{PRODUCT_CRUD}.update_ratings", new=AsyncMock(return_value=product)):
            updated = await review_service.update_review(mock_db, "r1", "id-SKU-001", {"rating": 5, "product_id": "x"})

        assert updated.rating == 5
        assert update.await_args.args[2] == {"rating": 5}
        assert (await cache.get_by_sku("SKU-001")).ratings.average == 5.0

    async def test_review_of_another_product_is_not_found(self, review_service, mock_db):
        with patch(f"{CRUD}.get_review", new=AsyncMock(return_value=review(product_id="other"))):
            with pytest.raises(NotFoundError):
                await review_service.update_review(mock_db, "r1", "id-SKU-001", {"title": "Changed"})
