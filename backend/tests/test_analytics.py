"""
Tests for analytics, global search and AI reports
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from openai import APIConnectionError
from sqlalchemy.exc import OperationalError

from app.core.exceptions import InvalidOperationError
from app.services.analytics_service import parse_date_range, period_label, stock_status, analytics_service
from app.services.report_service import ReportService
from app.services.search_service import make_snippet, search_service


def order(day, total, customer):
    return SimpleNamespace(created_at=datetime(2024, 3, day, 9, tzinfo=timezone.utc), grand_total=total, customer_id=customer)


class TestHelpers:

    def test_end_date_is_inclusive(self):
        start, end = parse_date_range("2024-03-01", "2024-03-31")

        assert start == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert end == datetime(2024, 4, 1, tzinfo=timezone.utc)

    def test_open_range(self):
        assert parse_date_range(None, None) == (None, None)

    @pytest.mark.parametrize("start,end,code", [
        ("03/01/2024", None, "invalid_date"),
        ("2024-03-10", "2024-03-01", "invalid_date_range"),
    ])
    def test_invalid_ranges(self, start, end, code):
        with pytest.raises(InvalidOperationError) as exc_info:
            parse_date_range(start, end)
        assert exc_info.value.code == code

    @pytest.mark.parametrize("group_by,label", [("day", "2024-03-01"), ("week", "Week 09, 2024"), ("month", "March 2024")])
    def test_period_labels(self, group_by, label):
        assert period_label(datetime(2024, 3, 1), group_by) == label

    @pytest.mark.parametrize("total,status", [(0, "out_of_stock"), (5, "low_stock"), (15, "medium_stock"), (20, "in_stock")])
    def test_stock_status(self, total, status):
        assert stock_status(total, 10) == status

    def test_snippet_truncation(self):
        assert make_snippet("short") == "short"
        assert make_snippet("x" * 200) == "x" * 150 + "..."
        assert make_snippet(None) == ""


class TestAnalyticsService:

    async def test_sales_grouped_by_day(self, mock_db):
        orders = [order(1, 100, "c1"), order(1, 50, "c2"), order(2, 30, "c1")]
        with patch("app.services.analytics_service.analytics_crud.get_revenue_orders", new=AsyncMock(return_value=orders)):
            report = await analytics_service.sales(mock_db, None, None, "day")

        assert [p.date for p in report.sales] == ["2024-03-01", "2024-03-02"]
        first = report.sales[0]
        assert first.total_orders == 2
        assert first.total_revenue == 150.0
        assert first.avg_order_value == 75.0
        assert first.unique_customers == 2

    async def test_inventory_alerts_only(self, mock_db):
        now = datetime(2024, 3, 1, tzinfo=timezone.utc)
        products = [
            SimpleNamespace(id="p1", name="A", sku="SKU-A", category="Tools", stock={"total": 50, "reorder_level": 10}, updated_at=now),
            SimpleNamespace(id="p2", name="B", sku="SKU-B", category="Tools", stock={"total": 3, "reorder_level": 10}, updated_at=now),
            SimpleNamespace(id="p3", name="C", sku="SKU-C", category="Tools", stock={"total": 0, "reorder_level": 10}, updated_at=now),
        ]
        with patch("app.services.analytics_service.product_crud.get_active_products", new=AsyncMock(return_value=products)):
            report = await analytics_service.inventory_status(mock_db, alerts_only=True)

        assert [p.sku for p in report.products] == ["SKU-C", "SKU-B"]
        assert [p.stock_status for p in report.products] == ["out_of_stock", "low_stock"]


class TestSearch:

    async def test_failing_section_is_empty(self, mock_db):
        product = SimpleNamespace(sku="SKU-A", name="Drill", description="A" * 300)
        failing = AsyncMock(side_effect=OperationalError("select", {}, Exception("down")))
        with patch("app.services.search_service.product_crud.search_products", new=AsyncMock(return_value=[product])), \
                patch("app.services.search_service.customer_crud.search_customers", new=failing), \
                patch("app.services.search_service.order_crud.search_orders", new=AsyncMock(return_value=[])), \
                patch("app.services.search_service.review_crud.search_reviews", new=AsyncMock(return_value=[])):
            result = await search_service.search(mock_db, "  drill ", 10)

        assert result.query == "drill"
        assert result.total == 1
        assert result.customers == []
        assert result.products[0].snippet.endswith("...")
        mock_db.rollback.assert_awaited()


class TestReports:

    async def test_report_without_ai_returns_raw_data(self, mock_db, settings):
        service = ReportService(None, settings)
        with patch("app.services.analytics_service.product_crud.get_active_products", new=AsyncMock(return_value=[])):
            report = await service.inventory_report(mock_db)

        assert report.status == "success"
        assert report.ai_enabled is False
        assert report.data.ai_insights is None
        assert report.data.raw_data["count"] == 0

    async def test_report_with_ai_insights(self, mock_db, settings):
        client = MagicMock()
        completion = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=" Restock SKU-B soon. "))])
        client.chat.completions.create = AsyncMock(return_value=completion)
        service = ReportService(client, settings)
        with patch("app.services.analytics_service.product_crud.get_active_products", new=AsyncMock(return_value=[])):
            report = await service.inventory_report(mock_db, alerts_only=True)

        assert report.ai_enabled is True
        assert report.data.ai_insights == "Restock SKU-B soon."
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == settings.OPENAI_MODEL
        assert kwargs["messages"][0]["role"] == "system"

    async def test_ai_failure_degrades_to_raw_data(self, mock_db, settings):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=APIConnectionError(request=MagicMock()))
        service = ReportService(client, settings)
        with patch("app.services.customer_service.customer_crud.get_all_customers", new=AsyncMock(return_value=[])):
            report = await service.customer_insights(mock_db)

        assert report.status == "success"
        assert report.data.error.startswith("AI analysis failed")
        assert report.data.raw_data == {"segments": [], "total_customers": 0}
