"""Tests for the platform fee model, monthly revenue and the recorder."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from goaltracker.errors import InvalidInput, MissingRecord
from goaltracker.kernel.models import AppMetricSnapshot, AppPlatform, AppProject, RevenueEntry
from goaltracker.kernel.revenue import (
    calculate_net_revenue,
    last_month_revenue,
    latest_rating,
    platform_fee,
    platform_fee_percentage,
    record_revenue,
    revenue_growth_percentage,
    revenue_summary,
    this_month_revenue,
    total_downloads,
)
from tests.conftest import NOW


def _entry(net: float, when: datetime, gross: float | None = None, downloads: int | None = None) -> RevenueEntry:
    return RevenueEntry(project_id="p", date=when, gross_revenue=gross or net, net_revenue=net, downloads=downloads)


FEB = datetime(2026, 2, 5, tzinfo=timezone.utc)
JAN = datetime(2026, 1, 20, tzinfo=timezone.utc)
DEC = datetime(2025, 12, 15, tzinfo=timezone.utc)


class TestFees:
    def test_ios_gross_100(self):
        net = calculate_net_revenue(100, AppPlatform.ios)
        entry = RevenueEntry(project_id="p", gross_revenue=100, net_revenue=net)
        assert net == 85.0
        assert platform_fee(entry) == 15.0
        assert platform_fee_percentage(entry) == 15.0

    def test_web_processor_fee(self):
        assert calculate_net_revenue(100, AppPlatform.web) == 97.0

    def test_rounded_to_cents(self):
        assert calculate_net_revenue(9.99, AppPlatform.android) == 8.49

    def test_zero_gross_percentage(self):
        assert platform_fee_percentage(RevenueEntry(project_id="p")) == 0.0


class TestMonthlyRevenue:
    def test_calendar_months(self):
        entries = [_entry(100, FEB), _entry(50, FEB), _entry(100, JAN), _entry(999, DEC)]
        assert this_month_revenue(entries, NOW, "UTC") == 150
        assert last_month_revenue(entries, NOW, "UTC") == 100

    def test_growth(self):
        entries = [_entry(150, FEB), _entry(100, JAN)]
        assert revenue_growth_percentage(entries, NOW, "UTC") == 50.0

    def test_growth_without_last_month(self):
        assert revenue_growth_percentage([_entry(150, FEB)], NOW, "UTC") is None

    def test_growth_with_zero_last_month(self):
        assert revenue_growth_percentage([_entry(150, FEB), _entry(0, JAN)], NOW, "UTC") is None

    def test_year_boundary(self):
        jan_now = datetime(2026, 1, 10, tzinfo=timezone.utc)
        assert last_month_revenue([_entry(999, DEC)], jan_now, "UTC") == 999

    def test_downloads_and_rating(self):
        entries = [_entry(1, FEB, downloads=10), _entry(1, JAN), _entry(1, DEC, downloads=5)]
        assert total_downloads(entries) == 15
        snaps = [
            AppMetricSnapshot(project_id="p", date=JAN, rating=4.1),
            AppMetricSnapshot(project_id="p", date=FEB, rating=4.6),
        ]
        assert latest_rating(snaps) == 4.6
        assert latest_rating([]) is None

    def test_summary(self):
        summary = revenue_summary("p", [_entry(150, FEB, gross=200), _entry(100, JAN)], now=NOW, tz_name="UTC")
        assert summary.total_revenue == 250
        assert summary.total_gross_revenue == 300
        assert summary.revenue_growth_percentage == 50.0


class TestRecordRevenue:
    @pytest.fixture()
    async def project(self, store, programming_goal):
        return await store.add_app_project(AppProject(goal_id=programming_goal.id, name="Widget", platform=AppPlatform.ios))

    @pytest.mark.asyncio
    async def test_net_derived_from_platform(self, store, project):
        entry = await record_revenue(store, project.id, 100, date=NOW)
        assert entry.net_revenue == 85.0
        assert await store.list_revenue_entries(project.id) == [entry]

    @pytest.mark.asyncio
    async def test_explicit_net_wins(self, store, project):
        entry = await record_revenue(store, project.id, 100, net_revenue=70)
        assert entry.net_revenue == 70

    @pytest.mark.asyncio
    async def test_negative_gross_rejected(self, store, project):
        with pytest.raises(InvalidInput):
            await record_revenue(store, project.id, -1)
        assert await store.list_revenue_entries(project.id) == []

    @pytest.mark.asyncio
    async def test_unknown_project(self, store):
        with pytest.raises(MissingRecord):
            await record_revenue(store, "missing", 10)
