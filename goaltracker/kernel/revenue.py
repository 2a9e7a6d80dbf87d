"""App revenue: platform fee model, monthly buckets and the revenue recorder."""

from __future__ import annotations

import logging
from datetime import datetime

from goaltracker.config import settings
from goaltracker.errors import InvalidInput, MissingRecord
from goaltracker.kernel.dates import as_aware, shift_month, start_of_month, utcnow
from goaltracker.kernel.models import (
    AppMetricSnapshot,
    AppPlatform,
    RevenueEntry,
    RevenuePeriod,
    RevenueSummary,
)
from goaltracker.kernel.store import EventStore

logger = logging.getLogger(__name__)

# Store commission (small-business tier) or payment-processor cut.
PLATFORM_FEE_RATES: dict[AppPlatform, float] = {
    AppPlatform.ios: 0.15,
    AppPlatform.macos: 0.15,
    AppPlatform.android: 0.15,
    AppPlatform.web: 0.03,
    AppPlatform.cross_platform: 0.03,
}


def calculate_net_revenue(gross: float, platform: AppPlatform) -> float:
    """Default net revenue for a platform, rounded to cents."""
    return round(gross * (1 - PLATFORM_FEE_RATES[platform]), 2)


def platform_fee(entry: RevenueEntry) -> float:
    return round(entry.gross_revenue - entry.net_revenue, 2)


def platform_fee_percentage(entry: RevenueEntry) -> float:
    if entry.gross_revenue <= 0:
        return 0.0
    return round(platform_fee(entry) / entry.gross_revenue * 100.0, 2)


def total_revenue(entries: list[RevenueEntry]) -> float:
    return sum(e.net_revenue for e in entries)


def total_gross_revenue(entries: list[RevenueEntry]) -> float:
    return sum(e.gross_revenue for e in entries)


def total_downloads(entries: list[RevenueEntry]) -> int:
    return sum(e.downloads for e in entries if e.downloads is not None)


def _month_revenue(entries: list[RevenueEntry], month_start: datetime) -> float:
    month_end = shift_month(month_start, 1)
    return sum(e.net_revenue for e in entries if month_start <= as_aware(e.date) < month_end)


def this_month_revenue(
    entries: list[RevenueEntry],
    now: datetime | None = None,
    tz_name: str | None = None,
) -> float:
    return _month_revenue(entries, start_of_month(now or utcnow(), tz_name or settings.default_tz))


def last_month_revenue(
    entries: list[RevenueEntry],
    now: datetime | None = None,
    tz_name: str | None = None,
) -> float:
    this_month = start_of_month(now or utcnow(), tz_name or settings.default_tz)
    return _month_revenue(entries, shift_month(this_month, -1))


def revenue_growth_percentage(
    entries: list[RevenueEntry],
    now: datetime | None = None,
    tz_name: str | None = None,
) -> float | None:
    """Month-over-month change in net revenue.

    None when there is no positive last-month figure to compare against.
    """
    last = last_month_revenue(entries, now, tz_name)
    if last <= 0:
        return None
    return (this_month_revenue(entries, now, tz_name) - last) / last * 100.0


def latest_rating(snapshots: list[AppMetricSnapshot]) -> float | None:
    if not snapshots:
        return None
    return max(snapshots, key=lambda s: s.date).rating


def revenue_summary(
    project_id: str,
    entries: list[RevenueEntry],
    snapshots: list[AppMetricSnapshot] | None = None,
    now: datetime | None = None,
    tz_name: str | None = None,
) -> RevenueSummary:
    growth = revenue_growth_percentage(entries, now, tz_name)
    return RevenueSummary(
        project_id=project_id,
        total_revenue=round(total_revenue(entries), 2),
        total_gross_revenue=round(total_gross_revenue(entries), 2),
        this_month_revenue=round(this_month_revenue(entries, now, tz_name), 2),
        last_month_revenue=round(last_month_revenue(entries, now, tz_name), 2),
        revenue_growth_percentage=round(growth, 2) if growth is not None else None,
        total_downloads=total_downloads(entries),
        latest_rating=latest_rating(snapshots or []),
    )


async def record_revenue(
    store: EventStore,
    project_id: str,
    gross_revenue: float,
    net_revenue: float | None = None,
    date: datetime | None = None,
    period: RevenuePeriod = RevenuePeriod.monthly,
    downloads: int | None = None,
    currency: str = "USD",
    notes: str | None = None,
) -> RevenueEntry:
    """Append a revenue entry.

    When ``net_revenue`` is omitted it is derived from the project's platform
    fee rate; an explicit value is stored as given.
    """
    if gross_revenue < 0:
        raise InvalidInput("Gross revenue must not be negative")
    if net_revenue is not None and net_revenue < 0:
        raise InvalidInput("Net revenue must not be negative")
    if downloads is not None and downloads < 0:
        raise InvalidInput("Downloads must not be negative")

    project = await store.get_app_project(project_id)
    if project is None:
        raise MissingRecord(f"App project {project_id} not found")

    if net_revenue is None:
        net_revenue = calculate_net_revenue(gross_revenue, project.platform)

    entry = RevenueEntry(
        project_id=project.id,
        date=date or utcnow(),
        period=period,
        gross_revenue=gross_revenue,
        net_revenue=net_revenue,
        currency=currency,
        downloads=downloads,
        notes=notes,
    )
    await store.add_revenue_entry(entry)
    logger.info("Recorded %s revenue for %s: gross=%.2f net=%.2f", period.value, project.name, gross_revenue, net_revenue)
    return entry
