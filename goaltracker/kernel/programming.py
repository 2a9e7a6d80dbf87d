"""Commit aggregation and star-growth projection.

Star projection is a straight-line extrapolation of the average daily
growth between the first and last snapshot, nothing fitted.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from goaltracker.config import settings
from goaltracker.kernel.dates import as_aware, utcnow, whole_days_between
from goaltracker.kernel.models import CommitActivity, GitHubRepository, RepositoryStats, StarHistory


def total_commits(activity: list[CommitActivity]) -> int:
    return sum(a.commit_count for a in activity)


def total_additions(activity: list[CommitActivity]) -> int:
    return sum(a.additions for a in activity)


def total_deletions(activity: list[CommitActivity]) -> int:
    return sum(a.deletions for a in activity)


def recent_commits(
    activity: list[CommitActivity],
    now: datetime | None = None,
    weeks: int | None = None,
) -> int:
    if weeks is None:
        weeks = settings.recent_commit_weeks
    cutoff = (now or utcnow()) - timedelta(weeks=weeks)
    return sum(a.commit_count for a in activity if as_aware(a.week_start_date) >= cutoff)


def needs_sync(repo: GitHubRepository, now: datetime | None = None) -> bool:
    """True when never synced or the last sync is at least an hour old."""
    if repo.last_synced_at is None:
        return True
    elapsed = (now or utcnow()) - as_aware(repo.last_synced_at)
    return elapsed >= timedelta(hours=settings.sync_interval_hours)


# ---------------------------------------------------------------------------
# Stars
# ---------------------------------------------------------------------------

def star_growth_over_window(
    history: list[StarHistory],
    window: timedelta,
    now: datetime | None = None,
) -> int:
    """Last minus first star count among snapshots inside the window."""
    cutoff = (now or utcnow()) - window
    recent = sorted((h for h in history if as_aware(h.date) >= cutoff), key=lambda h: h.date)
    if not recent:
        return 0
    return recent[-1].star_count - recent[0].star_count


def star_growth_this_week(history: list[StarHistory], now: datetime | None = None) -> int:
    return star_growth_over_window(history, timedelta(days=7), now)


def star_growth_this_month(history: list[StarHistory], now: datetime | None = None) -> int:
    return star_growth_over_window(history, timedelta(days=30), now)


def average_daily_star_growth(history: list[StarHistory]) -> float:
    """Stars gained per day between the oldest and newest snapshot.

    0 with fewer than two snapshots or when they fall on the same day.
    """
    if len(history) < 2:
        return 0.0
    ordered = sorted(history, key=lambda h: h.date)
    first, last = ordered[0], ordered[-1]
    days = whole_days_between(first.date, last.date)
    if days <= 0:
        return 0.0
    return (last.star_count - first.star_count) / days


def projected_stars(
    history: list[StarHistory],
    at: datetime,
    now: datetime | None = None,
) -> int | None:
    if not history:
        return None
    latest = max(history, key=lambda h: h.date)
    days = whole_days_between(now or utcnow(), at)
    return latest.star_count + int(average_daily_star_growth(history) * days)


def repository_stats(
    repo: GitHubRepository,
    activity: list[CommitActivity],
    history: list[StarHistory],
    now: datetime | None = None,
) -> RepositoryStats:
    now = now or utcnow()
    return RepositoryStats(
        repository_id=repo.id,
        full_name=repo.full_name,
        total_commits=total_commits(activity),
        total_additions=total_additions(activity),
        total_deletions=total_deletions(activity),
        recent_commits=recent_commits(activity, now),
        star_count=repo.star_count,
        star_growth_this_week=star_growth_this_week(history, now),
        star_growth_this_month=star_growth_this_month(history, now),
        average_daily_star_growth=round(average_daily_star_growth(history), 3),
        projected_stars_30d=projected_stars(history, now + timedelta(days=30), now),
        needs_sync=needs_sync(repo, now),
        last_synced_at=repo.last_synced_at,
    )
