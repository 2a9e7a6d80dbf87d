"""Tests for reading analytics and session logging."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from goaltracker.errors import InvalidInput
from goaltracker.kernel.models import Book
from goaltracker.kernel.reading import (
    average_pages_per_day,
    average_pages_per_hour,
    days_reading,
    estimated_completion_date,
    estimated_days_to_complete,
    log_reading_session,
    pages_per_hour,
    pages_remaining,
    reading_progress,
    reading_stats,
    reading_streak,
)
from tests.conftest import NOW, make_session


def _book(total=300, current=0, started_days_ago=None) -> Book:
    return Book(
        goal_id="g",
        title="b",
        total_pages=total,
        current_page=current,
        started_reading_date=NOW - timedelta(days=started_days_ago) if started_days_ago is not None else None,
    )


class TestBookProgress:
    def test_reading_progress(self):
        assert reading_progress(_book(200, 50)) == 0.25

    def test_progress_unknown_length(self):
        assert reading_progress(_book(None, 50)) == 0.0

    def test_pages_remaining(self):
        assert pages_remaining(_book(200, 50)) == 150

    def test_pages_remaining_unknown(self):
        assert pages_remaining(_book(None, 50)) is None


class TestPace:
    def test_days_reading_not_started(self):
        assert days_reading(_book(), NOW) == 0

    def test_days_reading_same_day_is_one(self):
        assert days_reading(_book(started_days_ago=0), NOW) == 1

    def test_average_pages_per_day(self):
        assert average_pages_per_day(_book(300, 100, started_days_ago=10), NOW) == 10.0

    def test_estimated_days_rounds_up(self):
        # 95 pages in 10 days -> 9.5/day, 205 left -> 21.6 -> 22
        assert estimated_days_to_complete(_book(300, 95, started_days_ago=10), NOW) == 22

    def test_estimated_days_without_pace(self):
        assert estimated_days_to_complete(_book(300, 0, started_days_ago=3), NOW) is None

    def test_estimated_completion_date(self):
        book = _book(300, 100, started_days_ago=10)
        assert estimated_completion_date(book, NOW) == NOW + timedelta(days=20)


class TestStreak:
    def test_three_consecutive_days(self):
        sessions = [make_session("b", d) for d in (0, 1, 2)]
        assert reading_streak(sessions, NOW, "UTC") == 3

    def test_gap_stops_streak(self):
        sessions = [make_session("b", d) for d in (0, 2)]
        assert reading_streak(sessions, NOW, "UTC") == 1

    def test_several_sessions_one_day_count_once(self):
        sessions = [make_session("b", 0), make_session("b", 0.1), make_session("b", 1)]
        assert reading_streak(sessions, NOW, "UTC") == 2

    def test_nothing_today(self):
        sessions = [make_session("b", d) for d in (1, 2)]
        assert reading_streak(sessions, NOW, "UTC") == 0

    def test_empty(self):
        assert reading_streak([], NOW) == 0

    def test_local_calendar_days(self):
        # 03:00 UTC on the 18th is still the 17th in New York
        now = datetime(2026, 2, 18, 3, 0, tzinfo=timezone.utc)
        sessions = [make_session("b", 0, now=now), make_session("b", 1, now=now)]
        assert reading_streak(sessions, now, "UTC") == 2
        assert reading_streak(sessions, now, "America/New_York") == 2
        late = [make_session("b", 0, now=now), make_session("b", 0.2, now=now)]
        assert reading_streak(late, now, "UTC") == 2
        assert reading_streak(late, now, "America/New_York") == 1

    def test_unknown_timezone_rejected(self):
        with pytest.raises(InvalidInput, match="Not/AZone"):
            reading_streak([make_session("b", 0)], NOW, "Not/AZone")


class TestSessionRates:
    def test_pages_per_hour(self):
        assert pages_per_hour(make_session("b", 0, pages=30, minutes=45)) == 40.0

    def test_pages_per_hour_no_duration(self):
        assert pages_per_hour(make_session("b", 0, pages=30, minutes=0)) == 0.0

    def test_average_pages_per_hour(self):
        sessions = [make_session("b", 0, 20, 30), make_session("b", 1, 40, 90)]
        assert average_pages_per_hour(sessions) == 30.0

    def test_reading_stats_bundle(self):
        book = _book(300, 100, started_days_ago=10)
        sessions = [make_session(book.id, 0, 50, 60), make_session(book.id, 1, 50, 60)]
        stats = reading_stats(book, sessions, NOW, "UTC")
        assert stats.reading_streak == 2
        assert stats.total_pages_read == 100
        assert stats.total_reading_minutes == 120
        assert stats.pages_remaining == 200
        assert stats.estimated_days_to_complete == 20


class TestLogReadingSession:
    @pytest.mark.asyncio
    async def test_advances_book(self, store, book):
        session = await log_reading_session(store, book, 30, 20, date=NOW)
        assert session.start_page == 0
        assert session.end_page == 30
        stored = await store.get_book(book.id)
        assert stored.current_page == 30
        assert stored.started_reading_date == NOW
        assert stored.last_read_date == NOW
        assert not stored.is_completed

    @pytest.mark.asyncio
    async def test_caps_and_completes(self, store, reading_goal, book):
        await log_reading_session(store, book, 80, date=NOW)
        await log_reading_session(store, book, 50, date=NOW)
        stored = await store.get_book(book.id)
        assert stored.current_page == 100
        assert stored.is_completed
        assert stored.completion_date == NOW
        goal = await store.get_goal(reading_goal.id)
        assert goal.current_value == 1

    @pytest.mark.asyncio
    async def test_sessions_are_recorded(self, store, book):
        await log_reading_session(store, book, 10, date=NOW - timedelta(days=1))
        await log_reading_session(store, book, 10, date=NOW)
        sessions = await store.list_reading_sessions(book.id)
        assert [s.end_page for s in sessions] == [20, 10]

    @pytest.mark.asyncio
    async def test_negative_pages_rejected(self, store, book):
        with pytest.raises(InvalidInput):
            await log_reading_session(store, book, -1)
