"""Reading analytics: pace, streaks and completion estimates.

Pure functions over a Book and its ReadingSession log; never raise for
missing data. ``log_reading_session`` is the one write path.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta

from goaltracker.config import settings
from goaltracker.errors import InvalidInput
from goaltracker.kernel.dates import local_date, utcnow, whole_days_between
from goaltracker.kernel.models import Book, ReadingSession, ReadingStats
from goaltracker.kernel.progress import refresh_goal_progress
from goaltracker.kernel.store import EventStore


def reading_progress(book: Book) -> float:
    """Fraction of the book read (0 when the page count is unknown)."""
    if not book.total_pages or book.total_pages <= 0:
        return 0.0
    return book.current_page / book.total_pages


def pages_remaining(book: Book) -> int | None:
    if book.total_pages is None:
        return None
    return max(0, book.total_pages - book.current_page)


def days_reading(book: Book, now: datetime | None = None) -> int:
    """Days since reading started, at least 1 once started."""
    if book.started_reading_date is None:
        return 0
    now = now or utcnow()
    return max(1, whole_days_between(book.started_reading_date, now))


def average_pages_per_day(book: Book, now: datetime | None = None) -> float:
    days = max(days_reading(book, now), 1)
    return book.current_page / days


def estimated_days_to_complete(book: Book, now: datetime | None = None) -> int | None:
    remaining = pages_remaining(book)
    pace = average_pages_per_day(book, now)
    if remaining is None or pace <= 0:
        return None
    return math.ceil(remaining / pace)


def estimated_completion_date(book: Book, now: datetime | None = None) -> datetime | None:
    now = now or utcnow()
    days = estimated_days_to_complete(book, now)
    if days is None:
        return None
    return now + timedelta(days=days)


def reading_streak(
    sessions: list[ReadingSession],
    now: datetime | None = None,
    tz_name: str | None = None,
) -> int:
    """Consecutive local calendar days ending today with at least one session.

    Stops at the first missing day. Several sessions on one day count once.
    """
    if not sessions:
        return 0
    tz_name = tz_name or settings.default_tz
    expected = local_date(now or utcnow(), tz_name)

    streak = 0
    for session in sorted(sessions, key=lambda s: s.date, reverse=True):
        day = local_date(session.date, tz_name)
        if day == expected:
            streak += 1
            expected -= timedelta(days=1)
        elif day < expected:
            break
    return streak


def pages_per_hour(session: ReadingSession) -> float:
    if session.duration_minutes <= 0:
        return 0.0
    return session.pages_read / (session.duration_minutes / 60.0)


def total_pages_read(sessions: list[ReadingSession]) -> int:
    return sum(s.pages_read for s in sessions)


def total_reading_minutes(sessions: list[ReadingSession]) -> int:
    return sum(s.duration_minutes for s in sessions)


def average_pages_per_hour(sessions: list[ReadingSession]) -> float:
    minutes = total_reading_minutes(sessions)
    if minutes <= 0:
        return 0.0
    return total_pages_read(sessions) / (minutes / 60.0)


def reading_stats(
    book: Book,
    sessions: list[ReadingSession],
    now: datetime | None = None,
    tz_name: str | None = None,
) -> ReadingStats:
    now = now or utcnow()
    return ReadingStats(
        book_id=book.id,
        reading_progress=round(reading_progress(book), 4),
        pages_remaining=pages_remaining(book),
        average_pages_per_day=round(average_pages_per_day(book, now), 2),
        estimated_days_to_complete=estimated_days_to_complete(book, now),
        estimated_completion_date=estimated_completion_date(book, now),
        reading_streak=reading_streak(sessions, now, tz_name),
        total_pages_read=total_pages_read(sessions),
        total_reading_minutes=total_reading_minutes(sessions),
        average_pages_per_hour=round(average_pages_per_hour(sessions), 2),
    )


async def log_reading_session(
    store: EventStore,
    book: Book,
    pages_read: int,
    duration_minutes: int = 0,
    date: datetime | None = None,
    notes: str | None = None,
) -> ReadingSession:
    """Append a session and move the book forward.

    The page counter is capped at the book's length; reaching the last page
    completes the book. The owning goal's progress is refreshed afterwards.
    """
    if pages_read < 0 or duration_minutes < 0:
        raise InvalidInput("Pages read and duration must not be negative")

    when = date or utcnow()
    end_page = book.current_page + pages_read
    if book.total_pages is not None:
        end_page = min(end_page, book.total_pages)

    session = ReadingSession(
        book_id=book.id,
        date=when,
        pages_read=pages_read,
        duration_minutes=duration_minutes,
        start_page=book.current_page,
        end_page=end_page,
        notes=notes,
    )
    await store.add_reading_session(session)

    book.current_page = end_page
    if book.started_reading_date is None:
        book.started_reading_date = when
    if book.last_read_date is None or when > book.last_read_date:
        book.last_read_date = when
    if book.total_pages and end_page >= book.total_pages and not book.is_completed:
        book.mark_completed(when)
    await store.save_book(book)

    await refresh_goal_progress(store, book.goal_id)
    return session
