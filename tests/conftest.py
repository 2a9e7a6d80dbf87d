"""Shared fixtures for the test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from goaltracker.clients import get_reconciler, get_text_generator
from goaltracker.db import get_store
from goaltracker.kernel.models import (
    Book,
    CommitActivity,
    GitHubRepository,
    Goal,
    GoalType,
    ReadingSession,
    StarHistory,
    TrainingSession,
)
from goaltracker.kernel.reconciler import GitHubReconciler
from goaltracker.kernel.store import MemoryEventStore
from goaltracker.main import app
from goaltracker.providers.github import CommitWeek, RepositoryMetadata

NOW = datetime(2026, 2, 18, 12, 0, tzinfo=timezone.utc)  # a Wednesday


# ---------------------------------------------------------------------------
# Fake GitHub (no network needed)
# ---------------------------------------------------------------------------

class FakeGitHub:
    """Scripted stand-in for the GitHub client.

    ``activity`` is consumed one response per call; the last one repeats.
    Entries may be a list of CommitWeek, STATISTICS_PENDING or an exception.
    """

    def __init__(self, metadata: RepositoryMetadata | Exception | None = None, activity=None):
        self.metadata = metadata or make_metadata()
        self.activity = list(activity or [[]])
        self.repo_calls = 0
        self.activity_calls = 0
        self.on_activity = None  # optional async hook run before answering

    async def fetch_repository(self, owner, repo, token):
        self.repo_calls += 1
        if isinstance(self.metadata, Exception):
            raise self.metadata
        return self.metadata

    async def fetch_commit_activity(self, owner, repo, token):
        self.activity_calls += 1
        if self.on_activity is not None:
            await self.on_activity()
        answer = self.activity[0] if len(self.activity) == 1 else self.activity.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


class SleepRecorder:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeGenerator:
    def __init__(self, reply: str | Exception):
        self.reply = reply
        self.prompts: list[str] = []

    async def generate(self, prompt: str, max_tokens: int = 2048) -> str:
        self.prompts.append(prompt)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def make_metadata(stars: int = 42, **overrides) -> RepositoryMetadata:
    fields = {
        "id": 1001,
        "name": "widget",
        "full_name": "octo/widget",
        "description": "A widget",
        "html_url": "https://github.com/octo/widget",
        "language": "Python",
        "stars": stars,
        "forks": 3,
        "watchers": 7,
        "open_issues": 2,
        "is_private": False,
        "default_branch": "main",
    }
    fields.update(overrides)
    return RepositoryMetadata(**fields)


def make_weeks(counts: list[int], now: datetime = NOW) -> list[CommitWeek]:
    """Oldest-first weekly counts ending in the week of ``now``."""
    last = len(counts) - 1
    monday = (now - timedelta(days=now.weekday())).replace(hour=0, minute=0, second=0, microsecond=0)
    return [CommitWeek(week_start=monday - timedelta(weeks=last - i), commit_count=c) for i, c in enumerate(counts)]


def make_run(goal_id: str, days_ago: float, km: float, minutes: int, now: datetime = NOW, **kw) -> TrainingSession:
    return TrainingSession(
        goal_id=goal_id,
        date=now - timedelta(days=days_ago),
        distance=km,
        distance_unit="km",
        duration_minutes=minutes,
        **kw,
    )


def make_session(book_id: str, days_ago: float, pages: int = 10, minutes: int = 30, now: datetime = NOW) -> ReadingSession:
    return ReadingSession(book_id=book_id, date=now - timedelta(days=days_ago), pages_read=pages, duration_minutes=minutes)


def make_stars(repository_id: str, points: list[tuple[int, int]], start: datetime = NOW) -> list[StarHistory]:
    """(day offset, star count) pairs from ``start``."""
    return [StarHistory(repository_id=repository_id, date=start + timedelta(days=d), star_count=n) for d, n in points]


def make_bucket(repository_id: str, weeks_ago: int, commits: int, now: datetime = NOW) -> CommitActivity:
    monday = (now - timedelta(days=now.weekday())).replace(hour=0, minute=0, second=0, microsecond=0)
    return CommitActivity(
        repository_id=repository_id,
        week_start_date=monday - timedelta(weeks=weeks_ago),
        commit_count=commits,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def store():
    return MemoryEventStore()


@pytest.fixture()
async def reading_goal(store):
    return await store.add_goal(Goal(title="Read 12 books", goal_type=GoalType.reading, target_value=12))


@pytest.fixture()
async def fitness_goal(store):
    return await store.add_goal(Goal(title="Train 100 times", goal_type=GoalType.fitness, target_value=100))


@pytest.fixture()
async def programming_goal(store):
    return await store.add_goal(Goal(title="Ship 500 commits", goal_type=GoalType.programming, target_value=500))


@pytest.fixture()
async def book(store, reading_goal):
    return await store.add_book(Book(goal_id=reading_goal.id, title="Dune", total_pages=100))


@pytest.fixture()
async def repository(store, programming_goal):
    return await store.add_repository(
        GitHubRepository(goal_id=programming_goal.id, name="widget", full_name="octo/widget")
    )


@pytest.fixture()
def github():
    return FakeGitHub()


@pytest.fixture()
def sleep():
    return SleepRecorder()


@pytest.fixture()
def reconciler(store, github, sleep):
    return GitHubReconciler(store, github, token="t", sleep=sleep, max_retries=3, retry_delay=2.0)


@pytest.fixture()
def override_store(store, reconciler):
    """Override the FastAPI dependencies so no real DB or network is needed."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_reconciler] = lambda: reconciler
    app.dependency_overrides[get_text_generator] = lambda: None
    yield store
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_store):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
