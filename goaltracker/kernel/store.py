"""Event store: durable records keyed under a parent Goal.

Every record is stored with its kind, its owning goal id and its direct
parent id. Cascade delete is an explicit "delete everything whose goal_id
matches"; there is no object graph to walk.

Two backends share the typed API defined on ``EventStore``:

- ``MemoryEventStore``: dict-backed, used by tests and scripts.
- ``SqlEventStore``: SQLAlchemy async, one JSON-payload table
  (``goal_records``), raw ``text()`` queries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, TypeVar

from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from goaltracker.errors import MissingRecord
from goaltracker.kernel.models import (
    AppMetricSnapshot,
    AppProject,
    Book,
    CommitActivity,
    FitnessGoalConfig,
    GitHubRepository,
    Goal,
    PersonalRecord,
    ReadingSession,
    RevenueEntry,
    StarHistory,
    TrainingSession,
)

M = TypeVar("M", bound=BaseModel)

# kind -> model class
RECORD_KINDS: dict[str, type[BaseModel]] = {
    "goal": Goal,
    "book": Book,
    "reading_session": ReadingSession,
    "training_session": TrainingSession,
    "fitness_config": FitnessGoalConfig,
    "personal_record": PersonalRecord,
    "repository": GitHubRepository,
    "commit_activity": CommitActivity,
    "star_history": StarHistory,
    "app_project": AppProject,
    "revenue_entry": RevenueEntry,
    "metric_snapshot": AppMetricSnapshot,
}


class EventStore(ABC):
    """Typed CRUD over the goal aggregate, built on five storage primitives."""

    # -- primitives ---------------------------------------------------------

    @abstractmethod
    async def _put(self, kind: str, record: BaseModel, goal_id: str, parent_id: str | None) -> None:
        """Insert or replace one record."""

    @abstractmethod
    async def _get(self, kind: str, record_id: str) -> BaseModel | None:
        """Fetch one record by id, None when absent."""

    @abstractmethod
    async def _list(self, kind: str, parent_id: str | None = None) -> list[BaseModel]:
        """All records of a kind, optionally restricted to one parent."""

    @abstractmethod
    async def _delete_subtree(self, record_id: str) -> None:
        """Delete a record and every record whose direct parent it is."""

    @abstractmethod
    async def _delete_goal(self, goal_id: str) -> None:
        """Delete a goal and everything it owns."""

    @abstractmethod
    async def _replace_children(
        self,
        kind: str,
        parent_id: str,
        goal_id: str,
        records: list[BaseModel],
    ) -> None:
        """Swap all children of ``kind`` under ``parent_id`` in one step.

        Readers see either the old set or the new set, never an empty one.
        """

    # -- goals --------------------------------------------------------------

    async def add_goal(self, goal: Goal) -> Goal:
        await self._put("goal", goal, goal.id, None)
        return goal

    async def save_goal(self, goal: Goal) -> Goal:
        await self._put("goal", goal, goal.id, None)
        return goal

    async def get_goal(self, goal_id: str) -> Goal | None:
        return await self._get("goal", goal_id)  # type: ignore[return-value]

    async def list_goals(self, include_archived: bool = False) -> list[Goal]:
        goals: list[Goal] = await self._list("goal")  # type: ignore[assignment]
        if not include_archived:
            goals = [g for g in goals if not g.is_archived]
        return sorted(goals, key=lambda g: g.created_at)

    async def delete_goal(self, goal_id: str) -> bool:
        if await self.get_goal(goal_id) is None:
            return False
        await self._delete_goal(goal_id)
        return True

    async def _require_goal(self, goal_id: str) -> Goal:
        goal = await self.get_goal(goal_id)
        if goal is None:
            raise MissingRecord(f"Goal {goal_id} not found")
        return goal

    # -- reading ------------------------------------------------------------

    async def add_book(self, book: Book) -> Book:
        await self._require_goal(book.goal_id)
        await self._put("book", book, book.goal_id, book.goal_id)
        return book

    async def save_book(self, book: Book) -> Book:
        await self._put("book", book, book.goal_id, book.goal_id)
        return book

    async def get_book(self, book_id: str) -> Book | None:
        return await self._get("book", book_id)  # type: ignore[return-value]

    async def list_books(self, goal_id: str) -> list[Book]:
        books: list[Book] = await self._list("book", goal_id)  # type: ignore[assignment]
        return sorted(books, key=lambda b: b.created_at, reverse=True)

    async def delete_book(self, book_id: str) -> None:
        await self._delete_subtree(book_id)

    async def add_reading_session(self, session: ReadingSession) -> ReadingSession:
        book = await self.get_book(session.book_id)
        if book is None:
            raise MissingRecord(f"Book {session.book_id} not found")
        await self._put("reading_session", session, book.goal_id, book.id)
        return session

    async def list_reading_sessions(self, book_id: str) -> list[ReadingSession]:
        sessions: list[ReadingSession] = await self._list("reading_session", book_id)  # type: ignore[assignment]
        return sorted(sessions, key=lambda s: s.date, reverse=True)

    # -- fitness ------------------------------------------------------------

    async def add_training_session(self, session: TrainingSession) -> TrainingSession:
        await self._require_goal(session.goal_id)
        await self._put("training_session", session, session.goal_id, session.goal_id)
        return session

    async def list_training_sessions(self, goal_id: str) -> list[TrainingSession]:
        sessions: list[TrainingSession] = await self._list("training_session", goal_id)  # type: ignore[assignment]
        return sorted(sessions, key=lambda s: s.date, reverse=True)

    async def set_fitness_config(self, config: FitnessGoalConfig) -> FitnessGoalConfig:
        """One config per goal: replaces any previous one."""
        await self._require_goal(config.goal_id)
        await self._replace_children("fitness_config", config.goal_id, config.goal_id, [config])
        return config

    async def get_fitness_config(self, goal_id: str) -> FitnessGoalConfig | None:
        configs = await self._list("fitness_config", goal_id)
        return configs[0] if configs else None  # type: ignore[return-value]

    async def add_personal_record(self, record: PersonalRecord) -> PersonalRecord:
        await self._require_goal(record.goal_id)
        await self._put("personal_record", record, record.goal_id, record.goal_id)
        return record

    async def list_personal_records(self, goal_id: str) -> list[PersonalRecord]:
        records: list[PersonalRecord] = await self._list("personal_record", goal_id)  # type: ignore[assignment]
        return sorted(records, key=lambda r: r.achieved_date, reverse=True)

    # -- programming --------------------------------------------------------

    async def add_repository(self, repo: GitHubRepository) -> GitHubRepository:
        await self._require_goal(repo.goal_id)
        await self._put("repository", repo, repo.goal_id, repo.goal_id)
        return repo

    async def save_repository(self, repo: GitHubRepository) -> GitHubRepository:
        await self._put("repository", repo, repo.goal_id, repo.goal_id)
        return repo

    async def get_repository(self, repository_id: str) -> GitHubRepository | None:
        return await self._get("repository", repository_id)  # type: ignore[return-value]

    async def list_repositories(self, goal_id: str) -> list[GitHubRepository]:
        repos: list[GitHubRepository] = await self._list("repository", goal_id)  # type: ignore[assignment]
        return sorted(repos, key=lambda r: r.created_at, reverse=True)

    async def delete_repository(self, repository_id: str) -> None:
        await self._delete_subtree(repository_id)

    async def list_commit_activity(self, repository_id: str) -> list[CommitActivity]:
        buckets: list[CommitActivity] = await self._list("commit_activity", repository_id)  # type: ignore[assignment]
        return sorted(buckets, key=lambda c: c.week_start_date, reverse=True)

    async def replace_commit_activity(
        self,
        repo: GitHubRepository,
        buckets: list[CommitActivity],
    ) -> None:
        await self._replace_children("commit_activity", repo.id, repo.goal_id, list(buckets))

    async def add_star_snapshot(self, repo: GitHubRepository, snapshot: StarHistory) -> StarHistory:
        await self._put("star_history", snapshot, repo.goal_id, repo.id)
        return snapshot

    async def list_star_history(self, repository_id: str) -> list[StarHistory]:
        history: list[StarHistory] = await self._list("star_history", repository_id)  # type: ignore[assignment]
        return sorted(history, key=lambda s: s.date)

    # -- app projects & revenue ---------------------------------------------

    async def add_app_project(self, project: AppProject) -> AppProject:
        await self._require_goal(project.goal_id)
        await self._put("app_project", project, project.goal_id, project.goal_id)
        return project

    async def get_app_project(self, project_id: str) -> AppProject | None:
        return await self._get("app_project", project_id)  # type: ignore[return-value]

    async def list_app_projects(self, goal_id: str) -> list[AppProject]:
        projects: list[AppProject] = await self._list("app_project", goal_id)  # type: ignore[assignment]
        return sorted(projects, key=lambda p: p.created_at, reverse=True)

    async def add_revenue_entry(self, entry: RevenueEntry) -> RevenueEntry:
        project = await self.get_app_project(entry.project_id)
        if project is None:
            raise MissingRecord(f"App project {entry.project_id} not found")
        await self._put("revenue_entry", entry, project.goal_id, project.id)
        return entry

    async def list_revenue_entries(self, project_id: str) -> list[RevenueEntry]:
        entries: list[RevenueEntry] = await self._list("revenue_entry", project_id)  # type: ignore[assignment]
        return sorted(entries, key=lambda e: e.date, reverse=True)

    async def add_metric_snapshot(self, snapshot: AppMetricSnapshot) -> AppMetricSnapshot:
        project = await self.get_app_project(snapshot.project_id)
        if project is None:
            raise MissingRecord(f"App project {snapshot.project_id} not found")
        await self._put("metric_snapshot", snapshot, project.goal_id, project.id)
        return snapshot

    async def list_metric_snapshots(self, project_id: str) -> list[AppMetricSnapshot]:
        snaps: list[AppMetricSnapshot] = await self._list("metric_snapshot", project_id)  # type: ignore[assignment]
        return sorted(snaps, key=lambda s: s.date, reverse=True)


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------

class MemoryEventStore(EventStore):
    """Dict-backed store. Records are copied on the way in and out."""

    def __init__(self) -> None:
        # kind -> id -> (goal_id, parent_id, record)
        self._records: dict[str, dict[str, tuple[str, str | None, BaseModel]]] = {
            kind: {} for kind in RECORD_KINDS
        }

    async def _put(self, kind: str, record: BaseModel, goal_id: str, parent_id: str | None) -> None:
        self._records[kind][record.id] = (goal_id, parent_id, record.model_copy(deep=True))  # type: ignore[attr-defined]

    async def _get(self, kind: str, record_id: str) -> BaseModel | None:
        entry = self._records[kind].get(record_id)
        if entry is None:
            return None
        return entry[2].model_copy(deep=True)

    async def _list(self, kind: str, parent_id: str | None = None) -> list[BaseModel]:
        return [
            record.model_copy(deep=True)
            for _, parent, record in self._records[kind].values()
            if parent_id is None or parent == parent_id
        ]

    async def _delete_subtree(self, record_id: str) -> None:
        for kind, rows in self._records.items():
            self._records[kind] = {
                rid: row for rid, row in rows.items() if rid != record_id and row[1] != record_id
            }

    async def _delete_goal(self, goal_id: str) -> None:
        for kind, rows in self._records.items():
            self._records[kind] = {rid: row for rid, row in rows.items() if row[0] != goal_id}

    async def _replace_children(
        self,
        kind: str,
        parent_id: str,
        goal_id: str,
        records: list[BaseModel],
    ) -> None:
        staged = {rid: row for rid, row in self._records[kind].items() if row[1] != parent_id}
        for record in records:
            staged[record.id] = (goal_id, parent_id, record.model_copy(deep=True))  # type: ignore[attr-defined]
        self._records[kind] = staged


# ---------------------------------------------------------------------------
# SQL backend
# ---------------------------------------------------------------------------

SCHEMA_STATEMENTS = (
    """\
CREATE TABLE IF NOT EXISTS goal_records (
    id          TEXT PRIMARY KEY,
    kind        TEXT NOT NULL,
    goal_id     TEXT NOT NULL,
    parent_id   TEXT,
    raw_data    TEXT NOT NULL
)""",
    "CREATE INDEX IF NOT EXISTS idx_goal_records_goal ON goal_records(goal_id)",
    "CREATE INDEX IF NOT EXISTS idx_goal_records_kind_parent ON goal_records(kind, parent_id)",
)

_UPSERT_SQL = (
    "INSERT INTO goal_records (id, kind, goal_id, parent_id, raw_data) "
    "VALUES (:id, :kind, :goal_id, :parent_id, :raw_data) "
    "ON CONFLICT (id) DO UPDATE SET "
    "goal_id = excluded.goal_id, parent_id = excluded.parent_id, raw_data = excluded.raw_data"
)


async def init_schema(engine: AsyncEngine) -> None:
    """Create the records table and its indexes if missing."""
    async with engine.begin() as conn:
        for stmt in SCHEMA_STATEMENTS:
            await conn.execute(text(stmt))


def _row_params(kind: str, record: BaseModel, goal_id: str, parent_id: str | None) -> dict[str, Any]:
    return {
        "id": record.id,  # type: ignore[attr-defined]
        "kind": kind,
        "goal_id": goal_id,
        "parent_id": parent_id,
        "raw_data": record.model_dump_json(),
    }


class SqlEventStore(EventStore):
    """Event store over a single ``goal_records`` table.

    Multi-statement writes run inside one transaction so cascade deletes and
    child replacement are atomic for other readers.
    """

    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def _put(self, kind: str, record: BaseModel, goal_id: str, parent_id: str | None) -> None:
        async with self._sessions() as session, session.begin():
            await session.execute(text(_UPSERT_SQL), _row_params(kind, record, goal_id, parent_id))

    async def _get(self, kind: str, record_id: str) -> BaseModel | None:
        async with self._sessions() as session:
            result = await session.execute(
                text("SELECT raw_data FROM goal_records WHERE kind = :kind AND id = :id"),
                {"kind": kind, "id": record_id},
            )
            row = result.fetchone()
        if row is None:
            return None
        return RECORD_KINDS[kind].model_validate_json(row[0])

    async def _list(self, kind: str, parent_id: str | None = None) -> list[BaseModel]:
        query = "SELECT raw_data FROM goal_records WHERE kind = :kind"
        params: dict[str, Any] = {"kind": kind}
        if parent_id is not None:
            query += " AND parent_id = :parent_id"
            params["parent_id"] = parent_id

        async with self._sessions() as session:
            result = await session.execute(text(query), params)
            rows = result.fetchall()
        model = RECORD_KINDS[kind]
        return [model.model_validate_json(r[0]) for r in rows]

    async def _delete_subtree(self, record_id: str) -> None:
        async with self._sessions() as session, session.begin():
            await session.execute(
                text("DELETE FROM goal_records WHERE id = :id OR parent_id = :id"),
                {"id": record_id},
            )

    async def _delete_goal(self, goal_id: str) -> None:
        async with self._sessions() as session, session.begin():
            await session.execute(
                text("DELETE FROM goal_records WHERE goal_id = :goal_id"),
                {"goal_id": goal_id},
            )

    async def _replace_children(
        self,
        kind: str,
        parent_id: str,
        goal_id: str,
        records: list[BaseModel],
    ) -> None:
        async with self._sessions() as session, session.begin():
            await session.execute(
                text("DELETE FROM goal_records WHERE kind = :kind AND parent_id = :parent_id"),
                {"kind": kind, "parent_id": parent_id},
            )
            for record in records:
                await session.execute(text(_UPSERT_SQL), _row_params(kind, record, goal_id, parent_id))
