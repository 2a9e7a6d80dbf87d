"""Goal progress aggregator.

``Goal.current_value`` is a materialized value: it is recomputed by an
explicit call after its inputs change, never lazily. Dispatch over goal
types is a closed union of input variants, one per GoalType, each knowing
how to count its own progress.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, ClassVar, Union

from goaltracker.kernel import programming
from goaltracker.kernel.dates import end_of_year, utcnow, whole_days_between
from goaltracker.kernel.models import (
    Book,
    CommitActivity,
    GitHubRepository,
    Goal,
    GoalProgress,
    GoalType,
    TrainingSession,
    progress_ratio,
)
from goaltracker.kernel.store import EventStore


@dataclass(frozen=True, slots=True)
class ReadingInputs:
    books: list[Book] = field(default_factory=list)
    goal_type: ClassVar[GoalType] = GoalType.reading

    def current_value(self) -> int:
        return sum(1 for b in self.books if b.is_completed)


@dataclass(frozen=True, slots=True)
class FitnessInputs:
    sessions: list[TrainingSession] = field(default_factory=list)
    goal_type: ClassVar[GoalType] = GoalType.fitness

    def current_value(self) -> int:
        return len(self.sessions)


@dataclass(frozen=True, slots=True)
class ProgrammingInputs:
    # repository id -> that repository's weekly buckets
    commit_activity: dict[str, list[CommitActivity]] = field(default_factory=dict)
    goal_type: ClassVar[GoalType] = GoalType.programming

    def current_value(self) -> int:
        return sum(programming.total_commits(buckets) for buckets in self.commit_activity.values())


GoalInputs = Union[ReadingInputs, FitnessInputs, ProgrammingInputs]


async def _load_reading(store: EventStore, goal: Goal) -> ReadingInputs:
    return ReadingInputs(books=await store.list_books(goal.id))


async def _load_fitness(store: EventStore, goal: Goal) -> FitnessInputs:
    return FitnessInputs(sessions=await store.list_training_sessions(goal.id))


async def _load_programming(store: EventStore, goal: Goal) -> ProgrammingInputs:
    repos: list[GitHubRepository] = await store.list_repositories(goal.id)
    return ProgrammingInputs(
        commit_activity={r.id: await store.list_commit_activity(r.id) for r in repos},
    )


INPUT_LOADERS: dict[GoalType, Callable[[EventStore, Goal], Awaitable[GoalInputs]]] = {
    GoalType.reading: _load_reading,
    GoalType.fitness: _load_fitness,
    GoalType.programming: _load_programming,
}


async def load_inputs(store: EventStore, goal: Goal) -> GoalInputs:
    return await INPUT_LOADERS[goal.goal_type](store, goal)


def recompute_progress(goal: Goal, inputs: GoalInputs, now: datetime | None = None) -> None:
    """Write ``current_value`` and ``updated_at`` from the goal's inputs."""
    if inputs.goal_type != goal.goal_type:
        raise ValueError(f"{goal.goal_type.value} goal given {inputs.goal_type.value} inputs")
    goal.current_value = inputs.current_value()
    goal.updated_at = now or utcnow()


async def refresh_goal_progress(store: EventStore, goal_id: str) -> Goal | None:
    """Load, recompute and persist one goal. None if the goal is gone."""
    goal = await store.get_goal(goal_id)
    if goal is None:
        return None
    recompute_progress(goal, await load_inputs(store, goal))
    await store.save_goal(goal)
    return goal


async def remove_book(store: EventStore, book_id: str) -> bool:
    """Delete a book with its sessions and recount its goal. False if unknown."""
    book = await store.get_book(book_id)
    if book is None:
        return False
    await store.delete_book(book_id)
    await refresh_goal_progress(store, book.goal_id)
    return True


async def remove_repository(store: EventStore, repository_id: str) -> bool:
    """Delete a repository with its buckets and stars and recount its goal."""
    repo = await store.get_repository(repository_id)
    if repo is None:
        return False
    await store.delete_repository(repository_id)
    await refresh_goal_progress(store, repo.goal_id)
    return True


def progress_status(progress: float) -> str:
    """Map progress (0–1) to a status label."""
    if progress >= 1.0:
        return "green"
    if progress >= 0.5:
        return "yellow"
    return "red"


def days_remaining(goal: Goal, now: datetime | None = None) -> int:
    """Days until the end date, or until 31 Dec when there is none."""
    now = now or utcnow()
    end = goal.end_date or end_of_year(now)
    return max(0, whole_days_between(now, end))


def goal_summary(goal: Goal, now: datetime | None = None) -> GoalProgress:
    ratio = progress_ratio(goal.current_value, goal.target_value)
    return GoalProgress(
        goal_id=goal.id,
        title=goal.title,
        goal_type=goal.goal_type,
        current_value=goal.current_value,
        target_value=goal.target_value,
        progress=round(ratio, 4),
        progress_percentage=int(ratio * 100),
        status=progress_status(ratio),
        days_remaining=days_remaining(goal, now),
        updated_at=goal.updated_at,
    )
