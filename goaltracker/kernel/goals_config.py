"""Static per-goal-type configuration: no DB, config only.

Each GoalTypeDefinition names what ``current_value`` counts for that type
and the target offered when a goal is created without one.
"""

from __future__ import annotations

from dataclasses import dataclass

from goaltracker.config import settings
from goaltracker.errors import InvalidInput
from goaltracker.kernel.models import GoalType


@dataclass(frozen=True, slots=True)
class GoalTypeDefinition:
    goal_type: GoalType
    label: str
    unit: str  # what current_value counts
    default_target: int


GOAL_TYPES: dict[GoalType, GoalTypeDefinition] = {
    GoalType.reading: GoalTypeDefinition(
        goal_type=GoalType.reading,
        label="Book Reading",
        unit="books completed",
        default_target=settings.default_books_target,
    ),
    GoalType.fitness: GoalTypeDefinition(
        goal_type=GoalType.fitness,
        label="Fitness",
        unit="training sessions",
        default_target=settings.default_fitness_sessions_target,
    ),
    GoalType.programming: GoalTypeDefinition(
        goal_type=GoalType.programming,
        label="Programming",
        unit="commits",
        default_target=settings.default_commits_target,
    ),
}


def get_goal_type(goal_type: GoalType) -> GoalTypeDefinition:
    return GOAL_TYPES[goal_type]


def list_goal_types() -> list[GoalTypeDefinition]:
    return list(GOAL_TYPES.values())


def resolve_target(goal_type: GoalType, target_value: int | None) -> int:
    """Explicit target, or the type's default. Non-positive targets are rejected."""
    if target_value is None:
        return GOAL_TYPES[goal_type].default_target
    if target_value <= 0:
        raise InvalidInput("Target value must be positive")
    return target_value
