"""AI-assisted goal setup.

Asks a text generator for a JSON structure matching the goal type. Any
failure, whether a missing key, a network error or a malformed reply,
produces an ``unavailable`` suggestion rather than an error: goal creation
never depends on it.
"""

from __future__ import annotations

import json
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from goaltracker.errors import GoalTrackerError
from goaltracker.kernel.models import GoalType
from goaltracker.providers.text_generation import TextGenerator

logger = logging.getLogger(__name__)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BookMilestone(_CamelModel):
    title: str
    target_books: int


class ReadingSuggestion(_CamelModel):
    suggested_target: int | None = None
    milestones: list[BookMilestone] = Field(default_factory=list)
    reading_tips: list[str] = Field(default_factory=list)
    suggested_categories: list[str] = Field(default_factory=list)
    summary: str | None = None


class WorkoutBreakdown(_CamelModel):
    swim: float | None = None
    bike: float | None = None
    run: float | None = None
    strength: float | None = None
    recovery: float | None = None


class PhasePlan(_CamelModel):
    name: str
    weeks: int
    focus: str


class FitnessSuggestion(_CamelModel):
    suggested_weekly_hours: float | None = None
    weekly_breakdown: WorkoutBreakdown | None = None
    phase_structure: list[PhasePlan] = Field(default_factory=list)
    key_workouts: list[str] = Field(default_factory=list)
    summary: str | None = None


class ProgrammingMilestone(_CamelModel):
    title: str
    description: str


class ProgrammingSuggestion(_CamelModel):
    suggested_metrics: list[str] = Field(default_factory=list)
    milestones: list[ProgrammingMilestone] = Field(default_factory=list)
    focus_areas: list[str] = Field(default_factory=list)
    learning_resources: list[str] = Field(default_factory=list)
    summary: str | None = None


SUGGESTION_MODELS: dict[GoalType, type[BaseModel]] = {
    GoalType.reading: ReadingSuggestion,
    GoalType.fitness: FitnessSuggestion,
    GoalType.programming: ProgrammingSuggestion,
}


class GoalSuggestion(BaseModel):
    goal_type: GoalType
    available: bool
    structure: ReadingSuggestion | FitnessSuggestion | ProgrammingSuggestion | None = None
    raw: str | None = None  # the model's JSON, stored on Goal.ai_generated_structure
    error: str | None = None


_PROMPT_FIELDS: dict[GoalType, tuple[str, str]] = {
    GoalType.reading: (
        "Please suggest a structure for tracking this goal.",
        "- suggestedTarget: number of books (if not specified, suggest based on title)\n"
        "- milestones: array of milestone objects with {title, targetBooks}\n"
        "- readingTips: array of 3 practical tips\n"
        "- suggestedCategories: array of book categories/genres to consider\n",
    ),
    GoalType.fitness: (
        "Please suggest a training structure.",
        "- suggestedWeeklyHours: total weekly training hours\n"
        "- weeklyBreakdown: object with {swim, bike, run, strength, recovery} as hours per week\n"
        "- phaseStructure: array of training phases with {name, weeks, focus}\n"
        "- keyWorkouts: array of workout descriptions to include\n",
    ),
    GoalType.programming: (
        "Please suggest a structure for tracking this goal.",
        "- suggestedMetrics: array of metrics to track (e.g., commits, PRs, issues)\n"
        "- milestones: array of milestone objects with {title, description}\n"
        "- focusAreas: array of technical areas to focus on\n"
        "- learningResources: array of suggested resources\n",
    ),
}

_GOAL_NOUN = {
    GoalType.reading: "book reading",
    GoalType.fitness: "fitness",
    GoalType.programming: "programming",
}


def build_prompt(goal_type: GoalType, title: str, description: str | None = None) -> str:
    ask, fields = _PROMPT_FIELDS[goal_type]
    desc = f"\nDescription: {description}" if description else ""
    return (
        f'I\'m creating a {_GOAL_NOUN[goal_type]} goal titled "{title}".{desc}\n\n'
        f"{ask} Return a JSON object with:\n"
        f"{fields}"
        "- summary: a brief encouraging message about this goal\n\n"
        "Return ONLY valid JSON, no markdown code blocks or explanation."
    )


def extract_json(text: str) -> str:
    """Strip markdown fences and surrounding chatter down to the JSON object."""
    clean = text.strip()
    if clean.startswith("```json"):
        clean = clean[7:]
    elif clean.startswith("```"):
        clean = clean[3:]
    if clean.endswith("```"):
        clean = clean[:-3]
    clean = clean.strip()

    start, end = clean.find("{"), clean.rfind("}")
    if start != -1 and end > start:
        clean = clean[start : end + 1]
    return clean


def parse_suggestion(goal_type: GoalType, text: str) -> BaseModel:
    """Raises ValueError when the reply is not a valid structure."""
    clean = extract_json(text)
    try:
        return SUGGESTION_MODELS[goal_type].model_validate(json.loads(clean))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ValueError(f"Unparseable {goal_type.value} suggestion") from exc


async def suggest_goal_structure(
    generator: TextGenerator | None,
    goal_type: GoalType,
    title: str,
    description: str | None = None,
) -> GoalSuggestion:
    if generator is None:
        return GoalSuggestion(goal_type=goal_type, available=False, error="Text generation not configured")

    try:
        text = await generator.generate(build_prompt(goal_type, title, description))
        structure = parse_suggestion(goal_type, text)
    except GoalTrackerError as exc:
        logger.warning("Goal suggestion unavailable: %s", exc)
        return GoalSuggestion(goal_type=goal_type, available=False, error=exc.user_message)
    except ValueError as exc:
        logger.warning("Goal suggestion unavailable: %s", exc)
        return GoalSuggestion(goal_type=goal_type, available=False, error="Failed to parse suggestion")

    return GoalSuggestion(
        goal_type=goal_type,
        available=True,
        structure=structure,  # type: ignore[arg-type]
        raw=structure.model_dump_json(by_alias=True),
    )
