"""Goal tracker domain models: Pydantic v2.

Ownership is one-way: children carry their parent's id and the store looks
them up by it. No model holds a reference to another model.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, computed_field


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class GoalType(str, Enum):
    reading = "reading"
    fitness = "fitness"
    programming = "programming"


class WorkoutType(str, Enum):
    swim = "swim"
    bike = "bike"
    run = "run"
    strength = "strength"
    recovery = "recovery"


class DistanceUnit(str, Enum):
    kilometers = "km"
    miles = "mi"
    meters = "m"
    yards = "yd"


class WorkoutIntent(str, Enum):
    easy = "easy"
    tempo = "tempo"
    interval = "interval"
    long_run = "long_run"
    recovery = "recovery"
    race = "race"
    strength = "strength"
    cross_training = "cross_training"


class FitnessGoalType(str, Enum):
    race_training = "race_training"
    strength_goal = "strength_goal"
    consistency_goal = "consistency_goal"
    custom_metric = "custom_metric"


class RaceType(str, Enum):
    five_k = "5k"
    ten_k = "10k"
    half_marathon = "half_marathon"
    marathon = "marathon"
    triathlon = "triathlon"
    custom = "custom"


class TrainingPhase(str, Enum):
    """Operator-set label. Order matters for display only."""

    base = "base"
    build = "build"
    peak = "peak"
    taper = "taper"
    recovery = "recovery"


class PRCategory(str, Enum):
    running = "running"
    cycling = "cycling"
    swimming = "swimming"
    strength = "strength"
    custom = "custom"


class AppPlatform(str, Enum):
    ios = "ios"
    macos = "macos"
    android = "android"
    web = "web"
    cross_platform = "cross_platform"


class RevenuePeriod(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


def progress_ratio(current_value: int, target_value: int) -> float:
    """Clamped to [0, 1]; 0 when the target is not positive."""
    if target_value <= 0:
        return 0.0
    return min(max(current_value / target_value, 0.0), 1.0)


# ---------------------------------------------------------------------------
# Goal
# ---------------------------------------------------------------------------

class Goal(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str
    description: str | None = None
    goal_type: GoalType
    target_value: int = 0
    current_value: int = 0  # materialized by progress.recompute_progress
    start_date: datetime = Field(default_factory=_now)
    end_date: datetime | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
    is_archived: bool = False
    ai_generated_structure: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def progress(self) -> float:
        return progress_ratio(self.current_value, self.target_value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def progress_percentage(self) -> int:
        return int(self.progress * 100)


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------

class Book(BaseModel):
    id: str = Field(default_factory=_new_id)
    goal_id: str
    title: str
    author: str | None = None
    isbn: str | None = None
    cover_url: str | None = None
    description: str | None = None
    total_pages: int | None = None
    current_page: int = 0
    is_completed: bool = False
    started_reading_date: datetime | None = None
    last_read_date: datetime | None = None
    completion_date: datetime | None = None
    daily_page_goal: int | None = None
    created_at: datetime = Field(default_factory=_now)

    def mark_completed(self, now: datetime | None = None) -> None:
        self.is_completed = True
        self.completion_date = now or _now()
        if self.total_pages is not None:
            self.current_page = self.total_pages


class ReadingSession(BaseModel):
    id: str = Field(default_factory=_new_id)
    book_id: str
    date: datetime = Field(default_factory=_now)
    pages_read: int = 0
    duration_minutes: int = 0
    start_page: int = 0
    end_page: int = 0
    notes: str | None = None
    created_at: datetime = Field(default_factory=_now)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Fitness
# ---------------------------------------------------------------------------

class TrainingSession(BaseModel):
    id: str = Field(default_factory=_new_id)
    goal_id: str
    workout_type: WorkoutType = WorkoutType.run
    date: datetime = Field(default_factory=_now)
    duration_minutes: int = 0
    distance: float | None = None
    distance_unit: DistanceUnit | None = None
    pace_seconds_per_km: int | None = None
    workout_intent: WorkoutIntent | None = None
    heart_rate_avg: int | None = None
    heart_rate_max: int | None = None
    calories: int | None = None
    perceived_effort: int | None = None
    is_race: bool = False
    title: str | None = None
    notes: str | None = None
    created_at: datetime = Field(default_factory=_now)

    model_config = {"frozen": True}


class FitnessGoalConfig(BaseModel):
    id: str = Field(default_factory=_new_id)
    goal_id: str
    fitness_goal_type: FitnessGoalType = FitnessGoalType.consistency_goal

    # Race training
    race_type: RaceType | None = None
    race_date: datetime | None = None
    race_name: str | None = None
    target_pace_seconds_per_km: int | None = None
    target_finish_time_seconds: int | None = None
    custom_distance_km: float | None = None

    # Training plan
    current_phase: TrainingPhase | None = None
    phase_start_date: datetime | None = None
    phase_end_date: datetime | None = None
    weekly_mileage_target_km: float | None = None

    # Strength
    target_exercise: str | None = None
    target_weight: float | None = None
    target_reps: int | None = None
    weight_unit: str = "kg"

    # Consistency
    sessions_per_week: int | None = None
    minimum_duration_minutes: int | None = None

    # Custom metric
    metric_name: str | None = None
    metric_unit: str | None = None
    target_metric_value: float | None = None

    created_at: datetime = Field(default_factory=_now)


class PersonalRecord(BaseModel):
    id: str = Field(default_factory=_new_id)
    goal_id: str
    exercise: str
    category: PRCategory = PRCategory.running
    value: float
    unit: str = ""
    achieved_date: datetime = Field(default_factory=_now)
    previous_value: float | None = None
    previous_date: datetime | None = None
    notes: str | None = None
    created_at: datetime = Field(default_factory=_now)


# ---------------------------------------------------------------------------
# Programming
# ---------------------------------------------------------------------------

class GitHubRepository(BaseModel):
    id: str = Field(default_factory=_new_id)
    goal_id: str
    repo_id: int = 0
    name: str
    full_name: str
    description: str | None = None
    html_url: str = ""
    language: str | None = None
    star_count: int = 0
    fork_count: int = 0
    open_issues_count: int = 0
    is_private: bool = False
    default_branch: str = "main"
    last_synced_at: datetime | None = None
    created_at: datetime = Field(default_factory=_now)

    @property
    def owner_name(self) -> str:
        return self.full_name.split("/")[0] if self.full_name else ""

    @property
    def repo_name(self) -> str:
        return self.full_name.split("/")[-1] if self.full_name else self.name


class CommitActivity(BaseModel):
    id: str = Field(default_factory=_new_id)
    repository_id: str
    week_start_date: datetime
    commit_count: int = 0
    additions: int = 0
    deletions: int = 0

    model_config = {"frozen": True}


class StarHistory(BaseModel):
    id: str = Field(default_factory=_new_id)
    repository_id: str
    date: datetime = Field(default_factory=_now)
    star_count: int = 0
    fork_count: int = 0
    watcher_count: int = 0
    open_issues_count: int = 0

    model_config = {"frozen": True}


class AppProject(BaseModel):
    id: str = Field(default_factory=_new_id)
    goal_id: str
    name: str
    platform: AppPlatform = AppPlatform.ios
    app_store_id: str | None = None
    bundle_id: str | None = None
    description: str | None = None
    launch_date: datetime | None = None
    current_version: str | None = None
    website_url: str | None = None
    created_at: datetime = Field(default_factory=_now)


class RevenueEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    project_id: str
    date: datetime = Field(default_factory=_now)
    period: RevenuePeriod = RevenuePeriod.monthly
    gross_revenue: float = 0.0
    net_revenue: float = 0.0
    currency: str = "USD"
    downloads: int | None = None
    notes: str | None = None
    created_at: datetime = Field(default_factory=_now)

    model_config = {"frozen": True}


class AppMetricSnapshot(BaseModel):
    id: str = Field(default_factory=_new_id)
    project_id: str
    date: datetime = Field(default_factory=_now)
    downloads: int = 0
    daily_active_users: int | None = None
    monthly_active_users: int | None = None
    rating: float | None = None
    rating_count: int | None = None
    crash_free_rate: float | None = None

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Derived / response objects
# ---------------------------------------------------------------------------

class GoalProgress(BaseModel):
    goal_id: str
    title: str
    goal_type: GoalType
    current_value: int
    target_value: int
    progress: float
    progress_percentage: int
    status: str  # "red" | "yellow" | "green"
    days_remaining: int
    updated_at: datetime


class ReadingStats(BaseModel):
    book_id: str
    reading_progress: float
    pages_remaining: int | None = None
    average_pages_per_day: float
    estimated_days_to_complete: int | None = None
    estimated_completion_date: datetime | None = None
    reading_streak: int
    total_pages_read: int
    total_reading_minutes: int
    average_pages_per_hour: float


class WeeklyMileage(BaseModel):
    week_start: datetime
    distance_km: float
    is_current_week: bool = False


class RacePrediction(BaseModel):
    race_distance_km: float
    recent_pace_seconds_per_km: int | None = None
    target_pace_seconds_per_km: int | None = None
    predicted_finish_seconds: int | None = None
    target_finish_seconds: int | None = None
    required_pace_seconds_per_km: int | None = None
    seconds_vs_target: int | None = None  # negative = ahead of target
    days_until_race: int | None = None
    weeks_until_race: int | None = None


class RecordProgress(BaseModel):
    record: PersonalRecord
    is_improvement: bool
    improvement: float | None = None
    improvement_percentage: float | None = None


class FitnessSummary(BaseModel):
    goal_id: str
    session_count: int
    recent_pace_seconds_per_km: int | None = None
    weekly_mileage: list[WeeklyMileage] = Field(default_factory=list)
    average_weekly_mileage_km: float = 0.0
    peak_weekly_mileage_km: float = 0.0
    weekly_mileage_target_km: float | None = None
    sessions_this_week: int = 0
    current_phase: TrainingPhase | None = None
    phase_index: int | None = None
    phase_description: str | None = None
    race_prediction: RacePrediction | None = None
    personal_records: list[RecordProgress] = Field(default_factory=list)


class RepositoryStats(BaseModel):
    repository_id: str
    full_name: str
    total_commits: int
    total_additions: int
    total_deletions: int
    recent_commits: int
    star_count: int
    star_growth_this_week: int
    star_growth_this_month: int
    average_daily_star_growth: float
    projected_stars_30d: int | None = None
    needs_sync: bool
    last_synced_at: datetime | None = None


class RevenueSummary(BaseModel):
    project_id: str
    total_revenue: float
    total_gross_revenue: float
    this_month_revenue: float
    last_month_revenue: float
    revenue_growth_percentage: float | None = None
    total_downloads: int
    latest_rating: float | None = None
