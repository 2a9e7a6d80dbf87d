"""Goal tracker HTTP router: goals, reading, fitness and revenue."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from goaltracker.auth import verify_api_key
from goaltracker.clients import get_book_client, get_text_generator
from goaltracker.config import settings
from goaltracker.db import get_store
from goaltracker.errors import InvalidInput, MissingRecord, ProviderError
from goaltracker.kernel import fitness, reading, revenue
from goaltracker.kernel.goals_config import resolve_target
from goaltracker.kernel.models import (
    AppMetricSnapshot,
    AppPlatform,
    AppProject,
    Book,
    DistanceUnit,
    FitnessGoalConfig,
    FitnessGoalType,
    FitnessSummary,
    Goal,
    GoalProgress,
    GoalType,
    PersonalRecord,
    PRCategory,
    RaceType,
    ReadingSession,
    ReadingStats,
    RecordProgress,
    RevenueEntry,
    RevenuePeriod,
    RevenueSummary,
    TrainingPhase,
    TrainingSession,
    WorkoutIntent,
    WorkoutType,
)
from goaltracker.kernel.progress import goal_summary, refresh_goal_progress, remove_book
from goaltracker.kernel.store import EventStore
from goaltracker.providers.books import BookSearchResult, GoogleBooksClient
from goaltracker.providers.suggestions import GoalSuggestion, suggest_goal_structure
from goaltracker.providers.text_generation import TextGenerator

router = APIRouter(tags=["goals"])


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class GoalCreate(BaseModel):
    title: str = Field(min_length=1)
    goal_type: GoalType
    description: str | None = None
    target_value: int | None = None  # None -> the goal type's default
    end_date: datetime | None = None
    ai_generated_structure: str | None = None


class BookCreate(BaseModel):
    title: str = Field(min_length=1)
    author: str | None = None
    isbn: str | None = None
    cover_url: str | None = None
    total_pages: int | None = Field(default=None, gt=0)
    daily_page_goal: int | None = None


class ReadingSessionCreate(BaseModel):
    pages_read: int
    duration_minutes: int = 0
    date: datetime | None = None
    notes: str | None = None


class TrainingSessionCreate(BaseModel):
    workout_type: WorkoutType = WorkoutType.run
    date: datetime | None = None
    duration_minutes: int = Field(default=0, ge=0)
    distance: float | None = Field(default=None, ge=0)
    distance_unit: DistanceUnit | None = None
    pace_seconds_per_km: int | None = Field(default=None, gt=0)
    workout_intent: WorkoutIntent | None = None
    perceived_effort: int | None = Field(default=None, ge=1, le=10)
    is_race: bool = False
    title: str | None = None
    notes: str | None = None


class FitnessConfigBody(BaseModel):
    fitness_goal_type: FitnessGoalType = FitnessGoalType.consistency_goal
    race_type: RaceType | None = None
    race_date: datetime | None = None
    race_name: str | None = None
    target_pace_seconds_per_km: int | None = Field(default=None, gt=0)
    target_finish_time_seconds: int | None = Field(default=None, gt=0)
    custom_distance_km: float | None = Field(default=None, gt=0)
    current_phase: TrainingPhase | None = None
    phase_start_date: datetime | None = None
    phase_end_date: datetime | None = None
    weekly_mileage_target_km: float | None = None
    target_exercise: str | None = None
    target_weight: float | None = None
    target_reps: int | None = None
    weight_unit: str = "kg"
    sessions_per_week: int | None = None
    minimum_duration_minutes: int | None = None
    metric_name: str | None = None
    metric_unit: str | None = None
    target_metric_value: float | None = None


class PersonalRecordCreate(BaseModel):
    exercise: str = Field(min_length=1)
    value: float
    category: PRCategory = PRCategory.running
    unit: str = ""
    achieved_date: datetime | None = None
    notes: str | None = None


class AppProjectCreate(BaseModel):
    name: str = Field(min_length=1)
    platform: AppPlatform = AppPlatform.ios
    app_store_id: str | None = None
    launch_date: datetime | None = None


class RevenueCreate(BaseModel):
    gross_revenue: float
    net_revenue: float | None = None  # None -> derived from the platform fee
    date: datetime | None = None
    period: RevenuePeriod = RevenuePeriod.monthly
    downloads: int | None = None
    currency: str = "USD"
    notes: str | None = None


class MetricSnapshotCreate(BaseModel):
    date: datetime | None = None
    downloads: int = Field(default=0, ge=0)
    daily_active_users: int | None = Field(default=None, ge=0)
    monthly_active_users: int | None = Field(default=None, ge=0)
    rating: float | None = Field(default=None, ge=0, le=5)
    rating_count: int | None = Field(default=None, ge=0)
    crash_free_rate: float | None = Field(default=None, ge=0)


class SuggestionRequest(BaseModel):
    goal_type: GoalType
    title: str = Field(min_length=1)
    description: str | None = None


async def _goal_or_404(store: EventStore, goal_id: str) -> Goal:
    goal = await store.get_goal(goal_id)
    if goal is None:
        raise HTTPException(status_code=404, detail=f"Goal not found: {goal_id}")
    return goal


async def _typed_goal_or_404(store: EventStore, goal_id: str, goal_type: GoalType) -> Goal:
    goal = await _goal_or_404(store, goal_id)
    if goal.goal_type != goal_type:
        raise HTTPException(status_code=422, detail=f"Goal {goal_id} is not a {goal_type.value} goal")
    return goal


# ---------------------------------------------------------------------------
# /goals
# ---------------------------------------------------------------------------


@router.get("/goals", response_model=list[GoalProgress])
async def goals_list(
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
    include_archived: bool = Query(default=False),
) -> list[GoalProgress]:
    return [goal_summary(g) for g in await store.list_goals(include_archived)]


@router.post("/goals", response_model=Goal, status_code=201)
async def goal_create(
    body: GoalCreate,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> Goal:
    try:
        target = resolve_target(body.goal_type, body.target_value)
    except InvalidInput as exc:
        raise HTTPException(status_code=422, detail=exc.user_message)
    goal = Goal(
        title=body.title,
        goal_type=body.goal_type,
        description=body.description,
        target_value=target,
        end_date=body.end_date,
        ai_generated_structure=body.ai_generated_structure,
    )
    return await store.add_goal(goal)


@router.post("/goals/suggestions", response_model=GoalSuggestion)
async def goal_suggestions(
    body: SuggestionRequest,
    generator: TextGenerator | None = Depends(get_text_generator),
    _: str = Depends(verify_api_key),
) -> GoalSuggestion:
    return await suggest_goal_structure(generator, body.goal_type, body.title, body.description)


@router.delete("/goals/{goal_id}", status_code=204)
async def goal_delete(
    goal_id: str,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> None:
    if not await store.delete_goal(goal_id):
        raise HTTPException(status_code=404, detail=f"Goal not found: {goal_id}")


@router.get("/goals/{goal_id}/progress", response_model=GoalProgress)
async def goal_progress(
    goal_id: str,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> GoalProgress:
    return goal_summary(await _goal_or_404(store, goal_id))


@router.post("/goals/{goal_id}/recompute", response_model=GoalProgress)
async def goal_recompute(
    goal_id: str,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> GoalProgress:
    goal = await refresh_goal_progress(store, goal_id)
    if goal is None:
        raise HTTPException(status_code=404, detail=f"Goal not found: {goal_id}")
    return goal_summary(goal)


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


@router.get("/books/search", response_model=list[BookSearchResult])
async def books_search(
    q: str | None = Query(default=None, description="Free-text query"),
    isbn: str | None = Query(default=None),
    books: GoogleBooksClient = Depends(get_book_client),
    _: str = Depends(verify_api_key),
) -> list[BookSearchResult]:
    try:
        if isbn:
            found = await books.search_by_isbn(isbn)
            return [found] if found else []
        return await books.search(q or "")
    except InvalidInput as exc:
        raise HTTPException(status_code=422, detail=exc.user_message)
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=exc.user_message)


@router.post("/goals/{goal_id}/books", response_model=Book, status_code=201)
async def book_create(
    goal_id: str,
    body: BookCreate,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> Book:
    await _typed_goal_or_404(store, goal_id, GoalType.reading)
    return await store.add_book(Book(goal_id=goal_id, **body.model_dump()))


@router.get("/books/{book_id}/stats", response_model=ReadingStats)
async def book_stats(
    book_id: str,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
    tz: str = Query(default=None, description="Timezone for streak days"),
) -> ReadingStats:
    book = await store.get_book(book_id)
    if book is None:
        raise HTTPException(status_code=404, detail=f"Book not found: {book_id}")
    sessions = await store.list_reading_sessions(book_id)
    try:
        return reading.reading_stats(book, sessions, tz_name=tz or settings.default_tz)
    except InvalidInput as exc:
        raise HTTPException(status_code=422, detail=exc.user_message)


@router.post("/books/{book_id}/sessions", response_model=ReadingSession, status_code=201)
async def book_log_session(
    book_id: str,
    body: ReadingSessionCreate,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> ReadingSession:
    book = await store.get_book(book_id)
    if book is None:
        raise HTTPException(status_code=404, detail=f"Book not found: {book_id}")
    try:
        return await reading.log_reading_session(
            store,
            book,
            pages_read=body.pages_read,
            duration_minutes=body.duration_minutes,
            date=body.date,
            notes=body.notes,
        )
    except InvalidInput as exc:
        raise HTTPException(status_code=422, detail=exc.user_message)


@router.delete("/books/{book_id}", status_code=204)
async def book_delete(
    book_id: str,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> None:
    if not await remove_book(store, book_id):
        raise HTTPException(status_code=404, detail=f"Book not found: {book_id}")


# ---------------------------------------------------------------------------
# Fitness
# ---------------------------------------------------------------------------


@router.post("/goals/{goal_id}/sessions", response_model=TrainingSession, status_code=201)
async def training_session_create(
    goal_id: str,
    body: TrainingSessionCreate,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> TrainingSession:
    await _typed_goal_or_404(store, goal_id, GoalType.fitness)
    fields = body.model_dump(exclude_none=True)
    session = await store.add_training_session(TrainingSession(goal_id=goal_id, **fields))
    await refresh_goal_progress(store, goal_id)
    return session


@router.put("/goals/{goal_id}/fitness/config", response_model=FitnessGoalConfig)
async def fitness_config_set(
    goal_id: str,
    body: FitnessConfigBody,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> FitnessGoalConfig:
    await _typed_goal_or_404(store, goal_id, GoalType.fitness)
    return await store.set_fitness_config(FitnessGoalConfig(goal_id=goal_id, **body.model_dump()))


@router.get("/goals/{goal_id}/fitness", response_model=FitnessSummary)
async def fitness_overview(
    goal_id: str,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> FitnessSummary:
    await _typed_goal_or_404(store, goal_id, GoalType.fitness)
    sessions = await store.list_training_sessions(goal_id)
    config = await store.get_fitness_config(goal_id)
    records = await store.list_personal_records(goal_id)
    return fitness.fitness_summary(goal_id, sessions, config, records=records)


@router.post("/goals/{goal_id}/records", response_model=PersonalRecord, status_code=201)
async def personal_record_create(
    goal_id: str,
    body: PersonalRecordCreate,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> PersonalRecord:
    await _typed_goal_or_404(store, goal_id, GoalType.fitness)
    try:
        return await fitness.log_personal_record(store, goal_id, **body.model_dump())
    except InvalidInput as exc:
        raise HTTPException(status_code=422, detail=exc.user_message)


@router.get("/goals/{goal_id}/records", response_model=list[RecordProgress])
async def personal_records_list(
    goal_id: str,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> list[RecordProgress]:
    await _typed_goal_or_404(store, goal_id, GoalType.fitness)
    return [fitness.record_progress(r) for r in await store.list_personal_records(goal_id)]


# ---------------------------------------------------------------------------
# App projects & revenue
# ---------------------------------------------------------------------------


@router.post("/goals/{goal_id}/projects", response_model=AppProject, status_code=201)
async def project_create(
    goal_id: str,
    body: AppProjectCreate,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> AppProject:
    await _typed_goal_or_404(store, goal_id, GoalType.programming)
    return await store.add_app_project(AppProject(goal_id=goal_id, **body.model_dump()))


@router.get("/projects/{project_id}/revenue", response_model=RevenueSummary)
async def project_revenue(
    project_id: str,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
    tz: str = Query(default=None, description="Timezone for month boundaries"),
) -> RevenueSummary:
    if await store.get_app_project(project_id) is None:
        raise HTTPException(status_code=404, detail=f"App project not found: {project_id}")
    entries = await store.list_revenue_entries(project_id)
    snapshots = await store.list_metric_snapshots(project_id)
    try:
        return revenue.revenue_summary(project_id, entries, snapshots, tz_name=tz or settings.default_tz)
    except InvalidInput as exc:
        raise HTTPException(status_code=422, detail=exc.user_message)


@router.post("/projects/{project_id}/revenue", response_model=RevenueEntry, status_code=201)
async def project_record_revenue(
    project_id: str,
    body: RevenueCreate,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> RevenueEntry:
    try:
        return await revenue.record_revenue(store, project_id, **body.model_dump())
    except MissingRecord as exc:
        raise HTTPException(status_code=404, detail=exc.user_message)
    except InvalidInput as exc:
        raise HTTPException(status_code=422, detail=exc.user_message)


@router.post("/projects/{project_id}/metrics", response_model=AppMetricSnapshot, status_code=201)
async def project_record_metrics(
    project_id: str,
    body: MetricSnapshotCreate,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> AppMetricSnapshot:
    snapshot = AppMetricSnapshot(project_id=project_id, **body.model_dump(exclude_none=True))
    try:
        return await store.add_metric_snapshot(snapshot)
    except MissingRecord as exc:
        raise HTTPException(status_code=404, detail=exc.user_message)
