"""Fitness analytics: pace, weekly mileage, race prediction, personal records.

Pace is integer seconds per kilometre throughout. Functions never raise for
missing data; they return None or 0.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from goaltracker.config import settings
from goaltracker.errors import InvalidInput
from goaltracker.kernel.dates import as_aware, start_of_week, utcnow, whole_days_between
from goaltracker.kernel.models import (
    DistanceUnit,
    FitnessGoalConfig,
    FitnessSummary,
    PersonalRecord,
    PRCategory,
    RacePrediction,
    RaceType,
    RecordProgress,
    TrainingPhase,
    TrainingSession,
    WeeklyMileage,
    WorkoutType,
)
from goaltracker.kernel.store import EventStore

KM_PER_UNIT: dict[DistanceUnit, float] = {
    DistanceUnit.kilometers: 1.0,
    DistanceUnit.miles: 1.60934,
    DistanceUnit.meters: 0.001,
    DistanceUnit.yards: 0.0009144,
}

RACE_DISTANCES_KM: dict[RaceType, float] = {
    RaceType.five_k: 5.0,
    RaceType.ten_k: 10.0,
    RaceType.half_marathon: 21.0975,
    RaceType.marathon: 42.195,
    RaceType.triathlon: 51.5,  # Olympic distance, all three legs
}

PHASE_ORDER: tuple[TrainingPhase, ...] = (
    TrainingPhase.base,
    TrainingPhase.build,
    TrainingPhase.peak,
    TrainingPhase.taper,
    TrainingPhase.recovery,
)

PHASE_DESCRIPTIONS: dict[TrainingPhase, str] = {
    TrainingPhase.base: "Building aerobic foundation",
    TrainingPhase.build: "Increasing intensity and volume",
    TrainingPhase.peak: "Race-specific training",
    TrainingPhase.taper: "Reducing volume before race",
    TrainingPhase.recovery: "Post-race recovery",
}

LOWER_IS_BETTER = {PRCategory.running, PRCategory.cycling, PRCategory.swimming}


# ---------------------------------------------------------------------------
# Distance & pace
# ---------------------------------------------------------------------------

def distance_km(session: TrainingSession) -> float | None:
    if session.distance is None or session.distance_unit is None:
        return None
    return session.distance * KM_PER_UNIT[session.distance_unit]


def calculated_pace(session: TrainingSession) -> int | None:
    """Duration / distance, when both are present and positive."""
    km = distance_km(session)
    if km is None or km <= 0 or session.duration_minutes <= 0:
        return None
    return int((session.duration_minutes * 60) / km)


def effective_pace(session: TrainingSession) -> int | None:
    """Logged pace wins over the calculated one."""
    if session.pace_seconds_per_km is not None:
        return session.pace_seconds_per_km
    return calculated_pace(session)


def recent_pace(sessions: list[TrainingSession], count: int | None = None) -> int | None:
    """Mean effective pace of the most recent run sessions that have one."""
    if count is None:
        count = settings.recent_pace_sessions
    runs = sorted(
        (s for s in sessions if s.workout_type == WorkoutType.run and effective_pace(s) is not None),
        key=lambda s: s.date,
        reverse=True,
    )[:count]
    if not runs:
        return None
    paces = [effective_pace(s) or 0 for s in runs]
    return sum(paces) // len(paces)


def format_pace(seconds_per_km: int) -> str:
    minutes, seconds = divmod(int(seconds_per_km), 60)
    return f"{minutes}:{seconds:02d}/km"


def format_duration(total_seconds: int) -> str:
    hours, rem = divmod(int(total_seconds), 3600)
    minutes, seconds = divmod(rem, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


# ---------------------------------------------------------------------------
# Weekly mileage
# ---------------------------------------------------------------------------

def weekly_mileage(
    sessions: list[TrainingSession],
    now: datetime | None = None,
    weeks: int | None = None,
) -> list[WeeklyMileage]:
    """Kilometre totals per ISO week over the trailing window, oldest first.

    Only sessions logged in kilometres are counted. Weeks without sessions
    are present with distance 0.
    """
    now = now or utcnow()
    if weeks is None:
        weeks = settings.mileage_weeks
    current_week = start_of_week(now)
    first_week = start_of_week(now - timedelta(weeks=weeks))

    totals: dict[datetime, float] = {}
    for s in sessions:
        if s.distance_unit != DistanceUnit.kilometers or s.distance is None:
            continue
        week = start_of_week(s.date)
        if first_week <= week <= current_week:
            totals[week] = totals.get(week, 0.0) + s.distance

    result: list[WeeklyMileage] = []
    week = first_week
    while week <= current_week:
        result.append(
            WeeklyMileage(
                week_start=week,
                distance_km=round(totals.get(week, 0.0), 3),
                is_current_week=week == current_week,
            )
        )
        week += timedelta(weeks=1)
    return result


def average_weekly_mileage(weeks: list[WeeklyMileage]) -> float:
    """Average over weeks that had any distance."""
    active = [w.distance_km for w in weeks if w.distance_km > 0]
    if not active:
        return 0.0
    return sum(active) / len(active)


def peak_weekly_mileage(weeks: list[WeeklyMileage]) -> float:
    return max((w.distance_km for w in weeks), default=0.0)


def total_weekly_mileage(sessions: list[TrainingSession], now: datetime | None = None) -> float:
    """Kilometres logged in the last 7 days."""
    cutoff = (now or utcnow()) - timedelta(days=7)
    return sum(
        s.distance
        for s in sessions
        if as_aware(s.date) >= cutoff and s.distance_unit == DistanceUnit.kilometers and s.distance is not None
    )


def sessions_this_week(sessions: list[TrainingSession], now: datetime | None = None) -> int:
    week = start_of_week(now or utcnow())
    return sum(1 for s in sessions if start_of_week(s.date) == week)


# ---------------------------------------------------------------------------
# Race prediction
# ---------------------------------------------------------------------------

def race_distance_km(config: FitnessGoalConfig) -> float | None:
    if config.custom_distance_km is not None and config.custom_distance_km > 0:
        return config.custom_distance_km
    if config.race_type is None:
        return None
    return RACE_DISTANCES_KM.get(config.race_type)


def finish_time(config: FitnessGoalConfig, pace_seconds_per_km: int) -> int | None:
    distance = race_distance_km(config)
    if distance is None:
        return None
    return int(distance * pace_seconds_per_km)


def required_pace(config: FitnessGoalConfig, target_time_seconds: int) -> int | None:
    distance = race_distance_km(config)
    if distance is None or distance <= 0:
        return None
    return int(target_time_seconds / distance)


def days_until_race(config: FitnessGoalConfig, now: datetime | None = None) -> int | None:
    if config.race_date is None:
        return None
    return max(0, whole_days_between(now or utcnow(), config.race_date))


def predict_race(
    config: FitnessGoalConfig,
    sessions: list[TrainingSession],
    now: datetime | None = None,
) -> RacePrediction | None:
    """Linear finish-time prediction from recent pace. None without a distance."""
    distance = race_distance_km(config)
    if distance is None:
        return None

    pace = recent_pace(sessions)
    predicted = finish_time(config, pace) if pace is not None else None
    target = (
        finish_time(config, config.target_pace_seconds_per_km)
        if config.target_pace_seconds_per_km is not None
        else config.target_finish_time_seconds
    )
    needed = required_pace(config, config.target_finish_time_seconds) if config.target_finish_time_seconds else None
    days = days_until_race(config, now)

    return RacePrediction(
        race_distance_km=distance,
        recent_pace_seconds_per_km=pace,
        target_pace_seconds_per_km=config.target_pace_seconds_per_km,
        predicted_finish_seconds=predicted,
        target_finish_seconds=target,
        required_pace_seconds_per_km=needed,
        seconds_vs_target=predicted - target if predicted is not None and target is not None else None,
        days_until_race=days,
        weeks_until_race=days // 7 if days is not None else None,
    )


def phase_index(phase: TrainingPhase | None) -> int | None:
    """Position of a phase in the fixed display order."""
    if phase is None:
        return None
    return PHASE_ORDER.index(phase)


# ---------------------------------------------------------------------------
# Personal records
# ---------------------------------------------------------------------------

def is_improvement(record: PersonalRecord) -> bool:
    if record.previous_value is None:
        return True
    if record.category in LOWER_IS_BETTER:
        return record.value < record.previous_value
    return record.value > record.previous_value


def improvement(record: PersonalRecord) -> float | None:
    if record.previous_value is None:
        return None
    return record.value - record.previous_value


def improvement_percentage(record: PersonalRecord) -> float | None:
    if record.previous_value is None or record.previous_value <= 0:
        return None
    return (record.value - record.previous_value) / record.previous_value * 100.0


def best_records(records: list[PersonalRecord]) -> dict[str, PersonalRecord]:
    """Best record per exercise, honouring each category's direction."""
    best: dict[str, PersonalRecord] = {}
    for rec in records:
        current = best.get(rec.exercise)
        if current is None:
            best[rec.exercise] = rec
            continue
        if rec.category in LOWER_IS_BETTER:
            better = rec.value < current.value
        else:
            better = rec.value > current.value
        if better:
            best[rec.exercise] = rec
    return best


def record_progress(record: PersonalRecord) -> RecordProgress:
    return RecordProgress(
        record=record,
        is_improvement=is_improvement(record),
        improvement=improvement(record),
        improvement_percentage=improvement_percentage(record),
    )


async def log_personal_record(
    store: EventStore,
    goal_id: str,
    exercise: str,
    value: float,
    category: PRCategory = PRCategory.running,
    unit: str = "",
    achieved_date: datetime | None = None,
    notes: str | None = None,
) -> PersonalRecord:
    """Append a record, chained to the current best for the same exercise."""
    exercise = exercise.strip()
    if not exercise:
        raise InvalidInput("Exercise name is required")
    if value <= 0:
        raise InvalidInput("Record value must be positive")

    previous = best_records(await store.list_personal_records(goal_id)).get(exercise)
    record = PersonalRecord(
        goal_id=goal_id,
        exercise=exercise,
        category=category,
        value=value,
        unit=unit,
        achieved_date=achieved_date or utcnow(),
        previous_value=previous.value if previous else None,
        previous_date=previous.achieved_date if previous else None,
        notes=notes,
    )
    return await store.add_personal_record(record)


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

def fitness_summary(
    goal_id: str,
    sessions: list[TrainingSession],
    config: FitnessGoalConfig | None,
    now: datetime | None = None,
    records: list[PersonalRecord] | None = None,
) -> FitnessSummary:
    now = now or utcnow()
    phase = config.current_phase if config else None
    best = best_records(records or [])
    weeks = weekly_mileage(sessions, now)
    return FitnessSummary(
        goal_id=goal_id,
        session_count=len(sessions),
        recent_pace_seconds_per_km=recent_pace(sessions),
        weekly_mileage=weeks,
        average_weekly_mileage_km=round(average_weekly_mileage(weeks), 2),
        peak_weekly_mileage_km=peak_weekly_mileage(weeks),
        weekly_mileage_target_km=config.weekly_mileage_target_km if config else None,
        sessions_this_week=sessions_this_week(sessions, now),
        current_phase=phase,
        phase_index=phase_index(phase),
        phase_description=PHASE_DESCRIPTIONS.get(phase) if phase else None,
        race_prediction=predict_race(config, sessions, now) if config else None,
        personal_records=[record_progress(r) for _, r in sorted(best.items())],
    )
