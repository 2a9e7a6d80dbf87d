"""Tests for fitness analytics: pace, mileage, race prediction, records."""

from __future__ import annotations

from datetime import timedelta

import pytest

from goaltracker.errors import InvalidInput
from goaltracker.kernel.fitness import (
    average_weekly_mileage,
    best_records,
    calculated_pace,
    distance_km,
    effective_pace,
    fitness_summary,
    format_duration,
    format_pace,
    improvement,
    improvement_percentage,
    is_improvement,
    log_personal_record,
    peak_weekly_mileage,
    phase_index,
    predict_race,
    record_progress,
    race_distance_km,
    recent_pace,
    sessions_this_week,
    total_weekly_mileage,
    weekly_mileage,
)
from goaltracker.kernel.models import (
    DistanceUnit,
    FitnessGoalConfig,
    PersonalRecord,
    PRCategory,
    RaceType,
    TrainingPhase,
    TrainingSession,
    WorkoutType,
)
from goaltracker.kernel.dates import start_of_week
from tests.conftest import NOW, make_run


class TestDistanceAndPace:
    def test_ten_km_in_fifty_minutes(self):
        assert effective_pace(make_run("g", 0, 10, 50)) == 300

    @pytest.mark.parametrize(
        "unit, distance, km",
        [
            (DistanceUnit.kilometers, 5.0, 5.0),
            (DistanceUnit.miles, 1.0, 1.60934),
            (DistanceUnit.meters, 1000.0, 1.0),
            (DistanceUnit.yards, 1000.0, 0.9144),
        ],
    )
    def test_unit_conversion(self, unit, distance, km):
        session = TrainingSession(goal_id="g", distance=distance, distance_unit=unit)
        assert distance_km(session) == pytest.approx(km)

    def test_no_distance(self):
        assert distance_km(TrainingSession(goal_id="g", duration_minutes=30)) is None
        assert calculated_pace(TrainingSession(goal_id="g", duration_minutes=30)) is None

    def test_zero_duration(self):
        assert calculated_pace(make_run("g", 0, 10, 0)) is None

    def test_explicit_pace_wins(self):
        assert effective_pace(make_run("g", 0, 10, 50, pace_seconds_per_km=280)) == 280


class TestRecentPace:
    def test_mean_of_five_most_recent_runs(self):
        paces = [300, 310, 320, 330, 340, 200]  # newest first; 200 falls outside
        sessions = [make_run("g", i, 5, 25, pace_seconds_per_km=p) for i, p in enumerate(paces)]
        sessions.append(
            TrainingSession(goal_id="g", workout_type=WorkoutType.bike, date=NOW, pace_seconds_per_km=100)
        )
        assert recent_pace(sessions) == 320

    def test_integer_floor(self):
        sessions = [make_run("g", 0, 5, 25, pace_seconds_per_km=301), make_run("g", 1, 5, 25, pace_seconds_per_km=302)]
        assert recent_pace(sessions) == 301

    def test_runs_without_pace_skipped(self):
        sessions = [TrainingSession(goal_id="g", date=NOW), make_run("g", 1, 10, 50)]
        assert recent_pace(sessions) == 300

    def test_none_without_runs(self):
        assert recent_pace([]) is None

    def test_explicit_zero_count(self):
        assert recent_pace([make_run("g", 0, 10, 50)], count=0) is None


class TestFormatting:
    def test_format_pace(self):
        assert format_pace(300) == "5:00/km"
        assert format_pace(325) == "5:25/km"

    def test_format_duration(self):
        assert format_duration(3725) == "1:02:05"
        assert format_duration(125) == "2:05"


class TestWeeklyMileage:
    def _sessions(self):
        return [
            make_run("g", 0, 10, 50),  # Wednesday, current week
            make_run("g", 1, 5, 30),  # Tuesday, current week
            make_run("g", 8, 8, 45),  # previous week
            TrainingSession(goal_id="g", date=NOW, distance=6, distance_unit=DistanceUnit.miles),
        ]

    def test_buckets(self):
        weeks = weekly_mileage(self._sessions(), NOW, weeks=4)
        assert len(weeks) == 5
        assert weeks[0].week_start == start_of_week(NOW - timedelta(weeks=4))
        assert weeks[-1].is_current_week
        assert weeks[-1].distance_km == 15.0
        assert weeks[-2].distance_km == 8.0
        assert [w.distance_km for w in weeks[:3]] == [0.0, 0.0, 0.0]

    def test_average_excludes_empty_weeks(self):
        weeks = weekly_mileage(self._sessions(), NOW, weeks=4)
        assert average_weekly_mileage(weeks) == 11.5
        assert peak_weekly_mileage(weeks) == 15.0

    def test_zero_weeks_is_current_week_only(self):
        weeks = weekly_mileage(self._sessions(), NOW, weeks=0)
        assert len(weeks) == 1
        assert weeks[0].is_current_week
        assert weeks[0].distance_km == 15.0

    def test_average_all_empty(self):
        assert average_weekly_mileage(weekly_mileage([], NOW, weeks=4)) == 0.0

    def test_last_seven_days(self):
        assert total_weekly_mileage(self._sessions(), NOW) == 15.0

    def test_sessions_this_week(self):
        assert sessions_this_week(self._sessions(), NOW) == 3


class TestRacePrediction:
    def test_distances(self):
        assert race_distance_km(FitnessGoalConfig(goal_id="g", race_type=RaceType.marathon)) == 42.195
        assert race_distance_km(FitnessGoalConfig(goal_id="g", race_type=RaceType.triathlon)) == 51.5
        assert race_distance_km(FitnessGoalConfig(goal_id="g", race_type=RaceType.custom)) is None

    def test_custom_distance_overrides(self):
        config = FitnessGoalConfig(goal_id="g", race_type=RaceType.ten_k, custom_distance_km=7.5)
        assert race_distance_km(config) == 7.5

    def test_predicted_vs_target(self):
        config = FitnessGoalConfig(
            goal_id="g",
            race_type=RaceType.ten_k,
            target_pace_seconds_per_km=300,
            race_date=NOW + timedelta(days=21),
        )
        sessions = [make_run("g", i, 5, 25, pace_seconds_per_km=320) for i in range(3)]
        prediction = predict_race(config, sessions, NOW)
        assert prediction.predicted_finish_seconds == 3200
        assert prediction.target_finish_seconds == 3000
        assert prediction.seconds_vs_target == 200
        assert prediction.days_until_race == 21
        assert prediction.weeks_until_race == 3

    def test_required_pace_from_finish_time(self):
        config = FitnessGoalConfig(goal_id="g", race_type=RaceType.half_marathon, target_finish_time_seconds=7200)
        prediction = predict_race(config, [], NOW)
        assert prediction.required_pace_seconds_per_km == 341
        assert prediction.predicted_finish_seconds is None
        assert prediction.target_finish_seconds == 7200

    def test_no_distance_no_prediction(self):
        assert predict_race(FitnessGoalConfig(goal_id="g"), [], NOW) is None

    def test_phase_order(self):
        assert phase_index(TrainingPhase.base) == 0
        assert phase_index(TrainingPhase.taper) == 3
        assert phase_index(None) is None


class TestPersonalRecords:
    def test_faster_time_is_improvement(self):
        pr = PersonalRecord(goal_id="g", exercise="5k", category=PRCategory.running, value=1200, previous_value=1250)
        assert is_improvement(pr)
        assert improvement(pr) == -50
        assert improvement_percentage(pr) == pytest.approx(-4.0)

    def test_heavier_lift_is_improvement(self):
        pr = PersonalRecord(goal_id="g", exercise="squat", category=PRCategory.strength, value=100, previous_value=90)
        assert is_improvement(pr)

    def test_first_record(self):
        pr = PersonalRecord(goal_id="g", exercise="squat", category=PRCategory.strength, value=100)
        assert is_improvement(pr)
        assert improvement(pr) is None

    def test_best_records_honour_direction(self):
        records = [
            PersonalRecord(goal_id="g", exercise="5k", category=PRCategory.running, value=1300),
            PersonalRecord(goal_id="g", exercise="5k", category=PRCategory.running, value=1200),
            PersonalRecord(goal_id="g", exercise="squat", category=PRCategory.strength, value=80),
            PersonalRecord(goal_id="g", exercise="squat", category=PRCategory.strength, value=95),
        ]
        best = best_records(records)
        assert best["5k"].value == 1200
        assert best["squat"].value == 95


class TestSummary:
    def test_fitness_summary(self):
        config = FitnessGoalConfig(
            goal_id="g",
            race_type=RaceType.five_k,
            current_phase=TrainingPhase.build,
            weekly_mileage_target_km=30,
        )
        sessions = [make_run("g", 0, 10, 50), make_run("g", 2, 5, 30)]
        summary = fitness_summary("g", sessions, config, NOW)
        assert summary.session_count == 2
        assert summary.recent_pace_seconds_per_km == 330
        assert summary.current_phase == TrainingPhase.build
        assert summary.phase_index == 1
        assert summary.phase_description == "Increasing intensity and volume"
        assert summary.weekly_mileage_target_km == 30
        assert summary.race_prediction.race_distance_km == 5.0

    def test_summary_without_config(self):
        summary = fitness_summary("g", [], None, NOW)
        assert summary.race_prediction is None
        assert summary.recent_pace_seconds_per_km is None
        assert summary.phase_index is None
        assert summary.personal_records == []

    def test_summary_lists_best_record_per_exercise(self):
        records = [
            PersonalRecord(goal_id="g", exercise="squat", category=PRCategory.strength, value=80),
            PersonalRecord(goal_id="g", exercise="squat", category=PRCategory.strength, value=95, previous_value=80),
            PersonalRecord(goal_id="g", exercise="5k", category=PRCategory.running, value=1300),
        ]
        summary = fitness_summary("g", [], None, NOW, records=records)
        assert [p.record.exercise for p in summary.personal_records] == ["5k", "squat"]
        squat = summary.personal_records[1]
        assert squat.record.value == 95
        assert squat.improvement == 15
        assert squat.is_improvement


class TestLogPersonalRecord:
    @pytest.mark.asyncio
    async def test_first_record_has_no_previous(self, store, fitness_goal):
        record = await log_personal_record(store, fitness_goal.id, "5k", 1250, achieved_date=NOW)
        assert record.previous_value is None
        assert await store.list_personal_records(fitness_goal.id) == [record]

    @pytest.mark.asyncio
    async def test_chained_to_current_best(self, store, fitness_goal):
        await log_personal_record(store, fitness_goal.id, "5k", 1250, achieved_date=NOW - timedelta(days=20))
        await log_personal_record(store, fitness_goal.id, "5k", 1300, achieved_date=NOW - timedelta(days=10))
        record = await log_personal_record(store, fitness_goal.id, "5k", 1200, achieved_date=NOW)
        assert record.previous_value == 1250
        assert record_progress(record).improvement_percentage == pytest.approx(-4.0)

    @pytest.mark.asyncio
    async def test_slower_attempt_is_not_an_improvement(self, store, fitness_goal):
        await log_personal_record(store, fitness_goal.id, "5k", 1200)
        record = await log_personal_record(store, fitness_goal.id, "5k", 1260)
        assert not record_progress(record).is_improvement

    @pytest.mark.asyncio
    async def test_rejects_blank_exercise_and_non_positive_value(self, store, fitness_goal):
        with pytest.raises(InvalidInput):
            await log_personal_record(store, fitness_goal.id, "  ", 10)
        with pytest.raises(InvalidInput):
            await log_personal_record(store, fitness_goal.id, "squat", 0)
        assert await store.list_personal_records(fitness_goal.id) == []
