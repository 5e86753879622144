"""
Workout analysis.

Reads logged workouts and turns them into the counts the bonus and
violation engines compare against rules.
"""

from datetime import date, timedelta

import structlog

from decider.models.activity import WeeklyPerformance, Workout, WorkoutType
from decider.services.storage import WorkoutStorageInterface

logger = structlog.get_logger(__name__)

STREAK_LOOKBACK_DAYS = 30


class WorkoutAnalyzer:
    """Weekly performance, streaks and ingestion of synced workouts."""

    def __init__(self, storage: WorkoutStorageInterface):
        self._storage = storage

    async def get_workouts_for_date(self, on_date: date) -> list[Workout]:
        return await self._storage.list_workouts(date_from=on_date, date_to=on_date)

    async def record_new(self, workouts: list[Workout]) -> list[Workout]:
        """
        Store workouts not seen before.

        A workout with an external_id already in storage is skipped, so
        re-syncing the same day does not double count.
        """
        created = []
        for workout in workouts:
            if workout.external_id:
                existing = await self._storage.get_workout_by_external_id(workout.external_id)
                if existing:
                    continue
            created.append(await self._storage.create_workout(workout))

        if created:
            logger.info("workouts_recorded", count=len(created))
        return created

    async def analyze_weekly_performance(self, week_start: date, week_end: date) -> WeeklyPerformance:
        workouts = await self._storage.list_workouts(date_from=week_start, date_to=week_end)
        return self.summarize(workouts)

    @staticmethod
    def summarize(workouts: list[Workout]) -> WeeklyPerformance:
        performance = WeeklyPerformance(total_sessions=len(workouts))
        for workout in workouts:
            if workout.type == WorkoutType.YOGA:
                performance.yoga_sessions += 1
            elif workout.type == WorkoutType.LIFTING:
                performance.lifting_sessions += 1
            elif workout.type == WorkoutType.CARDIO:
                performance.cardio_sessions += 1
            performance.total_duration += workout.duration
            performance.total_calories += workout.calories

        if performance.total_sessions:
            performance.average_duration = round(
                performance.total_duration / performance.total_sessions
            )
        return performance

    async def analyze_streak(self, as_of: date) -> int:
        """Consecutive days ending at `as_of` with at least one workout (max 30)."""
        start = as_of - timedelta(days=STREAK_LOOKBACK_DAYS - 1)
        workouts = await self._storage.list_workouts(date_from=start, date_to=as_of)
        active_days = {w.workout_date for w in workouts}

        streak = 0
        day = as_of
        while day in active_days and streak < STREAK_LOOKBACK_DAYS:
            streak += 1
            day -= timedelta(days=1)
        return streak
