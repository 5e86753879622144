"""Activity package: workouts, weekly habit counters and calendar helpers."""

from decider.activity.habits import WEEKLY_TARGETS, WeeklyHabitsService
from decider.activity.weeks import previous_week, today_in, week_bounds, week_start_of
from decider.activity.workouts import WorkoutAnalyzer

__all__ = [
    "WEEKLY_TARGETS",
    "WeeklyHabitsService",
    "WorkoutAnalyzer",
    "previous_week",
    "today_in",
    "week_bounds",
    "week_start_of",
]
