"""Integration ports (workout tracker, habit tracker)."""

from decider.services.integrations.interface import (
    HabitTrackerInterface,
    IntegrationError,
    WorkoutSourceInterface,
)

__all__ = [
    "HabitTrackerInterface",
    "IntegrationError",
    "WorkoutSourceInterface",
]
