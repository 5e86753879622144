"""
Integration Ports

External services the reconciliation consults but does not own: the
workout tracker and the habit/task tracker. Concrete API clients live
outside this package; the core only sees these interfaces.

DESIGN DECISION: An unreachable or unauthorized integration must never
fail a reconciliation. Implementations raise IntegrationError, and every
call site catches it, logs it and carries on with an empty result.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from decider.models.activity import Workout
from decider.models.punishments import Punishment


class WorkoutSourceInterface(ABC):
    """Strava-shaped workout feed."""

    @abstractmethod
    async def fetch_workouts(self, on_date: date) -> list[Workout]:
        """
        Fetch workouts recorded on a date.

        Returned workouts carry external_id so they can be deduplicated
        against what is already stored.

        Raises:
            IntegrationError: If the tracker cannot be reached
        """
        pass


class HabitTrackerInterface(ABC):
    """Habitica-shaped habit and to-do tracker."""

    @abstractmethod
    async def get_completion_count(
        self,
        habit: str,
        start: date,
        end: date,
    ) -> int:
        """
        Count completions of a habit in a date range (inclusive).

        Args:
            habit: Habit key, e.g. 'job_applications', 'algoexpert_problems', 'office_days'

        Raises:
            IntegrationError: If the tracker cannot be reached
        """
        pass

    @abstractmethod
    async def create_punishment_todo(self, punishment: Punishment) -> Optional[str]:
        """Mirror a punishment as a to-do. Returns the tracker's task id."""
        pass

    @abstractmethod
    async def score_habit(self, habit: str, direction: str) -> None:
        """Score a habit 'up' or 'down'."""
        pass


class IntegrationError(Exception):
    """An external integration was unreachable, unauthorized or returned garbage."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"{service}: {message}")
