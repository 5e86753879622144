"""
Activity Models

Signals the reconciliation reads: workouts (synced from the workout
tracker), weekly habit counters, and morning check-ins.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from decider.models.money import ZERO


class WorkoutType(str, Enum):
    YOGA = "Yoga"
    LIFTING = "Lifting"
    CARDIO = "Cardio"
    OTHER = "Other"


class Workout(BaseModel):
    """A logged workout session."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    workout_date: date
    type: WorkoutType
    duration: int = Field(default=0, ge=0, description="Minutes")
    calories: int = Field(default=0, ge=0)
    source: str = Field(default="manual")
    external_id: Optional[str] = Field(
        default=None,
        description="Activity id in the external tracker (e.g. Strava)"
    )
    notes: Optional[str] = None

    @property
    def earns_bonus(self) -> bool:
        return self.type in (WorkoutType.YOGA, WorkoutType.LIFTING)


class WeeklyPerformance(BaseModel):
    """Workout totals for one week."""

    yoga_sessions: int = 0
    lifting_sessions: int = 0
    cardio_sessions: int = 0
    total_sessions: int = 0
    total_duration: int = 0
    total_calories: int = 0
    average_duration: int = 0


class HabitCounter(str, Enum):
    """Counters tracked on a WeeklyHabitsEntry."""
    YOGA = "yoga_sessions"
    LIFTING = "lifting_sessions"
    JOB_APPLICATIONS = "job_applications"
    UBER_EARNINGS = "uber_earnings"
    OFFICE = "office_days"
    COWORK = "cowork_sessions"


class WeeklyHabitsEntry(BaseModel):
    """
    Aggregate habit counters for one Monday-start week.

    One entry per week_start. Created on first access, then mutated by
    increment or absolute set. Never deleted by the reconciliation.

    job_applications and office_days come from the habit tracker rather
    than from workouts; None means nobody has measured them this week.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = ""
    week_start: date
    yoga_sessions: int = Field(default=0, ge=0)
    lifting_sessions: int = Field(default=0, ge=0)
    job_applications: Optional[int] = Field(default=None, ge=0)
    uber_earnings: Decimal = Field(default=ZERO, ge=0)
    office_days: Optional[int] = Field(default=None, ge=0)
    cowork_sessions: int = Field(default=0, ge=0)

    def model_post_init(self, __context) -> None:
        if not self.name:
            self.name = f"Week of {self.week_start.isoformat()}"


class HabitProgress(BaseModel):
    """Progress toward one weekly target, pro-rated to the current day."""

    current: Decimal
    target: int
    expected_so_far: Decimal
    on_track: bool


class CheckIn(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    checkin_date: date
    kind: str = "morning"
    checked_in_at: Optional[datetime] = None
