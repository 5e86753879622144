"""
Punishment & Violation Models

State machine for a punishment:

    pending ──(qualifying cardio logged by due date)──> completed
       │
       └──(due date passes)──> missed ──> new Debt

Weekly escalation (the "3-route" system) also produces policy-override
records (savings-rate and earnings-requirement increases) that share the
Punishment shape but are never completed by a workout.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================

class PunishmentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    MISSED = "missed"


class CardioModality(str, Enum):
    BIKE = "Bike"
    TREADMILL = "Treadmill"
    STAIRSTEPPER = "Stairstepper"
    RUN = "Run"


class PolicyOverrideType(str, Enum):
    SAVINGS_INCREASE = "Savings Increase"
    EARNINGS_INCREASE = "Earnings Increase"


class PunishmentCategory(str, Enum):
    DAILY_VIOLATION = "daily_violation"
    WEEKLY_CARDIO = "weekly_cardio"
    SAVINGS_INCREASE = "savings_increase"
    EARNINGS_INCREASE = "earnings_increase"


class ViolationCategory(str, Enum):
    DAILY = "daily_violation"
    WORKOUT = "workout_violation"
    CAREER = "career_violation"


# =============================================================================
# VIOLATION
# =============================================================================

class Violation(BaseModel):
    """A detected rule violation, daily or weekly."""
    model_config = ConfigDict(str_strip_whitespace=True)

    type: str = Field(..., min_length=1, description="e.g. missed_checkin")
    reason: str = Field(..., min_length=1)
    category: ViolationCategory = ViolationCategory.DAILY
    punishment_type: Optional[str] = None
    minutes: Optional[int] = Field(default=None, gt=0)
    required: Optional[Decimal] = None
    actual: Optional[Decimal] = None


# =============================================================================
# PUNISHMENT
# =============================================================================

class Punishment(BaseModel):
    """A cardio assignment or a weekly policy override."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(..., min_length=1, max_length=300)
    type: str = Field(
        ...,
        description="Cardio modality, 'Savings Increase' or 'Earnings Increase'"
    )
    minutes: int = Field(default=0, ge=0)
    date_assigned: date
    due_date: date
    status: PunishmentStatus = PunishmentStatus.PENDING
    reason: str = ""

    # Weekly escalation metadata
    route: Optional[int] = Field(default=None, ge=1, le=3)
    violation_count: Optional[int] = Field(default=None, ge=0)
    week_start: Optional[date] = None
    week_end: Optional[date] = None
    category: Optional[PunishmentCategory] = None
    escalation_level: Optional[int] = Field(default=None, ge=1, le=5)

    # Route-specific fields
    savings_rate_original: Optional[int] = None
    savings_rate_new: Optional[int] = None
    earnings_requirement_original: Optional[Decimal] = None
    earnings_requirement_new: Optional[Decimal] = None
    target_week_start: Optional[date] = None
    target_week_end: Optional[date] = None

    # Completion
    date_completed: Optional[date] = None
    completed_by_workout_id: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == PunishmentStatus.PENDING

    @property
    def is_policy_override(self) -> bool:
        return self.type in {t.value for t in PolicyOverrideType}

    def is_overdue(self, current_date: date) -> bool:
        return self.is_pending and self.due_date < current_date


# =============================================================================
# ENGINE RESULTS
# =============================================================================

class OverdueResolution(BaseModel):
    punishment_id: str
    punishment_name: str
    debt_id: str
    debt_amount: Decimal


class PunishmentCompletion(BaseModel):
    punishment_id: str
    punishment_name: str
    workout_id: str
    workout_duration: int
    required_minutes: int


class EscalationRoutes(BaseModel):
    route1_cardio: bool = False
    route2_savings: bool = False
    route3_earnings: bool = False


class EscalationResult(BaseModel):
    """Everything the 3-route assigner produced for one week."""

    total_violations: int = 0
    assignments_created: int = 0
    assignments: list[Punishment] = Field(default_factory=list)
    routes: EscalationRoutes = Field(default_factory=EscalationRoutes)

    @property
    def cardio_minutes(self) -> int:
        return sum(p.minutes for p in self.assignments if p.route == 1)


class EscalationValidation(BaseModel):
    violation_count: int
    severity: str
    escalation_level: str
    expected_routes: list[int]


class ActiveAdjustments(BaseModel):
    """Policy overrides in force for a week."""

    week_start: date
    savings_rate: Optional[int] = None
    earnings_requirement: Optional[Decimal] = None
    source_punishment_ids: list[str] = Field(default_factory=list)


class PunishmentSummary(BaseModel):
    """Reporting view of one week's 3-route assignments."""

    total_assignments: int = 0
    routes_activated: list[str] = Field(default_factory=list)
    total_cardio_minutes: int = 0
    savings_rate_new: Optional[int] = None
    earnings_requirement_new: Optional[Decimal] = None
    summary_text: str = "No punishments assigned"


class PendingSummary(BaseModel):
    """Outstanding cardio punishments as of a date."""

    pending_count: int = 0
    total_minutes: int = 0
    overdue_count: int = 0
    next_due_date: Optional[date] = None
    punishments: list[Punishment] = Field(default_factory=list)
