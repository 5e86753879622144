"""
Reconciliation Result Models

Structured output of the daily and weekly runs. The summary string is
the human-readable digest; everything else is there so callers (and the
status endpoints) never have to parse it.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from decider.models.activity import HabitProgress, WeeklyHabitsEntry, WeeklyPerformance, Workout
from decider.models.bonuses import AwardedBonus, Bonus
from decider.models.ledger import DebtPayment, DebtSummary, InterestApplication
from decider.models.money import ZERO
from decider.models.punishments import (
    ActiveAdjustments,
    EscalationResult,
    OverdueResolution,
    PendingSummary,
    Punishment,
    PunishmentCompletion,
    Violation,
)

T = TypeVar("T")


# =============================================================================
# BATCH RESULTS
# =============================================================================

class BatchFailure(BaseModel):
    item: Any
    error: str


class BatchResult(BaseModel, Generic[T]):
    """
    Outcome of a sequential batch where items may fail individually.

    Items are processed in order; a failure is recorded and the batch
    moves on. Callers decide whether partial success is acceptable.
    """

    succeeded: list[T] = Field(default_factory=list)
    failed: list[BatchFailure] = Field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


class StepFailure(BaseModel):
    """A reconciliation step that failed and was replaced by an empty result."""

    step: str
    error_type: str
    error: str


# =============================================================================
# DAILY
# =============================================================================

class DailyReconciliationResult(BaseModel):
    run_date: date
    correlation_id: str

    # WorkoutIngest
    workouts: list[Workout] = Field(default_factory=list)
    workouts_ingested: int = 0

    # InterestApply
    interest: list[InterestApplication] = Field(default_factory=list)
    total_interest: Decimal = ZERO

    # OverdueSweep / CompletionCheck
    missed_punishments: list[OverdueResolution] = Field(default_factory=list)
    completed_punishments: list[PunishmentCompletion] = Field(default_factory=list)
    expired_overrides: int = 0

    # NewViolationCheck
    violations: list[Violation] = Field(default_factory=list)
    new_punishments: list[Punishment] = Field(default_factory=list)

    # EarningsProcess
    earnings: Decimal = ZERO
    debt_free: bool = True
    debt_payments: list[DebtPayment] = Field(default_factory=list)
    earnings_remaining: Decimal = ZERO

    # BonusAward
    bonuses: list[AwardedBonus] = Field(default_factory=list)
    failed_bonuses: list[BatchFailure] = Field(default_factory=list)
    bonus_total: Decimal = ZERO

    debt_summary: Optional[DebtSummary] = None
    step_failures: list[StepFailure] = Field(default_factory=list)
    summary: str = ""

    @property
    def new_debt_total(self) -> Decimal:
        return sum((m.debt_amount for m in self.missed_punishments), ZERO)


# =============================================================================
# WEEKLY
# =============================================================================

class WeeklyReconciliationResult(BaseModel):
    week_start: date
    week_end: date
    correlation_id: str

    # JobAppCount / WorkoutPerformance
    habit_counts: dict[str, int] = Field(default_factory=dict)
    performance: WeeklyPerformance = Field(default_factory=WeeklyPerformance)

    # RequirementCheck / ViolationAggregate
    violations: list[Violation] = Field(default_factory=list)
    violation_details: str = ""

    # PunishmentAssign
    escalation: EscalationResult = Field(default_factory=EscalationResult)

    # BonusAward
    bonuses: list[AwardedBonus] = Field(default_factory=list)
    failed_bonuses: list[BatchFailure] = Field(default_factory=list)
    bonus_total: Decimal = ZERO

    habits_entry: Optional[WeeklyHabitsEntry] = None
    habit_updates: list[dict[str, str]] = Field(default_factory=list)
    step_failures: list[StepFailure] = Field(default_factory=list)
    summary: str = ""


# =============================================================================
# STATUS VIEWS
# =============================================================================

class DailyStatus(BaseModel):
    """Read-only snapshot of the ledger for one day."""

    status_date: date
    debt_summary: DebtSummary
    debt_aging: dict[str, Decimal] = Field(default_factory=dict)
    pending: PendingSummary = Field(default_factory=PendingSummary)
    bonuses: list[Bonus] = Field(default_factory=list)
    bonus_total: Decimal = ZERO
    habit_progress: dict[str, HabitProgress] = Field(default_factory=dict)


class WeeklyStatus(BaseModel):
    week_start: date
    week_end: date
    habits_entry: Optional[WeeklyHabitsEntry] = None
    performance: WeeklyPerformance = Field(default_factory=WeeklyPerformance)
    bonuses: list[Bonus] = Field(default_factory=list)
    bonus_total: Decimal = ZERO
    punishments: list[Punishment] = Field(default_factory=list)
    adjustments: Optional[ActiveAdjustments] = None
