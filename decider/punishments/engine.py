"""
Violation & Punishment Engine

DESIGN DECISION: Punishments and the ledger meet at exactly one point:
a cardio punishment that passes its due date becomes a debt.

DAILY:
- Registered checks report violations for the day
- Each violation becomes a cardio punishment due after a grace period,
  unless a pending punishment for the same reason was already assigned
  that day

SWEEPS:
- Overdue: pending cardio past its due date -> missed + one debt
- Completion: one qualifying cardio workout completes one punishment
- Policy overrides (routes 2 and 3) are closed once their period ends

WEEKLY:
- Workout and career counts are compared against requirement rules;
  shortfalls on punishable rules become violations for the 3-route
  assigner
"""

import random
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

import structlog

from decider.config import ReconciliationSettings
from decider.ledger import DebtLedger
from decider.models.activity import WeeklyPerformance, Workout, WorkoutType
from decider.models.punishments import (
    CardioModality,
    OverdueResolution,
    PendingSummary,
    Punishment,
    PunishmentCategory,
    PunishmentCompletion,
    PunishmentStatus,
    Violation,
    ViolationCategory,
)
from decider.punishments.checks import DailyCheck
from decider.rules import RulesStore
from decider.rules import names
from decider.services.integrations import HabitTrackerInterface, IntegrationError
from decider.services.storage import PunishmentStorageInterface, WorkoutStorageInterface

logger = structlog.get_logger(__name__)


# (violation type, habit count key, requirement rule, what is counted)
WORKOUT_REQUIREMENTS = (
    ("weekly_yoga_shortfall", "yoga_sessions", names.WEEKLY_YOGA_REQUIREMENT, "yoga sessions"),
    ("weekly_lifting_shortfall", "lifting_sessions", names.WEEKLY_LIFTING_REQUIREMENT,
     "lifting sessions"),
)
CAREER_REQUIREMENTS = (
    ("job_applications_shortfall", "job_applications", names.JOB_APPLICATIONS_MINIMUM,
     "job applications"),
    ("algoexpert_shortfall", "algoexpert_problems", names.ALGOEXPERT_MINIMUM,
     "AlgoExpert problems"),
    ("office_attendance_shortfall", "office_days", names.OFFICE_ATTENDANCE_MINIMUM,
     "office days"),
)


class PunishmentEngine:
    """Daily violations, punishment sweeps and weekly violation detection."""

    def __init__(
        self,
        storage: PunishmentStorageInterface,
        workouts: WorkoutStorageInterface,
        rules: RulesStore,
        ledger: DebtLedger,
        checks: Optional[list[DailyCheck]] = None,
        rng: Optional[random.Random] = None,
        habit_tracker: Optional[HabitTrackerInterface] = None,
        settings: Optional[ReconciliationSettings] = None,
    ):
        self._storage = storage
        self._workouts = workouts
        self._rules = rules
        self._ledger = ledger
        self._checks = list(checks or [])
        self._rng = rng or random.Random()
        self._habit_tracker = habit_tracker
        self._settings = settings or ReconciliationSettings()

    # =========================================================================
    # DAILY VIOLATIONS
    # =========================================================================

    async def detect_daily_violations(self, on_date: date) -> list[Violation]:
        violations = []
        for check in self._checks:
            violations.extend(await check(on_date))
        return violations

    async def assign_daily_punishments(
        self,
        violations: list[Violation],
        on_date: date,
    ) -> list[Punishment]:
        """One cardio punishment per violation, skipping ones already assigned today."""
        assigned_today = await self._storage.list_punishments(
            status=PunishmentStatus.PENDING,
            assigned_from=on_date,
            assigned_to=on_date,
        )

        created = []
        for violation in violations:
            if any(violation.reason in p.name for p in assigned_today + created):
                logger.info(
                    "duplicate_punishment_suppressed",
                    violation_type=violation.type,
                    date=str(on_date),
                )
                continue
            created.append(await self._create_daily_punishment(violation, on_date))
        return created

    async def _create_daily_punishment(self, violation: Violation, on_date: date) -> Punishment:
        minutes = violation.minutes or int(await self._rules.get_numeric_value(
            names.CARDIO_PUNISHMENT_MINUTES,
            Decimal(self._settings.default_punishment_minutes),
        ))
        modality = violation.punishment_type or self._rng.choice(list(CardioModality)).value

        punishment = await self._storage.create_punishment(Punishment(
            name=f"{violation.reason} - {on_date.isoformat()}",
            type=modality,
            minutes=minutes,
            date_assigned=on_date,
            due_date=on_date + timedelta(days=self._settings.punishment_grace_days),
            reason=violation.reason,
            category=PunishmentCategory.DAILY_VIOLATION,
        ))
        logger.info(
            "punishment_assigned",
            punishment_id=punishment.id,
            minutes=minutes,
            type=modality,
        )
        await self._create_tracker_todo(punishment)
        return punishment

    async def _create_tracker_todo(self, punishment: Punishment) -> None:
        if not self._habit_tracker:
            return
        try:
            await self._habit_tracker.create_punishment_todo(punishment)
        except IntegrationError as e:
            logger.warning(
                "integration_unavailable",
                service=e.service,
                error=str(e),
                punishment_id=punishment.id,
            )

    # =========================================================================
    # OVERDUE SWEEP
    # =========================================================================

    async def find_overdue(self, current_date: date) -> list[Punishment]:
        """Pending cardio punishments whose due date is before `current_date`."""
        pending = await self._storage.list_punishments(status=PunishmentStatus.PENDING)
        return [
            p for p in pending
            if p.is_overdue(current_date) and not p.is_policy_override
        ]

    async def process_overdue(self, current_date: date) -> list[OverdueResolution]:
        """
        Mark overdue punishments missed, one debt each.

        Only pending punishments are considered, so a second sweep for the
        same date finds nothing and creates no further debt.
        """
        amount = await self._rules.get_numeric_value(
            names.MISSED_CARDIO_DEBT,
            self._ledger.settings.missed_punishment_debt_amount,
        )

        resolutions = []
        for punishment in await self.find_overdue(current_date):
            debt = await self._ledger.create_violation_debt(
                reason=punishment.name,
                on_date=current_date,
                amount=amount,
                name=f"Missed punishment: {punishment.name}",
            )
            await self._storage.update_punishment(
                punishment.model_copy(update={"status": PunishmentStatus.MISSED})
            )
            logger.info(
                "punishment_missed",
                punishment_id=punishment.id,
                debt_id=debt.id,
                debt_amount=str(debt.original_amount),
            )
            resolutions.append(OverdueResolution(
                punishment_id=punishment.id,
                punishment_name=punishment.name,
                debt_id=debt.id,
                debt_amount=debt.original_amount,
            ))
        return resolutions

    async def expire_policy_overrides(self, current_date: date) -> int:
        """Close savings/earnings overrides whose period has ended."""
        expired = 0
        for p in await self._storage.list_punishments(status=PunishmentStatus.PENDING):
            if p.is_policy_override and p.due_date < current_date:
                await self._storage.update_punishment(p.model_copy(update={
                    "status": PunishmentStatus.COMPLETED,
                    "date_completed": p.due_date,
                }))
                expired += 1
        return expired

    # =========================================================================
    # COMPLETION CHECK
    # =========================================================================

    async def process_completions(self, current_date: date) -> list[PunishmentCompletion]:
        """
        Match pending cardio punishments to logged cardio workouts.

        Punishments are taken earliest due first. Each gets the first
        unused cardio workout dated between its assignment and due dates
        that is at least as long as required. A workout completes at most
        one punishment, including punishments completed on earlier runs.
        """
        pending = [
            p for p in await self._storage.list_punishments(status=PunishmentStatus.PENDING)
            if not p.is_policy_override
        ]
        if not pending:
            return []

        earliest = min(p.date_assigned for p in pending)
        cardio = await self._workouts.list_workouts(
            date_from=earliest,
            date_to=current_date,
            workout_type=WorkoutType.CARDIO,
        )
        completed = await self._storage.list_punishments(status=PunishmentStatus.COMPLETED)
        used = {p.completed_by_workout_id for p in completed if p.completed_by_workout_id}

        completions = []
        for punishment in pending:
            workout = self._first_qualifying(punishment, cardio, used)
            if workout is None:
                continue
            used.add(workout.id)
            await self._storage.update_punishment(punishment.model_copy(update={
                "status": PunishmentStatus.COMPLETED,
                "date_completed": workout.workout_date,
                "completed_by_workout_id": workout.id,
            }))
            logger.info(
                "punishment_completed",
                punishment_id=punishment.id,
                workout_id=workout.id,
            )
            completions.append(PunishmentCompletion(
                punishment_id=punishment.id,
                punishment_name=punishment.name,
                workout_id=workout.id,
                workout_duration=workout.duration,
                required_minutes=punishment.minutes,
            ))
        return completions

    @staticmethod
    def _first_qualifying(
        punishment: Punishment,
        workouts: list[Workout],
        used: set[str],
    ) -> Optional[Workout]:
        for workout in workouts:
            if workout.id in used:
                continue
            if not punishment.date_assigned <= workout.workout_date <= punishment.due_date:
                continue
            if workout.duration >= punishment.minutes:
                return workout
        return None

    # =========================================================================
    # WEEKLY VIOLATIONS
    # =========================================================================

    async def detect_weekly_violations(
        self,
        performance: WeeklyPerformance,
        habit_counts: dict[str, int],
    ) -> list[Violation]:
        """
        Compare the week's counts with requirement rules.

        A requirement rule marked not punishable only forfeits bonuses and
        is skipped here. A missing rule is enforced with its default.
        Career counts missing from `habit_counts` (tracker unavailable)
        are not checked.
        """
        violations = []
        workout_counts = {
            "yoga_sessions": performance.yoga_sessions,
            "lifting_sessions": performance.lifting_sessions,
        }

        for violation_type, key, rule_name, label in WORKOUT_REQUIREMENTS:
            violation = await self._check_requirement(
                violation_type, rule_name, label,
                actual=workout_counts[key],
                category=ViolationCategory.WORKOUT,
            )
            if violation:
                violations.append(violation)

        for violation_type, key, rule_name, label in CAREER_REQUIREMENTS:
            if key not in habit_counts:
                continue
            violation = await self._check_requirement(
                violation_type, rule_name, label,
                actual=habit_counts[key],
                category=ViolationCategory.CAREER,
            )
            if violation:
                violations.append(violation)

        return violations

    async def _check_requirement(
        self,
        violation_type: str,
        rule_name: str,
        label: str,
        actual: int,
        category: ViolationCategory,
    ) -> Optional[Violation]:
        rule = await self._rules.get_rule(rule_name)
        if rule is not None and not rule.punishable:
            return None

        required = await self._rules.get_threshold(rule_name)
        if actual >= required:
            return None
        return Violation(
            type=violation_type,
            reason=f"Only completed {actual}/{required} {label} this week",
            category=category,
            required=required,
            actual=Decimal(actual),
        )

    # =========================================================================
    # READS
    # =========================================================================

    async def get_pending_summary(self, as_of: date) -> PendingSummary:
        pending = [
            p for p in await self._storage.list_punishments(status=PunishmentStatus.PENDING)
            if not p.is_policy_override
        ]
        return PendingSummary(
            pending_count=len(pending),
            total_minutes=sum(p.minutes for p in pending),
            overdue_count=sum(1 for p in pending if p.is_overdue(as_of)),
            next_due_date=min((p.due_date for p in pending), default=None),
            punishments=pending,
        )

    async def get_punishments_for_week(self, week_start: date) -> list[Punishment]:
        """Weekly escalation records created for the violation week `week_start`."""
        return await self._storage.list_punishments(week_start=week_start)
