"""
Reconciliation Orchestrators

This module ties together the engines and defines the two scheduled runs:
1. Daily  (workouts -> interest -> overdue -> completions -> violations
           -> earnings -> bonuses -> summary)
2. Weekly (habit counts -> workout performance -> requirements
           -> violations -> 3-route punishments -> bonuses -> summary)

DESIGN DECISION: Every step is best-effort.
- A failing step is logged, audited, recorded as a StepFailure and
  replaced by an empty result; later steps still run
- Reads of core aggregates (is the user debt-free? the closing debt
  summary) are NOT wrapped: a storage error there fails the whole run
- Nothing is retried and nothing is rolled back

Neither run carries an "already reconciled" guard. Daily interest is
guarded per debt (last_interest_date), but re-running a day can still
award the same per-occurrence bonuses twice; the scheduler must invoke
each period once.
"""

import random
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional, TypeVar
from uuid import UUID

import structlog

from decider.activity import (
    WeeklyHabitsService,
    WorkoutAnalyzer,
    previous_week,
    today_in,
    week_start_of,
)
from decider.audit import AuditLogger, create_correlation_id
from decider.bonuses import BonusEvaluator
from decider.config import Settings, get_settings
from decider.ledger import DebtLedger
from decider.models.activity import HabitCounter, WeeklyPerformance, Workout
from decider.models.bonuses import Bonus
from decider.models.money import ZERO, format_currency
from decider.models.results import (
    DailyReconciliationResult,
    StepFailure,
    WeeklyReconciliationResult,
)
from decider.punishments import MissedCheckinCheck, PunishmentEngine, ThreeRouteAssigner
from decider.queries import StatusQueries
from decider.rules import RulesCache, RulesStore
from decider.services.integrations import (
    HabitTrackerInterface,
    IntegrationError,
    WorkoutSourceInterface,
)
from decider.services.storage import (
    BalanceStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBalanceStorage,
    GoogleSheetsBonusStorage,
    GoogleSheetsCheckinStorage,
    GoogleSheetsClient,
    GoogleSheetsDebtStorage,
    GoogleSheetsHabitsStorage,
    GoogleSheetsPunishmentStorage,
    GoogleSheetsRuleStorage,
    GoogleSheetsWorkoutStorage,
    InMemoryStorage,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Habit tracker keys counted for the weekly run
WEEKLY_HABIT_KEYS = ("job_applications", "algoexpert_problems", "office_days", "reading", "dating")

# Sessions per week that count as full workout consistency (3 yoga + 3 lifting)
CONSISTENCY_TARGET = 6


class _Run:
    """Shared step runner for the daily and weekly orchestrators."""

    def __init__(self, audit_logger: Optional[AuditLogger]):
        self._audit_logger = audit_logger or AuditLogger()

    async def _best_effort(
        self,
        step: str,
        failures: list[StepFailure],
        correlation_id: UUID,
        action: Callable[[], Awaitable[T]],
        default: T,
    ) -> T:
        try:
            return await action()
        except Exception as e:
            logger.warning(
                "reconciliation_step_failed",
                step=step,
                error_type=type(e).__name__,
                error=str(e),
                correlation_id=str(correlation_id),
            )
            failures.append(StepFailure(step=step, error_type=type(e).__name__, error=str(e)))
            await self._audit_logger.log_step_failed(step, e, correlation_id)
            return default


# =============================================================================
# DAILY
# =============================================================================

class DailyReconciliation(_Run):
    """
    Runs one calendar day through the ledger.

    Steps (in order, no branching back):
    WorkoutIngest -> InterestApply -> OverdueSweep -> CompletionCheck
    -> NewViolationCheck -> EarningsProcess -> BonusAward -> SummaryGenerate
    """

    RUN_TYPE = "daily"

    def __init__(
        self,
        ledger: DebtLedger,
        bonuses: BonusEvaluator,
        punishments: PunishmentEngine,
        workouts: WorkoutAnalyzer,
        balances: BalanceStorageInterface,
        workout_source: Optional[WorkoutSourceInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        timezone: str = "America/Chicago",
    ):
        super().__init__(audit_logger)
        self._ledger = ledger
        self._bonuses = bonuses
        self._punishments = punishments
        self._workouts = workouts
        self._balances = balances
        self._workout_source = workout_source
        self._timezone = timezone

    async def run(self, run_date: Optional[date] = None) -> DailyReconciliationResult:
        """
        Reconcile `run_date` (default: today in the configured timezone).

        Raises:
            ReconciliationError: If a core aggregate could not be read
        """
        run_date = run_date or today_in(self._timezone)
        correlation_id = create_correlation_id()
        period = run_date.isoformat()

        await self._audit_logger.log_reconciliation_started(self.RUN_TYPE, period, correlation_id)
        try:
            result = await self._run(run_date, correlation_id)
        except Exception as e:
            logger.error("daily_reconciliation_failed", date=period, error=str(e))
            await self._audit_logger.log_reconciliation_failed(
                self.RUN_TYPE, period, str(e), correlation_id,
            )
            raise ReconciliationError(self.RUN_TYPE, period, str(e)) from e

        await self._audit_logger.log_reconciliation_completed(
            self.RUN_TYPE,
            period,
            result.summary,
            [f.step for f in result.step_failures],
            correlation_id,
        )
        return result

    async def _run(self, run_date: date, correlation_id: UUID) -> DailyReconciliationResult:
        result = DailyReconciliationResult(run_date=run_date, correlation_id=str(correlation_id))
        failures = result.step_failures

        # WorkoutIngest
        ingested = await self._best_effort(
            "workout_ingest", failures, correlation_id,
            lambda: self._ingest_workouts(run_date, correlation_id), [],
        )
        result.workouts_ingested = len(ingested)
        result.workouts = await self._best_effort(
            "workout_ingest", failures, correlation_id,
            lambda: self._workouts.get_workouts_for_date(run_date), [],
        )

        # InterestApply
        result.interest = await self._best_effort(
            "interest_apply", failures, correlation_id,
            lambda: self._ledger.apply_daily_interest(run_date), [],
        )
        result.total_interest = sum((i.interest_applied for i in result.interest), ZERO)
        if result.interest:
            await self._audit_logger.log_interest_applied(
                len(result.interest), str(result.total_interest), correlation_id,
            )

        # OverdueSweep
        result.missed_punishments = await self._best_effort(
            "overdue_sweep", failures, correlation_id,
            lambda: self._punishments.process_overdue(run_date), [],
        )
        for missed in result.missed_punishments:
            await self._audit_logger.log_punishment_missed(
                missed.punishment_id, missed.debt_id, str(missed.debt_amount), correlation_id,
            )
            await self._audit_logger.log_debt_created(
                missed.debt_id, f"Missed punishment: {missed.punishment_name}",
                str(missed.debt_amount), correlation_id,
            )
        result.expired_overrides = await self._best_effort(
            "overdue_sweep", failures, correlation_id,
            lambda: self._punishments.expire_policy_overrides(run_date), 0,
        )

        # CompletionCheck
        result.completed_punishments = await self._best_effort(
            "completion_check", failures, correlation_id,
            lambda: self._punishments.process_completions(run_date), [],
        )
        for completion in result.completed_punishments:
            await self._audit_logger.log_punishment_completed(
                completion.punishment_id, completion.workout_id, correlation_id,
            )

        # NewViolationCheck
        result.violations = await self._best_effort(
            "new_violation_check", failures, correlation_id,
            lambda: self._punishments.detect_daily_violations(run_date), [],
        )
        if result.violations:
            result.new_punishments = await self._best_effort(
                "new_violation_check", failures, correlation_id,
                lambda: self._punishments.assign_daily_punishments(result.violations, run_date),
                [],
            )
        for punishment in result.new_punishments:
            await self._audit_logger.log_punishment_assigned(
                punishment.id, punishment.name, punishment.minutes, None, correlation_id,
            )

        # EarningsProcess
        result.earnings = await self._best_effort(
            "earnings_process", failures, correlation_id,
            lambda: self._read_earnings(run_date), ZERO,
        )
        result.debt_free = await self._ledger.is_debt_free()
        if not result.debt_free and result.earnings > 0:
            allocation = await self._best_effort(
                "earnings_process", failures, correlation_id,
                lambda: self._ledger.apply_earnings_to_debt(result.earnings), None,
            )
            if allocation is not None:
                result.debt_payments = allocation.payments
                result.earnings_remaining = allocation.remaining
                for payment in allocation.payments:
                    await self._audit_logger.log_debt_payment(
                        payment.debt_id, str(payment.payment_amount),
                        str(payment.remaining_debt), correlation_id,
                    )

        # BonusAward
        candidates = await self._best_effort(
            "bonus_award", failures, correlation_id,
            lambda: self._evaluate_bonuses(result.workouts, result.earnings,
                                           result.debt_free, run_date),
            [],
        )
        if candidates:
            batch = await self._bonuses.award_bonuses(candidates)
            result.bonuses = batch.succeeded
            result.failed_bonuses = batch.failed
            for bonus in batch.succeeded:
                await self._audit_logger.log_bonus_awarded(
                    bonus.bonus_id, bonus.type.value, str(bonus.amount), correlation_id,
                )
            for failure in batch.failed:
                await self._audit_logger.log_bonus_failed(
                    str(failure.item), failure.error, correlation_id,
                )
        result.bonus_total = BonusEvaluator.get_total_bonus_amount(result.bonuses)

        # SummaryGenerate
        result.debt_summary = await self._ledger.get_debt_summary(run_date)
        result.summary = self.generate_summary(result)
        logger.info(
            "daily_reconciliation_complete",
            date=run_date.isoformat(),
            summary=result.summary,
            failed_steps=len(failures),
        )
        return result

    async def _ingest_workouts(self, run_date: date, correlation_id: UUID) -> list[Workout]:
        if not self._workout_source:
            return []
        try:
            fetched = await self._workout_source.fetch_workouts(run_date)
        except IntegrationError as e:
            logger.warning("integration_unavailable", service=e.service, error=str(e))
            await self._audit_logger.log_integration_error(e.service, str(e), correlation_id)
            return []
        return await self._workouts.record_new(fetched)

    async def _read_earnings(self, run_date: date) -> Decimal:
        snapshots = await self._balances.list_balances(on_or_before=run_date, limit=2)
        return DebtLedger.calculate_daily_earnings(snapshots)

    async def _evaluate_bonuses(
        self,
        workouts: list[Workout],
        earnings: Decimal,
        debt_free: bool,
        run_date: date,
    ) -> list[Bonus]:
        bonuses = await self._bonuses.evaluate_workout_bonuses(workouts, run_date)
        match = self._bonuses.evaluate_uber_match(earnings, debt_free, run_date)
        if match:
            bonuses.append(match)
        return bonuses

    @staticmethod
    def generate_summary(result: DailyReconciliationResult) -> str:
        parts = []

        if result.total_interest > 0:
            parts.append(f"Applied {format_currency(result.total_interest)} in daily interest.")
        if result.workouts:
            parts.append(f"Completed {len(result.workouts)} workout(s).")
        if result.new_debt_total > 0:
            parts.append(
                f"Assigned {format_currency(result.new_debt_total)} in new debt for violations."
            )
        if result.earnings > 0:
            if result.debt_payments:
                paid = sum((p.payment_amount for p in result.debt_payments), ZERO)
                parts.append(
                    f"Your {format_currency(result.earnings)} Uber earnings paid "
                    f"{format_currency(paid)} toward debt."
                )
            elif result.debt_free:
                parts.append(
                    f"Your {format_currency(result.earnings)} Uber earnings earned a matching bonus."
                )
        if result.bonus_total > 0:
            parts.append(f"Today's bonuses total {format_currency(result.bonus_total)}.")
        else:
            parts.append("No bonuses earned today.")
        if result.new_punishments:
            parts.append(f"Assigned {len(result.new_punishments)} new punishment(s).")
        if result.completed_punishments:
            parts.append(
                f"Completed {len(result.completed_punishments)} punishment assignment(s)."
            )

        return " ".join(parts) if parts else "No significant activity today."


# =============================================================================
# WEEKLY
# =============================================================================

class WeeklyReconciliation(_Run):
    """
    Closes out one Monday-Sunday week.

    Steps: JobAppCount -> WorkoutPerformance -> RequirementCheck
    -> ViolationAggregate -> PunishmentAssign (3-route) -> BonusAward
    -> HabitSync -> SummaryGenerate
    """

    RUN_TYPE = "weekly"

    def __init__(
        self,
        bonuses: BonusEvaluator,
        punishments: PunishmentEngine,
        assigner: ThreeRouteAssigner,
        workouts: WorkoutAnalyzer,
        habits: WeeklyHabitsService,
        habit_tracker: Optional[HabitTrackerInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        timezone: str = "America/Chicago",
    ):
        super().__init__(audit_logger)
        self._bonuses = bonuses
        self._punishments = punishments
        self._assigner = assigner
        self._workouts = workouts
        self._habits = habits
        self._habit_tracker = habit_tracker
        self._timezone = timezone

    async def run(
        self,
        week_start: Optional[date] = None,
        today: Optional[date] = None,
    ) -> WeeklyReconciliationResult:
        """
        Reconcile the week starting `week_start` (normalized to its Monday).

        Defaults to the last full Monday-Sunday week before `today`.

        Raises:
            ReconciliationError: If the run could not complete
        """
        today = today or today_in(self._timezone)
        if week_start is None:
            week_start, week_end = previous_week(today)
        else:
            week_start = week_start_of(week_start)
            week_end = week_start + timedelta(days=6)

        correlation_id = create_correlation_id()
        period = week_start.isoformat()

        await self._audit_logger.log_reconciliation_started(self.RUN_TYPE, period, correlation_id)
        try:
            result = await self._run(week_start, week_end, today, correlation_id)
        except Exception as e:
            logger.error("weekly_reconciliation_failed", week_start=period, error=str(e))
            await self._audit_logger.log_reconciliation_failed(
                self.RUN_TYPE, period, str(e), correlation_id,
            )
            raise ReconciliationError(self.RUN_TYPE, period, str(e)) from e

        await self._audit_logger.log_reconciliation_completed(
            self.RUN_TYPE,
            period,
            result.summary,
            [f.step for f in result.step_failures],
            correlation_id,
        )
        return result

    async def _run(
        self,
        week_start: date,
        week_end: date,
        today: date,
        correlation_id: UUID,
    ) -> WeeklyReconciliationResult:
        result = WeeklyReconciliationResult(
            week_start=week_start,
            week_end=week_end,
            correlation_id=str(correlation_id),
        )
        failures = result.step_failures

        # JobAppCount
        result.habit_counts = await self._best_effort(
            "job_app_count", failures, correlation_id,
            lambda: self._count_habits(week_start, week_end, correlation_id), {},
        )

        # WorkoutPerformance
        result.performance = await self._best_effort(
            "workout_performance", failures, correlation_id,
            lambda: self._workouts.analyze_weekly_performance(week_start, week_end),
            WeeklyPerformance(),
        )

        # RequirementCheck (workout, then career/office)
        result.violations = await self._best_effort(
            "requirement_check", failures, correlation_id,
            lambda: self._punishments.detect_weekly_violations(
                result.performance, result.habit_counts,
            ),
            [],
        )

        # ViolationAggregate
        result.violation_details = "; ".join(v.reason for v in result.violations)

        # PunishmentAssign
        if result.violations:
            escalation = await self._best_effort(
                "punishment_assign", failures, correlation_id,
                lambda: self._assigner.assign_weekly_violation_punishments(
                    total_violations=len(result.violations),
                    violation_details=result.violation_details,
                    week_start=week_start,
                    week_end=week_end,
                    assigned_on=today,
                ),
                None,
            )
            if escalation is not None:
                result.escalation = escalation
                for p in escalation.assignments:
                    await self._audit_logger.log_punishment_assigned(
                        p.id, p.name, p.minutes, p.route, correlation_id,
                    )

        # BonusAward
        candidates = await self._best_effort(
            "bonus_award", failures, correlation_id,
            lambda: self._evaluate_bonuses(week_start, result.performance, result.habit_counts),
            [],
        )
        if candidates:
            batch = await self._bonuses.award_bonuses(candidates)
            result.bonuses = batch.succeeded
            result.failed_bonuses = batch.failed
            for bonus in batch.succeeded:
                await self._audit_logger.log_bonus_awarded(
                    bonus.bonus_id, bonus.type.value, str(bonus.amount), correlation_id,
                )
            for failure in batch.failed:
                await self._audit_logger.log_bonus_failed(
                    str(failure.item), failure.error, correlation_id,
                )
        result.bonus_total = BonusEvaluator.get_total_bonus_amount(result.bonuses)

        # HabitSync
        result.habits_entry = await self._best_effort(
            "habit_sync", failures, correlation_id,
            lambda: self._sync_habits_entry(week_start, result.performance, result.habit_counts),
            None,
        )
        result.habit_updates = await self._best_effort(
            "habit_sync", failures, correlation_id,
            lambda: self._score_tracker_habits(result, correlation_id), [],
        )

        # SummaryGenerate
        result.summary = self.generate_summary(result)
        logger.info(
            "weekly_reconciliation_complete",
            week_start=week_start.isoformat(),
            summary=result.summary,
            failed_steps=len(failures),
        )
        return result

    async def _count_habits(
        self,
        week_start: date,
        week_end: date,
        correlation_id: UUID,
    ) -> dict[str, int]:
        """
        Weekly counts for career and lifestyle habits.

        Starts from the stored weekly counters, then takes the habit
        tracker's numbers where it answers. A key the tracker cannot
        provide and storage has never measured is left out, so it is
        not checked at all.
        """
        counts: dict[str, int] = {}
        entry = await self._habits.get_week(week_start)
        if entry:
            if entry.job_applications is not None:
                counts["job_applications"] = entry.job_applications
            if entry.office_days is not None:
                counts["office_days"] = entry.office_days

        if not self._habit_tracker:
            return counts

        for key in WEEKLY_HABIT_KEYS:
            try:
                counts[key] = await self._habit_tracker.get_completion_count(
                    key, week_start, week_end,
                )
            except IntegrationError as e:
                logger.warning("integration_unavailable", service=e.service, habit=key)
                await self._audit_logger.log_integration_error(e.service, str(e), correlation_id)
        return counts

    async def _evaluate_bonuses(
        self,
        week_start: date,
        performance: WeeklyPerformance,
        habit_counts: dict[str, int],
    ) -> list[Bonus]:
        bonuses = await self._bonuses.evaluate_weekly_bonuses(
            week_start, performance, habit_counts,
        )
        allowance = await self._bonuses.evaluate_base_allowance(week_start)
        if allowance:
            bonuses.append(allowance)
        return bonuses

    async def _sync_habits_entry(
        self,
        week_start: date,
        performance: WeeklyPerformance,
        habit_counts: dict[str, int],
    ):
        await self._habits.set_value(week_start, HabitCounter.YOGA, performance.yoga_sessions)
        entry = await self._habits.set_value(
            week_start, HabitCounter.LIFTING, performance.lifting_sessions,
        )
        if "job_applications" in habit_counts:
            entry = await self._habits.set_value(
                week_start, HabitCounter.JOB_APPLICATIONS, habit_counts["job_applications"],
            )
        if "office_days" in habit_counts:
            entry = await self._habits.set_value(
                week_start, HabitCounter.OFFICE, habit_counts["office_days"],
            )
        return entry

    async def _score_tracker_habits(
        self,
        result: WeeklyReconciliationResult,
        correlation_id: UUID,
    ) -> list[dict[str, str]]:
        """Score workout consistency and discipline on the habit tracker."""
        if not self._habit_tracker:
            return []

        updates = []
        performance = result.performance
        sessions = performance.yoga_sessions + performance.lifting_sessions
        consistency = min(sessions / CONSISTENCY_TARGET, 1.0)
        if consistency >= 0.8:
            updates.append(("workout_consistency", "up", "Good workout consistency"))
        elif consistency < 0.5:
            updates.append(("workout_consistency", "down", "Poor workout consistency"))

        if result.violations:
            updates.append(("discipline", "down", "Had weekly violations"))
        else:
            updates.append(("discipline", "up", "No weekly violations"))

        scored = []
        for habit, direction, reason in updates:
            try:
                await self._habit_tracker.score_habit(habit, direction)
            except IntegrationError as e:
                logger.warning("integration_unavailable", service=e.service, habit=habit)
                await self._audit_logger.log_integration_error(e.service, str(e), correlation_id)
                continue
            scored.append({"habit": habit, "direction": direction, "reason": reason})
        return scored

    @staticmethod
    def generate_summary(result: WeeklyReconciliationResult) -> str:
        parts = []
        performance = result.performance

        parts.append(
            f"Completed {performance.yoga_sessions} yoga and "
            f"{performance.lifting_sessions} lifting sessions."
        )
        if result.violations:
            parts.append(f"{len(result.violations)} weekly violation(s) detected.")
        else:
            parts.append("No weekly violations.")

        minutes = result.escalation.cardio_minutes
        if minutes > 0:
            parts.append(f"Assigned {minutes} minutes of punishment cardio.")
        if result.bonus_total > 0:
            parts.append(f"Weekly bonuses total {format_currency(result.bonus_total)}.")

        return " ".join(parts) if parts else "No significant weekly activity."


# =============================================================================
# WIRING
# =============================================================================

class AppComponents:
    """Everything the HTTP layer needs, wired to one storage backend."""

    def __init__(
        self,
        rules: RulesStore,
        ledger: DebtLedger,
        bonuses: BonusEvaluator,
        punishments: PunishmentEngine,
        assigner: ThreeRouteAssigner,
        daily: DailyReconciliation,
        weekly: WeeklyReconciliation,
        status: StatusQueries,
        audit_logger: AuditLogger,
        timezone: str,
    ):
        self.rules = rules
        self.ledger = ledger
        self.bonuses = bonuses
        self.punishments = punishments
        self.assigner = assigner
        self.daily = daily
        self.weekly = weekly
        self.status = status
        self.audit_logger = audit_logger
        self.timezone = timezone

    def today(self) -> date:
        return today_in(self.timezone)


def create_app_components(
    settings: Optional[Settings] = None,
    storage: Optional[InMemoryStorage] = None,
    workout_source: Optional[WorkoutSourceInterface] = None,
    habit_tracker: Optional[HabitTrackerInterface] = None,
    rng: Optional[random.Random] = None,
    rules_clock: Optional[Callable[[], float]] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use (default: get_settings())
        storage: An in-memory backend to use instead of the configured one.
                 When None, STORAGE_BACKEND decides ('google_sheets' or 'memory').
        workout_source: Workout tracker client, if any
        habit_tracker: Habit tracker client, if any
        rng: Randomness for punishment modalities (default: seeded from
             RECONCILE_RANDOM_SEED when set)
        rules_clock: Clock for the rules cache TTL
    """
    settings = settings or get_settings()
    app_settings = settings.app
    reconcile_settings = settings.reconciliation
    ledger_settings = settings.ledger

    stores: dict[str, Any]
    if storage is None and app_settings.storage_backend == "google_sheets":
        client = GoogleSheetsClient()
        stores = {
            "rules": GoogleSheetsRuleStorage(client),
            "debts": GoogleSheetsDebtStorage(client),
            "punishments": GoogleSheetsPunishmentStorage(client),
            "bonuses": GoogleSheetsBonusStorage(client),
            "workouts": GoogleSheetsWorkoutStorage(client),
            "habits": GoogleSheetsHabitsStorage(client),
            "checkins": GoogleSheetsCheckinStorage(client),
            "balances": GoogleSheetsBalanceStorage(client),
            "audit": GoogleSheetsAuditStorage(client),
        }
    else:
        memory = storage or InMemoryStorage()
        stores = {name: memory for name in (
            "rules", "debts", "punishments", "bonuses", "workouts",
            "habits", "checkins", "balances", "audit",
        )}

    audit_logger = AuditLogger(stores["audit"])
    if rng is None:
        rng = random.Random(reconcile_settings.random_seed)

    cache_kwargs = {"ttl_seconds": reconcile_settings.rules_cache_ttl_seconds}
    if rules_clock is not None:
        cache_kwargs["clock"] = rules_clock
    rules = RulesStore(stores["rules"], RulesCache(**cache_kwargs), audit_logger)

    ledger = DebtLedger(stores["debts"], ledger_settings, audit_logger)
    bonuses = BonusEvaluator(stores["bonuses"], rules)
    workouts = WorkoutAnalyzer(stores["workouts"])
    habits = WeeklyHabitsService(stores["habits"])
    punishments = PunishmentEngine(
        stores["punishments"],
        stores["workouts"],
        rules,
        ledger,
        checks=[MissedCheckinCheck(
            stores["checkins"],
            minutes=reconcile_settings.default_punishment_minutes,
        )],
        rng=rng,
        habit_tracker=habit_tracker,
        settings=reconcile_settings,
    )
    assigner = ThreeRouteAssigner(
        stores["punishments"],
        rng=rng,
        cardio_due_days=reconcile_settings.weekly_cardio_due_days,
    )

    daily = DailyReconciliation(
        ledger=ledger,
        bonuses=bonuses,
        punishments=punishments,
        workouts=workouts,
        balances=stores["balances"],
        workout_source=workout_source,
        audit_logger=audit_logger,
        timezone=reconcile_settings.timezone,
    )
    weekly = WeeklyReconciliation(
        bonuses=bonuses,
        punishments=punishments,
        assigner=assigner,
        workouts=workouts,
        habits=habits,
        habit_tracker=habit_tracker,
        audit_logger=audit_logger,
        timezone=reconcile_settings.timezone,
    )
    status = StatusQueries(ledger, punishments, assigner, bonuses, workouts, habits)

    return AppComponents(
        rules=rules,
        ledger=ledger,
        bonuses=bonuses,
        punishments=punishments,
        assigner=assigner,
        daily=daily,
        weekly=weekly,
        status=status,
        audit_logger=audit_logger,
        timezone=reconcile_settings.timezone,
    )


# =============================================================================
# EXCEPTIONS
# =============================================================================

class ReconciliationError(Exception):
    """A reconciliation run was aborted."""

    def __init__(self, run_type: str, period: str, message: str):
        self.run_type = run_type
        self.period = period
        super().__init__(message)
