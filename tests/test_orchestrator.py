"""
Integration tests for the daily and weekly reconciliations.

Every test wires the real engines to InMemoryStorage through
create_app_components; only the external trackers are stubbed.
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import UUID

from decider.config import Settings
from decider.models.activity import CheckIn, Workout, WorkoutType
from decider.models.audit import AuditEventType
from decider.models.bonuses import BonusType
from decider.models.ledger import BalanceSnapshot, Debt
from decider.models.punishments import CardioModality, Punishment, PunishmentStatus
from decider.orchestrator import ReconciliationError, create_app_components
from decider.services.storage import InMemoryStorage, StorageError

from conftest import RUN_DATE, StubHabitTracker, StubWorkoutSource

# Monday after the week under test (2024-06-03 .. 2024-06-09)
WEEKLY_RUN_DAY = date(2024, 6, 10)
PREVIOUS_WEEK = date(2024, 6, 3)


class BrokenBalanceStorage(InMemoryStorage):
    async def list_balances(self, on_or_before=None, limit=2):
        raise StorageError("balance sheet unavailable")


class BrokenDebtStorage(InMemoryStorage):
    async def list_debts(self, *args, **kwargs):
        raise StorageError("debt sheet unavailable")


async def _seed_day(storage: InMemoryStorage, checked_in: bool = True) -> None:
    if checked_in:
        await storage.record_checkin(CheckIn(checkin_date=RUN_DATE))
    await storage.record_balance(BalanceSnapshot(
        snapshot_date=date(2024, 6, 11), account_b_balance=Decimal("100"),
    ))
    await storage.record_balance(BalanceSnapshot(
        snapshot_date=RUN_DATE, account_b_balance=Decimal("140"),
    ))


def _events(storage: InMemoryStorage, correlation_id: str, event_type: AuditEventType):
    return [
        e for e in storage.events
        if e.correlation_id == UUID(correlation_id) and e.event_type == event_type
    ]


class TestDailyReconciliation:
    """End-to-end daily runs."""

    async def test_debt_free_day_with_lifting_and_earnings(
        self, storage, components, workout_source,
    ):
        """Test the happy path: lifting bonus plus a full Uber match."""
        await _seed_day(storage)
        workout_source.workouts = [Workout(
            workout_date=RUN_DATE, type=WorkoutType.LIFTING, duration=45,
            external_id="strava-1",
        )]

        result = await components.daily.run(RUN_DATE)

        assert result.workouts_ingested == 1
        assert result.debt_free
        assert result.earnings == Decimal("40.00")
        assert {b.type for b in result.bonuses} == {BonusType.LIFTING, BonusType.UBER_MATCH}
        assert result.bonus_total == Decimal("50.00")
        assert result.step_failures == []
        assert result.summary == (
            "Completed 1 workout(s). "
            "Your $40.00 Uber earnings earned a matching bonus. "
            "Today's bonuses total $50.00."
        )

        cid = result.correlation_id
        assert len(_events(storage, cid, AuditEventType.RECONCILIATION_STARTED)) == 1
        assert len(_events(storage, cid, AuditEventType.RECONCILIATION_COMPLETED)) == 1
        assert len(_events(storage, cid, AuditEventType.BONUS_AWARDED)) == 2

    async def test_resync_does_not_duplicate_workouts(self, storage, components, workout_source):
        """Test that a second run ingests nothing new."""
        await _seed_day(storage)
        workout_source.workouts = [Workout(
            workout_date=RUN_DATE, type=WorkoutType.YOGA, duration=60, external_id="strava-2",
        )]

        await components.daily.run(RUN_DATE)
        second = await components.daily.run(RUN_DATE)

        assert second.workouts_ingested == 0
        assert len(storage.workouts) == 1

    async def test_earnings_pay_debt_instead_of_match(self, storage, components):
        """Test that active debt takes the earnings and blocks the match."""
        await _seed_day(storage)
        await storage.create_debt(Debt(
            name="Violation: skipped gym",
            original_amount=Decimal("50"),
            current_amount=Decimal("50"),
            date_assigned=date(2024, 6, 11),
        ))

        result = await components.daily.run(RUN_DATE)

        assert result.total_interest == Decimal("15.00")
        assert not result.debt_free
        assert result.debt_payments[0].payment_amount == Decimal("40.00")
        assert result.bonuses == []
        assert result.debt_summary.total_debt == Decimal("25.00")
        assert result.summary == (
            "Applied $15.00 in daily interest. "
            "Your $40.00 Uber earnings paid $40.00 toward debt. "
            "No bonuses earned today."
        )

    async def test_interest_applied_once_per_day(self, storage, components):
        """Test that re-running a day does not compound twice."""
        await storage.record_checkin(CheckIn(checkin_date=RUN_DATE))
        debt = await storage.create_debt(Debt(
            name="Violation: a",
            original_amount=Decimal("50"),
            current_amount=Decimal("50"),
            date_assigned=date(2024, 6, 11),
        ))

        await components.daily.run(RUN_DATE)
        second = await components.daily.run(RUN_DATE)

        assert second.interest == []
        assert storage.debts[debt.id].current_amount == Decimal("65.00")

    async def test_missed_checkin_assigns_punishment(self, storage, components, habit_tracker):
        """Test that a daily violation becomes a cardio punishment."""
        await _seed_day(storage, checked_in=False)

        result = await components.daily.run(RUN_DATE)

        assert len(result.violations) == 1
        assert len(result.new_punishments) == 1
        assert result.new_punishments[0].type == CardioModality.TREADMILL.value
        assert len(habit_tracker.todos) == 1
        assert "Assigned 1 new punishment(s)." in result.summary

    async def test_overdue_punishment_becomes_debt_without_interest(self, storage, components):
        """Test that debt from a missed punishment does not accrue on its first day."""
        await storage.record_checkin(CheckIn(checkin_date=RUN_DATE))
        await storage.create_punishment(Punishment(
            name="Missed morning check-in - 2024-06-08",
            type="Bike",
            minutes=20,
            date_assigned=date(2024, 6, 8),
            due_date=date(2024, 6, 10),
        ))

        result = await components.daily.run(RUN_DATE)

        assert len(result.missed_punishments) == 1
        assert result.interest == []
        assert result.debt_summary.total_debt == Decimal("50.00")
        assert result.summary == (
            "Assigned $50.00 in new debt for violations. No bonuses earned today."
        )

    async def test_cardio_completes_punishment(self, storage, components, workout_source):
        """Test that an ingested cardio workout completes a pending punishment."""
        await storage.record_checkin(CheckIn(checkin_date=RUN_DATE))
        punishment = await storage.create_punishment(Punishment(
            name="Missed morning check-in - 2024-06-10",
            type="Run",
            minutes=20,
            date_assigned=date(2024, 6, 10),
            due_date=RUN_DATE,
        ))
        workout_source.workouts = [Workout(
            workout_date=RUN_DATE, type=WorkoutType.CARDIO, duration=30, external_id="strava-3",
        )]

        result = await components.daily.run(RUN_DATE)

        assert storage.punishments[punishment.id].status == PunishmentStatus.COMPLETED
        assert result.summary == (
            "Completed 1 workout(s). No bonuses earned today. "
            "Completed 1 punishment assignment(s)."
        )

    async def test_no_activity_summary(self, storage, components):
        """Test the summary of a quiet day."""
        await storage.record_checkin(CheckIn(checkin_date=RUN_DATE))
        result = await components.daily.run(RUN_DATE)
        assert result.summary == "No bonuses earned today."

    async def test_unreachable_workout_tracker(self, storage, components, workout_source):
        """Test that an integration outage is audited, not a step failure."""
        await storage.record_checkin(CheckIn(checkin_date=RUN_DATE))
        workout_source.fail = True

        result = await components.daily.run(RUN_DATE)

        assert result.step_failures == []
        assert _events(storage, result.correlation_id, AuditEventType.INTEGRATION_ERROR)

    async def test_failed_step_is_recorded_and_run_continues(self, base_rules, rng):
        """Test best-effort steps: earnings fail, bonuses still run."""
        storage = BrokenBalanceStorage(rules=base_rules)
        await storage.record_checkin(CheckIn(checkin_date=RUN_DATE))
        source = StubWorkoutSource([Workout(
            workout_date=RUN_DATE, type=WorkoutType.LIFTING, duration=45, external_id="s-4",
        )])
        components = create_app_components(
            settings=Settings(), storage=storage, workout_source=source, rng=rng,
        )

        result = await components.daily.run(RUN_DATE)

        assert [f.step for f in result.step_failures] == ["earnings_process"]
        assert result.step_failures[0].error_type == "StorageError"
        assert result.earnings == Decimal("0.00")
        assert result.bonus_total == Decimal("10.00")
        assert _events(storage, result.correlation_id, AuditEventType.STEP_FAILED)

    async def test_core_aggregate_failure_fails_run(self, base_rules, rng):
        """Test that an unreadable debt balance aborts the run."""
        storage = BrokenDebtStorage(rules=base_rules)
        components = create_app_components(settings=Settings(), storage=storage, rng=rng)

        with pytest.raises(ReconciliationError) as exc_info:
            await components.daily.run(RUN_DATE)

        assert exc_info.value.run_type == "daily"
        assert exc_info.value.period == "2024-06-12"
        failed = [e for e in storage.events
                  if e.event_type == AuditEventType.RECONCILIATION_FAILED]
        assert len(failed) == 1


class TestWeeklyReconciliation:
    """End-to-end weekly runs."""

    async def _seed_week(self, storage: InMemoryStorage) -> None:
        days = [
            (3, WorkoutType.YOGA), (4, WorkoutType.YOGA),
            (5, WorkoutType.LIFTING), (6, WorkoutType.LIFTING), (7, WorkoutType.LIFTING),
        ]
        for day, workout_type in days:
            await storage.create_workout(Workout(
                workout_date=date(2024, 6, day), type=workout_type, duration=45,
            ))

    async def test_two_violations_two_routes(self, storage, components, habit_tracker):
        """Test a week short on yoga and job applications."""
        await self._seed_week(storage)
        habit_tracker.counts = {
            "job_applications": 10,
            "algoexpert_problems": 7,
            "office_days": 3,
            "reading": 1,
            "dating": 0,
        }

        result = await components.weekly.run(today=WEEKLY_RUN_DAY)

        assert result.week_start == PREVIOUS_WEEK
        assert result.week_end == date(2024, 6, 9)
        assert [v.type for v in result.violations] == [
            "weekly_yoga_shortfall", "job_applications_shortfall",
        ]
        assert result.violation_details == (
            "Only completed 2/5 yoga sessions this week; "
            "Only completed 10/25 job applications this week"
        )
        routes = {p.route: p for p in result.escalation.assignments}
        assert routes[1].minutes == 45
        assert routes[1].date_assigned == WEEKLY_RUN_DAY
        assert routes[2].savings_rate_new == 60
        assert 3 not in routes

        assert [b.type for b in result.bonuses] == [BonusType.BASE_ALLOWANCE]
        assert result.summary == (
            "Completed 2 yoga and 3 lifting sessions. "
            "2 weekly violation(s) detected. "
            "Assigned 45 minutes of punishment cardio. "
            "Weekly bonuses total $50.00."
        )

        entry = storage.weeks[PREVIOUS_WEEK]
        assert (entry.yoga_sessions, entry.lifting_sessions) == (2, 3)
        assert (entry.job_applications, entry.office_days) == (10, 3)
        assert habit_tracker.scores == [("workout_consistency", "up"), ("discipline", "down")]

    async def test_clean_week_earns_perfect_week(self, storage, components, habit_tracker):
        """Test a week meeting every requirement."""
        for day in range(3, 8):
            await storage.create_workout(Workout(
                workout_date=date(2024, 6, day), type=WorkoutType.YOGA, duration=30,
            ))
        for day in range(3, 6):
            await storage.create_workout(Workout(
                workout_date=date(2024, 6, day), type=WorkoutType.LIFTING, duration=45,
            ))
        habit_tracker.counts = {"job_applications": 30, "algoexpert_problems": 7, "office_days": 3}

        result = await components.weekly.run(today=WEEKLY_RUN_DAY)

        assert result.violations == []
        assert result.escalation.assignments == []
        assert {b.type for b in result.bonuses} == {
            BonusType.PERFECT_WEEK, BonusType.JOB_APPLICATIONS, BonusType.BASE_ALLOWANCE,
        }
        assert result.bonus_total == Decimal("95.00")
        assert result.summary == (
            "Completed 5 yoga and 3 lifting sessions. "
            "No weekly violations. "
            "Weekly bonuses total $95.00."
        )

    async def test_allowance_not_duplicated_on_rerun(self, storage, components):
        """Test that the base allowance is awarded once per week."""
        await components.weekly.run(today=WEEKLY_RUN_DAY)
        await components.weekly.run(today=WEEKLY_RUN_DAY)

        allowances = [b for b in storage.bonuses.values() if b.type == BonusType.BASE_ALLOWANCE]
        assert len(allowances) == 1

    async def test_tracker_outage_skips_career_checks(self, storage, base_rules, rng):
        """Test that missing tracker counts are not treated as zero."""
        await self._seed_week(storage)
        tracker = StubHabitTracker(fail=True)
        components = create_app_components(
            settings=Settings(), storage=storage, habit_tracker=tracker, rng=rng,
        )

        result = await components.weekly.run(today=WEEKLY_RUN_DAY)

        assert result.habit_counts == {}
        assert [v.type for v in result.violations] == ["weekly_yoga_shortfall"]
        assert result.escalation.cardio_minutes == 30
        assert result.habit_updates == []
        assert result.step_failures == []

    async def test_rerun_without_tracker_adds_no_career_violations(
        self, storage, base_rules, rng,
    ):
        """Test that a week entry created by the first run is not read as zero counts."""
        components = create_app_components(settings=Settings(), storage=storage, rng=rng)

        first = await components.weekly.run(week_start=PREVIOUS_WEEK, today=WEEKLY_RUN_DAY)
        second = await components.weekly.run(week_start=PREVIOUS_WEEK, today=WEEKLY_RUN_DAY)

        expected = ["weekly_yoga_shortfall", "weekly_lifting_shortfall"]
        assert [v.type for v in first.violations] == expected
        assert [v.type for v in second.violations] == expected
        assert second.habit_counts == {}
        entry = storage.weeks[PREVIOUS_WEEK]
        assert (entry.job_applications, entry.office_days) == (None, None)

    async def test_week_start_normalized_to_monday(self, components):
        """Test that any day of the week selects that week."""
        result = await components.weekly.run(week_start=date(2024, 6, 5), today=WEEKLY_RUN_DAY)
        assert result.week_start == PREVIOUS_WEEK


class TestStatusQueries:
    """Read-only status views after a run."""

    async def test_daily_status(self, storage, components):
        """Test the daily view after a reconciliation."""
        await _seed_day(storage)
        await components.daily.run(RUN_DATE)

        status = await components.status.daily_status(RUN_DATE)

        assert status.bonus_total == Decimal("40.00")
        assert status.debt_summary.debt_free
        assert status.habit_progress["yoga_sessions"].target == 5
        assert storage.weeks == {}

    async def test_weekly_status(self, storage, components):
        """Test the weekly view shows escalation adjustments."""
        await components.weekly.run(today=WEEKLY_RUN_DAY)

        status = await components.status.weekly_status(date(2024, 6, 6))

        assert status.week_start == PREVIOUS_WEEK
        assert status.adjustments.savings_rate == 60
        assert status.bonus_total == Decimal("50.00")
        assert len(status.punishments) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
