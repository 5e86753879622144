"""
Tests for daily punishments, the overdue and completion sweeps, weekly
violation detection and 3-route escalation.
"""

import pytest
import random
from datetime import date, timedelta
from decimal import Decimal

from decider.models.activity import CheckIn, WeeklyPerformance, Workout, WorkoutType
from decider.models.ledger import DebtStatus
from decider.models.punishments import (
    CardioModality,
    PolicyOverrideType,
    Punishment,
    PunishmentCategory,
    PunishmentStatus,
    Violation,
    ViolationCategory,
)
from decider.punishments import (
    MissedCheckinCheck,
    PunishmentEngine,
    ThreeRouteAssigner,
    cardio_minutes_for,
    earnings_requirement_for,
    savings_rate_for,
)
from decider.rules import RulesStore
from decider.services.storage import InMemoryStorage

from conftest import RUN_DATE, WEEK_START, StubHabitTracker, make_rule


def _pending_cardio(assigned: date, due: date, minutes: int = 20, name: str = "Cardio") -> Punishment:
    return Punishment(
        name=name,
        type=CardioModality.BIKE.value,
        minutes=minutes,
        date_assigned=assigned,
        due_date=due,
        category=PunishmentCategory.DAILY_VIOLATION,
    )


def _cardio(day: date, minutes: int) -> Workout:
    return Workout(workout_date=day, type=WorkoutType.CARDIO, duration=minutes)


class TestDailyViolations:
    """Tests for daily checks and punishment assignment."""

    async def test_missed_checkin_detected(self, storage):
        """Test that no morning check-in is a violation."""
        check = MissedCheckinCheck(storage, minutes=20)
        violations = await check(RUN_DATE)

        assert len(violations) == 1
        assert violations[0].type == "missed_checkin"
        assert violations[0].punishment_type == "Treadmill"

    async def test_checkin_clears_violation(self, storage):
        """Test that a logged check-in means no violation."""
        await storage.record_checkin(CheckIn(checkin_date=RUN_DATE))
        assert await MissedCheckinCheck(storage)(RUN_DATE) == []

    async def test_assign_daily_punishment(self, storage, engine, habit_tracker):
        """Test the shape of a daily punishment."""
        violations = await engine.detect_daily_violations(RUN_DATE)
        created = await engine.assign_daily_punishments(violations, RUN_DATE)

        assert len(created) == 1
        punishment = created[0]
        assert punishment.name == "Missed morning check-in - 2024-06-12"
        assert punishment.minutes == 20
        assert punishment.type == "Treadmill"
        assert punishment.due_date == RUN_DATE + timedelta(days=2)
        assert punishment.category == PunishmentCategory.DAILY_VIOLATION
        assert habit_tracker.todos == [punishment]

    async def test_same_violation_not_assigned_twice(self, storage, engine):
        """Test that re-running the day does not duplicate punishments."""
        violations = await engine.detect_daily_violations(RUN_DATE)
        await engine.assign_daily_punishments(violations, RUN_DATE)
        again = await engine.assign_daily_punishments(violations, RUN_DATE)

        assert again == []
        assert len(storage.punishments) == 1

    async def test_minutes_fall_back_to_rule(self, storage, engine):
        """Test that a violation without minutes uses the default length."""
        violation = Violation(type="late", reason="Late to gym")
        created = await engine.assign_daily_punishments([violation], RUN_DATE)

        assert created[0].minutes == 20
        assert created[0].type in {m.value for m in CardioModality}

    async def test_tracker_failure_does_not_block(self, storage, rules_store, ledger, rng):
        """Test that an unreachable habit tracker is ignored."""
        engine = PunishmentEngine(
            storage, storage, rules_store, ledger,
            checks=[MissedCheckinCheck(storage)],
            rng=rng,
            habit_tracker=StubHabitTracker(fail=True),
        )
        violations = await engine.detect_daily_violations(RUN_DATE)
        created = await engine.assign_daily_punishments(violations, RUN_DATE)
        assert len(created) == 1


class TestOverdueSweep:
    """Tests for converting missed punishments into debt."""

    async def test_overdue_becomes_debt(self, storage, engine):
        """Test that an overdue punishment is missed and creates one debt."""
        punishment = await storage.create_punishment(
            _pending_cardio(date(2024, 6, 8), date(2024, 6, 10))
        )

        resolutions = await engine.process_overdue(RUN_DATE)

        assert len(resolutions) == 1
        assert storage.punishments[punishment.id].status == PunishmentStatus.MISSED
        debt = storage.debts[resolutions[0].debt_id]
        assert debt.name == "Missed punishment: Cardio"
        assert debt.original_amount == Decimal("50.00")
        assert debt.status == DebtStatus.ACTIVE
        assert debt.date_assigned == RUN_DATE

    async def test_sweep_is_idempotent(self, storage, engine):
        """Test that a second sweep creates no more debt."""
        await storage.create_punishment(_pending_cardio(date(2024, 6, 8), date(2024, 6, 10)))

        await engine.process_overdue(RUN_DATE)
        assert await engine.process_overdue(RUN_DATE) == []
        assert len(storage.debts) == 1

    async def test_due_today_not_overdue(self, storage, engine):
        """Test that the due date itself is still on time."""
        await storage.create_punishment(_pending_cardio(date(2024, 6, 10), RUN_DATE))
        assert await engine.process_overdue(RUN_DATE) == []

    async def test_policy_overrides_excluded_and_expired(self, storage, engine):
        """Test that savings/earnings overrides never become debt."""
        override = await storage.create_punishment(Punishment(
            name="Savings Rate Increase - Week 2024-06-03",
            type=PolicyOverrideType.SAVINGS_INCREASE.value,
            date_assigned=date(2024, 6, 3),
            due_date=date(2024, 6, 9),
            route=2,
        ))

        assert await engine.process_overdue(RUN_DATE) == []
        assert await engine.expire_policy_overrides(RUN_DATE) == 1
        stored = storage.punishments[override.id]
        assert stored.status == PunishmentStatus.COMPLETED
        assert stored.date_completed == date(2024, 6, 9)
        assert storage.debts == {}


class TestCompletionCheck:
    """Tests for matching cardio workouts to punishments."""

    async def test_qualifying_workout_completes(self, storage, engine):
        """Test a long enough cardio workout inside the window."""
        punishment = await storage.create_punishment(
            _pending_cardio(date(2024, 6, 10), RUN_DATE, minutes=20)
        )
        workout = await storage.create_workout(_cardio(date(2024, 6, 11), 25))

        completions = await engine.process_completions(RUN_DATE)

        assert len(completions) == 1
        stored = storage.punishments[punishment.id]
        assert stored.status == PunishmentStatus.COMPLETED
        assert stored.completed_by_workout_id == workout.id
        assert stored.date_completed == date(2024, 6, 11)

    async def test_short_workout_does_not_complete(self, storage, engine):
        """Test that duration must cover the required minutes."""
        await storage.create_punishment(_pending_cardio(date(2024, 6, 10), RUN_DATE, minutes=30))
        await storage.create_workout(_cardio(date(2024, 6, 11), 25))
        assert await engine.process_completions(RUN_DATE) == []

    async def test_one_workout_completes_one_punishment(self, storage, engine):
        """Test that a workout is never counted twice."""
        await storage.create_punishment(
            _pending_cardio(date(2024, 6, 10), RUN_DATE, name="First")
        )
        await storage.create_punishment(
            _pending_cardio(date(2024, 6, 10), date(2024, 6, 13), name="Second")
        )
        await storage.create_workout(_cardio(date(2024, 6, 11), 60))

        completions = await engine.process_completions(RUN_DATE)
        assert [c.punishment_name for c in completions] == ["First"]

        # the same workout stays used on the next run
        assert await engine.process_completions(date(2024, 6, 13)) == []

    async def test_workout_before_assignment_ignored(self, storage, engine):
        """Test that only workouts inside the assignment window count."""
        await storage.create_punishment(_pending_cardio(date(2024, 6, 11), date(2024, 6, 13)))
        await storage.create_workout(_cardio(date(2024, 6, 10), 60))
        assert await engine.process_completions(RUN_DATE) == []


class TestWeeklyViolations:
    """Tests for weekly requirement checks."""

    async def test_workout_shortfall(self, engine):
        """Test the yoga requirement (default 5)."""
        performance = WeeklyPerformance(yoga_sessions=2, lifting_sessions=3)
        violations = await engine.detect_weekly_violations(performance, {})

        assert len(violations) == 1
        assert violations[0].reason == "Only completed 2/5 yoga sessions this week"
        assert violations[0].category == ViolationCategory.WORKOUT

    async def test_career_shortfall(self, engine):
        """Test punishable job application shortfall."""
        performance = WeeklyPerformance(yoga_sessions=5, lifting_sessions=3)
        violations = await engine.detect_weekly_violations(
            performance, {"job_applications": 10, "algoexpert_problems": 7, "office_days": 3},
        )

        assert [v.type for v in violations] == ["job_applications_shortfall"]
        assert violations[0].category == ViolationCategory.CAREER

    async def test_missing_career_counts_not_checked(self, engine):
        """Test that an unavailable tracker causes no career violations."""
        performance = WeeklyPerformance(yoga_sessions=5, lifting_sessions=3)
        assert await engine.detect_weekly_violations(performance, {}) == []

    async def test_non_punishable_rule_skipped(self, storage, ledger, rng):
        """Test that a requirement marked not punishable only forfeits bonuses."""
        rules_storage = InMemoryStorage(rules=[
            make_rule("weekly_yoga_requirement", "5", punishable=False),
        ])
        engine = PunishmentEngine(storage, storage, RulesStore(rules_storage), ledger, rng=rng)

        violations = await engine.detect_weekly_violations(
            WeeklyPerformance(yoga_sessions=0, lifting_sessions=3), {},
        )
        assert violations == []


class TestThreeRouteEscalation:
    """Tests for the weekly 3-route assignment table."""

    @pytest.mark.parametrize("violations,minutes,savings,earnings", [
        (1, 30, None, None),
        (2, 45, 60, None),
        (3, 60, 70, Decimal("125")),
        (4, 75, 80, Decimal("150")),
        (5, 90, 80, Decimal("175")),
        (6, 105, 80, Decimal("175")),
    ])
    async def test_route_table(self, assigner, violations, minutes, savings, earnings):
        """Test the routes created for each violation count."""
        result = await assigner.assign_weekly_violation_punishments(
            total_violations=violations,
            violation_details="details",
            week_start=date(2024, 6, 3),
            week_end=date(2024, 6, 9),
            assigned_on=date(2024, 6, 10),
        )
        by_route = {p.route: p for p in result.assignments}

        assert by_route[1].minutes == minutes
        assert by_route[1].escalation_level == min(violations, 5)
        assert result.cardio_minutes == minutes
        if savings is None:
            assert 2 not in by_route
        else:
            assert by_route[2].savings_rate_new == savings
        if earnings is None:
            assert 3 not in by_route
        else:
            assert by_route[3].earnings_requirement_new == earnings

    async def test_no_violations_no_routes(self, assigner):
        """Test that zero violations assigns nothing."""
        result = await assigner.assign_weekly_violation_punishments(
            0, "", date(2024, 6, 3), date(2024, 6, 9), date(2024, 6, 10),
        )
        assert result.assignments == []
        assert not result.routes.route1_cardio

    async def test_route_dates(self, assigner):
        """Test due dates and the route 3 target week."""
        result = await assigner.assign_weekly_violation_punishments(
            3, "a; b; c", date(2024, 6, 3), date(2024, 6, 9), date(2024, 6, 10),
        )
        cardio, savings, earnings = result.assignments

        assert cardio.due_date == date(2024, 6, 17)
        assert cardio.reason == "Weekly habit violations: a; b; c"
        assert cardio.type in {m.value for m in CardioModality}
        assert savings.due_date == date(2024, 6, 9)
        assert earnings.target_week_start == date(2024, 6, 10)
        assert earnings.target_week_end == date(2024, 6, 16)
        assert earnings.due_date == date(2024, 6, 16)
        assert earnings.name == "Earnings Requirement Increase - Week 2024-06-10"

    async def test_seeded_rng_is_reproducible(self, storage):
        """Test that the same seed picks the same modality."""
        picks = []
        for _ in range(2):
            assigner = ThreeRouteAssigner(storage, rng=random.Random(42))
            result = await assigner.assign_weekly_violation_punishments(
                1, "x", date(2024, 6, 3), date(2024, 6, 9), date(2024, 6, 10),
            )
            picks.append(result.assignments[0].type)
        assert picks[0] == picks[1]

    def test_helpers(self):
        """Test the escalation formulas directly."""
        assert cardio_minutes_for(1) == 30
        assert savings_rate_for(9) == 80
        assert earnings_requirement_for(9) == Decimal("175")

    def test_validate_escalation_levels(self):
        """Test severity labels."""
        assert ThreeRouteAssigner.validate_escalation_levels(1).severity == "light"
        moderate = ThreeRouteAssigner.validate_escalation_levels(3)
        assert moderate.severity == "moderate"
        assert moderate.expected_routes == [1, 2, 3]
        assert ThreeRouteAssigner.validate_escalation_levels(6).escalation_level == "maximum"

    async def test_punishment_summary_and_adjustments(self, assigner):
        """Test the reporting helpers over one week's assignments."""
        result = await assigner.assign_weekly_violation_punishments(
            3, "x", date(2024, 6, 3), date(2024, 6, 9), date(2024, 6, 10),
        )
        summary = ThreeRouteAssigner.get_punishment_summary(result.assignments)
        assert summary.routes_activated == ["Route 1", "Route 2", "Route 3"]
        assert summary.total_cardio_minutes == 60
        assert summary.summary_text.startswith("60min cardio")

        violation_week = await assigner.get_active_adjustments(date(2024, 6, 3))
        assert violation_week.savings_rate == 70
        assert violation_week.earnings_requirement is None

        target_week = await assigner.get_active_adjustments(WEEK_START)
        assert target_week.earnings_requirement == Decimal("125")
        assert target_week.savings_rate is None


class TestPendingSummary:
    """Tests for the pending punishment view."""

    async def test_pending_summary(self, storage, engine):
        """Test counts, minutes and next due date."""
        await storage.create_punishment(_pending_cardio(date(2024, 6, 8), date(2024, 6, 10)))
        await storage.create_punishment(_pending_cardio(date(2024, 6, 11), date(2024, 6, 13), 30))

        summary = await engine.get_pending_summary(RUN_DATE)
        assert summary.pending_count == 2
        assert summary.total_minutes == 50
        assert summary.overdue_count == 1
        assert summary.next_due_date == date(2024, 6, 10)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
