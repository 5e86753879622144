"""
Bonus Evaluator

DESIGN DECISION: Evaluation and awarding are separate steps.

EVALUATE (pure, except for rule reads and the allowance check):
- Per occurrence: one bonus per Lifting/Yoga workout; Cardio never earns one
- Financial: Uber Match (debt-free only) and the weekly Base Allowance
- Weekly: a count meets its *_minimum rule -> the matching *_bonus amount

AWARD (writes):
- Each bonus is created PENDING, then marked AWARDED
- Bonuses are written one at a time; a failure is recorded and the
  batch moves on, so the caller always gets both lists back

A rule amount of zero means "no bonus", not "a $0 bonus".
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Union

import structlog

from decider.activity.weeks import week_start_of
from decider.models.activity import WeeklyPerformance, Workout, WorkoutType
from decider.models.bonuses import AwardedBonus, Bonus, BonusType
from decider.models.money import ZERO, format_currency, round2
from decider.models.results import BatchFailure, BatchResult
from decider.rules import RulesStore
from decider.rules import names
from decider.services.storage import BonusStorageInterface

logger = structlog.get_logger(__name__)


# (bonus type, habit count key, minimum rule, bonus rule, label)
WEEKLY_THRESHOLD_BONUSES = (
    (BonusType.JOB_APPLICATIONS, "job_applications",
     names.JOB_APPLICATIONS_MINIMUM, names.JOB_APPLICATIONS_BONUS, "job applications"),
    (BonusType.ALGOEXPERT, "algoexpert_problems",
     names.ALGOEXPERT_MINIMUM, names.ALGOEXPERT_BONUS, "AlgoExpert problems"),
    (BonusType.OFFICE_ATTENDANCE, "office_days",
     names.OFFICE_ATTENDANCE_MINIMUM, names.OFFICE_ATTENDANCE_BONUS, "office days"),
    (BonusType.READING, "reading",
     names.READING_MINIMUM, names.READING_BONUS, "reading sessions"),
    (BonusType.DATING, "dating",
     names.DATING_MINIMUM, names.DATING_BONUS, "dates"),
)


class BonusEvaluator:
    """Works out which bonuses were earned and records them."""

    def __init__(self, storage: BonusStorageInterface, rules: RulesStore):
        self._storage = storage
        self._rules = rules

    # =========================================================================
    # PER OCCURRENCE
    # =========================================================================

    async def evaluate_workout_bonuses(
        self,
        workouts: list[Workout],
        on_date: date,
    ) -> list[Bonus]:
        bonuses = []
        week_of = week_start_of(on_date)

        for workout in workouts:
            if workout.type == WorkoutType.LIFTING:
                amount = await self._rules.get_numeric_value(names.LIFTING_BONUS)
                name = f"Lifting Session - {on_date.isoformat()}"
                bonus_type = BonusType.LIFTING
                reason = "Completed lifting workout"
            elif workout.type == WorkoutType.YOGA:
                amount = await self._rules.get_numeric_value(names.YOGA_BONUS)
                name = f"Yoga Session - {on_date.isoformat()}"
                bonus_type = BonusType.YOGA
                reason = "Completed yoga session"
            else:
                continue

            if amount <= 0:
                continue
            bonuses.append(Bonus(
                name=name,
                type=bonus_type,
                amount=round2(amount),
                bonus_date=on_date,
                week_of=week_of,
                reason=reason,
            ))

        return bonuses

    # =========================================================================
    # FINANCIAL
    # =========================================================================

    def evaluate_uber_match(
        self,
        earnings: Decimal,
        debt_free: bool,
        on_date: date,
    ) -> Optional[Bonus]:
        """Match the day's earnings in full, but only when no debt is active."""
        if not debt_free:
            logger.info("uber_match_skipped_active_debt", date=str(on_date))
            return None
        if earnings <= 0:
            return None

        amount = round2(earnings)
        return Bonus(
            name=f"Uber Match Bonus - {on_date.isoformat()}",
            type=BonusType.UBER_MATCH,
            amount=amount,
            bonus_date=on_date,
            week_of=week_start_of(on_date),
            reason=f"Matched {format_currency(amount)} Uber earnings (debt-free)",
        )

    async def evaluate_base_allowance(self, week_start: date) -> Optional[Bonus]:
        """The weekly allowance, unless one already exists for this week."""
        existing = await self._storage.list_bonuses(
            week_of=week_start,
            bonus_type=BonusType.BASE_ALLOWANCE,
        )
        if existing:
            logger.info("base_allowance_already_awarded", week_start=str(week_start))
            return None

        amount = await self._rules.get_threshold(names.WEEKLY_BASE_ALLOWANCE)
        return Bonus(
            name=f"Weekly Allowance - {week_start.isoformat()}",
            type=BonusType.BASE_ALLOWANCE,
            amount=round2(amount),
            bonus_date=week_start,
            week_of=week_start,
            reason="Weekly base allowance",
        )

    # =========================================================================
    # WEEKLY
    # =========================================================================

    async def evaluate_weekly_bonuses(
        self,
        week_start: date,
        performance: WeeklyPerformance,
        habit_counts: dict[str, int],
    ) -> list[Bonus]:
        bonuses = []

        perfect_week = await self._evaluate_perfect_week(week_start, performance)
        if perfect_week:
            bonuses.append(perfect_week)

        for bonus_type, count_key, minimum_rule, bonus_rule, label in WEEKLY_THRESHOLD_BONUSES:
            amount = await self._rules.get_numeric_value(bonus_rule)
            if amount <= 0:
                continue
            minimum = await self._rules.get_threshold(minimum_rule)
            count = habit_counts.get(count_key, 0)
            if count < minimum:
                continue
            bonuses.append(Bonus(
                name=f"{bonus_type.value} Bonus - {week_start.isoformat()}",
                type=bonus_type,
                amount=round2(amount),
                bonus_date=week_start,
                week_of=week_start,
                reason=f"Completed {count} {label} (minimum {minimum})",
            ))

        return bonuses

    async def _evaluate_perfect_week(
        self,
        week_start: date,
        performance: WeeklyPerformance,
    ) -> Optional[Bonus]:
        amount = await self._rules.get_numeric_value(names.PERFECT_WEEK_BONUS)
        if amount <= 0:
            return None

        yoga_minimum = await self._rules.get_threshold(names.WEEKLY_YOGA_MINIMUM)
        lifting_minimum = await self._rules.get_threshold(names.WEEKLY_LIFTING_MINIMUM)
        if performance.yoga_sessions < yoga_minimum or performance.lifting_sessions < lifting_minimum:
            return None

        return Bonus(
            name=f"Perfect Week Bonus - {week_start.isoformat()}",
            type=BonusType.PERFECT_WEEK,
            amount=round2(amount),
            bonus_date=week_start,
            week_of=week_start,
            reason=(
                f"Completed {performance.yoga_sessions} yoga + "
                f"{performance.lifting_sessions} lifting sessions"
            ),
        )

    # =========================================================================
    # AWARDING
    # =========================================================================

    async def award_bonuses(self, bonuses: list[Bonus]) -> BatchResult[AwardedBonus]:
        """Create then award each bonus, in order, recording failures."""
        result: BatchResult[AwardedBonus] = BatchResult()

        for bonus in bonuses:
            try:
                created = await self._storage.create_bonus(bonus)
                await self._storage.update_bonus(created.award())
            except Exception as e:
                logger.warning("bonus_award_failed", bonus_name=bonus.name, error=str(e))
                result.failed.append(BatchFailure(item=bonus.name, error=str(e)))
                continue

            result.succeeded.append(AwardedBonus(
                bonus_id=created.id,
                type=created.type,
                amount=created.amount,
                reason=created.reason,
                name=created.name,
            ))

        return result

    @staticmethod
    def get_total_bonus_amount(bonuses: list[Union[Bonus, AwardedBonus]]) -> Decimal:
        return round2(sum((b.amount for b in bonuses), ZERO))

    async def get_bonuses_for_date(self, on_date: date) -> list[Bonus]:
        return await self._storage.list_bonuses(bonus_date=on_date)

    async def get_bonuses_for_week(self, week_start: date) -> list[Bonus]:
        return await self._storage.list_bonuses(week_of=week_start)
