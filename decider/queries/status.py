"""
Status Queries

DESIGN DECISION: Status queries are READ-ONLY.
They aggregate what the engines already expose and never write, so the
status endpoints can be polled at any time without changing the ledger.
"""

from datetime import date, timedelta

from decider.activity import WeeklyHabitsService, WorkoutAnalyzer, week_start_of
from decider.bonuses import BonusEvaluator
from decider.ledger import DebtLedger
from decider.models.results import DailyStatus, WeeklyStatus
from decider.punishments import PunishmentEngine, ThreeRouteAssigner


class StatusQueries:
    """Read-only daily and weekly views of the ledger."""

    def __init__(
        self,
        ledger: DebtLedger,
        punishments: PunishmentEngine,
        assigner: ThreeRouteAssigner,
        bonuses: BonusEvaluator,
        workouts: WorkoutAnalyzer,
        habits: WeeklyHabitsService,
    ):
        self._ledger = ledger
        self._punishments = punishments
        self._assigner = assigner
        self._bonuses = bonuses
        self._workouts = workouts
        self._habits = habits

    async def daily_status(self, on_date: date) -> DailyStatus:
        bonuses = await self._bonuses.get_bonuses_for_date(on_date)
        aging = await self._ledger.get_debt_aging(on_date)

        return DailyStatus(
            status_date=on_date,
            debt_summary=await self._ledger.get_debt_summary(on_date),
            debt_aging=aging.totals(),
            pending=await self._punishments.get_pending_summary(on_date),
            bonuses=bonuses,
            bonus_total=BonusEvaluator.get_total_bonus_amount(bonuses),
            habit_progress=await self._habits.get_current_week_summary(on_date, create=False),
        )

    async def weekly_status(self, week_start: date) -> WeeklyStatus:
        week_start = week_start_of(week_start)
        week_end = week_start + timedelta(days=6)
        bonuses = await self._bonuses.get_bonuses_for_week(week_start)

        return WeeklyStatus(
            week_start=week_start,
            week_end=week_end,
            habits_entry=await self._habits.get_week(week_start),
            performance=await self._workouts.analyze_weekly_performance(week_start, week_end),
            bonuses=bonuses,
            bonus_total=BonusEvaluator.get_total_bonus_amount(bonuses),
            punishments=await self._punishments.get_punishments_for_week(week_start),
            adjustments=await self._assigner.get_active_adjustments(week_start),
        )
