"""
Weekly Habits Service

One WeeklyHabitsEntry per Monday-start week. The entry is created the
first time a week is touched and afterwards only changed by increment
or by setting an absolute value.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Union

import structlog

from decider.activity.weeks import week_bounds
from decider.models.activity import HabitCounter, HabitProgress, WeeklyHabitsEntry
from decider.services.storage import DuplicateError, HabitsStorageInterface

logger = structlog.get_logger(__name__)

# Weekly targets used for the pro-rated "on track" view
WEEKLY_TARGETS: dict[HabitCounter, int] = {
    HabitCounter.YOGA: 5,
    HabitCounter.LIFTING: 3,
    HabitCounter.JOB_APPLICATIONS: 25,
    HabitCounter.OFFICE: 3,
    HabitCounter.COWORK: 2,
}

Amount = Union[int, Decimal]


class WeeklyHabitsService:
    """Get-or-create access to weekly habit counters."""

    def __init__(self, storage: HabitsStorageInterface):
        self._storage = storage

    @staticmethod
    def week_bounds(day: date) -> tuple[date, date]:
        return week_bounds(day)

    async def get_or_create_week(self, day: date) -> WeeklyHabitsEntry:
        week_start, _ = week_bounds(day)
        entry = await self._storage.get_week(week_start)
        if entry:
            return entry

        logger.info("habits_week_created", week_start=str(week_start))
        try:
            return await self._storage.create_week(WeeklyHabitsEntry(week_start=week_start))
        except DuplicateError:
            return await self._storage.get_week(week_start)

    async def increment(
        self,
        day: date,
        counter: HabitCounter,
        amount: Amount = 1,
    ) -> WeeklyHabitsEntry:
        entry = await self.get_or_create_week(day)
        current = getattr(entry, counter.value) or 0
        return await self._save(entry, counter, current + amount)

    async def set_value(
        self,
        day: date,
        counter: HabitCounter,
        value: Amount,
    ) -> WeeklyHabitsEntry:
        entry = await self.get_or_create_week(day)
        return await self._save(entry, counter, value)

    async def _save(
        self,
        entry: WeeklyHabitsEntry,
        counter: HabitCounter,
        value: Amount,
    ) -> WeeklyHabitsEntry:
        updated = entry.model_copy(update={counter.value: value})
        # re-validate the counter (counters are non-negative)
        updated = WeeklyHabitsEntry.model_validate(updated.model_dump())
        await self._storage.update_week(updated)
        logger.info(
            "habit_counter_updated",
            week_start=str(entry.week_start),
            counter=counter.value,
            value=str(value),
        )
        return updated

    async def get_week(self, day: date) -> Optional[WeeklyHabitsEntry]:
        """The entry for the week containing `day`, without creating it."""
        week_start, _ = week_bounds(day)
        return await self._storage.get_week(week_start)

    async def get_current_week_summary(
        self,
        today: date,
        create: bool = True,
    ) -> dict[str, HabitProgress]:
        """
        Progress per habit against a target pro-rated to days elapsed
        (Monday = 1 ... Sunday = 7).

        With create=False a missing week reads as all zeros and nothing
        is written.
        """
        if create:
            entry = await self.get_or_create_week(today)
        else:
            entry = await self.get_week(today) or WeeklyHabitsEntry(
                week_start=week_bounds(today)[0]
            )
        days_elapsed = today.weekday() + 1

        progress = {}
        for counter, target in WEEKLY_TARGETS.items():
            current = Decimal(getattr(entry, counter.value) or 0)
            expected = Decimal((target * days_elapsed) // 7)
            progress[counter.value] = HabitProgress(
                current=current,
                target=target,
                expected_so_far=expected,
                on_track=current >= expected,
            )
        return progress
