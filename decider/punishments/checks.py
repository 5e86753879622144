"""
Daily violation checks.

A check is any async callable taking the reconciliation date and
returning the violations it found. The engine runs every registered
check in order; new checks are added by passing them to PunishmentEngine.
"""

from datetime import date
from typing import Awaitable, Callable

from decider.models.punishments import CardioModality, Violation, ViolationCategory
from decider.services.storage import CheckinStorageInterface

DailyCheck = Callable[[date], Awaitable[list[Violation]]]


class MissedCheckinCheck:
    """Flags a day with no morning check-in."""

    def __init__(self, storage: CheckinStorageInterface, minutes: int = 20):
        self._storage = storage
        self._minutes = minutes

    async def __call__(self, on_date: date) -> list[Violation]:
        checkin = await self._storage.get_checkin(on_date, kind="morning")
        if checkin:
            return []
        return [Violation(
            type="missed_checkin",
            reason="Missed morning check-in",
            category=ViolationCategory.DAILY,
            punishment_type=CardioModality.TREADMILL.value,
            minutes=self._minutes,
        )]
