"""
Bonus Models

Bonuses are created PENDING, persisted, then marked AWARDED.
Once awarded a bonus is never changed again.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class BonusType(str, Enum):
    """
    Bonus types grouped by how they are earned.

    Workout: per occurrence. Weekly: habit thresholds.
    Financial: debt-free match and allowance.
    """
    # Workout
    LIFTING = "Lifting"
    YOGA = "Yoga"
    # Weekly
    PERFECT_WEEK = "Perfect Week"
    JOB_APPLICATIONS = "Job Applications"
    ALGOEXPERT = "AlgoExpert"
    OFFICE_ATTENDANCE = "Office Attendance"
    READING = "Reading"
    DATING = "Dating"
    # Financial
    UBER_MATCH = "Uber Match"
    BASE_ALLOWANCE = "Base Allowance"
    # Discretionary
    GOOD_BOY = "Good Boy"


WORKOUT_BONUS_TYPES = frozenset({BonusType.LIFTING, BonusType.YOGA})
WEEKLY_BONUS_TYPES = frozenset({
    BonusType.PERFECT_WEEK,
    BonusType.JOB_APPLICATIONS,
    BonusType.ALGOEXPERT,
    BonusType.OFFICE_ATTENDANCE,
    BonusType.READING,
    BonusType.DATING,
})
FINANCIAL_BONUS_TYPES = frozenset({BonusType.UBER_MATCH, BonusType.BASE_ALLOWANCE})


class BonusStatus(str, Enum):
    PENDING = "pending"
    AWARDED = "awarded"


class Bonus(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(..., min_length=1, max_length=300)
    type: BonusType
    amount: Decimal = Field(..., ge=0)
    bonus_date: date
    week_of: date
    reason: str = ""
    status: BonusStatus = BonusStatus.PENDING

    @property
    def is_awarded(self) -> bool:
        return self.status == BonusStatus.AWARDED

    def award(self) -> 'Bonus':
        """Return the awarded copy. Awarded bonuses are immutable."""
        if self.is_awarded:
            raise ValueError(f"Bonus '{self.name}' has already been awarded")
        return self.model_copy(update={"status": BonusStatus.AWARDED})


class AwardedBonus(BaseModel):
    bonus_id: str
    type: BonusType
    amount: Decimal
    reason: str
    name: Optional[str] = None
