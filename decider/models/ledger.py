"""
Ledger Models

Debts and the records produced when the ledger changes: interest
applications, earnings payments, cardio buyouts and read-only summaries.

Invariants enforced here:
- current_amount is never negative
- status is PAID exactly when current_amount is zero
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from decider.models.money import ZERO, round2


# =============================================================================
# ENUMS
# =============================================================================

class DebtStatus(str, Enum):
    ACTIVE = "active"
    PAID = "paid"


class DebtUrgency(str, Enum):
    """How worried the user should be about a debt."""
    NEW = "new"
    WARNING = "warning"
    OVERDUE = "overdue"
    CRITICAL = "critical"


# =============================================================================
# DEBT
# =============================================================================

class Debt(BaseModel):
    """
    A single debt in the ledger.

    Created by a violation or a missed punishment. Grows by daily
    compound interest, shrinks by earnings payments or cardio buyouts.
    Terminal once PAID.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(..., min_length=1, max_length=300)
    original_amount: Decimal = Field(..., ge=0)
    current_amount: Decimal = Field(..., ge=0)
    date_assigned: date
    interest_rate: Decimal = Field(default=Decimal("0.30"), ge=0)
    status: DebtStatus = Field(default=DebtStatus.ACTIVE)
    last_interest_date: Optional[date] = Field(
        default=None,
        description="Calendar day interest was last applied"
    )

    @model_validator(mode='after')
    def validate_status_matches_amount(self) -> 'Debt':
        if self.current_amount <= 0:
            self.status = DebtStatus.PAID
        elif self.status == DebtStatus.PAID:
            raise ValueError(
                f"Debt '{self.name}' is marked paid but still owes {self.current_amount}"
            )
        return self

    @property
    def is_active(self) -> bool:
        return self.status == DebtStatus.ACTIVE

    def with_amount(self, new_amount: Decimal, **updates) -> 'Debt':
        """Copy with a new balance; status follows the balance."""
        amount = round2(new_amount)
        if amount <= 0:
            amount = ZERO
        status = DebtStatus.PAID if amount <= 0 else DebtStatus.ACTIVE
        return self.model_copy(
            update={"current_amount": amount, "status": status, **updates}
        )

    def days_outstanding(self, as_of: date) -> int:
        return max((as_of - self.date_assigned).days, 0)

    def is_overdue(self, as_of: date, threshold_days: int = 3) -> bool:
        return self.is_active and self.days_outstanding(as_of) > threshold_days

    def is_critical(self, as_of: date, threshold_days: int = 14) -> bool:
        return self.is_active and self.days_outstanding(as_of) > threshold_days

    def urgency(self, as_of: date) -> DebtUrgency:
        if self.is_critical(as_of):
            return DebtUrgency.CRITICAL
        if self.is_overdue(as_of):
            return DebtUrgency.OVERDUE
        if self.days_outstanding(as_of) >= 1:
            return DebtUrgency.WARNING
        return DebtUrgency.NEW

    @property
    def total_interest_accrued(self) -> Decimal:
        """Growth above the original amount (zero once paid down below it)."""
        return max(round2(self.current_amount - self.original_amount), ZERO)


# =============================================================================
# LEDGER OPERATION RESULTS
# =============================================================================

class InterestApplication(BaseModel):
    debt_id: str
    debt_name: str
    old_amount: Decimal
    new_amount: Decimal
    interest_applied: Decimal
    interest_rate: Decimal


class DebtPayment(BaseModel):
    debt_id: str
    name: str
    payment_amount: Decimal
    remaining_debt: Decimal
    status: DebtStatus


class PaymentAllocation(BaseModel):
    """Outcome of spreading earnings across open debts, oldest first."""

    payments: list[DebtPayment] = Field(default_factory=list)
    remaining: Decimal = ZERO

    @property
    def total_paid(self) -> Decimal:
        return round2(sum((p.payment_amount for p in self.payments), ZERO))


class BuyoutResult(BaseModel):
    debt_id: str
    cardio_minutes: int
    forgiveness_amount: Decimal
    old_amount: Decimal
    new_amount: Decimal
    status: DebtStatus


class DebtSummary(BaseModel):
    total_debt: Decimal = ZERO
    debt_count: int = 0
    oldest_debt_days: int = 0
    highest_debt: Decimal = ZERO
    overdue_count: int = 0
    critical_count: int = 0
    debt_free: bool = True


class DebtAging(BaseModel):
    """Active debts grouped by age: 0-3, 4-7, 8-13 and 14+ days."""

    new_debt: list[Debt] = Field(default_factory=list)
    medium_debt: list[Debt] = Field(default_factory=list)
    old_debt: list[Debt] = Field(default_factory=list)
    critical_debt: list[Debt] = Field(default_factory=list)

    def totals(self) -> dict[str, Decimal]:
        return {
            bucket: round2(sum((d.current_amount for d in getattr(self, bucket)), ZERO))
            for bucket in ("new_debt", "medium_debt", "old_debt", "critical_debt")
        }


class DebtStatistics(BaseModel):
    total_debt: Decimal = ZERO
    debt_count: int = 0
    average_debt: Decimal = ZERO
    highest_debt: Decimal = ZERO
    oldest_debt_days: int = 0
    newest_debt_days: int = 0


# =============================================================================
# BANK SIGNALS
# =============================================================================

class BalanceSnapshot(BaseModel):
    """Daily balance of the earnings account, written by the bank sync."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    snapshot_date: date
    account_b_balance: Decimal
    recorded_at: Optional[datetime] = None
