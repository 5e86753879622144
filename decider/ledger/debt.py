"""
Debt Ledger

DESIGN DECISION: The ledger only moves money in four ways:
1. Daily compound interest (grows active debts)
2. Violation debts (created by violations and missed punishments)
3. Earnings payments (oldest debt first)
4. Cardio buyouts (minutes of cardio forgive dollars)

Every amount is rounded to cents, half-up, after each step.

Batch operations walk debts sequentially, oldest first. If storage fails
part way, the debts already written stay written and the error
propagates to the caller; nothing is retried here.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from decider.audit import AuditLogger
from decider.config import LedgerSettings
from decider.models.ledger import (
    BalanceSnapshot,
    BuyoutResult,
    Debt,
    DebtAging,
    DebtPayment,
    DebtStatistics,
    DebtStatus,
    DebtSummary,
    InterestApplication,
    PaymentAllocation,
)
from decider.models.money import ZERO, round2, to_decimal
from decider.services.storage import DebtStorageInterface, NotFoundError

logger = structlog.get_logger(__name__)


class DebtLedger:
    """Debt creation, interest, payments and read-only aggregations."""

    def __init__(
        self,
        storage: DebtStorageInterface,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._settings = settings or LedgerSettings()
        self._audit_logger = audit_logger

    @property
    def settings(self) -> LedgerSettings:
        return self._settings

    # =========================================================================
    # INTEREST
    # =========================================================================

    async def apply_daily_interest(self, on_date: date) -> list[InterestApplication]:
        """
        Compound every active debt once for `on_date`.

        new_amount = round2(current_amount * (1 + interest_rate)).
        A debt whose last_interest_date is already `on_date` is skipped,
        so a second call for the same day changes nothing.
        """
        applications = []
        for debt in await self.get_active_debts():
            if debt.current_amount <= 0:
                continue
            if debt.last_interest_date == on_date:
                logger.info("interest_already_applied", debt_id=debt.id, date=str(on_date))
                continue

            old_amount = debt.current_amount
            new_amount = round2(old_amount * (Decimal("1") + debt.interest_rate))
            updated = debt.with_amount(new_amount, last_interest_date=on_date)
            await self._storage.update_debt(updated)

            applications.append(InterestApplication(
                debt_id=debt.id,
                debt_name=debt.name,
                old_amount=old_amount,
                new_amount=updated.current_amount,
                interest_applied=round2(updated.current_amount - old_amount),
                interest_rate=debt.interest_rate,
            ))

        return applications

    # =========================================================================
    # CREATION
    # =========================================================================

    async def create_violation_debt(
        self,
        reason: str,
        on_date: date,
        amount: Optional[Decimal] = None,
        name: Optional[str] = None,
    ) -> Debt:
        """
        Create an active debt for a violation.

        If a debt with the same name was already assigned on `on_date`,
        that debt is returned instead of creating a second one.
        """
        name = name or f"Violation: {reason}"
        existing = await self._storage.list_debts(
            name=name,
            date_from=on_date,
            date_to=on_date,
        )
        if existing:
            logger.info("duplicate_debt_suppressed", name=name, date=str(on_date))
            return existing[0]

        amount = round2(amount if amount is not None else self._settings.violation_debt_amount)
        debt = Debt(
            name=name,
            original_amount=amount,
            current_amount=amount,
            date_assigned=on_date,
            interest_rate=self._settings.default_interest_rate,
            status=DebtStatus.ACTIVE,
        )
        created = await self._storage.create_debt(debt)
        logger.info("debt_created", debt_id=created.id, name=name, amount=str(amount))
        return created

    # =========================================================================
    # PAYMENTS
    # =========================================================================

    async def apply_earnings_to_debt(
        self,
        amount: Decimal,
        debts: Optional[list[Debt]] = None,
    ) -> PaymentAllocation:
        """
        Spread `amount` across debts, oldest date_assigned first.

        Each debt receives min(remaining, current_amount). A debt brought
        to zero is marked paid. Whatever is left over is returned as
        `remaining`.
        """
        remaining = round2(amount)
        if debts is None:
            debts = await self.get_active_debts()
        ordered = sorted(
            (d for d in debts if d.is_active and d.current_amount > 0),
            key=lambda d: d.date_assigned,
        )

        payments = []
        for debt in ordered:
            if remaining <= 0:
                break
            payment = round2(min(remaining, debt.current_amount))
            updated = debt.with_amount(debt.current_amount - payment)
            await self._storage.update_debt(updated)
            remaining = round2(remaining - payment)

            payments.append(DebtPayment(
                debt_id=debt.id,
                name=debt.name,
                payment_amount=payment,
                remaining_debt=updated.current_amount,
                status=updated.status,
            ))
            logger.info(
                "debt_payment_applied",
                debt_id=debt.id,
                payment=str(payment),
                remaining_debt=str(updated.current_amount),
            )

        return PaymentAllocation(payments=payments, remaining=remaining)

    async def process_cardio_buyout(
        self,
        debt_id: str,
        cardio_minutes: int,
        correlation_id: Optional[UUID] = None,
    ) -> BuyoutResult:
        """
        Forgive part of a debt in exchange for cardio minutes.

        The forgiveness is recorded as a debt_forgiven audit event when
        the ledger has an audit logger.

        Raises:
            NotFoundError: If the debt does not exist
            ValueError: If minutes are not positive or the debt is paid
        """
        if cardio_minutes <= 0:
            raise ValueError("cardio_minutes must be positive")

        debt = await self._storage.get_debt(debt_id)
        if debt is None:
            raise NotFoundError(f"Debt not found: {debt_id}")
        if not debt.is_active:
            raise ValueError(f"Debt '{debt.name}' is already paid")

        earned = Decimal(cardio_minutes) * self._settings.cardio_buyout_rate
        forgiveness = round2(min(earned, debt.current_amount))
        updated = debt.with_amount(debt.current_amount - forgiveness)
        await self._storage.update_debt(updated)

        logger.info(
            "cardio_buyout_processed",
            debt_id=debt_id,
            cardio_minutes=cardio_minutes,
            forgiveness=str(forgiveness),
        )
        if self._audit_logger:
            await self._audit_logger.log_debt_forgiven(
                debt_id=debt_id,
                cardio_minutes=cardio_minutes,
                forgiveness_amount=str(forgiveness),
                correlation_id=correlation_id,
            )
        return BuyoutResult(
            debt_id=debt_id,
            cardio_minutes=cardio_minutes,
            forgiveness_amount=forgiveness,
            old_amount=debt.current_amount,
            new_amount=updated.current_amount,
            status=updated.status,
        )

    # =========================================================================
    # READ-ONLY AGGREGATIONS
    # =========================================================================

    async def get_active_debts(self) -> list[Debt]:
        return await self._storage.list_debts(status=DebtStatus.ACTIVE)

    async def get_total_active_debt(self) -> Decimal:
        debts = await self.get_active_debts()
        return round2(sum((d.current_amount for d in debts), ZERO))

    async def is_debt_free(self) -> bool:
        return await self.get_total_active_debt() <= 0

    async def get_debt_summary(self, as_of: date) -> DebtSummary:
        debts = await self.get_active_debts()
        if not debts:
            return DebtSummary()

        overdue_days = self._settings.overdue_after_days
        critical_days = self._settings.critical_after_days
        total = round2(sum((d.current_amount for d in debts), ZERO))
        return DebtSummary(
            total_debt=total,
            debt_count=len(debts),
            oldest_debt_days=max(d.days_outstanding(as_of) for d in debts),
            highest_debt=max(d.current_amount for d in debts),
            overdue_count=sum(1 for d in debts if d.is_overdue(as_of, overdue_days)),
            critical_count=sum(1 for d in debts if d.is_critical(as_of, critical_days)),
            debt_free=total <= 0,
        )

    async def get_debt_aging(self, as_of: date) -> DebtAging:
        aging = DebtAging()
        for debt in await self.get_active_debts():
            days = debt.days_outstanding(as_of)
            if days <= 3:
                aging.new_debt.append(debt)
            elif days <= 7:
                aging.medium_debt.append(debt)
            elif days <= 13:
                aging.old_debt.append(debt)
            else:
                aging.critical_debt.append(debt)
        return aging

    async def get_debt_statistics(self, as_of: date) -> DebtStatistics:
        debts = await self.get_active_debts()
        if not debts:
            return DebtStatistics()

        total = round2(sum((d.current_amount for d in debts), ZERO))
        ages = [d.days_outstanding(as_of) for d in debts]
        return DebtStatistics(
            total_debt=total,
            debt_count=len(debts),
            average_debt=round2(total / len(debts)),
            highest_debt=max(d.current_amount for d in debts),
            oldest_debt_days=max(ages),
            newest_debt_days=min(ages),
        )

    @staticmethod
    def calculate_daily_earnings(snapshots: list[BalanceSnapshot]) -> Decimal:
        """
        Earnings for the latest day: latest balance minus the one before.

        Fewer than two snapshots, or a falling balance, means no earnings.
        """
        if len(snapshots) < 2:
            return ZERO
        ordered = sorted(snapshots, key=lambda s: s.snapshot_date, reverse=True)
        delta = to_decimal(ordered[0].account_b_balance) - to_decimal(ordered[1].account_b_balance)
        return round2(delta) if delta > 0 else ZERO
