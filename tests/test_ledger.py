"""
Tests for the debt ledger: interest, violation debts, payments, buyouts
and the read-only aggregations.
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from decider.config import LedgerSettings
from decider.ledger import DebtLedger
from decider.models.audit import AuditEventType
from decider.models.ledger import BalanceSnapshot, Debt, DebtStatus
from decider.services.storage import NotFoundError


def _debt(name: str, amount: str, assigned: date, rate: str = "0.30") -> Debt:
    return Debt(
        name=name,
        original_amount=Decimal(amount),
        current_amount=Decimal(amount),
        date_assigned=assigned,
        interest_rate=Decimal(rate),
    )


class TestDailyInterest:
    """Tests for compound interest."""

    async def test_interest_compounds_per_day(self, storage, ledger):
        """Test that each day multiplies by (1 + rate) and rounds."""
        debt = await storage.create_debt(_debt("Violation: a", "50", date(2024, 6, 1)))

        first = await ledger.apply_daily_interest(date(2024, 6, 2))
        second = await ledger.apply_daily_interest(date(2024, 6, 3))

        assert first[0].new_amount == Decimal("65.00")
        assert first[0].interest_applied == Decimal("15.00")
        assert second[0].new_amount == Decimal("84.50")
        assert storage.debts[debt.id].current_amount == Decimal("84.50")

    async def test_interest_rounds_half_up_each_step(self, storage, ledger):
        """Test per-step rounding to cents."""
        await storage.create_debt(_debt("Violation: b", "10.01", date(2024, 6, 1)))
        applied = await ledger.apply_daily_interest(date(2024, 6, 2))
        assert applied[0].new_amount == Decimal("13.01")

    async def test_same_day_is_idempotent(self, storage, ledger):
        """Test that a second call for the same date changes nothing."""
        debt = await storage.create_debt(_debt("Violation: c", "50", date(2024, 6, 1)))

        await ledger.apply_daily_interest(date(2024, 6, 2))
        again = await ledger.apply_daily_interest(date(2024, 6, 2))

        assert again == []
        assert storage.debts[debt.id].current_amount == Decimal("65.00")
        assert storage.debts[debt.id].last_interest_date == date(2024, 6, 2)

    async def test_paid_debts_do_not_accrue(self, storage, ledger):
        """Test that only active debts compound."""
        paid = _debt("Violation: d", "50", date(2024, 6, 1)).with_amount(Decimal("0"))
        await storage.create_debt(paid)
        assert await ledger.apply_daily_interest(date(2024, 6, 2)) == []


class TestViolationDebts:
    """Tests for debt creation."""

    async def test_creates_with_defaults(self, ledger):
        """Test the default amount and name."""
        debt = await ledger.create_violation_debt("Skipped check-in", date(2024, 6, 12))
        assert debt.name == "Violation: Skipped check-in"
        assert debt.original_amount == Decimal("50.00")
        assert debt.current_amount == debt.original_amount
        assert debt.status == DebtStatus.ACTIVE
        assert debt.interest_rate == Decimal("0.30")

    async def test_same_name_same_day_returns_existing(self, storage, ledger):
        """Test that duplicate violations on one day create one debt."""
        first = await ledger.create_violation_debt("Late", date(2024, 6, 12), Decimal("20"))
        second = await ledger.create_violation_debt("Late", date(2024, 6, 12), Decimal("20"))

        assert first.id == second.id
        assert len(storage.debts) == 1

    async def test_same_name_other_day_creates_new(self, storage, ledger):
        """Test that the duplicate check is per day."""
        await ledger.create_violation_debt("Late", date(2024, 6, 12))
        await ledger.create_violation_debt("Late", date(2024, 6, 13))
        assert len(storage.debts) == 2

    async def test_settings_drive_defaults(self, storage):
        """Test that ledger settings set the default amount and rate."""
        ledger = DebtLedger(storage, LedgerSettings(
            violation_debt_amount=Decimal("12.345"),
            default_interest_rate=Decimal("0.10"),
        ))
        debt = await ledger.create_violation_debt("Custom", date(2024, 6, 12))
        assert debt.original_amount == Decimal("12.35")
        assert debt.interest_rate == Decimal("0.10")


class TestEarningsPayments:
    """Tests for FIFO earnings allocation."""

    async def test_oldest_debt_paid_first(self, storage, ledger):
        """Test that payments go to the oldest debt first."""
        newer = await storage.create_debt(_debt("Violation: new", "50", date(2024, 6, 5)))
        older = await storage.create_debt(_debt("Violation: old", "30", date(2024, 6, 1)))

        allocation = await ledger.apply_earnings_to_debt(Decimal("40"))

        assert [p.debt_id for p in allocation.payments] == [older.id, newer.id]
        assert allocation.payments[0].payment_amount == Decimal("30.00")
        assert allocation.payments[0].status == DebtStatus.PAID
        assert allocation.payments[1].payment_amount == Decimal("10.00")
        assert allocation.payments[1].remaining_debt == Decimal("40.00")
        assert allocation.remaining == Decimal("0.00")
        assert allocation.total_paid == Decimal("40.00")
        assert storage.debts[older.id].status == DebtStatus.PAID

    async def test_leftover_earnings_returned(self, storage, ledger):
        """Test that earnings beyond total debt come back as remaining."""
        await storage.create_debt(_debt("Violation: a", "30", date(2024, 6, 1)))
        await storage.create_debt(_debt("Violation: b", "50", date(2024, 6, 2)))

        allocation = await ledger.apply_earnings_to_debt(Decimal("100"))

        assert allocation.total_paid == Decimal("80.00")
        assert allocation.remaining == Decimal("20.00")
        assert await ledger.is_debt_free()

    async def test_no_debts(self, ledger):
        """Test that all earnings remain when nothing is owed."""
        allocation = await ledger.apply_earnings_to_debt(Decimal("25"))
        assert allocation.payments == []
        assert allocation.remaining == Decimal("25.00")


class TestCardioBuyout:
    """Tests for cardio buyouts."""

    async def test_partial_buyout(self, storage, ledger):
        """Test that 60 minutes at $50/120min forgives $25."""
        debt = await storage.create_debt(_debt("Violation: a", "50", date(2024, 6, 1)))
        result = await ledger.process_cardio_buyout(debt.id, 60)

        assert result.forgiveness_amount == Decimal("25.00")
        assert result.new_amount == Decimal("25.00")
        assert result.status == DebtStatus.ACTIVE

    async def test_buyout_capped_at_balance(self, storage, ledger):
        """Test that forgiveness never exceeds the balance."""
        debt = await storage.create_debt(_debt("Violation: a", "30", date(2024, 6, 1)))
        result = await ledger.process_cardio_buyout(debt.id, 120)

        assert result.forgiveness_amount == Decimal("30.00")
        assert result.status == DebtStatus.PAID

    async def test_buyout_is_audited(self, storage, audit_logger):
        """Test that a buyout records a debt_forgiven event."""
        ledger = DebtLedger(storage, LedgerSettings(), audit_logger)
        debt = await storage.create_debt(_debt("Violation: a", "50", date(2024, 6, 1)))
        correlation_id = uuid4()

        await ledger.process_cardio_buyout(debt.id, 60, correlation_id=correlation_id)

        [event] = [e for e in storage.events if e.event_type == AuditEventType.DEBT_FORGIVEN]
        assert event.entity_id == debt.id
        assert event.correlation_id == correlation_id
        assert event.details == {"cardio_minutes": 60, "forgiveness_amount": "25.00"}

    async def test_rejects_non_positive_minutes(self, storage, ledger):
        """Test that zero minutes is rejected."""
        debt = await storage.create_debt(_debt("Violation: a", "30", date(2024, 6, 1)))
        with pytest.raises(ValueError):
            await ledger.process_cardio_buyout(debt.id, 0)

    async def test_rejects_paid_debt(self, storage, ledger):
        """Test that a paid debt cannot be bought out."""
        paid = _debt("Violation: a", "30", date(2024, 6, 1)).with_amount(Decimal("0"))
        await storage.create_debt(paid)
        with pytest.raises(ValueError):
            await ledger.process_cardio_buyout(paid.id, 30)

    async def test_unknown_debt(self, ledger):
        """Test that a missing debt raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await ledger.process_cardio_buyout("missing", 30)


class TestAggregations:
    """Tests for summaries, aging and statistics."""

    async def test_empty_summary(self, ledger):
        """Test the summary with no debts."""
        summary = await ledger.get_debt_summary(date(2024, 6, 12))
        assert summary.debt_free
        assert summary.total_debt == Decimal("0.00")

    async def test_summary_and_aging(self, storage, ledger):
        """Test bucketing by age."""
        as_of = date(2024, 6, 21)
        for days, amount in ((0, "10"), (5, "20"), (10, "30"), (20, "40")):
            assigned = date.fromordinal(as_of.toordinal() - days)
            await storage.create_debt(_debt(f"Violation: {days}", amount, assigned))

        summary = await ledger.get_debt_summary(as_of)
        assert summary.total_debt == Decimal("100.00")
        assert summary.debt_count == 4
        assert summary.oldest_debt_days == 20
        assert summary.highest_debt == Decimal("40")
        assert summary.overdue_count == 3
        assert summary.critical_count == 1
        assert not summary.debt_free

        totals = (await ledger.get_debt_aging(as_of)).totals()
        assert totals == {
            "new_debt": Decimal("10.00"),
            "medium_debt": Decimal("20.00"),
            "old_debt": Decimal("30.00"),
            "critical_debt": Decimal("40.00"),
        }

        stats = await ledger.get_debt_statistics(as_of)
        assert stats.average_debt == Decimal("25.00")
        assert stats.newest_debt_days == 0


class TestDailyEarnings:
    """Tests for earnings from balance snapshots."""

    def _snap(self, day: int, balance: str) -> BalanceSnapshot:
        return BalanceSnapshot(
            snapshot_date=date(2024, 6, day),
            account_b_balance=Decimal(balance),
        )

    def test_difference_of_latest_two(self):
        """Test latest minus previous balance."""
        snapshots = [self._snap(11, "100"), self._snap(12, "140")]
        assert DebtLedger.calculate_daily_earnings(snapshots) == Decimal("40.00")

    def test_falling_balance_is_zero(self):
        """Test that a withdrawal is not negative earnings."""
        snapshots = [self._snap(12, "90"), self._snap(11, "100")]
        assert DebtLedger.calculate_daily_earnings(snapshots) == Decimal("0.00")

    def test_single_snapshot_is_zero(self):
        """Test that one snapshot gives no earnings."""
        assert DebtLedger.calculate_daily_earnings([self._snap(12, "90")]) == Decimal("0.00")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
