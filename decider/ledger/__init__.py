"""Ledger package: debts, interest and payments."""

from decider.ledger.debt import DebtLedger

__all__ = ["DebtLedger"]
