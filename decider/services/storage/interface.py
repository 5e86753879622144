"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the document store (Google Sheets today) swappable
2. Use in-memory storage for tests and local dry runs
3. Keep display-name quirks of the store out of the ledger logic

The interface is intentionally simple - query by filter, create, update.
Every entity is keyed by an opaque string id; filtering beyond what a
method offers is done by the caller.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from decider.models.activity import CheckIn, WeeklyHabitsEntry, Workout, WorkoutType
from decider.models.audit import AuditEvent
from decider.models.bonuses import Bonus, BonusStatus, BonusType
from decider.models.ledger import BalanceSnapshot, Debt, DebtStatus
from decider.models.punishments import Punishment, PunishmentStatus
from decider.models.rules import Rule


class RuleStorageInterface(ABC):
    """Rules are edited by the operator; the core reads them and adjusts modifiers."""

    @abstractmethod
    async def list_rules(self) -> list[Rule]:
        """
        Return every rule definition.

        Raises:
            StorageError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def update_rule(self, rule: Rule) -> bool:
        """
        Persist the modifier fields of an existing rule.

        Args:
            rule: The rule with updated modifier/calculated value

        Returns:
            True if updated successfully

        Raises:
            NotFoundError: If no rule has this name
            StorageError: If update fails
        """
        pass


class DebtStorageInterface(ABC):
    """
    Abstract interface for the debt ledger.

    Debts are never deleted; a paid debt stays in the store with
    status PAID and a zero balance.
    """

    @abstractmethod
    async def create_debt(self, debt: Debt) -> Debt:
        """
        Save a new debt.

        Returns:
            The stored debt (with the id the store assigned)

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_debt(self, debt_id: str) -> Optional[Debt]:
        """Return the debt, or None if it does not exist."""
        pass

    @abstractmethod
    async def update_debt(self, debt: Debt) -> bool:
        """
        Update amount/status/interest date of an existing debt.

        Raises:
            NotFoundError: If debt doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def list_debts(
        self,
        status: Optional[DebtStatus] = None,
        name: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Debt]:
        """
        List debts with optional filters.

        Args:
            status: Filter by status
            name: Exact debt name
            date_from: Assigned on or after this date
            date_to: Assigned on or before this date

        Returns:
            Matching debts, oldest assignment first
        """
        pass


class PunishmentStorageInterface(ABC):

    @abstractmethod
    async def create_punishment(self, punishment: Punishment) -> Punishment:
        """Save a new punishment or policy override record."""
        pass

    @abstractmethod
    async def get_punishment(self, punishment_id: str) -> Optional[Punishment]:
        pass

    @abstractmethod
    async def update_punishment(self, punishment: Punishment) -> bool:
        """
        Update status/completion fields of an existing punishment.

        Raises:
            NotFoundError: If punishment doesn't exist
        """
        pass

    @abstractmethod
    async def list_punishments(
        self,
        status: Optional[PunishmentStatus] = None,
        assigned_from: Optional[date] = None,
        assigned_to: Optional[date] = None,
        week_start: Optional[date] = None,
        route: Optional[int] = None,
    ) -> list[Punishment]:
        """
        List punishments with optional filters.

        Returns:
            Matching punishments ordered by due date, then assignment date
        """
        pass


class BonusStorageInterface(ABC):

    @abstractmethod
    async def create_bonus(self, bonus: Bonus) -> Bonus:
        """Save a new bonus (normally in PENDING status)."""
        pass

    @abstractmethod
    async def update_bonus(self, bonus: Bonus) -> bool:
        """
        Update the status of a bonus.

        Raises:
            NotFoundError: If bonus doesn't exist
            DuplicateError: If the stored bonus is already awarded
        """
        pass

    @abstractmethod
    async def list_bonuses(
        self,
        bonus_date: Optional[date] = None,
        week_of: Optional[date] = None,
        bonus_type: Optional[BonusType] = None,
        status: Optional[BonusStatus] = None,
    ) -> list[Bonus]:
        pass


class WorkoutStorageInterface(ABC):
    """Workouts are written by the tracker sync (or ingest step) and read by the core."""

    @abstractmethod
    async def create_workout(self, workout: Workout) -> Workout:
        pass

    @abstractmethod
    async def list_workouts(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        workout_type: Optional[WorkoutType] = None,
    ) -> list[Workout]:
        """
        List workouts in a date range (inclusive), oldest first.
        """
        pass

    @abstractmethod
    async def get_workout_by_external_id(self, external_id: str) -> Optional[Workout]:
        """Look up a synced workout by its tracker id (deduplication)."""
        pass


class HabitsStorageInterface(ABC):
    """One WeeklyHabitsEntry per Monday-start week."""

    @abstractmethod
    async def get_week(self, week_start: date) -> Optional[WeeklyHabitsEntry]:
        pass

    @abstractmethod
    async def create_week(self, entry: WeeklyHabitsEntry) -> WeeklyHabitsEntry:
        """
        Raises:
            DuplicateError: If an entry already exists for entry.week_start
        """
        pass

    @abstractmethod
    async def update_week(self, entry: WeeklyHabitsEntry) -> bool:
        pass


class CheckinStorageInterface(ABC):

    @abstractmethod
    async def get_checkin(self, on_date: date, kind: str = "morning") -> Optional[CheckIn]:
        """Return the check-in of this kind logged on on_date, if any."""
        pass

    @abstractmethod
    async def record_checkin(self, checkin: CheckIn) -> CheckIn:
        pass


class BalanceStorageInterface(ABC):
    """Account balance snapshots written by the bank sync."""

    @abstractmethod
    async def list_balances(
        self,
        on_or_before: Optional[date] = None,
        limit: int = 2,
    ) -> list[BalanceSnapshot]:
        """
        Latest balance snapshots.

        Args:
            on_or_before: Ignore snapshots after this date
            limit: Maximum number of snapshots

        Returns:
            Snapshots, newest first
        """
        pass

    @abstractmethod
    async def record_balance(self, snapshot: BalanceSnapshot) -> BalanceSnapshot:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (one reconciliation run).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
