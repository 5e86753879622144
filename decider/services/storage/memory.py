"""
In-Memory Storage Implementation

Implements every storage interface with plain dicts. Used by the test
suite and for local dry runs (STORAGE_BACKEND=memory) where nothing
should reach the real spreadsheet.

Entities are copied on the way in and on the way out so callers can
never mutate stored state without going through an update method.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from decider.models.activity import CheckIn, WeeklyHabitsEntry, Workout, WorkoutType
from decider.models.audit import AuditEvent
from decider.models.bonuses import Bonus, BonusStatus, BonusType
from decider.models.ledger import BalanceSnapshot, Debt, DebtStatus
from decider.models.punishments import Punishment, PunishmentStatus
from decider.models.rules import Rule
from decider.services.storage.interface import (
    AuditStorageInterface,
    BalanceStorageInterface,
    BonusStorageInterface,
    CheckinStorageInterface,
    DebtStorageInterface,
    DuplicateError,
    HabitsStorageInterface,
    NotFoundError,
    PunishmentStorageInterface,
    RuleStorageInterface,
    WorkoutStorageInterface,
)


class InMemoryStorage(
    RuleStorageInterface,
    DebtStorageInterface,
    PunishmentStorageInterface,
    BonusStorageInterface,
    WorkoutStorageInterface,
    HabitsStorageInterface,
    CheckinStorageInterface,
    BalanceStorageInterface,
    AuditStorageInterface,
):
    """Dict-backed implementation of all storage interfaces."""

    def __init__(self, rules: Optional[list[Rule]] = None):
        self.rules: dict[str, Rule] = {r.name: r.model_copy() for r in rules or []}
        self.debts: dict[str, Debt] = {}
        self.punishments: dict[str, Punishment] = {}
        self.bonuses: dict[str, Bonus] = {}
        self.workouts: dict[str, Workout] = {}
        self.weeks: dict[date, WeeklyHabitsEntry] = {}
        self.checkins: list[CheckIn] = []
        self.balances: list[BalanceSnapshot] = []
        self.events: list[AuditEvent] = []
        self.rule_reads = 0

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    async def list_rules(self) -> list[Rule]:
        self.rule_reads += 1
        return [r.model_copy() for r in self.rules.values()]

    async def update_rule(self, rule: Rule) -> bool:
        if rule.name not in self.rules:
            raise NotFoundError(f"Rule not found: {rule.name}")
        self.rules[rule.name] = rule.model_copy()
        return True

    # -------------------------------------------------------------------------
    # Debts
    # -------------------------------------------------------------------------

    async def create_debt(self, debt: Debt) -> Debt:
        if debt.id in self.debts:
            raise DuplicateError(f"Debt already exists: {debt.id}")
        self.debts[debt.id] = debt.model_copy()
        return debt.model_copy()

    async def get_debt(self, debt_id: str) -> Optional[Debt]:
        debt = self.debts.get(debt_id)
        return debt.model_copy() if debt else None

    async def update_debt(self, debt: Debt) -> bool:
        if debt.id not in self.debts:
            raise NotFoundError(f"Debt not found: {debt.id}")
        self.debts[debt.id] = debt.model_copy()
        return True

    async def list_debts(
        self,
        status: Optional[DebtStatus] = None,
        name: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Debt]:
        debts = []
        for debt in self.debts.values():
            if status and debt.status != status:
                continue
            if name and debt.name != name:
                continue
            if date_from and debt.date_assigned < date_from:
                continue
            if date_to and debt.date_assigned > date_to:
                continue
            debts.append(debt.model_copy())
        debts.sort(key=lambda d: d.date_assigned)
        return debts

    # -------------------------------------------------------------------------
    # Punishments
    # -------------------------------------------------------------------------

    async def create_punishment(self, punishment: Punishment) -> Punishment:
        if punishment.id in self.punishments:
            raise DuplicateError(f"Punishment already exists: {punishment.id}")
        self.punishments[punishment.id] = punishment.model_copy()
        return punishment.model_copy()

    async def get_punishment(self, punishment_id: str) -> Optional[Punishment]:
        punishment = self.punishments.get(punishment_id)
        return punishment.model_copy() if punishment else None

    async def update_punishment(self, punishment: Punishment) -> bool:
        if punishment.id not in self.punishments:
            raise NotFoundError(f"Punishment not found: {punishment.id}")
        self.punishments[punishment.id] = punishment.model_copy()
        return True

    async def list_punishments(
        self,
        status: Optional[PunishmentStatus] = None,
        assigned_from: Optional[date] = None,
        assigned_to: Optional[date] = None,
        week_start: Optional[date] = None,
        route: Optional[int] = None,
    ) -> list[Punishment]:
        punishments = []
        for p in self.punishments.values():
            if status and p.status != status:
                continue
            if assigned_from and p.date_assigned < assigned_from:
                continue
            if assigned_to and p.date_assigned > assigned_to:
                continue
            if week_start and p.week_start != week_start:
                continue
            if route is not None and p.route != route:
                continue
            punishments.append(p.model_copy())
        punishments.sort(key=lambda p: (p.due_date, p.date_assigned))
        return punishments

    # -------------------------------------------------------------------------
    # Bonuses
    # -------------------------------------------------------------------------

    async def create_bonus(self, bonus: Bonus) -> Bonus:
        if bonus.id in self.bonuses:
            raise DuplicateError(f"Bonus already exists: {bonus.id}")
        self.bonuses[bonus.id] = bonus.model_copy()
        return bonus.model_copy()

    async def update_bonus(self, bonus: Bonus) -> bool:
        stored = self.bonuses.get(bonus.id)
        if stored is None:
            raise NotFoundError(f"Bonus not found: {bonus.id}")
        if stored.is_awarded:
            raise DuplicateError(f"Bonus already awarded: {bonus.id}")
        self.bonuses[bonus.id] = bonus.model_copy()
        return True

    async def list_bonuses(
        self,
        bonus_date: Optional[date] = None,
        week_of: Optional[date] = None,
        bonus_type: Optional[BonusType] = None,
        status: Optional[BonusStatus] = None,
    ) -> list[Bonus]:
        return [
            b.model_copy()
            for b in self.bonuses.values()
            if (bonus_date is None or b.bonus_date == bonus_date)
            and (week_of is None or b.week_of == week_of)
            and (bonus_type is None or b.type == bonus_type)
            and (status is None or b.status == status)
        ]

    # -------------------------------------------------------------------------
    # Workouts
    # -------------------------------------------------------------------------

    async def create_workout(self, workout: Workout) -> Workout:
        if workout.id in self.workouts:
            raise DuplicateError(f"Workout already exists: {workout.id}")
        self.workouts[workout.id] = workout.model_copy()
        return workout.model_copy()

    async def list_workouts(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        workout_type: Optional[WorkoutType] = None,
    ) -> list[Workout]:
        workouts = [
            w.model_copy()
            for w in self.workouts.values()
            if (date_from is None or w.workout_date >= date_from)
            and (date_to is None or w.workout_date <= date_to)
            and (workout_type is None or w.type == workout_type)
        ]
        workouts.sort(key=lambda w: w.workout_date)
        return workouts

    async def get_workout_by_external_id(self, external_id: str) -> Optional[Workout]:
        for w in self.workouts.values():
            if w.external_id == external_id:
                return w.model_copy()
        return None

    # -------------------------------------------------------------------------
    # Weekly habits
    # -------------------------------------------------------------------------

    async def get_week(self, week_start: date) -> Optional[WeeklyHabitsEntry]:
        entry = self.weeks.get(week_start)
        return entry.model_copy() if entry else None

    async def create_week(self, entry: WeeklyHabitsEntry) -> WeeklyHabitsEntry:
        if entry.week_start in self.weeks:
            raise DuplicateError(f"Week already exists: {entry.week_start}")
        self.weeks[entry.week_start] = entry.model_copy()
        return entry.model_copy()

    async def update_week(self, entry: WeeklyHabitsEntry) -> bool:
        if entry.week_start not in self.weeks:
            raise NotFoundError(f"Week not found: {entry.week_start}")
        self.weeks[entry.week_start] = entry.model_copy()
        return True

    # -------------------------------------------------------------------------
    # Check-ins & balances
    # -------------------------------------------------------------------------

    async def get_checkin(self, on_date: date, kind: str = "morning") -> Optional[CheckIn]:
        for c in self.checkins:
            if c.checkin_date == on_date and c.kind == kind:
                return c.model_copy()
        return None

    async def record_checkin(self, checkin: CheckIn) -> CheckIn:
        self.checkins.append(checkin.model_copy())
        return checkin

    async def list_balances(
        self,
        on_or_before: Optional[date] = None,
        limit: int = 2,
    ) -> list[BalanceSnapshot]:
        snapshots = [
            s for s in self.balances
            if on_or_before is None or s.snapshot_date <= on_or_before
        ]
        snapshots.sort(key=lambda s: s.snapshot_date, reverse=True)
        return [s.model_copy() for s in snapshots[:limit]]

    async def record_balance(self, snapshot: BalanceSnapshot) -> BalanceSnapshot:
        self.balances.append(snapshot.model_copy())
        return snapshot

    # -------------------------------------------------------------------------
    # Audit
    # -------------------------------------------------------------------------

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self.events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
