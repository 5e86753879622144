"""
Shared fixtures.

Everything runs against InMemoryStorage and stub integrations; no test
talks to Google Sheets or a real tracker.
"""

import random
from datetime import date
from typing import Optional

import pytest

from decider.activity import WeeklyHabitsService, WorkoutAnalyzer
from decider.audit import AuditLogger
from decider.bonuses import BonusEvaluator
from decider.config import LedgerSettings, ReconciliationSettings, Settings
from decider.ledger import DebtLedger
from decider.models.activity import Workout
from decider.models.punishments import Punishment
from decider.models.rules import Rule, RuleFrequency, RuleType
from decider.orchestrator import create_app_components
from decider.punishments import MissedCheckinCheck, PunishmentEngine, ThreeRouteAssigner
from decider.rules import RulesCache, RulesStore
from decider.services.integrations import (
    HabitTrackerInterface,
    IntegrationError,
    WorkoutSourceInterface,
)
from decider.services.storage import InMemoryStorage

# Wednesday; its week starts Monday 2024-06-10
RUN_DATE = date(2024, 6, 12)
WEEK_START = date(2024, 6, 10)


class StubWorkoutSource(WorkoutSourceInterface):
    def __init__(self, workouts: Optional[list[Workout]] = None, fail: bool = False):
        self.workouts = list(workouts or [])
        self.fail = fail

    async def fetch_workouts(self, on_date: date) -> list[Workout]:
        if self.fail:
            raise IntegrationError("strava", "401 Unauthorized")
        return [w for w in self.workouts if w.workout_date == on_date]


class StubHabitTracker(HabitTrackerInterface):
    def __init__(self, counts: Optional[dict[str, int]] = None, fail: bool = False):
        self.counts = dict(counts or {})
        self.fail = fail
        self.todos: list[Punishment] = []
        self.scores: list[tuple[str, str]] = []

    async def get_completion_count(self, habit: str, start: date, end: date) -> int:
        if self.fail or habit not in self.counts:
            raise IntegrationError("habitica", f"no data for {habit}")
        return self.counts[habit]

    async def create_punishment_todo(self, punishment: Punishment) -> Optional[str]:
        if self.fail:
            raise IntegrationError("habitica", "unreachable")
        self.todos.append(punishment)
        return f"todo-{len(self.todos)}"

    async def score_habit(self, habit: str, direction: str) -> None:
        if self.fail:
            raise IntegrationError("habitica", "unreachable")
        self.scores.append((habit, direction))


def make_rule(
    name: str,
    value: str,
    rule_type: RuleType = RuleType.BONUS,
    frequency: RuleFrequency = RuleFrequency.WEEKLY,
    punishable: bool = False,
) -> Rule:
    return Rule(
        name=name,
        type=rule_type,
        frequency=frequency,
        punishable=punishable,
        base_value=value,
    )


@pytest.fixture
def base_rules() -> list[Rule]:
    return [
        make_rule("lifting_bonus_amount", "$10", frequency=RuleFrequency.PER_OCCURRENCE),
        make_rule("extra_yoga_bonus_amount", "$5", frequency=RuleFrequency.PER_OCCURRENCE),
        make_rule("perfect_week_bonus", "$25"),
        make_rule("job_applications_bonus", "$20"),
        make_rule("job_applications_minimum", "25", RuleType.EXPECTATION, punishable=True),
        make_rule("weekly_base_allowance", "$50", RuleType.FINANCIAL),
        make_rule("missed_cardio_debt_amount", "$50", RuleType.FINANCIAL,
                  frequency=RuleFrequency.DAILY),
    ]


@pytest.fixture
def storage(base_rules) -> InMemoryStorage:
    return InMemoryStorage(rules=base_rules)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(7)


@pytest.fixture
def audit_logger(storage) -> AuditLogger:
    return AuditLogger(storage)


@pytest.fixture
def rules_store(storage, audit_logger) -> RulesStore:
    return RulesStore(storage, RulesCache(ttl_seconds=300), audit_logger)


@pytest.fixture
def ledger(storage) -> DebtLedger:
    return DebtLedger(storage, LedgerSettings())


@pytest.fixture
def bonuses(storage, rules_store) -> BonusEvaluator:
    return BonusEvaluator(storage, rules_store)


@pytest.fixture
def workouts(storage) -> WorkoutAnalyzer:
    return WorkoutAnalyzer(storage)


@pytest.fixture
def habits(storage) -> WeeklyHabitsService:
    return WeeklyHabitsService(storage)


@pytest.fixture
def habit_tracker() -> StubHabitTracker:
    return StubHabitTracker()


@pytest.fixture
def workout_source() -> StubWorkoutSource:
    return StubWorkoutSource()


@pytest.fixture
def engine(storage, rules_store, ledger, rng, habit_tracker) -> PunishmentEngine:
    return PunishmentEngine(
        storage,
        storage,
        rules_store,
        ledger,
        checks=[MissedCheckinCheck(storage, minutes=20)],
        rng=rng,
        habit_tracker=habit_tracker,
        settings=ReconciliationSettings(),
    )


@pytest.fixture
def assigner(storage, rng) -> ThreeRouteAssigner:
    return ThreeRouteAssigner(storage, rng=rng)


@pytest.fixture
def components(storage, workout_source, habit_tracker, rng):
    return create_app_components(
        settings=Settings(),
        storage=storage,
        workout_source=workout_source,
        habit_tracker=habit_tracker,
        rng=rng,
    )
