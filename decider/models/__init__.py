"""
Data Models Package

This package contains all Pydantic models used by Decider.
All data flowing through the reconciliation must conform to these schemas.
"""

from decider.models.activity import (
    CheckIn,
    HabitCounter,
    HabitProgress,
    WeeklyHabitsEntry,
    WeeklyPerformance,
    Workout,
    WorkoutType,
)
from decider.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from decider.models.bonuses import (
    FINANCIAL_BONUS_TYPES,
    WEEKLY_BONUS_TYPES,
    WORKOUT_BONUS_TYPES,
    AwardedBonus,
    Bonus,
    BonusStatus,
    BonusType,
)
from decider.models.ledger import (
    BalanceSnapshot,
    BuyoutResult,
    Debt,
    DebtAging,
    DebtPayment,
    DebtStatistics,
    DebtStatus,
    DebtSummary,
    DebtUrgency,
    InterestApplication,
    PaymentAllocation,
)
from decider.models.punishments import (
    ActiveAdjustments,
    CardioModality,
    EscalationResult,
    EscalationRoutes,
    EscalationValidation,
    OverdueResolution,
    PendingSummary,
    PolicyOverrideType,
    Punishment,
    PunishmentCategory,
    PunishmentCompletion,
    PunishmentStatus,
    PunishmentSummary,
    Violation,
    ViolationCategory,
)
from decider.models.results import (
    BatchFailure,
    BatchResult,
    DailyReconciliationResult,
    DailyStatus,
    StepFailure,
    WeeklyReconciliationResult,
    WeeklyStatus,
)
from decider.models.rules import (
    Rule,
    RuleFrequency,
    RuleModification,
    RuleModifierUpdate,
    RuleType,
)

__all__ = [
    # Activity models
    "CheckIn",
    "HabitCounter",
    "HabitProgress",
    "WeeklyHabitsEntry",
    "WeeklyPerformance",
    "Workout",
    "WorkoutType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Bonus models
    "FINANCIAL_BONUS_TYPES",
    "WEEKLY_BONUS_TYPES",
    "WORKOUT_BONUS_TYPES",
    "AwardedBonus",
    "Bonus",
    "BonusStatus",
    "BonusType",
    # Ledger models
    "BalanceSnapshot",
    "BuyoutResult",
    "Debt",
    "DebtAging",
    "DebtPayment",
    "DebtStatistics",
    "DebtStatus",
    "DebtSummary",
    "DebtUrgency",
    "InterestApplication",
    "PaymentAllocation",
    # Punishment models
    "ActiveAdjustments",
    "CardioModality",
    "EscalationResult",
    "EscalationRoutes",
    "EscalationValidation",
    "OverdueResolution",
    "PendingSummary",
    "PolicyOverrideType",
    "Punishment",
    "PunishmentCategory",
    "PunishmentCompletion",
    "PunishmentStatus",
    "PunishmentSummary",
    "Violation",
    "ViolationCategory",
    # Results
    "BatchFailure",
    "BatchResult",
    "DailyReconciliationResult",
    "DailyStatus",
    "StepFailure",
    "WeeklyReconciliationResult",
    "WeeklyStatus",
    # Rule models
    "Rule",
    "RuleFrequency",
    "RuleModification",
    "RuleModifierUpdate",
    "RuleType",
]
