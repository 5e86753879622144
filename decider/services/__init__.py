"""Services package."""

from decider.services.integrations import (
    HabitTrackerInterface,
    IntegrationError,
    WorkoutSourceInterface,
)
from decider.services.storage import (
    AuditStorageInterface,
    BalanceStorageInterface,
    BonusStorageInterface,
    CheckinStorageInterface,
    ConnectionError,
    DebtStorageInterface,
    DuplicateError,
    GoogleSheetsClient,
    HabitsStorageInterface,
    InMemoryStorage,
    NotFoundError,
    PunishmentStorageInterface,
    RuleStorageInterface,
    StorageError,
    WorkoutStorageInterface,
)

__all__ = [
    # Integrations
    "HabitTrackerInterface",
    "IntegrationError",
    "WorkoutSourceInterface",
    # Storage services
    "AuditStorageInterface",
    "BalanceStorageInterface",
    "BonusStorageInterface",
    "CheckinStorageInterface",
    "ConnectionError",
    "DebtStorageInterface",
    "DuplicateError",
    "GoogleSheetsClient",
    "HabitsStorageInterface",
    "InMemoryStorage",
    "NotFoundError",
    "PunishmentStorageInterface",
    "RuleStorageInterface",
    "StorageError",
    "WorkoutStorageInterface",
]
