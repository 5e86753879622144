"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the production backend; the in-memory backend serves tests
and dry runs.
"""

from decider.services.storage.interface import (
    AuditStorageInterface,
    BalanceStorageInterface,
    BonusStorageInterface,
    CheckinStorageInterface,
    ConnectionError,
    DebtStorageInterface,
    DuplicateError,
    HabitsStorageInterface,
    NotFoundError,
    PunishmentStorageInterface,
    RuleStorageInterface,
    StorageError,
    WorkoutStorageInterface,
)
from decider.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBalanceStorage,
    GoogleSheetsBonusStorage,
    GoogleSheetsCheckinStorage,
    GoogleSheetsClient,
    GoogleSheetsDebtStorage,
    GoogleSheetsHabitsStorage,
    GoogleSheetsPunishmentStorage,
    GoogleSheetsRuleStorage,
    GoogleSheetsWorkoutStorage,
)
from decider.services.storage.memory import InMemoryStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BalanceStorageInterface",
    "BonusStorageInterface",
    "CheckinStorageInterface",
    "DebtStorageInterface",
    "HabitsStorageInterface",
    "PunishmentStorageInterface",
    "RuleStorageInterface",
    "WorkoutStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBalanceStorage",
    "GoogleSheetsBonusStorage",
    "GoogleSheetsCheckinStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDebtStorage",
    "GoogleSheetsHabitsStorage",
    "GoogleSheetsPunishmentStorage",
    "GoogleSheetsRuleStorage",
    "GoogleSheetsWorkoutStorage",
    # In-memory implementation
    "InMemoryStorage",
]
