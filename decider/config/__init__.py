"""Configuration package."""

from decider.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    LedgerSettings,
    ReconciliationSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "LedgerSettings",
    "ReconciliationSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
