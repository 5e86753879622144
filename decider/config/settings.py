"""
Configuration Management for Decider

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Ledger constants (interest rate, default debt amounts, buyout rate) live
next to the storage and scheduling knobs so a single screen shows every
number that can change the outcome of a reconciliation run.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    rules_sheet_name: str = Field(default="Rules")
    debts_sheet_name: str = Field(default="Debts")
    punishments_sheet_name: str = Field(default="Punishments")
    bonuses_sheet_name: str = Field(default="Bonuses")
    workouts_sheet_name: str = Field(default="Workouts")
    habits_sheet_name: str = Field(default="Weekly Habits")
    balances_sheet_name: str = Field(default="Balances")
    checkins_sheet_name: str = Field(default="Check-ins")
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class LedgerSettings(BaseSettings):
    """Debt ledger defaults used when no rule overrides them."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    default_interest_rate: Decimal = Field(
        default=Decimal("0.30"),
        ge=0,
        description="Daily compound interest rate for new debts"
    )
    violation_debt_amount: Decimal = Field(
        default=Decimal("50"),
        ge=0,
        description="Debt created for a violation when no amount is given"
    )
    missed_punishment_debt_amount: Decimal = Field(
        default=Decimal("50"),
        ge=0,
        description="Debt created when a punishment passes its due date"
    )
    cardio_buyout_dollars: Decimal = Field(
        default=Decimal("50"),
        gt=0,
    )
    cardio_buyout_minutes: int = Field(
        default=120,
        gt=0,
    )
    overdue_after_days: int = Field(default=3, ge=0)
    critical_after_days: int = Field(default=14, ge=0)

    @property
    def cardio_buyout_rate(self) -> Decimal:
        """Dollars forgiven per cardio minute."""
        return self.cardio_buyout_dollars / Decimal(self.cardio_buyout_minutes)


class ReconciliationSettings(BaseSettings):
    """Scheduling and punishment knobs for the orchestrators."""

    model_config = SettingsConfigDict(
        env_prefix="RECONCILE_",
        extra="ignore"
    )

    timezone: str = Field(
        default="America/Chicago",
        validation_alias=AliasChoices("RECONCILE_TIMEZONE", "TIMEZONE"),
        description="IANA timezone used to compute 'today'"
    )
    rules_cache_ttl_seconds: int = Field(
        default=300,
        ge=0,
        description="How long rule reads are cached"
    )
    punishment_grace_days: int = Field(
        default=2,
        ge=0,
        description="Days to complete a daily punishment"
    )
    default_punishment_minutes: int = Field(default=20, gt=0)
    weekly_cardio_due_days: int = Field(default=7, gt=0)
    random_seed: Optional[int] = Field(
        default=None,
        description="Seed for punishment modality selection (unset = random)"
    )

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level for structlog/stdlib logging"
    )
    storage_backend: str = Field(
        default="google_sheets",
        description="'google_sheets' or 'memory' (dry runs)"
    )

    @property
    def is_production(self) -> bool:
        return self.app_environment.lower() == "production"


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Load all sub-settings
    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def reconciliation(self) -> ReconciliationSettings:
        return ReconciliationSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("google_sheets", "ledger", "reconciliation", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
