"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the document store because:
1. The operator edits rules and reviews the ledger directly in Sheets
2. No database setup required
3. Built-in history and backup

TRADEOFFS:
- No transactions (the core processes batches sequentially instead)
- Limited query capabilities (we filter in Python)

Every worksheet uses human-facing column headers. Their quirks (the
trailing space in "Date Assigned ", "per occurrence" with a space,
"10%" modifiers) are translated here and nowhere else. Rows are read
by header name, so operators can reorder columns freely.
"""

import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from decider.config import get_settings
from decider.models.activity import CheckIn, WeeklyHabitsEntry, Workout, WorkoutType
from decider.models.audit import AuditEvent, AuditEventType, AuditSeverity
from decider.models.bonuses import Bonus, BonusStatus, BonusType
from decider.models.ledger import BalanceSnapshot, Debt, DebtStatus
from decider.models.punishments import Punishment, PunishmentCategory, PunishmentStatus
from decider.models.rules import Rule, RuleFrequency, RuleType
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


RULE_COLUMNS = [
    "Rule Name",
    "Type",
    "Frequency",
    "Punishable",
    "Base Value",
    "Current Modifier",
    "Calculated Value",
    "Description",
    "Modified Date",
    "Modifier Reason",
]

# "Date Assigned " carries a trailing space in the live sheet.
DEBT_COLUMNS = [
    "ID",
    "Name",
    "Original Amount",
    "Amount",
    "Date Assigned ",
    "Interest Rate",
    "Status",
    "Last Interest Date",
]

PUNISHMENT_COLUMNS = [
    "ID",
    "Name",
    "Type",
    "Minutes",
    "Date Assigned",
    "Due Date",
    "Status",
    "Reason",
    "Route",
    "Violation Count",
    "Week Start",
    "Week End",
    "Category",
    "Escalation Level",
    "Savings Rate Original",
    "Savings Rate New",
    "Earnings Requirement Original",
    "Earnings Requirement New",
    "Target Week Start",
    "Target Week End",
    "Date Completed",
    "Completed By Workout",
]

BONUS_COLUMNS = ["ID", "Name", "Type", "Amount", "Date", "Week Of", "Reason", "Status"]

WORKOUT_COLUMNS = [
    "ID", "Date", "Type", "Duration", "Calories", "Source", "Strava ID", "Notes",
]

HABITS_COLUMNS = [
    "ID",
    "Name",
    "Week Start",
    "Yoga Sessions",
    "Lifting Sessions",
    "Job Applications",
    "Uber Earnings",
    "Office Days",
    "Cowork Sessions",
]

CHECKIN_COLUMNS = ["ID", "Date", "Kind", "Checked In At"]

BALANCE_COLUMNS = ["ID", "Date", "Account B Balance", "Recorded At"]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]


# =============================================================================
# CELL CONVERSIONS
# =============================================================================

def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def _parse_date(raw: str) -> Optional[date]:
    raw = raw.strip()
    if not raw:
        return None
    # Some columns hold full ISO timestamps
    return date.fromisoformat(raw[:10])


def _parse_decimal(raw: str, default: Optional[Decimal] = None) -> Optional[Decimal]:
    cleaned = raw.replace("$", "").replace("%", "").replace(",", "").strip()
    if not cleaned:
        return default
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return default


def _parse_int(raw: str, default: Optional[int] = None) -> Optional[int]:
    value = _parse_decimal(raw)
    return int(value) if value is not None else default


def _parse_frequency(raw: str) -> RuleFrequency:
    normalized = raw.strip().lower().replace(" ", "_").replace("-", "_")
    try:
        return RuleFrequency(normalized)
    except ValueError:
        return RuleFrequency.DAILY


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @property
    def settings(self):
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        """Get or create a worksheet, writing the header row on creation."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


class _SheetTable:
    """
    Shared row plumbing for one worksheet.

    Rows are exposed as {header: cell} dicts together with their
    1-based sheet row number so updates can target the right row.
    """

    COLUMNS: list[str] = []
    KEY_COLUMN = "ID"

    def __init__(self, client: Optional[GoogleSheetsClient], sheet_name: str):
        self._client = client or GoogleSheetsClient()
        self._sheet_name = sheet_name

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._sheet_name, self.COLUMNS)

    def _records(self) -> list[tuple[int, dict[str, str]]]:
        rows = self._sheet().get_all_values()
        if not rows:
            return []
        header = rows[0]
        records = []
        for idx, row in enumerate(rows[1:], start=2):  # Row 1 is the header
            if not any(cell.strip() for cell in row):
                continue
            record = {
                name: (row[i] if i < len(row) else "")
                for i, name in enumerate(header)
            }
            records.append((idx, record))
        return records

    def _append(self, values: dict[str, str]) -> None:
        # Never retried: a timed-out append_row may already have landed,
        # and a second attempt would duplicate the row.
        row = [values.get(column, "") for column in self.COLUMNS]
        self._sheet().append_row(row, value_input_option="RAW")

    def _update(self, key: str, values: dict[str, str]) -> None:
        sheet = self._sheet()
        rows = sheet.get_all_values()
        header = rows[0] if rows else self.COLUMNS
        key_index = header.index(self.KEY_COLUMN)
        for idx, row in enumerate(rows[1:], start=2):
            if key_index < len(row) and row[key_index] == key:
                for column, value in values.items():
                    if column in header:
                        sheet.update_cell(idx, header.index(column) + 1, value)
                return
        raise NotFoundError(f"{self._sheet_name}: no row with {self.KEY_COLUMN} {key}")


class GoogleSheetsRuleStorage(_SheetTable, RuleStorageInterface):
    """Rules worksheet. Keyed by rule name."""

    COLUMNS = RULE_COLUMNS
    KEY_COLUMN = "Rule Name"

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        client = client or GoogleSheetsClient()
        super().__init__(client, client.settings.rules_sheet_name)

    def _row_to_rule(self, r: dict[str, str]) -> Rule:
        try:
            rule_type = RuleType(r.get("Type", "").strip().lower())
        except ValueError:
            rule_type = RuleType.OTHER
        modified = r.get("Modified Date", "").strip()
        return Rule(
            name=r["Rule Name"],
            type=rule_type,
            frequency=_parse_frequency(r.get("Frequency", "")),
            punishable=r.get("Punishable", "").strip().lower() in ("true", "yes", "1", "x"),
            base_value=r.get("Base Value", ""),
            modifier_percent=_parse_decimal(r.get("Current Modifier", ""), Decimal("0")),
            calculated_value=r.get("Calculated Value", ""),
            description=r.get("Description", ""),
            modified_date=datetime.fromisoformat(modified) if modified else None,
            modifier_reason=r.get("Modifier Reason") or None,
        )

    async def list_rules(self) -> list[Rule]:
        try:
            rules = []
            for _, record in self._records():
                if not record.get("Rule Name", "").strip():
                    continue
                try:
                    rules.append(self._row_to_rule(record))
                except (ValueError, KeyError):
                    continue  # Skip malformed rows
            return rules
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list rules: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((NotFoundError, DuplicateError)),
        reraise=True,
    )
    async def update_rule(self, rule: Rule) -> bool:
        try:
            self._update(rule.name, {
                "Current Modifier": f"{rule.modifier_percent}%",
                "Calculated Value": rule.calculated_value,
                "Modified Date": _text(rule.modified_date),
                "Modifier Reason": rule.modifier_reason or "",
            })
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update rule: {e}")


class GoogleSheetsDebtStorage(_SheetTable, DebtStorageInterface):

    COLUMNS = DEBT_COLUMNS

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        client = client or GoogleSheetsClient()
        super().__init__(client, client.settings.debts_sheet_name)

    def _debt_to_row(self, debt: Debt) -> dict[str, str]:
        return {
            "ID": debt.id,
            "Name": debt.name,
            "Original Amount": str(debt.original_amount),
            "Amount": str(debt.current_amount),
            "Date Assigned ": debt.date_assigned.isoformat(),
            "Interest Rate": str(debt.interest_rate),
            "Status": debt.status.value,
            "Last Interest Date": _text(debt.last_interest_date),
        }

    def _row_to_debt(self, r: dict[str, str]) -> Debt:
        amount = _parse_decimal(r.get("Amount", ""), Decimal("0"))
        return Debt(
            id=r["ID"],
            name=r.get("Name", ""),
            original_amount=_parse_decimal(r.get("Original Amount", ""), amount),
            current_amount=amount,
            date_assigned=_parse_date(r.get("Date Assigned ", "")),
            interest_rate=_parse_decimal(r.get("Interest Rate", ""), Decimal("0.30")),
            status=DebtStatus(r.get("Status", "active").strip().lower() or "active"),
            last_interest_date=_parse_date(r.get("Last Interest Date", "")),
        )

    async def create_debt(self, debt: Debt) -> Debt:
        try:
            self._append(self._debt_to_row(debt))
            return debt
        except Exception as e:
            raise StorageError(f"Failed to save debt: {e}")

    async def get_debt(self, debt_id: str) -> Optional[Debt]:
        for debt in await self.list_debts():
            if debt.id == debt_id:
                return debt
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((NotFoundError, DuplicateError)),
        reraise=True,
    )
    async def update_debt(self, debt: Debt) -> bool:
        try:
            row = self._debt_to_row(debt)
            self._update(debt.id, {
                "Amount": row["Amount"],
                "Status": row["Status"],
                "Last Interest Date": row["Last Interest Date"],
            })
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update debt: {e}")

    async def list_debts(
        self,
        status: Optional[DebtStatus] = None,
        name: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Debt]:
        try:
            debts = []
            for _, record in self._records():
                try:
                    debt = self._row_to_debt(record)
                except (ValueError, KeyError, TypeError):
                    continue  # Skip malformed rows

                if status and debt.status != status:
                    continue
                if name and debt.name != name:
                    continue
                if date_from and debt.date_assigned < date_from:
                    continue
                if date_to and debt.date_assigned > date_to:
                    continue
                debts.append(debt)

            debts.sort(key=lambda d: d.date_assigned)
            return debts
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list debts: {e}")


class GoogleSheetsPunishmentStorage(_SheetTable, PunishmentStorageInterface):

    COLUMNS = PUNISHMENT_COLUMNS

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        client = client or GoogleSheetsClient()
        super().__init__(client, client.settings.punishments_sheet_name)

    def _punishment_to_row(self, p: Punishment) -> dict[str, str]:
        return {
            "ID": p.id,
            "Name": p.name,
            "Type": p.type,
            "Minutes": str(p.minutes),
            "Date Assigned": p.date_assigned.isoformat(),
            "Due Date": p.due_date.isoformat(),
            "Status": p.status.value,
            "Reason": p.reason,
            "Route": _text(p.route),
            "Violation Count": _text(p.violation_count),
            "Week Start": _text(p.week_start),
            "Week End": _text(p.week_end),
            "Category": _text(p.category),
            "Escalation Level": _text(p.escalation_level),
            "Savings Rate Original": _text(p.savings_rate_original),
            "Savings Rate New": _text(p.savings_rate_new),
            "Earnings Requirement Original": _text(p.earnings_requirement_original),
            "Earnings Requirement New": _text(p.earnings_requirement_new),
            "Target Week Start": _text(p.target_week_start),
            "Target Week End": _text(p.target_week_end),
            "Date Completed": _text(p.date_completed),
            "Completed By Workout": p.completed_by_workout_id or "",
        }

    def _row_to_punishment(self, r: dict[str, str]) -> Punishment:
        category = r.get("Category", "").strip()
        return Punishment(
            id=r["ID"],
            name=r.get("Name", ""),
            type=r.get("Type", ""),
            minutes=_parse_int(r.get("Minutes", ""), 0),
            date_assigned=_parse_date(r.get("Date Assigned", "")),
            due_date=_parse_date(r.get("Due Date", "")),
            status=PunishmentStatus(r.get("Status", "pending").strip().lower() or "pending"),
            reason=r.get("Reason", ""),
            route=_parse_int(r.get("Route", "")),
            violation_count=_parse_int(r.get("Violation Count", "")),
            week_start=_parse_date(r.get("Week Start", "")),
            week_end=_parse_date(r.get("Week End", "")),
            category=PunishmentCategory(category) if category else None,
            escalation_level=_parse_int(r.get("Escalation Level", "")),
            savings_rate_original=_parse_int(r.get("Savings Rate Original", "")),
            savings_rate_new=_parse_int(r.get("Savings Rate New", "")),
            earnings_requirement_original=_parse_decimal(r.get("Earnings Requirement Original", "")),
            earnings_requirement_new=_parse_decimal(r.get("Earnings Requirement New", "")),
            target_week_start=_parse_date(r.get("Target Week Start", "")),
            target_week_end=_parse_date(r.get("Target Week End", "")),
            date_completed=_parse_date(r.get("Date Completed", "")),
            completed_by_workout_id=r.get("Completed By Workout") or None,
        )

    async def create_punishment(self, punishment: Punishment) -> Punishment:
        try:
            self._append(self._punishment_to_row(punishment))
            return punishment
        except Exception as e:
            raise StorageError(f"Failed to save punishment: {e}")

    async def get_punishment(self, punishment_id: str) -> Optional[Punishment]:
        for p in await self.list_punishments():
            if p.id == punishment_id:
                return p
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((NotFoundError, DuplicateError)),
        reraise=True,
    )
    async def update_punishment(self, punishment: Punishment) -> bool:
        try:
            row = self._punishment_to_row(punishment)
            self._update(punishment.id, {
                "Status": row["Status"],
                "Date Completed": row["Date Completed"],
                "Completed By Workout": row["Completed By Workout"],
            })
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update punishment: {e}")

    async def list_punishments(
        self,
        status: Optional[PunishmentStatus] = None,
        assigned_from: Optional[date] = None,
        assigned_to: Optional[date] = None,
        week_start: Optional[date] = None,
        route: Optional[int] = None,
    ) -> list[Punishment]:
        try:
            punishments = []
            for _, record in self._records():
                try:
                    p = self._row_to_punishment(record)
                except (ValueError, KeyError, TypeError):
                    continue

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
                punishments.append(p)

            punishments.sort(key=lambda p: (p.due_date, p.date_assigned))
            return punishments
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list punishments: {e}")


class GoogleSheetsBonusStorage(_SheetTable, BonusStorageInterface):

    COLUMNS = BONUS_COLUMNS

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        client = client or GoogleSheetsClient()
        super().__init__(client, client.settings.bonuses_sheet_name)

    def _bonus_to_row(self, bonus: Bonus) -> dict[str, str]:
        return {
            "ID": bonus.id,
            "Name": bonus.name,
            "Type": bonus.type.value,
            "Amount": str(bonus.amount),
            "Date": bonus.bonus_date.isoformat(),
            "Week Of": bonus.week_of.isoformat(),
            "Reason": bonus.reason,
            "Status": bonus.status.value,
        }

    def _row_to_bonus(self, r: dict[str, str]) -> Bonus:
        return Bonus(
            id=r["ID"],
            name=r.get("Name", ""),
            type=BonusType(r.get("Type", "").strip()),
            amount=_parse_decimal(r.get("Amount", ""), Decimal("0")),
            bonus_date=_parse_date(r.get("Date", "")),
            week_of=_parse_date(r.get("Week Of", "")),
            reason=r.get("Reason", ""),
            status=BonusStatus(r.get("Status", "pending").strip().lower() or "pending"),
        )

    async def create_bonus(self, bonus: Bonus) -> Bonus:
        try:
            self._append(self._bonus_to_row(bonus))
            return bonus
        except Exception as e:
            raise StorageError(f"Failed to save bonus: {e}")

    async def update_bonus(self, bonus: Bonus) -> bool:
        try:
            for _, record in self._records():
                if record.get("ID") == bonus.id:
                    if record.get("Status", "").strip().lower() == BonusStatus.AWARDED.value:
                        raise DuplicateError(f"Bonus already awarded: {bonus.id}")
                    break
            self._update(bonus.id, {"Status": bonus.status.value})
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update bonus: {e}")

    async def list_bonuses(
        self,
        bonus_date: Optional[date] = None,
        week_of: Optional[date] = None,
        bonus_type: Optional[BonusType] = None,
        status: Optional[BonusStatus] = None,
    ) -> list[Bonus]:
        try:
            bonuses = []
            for _, record in self._records():
                try:
                    bonus = self._row_to_bonus(record)
                except (ValueError, KeyError, TypeError):
                    continue
                if bonus_date and bonus.bonus_date != bonus_date:
                    continue
                if week_of and bonus.week_of != week_of:
                    continue
                if bonus_type and bonus.type != bonus_type:
                    continue
                if status and bonus.status != status:
                    continue
                bonuses.append(bonus)
            return bonuses
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list bonuses: {e}")


class GoogleSheetsWorkoutStorage(_SheetTable, WorkoutStorageInterface):

    COLUMNS = WORKOUT_COLUMNS

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        client = client or GoogleSheetsClient()
        super().__init__(client, client.settings.workouts_sheet_name)

    def _row_to_workout(self, r: dict[str, str]) -> Workout:
        try:
            workout_type = WorkoutType(r.get("Type", "").strip().title())
        except ValueError:
            workout_type = WorkoutType.OTHER
        return Workout(
            id=r["ID"],
            workout_date=_parse_date(r.get("Date", "")),
            type=workout_type,
            duration=_parse_int(r.get("Duration", ""), 0),
            calories=_parse_int(r.get("Calories", ""), 0),
            source=r.get("Source") or "manual",
            external_id=r.get("Strava ID") or None,
            notes=r.get("Notes") or None,
        )

    async def create_workout(self, workout: Workout) -> Workout:
        try:
            self._append({
                "ID": workout.id,
                "Date": workout.workout_date.isoformat(),
                "Type": workout.type.value,
                "Duration": str(workout.duration),
                "Calories": str(workout.calories),
                "Source": workout.source,
                "Strava ID": workout.external_id or "",
                "Notes": workout.notes or "",
            })
            return workout
        except Exception as e:
            raise StorageError(f"Failed to save workout: {e}")

    async def list_workouts(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        workout_type: Optional[WorkoutType] = None,
    ) -> list[Workout]:
        try:
            workouts = []
            for _, record in self._records():
                try:
                    workout = self._row_to_workout(record)
                except (ValueError, KeyError, TypeError):
                    continue
                if date_from and workout.workout_date < date_from:
                    continue
                if date_to and workout.workout_date > date_to:
                    continue
                if workout_type and workout.type != workout_type:
                    continue
                workouts.append(workout)
            workouts.sort(key=lambda w: w.workout_date)
            return workouts
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list workouts: {e}")

    async def get_workout_by_external_id(self, external_id: str) -> Optional[Workout]:
        for workout in await self.list_workouts():
            if workout.external_id == external_id:
                return workout
        return None


class GoogleSheetsHabitsStorage(_SheetTable, HabitsStorageInterface):

    COLUMNS = HABITS_COLUMNS
    KEY_COLUMN = "Week Start"

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        client = client or GoogleSheetsClient()
        super().__init__(client, client.settings.habits_sheet_name)

    def _entry_to_row(self, entry: WeeklyHabitsEntry) -> dict[str, str]:
        return {
            "ID": entry.id,
            "Name": entry.name,
            "Week Start": entry.week_start.isoformat(),
            "Yoga Sessions": str(entry.yoga_sessions),
            "Lifting Sessions": str(entry.lifting_sessions),
            "Job Applications": _text(entry.job_applications),
            "Uber Earnings": str(entry.uber_earnings),
            "Office Days": _text(entry.office_days),
            "Cowork Sessions": str(entry.cowork_sessions),
        }

    def _row_to_entry(self, r: dict[str, str]) -> WeeklyHabitsEntry:
        return WeeklyHabitsEntry(
            id=r.get("ID") or r["Week Start"],
            name=r.get("Name", ""),
            week_start=_parse_date(r["Week Start"]),
            yoga_sessions=_parse_int(r.get("Yoga Sessions", ""), 0),
            lifting_sessions=_parse_int(r.get("Lifting Sessions", ""), 0),
            # Blank career cells mean "not measured", not zero
            job_applications=_parse_int(r.get("Job Applications", "")),
            uber_earnings=_parse_decimal(r.get("Uber Earnings", ""), Decimal("0")),
            office_days=_parse_int(r.get("Office Days", "")),
            cowork_sessions=_parse_int(r.get("Cowork Sessions", ""), 0),
        )

    async def get_week(self, week_start: date) -> Optional[WeeklyHabitsEntry]:
        try:
            for _, record in self._records():
                if record.get("Week Start", "").strip() == week_start.isoformat():
                    return self._row_to_entry(record)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get weekly habits: {e}")

    async def create_week(self, entry: WeeklyHabitsEntry) -> WeeklyHabitsEntry:
        if await self.get_week(entry.week_start):
            raise DuplicateError(f"Week already exists: {entry.week_start}")
        try:
            self._append(self._entry_to_row(entry))
            return entry
        except Exception as e:
            raise StorageError(f"Failed to save weekly habits: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((NotFoundError, DuplicateError)),
        reraise=True,
    )
    async def update_week(self, entry: WeeklyHabitsEntry) -> bool:
        try:
            row = self._entry_to_row(entry)
            row.pop("ID")
            row.pop("Week Start")
            self._update(entry.week_start.isoformat(), row)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update weekly habits: {e}")


class GoogleSheetsCheckinStorage(_SheetTable, CheckinStorageInterface):

    COLUMNS = CHECKIN_COLUMNS

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        client = client or GoogleSheetsClient()
        super().__init__(client, client.settings.checkins_sheet_name)

    async def get_checkin(self, on_date: date, kind: str = "morning") -> Optional[CheckIn]:
        try:
            for _, r in self._records():
                if _parse_date(r.get("Date", "")) != on_date:
                    continue
                if (r.get("Kind") or "morning").strip().lower() != kind:
                    continue
                checked_in_at = r.get("Checked In At", "").strip()
                return CheckIn(
                    id=r.get("ID") or f"{on_date.isoformat()}-{kind}",
                    checkin_date=on_date,
                    kind=kind,
                    checked_in_at=datetime.fromisoformat(checked_in_at) if checked_in_at else None,
                )
            return None
        except Exception as e:
            raise StorageError(f"Failed to read check-ins: {e}")

    async def record_checkin(self, checkin: CheckIn) -> CheckIn:
        try:
            self._append({
                "ID": checkin.id,
                "Date": checkin.checkin_date.isoformat(),
                "Kind": checkin.kind,
                "Checked In At": _text(checkin.checked_in_at),
            })
            return checkin
        except Exception as e:
            raise StorageError(f"Failed to save check-in: {e}")


class GoogleSheetsBalanceStorage(_SheetTable, BalanceStorageInterface):

    COLUMNS = BALANCE_COLUMNS

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        client = client or GoogleSheetsClient()
        super().__init__(client, client.settings.balances_sheet_name)

    async def list_balances(
        self,
        on_or_before: Optional[date] = None,
        limit: int = 2,
    ) -> list[BalanceSnapshot]:
        try:
            snapshots = []
            for _, r in self._records():
                snapshot_date = _parse_date(r.get("Date", ""))
                balance = _parse_decimal(r.get("Account B Balance", ""))
                if snapshot_date is None or balance is None:
                    continue
                if on_or_before and snapshot_date > on_or_before:
                    continue
                snapshots.append(BalanceSnapshot(
                    id=r.get("ID") or snapshot_date.isoformat(),
                    snapshot_date=snapshot_date,
                    account_b_balance=balance,
                ))
            snapshots.sort(key=lambda s: s.snapshot_date, reverse=True)
            return snapshots[:limit]
        except Exception as e:
            raise StorageError(f"Failed to list balances: {e}")

    async def record_balance(self, snapshot: BalanceSnapshot) -> BalanceSnapshot:
        try:
            self._append({
                "ID": snapshot.id,
                "Date": snapshot.snapshot_date.isoformat(),
                "Account B Balance": str(snapshot.account_b_balance),
                "Recorded At": _text(snapshot.recorded_at),
            })
            return snapshot
        except Exception as e:
            raise StorageError(f"Failed to save balance: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.audit_sheet_name, AUDIT_COLUMNS
        )

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Not retried, see _SheetTable._append."""
        self._sheet().append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    def _all_events(self) -> list[AuditEvent]:
        events = []
        for row in self._sheet().get_all_values()[1:]:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except (ValueError, KeyError):
                    continue
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [e for e in self._all_events() if e.correlation_id == correlation_id]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._all_events()
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
