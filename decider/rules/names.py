"""
Rule keys the engines look up, with the fallback used when a rule is
missing or set to zero.
"""

from decimal import Decimal

# Per-occurrence bonuses
LIFTING_BONUS = "lifting_bonus_amount"
YOGA_BONUS = "extra_yoga_bonus_amount"

# Financial
WEEKLY_BASE_ALLOWANCE = "weekly_base_allowance"
MISSED_CARDIO_DEBT = "missed_cardio_debt_amount"
CARDIO_PUNISHMENT_MINUTES = "cardio_punishment_minutes"

# Perfect Week thresholds
PERFECT_WEEK_BONUS = "perfect_week_bonus"
WEEKLY_YOGA_MINIMUM = "weekly_yoga_minimum"
WEEKLY_LIFTING_MINIMUM = "weekly_lifting_minimum"

# Workout requirements (independent of the Perfect Week thresholds)
WEEKLY_YOGA_REQUIREMENT = "weekly_yoga_requirement"
WEEKLY_LIFTING_REQUIREMENT = "weekly_lifting_requirement"

# Career / habit thresholds
JOB_APPLICATIONS_MINIMUM = "job_applications_minimum"
JOB_APPLICATIONS_BONUS = "job_applications_bonus"
ALGOEXPERT_MINIMUM = "algoexpert_problems_minimum"
ALGOEXPERT_BONUS = "algoexpert_problems_bonus"
OFFICE_ATTENDANCE_MINIMUM = "office_attendance_minimum"
OFFICE_ATTENDANCE_BONUS = "office_attendance_bonus"
READING_MINIMUM = "reading_minimum"
READING_BONUS = "reading_bonus"
DATING_MINIMUM = "dating_minimum"
DATING_BONUS = "dating_bonus"

DEFAULTS: dict[str, Decimal] = {
    WEEKLY_BASE_ALLOWANCE: Decimal("50"),
    WEEKLY_YOGA_MINIMUM: Decimal("3"),
    WEEKLY_LIFTING_MINIMUM: Decimal("3"),
    WEEKLY_YOGA_REQUIREMENT: Decimal("5"),
    WEEKLY_LIFTING_REQUIREMENT: Decimal("3"),
    JOB_APPLICATIONS_MINIMUM: Decimal("25"),
    ALGOEXPERT_MINIMUM: Decimal("7"),
    OFFICE_ATTENDANCE_MINIMUM: Decimal("3"),
    READING_MINIMUM: Decimal("1"),
    DATING_MINIMUM: Decimal("1"),
}
