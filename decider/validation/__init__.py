"""Request and rule validation."""

from decider.validation.validator import (
    RuleIssue,
    RuleValidator,
    ValidationError,
    parse_iso_date,
    parse_modifier_percent,
    require_field,
)

__all__ = [
    "RuleIssue",
    "RuleValidator",
    "ValidationError",
    "parse_iso_date",
    "parse_modifier_percent",
    "require_field",
]
