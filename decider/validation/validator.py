"""
Request & Rule Validation

DESIGN DECISION: Validation happens at the edges, in two places:

REQUEST VALIDATION:
- Required field presence (rule_name, modifier_percent)
- Date format (YYYY-MM-DD)
- Modifier sanity (cannot drive a value below zero)
These surface as 400s with a descriptive message. Missing input is
never silently defaulted.

RULE CONSISTENCY:
- calculated_value must be base_value adjusted by the modifier
- base and calculated values must parse to numbers the same way
Inconsistencies are reported for the operator, not fixed.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel

from decider.models.money import parse_amount
from decider.models.rules import Rule, apply_modifier


class ValidationError(ValueError):
    """A request was missing a required field or carried a malformed value."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class RuleIssue(BaseModel):
    rule_name: str
    issue_type: str
    message: str


def require_field(payload: dict[str, Any], field: str) -> Any:
    """Return payload[field], raising ValidationError if it is missing or blank."""
    value = payload.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Missing required field: {field}", field=field)
    return value


def parse_iso_date(value: Optional[str], field: str = "date") -> Optional[date]:
    """Parse a YYYY-MM-DD string; None passes through."""
    if value is None or value == "":
        return None
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(
            f"Invalid {field} '{value}': expected YYYY-MM-DD",
            field=field,
        )


def parse_modifier_percent(value: Any) -> Decimal:
    """A modifier is a percentage change; -100 or below would zero or negate the value."""
    try:
        modifier = Decimal(str(value).replace("%", "").strip())
    except InvalidOperation:
        raise ValidationError(
            f"modifier_percent must be a number, got '{value}'",
            field="modifier_percent",
        )
    if not modifier.is_finite():
        raise ValidationError("modifier_percent must be finite", field="modifier_percent")
    if modifier <= -100:
        raise ValidationError(
            "modifier_percent must be greater than -100",
            field="modifier_percent",
        )
    return modifier


class RuleValidator:
    """Checks stored rules for base/calculated drift."""

    def check(self, rule: Rule) -> list[RuleIssue]:
        issues = []
        base = parse_amount(rule.base_value)
        calculated = parse_amount(rule.calculated_value)

        if rule.base_value and base is None:
            issues.append(RuleIssue(
                rule_name=rule.name,
                issue_type="non_numeric",
                message=f"Base value '{rule.base_value}' is not numeric",
            ))
            return issues

        if base is not None and calculated is None:
            issues.append(RuleIssue(
                rule_name=rule.name,
                issue_type="non_numeric",
                message=f"Calculated value '{rule.calculated_value}' is not numeric",
            ))
            return issues

        if base is not None:
            expected = parse_amount(apply_modifier(rule.base_value, rule.modifier_percent))
            if expected != calculated:
                issues.append(RuleIssue(
                    rule_name=rule.name,
                    issue_type="drift",
                    message=(
                        f"Calculated value {rule.calculated_value} does not match "
                        f"{rule.base_value} adjusted by {rule.modifier_percent}%"
                    ),
                ))

        return issues

    def check_all(self, rules: list[Rule]) -> list[RuleIssue]:
        issues = []
        for rule in rules:
            issues.extend(self.check(rule))
        return issues
