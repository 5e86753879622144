"""
Rule Models

A rule is a named, operator-editable number: a bonus amount, an
expectation threshold, an interest rate. The core never hardcodes
these values; it looks them up by name.

DESIGN DECISION: Values are kept as display strings ("$25", "30%", "5")
exactly as the operator typed them. The symbol tells the Rules Store how
to recompute the value when a modifier is applied, and parse_amount()
strips it whenever a number is needed.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from decider.models.money import parse_amount, round2, round_whole


# =============================================================================
# ENUMS
# =============================================================================

class RuleType(str, Enum):
    """What a rule's value is used for."""
    BONUS = "bonus"
    EXPECTATION = "expectation"
    FINANCIAL = "financial"
    OTHER = "other"


class RuleFrequency(str, Enum):
    """How often a rule is evaluated."""
    DAILY = "daily"
    WEEKLY = "weekly"
    PER_OCCURRENCE = "per_occurrence"


# =============================================================================
# RULE
# =============================================================================

class Rule(BaseModel):
    """
    A single rule definition.

    calculated_value is base_value adjusted by modifier_percent.
    With no modifier the two are identical strings.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        description="Unique rule key, e.g. lifting_bonus_amount"
    )
    type: RuleType = Field(default=RuleType.OTHER)
    frequency: RuleFrequency = Field(default=RuleFrequency.DAILY)
    punishable: bool = Field(
        default=False,
        description="Does a shortfall trigger a punishment (vs. only forfeiting a bonus)?"
    )
    base_value: str = Field(
        default="",
        description="Operator-entered value, may carry '$' or '%'"
    )
    modifier_percent: Decimal = Field(
        default=Decimal("0"),
        description="Percentage adjustment applied to base_value (10 = +10%)"
    )
    calculated_value: str = Field(
        default="",
        description="base_value after the modifier"
    )
    description: str = Field(default="")
    modified_date: Optional[datetime] = None
    modifier_reason: Optional[str] = None

    @model_validator(mode='after')
    def default_calculated_value(self) -> 'Rule':
        """An empty calculated value falls back to the base value."""
        if not self.calculated_value:
            self.calculated_value = self.base_value
        return self

    @property
    def is_modified(self) -> bool:
        return self.modifier_percent != 0

    @property
    def numeric_value(self) -> Decimal:
        """Parsed calculated (or base) value; 0 when not numeric."""
        for raw in (self.calculated_value, self.base_value):
            value = parse_amount(raw)
            if value is not None:
                return value
        return Decimal("0")

    @property
    def is_currency(self) -> bool:
        return "$" in self.base_value

    @property
    def is_percentage(self) -> bool:
        return "%" in self.base_value


class RuleModification(BaseModel):
    """Result of applying (or resetting) a rule modifier."""

    rule_name: str
    base_value: str
    modifier_percent: Decimal
    new_calculated_value: str
    reason: Optional[str] = None
    updated_at: datetime


class RuleModifierUpdate(BaseModel):
    """One entry of a bulk modifier update."""
    model_config = ConfigDict(str_strip_whitespace=True)

    rule_name: str = Field(..., min_length=1)
    modifier_percent: Decimal
    reason: Optional[str] = None


def apply_modifier(base_value: str, modifier_percent: Decimal) -> str:
    """
    Recompute a display value from its base and a percentage modifier.

    "$" values keep the "$" and two decimals, "%" values keep the "%" and
    two decimals, plain whole numbers stay whole. A zero modifier returns
    base_value verbatim.

    Raises:
        ValueError: If base_value is not numeric
    """
    if modifier_percent == 0:
        return base_value

    base = parse_amount(base_value)
    if base is None:
        raise ValueError(f"Cannot apply a modifier to non-numeric value '{base_value}'")

    adjusted = base * (Decimal("1") + Decimal(modifier_percent) / Decimal("100"))
    if "$" in base_value:
        return f"${round2(adjusted)}"
    if "%" in base_value:
        return f"{round2(adjusted)}%"
    if base == base.to_integral_value():
        return str(round_whole(adjusted))
    return str(round2(adjusted))
