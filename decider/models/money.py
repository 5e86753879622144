"""
Money helpers.

Every ledger calculation rounds to cents, half-up, after each step
(not once at the end), so stored values always match what a person
would compute by hand one day at a time.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

AmountLike = Union[Decimal, int, float, str]


def to_decimal(value: AmountLike) -> Decimal:
    """Convert ``value`` to a Decimal without rounding."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        return Decimal(value)
    raise TypeError(f"Unsupported amount type: {type(value)!r}")


def round2(value: AmountLike) -> Decimal:
    """Round to two decimal places using round-half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_whole(value: AmountLike) -> Decimal:
    """Round to a whole number using round-half-up."""
    return to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def parse_amount(raw: Optional[str]) -> Optional[Decimal]:
    """
    Parse a display value such as ``"$25"``, ``"30%"`` or ``"1,200"``.

    Returns None when the value is empty or not numeric.
    """
    if raw is None:
        return None
    cleaned = str(raw).replace("$", "").replace("%", "").replace(",", "").strip()
    if not cleaned:
        return None
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def format_currency(amount: AmountLike) -> str:
    """Return ``amount`` as a currency string (e.g. ``$12.34``)."""
    return f"${round2(amount):,.2f}"
