"""Punishments package: daily violations, sweeps and weekly escalation."""

from decider.punishments.checks import DailyCheck, MissedCheckinCheck
from decider.punishments.engine import PunishmentEngine
from decider.punishments.routes import (
    ThreeRouteAssigner,
    cardio_minutes_for,
    earnings_requirement_for,
    savings_rate_for,
)

__all__ = [
    "DailyCheck",
    "MissedCheckinCheck",
    "PunishmentEngine",
    "ThreeRouteAssigner",
    "cardio_minutes_for",
    "earnings_requirement_for",
    "savings_rate_for",
]
