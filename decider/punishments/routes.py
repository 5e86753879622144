"""
Three-Route Weekly Escalation

DESIGN DECISION: Weekly violations escalate along three independent,
additive routes. Reaching a higher route never cancels a lower one.

    violations >= 1  Route 1  cardio, 30 min + 15 per extra violation, due in 7 days
    violations >= 2  Route 2  savings rate for the violation week (50% -> 60/70/80%)
    violations >= 3  Route 3  earnings target for the FOLLOWING week ($100 -> 125/150/175)

Routes 2 and 3 are policy overrides: they are stored as punishments so
they show up next to the cardio assignment, but no workout completes
them and missing them creates no debt.
"""

import random
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

import structlog

from decider.models.punishments import (
    ActiveAdjustments,
    CardioModality,
    EscalationResult,
    EscalationRoutes,
    EscalationValidation,
    PolicyOverrideType,
    Punishment,
    PunishmentCategory,
    PunishmentStatus,
    PunishmentSummary,
)
from decider.services.storage import PunishmentStorageInterface

logger = structlog.get_logger(__name__)

# Route 1
BASE_CARDIO_MINUTES = 30
MINUTES_PER_EXTRA_VIOLATION = 15
MAX_ESCALATION_LEVEL = 5

# Route 2: violation count (capped at 4) -> savings rate
BASE_SAVINGS_RATE = 50
SAVINGS_RATE_STEPS = {2: 60, 3: 70, 4: 80}

# Route 3: violation count (capped at 5) -> weekly earnings target
BASE_EARNINGS_REQUIREMENT = Decimal("100")
EARNINGS_REQUIREMENT_STEPS = {3: Decimal("125"), 4: Decimal("150"), 5: Decimal("175")}


def cardio_minutes_for(total_violations: int) -> int:
    return BASE_CARDIO_MINUTES + MINUTES_PER_EXTRA_VIOLATION * (total_violations - 1)


def savings_rate_for(total_violations: int) -> int:
    return SAVINGS_RATE_STEPS[min(total_violations, 4)]


def earnings_requirement_for(total_violations: int) -> Decimal:
    return EARNINGS_REQUIREMENT_STEPS[min(total_violations, 5)]


class ThreeRouteAssigner:
    """
    Assigns weekly escalation punishments.

    The cardio modality is drawn from `rng`; pass a seeded
    random.Random for reproducible assignments.
    """

    def __init__(
        self,
        storage: PunishmentStorageInterface,
        rng: Optional[random.Random] = None,
        cardio_due_days: int = 7,
    ):
        self._storage = storage
        self._rng = rng or random.Random()
        self._cardio_due_days = cardio_due_days

    async def assign_weekly_violation_punishments(
        self,
        total_violations: int,
        violation_details: str,
        week_start: date,
        week_end: date,
        assigned_on: date,
    ) -> EscalationResult:
        """
        Create the punishments for one week's violation count.

        Routes are created in order 1, 2, 3. A storage failure stops the
        assignment and propagates; routes already created stay created.
        """
        routes = EscalationRoutes(
            route1_cardio=total_violations > 0,
            route2_savings=total_violations >= 2,
            route3_earnings=total_violations >= 3,
        )
        assignments = []

        if routes.route1_cardio:
            assignments.append(await self._assign_route1_cardio(
                total_violations, violation_details, week_start, week_end, assigned_on,
            ))
        if routes.route2_savings:
            assignments.append(await self._assign_route2_savings(
                total_violations, week_start, week_end, assigned_on,
            ))
        if routes.route3_earnings:
            assignments.append(await self._assign_route3_earnings(
                total_violations, week_start, week_end, assigned_on,
            ))

        logger.info(
            "weekly_punishments_assigned",
            week_start=str(week_start),
            total_violations=total_violations,
            assignments=len(assignments),
        )
        return EscalationResult(
            total_violations=total_violations,
            assignments_created=len(assignments),
            assignments=assignments,
            routes=routes,
        )

    async def _assign_route1_cardio(
        self,
        total_violations: int,
        violation_details: str,
        week_start: date,
        week_end: date,
        assigned_on: date,
    ) -> Punishment:
        modality = self._rng.choice(list(CardioModality))
        punishment = Punishment(
            name=f"Weekly Violations Cardio - Week {week_start.isoformat()}",
            type=modality.value,
            minutes=cardio_minutes_for(total_violations),
            date_assigned=assigned_on,
            due_date=assigned_on + timedelta(days=self._cardio_due_days),
            reason=f"Weekly habit violations: {violation_details}",
            route=1,
            violation_count=total_violations,
            week_start=week_start,
            week_end=week_end,
            category=PunishmentCategory.WEEKLY_CARDIO,
            escalation_level=min(total_violations, MAX_ESCALATION_LEVEL),
        )
        return await self._storage.create_punishment(punishment)

    async def _assign_route2_savings(
        self,
        total_violations: int,
        week_start: date,
        week_end: date,
        assigned_on: date,
    ) -> Punishment:
        punishment = Punishment(
            name=f"Savings Rate Increase - Week {week_start.isoformat()}",
            type=PolicyOverrideType.SAVINGS_INCREASE.value,
            minutes=0,
            date_assigned=assigned_on,
            due_date=week_end,
            reason=f"{total_violations} weekly violations require increased savings rate",
            route=2,
            violation_count=total_violations,
            week_start=week_start,
            week_end=week_end,
            category=PunishmentCategory.SAVINGS_INCREASE,
            savings_rate_original=BASE_SAVINGS_RATE,
            savings_rate_new=savings_rate_for(total_violations),
        )
        return await self._storage.create_punishment(punishment)

    async def _assign_route3_earnings(
        self,
        total_violations: int,
        week_start: date,
        week_end: date,
        assigned_on: date,
    ) -> Punishment:
        target_start = week_start + timedelta(days=7)
        target_end = week_start + timedelta(days=13)
        punishment = Punishment(
            name=f"Earnings Requirement Increase - Week {target_start.isoformat()}",
            type=PolicyOverrideType.EARNINGS_INCREASE.value,
            minutes=0,
            date_assigned=assigned_on,
            due_date=target_end,
            reason=f"{total_violations} weekly violations require increased earnings target",
            route=3,
            violation_count=total_violations,
            week_start=week_start,
            week_end=week_end,
            category=PunishmentCategory.EARNINGS_INCREASE,
            earnings_requirement_original=BASE_EARNINGS_REQUIREMENT,
            earnings_requirement_new=earnings_requirement_for(total_violations),
            target_week_start=target_start,
            target_week_end=target_end,
        )
        return await self._storage.create_punishment(punishment)

    # =========================================================================
    # REPORTING
    # =========================================================================

    @staticmethod
    def validate_escalation_levels(total_violations: int) -> EscalationValidation:
        if total_violations >= 4:
            severity = "severe"
        elif total_violations >= 2:
            severity = "moderate"
        else:
            severity = "light"

        expected = [
            route for route, threshold in ((1, 1), (2, 2), (3, 3))
            if total_violations >= threshold
        ]
        return EscalationValidation(
            violation_count=total_violations,
            severity=severity,
            escalation_level="maximum" if total_violations > 5 else str(total_violations),
            expected_routes=expected,
        )

    @staticmethod
    def get_punishment_summary(assignments: list[Punishment]) -> PunishmentSummary:
        summary = PunishmentSummary(total_assignments=len(assignments))
        for p in assignments:
            if p.route:
                summary.routes_activated.append(f"Route {p.route}")
            if p.route == 1:
                summary.total_cardio_minutes += p.minutes
            elif p.route == 2 and summary.savings_rate_new is None:
                summary.savings_rate_new = p.savings_rate_new
            elif p.route == 3 and summary.earnings_requirement_new is None:
                summary.earnings_requirement_new = p.earnings_requirement_new

        parts = []
        if summary.total_cardio_minutes > 0:
            parts.append(f"{summary.total_cardio_minutes}min cardio")
        if summary.savings_rate_new is not None:
            parts.append(f"savings rate → {summary.savings_rate_new}%")
        if summary.earnings_requirement_new is not None:
            parts.append(f"earnings target → ${summary.earnings_requirement_new}")
        if parts:
            summary.summary_text = ", ".join(parts)
        return summary

    async def get_active_adjustments(self, week_start: date) -> ActiveAdjustments:
        """
        Policy overrides in force for the week starting `week_start`.

        Savings overrides apply to the violation week itself; earnings
        overrides apply to their target week.
        """
        adjustments = ActiveAdjustments(week_start=week_start)

        for p in await self._storage.list_punishments(route=2, week_start=week_start):
            if p.status == PunishmentStatus.MISSED:
                continue
            if adjustments.savings_rate is None or p.savings_rate_new > adjustments.savings_rate:
                adjustments.savings_rate = p.savings_rate_new
            adjustments.source_punishment_ids.append(p.id)

        for p in await self._storage.list_punishments(route=3):
            if p.target_week_start != week_start or p.status == PunishmentStatus.MISSED:
                continue
            current = adjustments.earnings_requirement
            if current is None or p.earnings_requirement_new > current:
                adjustments.earnings_requirement = p.earnings_requirement_new
            adjustments.source_punishment_ids.append(p.id)

        return adjustments
