"""
Audit Logger

DESIGN DECISION: Every ledger mutation made by a reconciliation is logged.
This provides:
1. A trail explaining every balance change
2. Debugging capability when a step fails
3. One correlation id tying together everything a run did

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (a broken audit sheet never fails a run)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from decider.models.audit import AuditEvent, AuditEventBuilder
from decider.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route stdlib logging (and therefore structlog) to stdout at `level`."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit worksheet (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_reconciliation_started(
        self,
        run_type: str,
        period: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.reconciliation_started(
            run_type=run_type,
            period=period,
            correlation_id=correlation_id,
        ))

    async def log_reconciliation_completed(
        self,
        run_type: str,
        period: str,
        summary: str,
        failed_steps: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.reconciliation_completed(
            run_type=run_type,
            period=period,
            summary=summary,
            failed_steps=failed_steps,
            correlation_id=correlation_id,
        ))

    async def log_reconciliation_failed(
        self,
        run_type: str,
        period: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.reconciliation_failed(
            run_type=run_type,
            period=period,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_step_failed(
        self,
        step: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a reconciliation step that was replaced by an empty result."""
        await self.log(AuditEventBuilder.step_failed(
            step=step,
            error_type=type(error).__name__,
            error_message=str(error),
            correlation_id=correlation_id,
        ))

    async def log_interest_applied(
        self,
        debt_count: int,
        total_interest: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.interest_applied(
            debt_count=debt_count,
            total_interest=total_interest,
            correlation_id=correlation_id,
        ))

    async def log_debt_created(
        self,
        debt_id: str,
        name: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.debt_created(
            debt_id=debt_id,
            name=name,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_debt_payment(
        self,
        debt_id: str,
        payment_amount: str,
        remaining_debt: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.debt_payment(
            debt_id=debt_id,
            payment_amount=payment_amount,
            remaining_debt=remaining_debt,
            correlation_id=correlation_id,
        ))

    async def log_debt_forgiven(
        self,
        debt_id: str,
        cardio_minutes: int,
        forgiveness_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.debt_forgiven(
            debt_id=debt_id,
            cardio_minutes=cardio_minutes,
            forgiveness_amount=forgiveness_amount,
            correlation_id=correlation_id,
        ))

    async def log_punishment_assigned(
        self,
        punishment_id: str,
        name: str,
        minutes: int,
        route: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.punishment_assigned(
            punishment_id=punishment_id,
            name=name,
            minutes=minutes,
            route=route,
            correlation_id=correlation_id,
        ))

    async def log_punishment_completed(
        self,
        punishment_id: str,
        workout_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.punishment_completed(
            punishment_id=punishment_id,
            workout_id=workout_id,
            correlation_id=correlation_id,
        ))

    async def log_punishment_missed(
        self,
        punishment_id: str,
        debt_id: str,
        debt_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.punishment_missed(
            punishment_id=punishment_id,
            debt_id=debt_id,
            debt_amount=debt_amount,
            correlation_id=correlation_id,
        ))

    async def log_bonus_awarded(
        self,
        bonus_id: str,
        bonus_type: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.bonus_awarded(
            bonus_id=bonus_id,
            bonus_type=bonus_type,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_bonus_failed(
        self,
        bonus_name: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.bonus_failed(
            bonus_name=bonus_name,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_rule_modified(
        self,
        rule_name: str,
        modifier_percent: str,
        new_value: str,
        reason: Optional[str],
    ) -> None:
        await self.log(AuditEventBuilder.rule_modified(
            rule_name=rule_name,
            modifier_percent=modifier_percent,
            new_value=new_value,
            reason=reason,
        ))

    async def log_integration_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an unreachable integration (workout or habit tracker)."""
        await self.log(AuditEventBuilder.integration_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a reconciliation run and pass it to
    every audit call the run makes.
    """
    return uuid4()
