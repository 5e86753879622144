"""
Audit Models for Decider

Every ledger mutation made by a reconciliation run is logged:
interest, debts, payments, punishments, bonuses and rule changes.
This provides:
1. A trail explaining why a balance is what it is
2. Debugging information when a step fails
3. Correlation of everything one run did

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every ledger-changing step of a reconciliation has its own event type.
    """
    # Runs
    RECONCILIATION_STARTED = "reconciliation_started"
    RECONCILIATION_COMPLETED = "reconciliation_completed"
    RECONCILIATION_FAILED = "reconciliation_failed"
    STEP_FAILED = "step_failed"

    # Ledger
    INTEREST_APPLIED = "interest_applied"
    DEBT_CREATED = "debt_created"
    DEBT_PAYMENT = "debt_payment"
    DEBT_FORGIVEN = "debt_forgiven"

    # Punishments
    PUNISHMENT_ASSIGNED = "punishment_assigned"
    PUNISHMENT_COMPLETED = "punishment_completed"
    PUNISHMENT_MISSED = "punishment_missed"

    # Bonuses
    BONUS_AWARDED = "bonus_awarded"
    BONUS_FAILED = "bonus_failed"

    # Rules
    RULE_MODIFIED = "rule_modified"

    # System events
    INTEGRATION_ERROR = "integration_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'debt', 'punishment', 'rule')"
    )
    entity_id: Optional[str] = None

    # Correlation - every event of one reconciliation run shares this
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.debt_created(debt_id, name, amount, correlation_id)
        event = AuditEventBuilder.bonus_awarded(bonus_id, bonus_type, amount, correlation_id)
    """

    @staticmethod
    def reconciliation_started(
        run_type: str,
        period: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_STARTED,
            entity_type="reconciliation",
            entity_id=period,
            correlation_id=correlation_id,
            description=f"{run_type.capitalize()} reconciliation started for {period}",
            details={"run_type": run_type},
        )

    @staticmethod
    def reconciliation_completed(
        run_type: str,
        period: str,
        summary: str,
        failed_steps: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_COMPLETED,
            severity=AuditSeverity.WARNING if failed_steps else AuditSeverity.INFO,
            entity_type="reconciliation",
            entity_id=period,
            correlation_id=correlation_id,
            description=f"{run_type.capitalize()} reconciliation completed for {period}",
            details={
                "run_type": run_type,
                "summary": summary,
                "failed_steps": failed_steps,
            },
        )

    @staticmethod
    def reconciliation_failed(
        run_type: str,
        period: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="reconciliation",
            entity_id=period,
            correlation_id=correlation_id,
            description=f"{run_type.capitalize()} reconciliation failed for {period}",
            error_message=error_message,
        )

    @staticmethod
    def step_failed(
        step: str,
        error_type: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STEP_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="step",
            entity_id=step,
            correlation_id=correlation_id,
            description=f"Step {step} failed ({error_type}); continuing with empty result",
            error_message=error_message,
        )

    @staticmethod
    def interest_applied(
        debt_count: int,
        total_interest: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INTEREST_APPLIED,
            entity_type="debt",
            correlation_id=correlation_id,
            description=f"Applied ${total_interest} interest across {debt_count} debts",
            details={
                "debt_count": debt_count,
                "total_interest": total_interest,
            },
        )

    @staticmethod
    def debt_created(
        debt_id: str,
        name: str,
        amount: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBT_CREATED,
            entity_type="debt",
            entity_id=debt_id,
            correlation_id=correlation_id,
            description=f"Debt created: {name} - ${amount}",
            details={"name": name, "amount": amount},
        )

    @staticmethod
    def debt_payment(
        debt_id: str,
        payment_amount: str,
        remaining_debt: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBT_PAYMENT,
            entity_type="debt",
            entity_id=debt_id,
            correlation_id=correlation_id,
            description=f"Paid ${payment_amount} toward debt, ${remaining_debt} remaining",
            details={
                "payment_amount": payment_amount,
                "remaining_debt": remaining_debt,
            },
        )

    @staticmethod
    def debt_forgiven(
        debt_id: str,
        cardio_minutes: int,
        forgiveness_amount: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBT_FORGIVEN,
            entity_type="debt",
            entity_id=debt_id,
            correlation_id=correlation_id,
            description=f"{cardio_minutes} cardio minutes forgave ${forgiveness_amount}",
            details={
                "cardio_minutes": cardio_minutes,
                "forgiveness_amount": forgiveness_amount,
            },
        )

    @staticmethod
    def punishment_assigned(
        punishment_id: str,
        name: str,
        minutes: int,
        route: Optional[int],
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PUNISHMENT_ASSIGNED,
            entity_type="punishment",
            entity_id=punishment_id,
            correlation_id=correlation_id,
            description=f"Punishment assigned: {name}",
            details={"minutes": minutes, "route": route},
        )

    @staticmethod
    def punishment_completed(
        punishment_id: str,
        workout_id: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PUNISHMENT_COMPLETED,
            entity_type="punishment",
            entity_id=punishment_id,
            correlation_id=correlation_id,
            description="Punishment completed by cardio workout",
            details={"workout_id": workout_id},
        )

    @staticmethod
    def punishment_missed(
        punishment_id: str,
        debt_id: str,
        debt_amount: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PUNISHMENT_MISSED,
            severity=AuditSeverity.WARNING,
            entity_type="punishment",
            entity_id=punishment_id,
            correlation_id=correlation_id,
            description=f"Punishment missed, ${debt_amount} debt created",
            details={"debt_id": debt_id, "debt_amount": debt_amount},
        )

    @staticmethod
    def bonus_awarded(
        bonus_id: str,
        bonus_type: str,
        amount: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BONUS_AWARDED,
            entity_type="bonus",
            entity_id=bonus_id,
            correlation_id=correlation_id,
            description=f"{bonus_type} bonus awarded: ${amount}",
            details={"type": bonus_type, "amount": amount},
        )

    @staticmethod
    def bonus_failed(
        bonus_name: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BONUS_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="bonus",
            correlation_id=correlation_id,
            description=f"Bonus could not be awarded: {bonus_name}",
            error_message=error_message,
        )

    @staticmethod
    def rule_modified(
        rule_name: str,
        modifier_percent: str,
        new_value: str,
        reason: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RULE_MODIFIED,
            entity_type="rule",
            entity_id=rule_name,
            description=f"Rule {rule_name} modified by {modifier_percent}% to {new_value}",
            details={
                "modifier_percent": modifier_percent,
                "new_calculated_value": new_value,
                "reason": reason or "No reason provided",
            },
        )

    @staticmethod
    def integration_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INTEGRATION_ERROR,
            severity=AuditSeverity.WARNING,
            description=f"Integration unavailable: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
