"""
Audit Models for SplitLedger

Ledger computations can be audited by the calling service. This provides:
1. Traceability of which balances and plans were handed out
2. Diagnostic context when an expense is rejected
3. A loud record of internal invariant failures

DESIGN DECISION: Events are immutable records. The ledger only creates
them; forwarding or persisting them is the caller's job.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class AuditEventType(str, Enum):
    """Types of ledger events we audit."""
    # Balances
    BALANCES_COMPUTED = "balances_computed"
    SPLIT_REJECTED = "split_rejected"

    # Settlement
    SETTLEMENT_PLANNED = "settlement_planned"
    INVARIANT_VIOLATED = "invariant_violated"

    # Reporting
    SPEND_SUMMARIZED = "spend_summarized"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every ledger computation run through the facade creates one of these
    when an audit logger is attached.
    """
    model_config = ConfigDict(frozen=True)

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'group', 'expense')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one settle-up request)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
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
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.balances_computed(group_id, 3, 5, correlation_id)
        event = AuditEventBuilder.settlement_planned(group_id, "greedy", 2, "$60.00")
    """

    @staticmethod
    def balances_computed(
        group_id: Optional[str],
        member_count: int,
        expense_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCES_COMPUTED,
            entity_type="group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description=(
                f"Balances computed for {member_count} members "
                f"from {expense_count} expenses"
            ),
            details={
                "member_count": member_count,
                "expense_count": expense_count,
            },
        )

    @staticmethod
    def split_rejected(
        group_id: Optional[str],
        expense_id: str,
        reason: str,
        message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPLIT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense {expense_id} rejected: {reason}",
            details={
                "group_id": group_id,
                **(details or {}),
            },
            error_code=reason,
            error_message=message,
        )

    @staticmethod
    def settlement_planned(
        group_id: Optional[str],
        strategy: str,
        transfer_count: int,
        total_amount: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_PLANNED,
            entity_type="group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description=(
                f"Settlement planned: {transfer_count} transfers "
                f"totalling {total_amount} ({strategy})"
            ),
            details={
                "strategy": strategy,
                "transfer_count": transfer_count,
                "total_amount": total_amount,
            },
        )

    @staticmethod
    def invariant_violated(
        group_id: Optional[str],
        total: int,
        tolerance: int,
        message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVARIANT_VIOLATED,
            severity=AuditSeverity.ERROR,
            entity_type="group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description="Balances do not sum to zero",
            details={
                "total": total,
                "tolerance": tolerance,
            },
            error_code="unsettleable_input",
            error_message=message,
        )

    @staticmethod
    def spend_summarized(
        group_id: str,
        expense_count: int,
        total_spend: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPEND_SUMMARIZED,
            entity_type="group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description=f"Spend summarized: {expense_count} expenses, {total_spend}",
            details={
                "expense_count": expense_count,
                "total_spend": total_spend,
            },
        )
