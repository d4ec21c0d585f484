"""
Audit Logger

The ledger core itself never logs. A service embedding it may attach an
AuditLogger to the facade to get a structured record of every
computation:
- Balances computed, per group
- Expenses rejected, with the reason and computed sums
- Settlement plans handed out, with strategy and size
- Invariant failures (these indicate bugs upstream)

The audit logger:
- Is synchronous, like the computations it records
- Keeps the events it emitted so callers can forward them elsewhere
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from splitledger.config import AppSettings, get_settings
from splitledger.errors import InvalidSplit, UnsettleableInput
from splitledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


LOGGER_NAME = "splitledger.audit"

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

# Level is set once, from the environment; per-instance settings never touch it
logging.getLogger(LOGGER_NAME).setLevel(get_settings().app.log_level)


class AuditLogger:
    """
    Central audit logging service.

    Logs events to the structured local log and keeps them in ``events``.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        """
        Initialize audit logger.

        Args:
            settings: App settings (environment label).
                     Defaults to the cached global settings.
        """
        self._settings = settings or get_settings().app
        self._logger = structlog.get_logger(LOGGER_NAME).bind(
            environment=self._settings.app_environment,
        )
        self.events: list[AuditEvent] = []

    def log(self, event: AuditEvent) -> None:
        """Log an audit event locally and remember it."""
        self.events.append(event)
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    def log_balances_computed(
        self,
        group_id: Optional[str],
        member_count: int,
        expense_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a successful balance computation."""
        self.log(AuditEventBuilder.balances_computed(
            group_id=group_id,
            member_count=member_count,
            expense_count=expense_count,
            correlation_id=correlation_id,
        ))

    def log_split_rejected(
        self,
        group_id: Optional[str],
        error: InvalidSplit,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an expense rejected by the split validator."""
        details = dict(error.details)
        if error.member_id:
            details["member_id"] = error.member_id
        self.log(AuditEventBuilder.split_rejected(
            group_id=group_id,
            expense_id=error.expense_id,
            reason=error.reason,
            message=str(error),
            details=details,
            correlation_id=correlation_id,
        ))

    def log_settlement_planned(
        self,
        group_id: Optional[str],
        strategy: str,
        transfer_count: int,
        total_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a settlement plan."""
        self.log(AuditEventBuilder.settlement_planned(
            group_id=group_id,
            strategy=strategy,
            transfer_count=transfer_count,
            total_amount=total_amount,
            correlation_id=correlation_id,
        ))

    def log_invariant_violated(
        self,
        group_id: Optional[str],
        error: UnsettleableInput,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log balances that failed the zero-sum check."""
        self.log(AuditEventBuilder.invariant_violated(
            group_id=group_id,
            total=error.total,
            tolerance=error.tolerance,
            message=str(error),
            correlation_id=correlation_id,
        ))

    def log_spend_summarized(
        self,
        group_id: str,
        expense_count: int,
        total_spend: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a spend summary."""
        self.log(AuditEventBuilder.spend_summarized(
            group_id=group_id,
            expense_count=expense_count,
            total_spend=total_spend,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a caller action (e.g., one settle-up request).
    Pass it through all subsequent operations.
    """
    return uuid4()
