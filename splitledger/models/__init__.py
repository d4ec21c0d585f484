"""
Data Models Package

This package contains all Pydantic models used by the ledger.
All data flowing through the system must conform to these schemas.
"""

from splitledger.models.ledger import (
    Balance,
    Expense,
    Group,
    Member,
    SettlementPlan,
    SettlementStrategy,
    SpendSummary,
    Split,
    SplitInput,
    SplitMethod,
    Transfer,
    ValidatedExpense,
)
from splitledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from splitledger.models.money import (
    format_amount,
    minor_unit_exponent,
    to_major_units,
    to_minor_units,
)

__all__ = [
    # Ledger models
    "Balance",
    "Expense",
    "Group",
    "Member",
    "SettlementPlan",
    "SettlementStrategy",
    "SpendSummary",
    "Split",
    "SplitInput",
    "SplitMethod",
    "Transfer",
    "ValidatedExpense",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Money helpers
    "format_amount",
    "minor_unit_exponent",
    "to_major_units",
    "to_minor_units",
]
