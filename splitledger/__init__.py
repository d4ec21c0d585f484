"""
SplitLedger - Source Package

Deterministic balance ledger and settlement optimizer for groups that
share expenses.

DESIGN PRINCIPLES:
1. Money is integer minor units, never floats
2. Fail early, fail visibly
3. No silent corrections
4. Same input, same output, byte for byte
5. Callers own state; the ledger keeps none between calls
"""

from splitledger.errors import InvalidSplit, LedgerError, UnsettleableInput
from splitledger.ledger import (
    LedgerFacade,
    compute_balances,
    compute_settlement_plan,
    create_ledger,
)

__version__ = "1.0.0"
__author__ = "SplitLedger Team"

__all__ = [
    "InvalidSplit",
    "LedgerError",
    "LedgerFacade",
    "UnsettleableInput",
    "compute_balances",
    "compute_settlement_plan",
    "create_ledger",
]
