"""
Ledger Errors

Two kinds of failure exist:

- InvalidSplit: the caller supplied an expense whose splits do not fit
  its method, total or group. Recoverable: reject the expense and ask for
  corrected input. Never retried, identical input fails identically.
- UnsettleableInput: balances handed to the optimizer do not sum to
  zero. This is an upstream bug, not a user error, and should surface as
  an internal error.

Both carry enough context to diagnose without re-running the computation.
"""

from typing import Any, Optional


class LedgerError(Exception):
    """Base exception for ledger errors."""
    pass


class InvalidSplit(LedgerError):
    """An expense's splits are inconsistent with its method, total or group."""

    def __init__(
        self,
        expense_id: str,
        reason: str,
        message: str,
        member_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.expense_id = expense_id
        self.reason = reason
        self.member_id = member_id
        self.details = details or {}
        super().__init__(f"Expense {expense_id}: {message}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "expense_id": self.expense_id,
            "reason": self.reason,
            "member_id": self.member_id,
            "details": self.details,
            "message": str(self),
        }


class UnsettleableInput(LedgerError):
    """Net balances violate the zero-sum invariant."""

    def __init__(self, total: int, tolerance: int, message: Optional[str] = None):
        self.total = total
        self.tolerance = tolerance
        super().__init__(
            message
            or f"Net balances sum to {total} minor units (tolerance {tolerance}); cannot settle"
        )
