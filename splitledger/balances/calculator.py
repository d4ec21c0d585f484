"""
Balance Calculator

Folds validated expenses into one Balance per group member:

    total_paid  = sum of expense totals the member paid
    total_owed  = sum of the member's split amounts
    net_balance = total_paid - total_owed

Positive net means the group owes the member; negative means the member
owes the group. Because every expense's splits sum to its total, the net
balances of a group always sum to exactly zero.
"""

from collections.abc import Iterable, Sequence
from typing import Optional, Union

from splitledger.models.ledger import (
    Balance,
    Expense,
    Group,
    Member,
    ValidatedExpense,
)
from splitledger.validation import SplitValidator


def _member_ids(members: Union[Group, Iterable[Member], Iterable[str]]) -> list[str]:
    """Member ids in group order, accepting a group, members or raw ids."""
    if isinstance(members, Group):
        return members.member_ids
    return [m.id if isinstance(m, Member) else m for m in members]


class BalanceCalculator:
    """
    Computes per-member balances in a single linear pass.

    Every group member gets a Balance, including members with no
    activity (they come back as zeros, never as a missing entry).
    """

    def __init__(self, validator: Optional[SplitValidator] = None):
        self._validator = validator or SplitValidator()

    def compute(
        self,
        members: Union[Group, Iterable[Member], Iterable[str]],
        expenses: Sequence[ValidatedExpense],
    ) -> list[Balance]:
        """
        Compute balances from already validated expenses.

        Returns:
            One Balance per member, in group member order
        """
        member_ids = _member_ids(members)
        paid = {member_id: 0 for member_id in member_ids}
        owed = {member_id: 0 for member_id in member_ids}

        for expense in expenses:
            paid[expense.payer_id] += expense.amount
            for split in expense.splits:
                owed[split.member_id] += split.amount

        return [
            Balance.from_totals(member_id, paid[member_id], owed[member_id])
            for member_id in member_ids
        ]

    def compute_from_expenses(
        self,
        members: Union[Group, Iterable[Member], Iterable[str]],
        expenses: Iterable[Expense],
    ) -> list[Balance]:
        """
        Validate raw expenses, then compute balances.

        Raises:
            InvalidSplit: From the split validator, unchanged
        """
        member_ids = _member_ids(members)
        validated = self._validator.validate_all(expenses, member_ids)
        return self.compute(member_ids, validated)


def net_balances(balances: Iterable[Balance]) -> dict[str, int]:
    """Map member id -> net balance."""
    return {balance.member_id: balance.net_balance for balance in balances}
