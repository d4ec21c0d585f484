"""
Split Validation

Turns an expense's raw split inputs into finalized splits whose amounts
sum EXACTLY to the expense total, or raises InvalidSplit.

Validation happens in two stages:

STAGE 1 - STRUCTURAL CHECKS (every split method):
- At least one split
- Payer and every split member belong to the group
- No member appears twice
- No negative amount or percentage

STAGE 2 - METHOD CHECKS AND ALLOCATION:
- equal: integer division, remainder handed out one minor unit at a time
- percentage: percentages must sum to 100, then the same remainder rule
- exact: amounts must sum to the total

Remainders always go to members in ascending member id order, so the
same expense splits the same way on every run and every machine.

IMPORTANT: Validation NEVER silently fixes inconsistent input.
"""

from collections.abc import Iterable
from decimal import Decimal
from fractions import Fraction
from typing import Optional

from splitledger.config import LedgerSettings, get_settings
from splitledger.errors import InvalidSplit
from splitledger.models.ledger import (
    Expense,
    Split,
    SplitInput,
    SplitMethod,
    ValidatedExpense,
)


def distribute_remainder(
    shares: dict[str, int],
    remainder: int,
    recipients: Iterable[str],
) -> dict[str, int]:
    """
    Hand out ``remainder`` minor units, one each, to ``recipients``.

    Recipients are served in ascending id order and the caller guarantees
    ``0 <= remainder <= len(recipients)``.
    """
    result = dict(shares)
    for member_id in sorted(recipients)[:remainder]:
        result[member_id] += 1
    return result


class SplitValidator:
    """
    Validates and finalizes the splits of a single expense.

    Pure: holds only read-only settings, so one instance can be shared
    by concurrent callers.
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        """
        Initialize validator.

        Args:
            settings: Ledger settings. Defaults to the cached global settings.
        """
        self._settings = settings or get_settings().ledger

    def _validate_structure(self, expense: Expense, member_ids: set[str]) -> None:
        """Stage 1: checks shared by every split method."""
        if not expense.splits:
            raise InvalidSplit(
                expense.id,
                reason="no_splits",
                message="expense has no splits",
            )

        if expense.payer_id not in member_ids:
            raise InvalidSplit(
                expense.id,
                reason="unknown_payer",
                member_id=expense.payer_id,
                message=f"payer {expense.payer_id} is not a member of the group",
            )

        seen = set()
        for split in expense.splits:
            if split.member_id not in member_ids:
                raise InvalidSplit(
                    expense.id,
                    reason="unknown_member",
                    member_id=split.member_id,
                    message=f"split references unknown member {split.member_id}",
                )
            if split.member_id in seen:
                raise InvalidSplit(
                    expense.id,
                    reason="duplicate_member",
                    member_id=split.member_id,
                    message=f"member {split.member_id} appears more than once",
                )
            seen.add(split.member_id)

            if split.amount is not None and split.amount < 0:
                raise InvalidSplit(
                    expense.id,
                    reason="negative_amount",
                    member_id=split.member_id,
                    message=f"negative amount {split.amount} for {split.member_id}",
                    details={"amount": split.amount},
                )
            if split.percentage is not None and split.percentage < 0:
                raise InvalidSplit(
                    expense.id,
                    reason="negative_percentage",
                    member_id=split.member_id,
                    message=f"negative percentage {split.percentage} for {split.member_id}",
                    details={"percentage": str(split.percentage)},
                )

    def _split_equal(self, expense: Expense) -> list[Split]:
        member_ids = [split.member_id for split in expense.splits]
        base, remainder = divmod(expense.amount, len(member_ids))

        shares = distribute_remainder(
            {member_id: base for member_id in member_ids},
            remainder,
            member_ids,
        )
        return [Split(member_id=m, amount=shares[m]) for m in member_ids]

    def _split_percentage(self, expense: Expense) -> list[Split]:
        for split in expense.splits:
            if split.percentage is None:
                raise InvalidSplit(
                    expense.id,
                    reason="missing_percentage",
                    member_id=split.member_id,
                    message=f"percentage split for {split.member_id} has no percentage",
                )

        total_pct = sum((split.percentage for split in expense.splits), Decimal("0"))
        tolerance = self._settings.percentage_tolerance
        if total_pct <= 0 or abs(total_pct - Decimal("100")) > tolerance:
            raise InvalidSplit(
                expense.id,
                reason="percentage_sum",
                message=f"percentages sum to {total_pct}, expected 100",
                details={"percentage_sum": str(total_pct), "tolerance": str(tolerance)},
            )

        # Shares are scaled by the actual percentage sum so their floors
        # never exceed the total; each floor loses less than one unit.
        shares = {}
        for split in expense.splits:
            exact = Fraction(expense.amount) * Fraction(split.percentage) / Fraction(total_pct)
            shares[split.member_id] = exact.numerator // exact.denominator

        remainder = expense.amount - sum(shares.values())
        recipients = [s.member_id for s in expense.splits if s.percentage > 0]
        shares = distribute_remainder(shares, remainder, recipients)

        return [
            Split(
                member_id=split.member_id,
                amount=shares[split.member_id],
                percentage=split.percentage,
            )
            for split in expense.splits
        ]

    def _split_exact(self, expense: Expense) -> list[Split]:
        for split in expense.splits:
            if split.amount is None:
                raise InvalidSplit(
                    expense.id,
                    reason="missing_amount",
                    member_id=split.member_id,
                    message=f"exact split for {split.member_id} has no amount",
                )

        total = sum(split.amount for split in expense.splits)
        if total != expense.amount:
            raise InvalidSplit(
                expense.id,
                reason="exact_sum",
                message=f"split amounts sum to {total}, expected {expense.amount}",
                details={"split_sum": total, "expense_amount": expense.amount},
            )

        return [Split(member_id=s.member_id, amount=s.amount) for s in expense.splits]

    def validate(self, expense: Expense, member_ids: Iterable[str]) -> ValidatedExpense:
        """
        Validate one expense against the group's members.

        Args:
            expense: The expense to validate
            member_ids: Ids of the group's members

        Returns:
            ValidatedExpense whose split amounts sum to the expense total

        Raises:
            InvalidSplit: On the first problem found
        """
        self._validate_structure(expense, set(member_ids))

        if expense.split_method == SplitMethod.EQUAL:
            splits = self._split_equal(expense)
        elif expense.split_method == SplitMethod.PERCENTAGE:
            splits = self._split_percentage(expense)
        else:
            splits = self._split_exact(expense)

        return ValidatedExpense(
            expense_id=expense.id,
            payer_id=expense.payer_id,
            amount=expense.amount,
            split_method=expense.split_method,
            splits=tuple(splits),
        )

    def validate_all(
        self,
        expenses: Iterable[Expense],
        member_ids: Iterable[str],
    ) -> list[ValidatedExpense]:
        """
        Validate expenses in input order.

        Stops at the first invalid expense; nothing is returned for the
        expenses validated before it.
        """
        members = set(member_ids)
        return [self.validate(expense, members) for expense in expenses]


def split_inputs_for(member_ids: Iterable[str]) -> tuple[SplitInput, ...]:
    """Equal-split inputs covering every given member."""
    return tuple(SplitInput(member_id=member_id) for member_id in member_ids)
