"""
Spend Summary

Deterministic aggregation of a group's spending, the numbers behind the
monthly spend chart and category breakdown shown next to balances.

Only stored expense amounts are summed; nothing is estimated.
Keys are emitted in sorted order so two summaries of the same data
serialize identically.
"""

from collections.abc import Iterable
from datetime import date
from typing import Optional

from splitledger.models.ledger import Expense, Group, SpendSummary


UNDATED = "undated"


class SpendSummarizer:
    """Aggregates expense totals by category, month and payer."""

    def _matches(
        self,
        expense: Expense,
        date_from: Optional[date],
        date_to: Optional[date],
        category: Optional[str],
    ) -> bool:
        if category and expense.category.lower() != category.lower():
            return False
        if date_from or date_to:
            if expense.expense_date is None:
                return False
            if date_from and expense.expense_date < date_from:
                return False
            if date_to and expense.expense_date > date_to:
                return False
        return True

    def _month_key(self, expense: Expense) -> str:
        if expense.expense_date is None:
            return UNDATED
        return expense.expense_date.strftime("%Y-%m")

    def summarize(
        self,
        group: Group,
        expenses: Iterable[Expense],
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        category: Optional[str] = None,
    ) -> SpendSummary:
        """
        Summarize spending for a group.

        Args:
            group: Group snapshot (supplies id and currency)
            expenses: The group's expenses
            date_from: Only include expenses on or after this date
            date_to: Only include expenses on or before this date
            category: Only include expenses in this category (case-insensitive)

        A date filter excludes undated expenses.
        """
        by_category: dict[str, int] = {}
        by_month: dict[str, int] = {}
        by_payer: dict[str, int] = {}
        total = 0
        count = 0

        for expense in expenses:
            if not self._matches(expense, date_from, date_to, category):
                continue

            total += expense.amount
            count += 1

            month = self._month_key(expense)
            by_category[expense.category] = by_category.get(expense.category, 0) + expense.amount
            by_month[month] = by_month.get(month, 0) + expense.amount
            by_payer[expense.payer_id] = by_payer.get(expense.payer_id, 0) + expense.amount

        return SpendSummary(
            group_id=group.id,
            currency=group.currency,
            total_spend=total,
            expense_count=count,
            average_per_member=total // len(group.members) if group.members else 0,
            by_category=dict(sorted(by_category.items())),
            by_month=dict(sorted(by_month.items())),
            by_payer=dict(sorted(by_payer.items())),
        )
