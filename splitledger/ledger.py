"""
Ledger Facade

This module ties the components together and defines the public
operations the rest of the system calls:

1. compute_balances: expenses -> validated splits -> balances
2. compute_settlement_plan: balances -> minimal transfer plan
3. summarize_spend: expenses -> spend breakdown

DESIGN DECISION: The facade holds no group or expense state. Callers
pass an immutable snapshot on every call and own its lifecycle, so one
facade can serve concurrent requests without locking.

Errors are raised at the point of detection and never accompanied by a
partial result. When an audit logger is attached, every outcome
(including failures) is recorded before the error propagates.
"""

from collections.abc import Iterable
from datetime import date
from typing import Optional, Union
from uuid import UUID

from splitledger.audit import AuditLogger
from splitledger.balances import BalanceCalculator
from splitledger.config import LedgerSettings, get_settings
from splitledger.errors import InvalidSplit, UnsettleableInput
from splitledger.models.ledger import (
    Balance,
    Expense,
    Group,
    Member,
    SettlementPlan,
    SpendSummary,
)
from splitledger.models.money import format_amount
from splitledger.queries import SpendSummarizer
from splitledger.settlement import SettlementOptimizer
from splitledger.validation import SplitValidator


class LedgerFacade:
    """
    Orchestrates validation, balance calculation and settlement.

    Flow:
    1. Validate every expense in input order (first failure aborts)
    2. Fold validated expenses into per-member balances
    3. On demand, turn balances into a settlement plan
    """

    def __init__(
        self,
        settings: Optional[LedgerSettings] = None,
        validator: Optional[SplitValidator] = None,
        calculator: Optional[BalanceCalculator] = None,
        optimizer: Optional[SettlementOptimizer] = None,
        summarizer: Optional[SpendSummarizer] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = settings or get_settings().ledger
        self._validator = validator or SplitValidator(self._settings)
        self._calculator = calculator or BalanceCalculator(self._validator)
        self._optimizer = optimizer or SettlementOptimizer(self._settings)
        self._summarizer = summarizer or SpendSummarizer()
        self._audit_logger = audit_logger

    def compute_balances(
        self,
        members: Union[Group, Iterable[Member]],
        expenses: Iterable[Expense],
        correlation_id: Optional[UUID] = None,
    ) -> list[Balance]:
        """
        Compute one Balance per member.

        Args:
            members: Group snapshot, or its members
            expenses: The group's expenses

        Returns:
            Balances in member order; members without activity get zeros

        Raises:
            InvalidSplit: For the first invalid expense, in input order
        """
        group_id = members.id if isinstance(members, Group) else None
        if not isinstance(members, Group):
            members = list(members)
        expenses = list(expenses)

        try:
            balances = self._calculator.compute_from_expenses(members, expenses)
        except InvalidSplit as e:
            if self._audit_logger:
                self._audit_logger.log_split_rejected(
                    group_id=group_id,
                    error=e,
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_balances_computed(
                group_id=group_id,
                member_count=len(balances),
                expense_count=len(expenses),
                correlation_id=correlation_id,
            )
        return balances

    def compute_settlement_plan(
        self,
        balances: Iterable[Balance],
        currency: Optional[str] = None,
        group_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SettlementPlan:
        """
        Compute the minimal settlement plan for the given balances.

        Args:
            balances: One Balance per member
            currency: Display label only; amounts are never converted

        Raises:
            UnsettleableInput: If balances do not sum to zero (internal error)
        """
        try:
            plan = self._optimizer.optimize(balances, currency)
        except UnsettleableInput as e:
            if self._audit_logger:
                self._audit_logger.log_invariant_violated(
                    group_id=group_id,
                    error=e,
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_settlement_planned(
                group_id=group_id,
                strategy=plan.strategy.value,
                transfer_count=plan.transfer_count,
                total_amount=format_amount(plan.total_amount, plan.currency),
                correlation_id=correlation_id,
            )
        return plan

    def settle_group(
        self,
        group: Group,
        expenses: Iterable[Expense],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[list[Balance], SettlementPlan]:
        """
        Balances and settlement plan for a group in one call.

        Returns:
            (balances, plan)
        """
        balances = self.compute_balances(group, expenses, correlation_id=correlation_id)
        plan = self.compute_settlement_plan(
            balances,
            currency=group.currency,
            group_id=group.id,
            correlation_id=correlation_id,
        )
        return balances, plan

    def summarize_spend(
        self,
        group: Group,
        expenses: Iterable[Expense],
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        category: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SpendSummary:
        """
        Summarize a group's spending by category, month and payer.

        Expenses are validated first, exactly as for balances.

        Raises:
            InvalidSplit: For the first invalid expense, in input order
        """
        expenses = list(expenses)
        try:
            self._validator.validate_all(expenses, group.member_ids)
        except InvalidSplit as e:
            if self._audit_logger:
                self._audit_logger.log_split_rejected(
                    group_id=group.id,
                    error=e,
                    correlation_id=correlation_id,
                )
            raise

        summary = self._summarizer.summarize(
            group,
            expenses,
            date_from=date_from,
            date_to=date_to,
            category=category,
        )

        if self._audit_logger:
            self._audit_logger.log_spend_summarized(
                group_id=group.id,
                expense_count=summary.expense_count,
                total_spend=format_amount(summary.total_spend, summary.currency),
                correlation_id=correlation_id,
            )
        return summary


def create_ledger(
    settings: Optional[LedgerSettings] = None,
    audit: bool = False,
) -> LedgerFacade:
    """
    Factory function to create a ledger facade.

    Args:
        settings: Ledger settings; defaults to the environment
        audit: Attach an AuditLogger that records every computation
    """
    audit_logger = AuditLogger() if audit else None
    return LedgerFacade(settings=settings, audit_logger=audit_logger)


def compute_balances(
    members: Union[Group, Iterable[Member]],
    expenses: Iterable[Expense],
) -> list[Balance]:
    """Compute balances with a default, unaudited ledger."""
    return create_ledger().compute_balances(members, expenses)


def compute_settlement_plan(
    balances: Iterable[Balance],
    currency: Optional[str] = None,
) -> SettlementPlan:
    """Compute a settlement plan with a default, unaudited ledger."""
    return create_ledger().compute_settlement_plan(balances, currency)
