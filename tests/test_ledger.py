"""
Tests for the ledger facade, spend summaries, audit logging and settings.
"""

import logging
from datetime import date
from decimal import Decimal

import pytest

from splitledger import (
    InvalidSplit,
    UnsettleableInput,
    compute_balances,
    compute_settlement_plan,
    create_ledger,
)
from splitledger.audit import AuditLogger, create_correlation_id
from splitledger.audit.logger import LOGGER_NAME
from splitledger.config import AppSettings, LedgerSettings, get_settings
from splitledger.ledger import LedgerFacade
from splitledger.models.audit import AuditEventType, AuditSeverity
from splitledger.models.ledger import (
    Balance,
    Expense,
    Group,
    Member,
    SettlementStrategy,
    SplitInput,
    SplitMethod,
)
from splitledger.queries import UNDATED, SpendSummarizer
from splitledger.validation import split_inputs_for


@pytest.fixture
def group():
    return Group(
        id="lisbon",
        name="Lisbon trip",
        currency="EUR",
        members=(Member(id="A", name="Ana"), Member(id="B", name="Ben"), Member(id="C", name="Cy")),
    )


@pytest.fixture
def expenses():
    return [
        Expense(
            id="e1",
            payer_id="A",
            amount=9000,
            splits=split_inputs_for("ABC"),
            title="Dinner",
            category="Dining",
            expense_date=date(2024, 5, 3),
        ),
        Expense(
            id="e2",
            payer_id="B",
            amount=12000,
            split_method=SplitMethod.PERCENTAGE,
            splits=(
                SplitInput(member_id="A", percentage=Decimal("50")),
                SplitInput(member_id="B", percentage=Decimal("25")),
                SplitInput(member_id="C", percentage=Decimal("25")),
            ),
            title="Apartment",
            category="Lodging",
            expense_date=date(2024, 5, 28),
        ),
        Expense(
            id="e3",
            payer_id="C",
            amount=1500,
            split_method=SplitMethod.EXACT,
            splits=(SplitInput(member_id="A", amount=1000), SplitInput(member_id="C", amount=500)),
            title="Tram",
            category="Transport",
            expense_date=date(2024, 6, 1),
        ),
        Expense(
            id="e4",
            payer_id="A",
            amount=600,
            splits=split_inputs_for("BC"),
            title="Snacks",
            category="dining",
        ),
    ]


@pytest.fixture
def audit_logger():
    return AuditLogger(AppSettings())


@pytest.fixture
def ledger(audit_logger):
    return LedgerFacade(settings=LedgerSettings(), audit_logger=audit_logger)


class TestLedgerFacade:
    """Tests for the public ledger operations."""

    def test_compute_balances(self, ledger, group, expenses):
        """Balances for a mixed set of expenses."""
        balances = ledger.compute_balances(group, expenses)
        nets = {b.member_id: b.net_balance for b in balances}

        # A: paid 9600, owes 3000 + 6000 + 1000
        # B: paid 12000, owes 3000 + 3000 + 300
        # C: paid 1500, owes 3000 + 3000 + 500 + 300
        assert nets == {"A": -400, "B": 5700, "C": -5300}
        assert sum(nets.values()) == 0

    def test_compute_balances_from_members(self, ledger, group, expenses):
        """A plain member list works like a group."""
        by_group = ledger.compute_balances(group, expenses)
        by_members = ledger.compute_balances(group.members, expenses)
        assert by_group == by_members

    def test_compute_settlement_plan(self, ledger, group, expenses):
        """The plan settles the computed balances."""
        balances = ledger.compute_balances(group, expenses)
        plan = ledger.compute_settlement_plan(balances, currency=group.currency)

        transfers = [(t.from_member_id, t.to_member_id, t.amount) for t in plan.transfers]
        assert transfers == [("C", "B", 5300), ("A", "B", 400)]
        assert plan.currency == "EUR"
        assert plan.summary_lines(group.member_names()) == [
            "Cy pays Ben €53.00",
            "Ana pays Ben €4.00",
        ]

    def test_settle_group(self, ledger, group, expenses):
        """Balances and plan in one call."""
        balances, plan = ledger.settle_group(group, expenses)
        assert len(balances) == 3
        assert plan.transfer_count == 2
        assert plan.total_amount == 5700

    def test_invalid_split_propagates(self, ledger, group):
        """An invalid expense raises with its context."""
        bad = Expense(
            id="bad",
            payer_id="A",
            amount=1000,
            split_method=SplitMethod.EXACT,
            splits=(SplitInput(member_id="A", amount=600), SplitInput(member_id="B", amount=300)),
        )
        with pytest.raises(InvalidSplit) as exc_info:
            ledger.compute_balances(group, [bad])
        assert exc_info.value.reason == "exact_sum"

    def test_unsettleable_input_propagates(self, ledger):
        """Non-zero-sum balances raise."""
        with pytest.raises(UnsettleableInput):
            ledger.compute_settlement_plan([Balance.from_net("A", 5), Balance.from_net("B", -4)])

    def test_same_input_same_output(self, ledger, group, expenses):
        """Repeated calls serialize identically."""
        _, first = ledger.settle_group(group, expenses)
        _, second = ledger.settle_group(group, expenses)
        assert first.model_dump_json() == second.model_dump_json()


class TestModuleFunctions:
    """Tests for the module-level convenience functions."""

    def test_compute_balances_and_plan(self, group):
        """The spend example: A pays $90.00 for three."""
        expense = Expense(id="e1", payer_id="A", amount=9000, splits=split_inputs_for("ABC"))
        balances = compute_balances(group, [expense])
        plan = compute_settlement_plan(balances, "USD")

        assert [b.net_balance for b in balances] == [6000, -3000, -3000]
        assert plan.summary_lines() == ["B pays A $30.00", "C pays A $30.00"]
        assert plan.strategy == SettlementStrategy.GREEDY

    def test_create_ledger_without_audit(self):
        """The default ledger records nothing."""
        ledger = create_ledger(LedgerSettings())
        assert isinstance(ledger, LedgerFacade)
        assert ledger.compute_settlement_plan([]).is_empty


class TestSpendSummary:
    """Tests for spend summaries."""

    def test_summarize_all(self, ledger, group, expenses):
        """Totals by category, month and payer."""
        summary = ledger.summarize_spend(group, expenses)

        assert summary.total_spend == 23100
        assert summary.expense_count == 4
        assert summary.currency == "EUR"
        assert summary.by_category == {
            "Dining": 9000,
            "Lodging": 12000,
            "Transport": 1500,
            "dining": 600,
        }
        assert summary.by_month == {"2024-05": 21000, "2024-06": 1500, UNDATED: 600}
        assert summary.by_payer == {"A": 9600, "B": 12000, "C": 1500}
        assert summary.top_category == "Lodging"
        assert summary.average_per_member == 7700

    def test_date_filter_excludes_undated(self, ledger, group, expenses):
        """Date ranges are inclusive and skip undated expenses."""
        summary = ledger.summarize_spend(
            group, expenses, date_from=date(2024, 5, 3), date_to=date(2024, 5, 31)
        )
        assert summary.expense_count == 2
        assert summary.by_month == {"2024-05": 21000}

    def test_category_filter_is_case_insensitive(self, ledger, group, expenses):
        """Category filters ignore case."""
        summary = ledger.summarize_spend(group, expenses, category="DINING")
        assert summary.expense_count == 2
        assert summary.total_spend == 9600
        assert summary.average_per_member == 3200

    def test_no_matches(self, group, expenses):
        """A filter that matches nothing gives an empty summary."""
        summary = SpendSummarizer().summarize(group, expenses, category="Fuel")
        assert summary.total_spend == 0
        assert summary.by_category == {}
        assert summary.top_category is None

    def test_average_per_member_is_floored(self):
        """The per-member average is floored to a whole minor unit."""
        group = Group(id="g", members=(Member(id="A"), Member(id="B"), Member(id="C")))
        expense = Expense(id="e1", payer_id="A", amount=1000, splits=split_inputs_for("ABC"))
        assert SpendSummarizer().summarize(group, [expense]).average_per_member == 333

    def test_average_for_group_without_members(self):
        """A group with no members averages to zero."""
        expense = Expense(id="e1", payer_id="A", amount=1000)
        summary = SpendSummarizer().summarize(Group(id="empty"), [expense])
        assert summary.total_spend == 1000
        assert summary.average_per_member == 0

    def test_invalid_expense_is_rejected(self, ledger, group):
        """Summaries only cover valid expenses."""
        bad = Expense(id="bad", payer_id="Z", amount=100, splits=split_inputs_for("A"))
        with pytest.raises(InvalidSplit):
            ledger.summarize_spend(group, [bad])


class TestAuditLogging:
    """Tests for audit events recorded by the facade."""

    def test_balances_and_plan_are_audited(self, ledger, audit_logger, group, expenses):
        """A settle-up records both computations under one correlation id."""
        correlation_id = create_correlation_id()
        ledger.settle_group(group, expenses, correlation_id=correlation_id)

        types = [event.event_type for event in audit_logger.events]
        assert types == [AuditEventType.BALANCES_COMPUTED, AuditEventType.SETTLEMENT_PLANNED]
        assert all(event.correlation_id == correlation_id for event in audit_logger.events)

        planned = audit_logger.events[1]
        assert planned.entity_id == "lisbon"
        assert planned.details["transfer_count"] == 2
        assert planned.details["total_amount"] == "€57.00"

    def test_split_rejection_is_audited(self, ledger, audit_logger, group):
        """Rejected expenses are recorded before the error propagates."""
        bad = Expense(id="bad", payer_id="A", amount=100, splits=split_inputs_for("AZ"))
        with pytest.raises(InvalidSplit):
            ledger.compute_balances(group, [bad])

        event = audit_logger.events[-1]
        assert event.event_type == AuditEventType.SPLIT_REJECTED
        assert event.severity == AuditSeverity.WARNING
        assert event.entity_id == "bad"
        assert event.error_code == "unknown_member"
        assert event.details["member_id"] == "Z"
        assert event.details["group_id"] == "lisbon"

    def test_invariant_violation_is_audited(self, ledger, audit_logger):
        """Unsettleable balances are recorded as errors."""
        with pytest.raises(UnsettleableInput):
            ledger.compute_settlement_plan(
                [Balance.from_net("A", 10), Balance.from_net("B", -1)],
                group_id="g",
            )

        event = audit_logger.events[-1]
        assert event.event_type == AuditEventType.INVARIANT_VIOLATED
        assert event.severity == AuditSeverity.ERROR
        assert event.details["total"] == 9

    def test_spend_summary_is_audited(self, ledger, audit_logger, group, expenses):
        """Spend summaries are recorded."""
        ledger.summarize_spend(group, expenses)
        event = audit_logger.events[-1]
        assert event.event_type == AuditEventType.SPEND_SUMMARIZED
        assert event.details["total_spend"] == "€231.00"

    def test_loggers_do_not_change_the_log_level(self):
        """Creating audit loggers leaves the shared logging level alone."""
        stdlib_logger = logging.getLogger(LOGGER_NAME)
        level = stdlib_logger.level

        AuditLogger(AppSettings(log_level="DEBUG"))
        AuditLogger(AppSettings(log_level="CRITICAL"))

        assert stdlib_logger.level == level

    def test_unaudited_ledger_records_nothing(self, group, expenses):
        """Without an audit logger the facade emits no events."""
        ledger = LedgerFacade(settings=LedgerSettings())
        balances, plan = ledger.settle_group(group, expenses)
        assert plan.transfer_count == 2


class TestSettings:
    """Tests for environment-driven configuration."""

    def test_defaults(self):
        """Default ledger settings."""
        settings = LedgerSettings()
        assert settings.default_currency == "USD"
        assert settings.percentage_tolerance == Decimal("0.01")
        assert settings.balance_tolerance_units == 0
        assert settings.exact_search_enabled is True
        assert settings.exact_search_max_members == 8

    def test_environment_overrides(self, monkeypatch):
        """LEDGER_ variables override the defaults."""
        monkeypatch.setenv("LEDGER_EXACT_SEARCH_MAX_MEMBERS", "3")
        monkeypatch.setenv("LEDGER_DEFAULT_CURRENCY", "inr")
        settings = LedgerSettings()
        assert settings.exact_search_max_members == 3
        assert settings.default_currency == "INR"

    def test_search_limit_is_bounded(self):
        """The exact search cannot be configured beyond its limit."""
        with pytest.raises(ValueError):
            LedgerSettings(exact_search_max_members=13)

    def test_invalid_log_level(self):
        """Only standard log level names are accepted."""
        with pytest.raises(ValueError):
            AppSettings(log_level="LOUD")

    def test_get_settings_is_cached(self):
        """The root settings object is loaded once."""
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        assert isinstance(get_settings().ledger, LedgerSettings)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
