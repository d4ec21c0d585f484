"""
Core Data Models for SplitLedger

These models define the strict schemas for all data flowing through the
ledger. They are designed to:
1. Enforce type safety at runtime
2. Be immutable, so a snapshot passed in can never be changed by the core
3. Be serializable for the caller's storage and API layers

DESIGN DECISION: Every currency amount is an ``int`` in minor units.
Floating point never appears in a balance, a split or a transfer.
Use ``splitledger.models.money`` to convert at the edges.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from splitledger.models.money import format_amount


# =============================================================================
# ENUMS
# =============================================================================

class SplitMethod(str, Enum):
    """How an expense's total is divided among its members."""
    EQUAL = "equal"
    PERCENTAGE = "percentage"
    EXACT = "exact"


class SettlementStrategy(str, Enum):
    """Which search produced a settlement plan."""
    GREEDY = "greedy"
    EXACT = "exact"


# =============================================================================
# GROUP SNAPSHOT
# =============================================================================

class Member(BaseModel):
    """A member of a group. Immutable for the duration of a computation."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Member identifier, unique within its group"
    )
    name: str = Field(
        default="",
        max_length=200,
        description="Display name"
    )

    @property
    def display_name(self) -> str:
        return self.name or self.id


class Group(BaseModel):
    """
    Snapshot of a group as supplied by the persistence layer.

    The ledger never keeps a group between calls; callers pass a fresh
    snapshot every time.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(default="")
    currency: str = Field(
        default="USD",
        description="Single currency shared by every expense in the group"
    )
    members: tuple[Member, ...] = Field(default_factory=tuple)

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        v = v.upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError(f"Invalid currency code: {v}")
        return v

    @model_validator(mode='after')
    def validate_unique_members(self) -> 'Group':
        seen = set()
        for member in self.members:
            if member.id in seen:
                raise ValueError(f"Duplicate member id in group: {member.id}")
            seen.add(member.id)
        return self

    @property
    def member_ids(self) -> list[str]:
        return [member.id for member in self.members]

    def member_names(self) -> dict[str, str]:
        return {member.id: member.display_name for member in self.members}


# =============================================================================
# EXPENSES AND SPLITS
# =============================================================================

class SplitInput(BaseModel):
    """
    Raw split entry as entered by the user.

    Deliberately unconstrained: negative values and missing fields are
    reported by the split validator as InvalidSplit, with the expense
    context attached, rather than failing here.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    member_id: str
    amount: Optional[int] = Field(
        default=None,
        description="Owed amount in minor units (exact splits)"
    )
    percentage: Optional[Decimal] = Field(
        default=None,
        description="Share of the total in percent (percentage splits)"
    )


class Expense(BaseModel):
    """A single shared expense."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    payer_id: str = Field(..., min_length=1)
    amount: int = Field(
        ...,
        ge=0,
        description="Total amount in minor units"
    )
    split_method: SplitMethod = SplitMethod.EQUAL
    splits: tuple[SplitInput, ...] = Field(default_factory=tuple)

    # Descriptive fields, carried through untouched
    title: str = Field(default="", max_length=200)
    category: str = Field(default="Other", max_length=50)
    expense_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_by: Optional[str] = None


class Split(BaseModel):
    """A finalized split: one member's share of one expense."""
    model_config = ConfigDict(frozen=True)

    member_id: str
    amount: int = Field(..., ge=0)
    percentage: Optional[Decimal] = None


class ValidatedExpense(BaseModel):
    """
    An expense whose splits have been finalized.

    Only the split validator creates these. The sum of split amounts
    equals ``amount`` exactly.
    """
    model_config = ConfigDict(frozen=True)

    expense_id: str
    payer_id: str
    amount: int = Field(..., ge=0)
    split_method: SplitMethod
    splits: tuple[Split, ...]

    @model_validator(mode='after')
    def validate_split_sum(self) -> 'ValidatedExpense':
        total = sum(split.amount for split in self.splits)
        if total != self.amount:
            raise ValueError(
                f"Splits of expense {self.expense_id} sum to {total}, expected {self.amount}"
            )
        return self


# =============================================================================
# BALANCES AND SETTLEMENT
# =============================================================================

class Balance(BaseModel):
    """Aggregate position of one member across all expenses."""
    model_config = ConfigDict(frozen=True)

    member_id: str
    total_paid: int = 0
    total_owed: int = 0
    net_balance: int = 0

    @model_validator(mode='after')
    def validate_net(self) -> 'Balance':
        if self.net_balance != self.total_paid - self.total_owed:
            raise ValueError(
                f"Net balance of {self.member_id} must equal paid minus owed"
            )
        return self

    @classmethod
    def from_totals(cls, member_id: str, total_paid: int, total_owed: int) -> 'Balance':
        return cls(
            member_id=member_id,
            total_paid=total_paid,
            total_owed=total_owed,
            net_balance=total_paid - total_owed,
        )

    @classmethod
    def from_net(cls, member_id: str, net_balance: int) -> 'Balance':
        """Build a balance when only the net position is known."""
        return cls.from_totals(member_id, max(net_balance, 0), max(-net_balance, 0))


class Transfer(BaseModel):
    """One settlement payment from a debtor to a creditor."""
    model_config = ConfigDict(frozen=True)

    from_member_id: str
    to_member_id: str
    amount: int = Field(..., gt=0, description="Amount in minor units")

    @model_validator(mode='after')
    def validate_distinct_members(self) -> 'Transfer':
        if self.from_member_id == self.to_member_id:
            raise ValueError(f"Transfer from {self.from_member_id} to itself")
        return self


class SettlementPlan(BaseModel):
    """
    Ordered transfers that bring every balance to zero.

    ``currency`` is a display label only; it never affects amounts.
    """
    model_config = ConfigDict(frozen=True)

    currency: str = "USD"
    transfers: tuple[Transfer, ...] = Field(default_factory=tuple)
    strategy: SettlementStrategy = SettlementStrategy.GREEDY

    @property
    def transfer_count(self) -> int:
        return len(self.transfers)

    @property
    def is_empty(self) -> bool:
        return not self.transfers

    @property
    def total_amount(self) -> int:
        return sum(transfer.amount for transfer in self.transfers)

    def summary_lines(self, names: Optional[dict[str, str]] = None) -> list[str]:
        """
        Human-readable lines, one per transfer.

        Args:
            names: Optional member id -> display name mapping
        """
        names = names or {}
        return [
            f"{names.get(t.from_member_id, t.from_member_id)} pays "
            f"{names.get(t.to_member_id, t.to_member_id)} "
            f"{format_amount(t.amount, self.currency)}"
            for t in self.transfers
        ]


# =============================================================================
# SPEND SUMMARY
# =============================================================================

class SpendSummary(BaseModel):
    """Spending of a group broken down by category, month and payer."""
    model_config = ConfigDict(frozen=True)

    group_id: str
    currency: str
    total_spend: int = 0
    expense_count: int = 0
    average_per_member: int = Field(
        default=0,
        description="Total spend divided by member count, floored; 0 for a group without members"
    )
    by_category: dict[str, int] = Field(default_factory=dict)
    by_month: dict[str, int] = Field(
        default_factory=dict,
        description="YYYY-MM -> spend; undated expenses under 'undated'"
    )
    by_payer: dict[str, int] = Field(default_factory=dict)

    @property
    def top_category(self) -> Optional[str]:
        if not self.by_category:
            return None
        return min(self.by_category.items(), key=lambda item: (-item[1], item[0]))[0]
