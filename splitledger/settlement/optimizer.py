"""
Settlement Optimizer

Turns net balances into the fewest transfers that clear every balance.

Finding the true minimum is a subset-partition problem (NP-hard in
general). The optimizer therefore works in two layers:

1. GREEDY LARGEST-MAGNITUDE MATCHING (always)
   The largest creditor is paid by the largest debtor, for the smaller
   of the two magnitudes. Whoever reaches zero leaves the heap, the other
   goes back in. Each round retires at least one member and the last
   round retires two, so n unsettled members never need more than
   n - 1 transfers.

2. EXACT PARTITION SEARCH (small groups only)
   The optimum is n - k transfers, where k is the largest number of
   disjoint zero-sum subsets the members can be split into. For up to
   ``exact_search_max_members`` unsettled members a branch-and-bound
   search finds k, each subset is then settled greedily, and the result
   replaces the greedy plan only when it is strictly shorter.

All arithmetic is on integer minor units. Ties between equal magnitudes
are broken by ascending member id, so output is fully deterministic.
"""

import heapq
from collections.abc import Iterable
from typing import Optional

from splitledger.config import LedgerSettings, get_settings
from splitledger.errors import UnsettleableInput
from splitledger.models.ledger import (
    Balance,
    SettlementPlan,
    SettlementStrategy,
    Transfer,
)


def greedy_transfers(nets: dict[str, int], tolerance: int = 0) -> list[Transfer]:
    """
    Greedy largest-creditor / largest-debtor matching.

    Args:
        nets: Member id -> net balance in minor units
        tolerance: Magnitudes at or below this count as settled

    Returns:
        Transfers in the order they were matched
    """
    # Heap entries sort by larger magnitude first, then ascending member id
    creditors = [(-amount, member_id) for member_id, amount in nets.items() if amount > tolerance]
    debtors = [(amount, member_id) for member_id, amount in nets.items() if amount < -tolerance]
    heapq.heapify(creditors)
    heapq.heapify(debtors)

    transfers = []
    while creditors and debtors:
        negative_credit, creditor = heapq.heappop(creditors)
        debt, debtor = heapq.heappop(debtors)
        credit, owing = -negative_credit, -debt

        amount = min(credit, owing)
        transfers.append(Transfer(from_member_id=debtor, to_member_id=creditor, amount=amount))

        credit -= amount
        owing -= amount
        if credit > tolerance:
            heapq.heappush(creditors, (-credit, creditor))
        if owing > tolerance:
            heapq.heappush(debtors, (-owing, debtor))

    return transfers


def zero_sum_partition(nets: dict[str, int]) -> list[list[str]]:
    """
    Split members into the largest number of disjoint zero-sum subsets.

    Requires the balances to sum to exactly zero. Members are indexed in
    ascending id order; among equally good partitions the first one
    found in that order wins, so the result is deterministic.

    Returns:
        Subsets of member ids, each in ascending id order
    """
    member_ids = sorted(nets)
    values = [nets[member_id] for member_id in member_ids]
    full = (1 << len(values)) - 1

    # Subset sums for every mask, built from the mask minus its lowest bit
    sums = [0] * (full + 1)
    for mask in range(1, full + 1):
        low = mask & -mask
        sums[mask] = sums[mask ^ low] + values[low.bit_length() - 1]

    memo: dict[int, tuple[int, int]] = {0: (0, 0)}

    def best(mask: int) -> tuple[int, int]:
        """(max zero-sum groups in mask, first group of that partition)."""
        if mask in memo:
            return memo[mask]

        # The subset holding the lowest member; taking all of mask is
        # always possible because mask itself sums to zero.
        low = mask & -mask
        rest = mask ^ low
        bound = bin(mask).count("1") // 2
        result = (1, mask)

        sub = rest
        while sub and result[0] < bound:
            subset = sub | low
            if subset != mask and sums[subset] == 0:
                count = 1 + best(mask ^ subset)[0]
                if count > result[0]:
                    result = (count, subset)
            sub = (sub - 1) & rest

        memo[mask] = result
        return result

    groups = []
    mask = full
    while mask:
        _, subset = best(mask)
        groups.append([member_ids[i] for i in range(len(member_ids)) if subset >> i & 1])
        mask ^= subset
    return groups


def exact_transfers(nets: dict[str, int]) -> list[Transfer]:
    """Settle each zero-sum subset of the best partition on its own."""
    transfers = []
    for group in zero_sum_partition(nets):
        transfers.extend(greedy_transfers({member_id: nets[member_id] for member_id in group}))
    return transfers


def tolerated_residuals(nets: dict[str, int], tolerance: int) -> dict[str, int]:
    """
    The balance each member is left holding once a plan has run.

    Members within ``tolerance`` of zero keep their balance and everyone
    else is cleared. When the small balances do not cancel out on their
    own, the difference is absorbed in three passes, each in ascending id
    order, and no member ever keeps more than ``tolerance``:

    1. Open members on the same side as the difference keep part of it
    2. Small balances on the other side are cleared
    3. Anyone with room left takes the rest, other side first

    The caller guarantees ``abs(sum(nets)) <= tolerance * len(nets)``.
    The returned values sum to the same total as ``nets``.
    """
    keep = {m: (amount if abs(amount) <= tolerance else 0) for m, amount in nets.items()}
    leftover = sum(nets.values()) - sum(keep.values())
    if not leftover:
        return keep

    sign = 1 if leftover > 0 else -1
    member_ids = sorted(nets)
    passes = (
        [(m, tolerance) for m in member_ids if nets[m] * sign > tolerance],
        [(m, 0) for m in member_ids if 0 < -nets[m] * sign <= tolerance],
        [(m, tolerance) for m in sorted(member_ids, key=lambda m: nets[m] * sign > 0)],
    )
    for candidates in passes:
        for member_id, limit in candidates:
            room = limit - sign * keep[member_id]
            if room <= 0:
                continue
            taken = min(room, sign * leftover)
            keep[member_id] += sign * taken
            leftover -= sign * taken
            if not leftover:
                return keep
    return keep


def apply_transfers(balances: Iterable[Balance], plan: SettlementPlan) -> dict[str, int]:
    """
    Execute a plan against balances.

    Returns:
        Member id -> residual net balance after every transfer
    """
    residual = {balance.member_id: balance.net_balance for balance in balances}
    for transfer in plan.transfers:
        residual[transfer.from_member_id] = residual.get(transfer.from_member_id, 0) + transfer.amount
        residual[transfer.to_member_id] = residual.get(transfer.to_member_id, 0) - transfer.amount
    return residual


class SettlementOptimizer:
    """
    Produces a minimal settlement plan from net balances.

    Holds only read-only settings; every call allocates its own heaps.
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        """
        Initialize optimizer.

        Args:
            settings: Ledger settings. Defaults to the cached global settings.
        """
        self._settings = settings or get_settings().ledger

    def _net_balances(self, balances: Iterable[Balance]) -> dict[str, int]:
        """
        Collect net balances and check the zero-sum invariant.

        Raises:
            UnsettleableInput: On duplicate members or a non-zero total
        """
        tolerance = self._settings.balance_tolerance_units
        nets: dict[str, int] = {}
        for balance in balances:
            if balance.member_id in nets:
                raise UnsettleableInput(
                    total=sum(nets.values()) + balance.net_balance,
                    tolerance=tolerance,
                    message=f"Member {balance.member_id} appears in the balances more than once",
                )
            nets[balance.member_id] = balance.net_balance

        total = sum(nets.values())
        allowed = tolerance * len(nets)
        if abs(total) > allowed:
            raise UnsettleableInput(total=total, tolerance=allowed)
        return nets

    def _should_search(self, open_nets: dict[str, int]) -> bool:
        return (
            self._settings.exact_search_enabled
            and 0 < len(open_nets) <= self._settings.exact_search_max_members
        )

    def optimize(
        self,
        balances: Iterable[Balance],
        currency: Optional[str] = None,
    ) -> SettlementPlan:
        """
        Compute the settlement plan for a set of balances.

        Args:
            balances: One Balance per member
            currency: Display label carried onto the plan

        Returns:
            SettlementPlan leaving every balance within the tolerance of zero

        Raises:
            UnsettleableInput: If balances do not sum to zero
        """
        nets = self._net_balances(balances)
        residuals = tolerated_residuals(nets, self._settings.balance_tolerance_units)

        # What is left to move sums to exactly zero
        open_nets = {
            m: amount - residuals[m] for m, amount in nets.items() if amount != residuals[m]
        }

        transfers = greedy_transfers(open_nets)
        strategy = SettlementStrategy.GREEDY

        if self._should_search(open_nets):
            exact = exact_transfers(open_nets)
            if len(exact) < len(transfers):
                transfers = exact
                strategy = SettlementStrategy.EXACT

        return SettlementPlan(
            currency=(currency or self._settings.default_currency).upper(),
            transfers=tuple(transfers),
            strategy=strategy,
        )
