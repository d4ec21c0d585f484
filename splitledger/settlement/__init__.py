"""Settlement optimization package."""

from splitledger.settlement.optimizer import (
    SettlementOptimizer,
    apply_transfers,
    exact_transfers,
    greedy_transfers,
    tolerated_residuals,
    zero_sum_partition,
)

__all__ = [
    "SettlementOptimizer",
    "apply_transfers",
    "exact_transfers",
    "greedy_transfers",
    "tolerated_residuals",
    "zero_sum_partition",
]
