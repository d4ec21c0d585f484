"""Split validation package."""

from splitledger.validation.validator import (
    SplitValidator,
    distribute_remainder,
    split_inputs_for,
)

__all__ = ["SplitValidator", "distribute_remainder", "split_inputs_for"]
