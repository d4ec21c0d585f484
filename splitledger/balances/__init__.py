"""Balance calculation package."""

from splitledger.balances.calculator import BalanceCalculator, net_balances

__all__ = ["BalanceCalculator", "net_balances"]
