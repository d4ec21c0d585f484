"""Spend query package."""

from splitledger.queries.summary import UNDATED, SpendSummarizer

__all__ = ["UNDATED", "SpendSummarizer"]
