"""Read-only statistics over traces and their ledger."""

from .aggregator import DEFAULT_WINDOW, StatsAggregator

__all__ = ["DEFAULT_WINDOW", "StatsAggregator"]
