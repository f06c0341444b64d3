"""Governance core: schemas, persistence, policy decisioning, traces and stats.

Subpackages
-----------

- ``schemas``: pydantic models shared by every layer.
- ``repos``: repository Protocols and their async SQLAlchemy implementation.
- ``policy``: the criteria matcher and the fail-open ``PolicyEngine``.
- ``traces``: the ``TraceLifecycleManager`` and the append-only ledger.
- ``stats``: the read-only ``StatsAggregator``.
"""

from .policy import PolicyEngine
from .stats import StatsAggregator
from .traces import TraceLifecycleManager

__all__ = ["PolicyEngine", "StatsAggregator", "TraceLifecycleManager"]
