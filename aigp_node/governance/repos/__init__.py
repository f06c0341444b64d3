"""Repository interfaces and SQL implementations for governance persistence.

The repository layer is the persistence boundary for the governance node.

Responsibilities
----------------

- Provide a small set of async repository interfaces (Protocols) that the
  policy engine, the trace lifecycle manager and the stats aggregator depend
  on.
- Persist durable, auditable records:

  - tenant policy sets, replaced wholesale on import,
  - trace metadata and lifecycle status,
  - the append-only ledger of model calls, agent calls and audit events.

Design notes
------------

The subsystems are written against interfaces so they can be used with:

- a SQL database (async SQLAlchemy implementation provided in ``repos.sql``),
- in-memory fakes for unit tests.

The SQL implementation commits at repository-method boundaries and bounds
every call with a timeout.
"""

from .interfaces import (
    LedgerRepository,
    PolicyRepository,
    StatsRepository,
    TraceRepository,
)

__all__ = [
    "PolicyRepository",
    "TraceRepository",
    "LedgerRepository",
    "StatsRepository",
]
