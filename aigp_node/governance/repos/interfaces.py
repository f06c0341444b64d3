from __future__ import annotations

"""Repository interface contracts.

The policy engine, the trace lifecycle manager and the stats aggregator
depend on these Protocols instead of concrete persistence implementations.

Contract guidelines
-------------------

- All methods are async.
- Implementations must not leak SQLAlchemy sessions/transactions to callers.
- Infrastructure failures (connectivity, constraint violations, timeouts)
  surface as ``aigp_node.core.errors.StoreError``.
- Ledger repositories are append-only: there is no update or delete path.
- Replacing a tenant's policy set is atomic: readers see either the old set
  or the new one.
"""

from typing import List, Optional, Protocol, Sequence, Tuple

from ..schemas.domain import (
    AgentCallEvent,
    AuditEvent,
    JsonObject,
    ModelCallEvent,
    Policy,
    StatsFilters,
    StatsSummary,
    Trace,
    TraceStatus,
    UseCaseStats,
)


class PolicyRepository(Protocol):
    """Persist and query tenant policy sets."""

    async def list_by_tenant(self, tenant_id: str) -> List[Policy]:
        """
        List a tenant's policies in evaluation order.

        Order is ``priority`` descending, then ``position`` ascending (import
        order), then ``id`` ascending.

        Args:
            tenant_id: The tenant identifier.

        Returns:
            The ordered policies; empty when the tenant has none.
        """
        ...

    async def replace(self, tenant_id: str, policies: Sequence[Policy]) -> int:
        """
        Replace a tenant's whole policy set in a single transaction.

        Args:
            tenant_id: The tenant whose policies are replaced.
            policies: The new policy set.

        Returns:
            The number of inserted policies.
        """
        ...


class TraceRepository(Protocol):
    """Persist and query the lifecycle of a trace."""

    async def create(self, trace: Trace) -> None:
        """
        Create a new trace record.

        Args:
            trace: The initial trace state to persist.
        """
        ...

    async def get(self, trace_id: str) -> Optional[Trace]:
        """
        Retrieve a trace by its ID.

        Args:
            trace_id: The trace identifier.

        Returns:
            The Trace object if found, else None.
        """
        ...

    async def end(
        self,
        trace_id: str,
        *,
        status: TraceStatus,
        result_summary: Optional[JsonObject],
    ) -> bool:
        """
        Move a running trace to a terminal status.

        The update only applies while the trace is ``running``.

        Args:
            trace_id: The ID of the trace to end.
            status: The terminal status.
            result_summary: Optional structured summary of the outcome.

        Returns:
            True if the trace transitioned, False if it does not exist or had
            already ended.
        """
        ...


class LedgerRepository(Protocol):
    """Append-only store for trace ledger events."""

    async def append_model_call(self, event: ModelCallEvent) -> None: ...

    async def append_agent_call(self, event: AgentCallEvent) -> None: ...

    async def append_audit_event(self, event: AuditEvent) -> None: ...

    async def list_model_calls(self, trace_id: str) -> List[ModelCallEvent]: ...

    async def list_agent_calls(self, trace_id: str) -> List[AgentCallEvent]: ...

    async def list_audit_events(self, trace_id: str) -> List[AuditEvent]: ...


class StatsRepository(Protocol):
    """Read-only aggregate queries over traces and their ledger."""

    async def aggregate(self, filters: StatsFilters) -> Tuple[StatsSummary, List[UseCaseStats]]:
        """
        Count traces, model calls and agent calls matching the filters.

        Args:
            filters: Tenant, optional environment and the inclusive time window
                applied to the parent trace's ``created_at``.

        Returns:
            The overall summary and the per-use-case breakdown ordered by trace
            count descending, then use case ascending.
        """
        ...
