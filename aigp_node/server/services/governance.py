from __future__ import annotations

"""Service layer wiring the governance subsystems for the HTTP API.

``GovernanceService`` is built once per application from the repository
bundle of an opened store and stored on ``app.state``. Endpoints receive it
through the ``GovernanceDep`` dependency.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from fastapi import Request

from aigp_node.core.errors import InternalError
from aigp_node.governance.policy import PolicyEngine
from aigp_node.governance.repos.interfaces import (
    LedgerRepository,
    PolicyRepository,
    StatsRepository,
    TraceRepository,
)
from aigp_node.governance.stats import StatsAggregator
from aigp_node.governance.traces import TraceLifecycleManager


@dataclass(frozen=True)
class GovernanceService:
    """Facade over the policy engine, the trace lifecycle manager and stats."""

    policies: PolicyEngine
    traces: TraceLifecycleManager
    stats: StatsAggregator

    @classmethod
    def from_repos(
        cls,
        *,
        policies: PolicyRepository,
        traces: TraceRepository,
        ledger: LedgerRepository,
        stats: StatsRepository,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> "GovernanceService":
        """Build the service from any set of repository implementations."""
        return cls(
            policies=PolicyEngine(policies),
            traces=TraceLifecycleManager(traces, ledger),
            stats=StatsAggregator(stats, clock=clock),
        )


def get_governance(request: Request) -> GovernanceService:
    """Return the ``GovernanceService`` installed by the application lifespan."""
    service = getattr(request.app.state, "governance", None)
    if service is None:
        raise InternalError("Governance service is not initialized")
    return service
