"""
Statistics Endpoints.

This module exposes the read-only overview of trace, model-call and
agent-call counts per tenant.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query

from aigp_node.governance.schemas import StatsOverview
from aigp_node.server.services.deps import GovernanceDep

router = APIRouter()


@router.get(
    "/overview",
    response_model=StatsOverview,
    summary="Stats Overview",
    description="Aggregate counts for a tenant over a time window (default: the last 7 days).",
    response_description="Summary counts and a per-use-case breakdown.",
)
async def overview(
    governance: GovernanceDep,
    tenant_id: str = Query(..., alias="tenantId", min_length=1),
    environment: Optional[str] = Query(default=None),
    from_time: Optional[datetime] = Query(default=None, alias="from"),
    to_time: Optional[datetime] = Query(default=None, alias="to"),
) -> StatsOverview:
    """
    Get overview statistics.

    Traces are selected by their creation time within ``[from, to]``; their
    model and agent calls are counted regardless of when they were logged.
    """
    return await governance.stats.overview(tenant_id, environment or None, from_time, to_time)
