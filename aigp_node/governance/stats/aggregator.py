"""Read-only statistics over traces and their ledger."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from ...core import monitoring
from ...core.errors import ValidationError
from ...core.logging_config import get_logger
from ..repos.interfaces import StatsRepository
from ..schemas.domain import StatsFilters, StatsOverview

logger = get_logger(__name__)

DEFAULT_WINDOW = timedelta(days=7)


def _to_utc(value: datetime) -> datetime:
    # naive datetimes are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class StatsAggregator:
    """Aggregate trace, model-call and agent-call counts for a tenant."""

    def __init__(
        self,
        stats: StatsRepository,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._stats = stats
        self._clock = clock

    async def overview(
        self,
        tenant_id: str,
        environment: Optional[str] = None,
        from_time: Optional[datetime] = None,
        to_time: Optional[datetime] = None,
    ) -> StatsOverview:
        """
        Summarize activity in a time window.

        The window defaults to the last seven days ending now. Traces are
        selected by their own ``created_at``; their calls are counted whatever
        time they were logged.

        Args:
            tenant_id: The tenant to report on.
            environment: Restrict to one environment when given.
            from_time: Inclusive window start.
            to_time: Inclusive window end.

        Returns:
            The overall summary and the per-use-case breakdown.

        Raises:
            ValidationError: If ``tenant_id`` is empty or ``from_time`` is
                after ``to_time``.
            StoreError: If the store query fails.
        """
        if not tenant_id:
            raise ValidationError("tenantId is required", {"tenantId": "required"})

        end = _to_utc(to_time) if to_time is not None else self._clock()
        start = _to_utc(from_time) if from_time is not None else end - DEFAULT_WINDOW
        if start > end:
            raise ValidationError("'from' must not be after 'to'", {"from": "must not be after 'to'"})

        logger.info(
            f"Fetching overview stats: tenant={tenant_id} environment={environment} "
            f"from={start.isoformat()} to={end.isoformat()}"
        )
        monitoring.log_stats_query(tenant_id, environment, (end - start).total_seconds() / 3600)

        filters = StatsFilters(tenant_id=tenant_id, environment=environment, from_time=start, to_time=end)
        summary, by_use_case = await self._stats.aggregate(filters)

        logger.debug(f"Overview stats for tenant={tenant_id}: {summary.model_dump()} ({len(by_use_case)} use cases)")
        return StatsOverview(
            tenant_id=tenant_id,
            environment=environment,
            from_time=start,
            to_time=end,
            summary=summary,
            by_use_case=by_use_case,
        )
