"""Unit tests for the stats aggregator."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from aigp_node.core.errors import ValidationError
from aigp_node.governance.schemas import ModelCallLog, Trace, TraceMeta
from aigp_node.governance.stats import DEFAULT_WINDOW, StatsAggregator
from aigp_node.governance.traces import TraceLifecycleManager
from test.fakes import InMemoryRepos

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def repos() -> InMemoryRepos:
    return InMemoryRepos()


@pytest.fixture
def aggregator(repos: InMemoryRepos) -> StatsAggregator:
    return StatsAggregator(repos.stats, clock=lambda: NOW)


def _meta(use_case_id: str = "uc-a", environment: str = "prd", tenant_id: str = "acme") -> TraceMeta:
    return TraceMeta(
        tenant_id=tenant_id,
        intent_name="intent",
        use_case_id=use_case_id,
        risk_level="low",
        data_sensitivity="public",
        environment=environment,
    )


def _model_call() -> ModelCallLog:
    return ModelCallLog(provider="openai", model="gpt-4o", step_name="s", prompt="p", response="r", latency_ms=1)


async def _insert_trace(repos: InMemoryRepos, created_at: datetime, **meta) -> str:
    trace = Trace(**_meta(**meta).model_dump(), created_at=created_at)
    await repos.traces.create(trace)
    return trace.id


class TestWindow:
    async def test_default_window_is_last_seven_days(self, aggregator: StatsAggregator, repos: InMemoryRepos) -> None:
        overview = await aggregator.overview("acme")

        assert overview.to_time == NOW
        assert overview.from_time == NOW - DEFAULT_WINDOW
        assert repos.stats.last_filters is not None
        assert repos.stats.last_filters.from_time == NOW - timedelta(days=7)

    async def test_naive_datetimes_are_taken_as_utc(self, aggregator: StatsAggregator) -> None:
        overview = await aggregator.overview("acme", from_time=datetime(2026, 3, 1), to_time=datetime(2026, 3, 2))

        assert overview.from_time == datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert overview.to_time == datetime(2026, 3, 2, tzinfo=timezone.utc)

    async def test_only_from_given_uses_now_as_end(self, aggregator: StatsAggregator) -> None:
        start = NOW - timedelta(days=1)
        overview = await aggregator.overview("acme", from_time=start)

        assert overview.from_time == start
        assert overview.to_time == NOW

    async def test_from_after_to_is_rejected(self, aggregator: StatsAggregator) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await aggregator.overview("acme", from_time=NOW, to_time=NOW - timedelta(hours=1))

        assert "from" in exc_info.value.fields

    async def test_missing_tenant_is_rejected(self, aggregator: StatsAggregator) -> None:
        with pytest.raises(ValidationError):
            await aggregator.overview("")


class TestCounts:
    async def test_two_model_calls_are_counted(self, aggregator: StatsAggregator, repos: InMemoryRepos) -> None:
        lifecycle = TraceLifecycleManager(repos.traces, repos.ledger)
        aggregator = StatsAggregator(repos.stats)
        trace_id = await lifecycle.start(_meta())
        await lifecycle.log_model_call(trace_id, _model_call())
        await lifecycle.log_model_call(trace_id, _model_call())

        overview = await aggregator.overview("acme")

        assert overview.summary.total_traces == 1
        assert overview.summary.total_model_calls == 2
        assert overview.summary.total_agent_calls == 0

    async def test_by_use_case_is_ordered_and_sums_to_summary(
        self, aggregator: StatsAggregator, repos: InMemoryRepos
    ) -> None:
        at = NOW - timedelta(hours=1)
        for use_case in ["uc-b", "uc-a", "uc-c", "uc-c"]:
            await _insert_trace(repos, at, use_case_id=use_case)

        overview = await aggregator.overview("acme")

        assert [row.use_case_id for row in overview.by_use_case] == ["uc-c", "uc-a", "uc-b"]
        assert sum(r.traces for r in overview.by_use_case) == overview.summary.total_traces == 4
        assert overview.by_use_case[0].last_trace_at == at

    async def test_environment_and_window_filter(self, aggregator: StatsAggregator, repos: InMemoryRepos) -> None:
        await _insert_trace(repos, NOW - timedelta(hours=1), environment="prd")
        await _insert_trace(repos, NOW - timedelta(hours=1), environment="dev")
        await _insert_trace(repos, NOW - timedelta(days=30), environment="prd")
        await _insert_trace(repos, NOW - timedelta(hours=1), tenant_id="globex")

        overview = await aggregator.overview("acme", environment="prd")

        assert overview.environment == "prd"
        assert overview.summary.total_traces == 1

    async def test_window_bounds_are_inclusive(self, aggregator: StatsAggregator, repos: InMemoryRepos) -> None:
        start = NOW - timedelta(days=1)
        await _insert_trace(repos, start)
        await _insert_trace(repos, NOW)

        overview = await aggregator.overview("acme", from_time=start, to_time=NOW)

        assert overview.summary.total_traces == 2

    async def test_overview_serializes_with_wire_names(self, aggregator: StatsAggregator) -> None:
        overview = await aggregator.overview("acme")

        body = overview.model_dump(by_alias=True, mode="json")
        assert {"tenantId", "environment", "from", "to", "summary", "byUseCase"} <= set(body)
        assert set(body["summary"]) == {"totalTraces", "totalModelCalls", "totalAgentCalls"}
