"""Repository scenarios shared by the SQLite and PostgreSQL end-to-end suites."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from aigp_node.core.errors import StoreError
from aigp_node.governance.repos.sql import SqlRepoBundle
from aigp_node.governance.schemas import (
    AgentCallEvent,
    AuditEvent,
    DecisionSpec,
    MatchCriteria,
    ModelCallEvent,
    Policy,
    PolicyEffect,
    StatsFilters,
    Trace,
    TraceStatus,
)


def make_trace(**overrides) -> Trace:
    data = dict(
        id=str(uuid4()),
        tenant_id="acme",
        intent_name="rotate-credentials",
        use_case_id="db-maintenance",
        risk_level="high",
        data_sensitivity="confidential",
        environment="prd",
    )
    data.update(overrides)
    return Trace(**data)


def make_policy(name: str, priority: int, position: int = 0, **match) -> Policy:
    return Policy(
        tenant_id="acme",
        name=name,
        priority=priority,
        position=position,
        match=MatchCriteria(**match),
        decision=DecisionSpec(effect=PolicyEffect.deny, reason=name),
    )


def make_model_call(trace_id: str, **overrides) -> ModelCallEvent:
    data = dict(
        trace_id=trace_id,
        provider="openai",
        model="gpt-4o",
        step_name="plan",
        prompt="prompt",
        response="response",
        tokens_input=3,
        tokens_output=4,
        latency_ms=10,
    )
    data.update(overrides)
    return ModelCallEvent(**data)


def make_agent_call(trace_id: str) -> AgentCallEvent:
    return AgentCallEvent(
        trace_id=trace_id,
        agent_id="agent-dba",
        domain="postgres",
        operation="vacuum",
        request={"table": "orders", "nested": {"a": [1, 2.5, None, True]}},
        response={"ok": True},
        status_code=200,
        latency_ms=7,
    )


class PolicyRepositoryScenarios:
    async def test_empty_tenant_lists_nothing(self, repos: SqlRepoBundle) -> None:
        assert await repos.policies.list_by_tenant("nobody") == []

    async def test_policies_are_listed_in_evaluation_order(self, repos: SqlRepoBundle) -> None:
        policies = [
            make_policy("low", 1, position=0),
            make_policy("tie-second", 5, position=2),
            make_policy("high", 9, position=3),
            make_policy("tie-first", 5, position=1),
        ]
        await repos.policies.replace("acme", policies)

        listed = await repos.policies.list_by_tenant("acme")

        assert [p.name for p in listed] == ["high", "tie-first", "tie-second", "low"]

    async def test_round_trip_preserves_criteria_and_decision(self, repos: SqlRepoBundle) -> None:
        policy = make_policy("dba", 10, environment="prd", agent_id="agent-dba")
        await repos.policies.replace("acme", [policy])

        (stored,) = await repos.policies.list_by_tenant("acme")

        assert stored.id == policy.id
        assert stored.match == MatchCriteria(environment="prd", agent_id="agent-dba")
        assert stored.decision == policy.decision
        assert stored.created_at.tzinfo is not None

    async def test_replace_discards_previous_set_per_tenant(self, repos: SqlRepoBundle) -> None:
        await repos.policies.replace("acme", [make_policy("old", 1)])
        other = make_policy("other-tenant", 1).model_copy(update={"tenant_id": "globex"})
        await repos.policies.replace("globex", [other])

        await repos.policies.replace("acme", [make_policy("new-a", 1), make_policy("new-b", 2)])

        assert sorted(p.name for p in await repos.policies.list_by_tenant("acme")) == ["new-a", "new-b"]
        assert [p.name for p in await repos.policies.list_by_tenant("globex")] == ["other-tenant"]

    async def test_failed_replace_keeps_previous_set(self, repos: SqlRepoBundle) -> None:
        await repos.policies.replace("acme", [make_policy("kept", 1)])
        duplicate = make_policy("dup", 1)

        with pytest.raises(StoreError):
            await repos.policies.replace("acme", [duplicate, duplicate])

        assert [p.name for p in await repos.policies.list_by_tenant("acme")] == ["kept"]


class TraceRepositoryScenarios:
    async def test_create_and_get(self, repos: SqlRepoBundle) -> None:
        trace = make_trace(extra={"ticket": "OPS-1"})
        await repos.traces.create(trace)

        stored = await repos.traces.get(trace.id)

        assert stored is not None
        assert stored.status is TraceStatus.running
        assert stored.ended_at is None
        assert stored.extra == {"ticket": "OPS-1"}
        assert abs((stored.created_at - trace.created_at).total_seconds()) < 1

    async def test_get_missing_returns_none(self, repos: SqlRepoBundle) -> None:
        assert await repos.traces.get(str(uuid4())) is None

    async def test_end_is_conditional_on_running(self, repos: SqlRepoBundle) -> None:
        trace = make_trace()
        await repos.traces.create(trace)

        first = await repos.traces.end(trace.id, status=TraceStatus.success, result_summary={"n": 1})
        second = await repos.traces.end(trace.id, status=TraceStatus.error, result_summary={"n": 2})
        missing = await repos.traces.end(str(uuid4()), status=TraceStatus.success, result_summary=None)

        stored = await repos.traces.get(trace.id)
        assert (first, second, missing) == (True, False, False)
        assert stored.status is TraceStatus.success
        assert stored.ended_at is not None
        assert stored.result_summary == {"n": 1}


class LedgerRepositoryScenarios:
    async def test_events_round_trip(self, repos: SqlRepoBundle) -> None:
        trace = make_trace()
        await repos.traces.create(trace)
        model_call = make_model_call(trace.id, prompt="héllo ✓ \"quoted\"", tokens_input=None)
        agent_call = make_agent_call(trace.id)
        audit = AuditEvent(trace_id=trace.id, event_type="approval.granted", payload={"by": "alice"})

        await repos.ledger.append_model_call(model_call)
        await repos.ledger.append_agent_call(agent_call)
        await repos.ledger.append_audit_event(audit)

        (stored_model,) = await repos.ledger.list_model_calls(trace.id)
        (stored_agent,) = await repos.ledger.list_agent_calls(trace.id)
        (stored_audit,) = await repos.ledger.list_audit_events(trace.id)
        assert stored_model.model_dump(exclude={"created_at"}) == model_call.model_dump(exclude={"created_at"})
        assert stored_agent.model_dump(exclude={"created_at"}) == agent_call.model_dump(exclude={"created_at"})
        assert stored_audit.model_dump(exclude={"created_at"}) == audit.model_dump(exclude={"created_at"})

    async def test_append_to_missing_trace_is_a_store_error(self, repos: SqlRepoBundle) -> None:
        with pytest.raises(StoreError) as exc_info:
            await repos.ledger.append_model_call(make_model_call(str(uuid4())))

        assert exc_info.value.operation == "ledger.append_model_call"
        assert exc_info.value.retryable is True

    async def test_events_are_listed_in_creation_order(self, repos: SqlRepoBundle) -> None:
        trace = make_trace()
        await repos.traces.create(trace)
        base = datetime.now(timezone.utc)
        for i in (2, 0, 1):
            await repos.ledger.append_model_call(
                make_model_call(trace.id, step_name=f"s{i}", created_at=base + timedelta(seconds=i))
            )

        listed = await repos.ledger.list_model_calls(trace.id)

        assert [e.step_name for e in listed] == ["s0", "s1", "s2"]


class StatsRepositoryScenarios:
    async def test_counts_and_grouping(self, repos: SqlRepoBundle) -> None:
        now = datetime.now(timezone.utc)
        t1 = make_trace(use_case_id="uc-a", created_at=now - timedelta(hours=3))
        t2 = make_trace(use_case_id="uc-a", created_at=now - timedelta(hours=1))
        t3 = make_trace(use_case_id="uc-b", created_at=now - timedelta(hours=2))
        dev = make_trace(use_case_id="uc-a", environment="dev", created_at=now - timedelta(hours=1))
        old = make_trace(use_case_id="uc-a", created_at=now - timedelta(days=30))
        other = make_trace(tenant_id="globex", created_at=now - timedelta(hours=1))
        for t in (t1, t2, t3, dev, old, other):
            await repos.traces.create(t)
        for _ in range(2):
            await repos.ledger.append_model_call(make_model_call(t1.id))
        for _ in range(3):
            await repos.ledger.append_agent_call(make_agent_call(t1.id))
        await repos.ledger.append_model_call(make_model_call(t3.id))
        await repos.ledger.append_model_call(make_model_call(old.id))

        filters = StatsFilters(
            tenant_id="acme", environment="prd", from_time=now - timedelta(days=7), to_time=now
        )
        summary, by_use_case = await repos.stats.aggregate(filters)

        assert summary.total_traces == 3
        assert summary.total_model_calls == 3
        assert summary.total_agent_calls == 3
        assert [r.use_case_id for r in by_use_case] == ["uc-a", "uc-b"]
        uc_a, uc_b = by_use_case
        assert (uc_a.traces, uc_a.model_calls, uc_a.agent_calls) == (2, 2, 3)
        assert (uc_b.traces, uc_b.model_calls, uc_b.agent_calls) == (1, 1, 0)
        assert abs((uc_a.last_trace_at - t2.created_at).total_seconds()) < 1
        assert sum(r.traces for r in by_use_case) == summary.total_traces

    async def test_without_environment_all_environments_count(self, repos: SqlRepoBundle) -> None:
        now = datetime.now(timezone.utc)
        await repos.traces.create(make_trace(environment="prd", created_at=now - timedelta(minutes=5)))
        await repos.traces.create(make_trace(environment="dev", created_at=now - timedelta(minutes=5)))

        summary, _ = await repos.stats.aggregate(
            StatsFilters(tenant_id="acme", from_time=now - timedelta(hours=1), to_time=now)
        )

        assert summary.total_traces == 2

    async def test_ties_are_ordered_by_use_case(self, repos: SqlRepoBundle) -> None:
        now = datetime.now(timezone.utc)
        for uc in ("uc-z", "uc-m", "uc-a"):
            await repos.traces.create(make_trace(use_case_id=uc, created_at=now - timedelta(minutes=1)))

        _, by_use_case = await repos.stats.aggregate(
            StatsFilters(tenant_id="acme", from_time=now - timedelta(hours=1), to_time=now)
        )

        assert [r.use_case_id for r in by_use_case] == ["uc-a", "uc-m", "uc-z"]

    async def test_empty_window(self, repos: SqlRepoBundle) -> None:
        now = datetime.now(timezone.utc)

        summary, by_use_case = await repos.stats.aggregate(
            StatsFilters(tenant_id="acme", from_time=now - timedelta(hours=1), to_time=now)
        )

        assert summary.total_traces == 0
        assert by_use_case == []


class ConcurrencyScenarios:
    async def test_concurrent_ends_update_once(self, repos: SqlRepoBundle) -> None:
        trace = make_trace()
        await repos.traces.create(trace)

        results = await asyncio.gather(
            *(repos.traces.end(trace.id, status=TraceStatus.success, result_summary=None) for _ in range(5))
        )

        assert results.count(True) == 1
