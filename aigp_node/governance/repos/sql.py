from __future__ import annotations

"""SQLAlchemy async repository implementations.

This module provides a Postgres/SQLite-backed persistence implementation for
the repository interfaces defined in ``aigp_node.governance.repos.interfaces``.

Usage
-----

Typical wiring (tests or application setup):

- Open a ``SqlStore`` with ``SqlStore.open``; it creates the engine, the
  session factory and the repository bundle, and optionally the schema.
- Or wire the pieces by hand with ``create_engine``, ``create_sessionmaker``,
  ``create_all`` (for tests/dev; production typically uses migrations) and
  ``build_sql_repos``.

Transaction model
-----------------

Each repository method opens an ``AsyncSession``, performs its operation, and
commits. A policy import deletes and re-inserts the tenant's rules inside one
transaction, so a failed import leaves the previous set intact.

Failure model
-------------

Every repository method runs under ``asyncio.wait_for`` with the configured
timeout. Timeouts and SQLAlchemy errors are re-raised as ``StoreError``.
"""

import asyncio
import functools
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

import pydantic
from sqlalchemy import delete, event, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ...core.errors import StoreError
from ...core.logging_config import get_logger
from ..schemas.domain import (
    AgentCallEvent,
    AuditEvent,
    DecisionSpec,
    JsonObject,
    MatchCriteria,
    ModelCallEvent,
    Policy,
    StatsFilters,
    StatsSummary,
    Trace,
    TraceStatus,
    UseCaseStats,
)
from .interfaces import (
    LedgerRepository,
    PolicyRepository,
    StatsRepository,
    TraceRepository,
)
from .models import (
    AgentCallRow,
    AuditEventRow,
    Base,
    ModelCallRow,
    PolicyRow,
    TraceRow,
)

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0

T = TypeVar("T")


def create_engine(db_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    The helper normalizes Postgres URLs to ensure the async driver is used.
    For example, it rewrites ``postgresql://`` and other variants to
    ``postgresql+asyncpg://``. Plain ``sqlite://`` URLs are rewritten to
    ``sqlite+aiosqlite://``.

    SQLite connections get ``PRAGMA foreign_keys=ON`` so ledger rows cannot
    reference a missing trace. In-memory SQLite databases share a single
    connection, otherwise every session would see an empty database.
    """
    url = re.sub(r"^postgres(?:ql)?(?:\+[a-z0-9_]+)?://", "postgresql+asyncpg://", db_url, count=1)
    url = re.sub(r"^sqlite(?:\+[a-z0-9_]+)?://", "sqlite+aiosqlite://", url, count=1)

    if not url.startswith("sqlite"):
        return create_async_engine(url, pool_pre_ping=True)

    if url in ("sqlite+aiosqlite://", "sqlite+aiosqlite:///:memory:"):
        engine = create_async_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(url)

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an ``async_sessionmaker`` with safe defaults for this project."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables for the current ORM metadata.

    This is mainly intended for tests and local development.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _status_value(status: Any) -> str:
    return str(getattr(status, "value", status))


def _store_operation(operation: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Run a repository coroutine under the repository timeout.

    Timeouts, SQLAlchemy errors and rows that no longer validate are reported
    as ``StoreError`` tagged with ``operation``.
    """

    def decorator(func_: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func_)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            try:
                return await asyncio.wait_for(func_(self, *args, **kwargs), timeout=self.timeout_seconds)
            except asyncio.TimeoutError as exc:
                logger.warning(f"Store operation '{operation}' timed out after {self.timeout_seconds}s")
                raise StoreError(operation, f"timed out after {self.timeout_seconds}s") from exc
            except SQLAlchemyError as exc:
                logger.error(f"Store operation '{operation}' failed: {exc}")
                raise StoreError(operation, str(exc)) from exc
            except pydantic.ValidationError as exc:
                logger.error(f"Store operation '{operation}' read a malformed row: {exc}")
                raise StoreError(operation, f"malformed stored row: {exc}", retryable=False) from exc

        return wrapper

    return decorator


@dataclass(frozen=True)
class SqlPolicyRepository(PolicyRepository):
    """SQL implementation of ``PolicyRepository``."""

    session_factory: async_sessionmaker[AsyncSession]
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @_store_operation("policies.list_by_tenant")
    async def list_by_tenant(self, tenant_id: str) -> List[Policy]:
        """
        List a tenant's policies in evaluation order.

        Args:
            tenant_id: The tenant identifier.

        Returns:
            Policies ordered by priority desc, position asc, id asc.
        """
        async with self.session_factory() as s:
            stmt = (
                select(PolicyRow)
                .where(PolicyRow.tenant_id == tenant_id)
                .order_by(PolicyRow.priority.desc(), PolicyRow.position.asc(), PolicyRow.id.asc())
            )
            result = await s.execute(stmt)
            rows = result.scalars().all()
            return [
                Policy(
                    id=r.id,
                    tenant_id=r.tenant_id,
                    name=r.name,
                    priority=r.priority,
                    position=r.position,
                    match=MatchCriteria.model_validate(r.match or {}),
                    decision=DecisionSpec.model_validate(r.decision),
                    created_at=_as_utc(r.created_at),
                    updated_at=_as_utc(r.updated_at),
                )
                for r in rows
            ]

    @_store_operation("policies.replace")
    async def replace(self, tenant_id: str, policies: Sequence[Policy]) -> int:
        """
        Delete every policy of ``tenant_id`` and insert ``policies``.

        Both steps share one transaction; any failure rolls back to the
        previous set.

        Args:
            tenant_id: The tenant whose policy set is replaced.
            policies: The new policy set.

        Returns:
            Number of inserted rows.
        """
        async with self.session_factory() as s:
            async with s.begin():
                await s.execute(delete(PolicyRow).where(PolicyRow.tenant_id == tenant_id))
                s.add_all(
                    [
                        PolicyRow(
                            id=p.id,
                            tenant_id=tenant_id,
                            name=p.name,
                            priority=p.priority,
                            position=p.position,
                            match=p.match.model_dump(mode="json", exclude_none=True),
                            decision=p.decision.model_dump(mode="json", exclude_none=True),
                            created_at=p.created_at,
                            updated_at=p.updated_at,
                        )
                        for p in policies
                    ]
                )
        return len(policies)


@dataclass(frozen=True)
class SqlTraceRepository(TraceRepository):
    """SQL implementation of ``TraceRepository``."""

    session_factory: async_sessionmaker[AsyncSession]
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @_store_operation("traces.create")
    async def create(self, trace: Trace) -> None:
        """
        Persist a new trace record.

        Args:
            trace: The trace domain object to insert.
        """
        async with self.session_factory() as s:
            s.add(
                TraceRow(
                    id=trace.id,
                    tenant_id=trace.tenant_id,
                    intent_name=trace.intent_name,
                    use_case_id=trace.use_case_id,
                    risk_level=trace.risk_level,
                    data_sensitivity=trace.data_sensitivity,
                    environment=trace.environment,
                    extra=trace.extra,
                    status=_status_value(trace.status),
                    created_at=trace.created_at,
                    ended_at=trace.ended_at,
                    result_summary=trace.result_summary,
                )
            )
            await s.commit()

    @_store_operation("traces.get")
    async def get(self, trace_id: str) -> Optional[Trace]:
        async with self.session_factory() as s:
            row = await s.get(TraceRow, trace_id)
            if row is None:
                return None
            return Trace(
                id=row.id,
                tenant_id=row.tenant_id,
                intent_name=row.intent_name,
                use_case_id=row.use_case_id,
                risk_level=row.risk_level,
                data_sensitivity=row.data_sensitivity,
                environment=row.environment,
                extra=row.extra,
                status=TraceStatus(row.status),
                created_at=_as_utc(row.created_at),
                ended_at=_as_utc(row.ended_at),
                result_summary=row.result_summary,
            )

    @_store_operation("traces.end")
    async def end(
        self,
        trace_id: str,
        *,
        status: TraceStatus,
        result_summary: Optional[JsonObject],
    ) -> bool:
        """
        Conditionally move a running trace to ``status``.

        The ``WHERE status = 'running'`` guard makes concurrent ``end`` calls
        race-free: exactly one of them updates the row.

        Args:
            trace_id: The ID of the trace to end.
            status: The terminal status.
            result_summary: Optional structured summary.

        Returns:
            True when a row was updated.
        """
        async with self.session_factory() as s:
            stmt = (
                update(TraceRow)
                .where(TraceRow.id == trace_id, TraceRow.status == TraceStatus.running.value)
                .values(
                    status=_status_value(status),
                    ended_at=datetime.now(timezone.utc),
                    result_summary=result_summary,
                )
            )
            result = await s.execute(stmt)
            await s.commit()
            return (result.rowcount or 0) == 1


@dataclass(frozen=True)
class SqlLedgerRepository(LedgerRepository):
    """SQL implementation of ``LedgerRepository``.

    Rows are only ever inserted. A ``trace_id`` that does not exist fails the
    foreign key constraint and surfaces as ``StoreError``.
    """

    session_factory: async_sessionmaker[AsyncSession]
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @_store_operation("ledger.append_model_call")
    async def append_model_call(self, event: ModelCallEvent) -> None:
        async with self.session_factory() as s:
            s.add(
                ModelCallRow(
                    id=event.id,
                    trace_id=event.trace_id,
                    provider=event.provider,
                    model=event.model,
                    step_name=event.step_name,
                    prompt=event.prompt,
                    response=event.response,
                    tokens_input=event.tokens_input,
                    tokens_output=event.tokens_output,
                    latency_ms=event.latency_ms,
                    created_at=event.created_at,
                )
            )
            await s.commit()

    @_store_operation("ledger.append_agent_call")
    async def append_agent_call(self, event: AgentCallEvent) -> None:
        async with self.session_factory() as s:
            s.add(
                AgentCallRow(
                    id=event.id,
                    trace_id=event.trace_id,
                    agent_id=event.agent_id,
                    domain=event.domain,
                    operation=event.operation,
                    request=event.request,
                    response=event.response,
                    status_code=event.status_code,
                    latency_ms=event.latency_ms,
                    created_at=event.created_at,
                )
            )
            await s.commit()

    @_store_operation("ledger.append_audit_event")
    async def append_audit_event(self, event: AuditEvent) -> None:
        async with self.session_factory() as s:
            s.add(
                AuditEventRow(
                    id=event.id,
                    trace_id=event.trace_id,
                    event_type=event.event_type,
                    payload=event.payload,
                    created_at=event.created_at,
                )
            )
            await s.commit()

    @_store_operation("ledger.list_model_calls")
    async def list_model_calls(self, trace_id: str) -> List[ModelCallEvent]:
        """
        List model calls of a trace in insertion order.

        Args:
            trace_id: The parent trace.

        Returns:
            Events ordered by ``created_at`` ascending.
        """
        async with self.session_factory() as s:
            stmt = (
                select(ModelCallRow)
                .where(ModelCallRow.trace_id == trace_id)
                .order_by(ModelCallRow.created_at.asc(), ModelCallRow.id.asc())
            )
            result = await s.execute(stmt)
            return [
                ModelCallEvent(
                    id=r.id,
                    trace_id=r.trace_id,
                    provider=r.provider,
                    model=r.model,
                    step_name=r.step_name,
                    prompt=r.prompt or "",
                    response=r.response or "",
                    tokens_input=r.tokens_input,
                    tokens_output=r.tokens_output,
                    latency_ms=r.latency_ms,
                    created_at=_as_utc(r.created_at),
                )
                for r in result.scalars().all()
            ]

    @_store_operation("ledger.list_agent_calls")
    async def list_agent_calls(self, trace_id: str) -> List[AgentCallEvent]:
        async with self.session_factory() as s:
            stmt = (
                select(AgentCallRow)
                .where(AgentCallRow.trace_id == trace_id)
                .order_by(AgentCallRow.created_at.asc(), AgentCallRow.id.asc())
            )
            result = await s.execute(stmt)
            return [
                AgentCallEvent(
                    id=r.id,
                    trace_id=r.trace_id,
                    agent_id=r.agent_id,
                    domain=r.domain,
                    operation=r.operation,
                    request=r.request,
                    response=r.response,
                    status_code=r.status_code,
                    latency_ms=r.latency_ms,
                    created_at=_as_utc(r.created_at),
                )
                for r in result.scalars().all()
            ]

    @_store_operation("ledger.list_audit_events")
    async def list_audit_events(self, trace_id: str) -> List[AuditEvent]:
        async with self.session_factory() as s:
            stmt = (
                select(AuditEventRow)
                .where(AuditEventRow.trace_id == trace_id)
                .order_by(AuditEventRow.created_at.asc(), AuditEventRow.id.asc())
            )
            result = await s.execute(stmt)
            return [
                AuditEvent(
                    id=r.id,
                    trace_id=r.trace_id,
                    event_type=r.event_type,
                    payload=r.payload,
                    created_at=_as_utc(r.created_at),
                )
                for r in result.scalars().all()
            ]


@dataclass(frozen=True)
class SqlStatsRepository(StatsRepository):
    """SQL implementation of ``StatsRepository``.

    Both queries left-join the ledger tables onto ``traces`` and count
    distinct ids, so a trace without calls still counts as a trace.
    """

    session_factory: async_sessionmaker[AsyncSession]
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @_store_operation("stats.aggregate")
    async def aggregate(self, filters: StatsFilters) -> Tuple[StatsSummary, List[UseCaseStats]]:
        conditions = [
            TraceRow.tenant_id == filters.tenant_id,
            TraceRow.created_at >= filters.from_time,
            TraceRow.created_at <= filters.to_time,
        ]
        if filters.environment:
            conditions.append(TraceRow.environment == filters.environment)

        traces = func.count(TraceRow.id.distinct()).label("traces")
        model_calls = func.count(ModelCallRow.id.distinct()).label("model_calls")
        agent_calls = func.count(AgentCallRow.id.distinct()).label("agent_calls")

        def _joined(*columns: Any) -> Any:
            return (
                select(*columns)
                .select_from(TraceRow)
                .outerjoin(ModelCallRow, ModelCallRow.trace_id == TraceRow.id)
                .outerjoin(AgentCallRow, AgentCallRow.trace_id == TraceRow.id)
                .where(*conditions)
            )

        async with self.session_factory() as s:
            summary_row = (await s.execute(_joined(traces, model_calls, agent_calls))).one()
            summary = StatsSummary(
                total_traces=int(summary_row.traces or 0),
                total_model_calls=int(summary_row.model_calls or 0),
                total_agent_calls=int(summary_row.agent_calls or 0),
            )

            by_use_case_stmt = (
                _joined(
                    TraceRow.use_case_id,
                    traces,
                    model_calls,
                    agent_calls,
                    func.max(TraceRow.created_at).label("last_trace_at"),
                )
                .group_by(TraceRow.use_case_id)
                .order_by(traces.desc(), TraceRow.use_case_id.asc())
            )
            rows = (await s.execute(by_use_case_stmt)).all()

        by_use_case = [
            UseCaseStats(
                use_case_id=r.use_case_id,
                traces=int(r.traces or 0),
                model_calls=int(r.model_calls or 0),
                agent_calls=int(r.agent_calls or 0),
                last_trace_at=_as_utc(_coerce_datetime(r.last_trace_at)),
            )
            for r in rows
        ]
        return summary, by_use_case


def _coerce_datetime(value: Any) -> Optional[datetime]:
    # Aggregates over SQLite datetime columns may come back as ISO strings.
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@dataclass(frozen=True)
class SqlRepoBundle:
    """Convenience bundle of all SQL repositories for dependency injection."""

    policies: SqlPolicyRepository
    traces: SqlTraceRepository
    ledger: SqlLedgerRepository
    stats: SqlStatsRepository


def build_sql_repos(
    *,
    session_factory: async_sessionmaker[AsyncSession],
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> SqlRepoBundle:
    """Build a ``SqlRepoBundle`` from a session factory."""
    return SqlRepoBundle(
        policies=SqlPolicyRepository(session_factory=session_factory, timeout_seconds=timeout_seconds),
        traces=SqlTraceRepository(session_factory=session_factory, timeout_seconds=timeout_seconds),
        ledger=SqlLedgerRepository(session_factory=session_factory, timeout_seconds=timeout_seconds),
        stats=SqlStatsRepository(session_factory=session_factory, timeout_seconds=timeout_seconds),
    )


@dataclass
class SqlStore:
    """Owns the engine and the repositories for the lifetime of the process.

    ``open`` is called once at startup and ``close`` once at shutdown; the
    repositories are only valid in between.
    """

    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    repos: SqlRepoBundle
    closed: bool = field(default=False)

    @classmethod
    async def open(
        cls,
        db_url: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        create_schema: bool = False,
    ) -> "SqlStore":
        engine = create_engine(db_url)
        if create_schema:
            logger.info("Creating governance schema")
            await create_all(engine)
        session_factory = create_sessionmaker(engine)
        repos = build_sql_repos(session_factory=session_factory, timeout_seconds=timeout_seconds)
        logger.info(f"Governance store opened (dialect={engine.dialect.name}, timeout={timeout_seconds}s)")
        return cls(engine=engine, session_factory=session_factory, repos=repos)

    async def close(self) -> None:
        if self.closed:
            return
        await self.engine.dispose()
        self.closed = True
        logger.info("Governance store closed")
