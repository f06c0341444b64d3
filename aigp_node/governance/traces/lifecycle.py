from __future__ import annotations

"""Trace lifecycle and the append-only event ledger.

A trace moves ``running -> success | error | cancelled`` exactly once. While
(and after) it runs, callers append model calls, agent calls and audit events.
Appends are never checked against the trace's existence or status up front;
the store's foreign key rejects unknown traces, and events arriving after
``end`` are still recorded.
"""

from typing import Optional

from ...core import monitoring
from ...core.errors import NotFoundError, TraceStateError, ValidationError
from ...core.logging_config import get_logger
from ..repos.interfaces import LedgerRepository, TraceRepository
from ..schemas.domain import (
    MAX_TEXT_LENGTH,
    AgentCallEvent,
    AgentCallLog,
    AuditEvent,
    AuditEventLog,
    JsonObject,
    ModelCallEvent,
    ModelCallLog,
    Trace,
    TraceDetail,
    TraceMeta,
    TraceStatus,
)

logger = get_logger(__name__)


def _truncate(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    return text[:MAX_TEXT_LENGTH]


class TraceLifecycleManager:
    """Start, record and end traces against the trace and ledger repositories."""

    def __init__(self, traces: TraceRepository, ledger: LedgerRepository) -> None:
        self._traces = traces
        self._ledger = ledger

    async def start(self, meta: TraceMeta) -> str:
        """
        Open a new running trace.

        Args:
            meta: Descriptors of the governed action.

        Returns:
            The new trace id.

        Raises:
            StoreError: If the trace could not be persisted.
        """
        trace = Trace(
            tenant_id=meta.tenant_id,
            intent_name=meta.intent_name,
            use_case_id=meta.use_case_id,
            risk_level=meta.risk_level,
            data_sensitivity=meta.data_sensitivity,
            environment=meta.environment,
            extra=meta.extra,
        )
        await self._traces.create(trace)
        logger.info(
            f"Trace started: id={trace.id} tenant={trace.tenant_id} "
            f"use_case={trace.use_case_id} environment={trace.environment}"
        )
        monitoring.log_trace_started(trace.id, trace.tenant_id, trace.use_case_id, trace.environment)
        return trace.id

    async def log_model_call(self, trace_id: str, log: ModelCallLog) -> str:
        """
        Append a model call to a trace's ledger.

        ``prompt`` and ``response`` are cut to ``MAX_TEXT_LENGTH`` characters.

        Returns:
            The generated event id.
        """
        event = ModelCallEvent(
            trace_id=trace_id,
            provider=log.provider,
            model=log.model,
            step_name=log.step_name,
            prompt=_truncate(log.prompt),
            response=_truncate(log.response),
            tokens_input=log.tokens_input,
            tokens_output=log.tokens_output,
            latency_ms=log.latency_ms,
        )
        await self._ledger.append_model_call(event)
        logger.debug(f"Model call logged: trace={trace_id} provider={log.provider} model={log.model}")
        return event.id

    async def log_agent_call(self, trace_id: str, log: AgentCallLog) -> str:
        """Append an agent call to a trace's ledger and return its event id."""
        event = AgentCallEvent(trace_id=trace_id, **log.model_dump())
        await self._ledger.append_agent_call(event)
        logger.debug(
            f"Agent call logged: trace={trace_id} agent={log.agent_id} "
            f"operation={log.domain}.{log.operation} status={log.status_code}"
        )
        return event.id

    async def log_audit_event(self, trace_id: str, log: AuditEventLog) -> str:
        """Append an audit event to a trace's ledger and return its event id."""
        event = AuditEvent(trace_id=trace_id, event_type=log.event_type, payload=log.payload)
        await self._ledger.append_audit_event(event)
        logger.debug(f"Audit event logged: trace={trace_id} type={log.event_type}")
        return event.id

    async def end(
        self,
        trace_id: str,
        status: TraceStatus,
        result_summary: Optional[JsonObject] = None,
    ) -> None:
        """
        Move a running trace to a terminal status.

        Args:
            trace_id: The trace to end.
            status: ``success``, ``error`` or ``cancelled``.
            result_summary: Optional structured outcome.

        Raises:
            ValidationError: If ``status`` is not terminal.
            NotFoundError: If the trace does not exist.
            TraceStateError: If the trace has already ended.
        """
        try:
            status = TraceStatus(status)
        except ValueError as e:
            raise ValidationError(f"unknown trace status: {status!r}", {"status": "unknown status"}) from e
        if not status.is_terminal:
            raise ValidationError(
                "status must be one of success, error, cancelled",
                {"status": "must be a terminal status"},
            )

        updated = await self._traces.end(trace_id, status=status, result_summary=result_summary)
        if not updated:
            existing = await self._traces.get(trace_id)
            if existing is None:
                raise NotFoundError("Trace", trace_id)
            logger.warning(
                f"Rejected end of trace {trace_id} as '{status.value}': already '{existing.status.value}'"
            )
            raise TraceStateError(trace_id, existing.status.value)

        logger.info(f"Trace ended: id={trace_id} status={status.value}")
        monitoring.log_trace_ended(trace_id, status.value)

    async def get(self, trace_id: str) -> TraceDetail:
        """
        Reconstruct a trace with its full ledger.

        Raises:
            NotFoundError: If the trace does not exist.
        """
        trace = await self._traces.get(trace_id)
        if trace is None:
            raise NotFoundError("Trace", trace_id)
        return TraceDetail(
            trace=trace,
            model_calls=await self._ledger.list_model_calls(trace_id),
            agent_calls=await self._ledger.list_agent_calls(trace_id),
            audit_events=await self._ledger.list_audit_events(trace_id),
        )
