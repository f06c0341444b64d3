"""
Trace Endpoints.

This module records the lifecycle of governed actions: opening a trace,
appending model calls, agent calls and audit events, closing the trace, and
reading a trace back with its ledger.
"""

from uuid import UUID

from fastapi import APIRouter, status

from aigp_node.governance.schemas import (
    AgentCallLog,
    AuditEventLog,
    ModelCallLog,
    TraceDetail,
)
from aigp_node.server.schemas import (
    AgentCallRequest,
    AuditEventRequest,
    EndTraceRequest,
    EventLoggedResponse,
    ModelCallRequest,
    StartTraceRequest,
    StartTraceResponse,
    SuccessResponse,
)
from aigp_node.server.services.deps import GovernanceDep

router = APIRouter()


@router.post(
    "/start",
    response_model=StartTraceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start Trace",
    description="Open a new running trace.",
    response_description="The new trace id.",
)
async def start_trace(body: StartTraceRequest, governance: GovernanceDep) -> StartTraceResponse:
    trace_id = await governance.traces.start(body)
    return StartTraceResponse(trace_id=trace_id)


@router.post(
    "/model-call",
    response_model=EventLoggedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log Model Call",
    description="Append a model call to a trace. Prompt and response are truncated to 10,000 characters.",
)
async def log_model_call(body: ModelCallRequest, governance: GovernanceDep) -> EventLoggedResponse:
    log = ModelCallLog.model_validate(body.model_dump(exclude={"trace_id"}))
    event_id = await governance.traces.log_model_call(str(body.trace_id), log)
    return EventLoggedResponse(event_id=event_id)


@router.post(
    "/agent-call",
    response_model=EventLoggedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log Agent Call",
    description="Append an agent call to a trace.",
)
async def log_agent_call(body: AgentCallRequest, governance: GovernanceDep) -> EventLoggedResponse:
    log = AgentCallLog.model_validate(body.model_dump(exclude={"trace_id"}))
    event_id = await governance.traces.log_agent_call(str(body.trace_id), log)
    return EventLoggedResponse(event_id=event_id)


@router.post(
    "/audit-event",
    response_model=EventLoggedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log Audit Event",
    description="Append an audit event to a trace.",
)
async def log_audit_event(body: AuditEventRequest, governance: GovernanceDep) -> EventLoggedResponse:
    log = AuditEventLog.model_validate(body.model_dump(exclude={"trace_id"}))
    event_id = await governance.traces.log_audit_event(str(body.trace_id), log)
    return EventLoggedResponse(event_id=event_id)


@router.post(
    "/end",
    response_model=SuccessResponse,
    summary="End Trace",
    description="Move a running trace to success, error or cancelled.",
    responses={
        404: {"description": "Trace not found"},
        409: {"description": "Trace already ended"},
    },
)
async def end_trace(body: EndTraceRequest, governance: GovernanceDep) -> SuccessResponse:
    """
    End a trace.

    Only the first call for a trace succeeds; later calls get 409 and leave
    the recorded outcome untouched.
    """
    await governance.traces.end(str(body.trace_id), body.status, body.result_summary)
    return SuccessResponse()


@router.get(
    "/{trace_id}",
    response_model=TraceDetail,
    summary="Get Trace",
    description="Reconstruct a trace with its model calls, agent calls and audit events.",
    responses={404: {"description": "Trace not found"}},
)
async def get_trace(trace_id: UUID, governance: GovernanceDep) -> TraceDetail:
    return await governance.traces.get(str(trace_id))
