"""
API Schemas.

This module contains Pydantic models used for API request bodies and response validation.
These schemas define the interface contract between the client and the server.

Bodies use camelCase on the wire. Unknown top-level keys in request bodies are
ignored; nested policy criteria and decisions stay strict.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import ConfigDict, Field

from aigp_node.governance.schemas import (
    AgentCallLog,
    AuditEventLog,
    DecisionInput,
    ModelCallLog,
    PolicyRule,
    TraceMeta,
    TraceStatus,
)
from aigp_node.governance.schemas.base import BaseSchema
from aigp_node.governance.schemas.domain import JsonObject

_LENIENT = ConfigDict(extra="ignore")


class DecideRequest(DecisionInput):
    """
    Schema for a policy decision request.

    Describes the intended action. Only ``tenantId`` is required; every other
    descriptor is optional and only constrains policies that set it.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "tenantId": "acme",
                "environment": "prd",
                "agentId": "agent-dba",
                "useCaseId": "db-maintenance",
            }
        },
    )

    tenant_id: str = Field(..., min_length=1, description="The tenant the action runs under.")


class PolicyImportRequest(BaseSchema):
    """
    Schema for replacing a tenant's policy set.

    Rules are evaluated by priority (higher first); rules with equal priority
    keep the order given here.
    """

    model_config = _LENIENT

    tenant_id: str = Field(..., min_length=1, description="The tenant whose policies are replaced.")
    version: str = Field(..., description="Caller label for this policy set. Echoed back, not stored.")
    rules: List[PolicyRule] = Field(default_factory=list, description="The complete new rule set.")


class PolicyImportResponse(BaseSchema):
    success: bool = True
    tenant_id: str
    version: str
    imported_count: int


class StartTraceRequest(TraceMeta):
    """Schema for opening a trace. All descriptors are required and non-empty."""

    model_config = _LENIENT


class StartTraceResponse(BaseSchema):
    trace_id: str


class ModelCallRequest(ModelCallLog):
    """Schema for logging one model call against a trace."""

    model_config = _LENIENT

    trace_id: UUID


class AgentCallRequest(AgentCallLog):
    """Schema for logging one agent call against a trace."""

    model_config = _LENIENT

    trace_id: UUID


class AuditEventRequest(AuditEventLog):
    """Schema for logging one audit event against a trace."""

    model_config = _LENIENT

    trace_id: UUID


class EventLoggedResponse(BaseSchema):
    success: bool = True
    event_id: str


class EndTraceRequest(BaseSchema):
    """
    Schema for closing a trace.

    ``running`` passes schema validation but is rejected by the lifecycle
    manager, since a trace can only end in a terminal status.
    """

    model_config = _LENIENT

    trace_id: UUID
    status: TraceStatus
    result_summary: Optional[JsonObject] = None


class SuccessResponse(BaseSchema):
    success: bool = True


class HealthResponse(BaseSchema):
    status: str = "ok"
    uptime: int = Field(..., description="Seconds since the server started.")
    timestamp: datetime


class VersionResponse(BaseSchema):
    version: str
    schema_version: str
