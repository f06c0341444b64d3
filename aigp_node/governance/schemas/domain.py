from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import Field, JsonValue, NonNegativeInt, PositiveInt

from .base import BaseSchema

# prompt/response are cut to this many characters before persistence
MAX_TEXT_LENGTH = 10_000

JsonObject = Dict[str, JsonValue]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class PolicyEffect(str, Enum):
    allow = "allow"
    deny = "deny"
    require_approval = "require_approval"
    override_model = "override_model"
    override_agent = "override_agent"


class DecisionPath(str, Enum):
    """How a decision was reached. Only ``matched`` carries a policy identity."""

    matched = "matched"
    default = "default"
    fallback = "fallback"


class TraceStatus(str, Enum):
    running = "running"
    success = "success"
    error = "error"
    cancelled = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not TraceStatus.running


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------


class MatchCriteria(BaseSchema):
    """Equality predicates over decision input fields. ``None`` is a wildcard."""

    use_case_id: Optional[str] = None
    environment: Optional[str] = None
    agent_id: Optional[str] = None
    intent_name: Optional[str] = None
    risk_level: Optional[str] = None
    data_sensitivity: Optional[str] = None
    model: Optional[str] = None


class DecisionSpec(BaseSchema):
    effect: PolicyEffect
    override_model: Optional[str] = None
    override_agent: Optional[str] = None
    reason: Optional[str] = None


class Decision(DecisionSpec):
    policy_id: Optional[str] = None
    policy_name: Optional[str] = None

    @classmethod
    def default_allow(cls) -> "Decision":
        return cls(effect=PolicyEffect.allow)


class DecisionInput(BaseSchema):
    tenant_id: str
    use_case_id: Optional[str] = None
    intent_name: Optional[str] = None
    environment: Optional[str] = None
    risk_level: Optional[str] = None
    agent_id: Optional[str] = None
    model: Optional[str] = None
    data_sensitivity: Optional[str] = None


class PolicyRule(BaseSchema):
    """One rule of an import request, before it is assigned an identity."""

    name: str = Field(min_length=1)
    priority: int
    match: MatchCriteria = Field(default_factory=MatchCriteria)
    decision: DecisionSpec


class Policy(BaseSchema):
    id: str = Field(default_factory=_new_id)
    tenant_id: str

    name: str
    priority: int
    # index within the imported rule list; secondary sort key for equal priorities
    position: int = 0

    match: MatchCriteria
    decision: DecisionSpec

    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# Traces and ledger events
# ---------------------------------------------------------------------------


class TraceMeta(BaseSchema):
    tenant_id: str = Field(min_length=1)
    intent_name: str = Field(min_length=1)
    use_case_id: str = Field(min_length=1)
    risk_level: str = Field(min_length=1)
    data_sensitivity: str = Field(min_length=1)
    environment: str = Field(min_length=1)
    extra: Optional[JsonObject] = None


class Trace(BaseSchema):
    id: str = Field(default_factory=_new_id)
    tenant_id: str

    intent_name: str
    use_case_id: str
    risk_level: str
    data_sensitivity: str
    environment: str
    extra: Optional[JsonObject] = None

    status: TraceStatus = TraceStatus.running
    created_at: datetime = Field(default_factory=_utc_now)
    ended_at: Optional[datetime] = None
    result_summary: Optional[JsonObject] = None


class ModelCallLog(BaseSchema):
    provider: str = Field(min_length=1)
    model: str = Field(min_length=1)
    step_name: str = Field(min_length=1)
    prompt: str
    response: str
    tokens_input: Optional[PositiveInt] = None
    tokens_output: Optional[PositiveInt] = None
    latency_ms: NonNegativeInt


class AgentCallLog(BaseSchema):
    agent_id: str = Field(min_length=1)
    domain: str = Field(min_length=1)
    operation: str = Field(min_length=1)
    request: JsonObject
    response: JsonObject
    status_code: int
    latency_ms: NonNegativeInt


class AuditEventLog(BaseSchema):
    event_type: str = Field(min_length=1)
    payload: JsonObject


class ModelCallEvent(ModelCallLog):
    id: str = Field(default_factory=_new_id)
    trace_id: str
    created_at: datetime = Field(default_factory=_utc_now)


class AgentCallEvent(AgentCallLog):
    id: str = Field(default_factory=_new_id)
    trace_id: str
    created_at: datetime = Field(default_factory=_utc_now)


class AuditEvent(AuditEventLog):
    id: str = Field(default_factory=_new_id)
    trace_id: str
    created_at: datetime = Field(default_factory=_utc_now)


class TraceDetail(BaseSchema):
    """A trace together with its full ledger, for reconstruction."""

    trace: Trace
    model_calls: List[ModelCallEvent] = Field(default_factory=list)
    agent_calls: List[AgentCallEvent] = Field(default_factory=list)
    audit_events: List[AuditEvent] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


class StatsFilters(BaseSchema):
    tenant_id: str
    environment: Optional[str] = None
    from_time: datetime = Field(alias="from")
    to_time: datetime = Field(alias="to")


class StatsSummary(BaseSchema):
    total_traces: int = 0
    total_model_calls: int = 0
    total_agent_calls: int = 0


class UseCaseStats(BaseSchema):
    use_case_id: str
    traces: int = 0
    model_calls: int = 0
    agent_calls: int = 0
    last_trace_at: Optional[datetime] = None


class StatsOverview(BaseSchema):
    tenant_id: str
    environment: Optional[str] = None
    from_time: datetime = Field(alias="from")
    to_time: datetime = Field(alias="to")
    summary: StatsSummary
    by_use_case: List[UseCaseStats] = Field(default_factory=list)
