"""Domain schemas shared by the engine, the ledger and the HTTP layer."""

from .domain import (
    MAX_TEXT_LENGTH,
    AgentCallEvent,
    AgentCallLog,
    AuditEvent,
    AuditEventLog,
    Decision,
    DecisionInput,
    DecisionPath,
    DecisionSpec,
    MatchCriteria,
    ModelCallEvent,
    ModelCallLog,
    Policy,
    PolicyEffect,
    PolicyRule,
    StatsFilters,
    StatsOverview,
    StatsSummary,
    Trace,
    TraceDetail,
    TraceMeta,
    TraceStatus,
    UseCaseStats,
)

__all__ = [
    "MAX_TEXT_LENGTH",
    "AgentCallEvent",
    "AgentCallLog",
    "AuditEvent",
    "AuditEventLog",
    "Decision",
    "DecisionInput",
    "DecisionPath",
    "DecisionSpec",
    "MatchCriteria",
    "ModelCallEvent",
    "ModelCallLog",
    "Policy",
    "PolicyEffect",
    "PolicyRule",
    "StatsFilters",
    "StatsOverview",
    "StatsSummary",
    "Trace",
    "TraceDetail",
    "TraceMeta",
    "TraceStatus",
    "UseCaseStats",
]
