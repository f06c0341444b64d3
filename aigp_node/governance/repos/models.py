from __future__ import annotations

"""SQLAlchemy ORM models for governance persistence.

These ORM models define the SQL schema used by the SQL repository
implementation in ``aigp_node.governance.repos.sql``.

Design
------

- Policies are stored per tenant; ``match`` and ``decision`` are JSON
  documents validated on the way in and out.
- Traces store coarse lifecycle metadata and status.
- Model calls, agent calls and audit events form an append-only ledger, each
  row foreign-keyed to its trace with ``ON DELETE CASCADE``.

JSON columns use ``JSONB`` on PostgreSQL and plain ``JSON`` elsewhere.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JsonType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class PolicyRow(Base):
    """Row model for ``policies``.

    Key fields:

    - ``priority``: higher values are evaluated first.
    - ``position``: index within the import that created the row; breaks
      priority ties deterministically.
    """

    __tablename__ = "policies"
    __table_args__ = (Index("idx_policies_priority", "tenant_id", "priority"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(128), index=True)

    name: Mapped[str] = mapped_column(Text)
    priority: Mapped[int] = mapped_column(Integer)
    position: Mapped[int] = mapped_column(Integer, default=0)

    match: Mapped[Dict[str, Any]] = mapped_column(JsonType, default=dict)
    decision: Mapped[Dict[str, Any]] = mapped_column(JsonType)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class TraceRow(Base):
    """Row model for ``traces``.

    ``ended_at`` is null exactly while ``status`` is ``running``.
    """

    __tablename__ = "traces"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(128), index=True)

    intent_name: Mapped[str] = mapped_column(Text)
    use_case_id: Mapped[str] = mapped_column(String(128), index=True)
    risk_level: Mapped[str] = mapped_column(String(64))
    data_sensitivity: Mapped[str] = mapped_column(String(64))
    environment: Mapped[str] = mapped_column(String(64))
    extra: Mapped[Optional[Dict[str, Any]]] = mapped_column(JsonType, nullable=True)

    status: Mapped[str] = mapped_column(String(32), default="running")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    result_summary: Mapped[Optional[Dict[str, Any]]] = mapped_column(JsonType, nullable=True)


class ModelCallRow(Base):
    """Row model for ``model_calls``. Append-only."""

    __tablename__ = "model_calls"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    trace_id: Mapped[str] = mapped_column(String(64), ForeignKey("traces.id", ondelete="CASCADE"), index=True)

    provider: Mapped[str] = mapped_column(String(64), index=True)
    model: Mapped[str] = mapped_column(String(128))
    step_name: Mapped[str] = mapped_column(Text)

    prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    response: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    tokens_input: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    tokens_output: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    latency_ms: Mapped[int] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class AgentCallRow(Base):
    """Row model for ``agent_calls``. Append-only.

    ``request`` and ``response`` are opaque JSON documents.
    """

    __tablename__ = "agent_calls"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    trace_id: Mapped[str] = mapped_column(String(64), ForeignKey("traces.id", ondelete="CASCADE"), index=True)

    agent_id: Mapped[str] = mapped_column(String(128), index=True)
    domain: Mapped[str] = mapped_column(String(128))
    operation: Mapped[str] = mapped_column(String(128))

    request: Mapped[Dict[str, Any]] = mapped_column(JsonType)
    response: Mapped[Dict[str, Any]] = mapped_column(JsonType)

    status_code: Mapped[int] = mapped_column(Integer)
    latency_ms: Mapped[int] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class AuditEventRow(Base):
    """Row model for ``audit_events``. Append-only."""

    __tablename__ = "audit_events"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    trace_id: Mapped[str] = mapped_column(String(64), ForeignKey("traces.id", ondelete="CASCADE"), index=True)

    event_type: Mapped[str] = mapped_column(String(128), index=True)
    payload: Mapped[Dict[str, Any]] = mapped_column(JsonType)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
