"""Error types for the governance node.

Defines a small hierarchy of exceptions raised by the engine, the trace
lifecycle manager and the repositories. The HTTP layer maps each type to a
status code; everything outside the hierarchy is treated as an internal error.
"""

from __future__ import annotations

from typing import Dict, Optional


class GovernanceError(Exception):
    """Base error for all governance node exceptions."""


class ValidationError(GovernanceError):
    """Raised for malformed or missing input. Never retried internally."""

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.fields: Dict[str, str] = dict(fields or {})


class NotFoundError(GovernanceError):
    """Raised when a referenced trace has no data."""

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} not found: '{identifier}'")
        self.kind = kind
        self.identifier = identifier


class TraceStateError(GovernanceError):
    """Raised when a trace transition is attempted from a terminal state."""

    def __init__(self, trace_id: str, status: str) -> None:
        super().__init__(f"Trace '{trace_id}' already ended with status '{status}'")
        self.trace_id = trace_id
        self.status = status


class StoreError(GovernanceError):
    """Raised for connectivity failures, constraint violations and timeouts.

    Store errors are retryable by the caller's transport layer; the node
    itself never retries.
    """

    def __init__(self, operation: str, message: str, *, retryable: bool = True) -> None:
        super().__init__(f"Store operation '{operation}' failed: {message}")
        self.operation = operation
        self.retryable = retryable


class InternalError(GovernanceError):
    """Raised for unexpected failures that fit no other category."""
