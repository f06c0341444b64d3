"""Cross-cutting utilities: error taxonomy, logging and monitoring hooks."""

from .errors import (
    GovernanceError,
    InternalError,
    NotFoundError,
    StoreError,
    TraceStateError,
    ValidationError,
)

__all__ = [
    "GovernanceError",
    "InternalError",
    "NotFoundError",
    "StoreError",
    "TraceStateError",
    "ValidationError",
]
