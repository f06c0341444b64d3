"""Trace lifecycle management and the append-only event ledger."""

from .lifecycle import TraceLifecycleManager

__all__ = ["TraceLifecycleManager"]
