"""
Monitoring and Tracing Configuration Module.

This module provides integration with Pydantic Logfire for monitoring of the
governance node, including:
- Policy decision paths (matched / default / fallback)
- Trace lifecycle transitions
- Stats queries
- API request latency
- Error tracking

Every hook is best-effort: a monitoring failure is logged at debug level and
never reaches the caller. Hooks are no-ops until ``initialize_logfire`` has
configured Logfire successfully.
"""

import logging
import os
from typing import Optional

import logfire
from fastapi import FastAPI

logger = logging.getLogger(__name__)

# Logfire configuration from environment
LOGFIRE_ENABLED = os.getenv("LOGFIRE_ENABLED", "false").lower() in ("true", "1", "yes")
LOGFIRE_TOKEN = os.getenv("LOGFIRE_TOKEN", "")
LOGFIRE_ENVIRONMENT = os.getenv("LOGFIRE_ENVIRONMENT", "development")
LOGFIRE_SERVICE_NAME = os.getenv("LOGFIRE_SERVICE_NAME", "aigp-node")
LOGFIRE_SERVICE_VERSION = os.getenv("LOGFIRE_SERVICE_VERSION", "0.1.0")

# Feature flags
LOGFIRE_TRACE_SQLALCHEMY = os.getenv("LOGFIRE_TRACE_SQLALCHEMY", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_FASTAPI = os.getenv("LOGFIRE_TRACE_FASTAPI", "true").lower() in ("true", "1", "yes")

_active = False


def initialize_logfire(app: FastAPI | None = None) -> bool:
    """
    Initialize Pydantic Logfire for monitoring and tracing.

    The initialization is conditional based on LOGFIRE_ENABLED environment variable.

    Args:
        app: FastAPI application instance for FastAPI instrumentation (optional).

    Returns:
        True when Logfire is configured and the hooks are live.
    """
    global _active

    if not LOGFIRE_ENABLED:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return False

    if not LOGFIRE_TOKEN:
        logger.warning(
            "Logfire is enabled but LOGFIRE_TOKEN is not set. "
            "Monitoring will not work. Set LOGFIRE_TOKEN to enable Logfire."
        )
        return False

    try:
        logfire.configure(
            token=LOGFIRE_TOKEN,
            service_name=LOGFIRE_SERVICE_NAME,
            service_version=LOGFIRE_SERVICE_VERSION,
            environment=LOGFIRE_ENVIRONMENT,
        )

        if LOGFIRE_TRACE_SQLALCHEMY:
            try:
                logfire.instrument_sqlalchemy()
                logger.info("Logfire: SQLAlchemy instrumentation enabled")
            except Exception as e:
                logger.warning(f"Failed to instrument SQLAlchemy: {e}")

        if LOGFIRE_TRACE_FASTAPI and app is not None:
            try:
                logfire.instrument_fastapi(app=app)
                logger.info("Logfire: FastAPI instrumentation enabled")
            except Exception as e:
                logger.warning(f"Failed to instrument FastAPI: {e}")

        _active = True
        logger.info(
            f"Logfire monitoring initialized: environment={LOGFIRE_ENVIRONMENT}, service={LOGFIRE_SERVICE_NAME}"
        )
    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)
        _active = False

    return _active


def is_active() -> bool:
    """Return True when Logfire hooks forward events."""
    return _active


def log_policy_decision(tenant_id: str, effect: str, path: str, policy_id: Optional[str] = None) -> None:
    """
    Log the outcome of a policy decision.

    ``path`` distinguishes a matched policy, the default allow when nothing
    matched, and the fail-open fallback taken after an infrastructure error.
    The last two return the same decision and are only told apart here.

    Args:
        tenant_id: The tenant identifier
        effect: The returned effect
        path: One of ``matched``, ``default`` or ``fallback``
        policy_id: The matched policy, if any
    """
    if not _active:
        return
    try:
        logfire.info(
            "Policy decision",
            tenant_id=tenant_id,
            effect=effect,
            decision_path=path,
            policy_id=policy_id,
        )
    except Exception:
        logger.debug(f"Could not log policy decision to Logfire: tenant_id={tenant_id}")


def log_trace_started(trace_id: str, tenant_id: str, use_case_id: str, environment: str) -> None:
    """
    Log the start of a governed trace.

    Args:
        trace_id: The unique identifier for the trace
        tenant_id: The tenant identifier
        use_case_id: The use case the trace belongs to
        environment: The environment the action runs in
    """
    if not _active:
        return
    try:
        logfire.info(
            "Trace started",
            trace_id=trace_id,
            tenant_id=tenant_id,
            use_case_id=use_case_id,
            environment=environment,
        )
    except Exception:
        logger.debug(f"Could not log trace start to Logfire: trace_id={trace_id}")


def log_trace_ended(trace_id: str, status: str) -> None:
    """
    Log the termination of a trace.

    Args:
        trace_id: The unique identifier for the trace
        status: The terminal status (success, error, cancelled)
    """
    if not _active:
        return
    try:
        logfire.info("Trace ended", trace_id=trace_id, status=status)
    except Exception:
        logger.debug(f"Could not log trace end to Logfire: trace_id={trace_id}")


def log_stats_query(tenant_id: str, environment: Optional[str], window_hours: float) -> None:
    """Log the parameters of a stats overview query."""
    if not _active:
        return
    try:
        logfire.info(
            "Stats overview queried",
            tenant_id=tenant_id,
            environment=environment,
            window_hours=window_hours,
        )
    except Exception:
        logger.debug(f"Could not log stats query to Logfire: tenant_id={tenant_id}")


def log_api_request(method: str, path: str, status_code: int, duration_ms: float) -> None:
    """
    Log an API request with performance metrics.

    Args:
        method: HTTP method
        path: Request path
        status_code: HTTP status code
        duration_ms: Request duration in milliseconds
    """
    if not _active:
        return
    try:
        logfire.info(
            "API request completed",
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=duration_ms,
        )
    except Exception:
        logger.debug(f"Could not log API request to Logfire: {method} {path}")


def log_error(error_type: str, error_message: str, context: Optional[dict] = None) -> None:
    """
    Log an error with context for debugging.

    Args:
        error_type: Type of error
        error_message: Error message
        context: Additional context dictionary
    """
    if not _active:
        return
    try:
        logfire.error(
            f"{error_type}: {error_message}",
            **(context or {}),
        )
    except Exception:
        logger.debug(f"Could not log error to Logfire: {error_type}")
