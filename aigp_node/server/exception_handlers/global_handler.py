"""
Global Exception Handlers for FastAPI Application.

This module maps the governance error taxonomy onto HTTP responses and
provides a global handler for everything else.

- ``ValidationError`` and FastAPI's ``RequestValidationError`` become 400 with
  the failing fields enumerated.
- ``NotFoundError`` becomes 404.
- ``TraceStateError`` becomes 409.
- ``StoreError``, ``InternalError`` and any unhandled exception become a
  generic 500 carrying only an error ID; details are logged, never returned.
"""

import traceback
from typing import Any, Dict, List
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from aigp_node.core.errors import (
    GovernanceError,
    NotFoundError,
    TraceStateError,
    ValidationError,
)
from aigp_node.core.logging_config import get_logger
from aigp_node.core.monitoring import log_error

logger = get_logger(__name__)


def _field_path(loc: Any) -> str:
    # drop the "body"/"query" prefix FastAPI puts on locations
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Return 400 for a domain validation failure."""
    logger.warning(f"Validation error in {request.method} {request.url.path}: {exc}")
    details: List[Dict[str, str]] = [{"field": f, "message": m} for f, m in exc.fields.items()]
    return JSONResponse(
        status_code=400,
        content={"error": "Validation error", "message": str(exc), "details": details},
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 for a request body or query that fails schema validation."""
    details = [{"field": _field_path(err.get("loc", ())), "message": str(err.get("msg", ""))} for err in exc.errors()]
    logger.warning(f"Invalid request for {request.method} {request.url.path}: {details}")
    return JSONResponse(
        status_code=400,
        content={"error": "Validation error", "message": "Invalid request", "details": details},
    )


async def not_found_exception_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Return 404 when a referenced resource does not exist."""
    logger.info(f"Not found in {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=404, content={"error": "Not found", "message": str(exc)})


async def trace_state_exception_handler(request: Request, exc: TraceStateError) -> JSONResponse:
    """Return 409 when a trace is ended a second time."""
    return JSONResponse(
        status_code=409,
        content={"error": "Conflict", "message": str(exc), "status": exc.status},
    )


def _internal_error_response(request: Request, exc: Exception) -> JSONResponse:
    # Generate unique error ID for tracking
    error_id = str(uuid4())

    logger.error(
        f"Unhandled exception [{error_id}] in {request.method} {request.url.path}: {str(exc)}",
        exc_info=exc,
        extra={
            "error_id": error_id,
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
            "client": request.client.host if request.client else "unknown",
            "error_type": type(exc).__name__,
            "traceback": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        },
    )
    log_error(type(exc).__name__, str(exc), {"error_id": error_id, "path": request.url.path})

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "error_id": error_id},
    )


async def governance_exception_handler(request: Request, exc: GovernanceError) -> JSONResponse:
    """Return a generic 500 for store and internal errors."""
    return _internal_error_response(request, exc)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler to log detailed error information.

    This handler is called for any unhandled exception in the application.
    It logs the full error context and returns a JSON response with an error ID
    that clients can use to reference the error when reporting issues.

    Args:
        request: The HTTP request that caused the exception
        exc: The exception that was raised

    Returns:
        JSONResponse with a generic message and the error ID
    """
    return _internal_error_response(request, exc)


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI application.

    Handlers are looked up by the exception's MRO, so the specific governance
    errors take precedence over the ``GovernanceError`` catch-all.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(NotFoundError, not_found_exception_handler)
    app.add_exception_handler(TraceStateError, trace_state_exception_handler)
    app.add_exception_handler(GovernanceError, governance_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    logger.debug("Exception handlers registered successfully")
