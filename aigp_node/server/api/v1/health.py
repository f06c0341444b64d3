"""
Health Check Endpoints.

This module provides basic system status endpoints (health, version)
used for monitoring and deployment verification.
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter

from aigp_node.server.core import constant
from aigp_node.server.schemas import HealthResponse, VersionResponse

router = APIRouter()

_STARTED_AT = time.monotonic()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Check the operational status of the API server.",
    response_description="Status object with uptime in seconds.",
)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Returns a status indicator, the whole seconds since the process started,
    and the current server time. It does not touch the store.
    """
    return HealthResponse(
        status="ok",
        uptime=int(time.monotonic() - _STARTED_AT),
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/version",
    response_model=VersionResponse,
    summary="Get Version",
    description="Retrieve version information for the API server.",
    response_description="Version object.",
)
async def version() -> VersionResponse:
    """
    Get API version.

    Returns the current semantic version of the API and supported schema version.
    """
    return VersionResponse(version=constant.VERSION, schema_version=constant.SCHEMA_VERSION)
