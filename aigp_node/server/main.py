"""
Main Application Entry Point.

This module builds the FastAPI application, configures middleware (CORS,
request monitoring), registers exception handlers and includes all API
routers. It serves as the root of the web server.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from aigp_node.core.logging_config import get_logger, setup_logging
from aigp_node.core.monitoring import initialize_logfire
from aigp_node.governance.repos.sql import SqlStore

from .api.v1 import health, policies, stats, traces
from .core import constant
from .core.config import Settings, settings
from .exception_handlers import setup_exception_handlers
from .middleware import LogfireMiddleware
from .services.governance import GovernanceService

logger = get_logger(__name__)


def _build_lifespan(config: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """
        Manage application lifespan events.

        Opens the governance store on startup and installs the
        ``GovernanceService`` on ``app.state``; closes the store on shutdown.
        A service already present on ``app.state`` is left alone and no store
        is opened.
        """
        store: Optional[SqlStore] = None
        logger.info("Starting up AIGP Node...")
        if getattr(app.state, "governance", None) is None:
            store_cfg = config.store
            store = await SqlStore.open(
                store_cfg.url,
                timeout_seconds=store_cfg.timeout_seconds,
                create_schema=store_cfg.create_schema,
            )
            repos = store.repos
            app.state.store = store
            app.state.governance = GovernanceService.from_repos(
                policies=repos.policies,
                traces=repos.traces,
                ledger=repos.ledger,
                stats=repos.stats,
            )
            logger.info("Governance store initialized successfully")

        try:
            yield
        finally:
            logger.info("Shutting down AIGP Node...")
            if store is not None:
                await store.close()
                app.state.governance = None

    return lifespan


def create_app(config: Optional[Settings] = None, governance: Optional[GovernanceService] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Settings to use; defaults to the environment-loaded settings.
        governance: A pre-built service. When given, the lifespan does not
            open a store (used by tests with in-memory repositories).

    Returns:
        The configured application.
    """
    config = config or settings

    app = FastAPI(
        title=constant.PROJECT_NAME,
        description="""
        AIGP Node API

        Governance decisions and an append-only audit ledger for AI workloads.
        Callers ask whether an action may proceed, then record what the action did.
        """,
        version=constant.VERSION,
        lifespan=_build_lifespan(config),
    )
    app.state.governance = governance

    cors = config.cors
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors.origins,
        allow_credentials=cors.allow_credentials,
        allow_methods=cors.allow_methods,
        allow_headers=cors.allow_headers,
    )
    app.add_middleware(LogfireMiddleware)

    setup_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(policies.router, prefix="/policies", tags=["policies"])
    app.include_router(traces.router, prefix="/traces", tags=["traces"])
    app.include_router(stats.router, prefix="/stats", tags=["stats"])

    initialize_logfire(app)
    return app


setup_logging(log_level=settings.log_level)
app = create_app()


def run() -> None:
    """Serve the application with uvicorn using the configured host and port."""
    uvicorn.run(
        "aigp_node.server.main:app",
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
