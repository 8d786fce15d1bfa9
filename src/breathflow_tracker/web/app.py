"""
FastAPI application for BreathFlow Tracker.

PURPOSE: Application factory and server runner.
AI CONTEXT: Creates the app with all routes registered; statistics are loaded on startup.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from ..__version__ import __version__
from ..config import Config
from .routes import get_stats_service, router

__all__ = ["create_app", "run_dashboard"]

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:  # noqa: ARG001
    """
    Manage application lifecycle with startup/shutdown hooks.

    On startup the shared StatsService is created (loading stats.json),
    so the first request does not pay for it and load failures show up
    in the server log right away.

    Args:
        app: The FastAPI application instance (provided by FastAPI).

    Yields:
        None. Control returns to FastAPI to handle requests.
    """
    logger.info("BreathFlow dashboard starting (v%s)", __version__)
    get_stats_service()
    yield
    logger.info("BreathFlow dashboard shutting down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI instance with the /, /api/* and /charts/* routes and
        OpenAPI docs at /docs.

    Example:
        >>> from fastapi.testclient import TestClient
        >>> client = TestClient(create_app())
        >>> client.get('/api/streak').status_code
        200
    """
    app = FastAPI(
        title="BreathFlow Tracker",
        description="Breathing practice statistics: streaks, series and techniques",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(router)
    return app


def run_dashboard(
    host: str = Config.DEFAULT_HOST,
    port: int = Config.DEFAULT_PORT,
    reload: bool = False,
    log_level: str = "info",
) -> None:
    """
    Launch the BreathFlow web dashboard server.

    Args:
        host: Network interface to bind. '127.0.0.1' keeps the dashboard local.
        port: TCP port. Default 8000.
        reload: Auto-reload on code changes (development only).
        log_level: Uvicorn logging verbosity.

    Returns:
        None. Blocks until the server is stopped (Ctrl+C).

    Raises:
        OSError: If the port is already in use or host is invalid.
    """
    uvicorn.run(
        "breathflow_tracker.web.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# For direct execution
if __name__ == "__main__":
    run_dashboard()
