"""FastAPI application for the factsync log service.

This module creates and configures the FastAPI application with the
REST API for heads, transaction headers and chunks.

Usage:
    uvicorn factsync.server.app:app_factory --factory --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from factsync import __version__
from factsync.server.api.head import API_PREFIX
from factsync.server.api.router import router as api_router
from factsync.server.database import Database

# Configuration from environment variables with defaults
DB_PATH = Path(os.environ.get("FACTSYNC_DB_PATH", "factsync-log.db"))
LOG_PATH = os.environ.get("FACTSYNC_LOG_PATH")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def setup_logging(log_path: Path | None = None, level: int = logging.INFO) -> None:
    """Configure logging to output to stdout and optionally a file.

    Args:
        log_path: Path to the log file, or None for stdout only.
        level: Level of the ``factsync`` logger.
    """
    formatter = logging.Formatter(LOG_FORMAT)

    # Root logger for factsync
    root_logger = logging.getLogger("factsync")
    root_logger.setLevel(level)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    if log_path is not None:
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

        # Also capture uvicorn logs to file
        for uvicorn_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
            logging.getLogger(uvicorn_name).addHandler(file_handler)


def create_app(db: Database) -> FastAPI:
    """Create FastAPI application with a given database.

    Args:
        db: Database instance.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        logger.info("=" * 60)
        logger.info("factsync log service starting")
        logger.info("=" * 60)
        logger.info("  Database: %s", db.location)
        logger.info("  API:      %s/{namespace}", API_PREFIX)
        logger.info("=" * 60)

        yield

        logger.info("factsync log service shutting down")

    application = FastAPI(
        title="factsync log service",
        description="Append-only transaction log with content-addressed chunks",
        version=__version__,
        lifespan=lifespan,
    )

    application.state.db = db
    application.include_router(api_router)

    return application


def app_factory() -> FastAPI:
    """Factory function for uvicorn --factory mode."""
    setup_logging(Path(LOG_PATH) if LOG_PATH else None)
    return create_app(db=Database(DB_PATH))
