"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from factsync.client.state import LocalStore
from factsync.core.log import InMemoryTransactionLog
from factsync.server.app import create_app
from factsync.server.database import Database


@pytest.fixture
def store(tmp_path: Path) -> Generator[LocalStore, None, None]:
    """Create a local store."""
    s = LocalStore(tmp_path / "store.db")
    yield s
    s.close()


@pytest.fixture
def memory_log() -> InMemoryTransactionLog:
    """Create an empty in-memory transaction log."""
    return InMemoryTransactionLog()


@pytest.fixture
def db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a test log service database."""
    database = Database(tmp_path / "log.db")
    yield database
    database.close()


@pytest.fixture
def app_client(db: Database) -> Generator[TestClient, None, None]:
    """Create a test client for the log service."""
    with TestClient(create_app(db)) as client:
        yield client
