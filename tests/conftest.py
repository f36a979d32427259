"""Shared test fixtures for the migration pipeline test suite."""
from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest

from src.migration_api.storage.project_store import ProjectStore
from src.migration_orchestrator.orchestrator import PipelineOrchestrator
from src.shared.db.connection import ConnectionPool
from src.shared.db.schema import init_migration_db
from tests.fixtures.pipeline import RecordingSleep, ScriptedModelClient, build_orchestrator


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def pool(tmp_path: Path) -> Generator[ConnectionPool, None, None]:
    """A fresh migration database under ``tmp_path``."""
    pool = ConnectionPool(tmp_path / "migration.db")
    init_migration_db(pool)
    yield pool
    pool.close()


@pytest.fixture
def store(pool: ConnectionPool) -> ProjectStore:
    return ProjectStore(pool)


@pytest.fixture
def offline_orchestrator(store: ProjectStore, sleep: RecordingSleep) -> PipelineOrchestrator:
    """Orchestrator whose model client always fails, so every stage is simulated."""
    orchestrator, _ = build_orchestrator(store, ScriptedModelClient(), sleep)
    return orchestrator
