"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from studbook_sync.core.records import (
    Individual,
    Organization,
    Project,
    Sex,
    Species,
    SpeciesType,
)
from studbook_sync.storage.memory_backend import InMemoryBackend
from studbook_sync.storage.record_store import LocalRecordStore


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests away from the real ~/.studbook and any STUDBOOK_* settings."""
    for name in (
        "STUDBOOK_REMOTE_URL",
        "STUDBOOK_API_KEY",
        "STUDBOOK_TIMEOUT",
        "STUDBOOK_MAX_RETRIES",
        "STUDBOOK_STORE_BACKEND",
        "STUDBOOK_STORE_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STUDBOOK_DIR", str(tmp_path / "studbook-home"))


@pytest.fixture
def backend() -> InMemoryBackend:
    """Create an empty in-memory backend."""
    return InMemoryBackend()


@pytest.fixture
def store(backend: InMemoryBackend) -> LocalRecordStore:
    """Create a record store with no remote attached."""
    return LocalRecordStore(backend)


@pytest.fixture
def pusher() -> AsyncMock:
    """Create a stand-in for the orchestrator's push/delete surface."""
    mock = AsyncMock()
    mock.push_collection = AsyncMock(return_value=None)
    mock.soft_delete = AsyncMock(return_value=None)
    return mock


@pytest_asyncio.fixture
async def synced_store(
    backend: InMemoryBackend, pusher: AsyncMock
) -> AsyncGenerator[LocalRecordStore, None]:
    """Create a record store whose saves are pushed through ``pusher``."""
    store = LocalRecordStore(backend, pusher=pusher)
    yield store
    await store.tasks.drain()


@pytest.fixture
def organization() -> Organization:
    return Organization(id="org-1", name="Highland Wildlife Park", location="Kincraig")


@pytest.fixture
def project() -> Project:
    return Project(id="proj-1", name="Big Cats", org_id="org-1")


@pytest.fixture
def species() -> Species:
    return Species(
        id="sp-1",
        project_id="proj-1",
        common_name="Snow Leopard",
        scientific_name="Panthera uncia",
        type=SpeciesType.ANIMAL,
        conservation_status="Vulnerable",
    )


@pytest.fixture
def individuals() -> list[Individual]:
    """A sire, a dam and their cub."""
    return [
        Individual(
            id="ind-a",
            project_id="proj-1",
            species_id="sp-1",
            studbook_id="SL-001",
            name="Tashi",
            sex=Sex.MALE,
            birth_date="2015-05-01",
        ),
        Individual(
            id="ind-b",
            project_id="proj-1",
            species_id="sp-1",
            studbook_id="SL-002",
            name="Mia",
            sex=Sex.FEMALE,
            birth_date="2016-06-12",
        ),
        Individual(
            id="ind-c",
            project_id="proj-1",
            species_id="sp-1",
            studbook_id="SL-003",
            name="Kira",
            sex=Sex.FEMALE,
            birth_date="2021-04-20",
            sire_id="ind-a",
            dam_id="ind-b",
        ),
    ]
