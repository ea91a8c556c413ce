"""Shared fixtures: a throwaway SQLite document store and a fast runner."""

from datetime import datetime

import pytest
import pytest_asyncio

from src.models.simulation import SimulationDraft, SimulationType
from src.simulation.runner import SimulationRunner
from src.storage.document_store import SQLiteDocumentStore
from src.storage.schedule_store import ScheduleStore


@pytest_asyncio.fixture
async def doc_store(tmp_path):
    store = SQLiteDocumentStore(str(tmp_path / "test.db"))
    await store.initialize()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def schedule_store(doc_store):
    return ScheduleStore(doc_store)


@pytest.fixture
def emitted():
    """Collects everything the runner emits."""
    return []


@pytest_asyncio.fixture
async def runner(schedule_store, emitted):
    async def collect(event):
        emitted.append(event)

    sim_runner = SimulationRunner(
        store=schedule_store,
        emit=collect,
        settle_seconds=0.05,
        retry_attempts=1,
    )
    yield sim_runner
    await sim_runner.shutdown()


@pytest.fixture
def fire_drill():
    return SimulationDraft(
        type=SimulationType.FIRE,
        name="Kitchen fire drill",
        description="Smoke detectors and sprinklers",
        scheduled_at=datetime(2026, 10, 20, 10, 0),
        affected_devices=["device1", "device2"],
        notify_users=True,
    )
