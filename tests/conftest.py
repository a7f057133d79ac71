"""Shared test fixtures for the trip planner store."""

from datetime import datetime, timezone

import pytest
import pytest_asyncio

from trip_planner.core.storage import MemoryStorage
from trip_planner.services.trip_store import TripStore

USER_KEY = "+15550001111"
FIXED_NOW = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest_asyncio.fixture
async def store(memory_storage, fixed_clock):
    """Store hydrated for USER_KEY on empty storage."""
    trip_store = TripStore(
        memory_storage,
        persist_backoff_seconds=0,
        clock=fixed_clock,
    )
    await trip_store.switch_user(USER_KEY)
    yield trip_store
    await trip_store.flush()
