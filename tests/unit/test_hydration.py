"""
Unit tests for trip store hydration and identity switching
"""
import asyncio
import json
from typing import Dict, Optional

import pytest

from trip_planner.core.storage import MemoryStorage, StorageAdapter
from trip_planner.services.trip_store import HydrationStatus, TripStore

USER_A = "+15550001111"
USER_B = "+15550002222"


def blob_with_trip(destination: str) -> str:
    return json.dumps({
        "schemaVersion": 2,
        "trips": [{
            "id": f"{destination}|2024-06-01|2024-06-05",
            "destination": destination,
            "startDate": "2024-06-01",
            "endDate": "2024-06-05",
        }],
    })


class GatedStorage(StorageAdapter):
    """Storage whose reads block until the test releases them."""

    def __init__(self, data: Dict[str, str]):
        self.data = dict(data)
        self.gates: Dict[str, asyncio.Event] = {}
        self.writes = []

    def gate(self, key: str) -> asyncio.Event:
        return self.gates.setdefault(key, asyncio.Event())

    async def read(self, key: str) -> Optional[str]:
        await self.gate(key).wait()
        return self.data.get(key)

    async def write(self, key: str, value: str) -> bool:
        self.writes.append(key)
        self.data[key] = value
        return True

    async def remove(self, key: str) -> bool:
        self.data.pop(key, None)
        return True


class FailingStorage(MemoryStorage):
    """Rejects a fixed number of writes before accepting them."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures
        self.attempts = 0

    async def write(self, key: str, value: str) -> bool:
        self.attempts += 1
        if self.attempts <= self.failures:
            return False
        return await super().write(key, value)


class RaisingReadStorage(MemoryStorage):
    async def read(self, key: str) -> Optional[str]:
        raise ConnectionError("storage offline")


@pytest.mark.asyncio
async def test_switch_user_loads_stored_state():
    storage = MemoryStorage({f"tripplanner:data:{USER_A}": blob_with_trip("Lisbon")})
    store = TripStore(storage)

    status = await store.switch_user(USER_A)

    assert status is HydrationStatus.HYDRATED
    assert store.namespace_key == f"tripplanner:data:{USER_A}"
    assert [t.destination for t in store.trips] == ["Lisbon"]


@pytest.mark.asyncio
async def test_absent_identity_hydrates_empty_without_reading():
    storage = GatedStorage({})
    store = TripStore(storage)

    # gate never opened: a read would hang the test
    status = await asyncio.wait_for(store.switch_user(None), timeout=1)

    assert status is HydrationStatus.HYDRATED
    assert store.trips == []
    assert store.namespace_key is None


@pytest.mark.asyncio
async def test_blank_identity_is_treated_as_signed_out():
    store = TripStore(MemoryStorage())

    await store.switch_user("   ")

    assert store.is_hydrated
    assert store.namespace_key is None


@pytest.mark.asyncio
async def test_malformed_blob_hydrates_empty():
    storage = MemoryStorage({f"tripplanner:data:{USER_A}": "{not json"})
    store = TripStore(storage)

    await store.switch_user(USER_A)

    assert store.is_hydrated
    assert store.trips == []


@pytest.mark.asyncio
async def test_read_failure_hydrates_empty():
    store = TripStore(RaisingReadStorage())

    await store.switch_user(USER_A)

    assert store.is_hydrated
    assert store.trips == []


@pytest.mark.asyncio
async def test_superseded_hydration_is_discarded():
    """Switching A then B: A's late read must never appear in B's store"""
    storage = GatedStorage({
        f"tripplanner:data:{USER_A}": blob_with_trip("Athens"),
        f"tripplanner:data:{USER_B}": blob_with_trip("Bogota"),
    })
    store = TripStore(storage)

    load_a = asyncio.create_task(store.switch_user(USER_A))
    await asyncio.sleep(0)
    load_b = asyncio.create_task(store.switch_user(USER_B))
    await asyncio.sleep(0)

    storage.gate(f"tripplanner:data:{USER_B}").set()
    assert await load_b is HydrationStatus.HYDRATED
    assert [t.destination for t in store.trips] == ["Bogota"]

    storage.gate(f"tripplanner:data:{USER_A}").set()
    await load_a

    assert store.user_key == USER_B
    assert [t.destination for t in store.trips] == ["Bogota"]
    assert store.is_hydrated


@pytest.mark.asyncio
async def test_store_is_empty_and_locked_while_hydrating():
    storage = GatedStorage({f"tripplanner:data:{USER_A}": blob_with_trip("Athens")})
    store = TripStore(storage)

    load = asyncio.create_task(store.switch_user(USER_A))
    await asyncio.sleep(0)

    assert store.status is HydrationStatus.HYDRATING
    assert store.trips == []

    storage.gate(f"tripplanner:data:{USER_A}").set()
    await load
    assert store.is_hydrated


@pytest.mark.asyncio
async def test_switching_back_rereads_latest_writes():
    storage = MemoryStorage()
    store = TripStore(storage)

    await store.switch_user(USER_A)
    store.add_trip("Quito", "2024-06-01", "2024-06-05")
    await store.switch_user(USER_B)
    assert store.trips == []

    await store.switch_user(USER_A)
    assert [t.destination for t in store.trips] == ["Quito"]


@pytest.mark.asyncio
async def test_same_user_does_not_rehydrate():
    storage = MemoryStorage()
    store = TripStore(storage)
    await store.switch_user(USER_A)
    trip = store.add_trip("Quito", "2024-06-01", "2024-06-05")

    await store.switch_user(USER_A)

    assert store.trips == [trip]


@pytest.mark.asyncio
async def test_user_data_stays_in_its_namespace():
    storage = MemoryStorage()
    store = TripStore(storage)

    await store.switch_user(USER_A)
    store.add_trip("Quito", "2024-06-01", "2024-06-05")
    await store.switch_user(USER_B)
    store.add_trip("Hanoi", "2024-07-01", "2024-07-05")
    await store.flush()

    stored = storage.dump()
    assert "Quito" in stored[f"tripplanner:data:{USER_A}"]
    assert "Hanoi" not in stored[f"tripplanner:data:{USER_A}"]
    assert "Hanoi" in stored[f"tripplanner:data:{USER_B}"]


@pytest.mark.asyncio
async def test_write_is_retried_until_it_lands():
    storage = FailingStorage(failures=2)
    store = TripStore(storage, persist_max_attempts=3, persist_backoff_seconds=0)
    await store.switch_user(USER_A)

    store.add_trip("Seoul", "2024-06-01", "2024-06-05")
    await store.flush()

    assert storage.attempts == 3
    assert store.last_persist_failed is False
    assert "Seoul" in storage.dump()[f"tripplanner:data:{USER_A}"]


@pytest.mark.asyncio
async def test_exhausted_retries_flag_failure_but_keep_memory():
    storage = FailingStorage(failures=10)
    store = TripStore(storage, persist_max_attempts=2, persist_backoff_seconds=0)
    await store.switch_user(USER_A)

    trip = store.add_trip("Seoul", "2024-06-01", "2024-06-05")
    await store.flush()

    assert storage.attempts == 2
    assert store.last_persist_failed is True
    assert store.trips == [trip]
    assert storage.dump() == {}


@pytest.mark.asyncio
async def test_last_write_wins_in_storage():
    storage = MemoryStorage()
    store = TripStore(storage)
    await store.switch_user(USER_A)

    trip = store.add_trip("Seoul", "2024-06-01", "2024-06-05")
    for label in ("One", "Two", "Three"):
        store.add_itinerary_day(trip.id, label)
    await store.flush()

    document = json.loads(storage.dump()[f"tripplanner:data:{USER_A}"])
    assert [d["label"] for d in document["itineraryByTripId"][trip.id]] == ["One", "Two", "Three"]
