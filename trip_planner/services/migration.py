"""
Schema migration for persisted trip data.

Decoding never raises: an unreadable blob yields an empty state, a malformed
top-level collection is treated as absent and malformed entries inside a
collection are dropped. Blobs written before ``schemaVersion`` existed are
recognised by shape; the single-flight-per-trip ``flightByTripId`` field is
converted to ``flightsByTripId`` lists.
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from trip_planner.schemas.state import SCHEMA_VERSION, LegacyFlightInfo, TripsState
from trip_planner.schemas.trip import (
    FlightInfo,
    ItineraryDay,
    ItineraryEvent,
    JournalEntry,
    Trip,
    TripExpense,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of decoding a stored blob; ``state`` is always usable."""
    ok: bool
    state: TripsState = field(default_factory=TripsState)
    error: Optional[str] = None


def decode_state(raw: Optional[str]) -> DecodeResult:
    """
    Decode a stored blob into the current state shape

    Args:
        raw: Blob read from storage, None if nothing was stored

    Returns:
        DecodeResult; on failure ``state`` is empty and ``error`` says why
    """
    if raw is None or not raw.strip():
        return DecodeResult(ok=False, error="no stored state")

    try:
        parsed = json.loads(raw)
    except ValueError as e:
        return DecodeResult(ok=False, error=f"invalid JSON: {e}")

    if not isinstance(parsed, dict):
        return DecodeResult(ok=False, error=f"expected a JSON object, got {type(parsed).__name__}")

    return DecodeResult(ok=True, state=migrate(parsed))


def migrate(raw: Union[Mapping[str, Any], TripsState]) -> TripsState:
    """
    Convert any known persisted shape into the current one

    Args:
        raw: Parsed blob, or an already migrated state

    Returns:
        Normalized state; migrating current data returns an equal state
    """
    if isinstance(raw, TripsState):
        raw = raw.to_document()

    version = raw.get("schemaVersion")
    is_current = isinstance(version, int) and version >= SCHEMA_VERSION

    trips = _dedupe_trips(_decode_list(raw.get("trips"), Trip, "trips") or [])

    flights = _decode_collection(raw.get("flightsByTripId"), FlightInfo, "flightsByTripId")
    if flights is None and not is_current:
        flights = _migrate_legacy_flights(raw.get("flightByTripId"))

    itinerary = _decode_itinerary(raw.get("itineraryByTripId"))
    expenses = _decode_collection(raw.get("expensesByTripId"), TripExpense, "expensesByTripId")
    journal = _decode_collection(raw.get("journalByTripId"), JournalEntry, "journalByTripId")

    return TripsState(
        trips=trips,
        flights_by_trip_id=flights or {},
        itinerary_by_trip_id=itinerary or {},
        expenses_by_trip_id=expenses or {},
        journal_by_trip_id=journal or {},
    )


def legacy_flight_id(trip_id: str) -> str:
    """Id for a flight converted from the single-flight shape, stable per trip."""
    return "flight-" + hashlib.sha1(trip_id.encode("utf-8")).hexdigest()[:12]


def _migrate_legacy_flights(value: Any) -> Optional[Dict[str, List[FlightInfo]]]:
    if not isinstance(value, dict):
        return None

    migrated: Dict[str, List[FlightInfo]] = {}
    for trip_id, legacy in value.items():
        # cleared flights were persisted as null
        if not isinstance(legacy, dict):
            continue
        try:
            old = LegacyFlightInfo.model_validate(legacy)
        except ValidationError as e:
            logger.warning(f"Dropping unreadable legacy flight for trip '{trip_id}': {e.error_count()} errors")
            continue
        migrated[trip_id] = [
            FlightInfo(
                id=legacy_flight_id(trip_id),
                segment="auto",
                **old.model_dump(exclude_none=True),
            )
        ]

    if migrated:
        logger.info(f"Migrated legacy flights for {len(migrated)} trips")
    return migrated


def _decode_list(value: Any, model: Type[M], field_name: str) -> Optional[List[M]]:
    if not isinstance(value, list):
        if value is not None:
            logger.warning(f"Ignoring malformed '{field_name}' (expected a list)")
        return None

    items: List[M] = []
    for index, item in enumerate(value):
        try:
            items.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Dropping malformed {field_name}[{index}]: {e.error_count()} errors")
    return items


def _decode_collection(value: Any, model: Type[M], field_name: str) -> Optional[Dict[str, List[M]]]:
    if not isinstance(value, dict):
        if value is not None:
            logger.warning(f"Ignoring malformed '{field_name}' (expected an object)")
        return None

    decoded: Dict[str, List[M]] = {}
    for trip_id, items in value.items():
        entries = _decode_list(items, model, f"{field_name}.{trip_id}")
        if entries is not None:
            decoded[trip_id] = entries
    return decoded


def _decode_itinerary(value: Any) -> Optional[Dict[str, List[ItineraryDay]]]:
    if not isinstance(value, dict):
        if value is not None:
            logger.warning("Ignoring malformed 'itineraryByTripId' (expected an object)")
        return None

    decoded: Dict[str, List[ItineraryDay]] = {}
    for trip_id, days in value.items():
        if not isinstance(days, list):
            logger.warning(f"Ignoring malformed itinerary for trip '{trip_id}'")
            continue
        decoded[trip_id] = [day for day in (_decode_day(d, trip_id) for d in days) if day is not None]
    return decoded


def _decode_day(value: Any, trip_id: str) -> Optional[ItineraryDay]:
    """Events are decoded one by one so a bad event does not cost the whole day."""
    if not isinstance(value, dict):
        return None
    events = _decode_list(value.get("events"), ItineraryEvent, f"itinerary.{trip_id}.events") or []
    try:
        return ItineraryDay.model_validate({**value, "events": events})
    except ValidationError as e:
        logger.warning(f"Dropping malformed itinerary day in trip '{trip_id}': {e.error_count()} errors")
        return None


def _dedupe_trips(trips: List[Trip]) -> List[Trip]:
    seen = set()
    unique = []
    for trip in trips:
        if trip.id in seen:
            continue
        seen.add(trip.id)
        unique.append(trip)
    return unique
