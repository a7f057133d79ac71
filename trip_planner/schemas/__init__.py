from .trip import (
    FLIGHT_SEGMENTS,
    ExpenseDraft,
    FlightDraft,
    FlightInfo,
    FlightSegment,
    ItineraryDay,
    ItineraryEvent,
    JournalEntry,
    Trip,
    TripExpense,
    generate_entity_id,
    trip_id_for,
)
from .state import SCHEMA_VERSION, LegacyFlightInfo, TripsState

__all__ = [
    "FLIGHT_SEGMENTS",
    "ExpenseDraft",
    "FlightDraft",
    "FlightInfo",
    "FlightSegment",
    "ItineraryDay",
    "ItineraryEvent",
    "JournalEntry",
    "Trip",
    "TripExpense",
    "generate_entity_id",
    "trip_id_for",
    "SCHEMA_VERSION",
    "LegacyFlightInfo",
    "TripsState",
]
