"""
Persisted store state and the legacy shapes it replaces
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from trip_planner.schemas.trip import (
    FlightInfo,
    ItineraryDay,
    JournalEntry,
    Trip,
    TripExpense,
)

SCHEMA_VERSION = 2


class TripsState(BaseModel):
    """Everything stored for one user, written back as a single blob"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    schema_version: int = SCHEMA_VERSION
    trips: List[Trip] = Field(default_factory=list)
    flights_by_trip_id: Dict[str, List[FlightInfo]] = Field(default_factory=dict)
    itinerary_by_trip_id: Dict[str, List[ItineraryDay]] = Field(default_factory=dict)
    expenses_by_trip_id: Dict[str, List[TripExpense]] = Field(default_factory=dict)
    journal_by_trip_id: Dict[str, List[JournalEntry]] = Field(default_factory=dict)

    def to_blob(self) -> str:
        """Serialize for durable storage."""
        return self.model_dump_json(by_alias=True, exclude_none=True)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class LegacyFlightInfo(BaseModel):
    """Single flight per trip, as persisted before trips could hold several"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    departure_date: str = ""
    departure_time: str = ""
    arrival_date: Optional[str] = None
    arrival_time: Optional[str] = None
    airline: Optional[str] = None
    flight_number: Optional[str] = None
    from_: Optional[str] = Field(default=None, alias="from")
    from_city: Optional[str] = None
    to: Optional[str] = None
    to_city: Optional[str] = None

    @field_validator("departure_date", "departure_time", mode="before")
    @classmethod
    def missing_is_blank(cls, v):
        return "" if v is None else v
