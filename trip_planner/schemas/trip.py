"""
Trip entity schemas

Persisted JSON uses camelCase keys; Python code uses snake_case attributes.
Optional fields left unset are omitted from the persisted blob.
"""
import time
import uuid
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

FlightSegment = Literal["auto", "going", "mid", "return"]

FLIGHT_SEGMENTS = ("auto", "going", "mid", "return")


def generate_entity_id(prefix: str) -> str:
    """
    Generate an opaque id for a child entity

    Returns:
        Id such as "flight-1714554000123-3fa9c1"
    """
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


def trip_id_for(destination: str, start_date: str, end_date: str) -> str:
    """Trips are identified by their defining fields."""
    return f"{destination}|{start_date}|{end_date}"


class StoreModel(BaseModel):
    """Base for persisted entities"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class Trip(StoreModel):
    """A trip; its id never changes after creation"""
    id: str
    destination: str
    start_date: str
    end_date: str

    @model_validator(mode="before")
    @classmethod
    def derive_missing_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("id"):
            destination = data.get("destination")
            start = data.get("startDate", data.get("start_date"))
            end = data.get("endDate", data.get("end_date"))
            if all(isinstance(v, str) for v in (destination, start, end)):
                return {**data, "id": trip_id_for(destination, start, end)}
        return data


class FlightInfo(StoreModel):
    """A flight attached to a trip"""
    id: str
    segment: FlightSegment = "auto"
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

    @field_validator("segment", mode="before")
    @classmethod
    def unknown_segment_is_auto(cls, v):
        return v if v in FLIGHT_SEGMENTS else "auto"

    @field_validator("departure_date", "departure_time", mode="before")
    @classmethod
    def missing_departure_is_blank(cls, v):
        return "" if v is None else v


class ItineraryEvent(StoreModel):
    id: str
    name: str
    time: str
    location: Optional[str] = None


class ItineraryDay(StoreModel):
    id: str
    label: str
    events: List[ItineraryEvent] = Field(default_factory=list)


class TripExpense(StoreModel):
    """An expense; amount is stored exactly as the caller supplied it"""
    id: str
    name: str = ""
    amount: float = Field(allow_inf_nan=False)
    currency: str = "USD"
    is_split: bool = False
    created_at: str = ""


class JournalEntry(StoreModel):
    id: str
    date: str
    text: str


class DraftModel(BaseModel):
    """Caller input for add/update operations"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FlightDraft(DraftModel):
    segment: FlightSegment = "auto"
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


class ExpenseDraft(DraftModel):
    name: str = ""
    amount: float = Field(allow_inf_nan=False)
    currency: str = "USD"
    is_split: bool = False
