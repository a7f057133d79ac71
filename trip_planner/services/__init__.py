# Business logic services

from typing import Optional

from trip_planner.config.settings import Settings, StorageBackend, get_settings
from trip_planner.core.storage import MemoryStorage, RedisStorage, StorageAdapter

from .auth_session import AuthSession
from .derived_views import (
    TripBuckets,
    aggregate_expenses,
    bucket_trips,
    days_until_trip,
    effective_flight_segment,
    format_expense_totals,
    format_time_12h,
    infer_flight_segment,
    is_trip_past,
    parse_flight_datetime,
    parse_trip_date,
    sort_flights_for_display,
)
from .flight_lookup import FlightLookupResult, FlightLookupService, resolve_airline_iata
from .migration import DecodeResult, decode_state, migrate
from .photo_search import PhotoSearchService
from .trip_store import HydrationStatus, TripStore


# Factory functions for dependency injection
def create_storage(settings: Optional[Settings] = None) -> StorageAdapter:
    """Build the durable storage adapter selected by STORAGE_BACKEND."""
    settings = settings or get_settings()
    if settings.storage.backend == StorageBackend.REDIS:
        return RedisStorage.from_settings(settings.redis)
    return MemoryStorage()


def create_trip_store(
    settings: Optional[Settings] = None,
    storage: Optional[StorageAdapter] = None
) -> TripStore:
    settings = settings or get_settings()
    return TripStore(
        storage=storage or create_storage(settings),
        namespace_prefix=settings.storage.namespace_prefix,
        persist_max_attempts=settings.storage.persist_max_attempts,
        persist_backoff_seconds=settings.storage.persist_backoff_seconds,
    )


def create_auth_session(
    settings: Optional[Settings] = None,
    storage: Optional[StorageAdapter] = None
) -> AuthSession:
    settings = settings or get_settings()
    return AuthSession(storage or create_storage(settings), storage_key=settings.storage.auth_key)


def create_photo_search_service(settings: Optional[Settings] = None) -> PhotoSearchService:
    return PhotoSearchService((settings or get_settings()).photo_search)


def create_flight_lookup_service(settings: Optional[Settings] = None) -> FlightLookupService:
    return FlightLookupService((settings or get_settings()).flight_lookup)


__all__ = [
    "AuthSession",
    "DecodeResult",
    "FlightLookupResult",
    "FlightLookupService",
    "HydrationStatus",
    "PhotoSearchService",
    "TripBuckets",
    "TripStore",
    "aggregate_expenses",
    "bucket_trips",
    "create_auth_session",
    "create_flight_lookup_service",
    "create_photo_search_service",
    "create_storage",
    "create_trip_store",
    "days_until_trip",
    "decode_state",
    "effective_flight_segment",
    "format_expense_totals",
    "format_time_12h",
    "infer_flight_segment",
    "is_trip_past",
    "migrate",
    "parse_flight_datetime",
    "parse_trip_date",
    "resolve_airline_iata",
    "sort_flights_for_display",
]
