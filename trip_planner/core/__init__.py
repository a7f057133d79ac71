"""
Core building blocks for the trip planner store: identity resolution,
durable storage adapters, exceptions and logging.
"""

from .exceptions import (
    ErrorCode,
    TripPlannerException,
    StoreNotReadyError,
    StoreContextError,
    PersistenceError,
    ExternalServiceError,
)
from .identity import DEFAULT_NAMESPACE_PREFIX, resolve_namespace_key, normalize_phone_number
from .storage import StorageAdapter, MemoryStorage, RedisStorage

__all__ = [
    "ErrorCode",
    "TripPlannerException",
    "StoreNotReadyError",
    "StoreContextError",
    "PersistenceError",
    "ExternalServiceError",
    "DEFAULT_NAMESPACE_PREFIX",
    "resolve_namespace_key",
    "normalize_phone_number",
    "StorageAdapter",
    "MemoryStorage",
    "RedisStorage",
]
