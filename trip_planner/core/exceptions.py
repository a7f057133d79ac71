"""
Custom exceptions for the trip planner store.

Runtime data problems (malformed blobs, failed reads) never surface as
exceptions; the classes below cover programming errors and failures that
collaborator clients map into result objects.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes for the application."""

    # Store lifecycle errors
    STORE_NOT_HYDRATED = "STORE_NOT_HYDRATED"
    NO_EVENT_LOOP = "NO_EVENT_LOOP"

    # Persistence errors
    PERSIST_FAILED = "PERSIST_FAILED"

    # Collaborator errors
    FLIGHT_LOOKUP_FAILED = "FLIGHT_LOOKUP_FAILED"
    FLIGHT_NOT_FOUND = "FLIGHT_NOT_FOUND"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class TripPlannerException(Exception):
    """Base exception for the trip planner store."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class StoreNotReadyError(TripPlannerException):
    """Raised when the store is mutated before hydration completes."""

    def __init__(self, status: str):
        super().__init__(
            message=f"Trip store is not hydrated (status: {status})",
            error_code=ErrorCode.STORE_NOT_HYDRATED,
            details={"status": status}
        )


class StoreContextError(TripPlannerException):
    """Raised when the store is used outside the context it requires."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.NO_EVENT_LOOP,
            details=details
        )


class PersistenceError(TripPlannerException):
    """Raised when a durable write could not be completed."""

    def __init__(self, key: str, attempts: int):
        super().__init__(
            message=f"Failed to persist '{key}' after {attempts} attempts",
            error_code=ErrorCode.PERSIST_FAILED,
            details={"key": key, "attempts": attempts}
        )


class ExternalServiceError(TripPlannerException):
    """Raised when a collaborator service call fails."""

    def __init__(
        self,
        service_name: str,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        merged = {"service_name": service_name}
        merged.update(details or {})
        super().__init__(message=message, error_code=error_code, details=merged)
        self.service_name = service_name
