"""
Caller-side input validation.

The trip store only trims and normalizes what it is given; rejecting bad
input (missing departure, non-positive amounts) happens here, before the
store is invoked.
"""
import math
import re
from datetime import date
from typing import Optional, Union

from trip_planner.schemas.trip import FlightDraft

_ISO_DATE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
_CURRENCY = re.compile(r'^[A-Z]{3}$')


class ValidationError(Exception):
    """Custom validation error"""
    pass


def validate_iso_date(value: str, field_name: str = "Date") -> str:
    """
    Validate a calendar date in YYYY-MM-DD form

    Args:
        value: Date string
        field_name: Field name used in error messages

    Returns:
        Trimmed date string

    Raises:
        ValidationError: If the value is blank or not YYYY-MM-DD
    """
    value = value.strip()
    if not value:
        raise ValidationError(f"{field_name} is required")
    if not _ISO_DATE.match(value):
        raise ValidationError(f"{field_name} must be in YYYY-MM-DD format")
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{field_name} is not a real calendar date: {value}")
    return value


def validate_trip_dates(start_date: str, end_date: str) -> tuple[str, str]:
    """Both dates must be valid and the trip cannot end before it starts."""
    start = validate_iso_date(start_date, "Start date")
    end = validate_iso_date(end_date, "End date")
    if end < start:
        raise ValidationError("End date cannot be before start date")
    return start, end


def validate_destination(destination: str) -> str:
    destination = destination.strip()
    if not destination:
        raise ValidationError("Destination is required")
    if len(destination) > 255:
        raise ValidationError("Destination too long (max 255 characters)")
    return destination


def validate_flight_draft(draft: FlightDraft) -> FlightDraft:
    """
    Departure date and time are required before a flight reaches the store

    Raises:
        ValidationError: If either departure field is blank
    """
    if not draft.departure_date.strip() or not draft.departure_time.strip():
        raise ValidationError("Departure date and time are required.")
    return draft


def validate_expense_amount(amount: Union[str, float, int]) -> float:
    """
    Parse and validate an expense amount

    Args:
        amount: Raw amount, as typed or already numeric

    Returns:
        Amount as a float

    Raises:
        ValidationError: If the amount is not a finite positive number
    """
    try:
        value = float(str(amount).strip())
    except ValueError:
        raise ValidationError("Please enter a valid amount.")
    if not math.isfinite(value) or value <= 0:
        raise ValidationError("Please enter a valid amount.")
    return value


def validate_currency(currency: Optional[str]) -> str:
    code = (currency or "").strip().upper()
    if not code:
        raise ValidationError("Currency is required.")
    if not _CURRENCY.match(code):
        raise ValidationError(f"Invalid currency code '{code}' (expected 3 letters)")
    return code


def validate_journal_text(text: str) -> str:
    text = text.strip()
    if not text:
        raise ValidationError("Journal entry cannot be empty.")
    return text
