"""
Unit tests for caller-side input validation
"""
import pytest

from trip_planner.core.validation import (
    ValidationError,
    validate_currency,
    validate_destination,
    validate_expense_amount,
    validate_flight_draft,
    validate_iso_date,
    validate_journal_text,
    validate_trip_dates,
)
from trip_planner.schemas.trip import FlightDraft


class TestDates:

    def test_valid_date_is_trimmed(self):
        assert validate_iso_date(" 2024-06-01 ") == "2024-06-01"

    @pytest.mark.parametrize("value", ["", "06/01/2024", "2024-6-1", "2024-02-30", "2024-13-45", "2023-02-29"])
    def test_invalid_dates(self, value):
        with pytest.raises(ValidationError):
            validate_iso_date(value)

    def test_leap_day_is_a_real_date(self):
        assert validate_iso_date("2024-02-29") == "2024-02-29"

    def test_impossible_end_date_names_the_field(self):
        with pytest.raises(ValidationError, match="End date is not a real calendar date"):
            validate_trip_dates("2024-02-01", "2024-02-30")

    def test_trip_cannot_end_before_start(self):
        assert validate_trip_dates("2024-06-01", "2024-06-01") == ("2024-06-01", "2024-06-01")
        with pytest.raises(ValidationError, match="before start"):
            validate_trip_dates("2024-06-05", "2024-06-01")


class TestTripFields:

    def test_destination(self):
        assert validate_destination("  Lisbon ") == "Lisbon"
        with pytest.raises(ValidationError):
            validate_destination("   ")
        with pytest.raises(ValidationError):
            validate_destination("x" * 256)

    def test_flight_draft_requires_departure(self):
        ok = FlightDraft(departure_date="2024-06-01", departure_time="10:00")
        assert validate_flight_draft(ok) is ok

        with pytest.raises(ValidationError, match="Departure date and time are required."):
            validate_flight_draft(FlightDraft(departure_date="2024-06-01", departure_time=" "))

    def test_journal_text(self):
        assert validate_journal_text(" Day one ") == "Day one"
        with pytest.raises(ValidationError):
            validate_journal_text("  ")


class TestExpenses:

    @pytest.mark.parametrize("raw,expected", [("12.50", 12.5), (3, 3.0), (" 0.01 ", 0.01)])
    def test_valid_amounts(self, raw, expected):
        assert validate_expense_amount(raw) == expected

    @pytest.mark.parametrize("raw", ["", "abc", "0", "-4", "nan", "inf"])
    def test_invalid_amounts(self, raw):
        with pytest.raises(ValidationError, match="Please enter a valid amount."):
            validate_expense_amount(raw)

    def test_currency(self):
        assert validate_currency(" eur ") == "EUR"
        with pytest.raises(ValidationError, match="Currency is required."):
            validate_currency(None)
        with pytest.raises(ValidationError):
            validate_currency("EURO")
