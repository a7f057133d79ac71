"""
Unit tests for flight schedule lookup
"""
import httpx
import pytest

from trip_planner.config.settings import FlightLookupSettings
from trip_planner.services.flight_lookup import (
    FlightLookupResult,
    FlightLookupService,
    resolve_airline_iata,
)

FLIGHT_RESPONSE = [
    {
        "departure": {
            "airportCode": "JFK",
            "airportCity": "New York",
            "scheduledDateTime": "2024-06-01T08:30:00.000",
        }
    },
    {
        "arrival": {
            "airportCode": "LHR",
            "airportCity": "London",
            "scheduledDateTime": "2024-06-01T20:45:00.000",
        }
    },
]


def make_service(handler, api_key="flight-key") -> FlightLookupService:
    return FlightLookupService(
        FlightLookupSettings(api_key=api_key),
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.parametrize("query,expected", [
    ("Delta Air Lines", "DL"),
    ("dl", "DL"),
    ("brit", "BA"),
    ("Some Carrier XQ", "XQ"),
    ("", ""),
])
def test_resolve_airline_iata(query, expected):
    assert resolve_airline_iata(query) == expected


@pytest.mark.asyncio
async def test_lookup_builds_complete_result():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=FLIGHT_RESPONSE)

    result = await make_service(handler).lookup("British Airways", "BA 0178", "2024-06-01")

    assert result.found
    assert not result.incomplete
    assert result.error is None
    assert result.departure_date == "2024-06-01"
    assert result.departure_time == "08:30"
    assert result.arrival_time == "20:45"
    assert result.flight_number == "BA0178"
    assert (result.from_, result.from_city, result.to, result.to_city) == ("JFK", "New York", "LHR", "London")

    request = requests[0]
    assert request.url.path == "/airline/flight-key"
    assert request.url.params["num"] == "0178"
    assert request.url.params["name"] == "BA"
    assert request.url.params["date"] == "20240601"


@pytest.mark.asyncio
async def test_result_converts_to_flight_draft():
    result = await make_service(lambda request: httpx.Response(200, json=FLIGHT_RESPONSE)).lookup(
        "BA", "178", "2024-06-01"
    )

    draft = result.to_flight_draft("going")

    assert draft.segment == "going"
    assert draft.departure_date == "2024-06-01"
    assert draft.from_ == "JFK"
    assert draft.to_city == "London"


@pytest.mark.asyncio
async def test_missing_fields_mark_result_incomplete():
    partial = [{"departure": {"airportCode": "JFK"}}]

    result = await make_service(lambda request: httpx.Response(200, json=partial)).lookup(
        "Delta", "1", "2024-06-01"
    )

    assert result.found
    assert result.incomplete
    assert result.error
    assert result.departure_date is None


@pytest.mark.asyncio
async def test_empty_response_is_not_found():
    result = await make_service(lambda request: httpx.Response(200, json=[])).lookup("DL", "1", "2024-06-01")

    assert not result.found
    assert "No matching flight" in result.error
    assert result.to_flight_draft() is None


@pytest.mark.asyncio
async def test_api_error_message_is_reported():
    response = httpx.Response(400, json={"message": "Invalid date"})

    result = await make_service(lambda request: response).lookup("DL", "1", "2024-06-01")

    assert not result.found
    assert result.error == "Flight lookup error: Invalid date"


@pytest.mark.asyncio
async def test_transport_error_is_reported():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    result = await make_service(handler).lookup("DL", "1", "2024-06-01")

    assert result == FlightLookupResult.failure("Flight lookup failed. Please try again.")


@pytest.mark.asyncio
async def test_missing_key_or_inputs_fail_without_request():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    no_key = await make_service(handler, api_key=None).lookup("DL", "1", "2024-06-01")
    no_number = await make_service(handler).lookup("DL", "abc", "2024-06-01")

    assert "Missing flight API key" in no_key.error
    assert not no_number.found
    assert "flight number" in no_number.error
