"""
Flight Lookup Service - Resolves scheduled flight details through FlightAPI.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional

import httpx

from trip_planner.config.settings import FlightLookupSettings, get_settings
from trip_planner.core.exceptions import ErrorCode, ExternalServiceError
from trip_planner.schemas.trip import FlightDraft, FlightSegment

logger = logging.getLogger(__name__)

AIRLINE_OPTIONS = [
    ("American Airlines", "AA"),
    ("Delta Air Lines", "DL"),
    ("United Airlines", "UA"),
    ("Southwest Airlines", "WN"),
    ("JetBlue", "B6"),
    ("Alaska Airlines", "AS"),
    ("Air Canada", "AC"),
    ("British Airways", "BA"),
    ("Lufthansa", "LH"),
    ("Air France", "AF"),
    ("KLM", "KL"),
    ("Emirates", "EK"),
    ("Qatar Airways", "QR"),
    ("Turkish Airlines", "TK"),
    ("Singapore Airlines", "SQ"),
    ("Cathay Pacific", "CX"),
    ("ANA", "NH"),
    ("Japan Airlines", "JL"),
    ("Ryanair", "FR"),
    ("easyJet", "U2"),
    ("Vueling", "VY"),
    ("Iberia", "IB"),
    ("TAP Air Portugal", "TP"),
    ("Aer Lingus", "EI"),
    ("Spirit Airlines", "NK"),
    ("Frontier Airlines", "F9"),
    ("Avianca", "AV"),
    ("LATAM", "LA"),
    ("VivaAerobus", "VB"),
    ("IndiGo", "6E"),
]

_IATA_TOKEN = re.compile(r"\b[A-Z0-9]{2,3}\b")
_DATE_PART = re.compile(r"^(\d{4}-\d{2}-\d{2})")
_TIME_PART = re.compile(r"T(\d{2}:\d{2})")


@dataclass
class FlightLookupResult:
    """Outcome of a lookup. ``found`` with ``incomplete`` means some fields are missing."""
    found: bool
    error: Optional[str] = None
    incomplete: bool = False
    departure_date: Optional[str] = None
    departure_time: Optional[str] = None
    arrival_date: Optional[str] = None
    arrival_time: Optional[str] = None
    airline: Optional[str] = None
    flight_number: Optional[str] = None
    from_: Optional[str] = None
    from_city: Optional[str] = None
    to: Optional[str] = None
    to_city: Optional[str] = None

    @classmethod
    def failure(cls, message: str) -> "FlightLookupResult":
        return cls(found=False, error=message)

    def to_flight_draft(self, segment: FlightSegment = "auto") -> Optional[FlightDraft]:
        """Pre-filled flight form; the caller confirms it before adding it to a trip."""
        if not self.found:
            return None
        return FlightDraft(
            segment=segment,
            departure_date=self.departure_date or "",
            departure_time=self.departure_time or "",
            arrival_date=self.arrival_date,
            arrival_time=self.arrival_time,
            airline=self.airline,
            flight_number=self.flight_number,
            from_=self.from_,
            from_city=self.from_city,
            to=self.to,
            to_city=self.to_city,
        )


def resolve_airline_iata(query: str) -> str:
    """
    Resolve an airline name or code to its IATA code

    Args:
        query: Airline as typed, e.g. "Delta Air Lines" or "dl"

    Returns:
        Upper-case IATA code, or "" if none can be found
    """
    needle = query.strip().lower()
    if not needle:
        return ""
    for name, iata in AIRLINE_OPTIONS:
        if name.lower() == needle or iata.lower() == needle:
            return iata
    for name, iata in AIRLINE_OPTIONS:
        if name.lower().startswith(needle):
            return iata
    match = _IATA_TOKEN.search(query.upper())
    return match.group(0) if match else ""


def _first_string(*values: Any) -> Optional[str]:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _match(pattern: re.Pattern, value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    found = pattern.search(value)
    return found.group(1) if found else None


class FlightLookupService:
    """Looks up a scheduled flight by airline, number and date. Never raises."""

    def __init__(
        self,
        settings: Optional[FlightLookupSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings().flight_lookup
        self.api_url = self.settings.api_url.rstrip("/")
        self.api_key = self.settings.api_key
        self.timeout = self.settings.timeout_seconds
        self._transport = transport

    async def lookup(
        self,
        airline: str,
        flight_number: str,
        flight_date: str,
        airline_iata: Optional[str] = None,
    ) -> FlightLookupResult:
        """
        Look up a flight

        Args:
            airline: Airline name or code as typed
            flight_number: Flight number; only its digits are used
            flight_date: Departure day, YYYY-MM-DD
            airline_iata: Explicit IATA code, overrides ``airline`` resolution

        Returns:
            FlightLookupResult describing what was found, or why not
        """
        if not self.api_key:
            return FlightLookupResult.failure(
                "Missing flight API key. Set FLIGHT_LOOKUP_API_KEY and try again."
            )

        iata = (airline_iata or resolve_airline_iata(airline)).upper()
        number = re.sub(r"[^0-9]", "", flight_number)
        flight_date = flight_date.strip()
        if not iata or not number or not flight_date:
            return FlightLookupResult.failure(
                "Please enter an airline, flight number, and flight day (YYYY-MM-DD)."
            )

        try:
            legs = await self._fetch(iata, number, flight_date)
        except ExternalServiceError as e:
            logger.warning(f"Flight lookup for {iata}{number} on {flight_date} failed: {e.message}")
            if e.error_code == ErrorCode.FLIGHT_NOT_FOUND:
                return FlightLookupResult.failure(
                    "No matching flight found. Double-check the airline, flight number, and date."
                )
            return FlightLookupResult.failure(f"Flight lookup error: {e.message}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Flight lookup request failed: {e}")
            return FlightLookupResult.failure("Flight lookup failed. Please try again.")

        return self._build_result(legs, iata, number, airline)

    async def _fetch(self, iata: str, number: str, flight_date: str) -> List[Any]:
        url = f"{self.api_url}/airline/{self.api_key}"
        params = {"num": number, "name": iata, "date": flight_date.replace("-", "")}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(url, params=params)

        payload = response.json()
        if response.status_code != 200:
            message = payload.get("message") if isinstance(payload, dict) else None
            raise ExternalServiceError(
                "flight_lookup",
                message if isinstance(message, str) else "Request failed.",
                error_code=ErrorCode.FLIGHT_LOOKUP_FAILED,
                details={"status_code": response.status_code},
            )
        if not isinstance(payload, list) or not payload:
            raise ExternalServiceError(
                "flight_lookup",
                "No matching flight",
                error_code=ErrorCode.FLIGHT_NOT_FOUND,
            )
        return payload

    def _build_result(self, legs: List[Any], iata: str, number: str, airline: str) -> FlightLookupResult:
        # Departure and arrival may arrive as separate list entries
        entries = [leg for leg in legs if isinstance(leg, dict)]
        departure = next((e["departure"] for e in entries if isinstance(e.get("departure"), dict)), None)
        arrival = next((e["arrival"] for e in entries if isinstance(e.get("arrival"), dict)), None)
        departure = departure or {}
        arrival = arrival or {}

        departs_at = _first_string(
            departure.get("departureDateTime"),
            departure.get("scheduledDateTime"),
            departure.get("estimatedDateTime"),
        )
        arrives_at = _first_string(
            arrival.get("arrivalDateTime"),
            arrival.get("scheduledDateTime"),
            arrival.get("estimatedDateTime"),
        )

        result = FlightLookupResult(
            found=True,
            departure_date=_match(_DATE_PART, departs_at),
            departure_time=_match(_TIME_PART, departs_at),
            arrival_date=_match(_DATE_PART, arrives_at),
            arrival_time=_match(_TIME_PART, arrives_at),
            # The API does not reliably return the airline name
            airline=airline.strip() or iata,
            flight_number=f"{iata}{number}",
            from_=_first_string(departure.get("airportCode")),
            from_city=_first_string(departure.get("airportCity")),
            to=_first_string(arrival.get("airportCode")),
            to_city=_first_string(arrival.get("airportCity")),
        )

        if not (result.departure_date and result.departure_time and result.from_ and result.to):
            result.incomplete = True
            result.error = "Found the flight, but some details were missing. Confirm them before saving."
        return result
