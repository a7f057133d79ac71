"""
Derived views over trip store data.

Everything here is a pure function of its arguments. Functions that depend on
the current time accept ``now``/``today`` so callers and tests can pin them;
times are compared as naive local wall-clock values.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Dict, Iterable, List, Optional, Sequence, TypeVar, Union

from trip_planner.schemas.trip import FlightInfo, Trip, TripExpense

DEFAULT_CURRENCY = "USD"
EPOCH = date(1970, 1, 1)

_DATE_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_TIME_12H = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM)$", re.IGNORECASE)
_TIME_24H = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")
_CENTS = Decimal("0.01")
# Enough digits to add any finite float amounts exactly and keep their cents
_TOTALS_PRECISION = 800

F = TypeVar("F", bound=FlightInfo)


def _as_date(value: Union[date, datetime, None]) -> date:
    if value is None:
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    return value


def _as_local_naive(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.now()
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_trip_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a stored date string

    A leading YYYY-MM-DD is read as a local calendar date; anything else
    must be a full ISO timestamp.

    Returns:
        The calendar date, or None if the value cannot be read
    """
    if not value:
        return None
    match = _DATE_PREFIX.match(value)
    if match:
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            pass
    try:
        return datetime.fromisoformat(value.strip()).date()
    except ValueError:
        return None


def _parse_clock_time(value: str) -> Optional[tuple[int, int]]:
    value = value.strip()
    ampm = _TIME_12H.match(value)
    if ampm:
        hours, minutes = int(ampm.group(1)), int(ampm.group(2))
        meridiem = ampm.group(3).upper()
        if meridiem == "PM" and hours < 12:
            hours += 12
        if meridiem == "AM" and hours == 12:
            hours = 0
        return hours, minutes
    t24 = _TIME_24H.match(value)
    if t24:
        return int(t24.group(1)), int(t24.group(2))
    return None


def parse_flight_datetime(departure_date: str, departure_time: str) -> Optional[datetime]:
    """Combine a date and an "h:mm AM/PM" or "HH:MM" time into a local datetime."""
    day = parse_trip_date(departure_date)
    clock = _parse_clock_time(departure_time or "")
    if day is None or clock is None:
        return None
    try:
        return datetime(day.year, day.month, day.day, clock[0], clock[1])
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Flights
# ---------------------------------------------------------------------------

def infer_flight_segment(trip: Trip, departure_date: str) -> str:
    """
    Classify a flight by its departure day relative to the trip

    Returns:
        "going" on/before the start day, "return" on/after the end day,
        "mid" otherwise or when any date is unreadable
    """
    start = parse_trip_date(trip.start_date)
    end = parse_trip_date(trip.end_date)
    departure = parse_trip_date(departure_date)
    if start is None or end is None or departure is None:
        return "mid"
    if departure <= start:
        return "going"
    if departure >= end:
        return "return"
    return "mid"


def effective_flight_segment(trip: Trip, flight: FlightInfo) -> str:
    if flight.segment != "auto":
        return flight.segment
    return infer_flight_segment(trip, flight.departure_date)


def sort_flights_for_display(flights: Sequence[F], now: Optional[datetime] = None) -> List[F]:
    """
    Order flights for display

    Upcoming flights (departing at or after now) come first, soonest first;
    then past and undated flights, most recent first with undated last.
    """
    now = _as_local_naive(now)
    upcoming = []
    past = []
    for flight in flights:
        departs = parse_flight_datetime(flight.departure_date, flight.departure_time)
        if departs is not None and departs >= now:
            upcoming.append((departs, flight))
        else:
            past.append((departs, flight))

    upcoming.sort(key=lambda pair: pair[0])
    past.sort(key=lambda pair: pair[0] or datetime.min, reverse=True)
    return [f for _, f in upcoming] + [f for _, f in past]


def format_time_12h(value: Optional[str]) -> str:
    """Render "14:05" as "2:05 PM"; unrecognised values pass through trimmed."""
    if not value:
        return ""
    value = value.strip()
    ampm = _TIME_12H.match(value)
    if ampm:
        return f"{int(ampm.group(1))}:{ampm.group(2)} {ampm.group(3).upper()}"
    t24 = _TIME_24H.match(value)
    if not t24:
        return value
    hours = int(t24.group(1))
    meridiem = "PM" if hours >= 12 else "AM"
    hours = hours % 12 or 12
    return f"{hours}:{t24.group(2)} {meridiem}"


# ---------------------------------------------------------------------------
# Trips
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TripBuckets:
    upcoming: List[Trip]
    past: List[Trip]


def is_trip_past(trip: Trip, today: Union[date, datetime, None] = None) -> bool:
    """A trip is past once its end day is before today; ending today is still upcoming."""
    end = parse_trip_date(trip.end_date) or EPOCH
    return end < _as_date(today)


def bucket_trips(trips: Iterable[Trip], today: Union[date, datetime, None] = None) -> TripBuckets:
    """
    Split trips into upcoming (by start date, ascending) and past (by end
    date, most recently ended first). Unreadable dates sort as 1970-01-01.
    """
    today = _as_date(today)
    upcoming = []
    past = []
    for trip in trips:
        (past if is_trip_past(trip, today) else upcoming).append(trip)

    upcoming.sort(key=lambda t: parse_trip_date(t.start_date) or EPOCH)
    past.sort(key=lambda t: parse_trip_date(t.end_date) or EPOCH, reverse=True)
    return TripBuckets(upcoming=upcoming, past=past)


def days_until_trip(trip: Trip, today: Union[date, datetime, None] = None) -> int:
    """Whole days until the trip starts; 0 once started or if the date is unreadable."""
    start = parse_trip_date(trip.start_date)
    if start is None:
        return 0
    return max(0, (start - _as_date(today)).days)


# ---------------------------------------------------------------------------
# Expenses
# ---------------------------------------------------------------------------

def aggregate_expenses(expenses: Iterable[TripExpense]) -> Dict[str, Decimal]:
    """
    Total expense amounts per currency

    Returns:
        Currency code -> total rounded to cents, ordered by currency code.
        No expenses gives an empty mapping.
    """
    totals: Dict[str, Decimal] = {}
    with localcontext() as ctx:
        ctx.prec = _TOTALS_PRECISION
        for expense in expenses:
            currency = expense.currency.strip().upper() or DEFAULT_CURRENCY
            totals[currency] = totals.get(currency, Decimal("0")) + Decimal(str(expense.amount))
        return {
            currency: totals[currency].quantize(_CENTS, rounding=ROUND_HALF_UP)
            for currency in sorted(totals)
        }


def format_expense_totals(totals: Dict[str, Decimal]) -> str:
    """Render totals as '3.00 EUR | 15.00 USD', or '0' when there is nothing to total."""
    if not totals:
        return "0"
    return " | ".join(f"{amount:.2f} {currency}" for currency, amount in totals.items())
