"""
Trip Store - in-memory source of truth for one user's trips

Mutations apply to memory immediately and schedule a write-back of the full
state to durable storage. Writes are serialized, retried with exponential
backoff and never block the caller.
"""
import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Set

from trip_planner.core.exceptions import PersistenceError, StoreContextError, StoreNotReadyError
from trip_planner.core.identity import DEFAULT_NAMESPACE_PREFIX, resolve_namespace_key
from trip_planner.core.storage import StorageAdapter
from trip_planner.schemas.state import TripsState
from trip_planner.schemas.trip import (
    ExpenseDraft,
    FlightDraft,
    FlightInfo,
    ItineraryDay,
    ItineraryEvent,
    JournalEntry,
    Trip,
    TripExpense,
    generate_entity_id,
    trip_id_for,
)
from trip_planner.services.migration import decode_state

logger = logging.getLogger(__name__)


class HydrationStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    HYDRATING = "hydrating"
    HYDRATED = "hydrated"


def _clean(value: Optional[str]) -> Optional[str]:
    """Trimmed value, or None when nothing is left."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _flight_optionals(draft: FlightDraft) -> dict:
    return {
        "arrival_date": _clean(draft.arrival_date),
        "arrival_time": _clean(draft.arrival_time),
        "airline": _clean(draft.airline),
        "flight_number": _clean(draft.flight_number),
        "from_": _clean(draft.from_),
        "from_city": _clean(draft.from_city),
        "to": _clean(draft.to),
        "to_city": _clean(draft.to_city),
    }


class TripStore:
    """
    Per-user trip store.

    Call ``switch_user`` whenever the signed-in identity changes; the store
    rejects mutations until that hydration completes. Only the most recent
    ``switch_user`` call may install its result.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        namespace_prefix: str = DEFAULT_NAMESPACE_PREFIX,
        persist_max_attempts: int = 3,
        persist_backoff_seconds: float = 0.2,
        clock: Callable[[], datetime] = _local_now,
    ):
        self.storage = storage
        self.namespace_prefix = namespace_prefix
        self.persist_max_attempts = max(1, persist_max_attempts)
        self.persist_backoff_seconds = persist_backoff_seconds
        self.clock = clock
        self.last_persist_failed = False

        self._state = TripsState()
        self._status = HydrationStatus.UNINITIALIZED
        self._user_key: Optional[str] = None
        self._namespace_key: Optional[str] = None
        self._generation = 0
        self._write_lock = asyncio.Lock()
        self._pending_writes: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Hydration
    # ------------------------------------------------------------------

    @property
    def status(self) -> HydrationStatus:
        return self._status

    @property
    def is_hydrated(self) -> bool:
        return self._status is HydrationStatus.HYDRATED

    @property
    def user_key(self) -> Optional[str]:
        return self._user_key

    @property
    def namespace_key(self) -> Optional[str]:
        return self._namespace_key

    async def switch_user(self, user_key: Optional[str]) -> HydrationStatus:
        """
        Load the store for a new identity

        Args:
            user_key: Signed-in identity, None when signed out

        Returns:
            Status after this call; HYDRATING if a newer switch superseded it
        """
        if self._status is not HydrationStatus.UNINITIALIZED and user_key == self._user_key:
            return self._status

        self._generation += 1
        generation = self._generation
        namespace_key = resolve_namespace_key(user_key, self.namespace_prefix)

        self._user_key = user_key
        self._namespace_key = namespace_key
        self._status = HydrationStatus.HYDRATING
        self._state = TripsState()

        if namespace_key is None:
            self._status = HydrationStatus.HYDRATED
            logger.info("No signed-in identity, trip store reset to empty state")
            return self._status

        # earlier writes to the same key must land before it is read back
        await self._drain_writes()
        if generation != self._generation:
            return self._status

        try:
            raw = await self.storage.read(namespace_key)
        except Exception as e:
            logger.warning(f"Failed to read trip data for '{namespace_key}': {e}")
            raw = None

        if generation != self._generation:
            logger.info(f"Discarding superseded hydration for '{namespace_key}'")
            return self._status

        result = decode_state(raw)
        if raw is None:
            logger.info(f"No stored trip data for '{namespace_key}', starting empty")
        elif not result.ok:
            logger.warning(f"Unreadable trip data for '{namespace_key}' ({result.error}), starting empty")

        self._state = result.state
        self._status = HydrationStatus.HYDRATED
        logger.info(f"Hydrated '{namespace_key}' with {len(self._state.trips)} trips")
        return self._status

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _require_hydrated(self) -> None:
        if self._status is not HydrationStatus.HYDRATED:
            raise StoreNotReadyError(self._status.value)
        if self._namespace_key is not None:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                raise StoreContextError(
                    "Trip store mutations must run inside a running event loop",
                    details={"namespace_key": self._namespace_key},
                )

    def _commit(self) -> None:
        """Schedule a write-back of the full state."""
        if self._namespace_key is None:
            return
        task = asyncio.get_running_loop().create_task(
            self._persist(self._namespace_key, self._state.to_blob())
        )
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _persist(self, key: str, blob: str) -> None:
        async with self._write_lock:
            try:
                await self._write_with_retry(key, blob)
                self.last_persist_failed = False
            except PersistenceError as e:
                self.last_persist_failed = True
                logger.error(e.message)

    async def _write_with_retry(self, key: str, blob: str) -> None:
        for attempt in range(1, self.persist_max_attempts + 1):
            try:
                if await self.storage.write(key, blob):
                    return
                logger.warning(f"Write to '{key}' failed (attempt {attempt}/{self.persist_max_attempts})")
            except Exception as e:
                logger.warning(f"Write to '{key}' raised (attempt {attempt}/{self.persist_max_attempts}): {e}")

            if attempt < self.persist_max_attempts:
                await asyncio.sleep(self.persist_backoff_seconds * 2 ** (attempt - 1))

        raise PersistenceError(key, self.persist_max_attempts)

    async def _drain_writes(self) -> None:
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    async def flush(self) -> None:
        """Wait until every scheduled write has landed or given up."""
        await self._drain_writes()

    async def close(self) -> None:
        await self.flush()
        await self.storage.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def trips(self) -> List[Trip]:
        """Trips, most recently added first."""
        return list(self._state.trips)

    def get_trip(self, trip_id: str) -> Optional[Trip]:
        return next((t for t in self._state.trips if t.id == trip_id), None)

    def flights_for(self, trip_id: str) -> List[FlightInfo]:
        return list(self._state.flights_by_trip_id.get(trip_id, []))

    def itinerary_for(self, trip_id: str) -> List[ItineraryDay]:
        return list(self._state.itinerary_by_trip_id.get(trip_id, []))

    def expenses_for(self, trip_id: str) -> List[TripExpense]:
        return list(self._state.expenses_by_trip_id.get(trip_id, []))

    def journal_for(self, trip_id: str) -> List[JournalEntry]:
        return list(self._state.journal_by_trip_id.get(trip_id, []))

    def snapshot(self) -> TripsState:
        """Independent copy of the whole state."""
        return self._state.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Trips
    # ------------------------------------------------------------------

    def add_trip(self, destination: str, start_date: str, end_date: str) -> Trip:
        """
        Add a trip, or return the existing one with the same fields

        Returns:
            The stored trip
        """
        self._require_hydrated()
        trip_id = trip_id_for(destination, start_date, end_date)
        existing = self.get_trip(trip_id)
        if existing is not None:
            return existing

        trip = Trip(id=trip_id, destination=destination, start_date=start_date, end_date=end_date)
        self._state.trips = [trip, *self._state.trips]
        self._commit()
        return trip

    # ------------------------------------------------------------------
    # Flights
    # ------------------------------------------------------------------

    def add_flight(self, trip_id: str, draft: FlightDraft) -> FlightInfo:
        self._require_hydrated()
        flight = FlightInfo(
            id=generate_entity_id("flight"),
            segment=draft.segment,
            departure_date=draft.departure_date.strip(),
            departure_time=draft.departure_time.strip(),
            **_flight_optionals(draft),
        )
        flights = self._state.flights_by_trip_id
        flights[trip_id] = [*flights.get(trip_id, []), flight]
        self._commit()
        return flight

    def update_flight(self, trip_id: str, flight_id: str, draft: FlightDraft) -> Optional[FlightInfo]:
        """
        Replace a flight's fields

        Blank departure date/time keep their previous values; blank optional
        fields are cleared.

        Returns:
            Updated flight, or None if it does not exist
        """
        self._require_hydrated()
        current = self._state.flights_by_trip_id.get(trip_id, [])
        updated: Optional[FlightInfo] = None
        next_flights = []
        for flight in current:
            if flight.id == flight_id:
                flight = flight.model_copy(update={
                    "segment": draft.segment,
                    "departure_date": draft.departure_date.strip() or flight.departure_date,
                    "departure_time": draft.departure_time.strip() or flight.departure_time,
                    **_flight_optionals(draft),
                })
                updated = flight
            next_flights.append(flight)

        if updated is None:
            return None
        self._state.flights_by_trip_id[trip_id] = next_flights
        self._commit()
        return updated

    def delete_flight(self, trip_id: str, flight_id: str) -> None:
        self._require_hydrated()
        current = self._state.flights_by_trip_id.get(trip_id, [])
        remaining = [f for f in current if f.id != flight_id]
        if len(remaining) == len(current):
            return
        self._state.flights_by_trip_id[trip_id] = remaining
        self._commit()

    def clear_flights(self, trip_id: str) -> None:
        self._require_hydrated()
        if self._state.flights_by_trip_id.pop(trip_id, None) is not None:
            self._commit()

    # ------------------------------------------------------------------
    # Itinerary
    # ------------------------------------------------------------------

    def add_itinerary_day(self, trip_id: str, label: str) -> ItineraryDay:
        """Add a day; a blank label becomes "Day N" for the next position."""
        self._require_hydrated()
        days = self._state.itinerary_by_trip_id.get(trip_id, [])
        day = ItineraryDay(
            id=generate_entity_id("day"),
            label=label.strip() or f"Day {len(days) + 1}",
        )
        self._state.itinerary_by_trip_id[trip_id] = [*days, day]
        self._commit()
        return day

    def update_itinerary_day(self, trip_id: str, day_id: str, label: str) -> None:
        self._require_hydrated()
        new_label = label.strip()
        if not new_label:
            return
        self._replace_day(trip_id, day_id, lambda day: day.model_copy(update={"label": new_label}))

    def delete_itinerary_day(self, trip_id: str, day_id: str) -> None:
        """Remove a day together with its events."""
        self._require_hydrated()
        days = self._state.itinerary_by_trip_id.get(trip_id, [])
        remaining = [d for d in days if d.id != day_id]
        if len(remaining) == len(days):
            return
        self._state.itinerary_by_trip_id[trip_id] = remaining
        self._commit()

    def add_itinerary_event(
        self,
        trip_id: str,
        day_id: str,
        name: str,
        time: str,
        location: Optional[str] = None,
    ) -> Optional[ItineraryEvent]:
        """
        Add an event to a day

        Returns:
            The new event, or None if the day does not exist
        """
        self._require_hydrated()
        event = ItineraryEvent(
            id=generate_entity_id("event"),
            name=name.strip(),
            time=time.strip(),
            location=_clean(location),
        )
        found = self._replace_day(
            trip_id, day_id, lambda day: day.model_copy(update={"events": [*day.events, event]})
        )
        return event if found else None

    def update_itinerary_event(
        self,
        trip_id: str,
        day_id: str,
        event_id: str,
        name: str,
        time: str,
        location: Optional[str] = None,
    ) -> None:
        """Blank name/time keep their previous values; a blank location clears it."""
        self._require_hydrated()

        def apply(day: ItineraryDay) -> ItineraryDay:
            events = [
                e.model_copy(update={
                    "name": name.strip() or e.name,
                    "time": time.strip() or e.time,
                    "location": _clean(location),
                }) if e.id == event_id else e
                for e in day.events
            ]
            return day.model_copy(update={"events": events})

        self._replace_day(trip_id, day_id, apply, only_if=lambda day: any(e.id == event_id for e in day.events))

    def delete_itinerary_event(self, trip_id: str, day_id: str, event_id: str) -> None:
        self._require_hydrated()
        self._replace_day(
            trip_id,
            day_id,
            lambda day: day.model_copy(update={"events": [e for e in day.events if e.id != event_id]}),
            only_if=lambda day: any(e.id == event_id for e in day.events),
        )

    def _replace_day(
        self,
        trip_id: str,
        day_id: str,
        apply: Callable[[ItineraryDay], ItineraryDay],
        only_if: Callable[[ItineraryDay], bool] = lambda day: True,
    ) -> bool:
        days = self._state.itinerary_by_trip_id.get(trip_id, [])
        target = next((d for d in days if d.id == day_id), None)
        if target is None or not only_if(target):
            return False
        self._state.itinerary_by_trip_id[trip_id] = [apply(d) if d.id == day_id else d for d in days]
        self._commit()
        return True

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def add_expense(self, trip_id: str, draft: ExpenseDraft) -> TripExpense:
        self._require_hydrated()
        created_at = self.clock().astimezone(timezone.utc)
        expense = TripExpense(
            id=generate_entity_id("expense"),
            name=draft.name.strip(),
            amount=draft.amount,
            currency=draft.currency.strip().upper(),
            is_split=draft.is_split,
            created_at=created_at.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        )
        expenses = self._state.expenses_by_trip_id
        expenses[trip_id] = [*expenses.get(trip_id, []), expense]
        self._commit()
        return expense

    def update_expense(self, trip_id: str, expense_id: str, draft: ExpenseDraft) -> Optional[TripExpense]:
        """Blank name/currency keep their previous values."""
        self._require_hydrated()
        current = self._state.expenses_by_trip_id.get(trip_id, [])
        updated: Optional[TripExpense] = None
        next_expenses = []
        for expense in current:
            if expense.id == expense_id:
                expense = expense.model_copy(update={
                    "name": draft.name.strip() or expense.name,
                    "amount": draft.amount,
                    "currency": draft.currency.strip().upper() or expense.currency,
                    "is_split": draft.is_split,
                })
                updated = expense
            next_expenses.append(expense)

        if updated is None:
            return None
        self._state.expenses_by_trip_id[trip_id] = next_expenses
        self._commit()
        return updated

    def delete_expense(self, trip_id: str, expense_id: str) -> None:
        self._require_hydrated()
        current = self._state.expenses_by_trip_id.get(trip_id, [])
        remaining = [e for e in current if e.id != expense_id]
        if len(remaining) == len(current):
            return
        self._state.expenses_by_trip_id[trip_id] = remaining
        self._commit()

    # ------------------------------------------------------------------
    # Journal
    # ------------------------------------------------------------------

    def add_journal_entry(self, trip_id: str, text: str, date: Optional[str] = None) -> JournalEntry:
        """Add an entry at the top of the journal; a blank date means today."""
        self._require_hydrated()
        entry = JournalEntry(
            id=generate_entity_id("journal"),
            date=_clean(date) or self.clock().date().isoformat(),
            text=text.strip(),
        )
        journal = self._state.journal_by_trip_id
        journal[trip_id] = [entry, *journal.get(trip_id, [])]
        self._commit()
        return entry

    def update_journal_entry(self, trip_id: str, entry_id: str, text: str) -> None:
        """Only the text changes; the entry keeps its date."""
        self._require_hydrated()
        new_text = text.strip()
        current = self._state.journal_by_trip_id.get(trip_id, [])
        if not new_text or not any(e.id == entry_id for e in current):
            return
        self._state.journal_by_trip_id[trip_id] = [
            e.model_copy(update={"text": new_text}) if e.id == entry_id else e for e in current
        ]
        self._commit()

    def delete_journal_entry(self, trip_id: str, entry_id: str) -> None:
        self._require_hydrated()
        current = self._state.journal_by_trip_id.get(trip_id, [])
        remaining = [e for e in current if e.id != entry_id]
        if len(remaining) == len(current):
            return
        self._state.journal_by_trip_id[trip_id] = remaining
        self._commit()
