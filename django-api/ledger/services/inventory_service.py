"""Trip and seat-map service.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors
"""

import logging
from datetime import date

from ledger.domain import Actor, Lifecycle, Seat, SeatCount, SeatStatus, Trip, TripId
from ledger.domain.errors import (
    InvalidRequestError,
    SeatNotFoundError,
    TripAlreadyProvisionedError,
    TripNotFoundError,
)
from ledger.domain.value_objects import parse_number
from ledger.stores.interfaces import InventoryStore

logger = logging.getLogger(__name__)


class InventoryService:
    """Trips and their fixed set of sellable seats."""

    def __init__(self, store: InventoryStore) -> None:
        self._store = store

    def create_trip(self, name: str, owner: Actor, departs_on: date | None = None) -> Trip:
        if not name or not name.strip():
            raise InvalidRequestError("Trip name is required")
        trip = self._store.create_trip(name.strip(), owner.id, departs_on)
        logger.info("Trip %s created by %s", trip.id, owner.id)
        return trip

    def get_trip(self, trip_id: str | TripId) -> Trip:
        """Return a trip by ID.

        Raises:
            InvalidIdentifierError: If trip_id is not a valid UUID.
            TripNotFoundError: If the trip does not exist.
        """
        tid = TripId.from_string(trip_id)
        trip = self._store.get_trip(tid)
        if trip is None:
            raise TripNotFoundError(tid)
        return trip

    def list_trips(self) -> list[Trip]:
        """Return active trips only."""
        return self._store.list_active_trips()

    def archive_trip(self, trip_id: str | TripId) -> Trip:
        trip = self.get_trip(trip_id)
        if trip.is_active:
            self._store.set_trip_lifecycle(trip.id, Lifecycle.ARCHIVED)
            logger.info("Trip %s archived", trip.id)
        return self.get_trip(trip.id)

    def provision_seats(self, trip_id: str | TripId, count: int) -> list[Seat]:
        """Create seats 1..count, all Free.

        Raises:
            InvalidSeatCountError: If count is not a positive integer.
            TripNotFoundError: If the trip does not exist.
            TripAlreadyProvisionedError: If the trip already has seats.
        """
        seat_count = SeatCount(count)
        trip = self.get_trip(trip_id)
        with self._store.atomic():
            existing = self._store.count_seats(trip.id)
            if existing:
                logger.warning("Trip %s already has %d seats", trip.id, existing)
                raise TripAlreadyProvisionedError(trip.id, existing)
            seats = self._store.create_seats(trip.id, seat_count.value)
        logger.info("Provisioned %d seats on trip %s", len(seats), trip.id)
        return seats

    def get_seat(self, trip_id: str | TripId, seat_number: object) -> Seat:
        tid = TripId.from_string(trip_id)
        number = parse_number(seat_number)
        seat = self._store.get_seat(tid, number)
        if seat is None:
            raise SeatNotFoundError(tid, number)
        return seat

    def list_seats(
        self, trip_id: str | TripId, status: SeatStatus | None = None
    ) -> list[Seat]:
        trip = self.get_trip(trip_id)
        return self._store.list_seats(trip.id, status)

    def available_seats(self, trip_id: str | TripId) -> list[Seat]:
        return self.list_seats(trip_id, SeatStatus.FREE)
