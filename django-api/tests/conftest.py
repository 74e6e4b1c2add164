"""Pytest configuration and shared fixtures."""

import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from rest_framework.test import APIClient

from ledger.domain import (
    Actor,
    Lifecycle,
    Role,
    SaleSnapshot,
    Seat,
    SeatStatus,
    Trip,
    TripId,
)
from ledger.domain.errors import SeatAlreadySoldError
from ledger.stores.interfaces import InventoryStore


class FakeClock:
    """Deterministic clock; call it like datetime.now."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class InMemoryInventoryStore(InventoryStore):
    """Thread-safe inventory store; a failed outer atomic() restores prior state."""

    def __init__(self, clock=None) -> None:
        self._lock = threading.RLock()
        self._depth = 0
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.trips = {}
        self.seats = {}
        self.sales = {}
        self.cancellations = []

    @contextmanager
    def atomic(self):
        with self._lock:
            saved = None
            if self._depth == 0:
                saved = (dict(self.trips), dict(self.seats), dict(self.sales), list(self.cancellations))
            self._depth += 1
            try:
                yield
            except BaseException:
                if saved is not None:
                    self.trips, self.seats, self.sales, self.cancellations = saved
                raise
            finally:
                self._depth -= 1

    def create_trip(self, name, owner_id, departs_on):
        trip = Trip(
            id=TripId.from_string(f"00000000-0000-4000-8000-{len(self.trips) + 1:012d}"),
            name=name,
            owner_id=owner_id,
            lifecycle=Lifecycle.ACTIVE,
            created_at=self._clock(),
            departs_on=departs_on,
        )
        self.trips[trip.id] = trip
        return trip

    def get_trip(self, trip_id):
        return self.trips.get(trip_id)

    def list_active_trips(self):
        return [t for t in self.trips.values() if t.is_active]

    def set_trip_lifecycle(self, trip_id, lifecycle):
        self.trips[trip_id] = replace(self.trips[trip_id], lifecycle=lifecycle)

    def count_seats(self, trip_id):
        return sum(1 for tid, _ in self.seats if tid == trip_id)

    def create_seats(self, trip_id, count):
        for number in range(1, count + 1):
            self.seats[(trip_id, number)] = Seat(trip_id=trip_id, number=number, status=SeatStatus.FREE)
        return self.list_seats(trip_id)

    def get_seat(self, trip_id, number):
        return self.seats.get((trip_id, number))

    def lock_seat(self, trip_id, number):
        return self.seats.get((trip_id, number))

    def list_seats(self, trip_id, status=None):
        seats = [s for (tid, _), s in self.seats.items() if tid == trip_id]
        if status is not None:
            seats = [s for s in seats if s.status is status]
        return sorted(seats, key=lambda s: s.number)

    def claim_seat(self, trip_id, number, snapshot: SaleSnapshot):
        seat = self.seats.get((trip_id, number))
        if seat is None or not seat.is_free:
            return False
        self.seats[(trip_id, number)] = replace(seat, status=SeatStatus.SOLD, snapshot=snapshot)
        return True

    def release_seat(self, trip_id, number):
        seat = self.seats.get((trip_id, number))
        if seat is None or seat.is_free:
            return False
        self.seats[(trip_id, number)] = replace(seat, status=SeatStatus.FREE, snapshot=None)
        return True

    def insert_sale(self, sale):
        key = (sale.trip_id, sale.seat_number)
        if key in self.sales:
            raise SeatAlreadySoldError(sale.seat_number)
        self.sales[key] = sale
        return sale

    def delete_sales(self, trip_id, number):
        sale = self.sales.pop((trip_id, number), None)
        return [sale] if sale else []

    def list_sales(self, trip_id, number=None):
        return sorted(
            (
                s
                for (tid, n), s in self.sales.items()
                if tid == trip_id and (number is None or n == number)
            ),
            key=lambda s: s.seat_number,
        )

    def record_cancellation(self, cancellation):
        self.cancellations.append(cancellation)

    def list_cancellations(self, trip_id, number=None):
        return [
            c
            for c in reversed(self.cancellations)
            if c.sale.trip_id == trip_id and (number is None or c.sale.seat_number == number)
        ]


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 2, 10, 2, tzinfo=timezone.utc))


@pytest.fixture
def memory_store(clock) -> InMemoryInventoryStore:
    return InMemoryInventoryStore(clock)


@pytest.fixture
def staff() -> Actor:
    return Actor(id="maria.staff")


@pytest.fixture
def other_staff() -> Actor:
    return Actor(id="luca.staff")


@pytest.fixture
def it_desk() -> Actor:
    return Actor(id="it.desk", role=Role.IT)


@pytest.fixture
def services(db, clock):
    from ledger.services import build_services

    return build_services(clock=clock)


@pytest.fixture
def trip(services, staff):
    """An active trip owned by staff with 40 Free seats."""
    trip = services.inventory.create_trip("Roma - Napoli", staff)
    services.inventory.provision_seats(trip.id, 40)
    return trip
