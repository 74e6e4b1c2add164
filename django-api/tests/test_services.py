"""Unit tests for the inventory and reservation services.

These run against an in-memory store and test error mapping and the
one-winner guarantee without a database.
Run with: pytest tests/test_services.py -v
"""

import threading
from dataclasses import replace
from decimal import Decimal

import pytest

from ledger.domain import Actor, Buyer, Money, Role, SeatRequest, SeatStatus
from ledger.domain.errors import (
    InvalidAmountError,
    InvalidIdentifierError,
    InvalidRequestError,
    InvalidSeatCountError,
    NotAuthorizedError,
    SeatAlreadySoldError,
    SeatNotFoundError,
    SeatNotSoldError,
    TripAlreadyProvisionedError,
    TripArchivedError,
    TripNotFoundError,
)
from ledger.services.access_policy import TripOwnerOrElevatedPolicy
from ledger.services.inventory_service import InventoryService
from ledger.services.reservation_service import SeatReservationService


@pytest.fixture
def inventory(memory_store):
    return InventoryService(memory_store)


@pytest.fixture
def reservations(memory_store, clock):
    return SeatReservationService(memory_store, TripOwnerOrElevatedPolicy(), clock)


@pytest.fixture
def bus(inventory, staff):
    trip = inventory.create_trip("Milano - Torino", staff)
    inventory.provision_seats(trip.id, 40)
    return trip


class TestInventoryService:
    """Tests for InventoryService."""

    def test_provision_creates_free_seats(self, inventory, staff):
        """Seats are numbered 1..count and all Free."""
        trip = inventory.create_trip("Bari - Lecce", staff)
        seats = inventory.provision_seats(trip.id, 3)
        assert [s.number for s in seats] == [1, 2, 3]
        assert all(s.status is SeatStatus.FREE for s in seats)

    def test_provision_twice_raises_error(self, inventory, bus):
        with pytest.raises(TripAlreadyProvisionedError) as exc_info:
            inventory.provision_seats(bus.id, 45)
        assert exc_info.value.existing == 40

    @pytest.mark.parametrize("count", [0, -1, "40"])
    def test_provision_rejects_bad_count(self, inventory, staff, count):
        trip = inventory.create_trip("Bari - Lecce", staff)
        with pytest.raises(InvalidSeatCountError):
            inventory.provision_seats(trip.id, count)
        assert inventory.list_seats(trip.id) == []

    def test_get_trip_invalid_id_raises_error(self, inventory):
        with pytest.raises(InvalidIdentifierError):
            inventory.get_trip("nope")

    def test_get_seat_not_found(self, inventory, bus):
        with pytest.raises(SeatNotFoundError):
            inventory.get_seat(bus.id, 41)

    def test_archived_trips_are_not_listed(self, inventory, bus):
        inventory.archive_trip(bus.id)
        assert inventory.list_trips() == []

    def test_available_seats_excludes_sold(self, inventory, reservations, bus, staff):
        reservations.sell(bus.id, 1, Buyer("Rossi"), "10", "cash", staff)
        available = inventory.available_seats(bus.id)
        assert len(available) == 39
        assert 1 not in {s.number for s in available}


class TestSell:
    """Tests for SeatReservationService.sell."""

    def test_sell_marks_seat_sold_and_records_sale(self, reservations, memory_store, bus, staff, clock):
        sale = reservations.sell(bus.id, 5, Buyer("Rossi", phone="333"), "85.00", "cash", staff)

        seat = memory_store.get_seat(bus.id, 5)
        assert seat.status is SeatStatus.SOLD
        assert seat.snapshot.buyer.name == "Rossi"
        assert seat.snapshot.price == Money(Decimal("85.00"))
        assert seat.snapshot.sold_at == clock.now
        assert sale.created_by == staff.id
        assert memory_store.list_sales(bus.id, 5) == [sale]

    def test_sell_sold_seat_names_time_of_sale(self, reservations, bus, staff, other_staff):
        reservations.sell(bus.id, 14, Buyer("Rossi"), "85", "cash", staff)
        with pytest.raises(SeatAlreadySoldError) as exc_info:
            reservations.sell(bus.id, 14, Buyer("Bianchi"), "85", "card", other_staff)
        assert exc_info.value.message == "Seat 14 already sold at 2026-03-02 10:02"

    def test_sell_unknown_seat(self, reservations, bus, staff):
        with pytest.raises(SeatNotFoundError):
            reservations.sell(bus.id, 99, Buyer("Rossi"), "85", "cash", staff)

    def test_sell_on_unknown_trip(self, reservations, staff):
        with pytest.raises(TripNotFoundError):
            reservations.sell("0c6f4bb4-6d1a-4a8a-9d8c-0d6a7d2f2d10", 1, Buyer("Rossi"), "85", "cash", staff)

    def test_sell_on_archived_trip(self, reservations, inventory, bus, staff):
        inventory.archive_trip(bus.id)
        with pytest.raises(TripArchivedError):
            reservations.sell(bus.id, 1, Buyer("Rossi"), "85", "cash", staff)

    @pytest.mark.parametrize("price", ["", "abc", "-1"])
    def test_sell_rejects_bad_price_before_touching_seat(self, reservations, memory_store, bus, staff, price):
        with pytest.raises(InvalidAmountError):
            reservations.sell(bus.id, 1, Buyer("Rossi"), price, "cash", staff)
        assert memory_store.get_seat(bus.id, 1).is_free

    def test_sell_requires_payment_method(self, reservations, bus, staff):
        with pytest.raises(InvalidRequestError):
            reservations.sell(bus.id, 1, Buyer("Rossi"), "85", " ", staff)

    def test_lost_race_on_conditional_write(self, reservations, memory_store, bus, staff, other_staff, monkeypatch):
        """A stale Free read still loses at the conditional write."""
        reservations.sell(bus.id, 7, Buyer("Rossi"), "85", "cash", staff)
        stale = replace(memory_store.get_seat(bus.id, 7), status=SeatStatus.FREE, snapshot=None)
        monkeypatch.setattr(memory_store, "lock_seat", lambda trip_id, number: stale)

        with pytest.raises(SeatAlreadySoldError):
            reservations.sell(bus.id, 7, Buyer("Bianchi"), "85", "card", other_staff)
        assert len(memory_store.list_sales(bus.id, 7)) == 1
        assert memory_store.get_seat(bus.id, 7).snapshot.buyer.name == "Rossi"

    def test_concurrent_sells_have_one_winner(self, reservations, memory_store, bus):
        """Concurrent sell of one free seat: exactly one success."""
        attempts = 8
        barrier = threading.Barrier(attempts)
        results = []
        results_lock = threading.Lock()

        def attempt(n):
            barrier.wait()
            try:
                reservations.sell(bus.id, 3, Buyer(f"Buyer {n}"), "20", "cash", Actor(id=f"clerk-{n}"))
                outcome = "sold"
            except SeatAlreadySoldError:
                outcome = "conflict"
            with results_lock:
                results.append(outcome)

        threads = [threading.Thread(target=attempt, args=(n,)) for n in range(attempts)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count("sold") == 1
        assert results.count("conflict") == attempts - 1
        assert len(memory_store.list_sales(bus.id, 3)) == 1


class TestSellGroup:
    def test_sells_all_seats_in_request_order(self, reservations, memory_store, bus, staff):
        requests = [
            SeatRequest(9, Buyer("Rossi"), Money.parse("50")),
            SeatRequest(2, Buyer("Rossi jr"), Money.parse("25")),
        ]
        sales = reservations.sell_group(bus.id, requests, "cash", staff)
        assert [s.seat_number for s in sales] == [9, 2]
        assert memory_store.get_seat(bus.id, 2).status is SeatStatus.SOLD

    def test_one_sold_seat_sells_nothing(self, reservations, memory_store, bus, staff):
        reservations.sell(bus.id, 4, Buyer("Verdi"), "30", "cash", staff)
        requests = [
            SeatRequest(3, Buyer("Rossi"), Money.parse("30")),
            SeatRequest(4, Buyer("Rossi jr"), Money.parse("30")),
        ]
        with pytest.raises(SeatAlreadySoldError):
            reservations.sell_group(bus.id, requests, "cash", staff)
        assert memory_store.get_seat(bus.id, 3).is_free
        assert memory_store.list_sales(bus.id, 3) == []

    def test_rejects_duplicates_and_empty(self, reservations, bus, staff):
        with pytest.raises(InvalidRequestError):
            reservations.sell_group(bus.id, [], "cash", staff)
        duplicate = [SeatRequest(1, Buyer("A"), Money.parse("1")), SeatRequest(1, Buyer("B"), Money.parse("1"))]
        with pytest.raises(InvalidRequestError):
            reservations.sell_group(bus.id, duplicate, "cash", staff)


class TestCancel:
    """Tests for SeatReservationService.cancel."""

    def test_cancel_frees_seat_and_keeps_history(self, reservations, memory_store, bus, staff):
        sale = reservations.sell(bus.id, 5, Buyer("Rossi"), "85", "cash", staff)
        reservations.cancel(bus.id, 5, staff)

        seat = memory_store.get_seat(bus.id, 5)
        assert seat.is_free and seat.snapshot is None
        assert memory_store.list_sales(bus.id, 5) == []
        history = reservations.cancellation_history(bus.id, 5)
        assert [c.sale for c in history] == [sale]
        assert history[0].cancelled_by == staff.id

    def test_cancel_then_sell_succeeds(self, reservations, bus, staff, other_staff):
        reservations.sell(bus.id, 5, Buyer("Rossi"), "85", "cash", staff)
        reservations.cancel(bus.id, 5, staff)
        sale = reservations.sell(bus.id, 5, Buyer("Bianchi"), "90", "card", other_staff)
        assert reservations.sales_for_seat(bus.id, 5) == [sale]

    def test_cancel_free_seat(self, reservations, bus, staff):
        with pytest.raises(SeatNotSoldError):
            reservations.cancel(bus.id, 1, staff)

    def test_cancel_by_other_staff_is_refused(self, reservations, memory_store, bus, staff, other_staff):
        reservations.sell(bus.id, 5, Buyer("Rossi"), "85", "cash", staff)
        with pytest.raises(NotAuthorizedError):
            reservations.cancel(bus.id, 5, other_staff)
        assert memory_store.get_seat(bus.id, 5).status is SeatStatus.SOLD

    def test_cancel_by_elevated_role(self, reservations, memory_store, bus, staff, it_desk):
        reservations.sell(bus.id, 5, Buyer("Rossi"), "85", "cash", staff)
        reservations.cancel(bus.id, 5, it_desk)
        assert memory_store.get_seat(bus.id, 5).is_free


class TestAccessPolicy:
    def test_configured_roles_only(self, bus):
        policy = TripOwnerOrElevatedPolicy(elevated_roles=[Role.ADMIN])
        assert policy.can_cancel_sale(Actor("boss", Role.ADMIN), bus)
        assert not policy.can_cancel_sale(Actor("it", Role.IT), bus)
        assert policy.can_cancel_sale(Actor(bus.owner_id), bus)
