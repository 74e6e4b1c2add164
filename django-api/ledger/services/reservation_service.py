"""Seat sales and cancellations.

Every sell or cancel runs in one transaction: the seat row and its SeatSale
are always written together, so a Sold seat has exactly one sale record and a
Free seat has none.
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from uuid import uuid4

from ledger.domain import (
    Actor,
    Buyer,
    CancelledSeatSale,
    Money,
    SaleSnapshot,
    SeatRequest,
    SeatSale,
    Trip,
    TripId,
)
from ledger.domain.errors import (
    InvalidBuyerError,
    InvalidRequestError,
    NotAuthorizedError,
    SeatAlreadySoldError,
    SeatNotFoundError,
    SeatNotSoldError,
    TripArchivedError,
    TripNotFoundError,
)
from ledger.domain.value_objects import parse_number
from ledger.services.access_policy import AccessPolicy
from ledger.services.clock import Clock, utc_now
from ledger.stores.interfaces import InventoryStore

logger = logging.getLogger(__name__)


def _payment_method(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequestError("Payment method is required")
    return value.strip()


def _buyer(value: object) -> Buyer:
    if not isinstance(value, Buyer):
        raise InvalidBuyerError("Buyer details are required")
    return value


class SeatReservationService:
    """Sells and cancels seats of a trip's seat map."""

    def __init__(
        self, store: InventoryStore, access_policy: AccessPolicy, clock: Clock = utc_now
    ) -> None:
        self._store = store
        self._policy = access_policy
        self._clock = clock

    def sell(
        self,
        trip_id: str | TripId,
        seat_number: object,
        buyer: Buyer,
        price: object,
        payment_method: str,
        actor: Actor,
    ) -> SeatSale:
        """Sell one Free seat.

        Raises:
            TripNotFoundError / TripArchivedError: If the trip cannot sell.
            SeatNotFoundError: If the seat does not exist on the trip.
            SeatAlreadySoldError: If the seat is Sold, or another sale won the race.
        """
        tid = TripId.from_string(trip_id)
        number = parse_number(seat_number)
        amount = Money.parse(price, field="price")
        method = _payment_method(payment_method)
        request = SeatRequest(seat_number=number, buyer=_buyer(buyer), price=amount)

        try:
            with self._store.atomic():
                trip = self._require_selling_trip(tid)
                sale = self._sell_locked(trip, request, method, actor)
        except SeatAlreadySoldError:
            logger.warning("Seat %s on trip %s already sold", number, tid)
            raise
        logger.info("Seat %s on trip %s sold to %s by %s", number, tid, request.buyer.name, actor.id)
        return sale

    def sell_group(
        self,
        trip_id: str | TripId,
        requests: Sequence[SeatRequest],
        payment_method: str,
        actor: Actor,
    ) -> list[SeatSale]:
        """Sell several seats in one all-or-nothing transaction.

        Sales are returned in request order.
        """
        tid = TripId.from_string(trip_id)
        method = _payment_method(payment_method)
        if not requests:
            raise InvalidRequestError("A group sale needs at least one seat")
        normalized = [
            SeatRequest(
                seat_number=parse_number(r.seat_number),
                buyer=_buyer(r.buyer),
                price=Money.parse(r.price, field="price"),
            )
            for r in requests
        ]
        numbers = [r.seat_number for r in normalized]
        if len(set(numbers)) != len(numbers):
            raise InvalidRequestError("A seat appears twice in the group sale")

        sales: dict[int, SeatSale] = {}
        try:
            with self._store.atomic():
                trip = self._require_selling_trip(tid)
                # fixed lock order so overlapping groups cannot deadlock
                for request in sorted(normalized, key=lambda r: r.seat_number):
                    sales[request.seat_number] = self._sell_locked(trip, request, method, actor)
        except SeatAlreadySoldError as exc:
            logger.warning("Group sale on trip %s rejected: seat %s sold", tid, exc.seat_number)
            raise
        logger.info("Group sale of seats %s on trip %s by %s", numbers, tid, actor.id)
        return [sales[n] for n in numbers]

    def cancel(self, trip_id: str | TripId, seat_number: object, actor: Actor) -> None:
        """Return a Sold seat to Free and move its sale into the history.

        Raises:
            NotAuthorizedError: If the access policy refuses the actor.
            SeatNotFoundError: If the seat does not exist on the trip.
            SeatNotSoldError: If the seat is Free.
        """
        tid = TripId.from_string(trip_id)
        number = parse_number(seat_number)
        trip = self._store.get_trip(tid)
        if trip is None:
            raise TripNotFoundError(tid)
        if not self._policy.can_cancel_sale(actor, trip):
            logger.warning("Actor %s refused cancel of seat %s on trip %s", actor.id, number, tid)
            raise NotAuthorizedError(actor.id, f"cancel sales on trip {tid}")

        with self._store.atomic():
            seat = self._store.lock_seat(tid, number)
            if seat is None:
                raise SeatNotFoundError(tid, number)
            if seat.is_free or not self._store.release_seat(tid, number):
                raise SeatNotSoldError(number)
            cancelled_at = self._clock()
            for sale in self._store.delete_sales(tid, number):
                self._store.record_cancellation(
                    CancelledSeatSale(sale=sale, cancelled_at=cancelled_at, cancelled_by=actor.id)
                )
        logger.info("Seat %s on trip %s cancelled by %s", number, tid, actor.id)

    def sales_for_trip(self, trip_id: str | TripId) -> list[SeatSale]:
        return self._store.list_sales(TripId.from_string(trip_id))

    def sales_for_seat(self, trip_id: str | TripId, seat_number: object) -> list[SeatSale]:
        return self._store.list_sales(TripId.from_string(trip_id), parse_number(seat_number))

    def cancellation_history(
        self, trip_id: str | TripId, seat_number: object | None = None
    ) -> list[CancelledSeatSale]:
        number = None if seat_number is None else parse_number(seat_number)
        return self._store.list_cancellations(TripId.from_string(trip_id), number)

    def _require_selling_trip(self, trip_id: TripId) -> Trip:
        trip = self._store.get_trip(trip_id)
        if trip is None:
            raise TripNotFoundError(trip_id)
        if not trip.is_active:
            raise TripArchivedError(trip_id)
        return trip

    def _sell_locked(
        self, trip: Trip, request: SeatRequest, payment_method: str, actor: Actor
    ) -> SeatSale:
        seat = self._store.lock_seat(trip.id, request.seat_number)
        if seat is None:
            raise SeatNotFoundError(trip.id, request.seat_number)
        if not seat.is_free:
            sold_at = seat.snapshot.sold_at if seat.snapshot else None
            raise SeatAlreadySoldError(request.seat_number, sold_at)

        now: datetime = self._clock()
        snapshot = SaleSnapshot(buyer=request.buyer, price=request.price, sold_at=now)
        if not self._store.claim_seat(trip.id, request.seat_number, snapshot):
            raise SeatAlreadySoldError(request.seat_number)
        return self._store.insert_sale(
            SeatSale(
                id=uuid4(),
                trip_id=trip.id,
                seat_number=request.seat_number,
                buyer=request.buyer,
                price=request.price,
                payment_method=payment_method,
                created_at=now,
                created_by=actor.id,
            )
        )
