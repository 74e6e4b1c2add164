"""Ticket order aggregate.

The order is the single writer of its aggregates: every change to a service
line amount, a passenger or the deposit ends in recompute_totals, which reads
the lines and writes the totals in one transaction.
"""

import logging
from collections.abc import Sequence
from datetime import date

from ledger.domain import (
    Actor,
    Lifecycle,
    Money,
    OrderId,
    OrderTotals,
    Passenger,
    PassengerDraft,
    PassengerId,
    ServiceLine,
    ServiceLineDraft,
    TicketOrder,
)
from ledger.domain.errors import (
    CannotRemoveLastPassengerError,
    InvalidRequestError,
    OrderArchivedError,
    OrderNotFoundError,
    PassengerHasPaidServicesError,
    PassengerNotFoundError,
)
from ledger.domain.totals import compute_totals, ensure_storable
from ledger.stores.interfaces import OrderStore

logger = logging.getLogger(__name__)


def _required_text(value: object, what: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequestError(f"{what} is required")
    return value.strip()


def service_line_draft(
    service_type: str,
    neto: object,
    venduto: object,
    acquisition_method: str | None = None,
    iata: str | None = None,
    departure_date: date | None = None,
    return_date: date | None = None,
    notes: str | None = None,
) -> ServiceLineDraft:
    """Build a ServiceLineDraft from raw input, parsing both amounts."""
    return ServiceLineDraft(
        service_type=_required_text(service_type, "Service type"),
        neto=Money.parse(neto, field="neto"),
        venduto=Money.parse(venduto, field="venduto"),
        acquisition_method=acquisition_method,
        iata=iata,
        departure_date=departure_date,
        return_date=return_date,
        notes=notes,
    )


class TicketOrderService:
    """Passengers, service lines and order-level totals of ticket orders."""

    def __init__(self, store: OrderStore) -> None:
        self._store = store

    def create_order(
        self,
        client_ref: str,
        passengers: Sequence[PassengerDraft],
        actor: Actor,
        deposit: object = 0,
    ) -> TicketOrder:
        """Create an order with at least one passenger and compute its totals."""
        ref = _required_text(client_ref, "Client reference")
        amount = Money.parse(deposit, field="deposit")
        if not passengers:
            raise InvalidRequestError("An order needs at least one passenger")
        drafts = [
            PassengerDraft(name=_required_text(p.name, "Passenger name"), services=tuple(p.services))
            for p in passengers
        ]

        with self._store.atomic():
            order_id = self._store.insert_order(ref, amount.amount, actor.id)
            for draft in drafts:
                passenger = self._store.insert_passenger(order_id, draft.name)
                for line in draft.services:
                    self._store.insert_service_line(order_id, passenger.id, line)
            self.recompute_totals(order_id)
        logger.info("Order %s created for %s by %s", order_id, ref, actor.id)
        return self.get_order(order_id)

    def get_order(self, order_id: str | OrderId) -> TicketOrder:
        """Return an order by ID, archived ones included.

        Raises:
            InvalidIdentifierError: If order_id is not a valid UUID.
            OrderNotFoundError: If the order does not exist.
        """
        oid = OrderId.from_string(order_id)
        order = self._store.get_order(oid)
        if order is None:
            raise OrderNotFoundError(oid)
        return order

    def list_orders(self) -> list[TicketOrder]:
        return self._store.list_active_orders()

    def recompute_totals(self, order_id: str | OrderId) -> OrderTotals:
        """Derive and persist the order aggregates from its service lines."""
        oid = OrderId.from_string(order_id)
        with self._store.atomic():
            order = self._store.get_order(oid)
            if order is None:
                raise OrderNotFoundError(oid)
            totals = ensure_storable(compute_totals(order.service_lines, order.totals.deposit))
            self._store.write_totals(oid, totals)
        logger.info(
            "Order %s totals: sale %s net %s fee %s balance %s",
            oid,
            totals.total_sale_price,
            totals.net_cost,
            totals.agency_fee,
            totals.balance_due,
        )
        return totals

    def set_deposit(self, order_id: str | OrderId, deposit: object) -> TicketOrder:
        amount = Money.parse(deposit, field="deposit")
        oid = OrderId.from_string(order_id)
        with self._store.atomic():
            order = self._lock_active(oid)
            self._store.set_deposit(order.id, amount.amount)
            self.recompute_totals(order.id)
        logger.info("Order %s deposit set to %s", order.id, amount)
        return self.get_order(order.id)

    def add_passenger(self, order_id: str | OrderId, name: str) -> Passenger:
        passenger_name = _required_text(name, "Passenger name")
        oid = OrderId.from_string(order_id)
        with self._store.atomic():
            order = self._lock_active(oid)
            passenger = self._store.insert_passenger(order.id, passenger_name)
        logger.info("Passenger %s added to order %s", passenger.id, order.id)
        return passenger

    def remove_passenger(self, passenger_id: str | PassengerId) -> None:
        """Remove a passenger and their unpaid service lines.

        Raises:
            CannotRemoveLastPassengerError: If the passenger is the only one.
            PassengerHasPaidServicesError: If any of their lines is paid.
        """
        pid = PassengerId.from_string(passenger_id)
        with self._store.atomic():
            order = self._lock_active(self._require_passenger(pid).order_id)
            # re-read under the order lock; a concurrent removal may have committed
            passenger = self._require_passenger(pid)
            if self._store.count_passengers(order.id) <= 1:
                raise CannotRemoveLastPassengerError(order.id)
            paid = [line for line in passenger.service_lines if line.is_paid]
            if paid:
                raise PassengerHasPaidServicesError(pid, len(paid))
            self._store.delete_passenger(pid)
            self.recompute_totals(order.id)
        logger.info("Passenger %s removed from order %s", pid, order.id)

    def add_service_line(
        self, passenger_id: str | PassengerId, draft: ServiceLineDraft
    ) -> ServiceLine:
        pid = PassengerId.from_string(passenger_id)
        with self._store.atomic():
            order = self._lock_active(self._require_passenger(pid).order_id)
            self._require_passenger(pid)
            line = self._store.insert_service_line(order.id, pid, draft)
            self.recompute_totals(order.id)
        logger.info("Service line %s added to passenger %s", line.id, pid)
        return line

    def archive_order(self, order_id: str | OrderId) -> TicketOrder:
        oid = OrderId.from_string(order_id)
        with self._store.atomic():
            if not self._store.lock_order(oid):
                raise OrderNotFoundError(oid)
            order = self.get_order(oid)
            if order.is_active:
                self._store.set_order_lifecycle(order.id, Lifecycle.ARCHIVED)
                logger.info("Order %s archived", order.id)
        return self.get_order(order.id)

    def require_active(self, order_id: str | OrderId) -> TicketOrder:
        """Return the order, refusing archived ones with OrderArchivedError."""
        order = self.get_order(order_id)
        if not order.is_active:
            raise OrderArchivedError(order.id)
        return order

    def _lock_active(self, order_id: OrderId) -> TicketOrder:
        """Lock the order row, then re-read it. Passenger and line changes serialize here."""
        if not self._store.lock_order(order_id):
            raise OrderNotFoundError(order_id)
        return self.require_active(order_id)

    def _require_passenger(self, passenger_id: PassengerId) -> Passenger:
        passenger = self._store.get_passenger(passenger_id)
        if passenger is None:
            raise PassengerNotFoundError(passenger_id)
        return passenger
