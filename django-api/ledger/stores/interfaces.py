"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Every mutating service
operation runs inside ``atomic()``; nested calls join the outer transaction.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from contextlib import AbstractContextManager
from datetime import date
from decimal import Decimal

from ledger.domain import (
    CancelledSeatSale,
    Installment,
    InstallmentDraft,
    InstallmentPlan,
    Lifecycle,
    OrderId,
    OrderTotals,
    Passenger,
    PassengerId,
    SaleSnapshot,
    Seat,
    SeatSale,
    SeatStatus,
    ServiceLine,
    ServiceLineDraft,
    ServiceLineId,
    TicketOrder,
    Trip,
    TripId,
)


class TransactionalStore(ABC):
    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Open (or join) a bounded database transaction.

        Raises LedgerUnavailableError on timeout or connection loss, after
        rolling the whole transaction back.
        """
        ...


class InventoryStore(TransactionalStore):
    """Interface for trips, seat maps and seat sales."""

    @abstractmethod
    def create_trip(self, name: str, owner_id: str, departs_on: date | None) -> Trip:
        ...

    @abstractmethod
    def get_trip(self, trip_id: TripId) -> Trip | None:
        """Return a trip by ID, or None if not found."""
        ...

    @abstractmethod
    def list_active_trips(self) -> list[Trip]:
        ...

    @abstractmethod
    def set_trip_lifecycle(self, trip_id: TripId, lifecycle: Lifecycle) -> None:
        ...

    @abstractmethod
    def count_seats(self, trip_id: TripId) -> int:
        ...

    @abstractmethod
    def create_seats(self, trip_id: TripId, count: int) -> list[Seat]:
        """Create seats numbered 1..count, all Free."""
        ...

    @abstractmethod
    def get_seat(self, trip_id: TripId, number: int) -> Seat | None:
        ...

    @abstractmethod
    def lock_seat(self, trip_id: TripId, number: int) -> Seat | None:
        """Re-read a seat holding its row lock until the transaction ends."""
        ...

    @abstractmethod
    def list_seats(self, trip_id: TripId, status: SeatStatus | None = None) -> list[Seat]:
        """Return the seat map ordered by seat number."""
        ...

    @abstractmethod
    def claim_seat(self, trip_id: TripId, number: int, snapshot: SaleSnapshot) -> bool:
        """Flip a Free seat to Sold with the snapshot.

        Returns False when the seat was no longer Free.
        """
        ...

    @abstractmethod
    def release_seat(self, trip_id: TripId, number: int) -> bool:
        """Flip a Sold seat back to Free, clearing the snapshot.

        Returns False when the seat was not Sold.
        """
        ...

    @abstractmethod
    def insert_sale(self, sale: SeatSale) -> SeatSale:
        """Persist a sale. Raises SeatAlreadySoldError if the seat already has one."""
        ...

    @abstractmethod
    def delete_sales(self, trip_id: TripId, number: int) -> list[SeatSale]:
        """Delete and return the sales recorded for a seat."""
        ...

    @abstractmethod
    def list_sales(self, trip_id: TripId, number: int | None = None) -> list[SeatSale]:
        ...

    @abstractmethod
    def record_cancellation(self, cancellation: CancelledSeatSale) -> None:
        ...

    @abstractmethod
    def list_cancellations(
        self, trip_id: TripId, number: int | None = None
    ) -> list[CancelledSeatSale]:
        """Return cancelled sales, most recent first."""
        ...


class OrderStore(TransactionalStore):
    """Interface for ticket orders, their passengers, service lines and plan."""

    @abstractmethod
    def insert_order(self, client_ref: str, deposit: Decimal, created_by: str) -> OrderId:
        ...

    @abstractmethod
    def get_order(self, order_id: OrderId) -> TicketOrder | None:
        """Return the order with passengers, service lines and installments."""
        ...

    @abstractmethod
    def list_active_orders(self) -> list[TicketOrder]:
        ...

    @abstractmethod
    def lock_order(self, order_id: OrderId) -> bool:
        """Hold the order row lock until the transaction ends; False if it does not exist."""
        ...

    @abstractmethod
    def set_order_lifecycle(self, order_id: OrderId, lifecycle: Lifecycle) -> None:
        ...

    @abstractmethod
    def set_deposit(self, order_id: OrderId, deposit: Decimal) -> None:
        ...

    @abstractmethod
    def write_totals(self, order_id: OrderId, totals: OrderTotals) -> None:
        """Persist order aggregates. Only the order recompute may call this."""
        ...

    @abstractmethod
    def insert_passenger(self, order_id: OrderId, name: str) -> Passenger:
        ...

    @abstractmethod
    def get_passenger(self, passenger_id: PassengerId) -> Passenger | None:
        ...

    @abstractmethod
    def count_passengers(self, order_id: OrderId) -> int:
        ...

    @abstractmethod
    def delete_passenger(self, passenger_id: PassengerId) -> None:
        ...

    @abstractmethod
    def insert_service_line(
        self, order_id: OrderId, passenger_id: PassengerId, draft: ServiceLineDraft
    ) -> ServiceLine:
        ...

    @abstractmethod
    def get_service_line(self, line_id: ServiceLineId) -> ServiceLine | None:
        ...

    @abstractmethod
    def save_service_line(self, line: ServiceLine) -> ServiceLine:
        """Write every mutable field of an existing line."""
        ...

    @abstractmethod
    def replace_installments(
        self, order_id: OrderId, drafts: Sequence[InstallmentDraft]
    ) -> InstallmentPlan:
        """Delete the current plan and insert drafts numbered 1..n."""
        ...

    @abstractmethod
    def get_installments(self, order_id: OrderId) -> InstallmentPlan:
        ...

    @abstractmethod
    def mark_installment_paid(self, order_id: OrderId, number: int) -> Installment | None:
        """Set the paid flag, or return None if the installment does not exist."""
        ...


class AuditStore(ABC):
    """Read-only access for the consistency auditor."""

    @abstractmethod
    def iter_sales_with_parents(self) -> Iterator[tuple[SeatSale, Trip | None, Seat | None]]:
        """Yield every sale with its trip and seat, None where they do not resolve."""
        ...

    @abstractmethod
    def iter_sold_seats_without_sale(self) -> Iterator[Seat]:
        ...

    @abstractmethod
    def iter_orders(self) -> Iterator[TicketOrder]:
        """Yield every order, archived ones included."""
        ...
