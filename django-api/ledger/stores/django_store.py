"""Django ORM implementation of the ledger stores."""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import date
from decimal import Decimal

from django.conf import settings
from django.db import (
    DataError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    connection,
    transaction,
)
from django.db.models import Exists, OuterRef
from django.utils import timezone

from ledger import models as orm
from ledger.domain import (
    ActivationState,
    Buyer,
    CancelledSeatSale,
    Installment,
    InstallmentDraft,
    InstallmentPlan,
    Lifecycle,
    Money,
    OrderId,
    OrderTotals,
    Passenger,
    PassengerId,
    PaymentState,
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
from ledger.domain.errors import (
    InvalidRequestError,
    LedgerUnavailableError,
    SeatAlreadySoldError,
    TripAlreadyProvisionedError,
)
from ledger.stores.interfaces import AuditStore, InventoryStore, OrderStore

logger = logging.getLogger(__name__)


def _apply_timeout(seconds: float) -> None:
    if connection.vendor != "postgresql" or not seconds:
        return
    millis = int(seconds * 1000)
    with connection.cursor() as cursor:
        cursor.execute(f"SET LOCAL statement_timeout = {millis}")
        cursor.execute(f"SET LOCAL lock_timeout = {millis}")


@contextmanager
def ledger_transaction(timeout_seconds: float | None = None) -> Iterator[None]:
    """Run the block in one transaction bounded by LEDGER_TRANSACTION_TIMEOUT_SECONDS.

    Nested blocks become savepoints of the outer transaction and keep its timeout.
    """
    if timeout_seconds is None:
        timeout_seconds = settings.LEDGER_TRANSACTION_TIMEOUT_SECONDS
    outermost = not connection.in_atomic_block
    try:
        with transaction.atomic():
            if outermost:
                _apply_timeout(timeout_seconds)
            yield
    except DataError as exc:
        logger.warning("Ledger transaction rolled back: value rejected by the database: %s", exc)
        raise InvalidRequestError("A value does not fit the ledger") from exc
    except (OperationalError, InterfaceError) as exc:
        logger.exception("Ledger transaction rolled back")
        raise LedgerUnavailableError(str(exc)) from exc


# ORM row -> domain model


def _buyer(row) -> Buyer:
    return Buyer(name=row.buyer_name, phone=row.buyer_phone, email=row.buyer_email)


def _trip(row: orm.Trip) -> Trip:
    return Trip(
        id=TripId(row.id),
        name=row.name,
        owner_id=row.owner_id,
        lifecycle=Lifecycle(row.lifecycle),
        created_at=row.created_at,
        departs_on=row.departs_on,
    )


def _seat(row: orm.Seat) -> Seat:
    snapshot = None
    if row.status == SeatStatus.SOLD.value:
        snapshot = SaleSnapshot(
            buyer=_buyer(row), price=Money(row.sale_price), sold_at=row.sold_at
        )
    return Seat(
        trip_id=TripId(row.trip_id),
        number=row.number,
        status=SeatStatus(row.status),
        snapshot=snapshot,
    )


def _sale(row: orm.SeatSale) -> SeatSale:
    return SeatSale(
        id=row.id,
        trip_id=TripId(row.trip_id),
        seat_number=row.seat_number,
        buyer=_buyer(row),
        price=Money(row.price),
        payment_method=row.payment_method,
        created_at=row.created_at,
        created_by=row.created_by,
    )


def _cancellation(row: orm.CancelledSeatSale) -> CancelledSeatSale:
    sale = SeatSale(
        id=row.sale_id,
        trip_id=TripId(row.trip_id),
        seat_number=row.seat_number,
        buyer=_buyer(row),
        price=Money(row.price),
        payment_method=row.payment_method,
        created_at=row.sold_at,
        created_by=row.sold_by,
    )
    return CancelledSeatSale(
        sale=sale, cancelled_at=row.cancelled_at, cancelled_by=row.cancelled_by
    )


def _line(row: orm.ServiceLine) -> ServiceLine:
    return ServiceLine(
        id=ServiceLineId(row.id),
        order_id=OrderId(row.order_id),
        passenger_id=PassengerId(row.passenger_id),
        service_type=row.service_type,
        neto=Money(row.neto),
        venduto=Money(row.venduto),
        payment_state=PaymentState(row.payment_state),
        paid_at=row.paid_at,
        activation_state=ActivationState(row.activation_state),
        activated_at=row.activated_at,
        acquisition_method=row.acquisition_method,
        iata=row.iata,
        departure_date=row.departure_date,
        return_date=row.return_date,
        notes=row.notes,
    )


def _passenger(row: orm.Passenger) -> Passenger:
    return Passenger(
        id=PassengerId(row.id),
        order_id=OrderId(row.order_id),
        name=row.name,
        service_lines=tuple(_line(line) for line in row.service_lines.all()),
    )


def _installment(row: orm.Installment) -> Installment:
    return Installment(
        order_id=OrderId(row.order_id),
        number=row.number,
        amount=Money(row.amount),
        due_date=row.due_date,
        paid=row.paid,
    )


def _order(row: orm.TicketOrder) -> TicketOrder:
    return TicketOrder(
        id=OrderId(row.id),
        client_ref=row.client_ref,
        totals=OrderTotals(
            net_cost=row.net_cost,
            total_sale_price=row.total_sale_price,
            deposit=row.deposit,
            balance_due=row.balance_due,
            agency_fee=row.agency_fee,
        ),
        lifecycle=Lifecycle(row.lifecycle),
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
        passengers=tuple(_passenger(p) for p in row.passengers.all()),
        installments=tuple(_installment(i) for i in row.installments.all()),
    )


class DjangoTransactionMixin:
    def atomic(self):
        return ledger_transaction()


class DjangoInventoryStore(DjangoTransactionMixin, InventoryStore):
    """PostgreSQL-backed seat inventory using Django ORM."""

    def create_trip(self, name: str, owner_id: str, departs_on: date | None) -> Trip:
        row = orm.Trip.objects.create(name=name, owner_id=owner_id, departs_on=departs_on)
        return _trip(row)

    def get_trip(self, trip_id: TripId) -> Trip | None:
        row = orm.Trip.objects.filter(pk=trip_id.value).first()
        return _trip(row) if row else None

    def list_active_trips(self) -> list[Trip]:
        return [_trip(row) for row in orm.Trip.objects.active()]

    def set_trip_lifecycle(self, trip_id: TripId, lifecycle: Lifecycle) -> None:
        orm.Trip.objects.filter(pk=trip_id.value).update(lifecycle=lifecycle.value)

    def count_seats(self, trip_id: TripId) -> int:
        return orm.Seat.objects.filter(trip_id=trip_id.value).count()

    def create_seats(self, trip_id: TripId, count: int) -> list[Seat]:
        try:
            with transaction.atomic():
                orm.Seat.objects.bulk_create(
                    orm.Seat(trip_id=trip_id.value, number=number)
                    for number in range(1, count + 1)
                )
        except IntegrityError:
            # another provisioning of the same trip committed first
            raise TripAlreadyProvisionedError(trip_id, self.count_seats(trip_id)) from None
        return self.list_seats(trip_id)

    def get_seat(self, trip_id: TripId, number: int) -> Seat | None:
        row = orm.Seat.objects.filter(trip_id=trip_id.value, number=number).first()
        return _seat(row) if row else None

    def lock_seat(self, trip_id: TripId, number: int) -> Seat | None:
        row = (
            orm.Seat.objects.select_for_update(of=("self",))
            .filter(trip_id=trip_id.value, number=number)
            .first()
        )
        return _seat(row) if row else None

    def list_seats(self, trip_id: TripId, status: SeatStatus | None = None) -> list[Seat]:
        rows = orm.Seat.objects.filter(trip_id=trip_id.value)
        if status is not None:
            rows = rows.filter(status=status.value)
        return [_seat(row) for row in rows.order_by("number")]

    def claim_seat(self, trip_id: TripId, number: int, snapshot: SaleSnapshot) -> bool:
        updated = orm.Seat.objects.filter(
            trip_id=trip_id.value, number=number, status=SeatStatus.FREE.value
        ).update(
            status=SeatStatus.SOLD.value,
            buyer_name=snapshot.buyer.name,
            buyer_phone=snapshot.buyer.phone,
            buyer_email=snapshot.buyer.email,
            sale_price=snapshot.price.amount,
            sold_at=snapshot.sold_at,
        )
        return updated == 1

    def release_seat(self, trip_id: TripId, number: int) -> bool:
        updated = orm.Seat.objects.filter(
            trip_id=trip_id.value, number=number, status=SeatStatus.SOLD.value
        ).update(
            status=SeatStatus.FREE.value,
            buyer_name="",
            buyer_phone=None,
            buyer_email=None,
            sale_price=None,
            sold_at=None,
        )
        return updated == 1

    def insert_sale(self, sale: SeatSale) -> SeatSale:
        try:
            with transaction.atomic():
                orm.SeatSale.objects.create(
                    id=sale.id,
                    trip_id=sale.trip_id.value,
                    seat_number=sale.seat_number,
                    buyer_name=sale.buyer.name,
                    buyer_phone=sale.buyer.phone,
                    buyer_email=sale.buyer.email,
                    price=sale.price.amount,
                    payment_method=sale.payment_method,
                    created_at=sale.created_at,
                    created_by=sale.created_by,
                )
        except IntegrityError:
            raise SeatAlreadySoldError(sale.seat_number) from None
        return sale

    def delete_sales(self, trip_id: TripId, number: int) -> list[SeatSale]:
        rows = orm.SeatSale.objects.filter(trip_id=trip_id.value, seat_number=number)
        sales = [_sale(row) for row in rows]
        rows.delete()
        return sales

    def list_sales(self, trip_id: TripId, number: int | None = None) -> list[SeatSale]:
        rows = orm.SeatSale.objects.filter(trip_id=trip_id.value)
        if number is not None:
            rows = rows.filter(seat_number=number)
        return [_sale(row) for row in rows.order_by("seat_number")]

    def record_cancellation(self, cancellation: CancelledSeatSale) -> None:
        sale = cancellation.sale
        orm.CancelledSeatSale.objects.create(
            sale_id=sale.id,
            trip_id=sale.trip_id.value,
            seat_number=sale.seat_number,
            buyer_name=sale.buyer.name,
            buyer_phone=sale.buyer.phone,
            buyer_email=sale.buyer.email,
            price=sale.price.amount,
            payment_method=sale.payment_method,
            sold_at=sale.created_at,
            sold_by=sale.created_by,
            cancelled_at=cancellation.cancelled_at,
            cancelled_by=cancellation.cancelled_by,
        )

    def list_cancellations(
        self, trip_id: TripId, number: int | None = None
    ) -> list[CancelledSeatSale]:
        rows = orm.CancelledSeatSale.objects.filter(trip_id=trip_id.value)
        if number is not None:
            rows = rows.filter(seat_number=number)
        return [_cancellation(row) for row in rows.order_by("-cancelled_at")]


class DjangoOrderStore(DjangoTransactionMixin, OrderStore):
    """PostgreSQL-backed ticket orders using Django ORM."""

    @staticmethod
    def _orders():
        return orm.TicketOrder.objects.prefetch_related(
            "passengers__service_lines", "installments"
        )

    def insert_order(self, client_ref: str, deposit: Decimal, created_by: str) -> OrderId:
        row = orm.TicketOrder.objects.create(
            client_ref=client_ref, deposit=deposit, created_by=created_by
        )
        return OrderId(row.id)

    def get_order(self, order_id: OrderId) -> TicketOrder | None:
        row = self._orders().filter(pk=order_id.value).first()
        return _order(row) if row else None

    def list_active_orders(self) -> list[TicketOrder]:
        return [_order(row) for row in self._orders().active()]

    def lock_order(self, order_id: OrderId) -> bool:
        row = (
            orm.TicketOrder.objects.select_for_update(of=("self",))
            .filter(pk=order_id.value)
            .only("id")
            .first()
        )
        return row is not None

    def set_order_lifecycle(self, order_id: OrderId, lifecycle: Lifecycle) -> None:
        orm.TicketOrder.objects.filter(pk=order_id.value).update(
            lifecycle=lifecycle.value, updated_at=timezone.now()
        )

    def set_deposit(self, order_id: OrderId, deposit: Decimal) -> None:
        orm.TicketOrder.objects.filter(pk=order_id.value).update(
            deposit=deposit, updated_at=timezone.now()
        )

    def write_totals(self, order_id: OrderId, totals: OrderTotals) -> None:
        orm.TicketOrder.objects.filter(pk=order_id.value).update(
            net_cost=totals.net_cost,
            total_sale_price=totals.total_sale_price,
            balance_due=totals.balance_due,
            agency_fee=totals.agency_fee,
            updated_at=timezone.now(),
        )

    def insert_passenger(self, order_id: OrderId, name: str) -> Passenger:
        row = orm.Passenger.objects.create(order_id=order_id.value, name=name)
        return Passenger(id=PassengerId(row.id), order_id=order_id, name=row.name)

    def get_passenger(self, passenger_id: PassengerId) -> Passenger | None:
        row = (
            orm.Passenger.objects.prefetch_related("service_lines")
            .filter(pk=passenger_id.value)
            .first()
        )
        return _passenger(row) if row else None

    def count_passengers(self, order_id: OrderId) -> int:
        return orm.Passenger.objects.filter(order_id=order_id.value).count()

    def delete_passenger(self, passenger_id: PassengerId) -> None:
        orm.Passenger.objects.filter(pk=passenger_id.value).delete()

    def insert_service_line(
        self, order_id: OrderId, passenger_id: PassengerId, draft: ServiceLineDraft
    ) -> ServiceLine:
        row = orm.ServiceLine.objects.create(
            order_id=order_id.value,
            passenger_id=passenger_id.value,
            service_type=draft.service_type,
            acquisition_method=draft.acquisition_method,
            iata=draft.iata,
            neto=draft.neto.amount,
            venduto=draft.venduto.amount,
            departure_date=draft.departure_date,
            return_date=draft.return_date,
            notes=draft.notes,
        )
        return _line(row)

    def get_service_line(self, line_id: ServiceLineId) -> ServiceLine | None:
        row = orm.ServiceLine.objects.filter(pk=line_id.value).first()
        return _line(row) if row else None

    def save_service_line(self, line: ServiceLine) -> ServiceLine:
        orm.ServiceLine.objects.filter(pk=line.id.value).update(
            service_type=line.service_type,
            acquisition_method=line.acquisition_method,
            iata=line.iata,
            neto=line.neto.amount,
            venduto=line.venduto.amount,
            departure_date=line.departure_date,
            return_date=line.return_date,
            payment_state=line.payment_state.value,
            paid_at=line.paid_at,
            activation_state=line.activation_state.value,
            activated_at=line.activated_at,
            notes=line.notes,
        )
        return self.get_service_line(line.id)

    def replace_installments(
        self, order_id: OrderId, drafts: Sequence[InstallmentDraft]
    ) -> InstallmentPlan:
        with self.atomic():
            orm.Installment.objects.filter(order_id=order_id.value).delete()
            orm.Installment.objects.bulk_create(
                orm.Installment(
                    order_id=order_id.value,
                    number=number,
                    amount=draft.amount.amount,
                    due_date=draft.due_date,
                )
                for number, draft in enumerate(drafts, start=1)
            )
        return self.get_installments(order_id)

    def get_installments(self, order_id: OrderId) -> InstallmentPlan:
        rows = orm.Installment.objects.filter(order_id=order_id.value).order_by("number")
        return InstallmentPlan(
            order_id=order_id, installments=tuple(_installment(row) for row in rows)
        )

    def mark_installment_paid(self, order_id: OrderId, number: int) -> Installment | None:
        row = orm.Installment.objects.filter(order_id=order_id.value, number=number).first()
        if row is None:
            return None
        row.paid = True
        row.save(update_fields=["paid"])
        return _installment(row)


class DjangoAuditStore(AuditStore):
    """Read-only queries backing the consistency auditor."""

    def iter_sales_with_parents(self) -> Iterator[tuple[SeatSale, Trip | None, Seat | None]]:
        trips = {row.id: _trip(row) for row in orm.Trip.objects.all()}
        seat_maps: dict = {}
        for row in orm.SeatSale.objects.order_by("trip_id", "seat_number"):
            if row.trip_id not in seat_maps:
                seat_maps[row.trip_id] = {
                    seat.number: _seat(seat)
                    for seat in orm.Seat.objects.filter(trip_id=row.trip_id)
                }
            yield _sale(row), trips.get(row.trip_id), seat_maps[row.trip_id].get(row.seat_number)

    def iter_sold_seats_without_sale(self) -> Iterator[Seat]:
        sales = orm.SeatSale.objects.filter(
            trip_id=OuterRef("trip_id"), seat_number=OuterRef("number")
        )
        rows = orm.Seat.objects.filter(status=SeatStatus.SOLD.value).filter(~Exists(sales))
        for row in rows.order_by("trip_id", "number"):
            yield _seat(row)

    def iter_orders(self) -> Iterator[TicketOrder]:
        rows = orm.TicketOrder.objects.prefetch_related(
            "passengers__service_lines", "installments"
        ).order_by("created_at")
        for row in rows:
            yield _order(row)
