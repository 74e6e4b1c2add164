"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in ledger/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from ledger.domain.value_objects import (
    ActivationState,
    Buyer,
    Lifecycle,
    Money,
    OrderId,
    PassengerId,
    PaymentState,
    SeatStatus,
    ServiceLineId,
    TripId,
)


@dataclass(frozen=True)
class Trip:
    """A scheduled bus trip that owns a seat map."""

    id: TripId
    name: str
    owner_id: str
    lifecycle: Lifecycle
    created_at: datetime
    departs_on: date | None = None

    @property
    def is_active(self) -> bool:
        return self.lifecycle is Lifecycle.ACTIVE


@dataclass(frozen=True)
class SaleSnapshot:
    """Buyer data copied onto a Sold seat."""

    buyer: Buyer
    price: Money
    sold_at: datetime


@dataclass(frozen=True)
class Seat:
    """Domain representation of one sellable seat."""

    trip_id: TripId
    number: int
    status: SeatStatus
    snapshot: SaleSnapshot | None = None

    @property
    def is_free(self) -> bool:
        return self.status is SeatStatus.FREE


@dataclass(frozen=True)
class SeatSale:
    """Immutable record of a seat sale."""

    id: UUID
    trip_id: TripId
    seat_number: int
    buyer: Buyer
    price: Money
    payment_method: str
    created_at: datetime
    created_by: str


@dataclass(frozen=True)
class CancelledSeatSale:
    """A SeatSale removed by a cancel, kept as history."""

    sale: SeatSale
    cancelled_at: datetime
    cancelled_by: str


@dataclass(frozen=True)
class SeatRequest:
    """One seat in a group sale."""

    seat_number: int
    buyer: Buyer
    price: Money


@dataclass(frozen=True)
class ServiceLine:
    """One purchased service for one passenger."""

    id: ServiceLineId
    order_id: OrderId
    passenger_id: PassengerId
    service_type: str
    neto: Money
    venduto: Money
    payment_state: PaymentState = PaymentState.PENDING
    paid_at: datetime | None = None
    activation_state: ActivationState = ActivationState.INACTIVE
    activated_at: datetime | None = None
    acquisition_method: str | None = None
    iata: str | None = None
    departure_date: date | None = None
    return_date: date | None = None
    notes: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.payment_state is PaymentState.PAID

    @property
    def is_active(self) -> bool:
        return self.activation_state is ActivationState.ACTIVE

    @property
    def activated_before_payment(self) -> bool:
        return self.is_active and not self.is_paid

    @property
    def fee(self) -> Decimal:
        return self.venduto.amount - self.neto.amount


@dataclass(frozen=True)
class Passenger:
    id: PassengerId
    order_id: OrderId
    name: str
    service_lines: tuple[ServiceLine, ...] = ()


@dataclass(frozen=True)
class Installment:
    """One Cuota of an order's payment plan."""

    order_id: OrderId
    number: int
    amount: Money
    due_date: date | None
    paid: bool = False


@dataclass(frozen=True)
class InstallmentPlan:
    order_id: OrderId
    installments: tuple[Installment, ...] = ()

    @property
    def unpaid_total(self) -> Decimal:
        return sum((i.amount.amount for i in self.installments if not i.paid), Decimal("0.00"))

    def __len__(self) -> int:
        return len(self.installments)


@dataclass(frozen=True)
class OrderTotals:
    """Order-level aggregates derived from service lines and the deposit."""

    net_cost: Decimal
    total_sale_price: Decimal
    deposit: Decimal
    balance_due: Decimal
    agency_fee: Decimal


@dataclass(frozen=True)
class TicketOrder:
    """Domain representation of a ticket order and its passengers."""

    id: OrderId
    client_ref: str
    totals: OrderTotals
    lifecycle: Lifecycle
    created_by: str
    created_at: datetime
    updated_at: datetime
    passengers: tuple[Passenger, ...] = ()
    installments: tuple[Installment, ...] = ()

    @property
    def is_active(self) -> bool:
        return self.lifecycle is Lifecycle.ACTIVE

    @property
    def service_lines(self) -> tuple[ServiceLine, ...]:
        return tuple(line for p in self.passengers for line in p.service_lines)


@dataclass(frozen=True)
class ServiceLineDraft:
    """Input for a new service line."""

    service_type: str
    neto: Money
    venduto: Money
    acquisition_method: str | None = None
    iata: str | None = None
    departure_date: date | None = None
    return_date: date | None = None
    notes: str | None = None


@dataclass(frozen=True)
class PassengerDraft:
    name: str
    services: tuple[ServiceLineDraft, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class InstallmentDraft:
    amount: Money
    due_date: date | None = None
