"""Read-only consistency checks over the ledger.

The auditor never repairs anything: every inconsistency is returned as a
finding for staff to resolve through the normal service entry points.
"""

import logging
from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum

from ledger.domain import (
    InstallmentPlan,
    OrderId,
    OrderTotals,
    Seat,
    SeatSale,
    ServiceLine,
    TicketOrder,
    Trip,
)
from ledger.domain.totals import compute_totals
from ledger.stores.interfaces import AuditStore

logger = logging.getLogger(__name__)


class OrphanReason(Enum):
    MISSING_TRIP = "missing_trip"
    ARCHIVED_TRIP = "archived_trip"
    MISSING_SEAT = "missing_seat"
    SEAT_NOT_SOLD = "seat_not_sold"


@dataclass(frozen=True)
class OrphanSale:
    """A SeatSale that no longer matches a Sold seat of an active trip."""

    sale: SeatSale
    reason: OrphanReason


@dataclass(frozen=True)
class UnbackedSeat:
    """A Sold seat with no SeatSale behind it."""

    seat: Seat


@dataclass(frozen=True)
class OrphanOrderLine:
    """An unpaid line left on an archived order."""

    order_id: OrderId
    line: ServiceLine


@dataclass(frozen=True)
class TotalsDrift:
    order_id: OrderId
    stored: OrderTotals
    recomputed: OrderTotals

    @property
    def drifting_fields(self) -> list[str]:
        return [
            f.name
            for f in fields(OrderTotals)
            if getattr(self.stored, f.name) != getattr(self.recomputed, f.name)
        ]


@dataclass(frozen=True)
class InstallmentDrift:
    """Unpaid installments that no longer add up to the balance due."""

    order_id: OrderId
    balance_due: Decimal
    unpaid_installments: Decimal

    @property
    def difference(self) -> Decimal:
        return self.unpaid_installments - self.balance_due


@dataclass(frozen=True)
class ActivationAnomaly:
    """A line that was activated while still unpaid."""

    order_id: OrderId
    line: ServiceLine


@dataclass
class AuditReport:
    orphan_sales: list[OrphanSale] = field(default_factory=list)
    unbacked_seats: list[UnbackedSeat] = field(default_factory=list)
    orphan_order_lines: list[OrphanOrderLine] = field(default_factory=list)
    totals_drift: list[TotalsDrift] = field(default_factory=list)
    installment_drift: list[InstallmentDrift] = field(default_factory=list)
    activation_anomalies: list[ActivationAnomaly] = field(default_factory=list)

    def summary(self) -> dict[str, int]:
        return {f.name: len(getattr(self, f.name)) for f in fields(self)}

    @property
    def finding_count(self) -> int:
        return sum(self.summary().values())

    @property
    def is_clean(self) -> bool:
        return self.finding_count == 0


def _orphan_reason(trip: Trip | None, seat: Seat | None) -> OrphanReason | None:
    if trip is None:
        return OrphanReason.MISSING_TRIP
    if not trip.is_active:
        return OrphanReason.ARCHIVED_TRIP
    if seat is None:
        return OrphanReason.MISSING_SEAT
    if seat.is_free:
        return OrphanReason.SEAT_NOT_SOLD
    return None


def _totals_drift(order: TicketOrder) -> TotalsDrift | None:
    recomputed = compute_totals(order.service_lines, order.totals.deposit)
    if recomputed == order.totals:
        return None
    return TotalsDrift(order_id=order.id, stored=order.totals, recomputed=recomputed)


def _installment_drift(order: TicketOrder) -> InstallmentDrift | None:
    if not order.installments:
        return None
    unpaid = InstallmentPlan(order_id=order.id, installments=order.installments).unpaid_total
    if unpaid == order.totals.balance_due:
        return None
    return InstallmentDrift(
        order_id=order.id, balance_due=order.totals.balance_due, unpaid_installments=unpaid
    )


class ConsistencyAuditor:
    """Batch detector of orphaned sales and aggregate drift."""

    def __init__(self, store: AuditStore) -> None:
        self._store = store

    def find_orphan_sales(self) -> list[OrphanSale]:
        findings = []
        for sale, trip, seat in self._store.iter_sales_with_parents():
            reason = _orphan_reason(trip, seat)
            if reason is not None:
                findings.append(OrphanSale(sale=sale, reason=reason))
        return findings

    def find_unbacked_seats(self) -> list[UnbackedSeat]:
        return [UnbackedSeat(seat=seat) for seat in self._store.iter_sold_seats_without_sale()]

    def find_orphan_order_lines(self) -> list[OrphanOrderLine]:
        return [
            OrphanOrderLine(order_id=order.id, line=line)
            for order in self._store.iter_orders()
            if not order.is_active
            for line in order.service_lines
            if not line.is_paid
        ]

    def find_totals_drift(self) -> list[TotalsDrift]:
        drifts = (_totals_drift(order) for order in self._store.iter_orders())
        return [d for d in drifts if d is not None]

    def find_installment_drift(self) -> list[InstallmentDrift]:
        drifts = (_installment_drift(order) for order in self._store.iter_orders())
        return [d for d in drifts if d is not None]

    def find_activation_anomalies(self) -> list[ActivationAnomaly]:
        return [
            ActivationAnomaly(order_id=order.id, line=line)
            for order in self._store.iter_orders()
            for line in order.service_lines
            if line.activated_before_payment
        ]

    def run(self) -> AuditReport:
        report = AuditReport(
            orphan_sales=self.find_orphan_sales(),
            unbacked_seats=self.find_unbacked_seats(),
            orphan_order_lines=self.find_orphan_order_lines(),
            totals_drift=self.find_totals_drift(),
            installment_drift=self.find_installment_drift(),
            activation_anomalies=self.find_activation_anomalies(),
        )
        if report.is_clean:
            logger.info("Ledger audit clean")
        else:
            logger.warning(
                "Ledger audit found %d issue(s): %s", report.finding_count, report.summary()
            )
        return report
