"""Service wiring.

Services receive their stores explicitly; build_services assembles the
Django-backed set used by the HTTP handlers and management commands.
"""

from dataclasses import dataclass

from django.conf import settings

from ledger.domain import Role
from ledger.services.access_policy import AccessPolicy, TripOwnerOrElevatedPolicy
from ledger.services.auditor import AuditReport, ConsistencyAuditor
from ledger.services.clock import Clock, utc_now
from ledger.services.installment_scheduler import InstallmentScheduler
from ledger.services.inventory_service import InventoryService
from ledger.services.order_service import TicketOrderService, service_line_draft
from ledger.services.reservation_service import SeatReservationService
from ledger.services.service_line_ledger import ServiceLineLedger


@dataclass(frozen=True)
class LedgerServices:
    inventory: InventoryService
    reservations: SeatReservationService
    orders: TicketOrderService
    service_lines: ServiceLineLedger
    installments: InstallmentScheduler
    auditor: ConsistencyAuditor


def default_access_policy() -> AccessPolicy:
    roles = [Role(name) for name in settings.LEDGER_ELEVATED_ROLES]
    return TripOwnerOrElevatedPolicy(elevated_roles=roles)


def build_services(
    access_policy: AccessPolicy | None = None, clock: Clock = utc_now
) -> LedgerServices:
    from ledger.stores import DjangoAuditStore, DjangoInventoryStore, DjangoOrderStore

    inventory_store = DjangoInventoryStore()
    order_store = DjangoOrderStore()
    orders = TicketOrderService(order_store)
    return LedgerServices(
        inventory=InventoryService(inventory_store),
        reservations=SeatReservationService(
            inventory_store, access_policy or default_access_policy(), clock
        ),
        orders=orders,
        service_lines=ServiceLineLedger(order_store, orders, clock),
        installments=InstallmentScheduler(order_store, orders),
        auditor=ConsistencyAuditor(DjangoAuditStore()),
    )


__all__ = [
    "LedgerServices",
    "build_services",
    "AccessPolicy",
    "TripOwnerOrElevatedPolicy",
    "AuditReport",
    "ConsistencyAuditor",
    "InstallmentScheduler",
    "InventoryService",
    "SeatReservationService",
    "ServiceLineLedger",
    "TicketOrderService",
    "service_line_draft",
]
