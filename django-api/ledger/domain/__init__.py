from ledger.domain.models import (
    CancelledSeatSale,
    Installment,
    InstallmentDraft,
    InstallmentPlan,
    OrderTotals,
    Passenger,
    PassengerDraft,
    SaleSnapshot,
    Seat,
    SeatRequest,
    SeatSale,
    ServiceLine,
    ServiceLineDraft,
    TicketOrder,
    Trip,
)
from ledger.domain.value_objects import (
    UNSET,
    ActivationState,
    Actor,
    Buyer,
    Lifecycle,
    Money,
    OrderId,
    PassengerId,
    PaymentState,
    Role,
    SeatCount,
    SeatStatus,
    ServiceLineId,
    TripId,
)

__all__ = [
    "Trip",
    "Seat",
    "SaleSnapshot",
    "SeatSale",
    "SeatRequest",
    "CancelledSeatSale",
    "TicketOrder",
    "OrderTotals",
    "Passenger",
    "PassengerDraft",
    "ServiceLine",
    "ServiceLineDraft",
    "Installment",
    "InstallmentDraft",
    "InstallmentPlan",
    "TripId",
    "OrderId",
    "PassengerId",
    "ServiceLineId",
    "Money",
    "SeatCount",
    "Buyer",
    "Actor",
    "Role",
    "Lifecycle",
    "SeatStatus",
    "PaymentState",
    "ActivationState",
    "UNSET",
]
