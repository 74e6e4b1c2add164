from ledger.handlers.views import (
    AuditReportView,
    InstallmentPaidView,
    InstallmentPlanView,
    OrderDepositView,
    OrderDetailView,
    OrderListView,
    OrderPassengersView,
    OrderRecomputeView,
    PassengerDetailView,
    PassengerServicesView,
    SeatMapView,
    SeatSaleView,
    ServiceLineActivationView,
    ServiceLineAmountsView,
    ServiceLineDetailView,
    ServiceLineNotesView,
    ServiceLinePaymentView,
    TripArchiveView,
    TripDetailView,
    TripListView,
    TripSalesView,
)

__all__ = [
    "TripListView",
    "TripDetailView",
    "TripArchiveView",
    "SeatMapView",
    "SeatSaleView",
    "TripSalesView",
    "OrderListView",
    "OrderDetailView",
    "OrderDepositView",
    "OrderRecomputeView",
    "OrderPassengersView",
    "PassengerDetailView",
    "PassengerServicesView",
    "ServiceLineDetailView",
    "ServiceLinePaymentView",
    "ServiceLineActivationView",
    "ServiceLineAmountsView",
    "ServiceLineNotesView",
    "InstallmentPlanView",
    "InstallmentPaidView",
    "AuditReportView",
]
