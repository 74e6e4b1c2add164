from django.urls import path

from ledger.handlers import (
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

urlpatterns = [
    path("trips", TripListView.as_view(), name="trip-list"),
    path("trips/<str:trip_id>", TripDetailView.as_view(), name="trip-detail"),
    path("trips/<str:trip_id>/archive", TripArchiveView.as_view(), name="trip-archive"),
    path("trips/<str:trip_id>/seats", SeatMapView.as_view(), name="seat-map"),
    path(
        "trips/<str:trip_id>/seats/<int:seat_number>/sale",
        SeatSaleView.as_view(),
        name="seat-sale",
    ),
    path("trips/<str:trip_id>/sales", TripSalesView.as_view(), name="trip-sales"),
    path("orders", OrderListView.as_view(), name="order-list"),
    path("orders/<str:order_id>", OrderDetailView.as_view(), name="order-detail"),
    path("orders/<str:order_id>/deposit", OrderDepositView.as_view(), name="order-deposit"),
    path(
        "orders/<str:order_id>/recompute",
        OrderRecomputeView.as_view(),
        name="order-recompute",
    ),
    path(
        "orders/<str:order_id>/passengers",
        OrderPassengersView.as_view(),
        name="order-passengers",
    ),
    path(
        "orders/<str:order_id>/installments",
        InstallmentPlanView.as_view(),
        name="installment-plan",
    ),
    path(
        "orders/<str:order_id>/installments/<int:number>/paid",
        InstallmentPaidView.as_view(),
        name="installment-paid",
    ),
    path("passengers/<str:passenger_id>", PassengerDetailView.as_view(), name="passenger-detail"),
    path(
        "passengers/<str:passenger_id>/services",
        PassengerServicesView.as_view(),
        name="passenger-services",
    ),
    path("service-lines/<str:line_id>", ServiceLineDetailView.as_view(), name="service-line-detail"),
    path(
        "service-lines/<str:line_id>/payment",
        ServiceLinePaymentView.as_view(),
        name="service-line-payment",
    ),
    path(
        "service-lines/<str:line_id>/activation",
        ServiceLineActivationView.as_view(),
        name="service-line-activation",
    ),
    path(
        "service-lines/<str:line_id>/amounts",
        ServiceLineAmountsView.as_view(),
        name="service-line-amounts",
    ),
    path(
        "service-lines/<str:line_id>/notes",
        ServiceLineNotesView.as_view(),
        name="service-line-notes",
    ),
    path("audit", AuditReportView.as_view(), name="audit-report"),
]
