"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

import logging
from functools import cached_property

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from ledger.domain import (
    UNSET,
    Actor,
    Buyer,
    Money,
    PassengerDraft,
    Role,
    SeatRequest,
    SeatStatus,
    ServiceLineDraft,
)
from ledger.domain.errors import DomainError, ErrorCategory, InvalidRequestError
from ledger.handlers.serializers import (
    ActivationStateSerializer,
    AmountsSerializer,
    AuditReportSerializer,
    CancelledSeatSaleSerializer,
    DepositSerializer,
    GroupSaleSerializer,
    InstallmentPlanSerializer,
    InstallmentSerializer,
    NotesSerializer,
    OrderCreateSerializer,
    OrderTotalsSerializer,
    PassengerAddSerializer,
    PassengerSerializer,
    PaymentStateSerializer,
    ProvisionSeatsSerializer,
    ScheduleSerializer,
    SeatSaleSerializer,
    SeatSerializer,
    SellSeatSerializer,
    ServiceLineInputSerializer,
    ServiceLineSerializer,
    TicketOrderSerializer,
    TripCreateSerializer,
    TripSerializer,
)
from ledger.services import LedgerServices, build_services, service_line_draft

logger = logging.getLogger(__name__)

STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCategory.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCategory.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCategory.INFRASTRUCTURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def actor_from_request(request: Request) -> Actor:
    """Identity is asserted upstream and forwarded in X-Actor-* headers."""
    actor_id = request.headers.get("X-Actor-Id", "")
    role = request.headers.get("X-Actor-Role") or Role.STAFF.value
    try:
        actor_role = Role(role.upper())
    except ValueError:
        raise InvalidRequestError(f"Unknown actor role {role!r}") from None
    if not actor_id.strip():
        raise InvalidRequestError("X-Actor-Id header is required")
    if len(actor_id.strip()) > 255:
        raise InvalidRequestError("X-Actor-Id header is too long")
    return Actor(id=actor_id.strip(), role=actor_role)


def _validated(serializer_class, data) -> dict:
    serializer = serializer_class(data=data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


def _buyer(data: dict) -> Buyer:
    return Buyer(name=data["name"], phone=data.get("phone") or None, email=data.get("email") or None)


def _line_draft(data: dict) -> ServiceLineDraft:
    return service_line_draft(
        service_type=data["service_type"],
        neto=data["neto"],
        venduto=data["venduto"],
        acquisition_method=data.get("acquisition_method") or None,
        iata=data.get("iata") or None,
        departure_date=data.get("departure_date"),
        return_date=data.get("return_date"),
        notes=data.get("notes") or None,
    )


class LedgerView(APIView):
    """Base view: wires the services and maps domain errors to responses."""

    @cached_property
    def services(self) -> LedgerServices:
        return build_services()

    def handle_exception(self, exc: Exception) -> Response:
        if isinstance(exc, DomainError):
            body = {"code": exc.code.value, "message": exc.message}
            if exc.retryable:
                body["retryable"] = True
            else:
                logger.info("%s %s rejected: %s", self.request.method, self.request.path, exc)
            return Response(body, status=STATUS_BY_CATEGORY[exc.category])
        return super().handle_exception(exc)


# Trips and seats


class TripListView(LedgerView):
    """Handler for GET/POST /api/trips"""

    def get(self, request: Request) -> Response:
        trips = self.services.inventory.list_trips()
        return Response(TripSerializer(trips, many=True).data)

    def post(self, request: Request) -> Response:
        data = _validated(TripCreateSerializer, request.data)
        trip = self.services.inventory.create_trip(
            data["name"], actor_from_request(request), data.get("departs_on")
        )
        return Response(TripSerializer(trip).data, status=status.HTTP_201_CREATED)


class TripDetailView(LedgerView):
    """Handler for GET /api/trips/{trip_id}"""

    def get(self, request: Request, trip_id: str) -> Response:
        trip = self.services.inventory.get_trip(trip_id)
        return Response(TripSerializer(trip).data)


class TripArchiveView(LedgerView):
    """Handler for POST /api/trips/{trip_id}/archive"""

    def post(self, request: Request, trip_id: str) -> Response:
        trip = self.services.inventory.archive_trip(trip_id)
        return Response(TripSerializer(trip).data)


class SeatMapView(LedgerView):
    """Handler for GET/POST /api/trips/{trip_id}/seats"""

    def get(self, request: Request, trip_id: str) -> Response:
        seat_status = None
        if "status" in request.query_params:
            try:
                seat_status = SeatStatus(request.query_params["status"])
            except ValueError:
                raise InvalidRequestError("status must be 'free' or 'sold'") from None
        seats = self.services.inventory.list_seats(trip_id, seat_status)
        return Response(SeatSerializer(seats, many=True).data)

    def post(self, request: Request, trip_id: str) -> Response:
        data = _validated(ProvisionSeatsSerializer, request.data)
        seats = self.services.inventory.provision_seats(trip_id, data["count"])
        return Response(SeatSerializer(seats, many=True).data, status=status.HTTP_201_CREATED)


class SeatSaleView(LedgerView):
    """Handler for GET/POST/DELETE /api/trips/{trip_id}/seats/{seat_number}/sale"""

    def get(self, request: Request, trip_id: str, seat_number: int) -> Response:
        reservations = self.services.reservations
        return Response(
            {
                "seat": SeatSerializer(self.services.inventory.get_seat(trip_id, seat_number)).data,
                "sales": SeatSaleSerializer(
                    reservations.sales_for_seat(trip_id, seat_number), many=True
                ).data,
                "cancelled": CancelledSeatSaleSerializer(
                    reservations.cancellation_history(trip_id, seat_number), many=True
                ).data,
            }
        )

    def post(self, request: Request, trip_id: str, seat_number: int) -> Response:
        data = _validated(SellSeatSerializer, request.data)
        sale = self.services.reservations.sell(
            trip_id,
            seat_number,
            buyer=_buyer(data["buyer"]),
            price=data["price"],
            payment_method=data["payment_method"],
            actor=actor_from_request(request),
        )
        return Response(SeatSaleSerializer(sale).data, status=status.HTTP_201_CREATED)

    def delete(self, request: Request, trip_id: str, seat_number: int) -> Response:
        self.services.reservations.cancel(trip_id, seat_number, actor_from_request(request))
        return Response(status=status.HTTP_204_NO_CONTENT)


class TripSalesView(LedgerView):
    """Handler for GET/POST /api/trips/{trip_id}/sales"""

    def get(self, request: Request, trip_id: str) -> Response:
        sales = self.services.reservations.sales_for_trip(trip_id)
        return Response(SeatSaleSerializer(sales, many=True).data)

    def post(self, request: Request, trip_id: str) -> Response:
        data = _validated(GroupSaleSerializer, request.data)
        requests = [
            SeatRequest(
                seat_number=seat["seat_number"],
                buyer=_buyer(seat["buyer"]),
                price=Money.parse(seat["price"], field="price"),
            )
            for seat in data["seats"]
        ]
        sales = self.services.reservations.sell_group(
            trip_id, requests, data["payment_method"], actor_from_request(request)
        )
        return Response(SeatSaleSerializer(sales, many=True).data, status=status.HTTP_201_CREATED)


# Orders


class OrderListView(LedgerView):
    """Handler for GET/POST /api/orders"""

    def get(self, request: Request) -> Response:
        orders = self.services.orders.list_orders()
        return Response(TicketOrderSerializer(orders, many=True).data)

    def post(self, request: Request) -> Response:
        data = _validated(OrderCreateSerializer, request.data)
        passengers = [
            PassengerDraft(
                name=p["name"],
                services=tuple(_line_draft(s) for s in p.get("services", [])),
            )
            for p in data["passengers"]
        ]
        order = self.services.orders.create_order(
            data["client_ref"], passengers, actor_from_request(request), deposit=data["deposit"]
        )
        return Response(TicketOrderSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderDetailView(LedgerView):
    """Handler for GET/DELETE /api/orders/{order_id}"""

    def get(self, request: Request, order_id: str) -> Response:
        order = self.services.orders.get_order(order_id)
        return Response(TicketOrderSerializer(order).data)

    def delete(self, request: Request, order_id: str) -> Response:
        order = self.services.orders.archive_order(order_id)
        return Response(TicketOrderSerializer(order).data)


class OrderDepositView(LedgerView):
    """Handler for PUT /api/orders/{order_id}/deposit"""

    def put(self, request: Request, order_id: str) -> Response:
        data = _validated(DepositSerializer, request.data)
        order = self.services.orders.set_deposit(order_id, data["deposit"])
        return Response(TicketOrderSerializer(order).data)


class OrderRecomputeView(LedgerView):
    """Handler for POST /api/orders/{order_id}/recompute"""

    def post(self, request: Request, order_id: str) -> Response:
        totals = self.services.orders.recompute_totals(order_id)
        return Response(OrderTotalsSerializer(totals).data)


class OrderPassengersView(LedgerView):
    """Handler for POST /api/orders/{order_id}/passengers"""

    def post(self, request: Request, order_id: str) -> Response:
        data = _validated(PassengerAddSerializer, request.data)
        passenger = self.services.orders.add_passenger(order_id, data["name"])
        return Response(PassengerSerializer(passenger).data, status=status.HTTP_201_CREATED)


class PassengerDetailView(LedgerView):
    """Handler for DELETE /api/passengers/{passenger_id}"""

    def delete(self, request: Request, passenger_id: str) -> Response:
        self.services.orders.remove_passenger(passenger_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class PassengerServicesView(LedgerView):
    """Handler for POST /api/passengers/{passenger_id}/services"""

    def post(self, request: Request, passenger_id: str) -> Response:
        data = _validated(ServiceLineInputSerializer, request.data)
        line = self.services.orders.add_service_line(passenger_id, _line_draft(data))
        return Response(ServiceLineSerializer(line).data, status=status.HTTP_201_CREATED)


# Service lines


class ServiceLineDetailView(LedgerView):
    """Handler for GET /api/service-lines/{line_id}"""

    def get(self, request: Request, line_id: str) -> Response:
        line = self.services.service_lines.get_line(line_id)
        return Response(ServiceLineSerializer(line).data)


class ServiceLinePaymentView(LedgerView):
    """Handler for PUT /api/service-lines/{line_id}/payment"""

    def put(self, request: Request, line_id: str) -> Response:
        data = _validated(PaymentStateSerializer, request.data)
        line = self.services.service_lines.set_payment_state(
            line_id, data["state"], data.get("paid_at", UNSET)
        )
        return Response(ServiceLineSerializer(line).data)


class ServiceLineActivationView(LedgerView):
    """Handler for PUT /api/service-lines/{line_id}/activation"""

    def put(self, request: Request, line_id: str) -> Response:
        data = _validated(ActivationStateSerializer, request.data)
        line = self.services.service_lines.set_activation_state(
            line_id, data["state"], data.get("activated_at", UNSET)
        )
        return Response(ServiceLineSerializer(line).data)


class ServiceLineAmountsView(LedgerView):
    """Handler for PATCH /api/service-lines/{line_id}/amounts"""

    def patch(self, request: Request, line_id: str) -> Response:
        data = _validated(AmountsSerializer, request.data)
        line = self.services.service_lines.update_amounts(
            line_id, neto=data.get("neto", UNSET), venduto=data.get("venduto", UNSET)
        )
        return Response(ServiceLineSerializer(line).data)


class ServiceLineNotesView(LedgerView):
    """Handler for PUT /api/service-lines/{line_id}/notes"""

    def put(self, request: Request, line_id: str) -> Response:
        data = _validated(NotesSerializer, request.data)
        line = self.services.service_lines.update_notes(line_id, data["notes"])
        return Response(ServiceLineSerializer(line).data)


# Installments


class InstallmentPlanView(LedgerView):
    """Handler for GET/PUT /api/orders/{order_id}/installments"""

    def get(self, request: Request, order_id: str) -> Response:
        plan = self.services.installments.get_plan(order_id)
        return Response(InstallmentPlanSerializer(plan).data)

    def put(self, request: Request, order_id: str) -> Response:
        data = _validated(ScheduleSerializer, request.data)
        plan = self.services.installments.schedule(order_id, data["installments"])
        return Response(InstallmentPlanSerializer(plan).data)


class InstallmentPaidView(LedgerView):
    """Handler for POST /api/orders/{order_id}/installments/{number}/paid"""

    def post(self, request: Request, order_id: str, number: int) -> Response:
        installment = self.services.installments.mark_paid(order_id, number)
        return Response(InstallmentSerializer(installment).data)


# Audit


class AuditReportView(LedgerView):
    """Handler for GET /api/audit"""

    def get(self, request: Request) -> Response:
        report = self.services.auditor.run()
        return Response(AuditReportSerializer(report).data)
