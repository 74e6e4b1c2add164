"""Serializers for request parsing and for rendering domain models.

Amounts are accepted as CharField so the domain parser decides what a valid
amount is; a malformed amount surfaces as INVALID_AMOUNT, not as zero.
"""

from rest_framework import serializers

MONEY = {"max_digits": 12, "decimal_places": 2}


# Input


class TripCreateSerializer(serializers.Serializer):
    name = serializers.CharField(allow_blank=True, max_length=255)
    departs_on = serializers.DateField(required=False, allow_null=True)


class ProvisionSeatsSerializer(serializers.Serializer):
    count = serializers.IntegerField()


class BuyerInputSerializer(serializers.Serializer):
    name = serializers.CharField(allow_blank=True, max_length=255)
    phone = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=64)
    email = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=255)


class SellSeatSerializer(serializers.Serializer):
    buyer = BuyerInputSerializer()
    price = serializers.CharField(allow_blank=True)
    payment_method = serializers.CharField(allow_blank=True, max_length=100)


class GroupSeatSerializer(serializers.Serializer):
    seat_number = serializers.IntegerField()
    buyer = BuyerInputSerializer()
    price = serializers.CharField(allow_blank=True)


class GroupSaleSerializer(serializers.Serializer):
    payment_method = serializers.CharField(allow_blank=True, max_length=100)
    seats = GroupSeatSerializer(many=True, allow_empty=True)


class ServiceLineInputSerializer(serializers.Serializer):
    service_type = serializers.CharField(allow_blank=True, max_length=100)
    neto = serializers.CharField(allow_blank=True)
    venduto = serializers.CharField(allow_blank=True)
    acquisition_method = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=100
    )
    iata = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=32)
    departure_date = serializers.DateField(required=False, allow_null=True)
    return_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class PassengerInputSerializer(serializers.Serializer):
    name = serializers.CharField(allow_blank=True, max_length=255)
    services = ServiceLineInputSerializer(many=True, required=False)


class OrderCreateSerializer(serializers.Serializer):
    client_ref = serializers.CharField(allow_blank=True, max_length=255)
    deposit = serializers.CharField(required=False, default="0")
    passengers = PassengerInputSerializer(many=True, allow_empty=True)


class DepositSerializer(serializers.Serializer):
    deposit = serializers.CharField(allow_blank=True)


class PassengerAddSerializer(serializers.Serializer):
    name = serializers.CharField(allow_blank=True, max_length=255)


class PaymentStateSerializer(serializers.Serializer):
    state = serializers.CharField()
    paid_at = serializers.DateTimeField(required=False, allow_null=True)


class ActivationStateSerializer(serializers.Serializer):
    state = serializers.CharField()
    activated_at = serializers.DateTimeField(required=False, allow_null=True)


class AmountsSerializer(serializers.Serializer):
    neto = serializers.CharField(required=False, allow_blank=True)
    venduto = serializers.CharField(required=False, allow_blank=True)


class NotesSerializer(serializers.Serializer):
    notes = serializers.CharField(allow_blank=True, allow_null=True)


class InstallmentEntrySerializer(serializers.Serializer):
    amount = serializers.CharField(allow_blank=True)
    due_date = serializers.DateField(required=False, allow_null=True)


class ScheduleSerializer(serializers.Serializer):
    installments = InstallmentEntrySerializer(many=True, allow_empty=True)


# Output


class TripSerializer(serializers.Serializer):
    """Serializer for Trip domain model."""

    id = serializers.UUIDField(source="id.value")
    name = serializers.CharField()
    owner_id = serializers.CharField()
    departs_on = serializers.DateField(allow_null=True)
    lifecycle = serializers.CharField(source="lifecycle.value")
    created_at = serializers.DateTimeField()


class BuyerSerializer(serializers.Serializer):
    name = serializers.CharField()
    phone = serializers.CharField(allow_null=True)
    email = serializers.CharField(allow_null=True)


class SaleSnapshotSerializer(serializers.Serializer):
    buyer = BuyerSerializer()
    price = serializers.DecimalField(source="price.amount", **MONEY)
    sold_at = serializers.DateTimeField()


class SeatSerializer(serializers.Serializer):
    """Serializer for one entry of a seat map."""

    number = serializers.IntegerField()
    status = serializers.CharField(source="status.value")
    sale = SaleSnapshotSerializer(source="snapshot", allow_null=True)


class SeatSaleSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    trip_id = serializers.UUIDField(source="trip_id.value")
    seat_number = serializers.IntegerField()
    buyer = BuyerSerializer()
    price = serializers.DecimalField(source="price.amount", **MONEY)
    payment_method = serializers.CharField()
    created_at = serializers.DateTimeField()
    created_by = serializers.CharField()


class CancelledSeatSaleSerializer(serializers.Serializer):
    sale = SeatSaleSerializer()
    cancelled_at = serializers.DateTimeField()
    cancelled_by = serializers.CharField()


class ServiceLineSerializer(serializers.Serializer):
    """Serializer for ServiceLine domain model."""

    id = serializers.UUIDField(source="id.value")
    order_id = serializers.UUIDField(source="order_id.value")
    passenger_id = serializers.UUIDField(source="passenger_id.value")
    service_type = serializers.CharField()
    acquisition_method = serializers.CharField(allow_null=True)
    iata = serializers.CharField(allow_null=True)
    neto = serializers.DecimalField(source="neto.amount", **MONEY)
    venduto = serializers.DecimalField(source="venduto.amount", **MONEY)
    fee = serializers.DecimalField(**MONEY)
    departure_date = serializers.DateField(allow_null=True)
    return_date = serializers.DateField(allow_null=True)
    payment_state = serializers.CharField(source="payment_state.value")
    paid_at = serializers.DateTimeField(allow_null=True)
    activation_state = serializers.CharField(source="activation_state.value")
    activated_at = serializers.DateTimeField(allow_null=True)
    notes = serializers.CharField(allow_null=True)


class PassengerSerializer(serializers.Serializer):
    id = serializers.UUIDField(source="id.value")
    order_id = serializers.UUIDField(source="order_id.value")
    name = serializers.CharField()
    service_lines = ServiceLineSerializer(many=True)


class InstallmentSerializer(serializers.Serializer):
    number = serializers.IntegerField()
    amount = serializers.DecimalField(source="amount.amount", **MONEY)
    due_date = serializers.DateField(allow_null=True)
    paid = serializers.BooleanField()


class InstallmentPlanSerializer(serializers.Serializer):
    order_id = serializers.UUIDField(source="order_id.value")
    installments = InstallmentSerializer(many=True)
    unpaid_total = serializers.DecimalField(**MONEY)


class OrderTotalsSerializer(serializers.Serializer):
    net_cost = serializers.DecimalField(**MONEY)
    total_sale_price = serializers.DecimalField(**MONEY)
    deposit = serializers.DecimalField(**MONEY)
    balance_due = serializers.DecimalField(**MONEY)
    agency_fee = serializers.DecimalField(**MONEY)


class TicketOrderSerializer(serializers.Serializer):
    """Serializer for TicketOrder domain model."""

    id = serializers.UUIDField(source="id.value")
    client_ref = serializers.CharField()
    lifecycle = serializers.CharField(source="lifecycle.value")
    totals = OrderTotalsSerializer()
    passengers = PassengerSerializer(many=True)
    installments = InstallmentSerializer(many=True)
    created_by = serializers.CharField()
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


# Audit report


class OrphanSaleSerializer(serializers.Serializer):
    sale = SeatSaleSerializer()
    reason = serializers.CharField(source="reason.value")


class UnbackedSeatSerializer(serializers.Serializer):
    trip_id = serializers.UUIDField(source="seat.trip_id.value")
    seat = SeatSerializer()


class OrderLineFindingSerializer(serializers.Serializer):
    order_id = serializers.UUIDField(source="order_id.value")
    line = ServiceLineSerializer()


class TotalsDriftSerializer(serializers.Serializer):
    order_id = serializers.UUIDField(source="order_id.value")
    stored = OrderTotalsSerializer()
    recomputed = OrderTotalsSerializer()
    drifting_fields = serializers.ListField(child=serializers.CharField())


class InstallmentDriftSerializer(serializers.Serializer):
    order_id = serializers.UUIDField(source="order_id.value")
    balance_due = serializers.DecimalField(**MONEY)
    unpaid_installments = serializers.DecimalField(**MONEY)
    difference = serializers.DecimalField(**MONEY)


class AuditReportSerializer(serializers.Serializer):
    is_clean = serializers.BooleanField()
    summary = serializers.DictField(child=serializers.IntegerField())
    orphan_sales = OrphanSaleSerializer(many=True)
    unbacked_seats = UnbackedSeatSerializer(many=True)
    orphan_order_lines = OrderLineFindingSerializer(many=True)
    totals_drift = TotalsDriftSerializer(many=True)
    installment_drift = InstallmentDriftSerializer(many=True)
    activation_anomalies = OrderLineFindingSerializer(many=True)
