"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.db import models
from django.utils import timezone

from ledger.domain.value_objects import ActivationState, Lifecycle, PaymentState, SeatStatus

MONEY = {"max_digits": 12, "decimal_places": 2}


def _choices(enum) -> list[tuple[str, str]]:
    return [(member.value, member.name.title()) for member in enum]


class LifecycleQuerySet(models.QuerySet):
    """The one place the "active" predicate is spelled out."""

    def active(self):
        return self.filter(lifecycle=Lifecycle.ACTIVE.value)

    def archived(self):
        return self.filter(lifecycle=Lifecycle.ARCHIVED.value)


class Trip(models.Model):
    """Persistence model for scheduled bus trips."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    owner_id = models.CharField(max_length=255)
    departs_on = models.DateField(blank=True, null=True)
    lifecycle = models.CharField(
        max_length=16, choices=_choices(Lifecycle), default=Lifecycle.ACTIVE.value
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = LifecycleQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["lifecycle", "-created_at"]),
        ]

    def __str__(self) -> str:
        return self.name


class Seat(models.Model):
    """Persistence model for one seat of a trip's seat map."""

    trip = models.ForeignKey(Trip, on_delete=models.CASCADE, related_name="seats")
    number = models.PositiveIntegerField()
    status = models.CharField(
        max_length=8, choices=_choices(SeatStatus), default=SeatStatus.FREE.value
    )
    buyer_name = models.CharField(max_length=255, blank=True, default="")
    buyer_phone = models.CharField(max_length=64, blank=True, null=True)
    buyer_email = models.CharField(max_length=255, blank=True, null=True)
    sale_price = models.DecimalField(blank=True, null=True, **MONEY)
    sold_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["trip_id", "number"]
        constraints = [
            models.UniqueConstraint(fields=["trip", "number"], name="unique_seat_number_per_trip"),
            models.CheckConstraint(
                condition=(
                    models.Q(
                        status=SeatStatus.FREE.value,
                        sold_at__isnull=True,
                        sale_price__isnull=True,
                    )
                    | models.Q(
                        status=SeatStatus.SOLD.value,
                        sold_at__isnull=False,
                        sale_price__isnull=False,
                    )
                ),
                name="seat_snapshot_matches_status",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.trip_id} #{self.number} ({self.status})"


class SeatSale(models.Model):
    """Persistence model for the sale currently holding a seat.

    trip_id is a logical reference so a sale outliving its trip can be audited.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    trip_id = models.UUIDField(db_index=True)
    seat_number = models.PositiveIntegerField()
    buyer_name = models.CharField(max_length=255)
    buyer_phone = models.CharField(max_length=64, blank=True, null=True)
    buyer_email = models.CharField(max_length=255, blank=True, null=True)
    price = models.DecimalField(**MONEY)
    payment_method = models.CharField(max_length=100)
    created_at = models.DateTimeField(default=timezone.now)
    created_by = models.CharField(max_length=255)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["trip_id", "seat_number"], name="one_sale_per_seat"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.trip_id} #{self.seat_number} - {self.buyer_name}"


class CancelledSeatSale(models.Model):
    """History of sales removed by a cancel."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    sale_id = models.UUIDField()
    trip_id = models.UUIDField(db_index=True)
    seat_number = models.PositiveIntegerField()
    buyer_name = models.CharField(max_length=255)
    buyer_phone = models.CharField(max_length=64, blank=True, null=True)
    buyer_email = models.CharField(max_length=255, blank=True, null=True)
    price = models.DecimalField(**MONEY)
    payment_method = models.CharField(max_length=100)
    sold_at = models.DateTimeField()
    sold_by = models.CharField(max_length=255)
    cancelled_at = models.DateTimeField(default=timezone.now)
    cancelled_by = models.CharField(max_length=255)

    class Meta:
        ordering = ["-cancelled_at"]
        indexes = [
            models.Index(fields=["trip_id", "seat_number"]),
        ]

    def __str__(self) -> str:
        return f"{self.trip_id} #{self.seat_number} cancelled by {self.cancelled_by}"


class TicketOrder(models.Model):
    """Persistence model for ticket orders.

    The aggregate columns are written only by the order recompute.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    client_ref = models.CharField(max_length=255)
    net_cost = models.DecimalField(default=0, **MONEY)
    total_sale_price = models.DecimalField(default=0, **MONEY)
    deposit = models.DecimalField(default=0, **MONEY)
    balance_due = models.DecimalField(default=0, **MONEY)
    agency_fee = models.DecimalField(default=0, **MONEY)
    lifecycle = models.CharField(
        max_length=16, choices=_choices(Lifecycle), default=Lifecycle.ACTIVE.value
    )
    created_by = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LifecycleQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["lifecycle", "-created_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.client_ref} ({self.id})"


class Passenger(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(TicketOrder, on_delete=models.CASCADE, related_name="passengers")
    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:
        return self.name


class ServiceLine(models.Model):
    """Persistence model for one service sold to one passenger."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        TicketOrder, on_delete=models.CASCADE, related_name="service_lines"
    )
    passenger = models.ForeignKey(
        Passenger, on_delete=models.CASCADE, related_name="service_lines"
    )
    service_type = models.CharField(max_length=100)
    acquisition_method = models.CharField(max_length=100, blank=True, null=True)
    iata = models.CharField(max_length=32, blank=True, null=True)
    neto = models.DecimalField(**MONEY)
    venduto = models.DecimalField(**MONEY)
    departure_date = models.DateField(blank=True, null=True)
    return_date = models.DateField(blank=True, null=True)
    payment_state = models.CharField(
        max_length=16, choices=_choices(PaymentState), default=PaymentState.PENDING.value
    )
    paid_at = models.DateTimeField(blank=True, null=True)
    activation_state = models.CharField(
        max_length=16,
        choices=_choices(ActivationState),
        default=ActivationState.INACTIVE.value,
    )
    activated_at = models.DateTimeField(blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["order"]),
            models.Index(fields=["payment_state"]),
        ]

    def __str__(self) -> str:
        return f"{self.service_type} - {self.venduto}"


class Installment(models.Model):
    """Persistence model for one Cuota of an order's payment plan."""

    order = models.ForeignKey(
        TicketOrder, on_delete=models.CASCADE, related_name="installments"
    )
    number = models.PositiveIntegerField()
    amount = models.DecimalField(**MONEY)
    due_date = models.DateField(blank=True, null=True)
    paid = models.BooleanField(default=False)

    class Meta:
        ordering = ["order_id", "number"]
        constraints = [
            models.UniqueConstraint(fields=["order", "number"], name="unique_installment_number"),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} #{self.number} - {self.amount}"
