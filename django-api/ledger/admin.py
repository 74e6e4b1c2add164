from django.contrib import admin

from ledger.models import (
    CancelledSeatSale,
    Installment,
    Passenger,
    Seat,
    SeatSale,
    ServiceLine,
    TicketOrder,
    Trip,
)


class ReadOnlyAdmin(admin.ModelAdmin):
    """Seats, sales and aggregates change only through the ledger services."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class PassengerInline(admin.TabularInline):
    model = Passenger
    extra = 0
    can_delete = False
    readonly_fields = ["name", "created_at"]


class InstallmentInline(admin.TabularInline):
    model = Installment
    extra = 0
    can_delete = False
    readonly_fields = ["number", "amount", "due_date", "paid"]


@admin.register(Trip)
class TripAdmin(admin.ModelAdmin):
    list_display = ["name", "departs_on", "owner_id", "lifecycle", "created_at"]
    list_filter = ["lifecycle"]
    search_fields = ["name", "owner_id"]


@admin.register(Seat)
class SeatAdmin(ReadOnlyAdmin):
    list_display = ["trip", "number", "status", "buyer_name", "sale_price", "sold_at"]
    list_filter = ["status", "trip"]


@admin.register(SeatSale)
class SeatSaleAdmin(ReadOnlyAdmin):
    list_display = ["trip_id", "seat_number", "buyer_name", "price", "payment_method", "created_at"]
    search_fields = ["buyer_name", "buyer_email"]


@admin.register(CancelledSeatSale)
class CancelledSeatSaleAdmin(ReadOnlyAdmin):
    list_display = ["trip_id", "seat_number", "buyer_name", "cancelled_by", "cancelled_at"]


@admin.register(TicketOrder)
class TicketOrderAdmin(ReadOnlyAdmin):
    list_display = ["client_ref", "total_sale_price", "deposit", "balance_due", "lifecycle"]
    list_filter = ["lifecycle"]
    search_fields = ["client_ref"]
    inlines = [PassengerInline, InstallmentInline]


@admin.register(ServiceLine)
class ServiceLineAdmin(ReadOnlyAdmin):
    list_display = ["service_type", "passenger", "neto", "venduto", "payment_state", "activation_state"]
    list_filter = ["payment_state", "activation_state"]
