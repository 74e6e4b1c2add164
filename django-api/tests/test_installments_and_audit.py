"""Tests for installment plans and the consistency auditor.

Run with: pytest tests/test_installments_and_audit.py -v
"""

import uuid
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from ledger import models as orm
from ledger.domain import Buyer, InstallmentDraft, Money, PassengerDraft, PaymentState
from ledger.domain.errors import InstallmentNotFoundError, InvalidAmountError, InvalidRequestError
from ledger.services import service_line_draft
from ledger.services.auditor import OrphanReason


@pytest.fixture
def order(services, staff):
    """Total 190, deposit 40, balance 150."""
    return services.orders.create_order(
        "CLI-0190",
        [
            PassengerDraft("Anna Rossi", (service_line_draft("flight", "100", "120"),)),
            PassengerDraft("Marco Rossi", (service_line_draft("hotel", "50", "70"),)),
        ],
        staff,
        deposit="40",
    )


@pytest.mark.django_db
class TestInstallmentScheduler:
    def test_schedule_numbers_entries(self, services, order):
        plan = services.installments.schedule(
            order.id,
            [
                {"amount": "75", "due_date": "2026-04-01"},
                InstallmentDraft(Money.parse("75"), date(2026, 5, 1)),
            ],
        )
        assert [(i.number, i.amount.amount, i.due_date) for i in plan.installments] == [
            (1, Decimal("75.00"), date(2026, 4, 1)),
            (2, Decimal("75.00"), date(2026, 5, 1)),
        ]
        assert plan.unpaid_total == Decimal("150")

    def test_reschedule_replaces_whole_plan(self, services, order):
        services.installments.schedule(order.id, [{"amount": "50"}] * 3)
        plan = services.installments.schedule(order.id, [{"amount": "150"}])
        assert len(plan) == 1
        assert orm.Installment.objects.filter(order_id=order.id.value).count() == 1

    def test_bad_entry_keeps_previous_plan(self, services, order):
        services.installments.schedule(order.id, [{"amount": "75"}, {"amount": "75"}])
        with pytest.raises(InvalidAmountError):
            services.installments.schedule(order.id, [{"amount": "75"}, {"amount": "seventy"}])
        with pytest.raises(InvalidRequestError):
            services.installments.schedule(order.id, [{"amount": "75", "due_date": "01/04/2026"}])
        assert len(services.installments.get_plan(order.id)) == 2

    def test_mark_paid_sets_flag_only(self, services, order):
        services.installments.schedule(order.id, [{"amount": "75"}, {"amount": "75"}])
        installment = services.installments.mark_paid(order.id, 1)

        assert installment.paid
        totals = services.orders.get_order(order.id).totals
        assert totals.deposit == Decimal("40")
        assert totals.balance_due == Decimal("150")

    def test_mark_paid_unknown_number(self, services, order):
        with pytest.raises(InstallmentNotFoundError):
            services.installments.mark_paid(order.id, 3)


@pytest.mark.django_db
class TestConsistencyAuditor:
    def test_matching_plan_has_no_drift(self, services, order):
        services.installments.schedule(order.id, [{"amount": "75"}, {"amount": "75"}])
        report = services.auditor.run()
        assert report.is_clean

    def test_rescheduled_plan_drifts(self, services, order):
        services.installments.schedule(order.id, [{"amount": "75"}, {"amount": "50"}])
        [drift] = services.auditor.find_installment_drift()
        assert drift.order_id == order.id
        assert drift.balance_due == Decimal("150")
        assert drift.unpaid_installments == Decimal("125")
        assert services.auditor.find_totals_drift() == []

    def test_paid_installment_drifts_until_deposit_recorded(self, services, order):
        services.installments.schedule(order.id, [{"amount": "75"}, {"amount": "75"}])
        services.installments.mark_paid(order.id, 1)
        assert len(services.auditor.find_installment_drift()) == 1

        services.orders.set_deposit(order.id, "115")
        assert services.auditor.find_installment_drift() == []

    def test_totals_drift_is_reported_not_fixed(self, services, order):
        orm.TicketOrder.objects.filter(pk=order.id.value).update(agency_fee=Decimal("10"))
        [drift] = services.auditor.find_totals_drift()
        assert drift.drifting_fields == ["agency_fee"]
        assert drift.recomputed.agency_fee == Decimal("40")
        assert orm.TicketOrder.objects.get(pk=order.id.value).agency_fee == Decimal("10")

    def test_orphan_sales(self, services, trip, staff):
        services.reservations.sell(trip.id, 1, Buyer("Rossi"), "10", "cash", staff)
        services.reservations.sell(trip.id, 2, Buyer("Bianchi"), "10", "cash", staff)
        orm.Seat.objects.filter(trip_id=trip.id.value, number=2).update(
            status="free", buyer_name="", sale_price=None, sold_at=None
        )
        orm.SeatSale.objects.create(
            trip_id=uuid.uuid4(), seat_number=3, buyer_name="Ghost", price=1,
            payment_method="cash", created_by="nobody",
        )

        reasons = {(f.sale.seat_number, f.reason) for f in services.auditor.find_orphan_sales()}
        assert reasons == {(2, OrphanReason.SEAT_NOT_SOLD), (3, OrphanReason.MISSING_TRIP)}

    def test_sales_of_archived_trip_are_orphans(self, services, trip, staff):
        services.reservations.sell(trip.id, 1, Buyer("Rossi"), "10", "cash", staff)
        services.inventory.archive_trip(trip.id)
        [finding] = services.auditor.find_orphan_sales()
        assert finding.reason is OrphanReason.ARCHIVED_TRIP

    def test_sold_seat_without_sale(self, services, trip, staff):
        services.reservations.sell(trip.id, 4, Buyer("Rossi"), "10", "cash", staff)
        orm.SeatSale.objects.all().delete()
        [finding] = services.auditor.find_unbacked_seats()
        assert finding.seat.number == 4

    def test_unpaid_lines_of_archived_orders(self, services, order):
        paid_line = order.passengers[0].service_lines[0]
        services.service_lines.set_payment_state(paid_line.id, PaymentState.PAID)
        services.orders.archive_order(order.id)

        findings = services.auditor.find_orphan_order_lines()
        assert len(findings) == 1
        assert findings[0].line.id != paid_line.id

    def test_activation_before_payment(self, services, order):
        line = order.passengers[0].service_lines[0]
        services.service_lines.set_activation_state(line.id, "active")
        [anomaly] = services.auditor.find_activation_anomalies()
        assert anomaly.line.id == line.id


@pytest.mark.django_db
class TestAuditCommand:
    def test_clean_ledger(self, services, order):
        out = StringIO()
        call_command("audit_ledger", "--fail-on-findings", stdout=out)
        assert "Ledger is consistent." in out.getvalue()

    def test_findings_fail_the_command(self, services, order):
        services.installments.schedule(order.id, [{"amount": "10"}])
        with pytest.raises(CommandError):
            call_command("audit_ledger", "--fail-on-findings", stdout=StringIO())

    def test_json_output(self, services, order):
        services.installments.schedule(order.id, [{"amount": "10"}])
        out = StringIO()
        call_command("audit_ledger", "--json", stdout=out)
        assert '"installment_drift": 1' in out.getvalue()
        assert '"is_clean": false' in out.getvalue()
