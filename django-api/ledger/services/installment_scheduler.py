"""Partial-payment plans (cuotas) of ticket orders."""

import logging
from collections.abc import Iterable, Mapping
from datetime import date

from ledger.domain import Installment, InstallmentDraft, InstallmentPlan, Money, OrderId
from ledger.domain.errors import InstallmentNotFoundError, InvalidRequestError
from ledger.domain.value_objects import parse_number
from ledger.services.order_service import TicketOrderService
from ledger.stores.interfaces import OrderStore

logger = logging.getLogger(__name__)


def _due_date(value: object) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    raise InvalidRequestError(f"Invalid due date {value!r}, expected YYYY-MM-DD")


def _draft(entry: InstallmentDraft | Mapping) -> InstallmentDraft:
    if isinstance(entry, InstallmentDraft):
        return entry
    if not isinstance(entry, Mapping) or "amount" not in entry:
        raise InvalidRequestError("Each installment needs an amount")
    return InstallmentDraft(
        amount=Money.parse(entry["amount"], field="installment amount"),
        due_date=_due_date(entry.get("due_date")),
    )


class InstallmentScheduler:
    """Replaces and settles an order's installment plan.

    Paying an installment does not touch the deposit or balance; the
    auditor reports the plan as drifting until the payment is recorded on the
    order.
    """

    def __init__(self, store: OrderStore, orders: TicketOrderService) -> None:
        self._store = store
        self._orders = orders

    def schedule(
        self, order_id: str | OrderId, entries: Iterable[InstallmentDraft | Mapping]
    ) -> InstallmentPlan:
        """Replace the whole plan with entries numbered 1..n."""
        drafts = [_draft(entry) for entry in entries]
        with self._store.atomic():
            order = self._orders.require_active(order_id)
            plan = self._store.replace_installments(order.id, drafts)
        logger.info(
            "Order %s scheduled %d installments totalling %s",
            order.id,
            len(plan),
            sum((d.amount.amount for d in drafts), Money.zero().amount),
        )
        return plan

    def mark_paid(self, order_id: str | OrderId, installment_number: object) -> Installment:
        oid = OrderId.from_string(order_id)
        number = parse_number(installment_number, "installment number")
        with self._store.atomic():
            self._orders.get_order(oid)
            installment = self._store.mark_installment_paid(oid, number)
            if installment is None:
                raise InstallmentNotFoundError(oid, number)
        logger.info("Order %s installment %d paid", oid, number)
        return installment

    def get_plan(self, order_id: str | OrderId) -> InstallmentPlan:
        order = self._orders.get_order(order_id)
        return self._store.get_installments(order.id)
