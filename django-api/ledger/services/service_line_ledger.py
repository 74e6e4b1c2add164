"""Per-line financial state of ticket orders.

Payment (Pendiente/Pagato) and activation (inactive/active) are two
independent state machines; each carries its own optional date.
"""

import dataclasses
import logging
from datetime import datetime
from enum import Enum
from typing import TypeVar

from ledger.domain import (
    UNSET,
    ActivationState,
    Money,
    PaymentState,
    ServiceLine,
    ServiceLineId,
)
from ledger.domain.errors import InvalidRequestError, ServiceLineNotFoundError
from ledger.domain.value_objects import Unset
from ledger.services.clock import Clock, utc_now
from ledger.services.order_service import TicketOrderService
from ledger.stores.interfaces import OrderStore

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


def _state(enum: type[E], value: object) -> E:
    if isinstance(value, enum):
        return value
    try:
        return enum(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum)
        raise InvalidRequestError(f"Unknown state {value!r}, expected one of: {choices}") from None


def _stamp(
    current: datetime | None,
    supplied: datetime | None | Unset,
    entering: bool,
    now: Clock,
) -> datetime | None:
    """Resolve the date that goes with a state change.

    A supplied value always wins, None included. Otherwise an existing date is
    kept, and entering the state without one stamps the current time.
    """
    if supplied is not UNSET:
        return supplied
    if current is None and entering:
        return now()
    return current


class ServiceLineLedger:
    """Payment, activation, amounts and notes of individual service lines."""

    def __init__(
        self, store: OrderStore, orders: TicketOrderService, clock: Clock = utc_now
    ) -> None:
        self._store = store
        self._orders = orders
        self._clock = clock

    def get_line(self, line_id: str | ServiceLineId) -> ServiceLine:
        lid = ServiceLineId.from_string(line_id)
        line = self._store.get_service_line(lid)
        if line is None:
            raise ServiceLineNotFoundError(lid)
        return line

    def set_payment_state(
        self,
        line_id: str | ServiceLineId,
        state: PaymentState | str,
        paid_at: datetime | None | Unset = UNSET,
    ) -> ServiceLine:
        """Move a line to Pendiente or Pagato.

        Pagato without an existing or supplied date stamps now. Returning to
        Pendiente keeps the old date; pass paid_at=None to clear it.
        """
        new_state = _state(PaymentState, state)
        with self._store.atomic():
            line = self.get_line(line_id)
            updated = dataclasses.replace(
                line,
                payment_state=new_state,
                paid_at=_stamp(line.paid_at, paid_at, new_state is PaymentState.PAID, self._clock),
            )
            saved = self._store.save_service_line(updated)
        logger.info("Service line %s payment %s", saved.id, new_state.value)
        return saved

    def set_activation_state(
        self,
        line_id: str | ServiceLineId,
        state: ActivationState | str,
        activated_at: datetime | None | Unset = UNSET,
    ) -> ServiceLine:
        new_state = _state(ActivationState, state)
        with self._store.atomic():
            line = self.get_line(line_id)
            updated = dataclasses.replace(
                line,
                activation_state=new_state,
                activated_at=_stamp(
                    line.activated_at,
                    activated_at,
                    new_state is ActivationState.ACTIVE,
                    self._clock,
                ),
            )
            saved = self._store.save_service_line(updated)
        if saved.activated_before_payment:
            logger.warning("Service line %s activated before payment", saved.id)
        else:
            logger.info("Service line %s activation %s", saved.id, new_state.value)
        return saved

    def update_amounts(
        self,
        line_id: str | ServiceLineId,
        neto: object = UNSET,
        venduto: object = UNSET,
    ) -> ServiceLine:
        """Change neto and/or venduto, then recompute the order totals.

        Raises:
            InvalidAmountError: If an amount is malformed, negative or not finite.
            OrderArchivedError: If the line belongs to an archived order.
        """
        changes = {}
        if neto is not UNSET:
            changes["neto"] = Money.parse(neto, field="neto")
        if venduto is not UNSET:
            changes["venduto"] = Money.parse(venduto, field="venduto")
        if not changes:
            raise InvalidRequestError("Nothing to update: pass neto and/or venduto")

        with self._store.atomic():
            line = self.get_line(line_id)
            self._orders.require_active(line.order_id)
            saved = self._store.save_service_line(dataclasses.replace(line, **changes))
            self._orders.recompute_totals(line.order_id)
        logger.info("Service line %s amounts neto %s venduto %s", saved.id, saved.neto, saved.venduto)
        return saved

    def update_notes(self, line_id: str | ServiceLineId, notes: str | None) -> ServiceLine:
        with self._store.atomic():
            line = self.get_line(line_id)
            return self._store.save_service_line(dataclasses.replace(line, notes=notes or None))
