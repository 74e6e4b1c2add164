"""Order aggregate arithmetic shared by the recompute and the auditor."""

from collections.abc import Iterable
from decimal import Decimal

from ledger.domain.errors import InvalidAmountError
from ledger.domain.models import OrderTotals, ServiceLine
from ledger.domain.value_objects import MAX_AMOUNT

ZERO = Decimal("0.00")


def compute_totals(lines: Iterable[ServiceLine], deposit: Decimal) -> OrderTotals:
    """Derive order totals from its service lines.

    agency_fee = sum(venduto) - sum(neto); balance_due = total_sale_price - deposit.
    """
    net_cost = ZERO
    total_sale_price = ZERO
    for line in lines:
        net_cost += line.neto.amount
        total_sale_price += line.venduto.amount
    return OrderTotals(
        net_cost=net_cost,
        total_sale_price=total_sale_price,
        deposit=deposit,
        balance_due=total_sale_price - deposit,
        agency_fee=total_sale_price - net_cost,
    )


def ensure_storable(totals: OrderTotals) -> OrderTotals:
    """Refuse totals whose magnitude does not fit the ledger columns.

    Each line amount is bounded on input, but their sums are not.
    """
    for field in ("net_cost", "total_sale_price", "balance_due", "agency_fee"):
        value = getattr(totals, field)
        if abs(value) > MAX_AMOUNT:
            raise InvalidAmountError(field, value, reason=f"must not exceed {MAX_AMOUNT}")
    return totals
