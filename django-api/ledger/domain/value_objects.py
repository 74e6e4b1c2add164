"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Self
from uuid import UUID

from ledger.domain.errors import (
    InvalidAmountError,
    InvalidBuyerError,
    InvalidIdentifierError,
    InvalidRequestError,
    InvalidSeatCountError,
)

CENT = Decimal("0.01")
# Largest amount the ledger columns hold (12 digits, 2 of them decimals).
MAX_AMOUNT = Decimal("9999999999.99")


class _Unset(Enum):
    UNSET = "UNSET"


# Marks an optional argument the caller did not pass, as opposed to an explicit None.
UNSET = _Unset.UNSET
Unset = _Unset


@dataclass(frozen=True)
class EntityId:
    """UUID-backed identifier; subclasses name the entity kind."""

    value: UUID

    kind = "entity"

    @classmethod
    def from_string(cls, value: "str | UUID | EntityId") -> Self:
        if isinstance(value, cls):
            return value
        if isinstance(value, UUID):
            return cls(value=value)
        try:
            return cls(value=UUID(str(value)))
        except (TypeError, ValueError, AttributeError):
            raise InvalidIdentifierError(cls.kind, value) from None

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TripId(EntityId):
    """Unique identifier for a scheduled bus trip."""

    kind = "trip"


@dataclass(frozen=True)
class OrderId(EntityId):
    """Unique identifier for a TicketOrder."""

    kind = "order"


@dataclass(frozen=True)
class PassengerId(EntityId):
    kind = "passenger"


@dataclass(frozen=True)
class ServiceLineId(EntityId):
    kind = "service line"


@dataclass(frozen=True)
class Money:
    """Price representation with validation."""

    amount: Decimal

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")

    def __str__(self) -> str:
        return f"{self.amount:.2f}"

    @classmethod
    def zero(cls) -> Self:
        return cls(amount=Decimal("0.00"))

    @classmethod
    def parse(cls, value: object, field: str = "amount") -> Self:
        """Build Money from user input, rejecting anything that is not a
        non-negative finite number that fits the ledger columns. Blank or
        malformed strings are errors, never zero.
        """
        if isinstance(value, Money):
            return cls(amount=value.amount)
        if value is None or isinstance(value, bool):
            raise InvalidAmountError(field, value)
        try:
            if isinstance(value, str):
                amount = Decimal(value.strip())
            elif isinstance(value, float):
                amount = Decimal(repr(value))
            elif isinstance(value, (int, Decimal)):
                amount = Decimal(value)
            else:
                raise InvalidAmountError(field, value)
            if not amount.is_finite() or amount < 0:
                raise InvalidAmountError(field, value)
            # anything that rounds to more than the bound
            if amount >= MAX_AMOUNT + CENT / 2:
                raise InvalidAmountError(field, value, reason=f"must not exceed {MAX_AMOUNT}")
            return cls(amount=amount.quantize(CENT, rounding=ROUND_HALF_UP))
        except InvalidOperation:
            raise InvalidAmountError(field, value) from None


@dataclass(frozen=True)
class SeatCount:
    """Positive number of seats in a trip's seat map."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int) or self.value < 1:
            raise InvalidSeatCountError(self.value)


def parse_number(value: object, what: str = "seat number") -> int:
    """Seat and installment numbers are 1-based integers."""
    if isinstance(value, bool):
        raise InvalidRequestError(f"Invalid {what} {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidRequestError(f"Invalid {what} {value!r}") from None
    if number < 1 or (isinstance(value, float) and value != number):
        raise InvalidRequestError(f"Invalid {what} {value!r}")
    return number


class Lifecycle(Enum):
    """Entity lifecycle shared by trips and ticket orders."""

    ACTIVE = "active"
    ARCHIVED = "archived"


class SeatStatus(Enum):
    FREE = "free"
    SOLD = "sold"


class PaymentState(Enum):
    """Payment facet of a service line."""

    PENDING = "Pendiente"
    PAID = "Pagato"


class ActivationState(Enum):
    """Activation facet of a service line, independent of payment."""

    INACTIVE = "inactive"
    ACTIVE = "active"


class Role(Enum):
    """Coarse role supplied by the identity provider."""

    STAFF = "USER"
    ADMIN = "ADMIN"
    IT = "TI"


@dataclass(frozen=True)
class Actor:
    """Authenticated identity performing an operation."""

    id: str
    role: Role = Role.STAFF

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise InvalidRequestError("Actor id is required")


@dataclass(frozen=True)
class Buyer:
    """Who a seat was sold to."""

    name: str
    phone: str | None = None
    email: str | None = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise InvalidBuyerError("Buyer name is required")
