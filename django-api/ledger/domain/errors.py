"""Domain error codes for the ledger module."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_IDENTIFIER = "INVALID_IDENTIFIER"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_BUYER = "INVALID_BUYER"
    INVALID_SEAT_COUNT = "INVALID_SEAT_COUNT"
    INVALID_REQUEST = "INVALID_REQUEST"
    TRIP_NOT_FOUND = "TRIP_NOT_FOUND"
    TRIP_ARCHIVED = "TRIP_ARCHIVED"
    TRIP_ALREADY_PROVISIONED = "TRIP_ALREADY_PROVISIONED"
    SEAT_NOT_FOUND = "SEAT_NOT_FOUND"
    SEAT_ALREADY_SOLD = "SEAT_ALREADY_SOLD"
    SEAT_NOT_SOLD = "SEAT_NOT_SOLD"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    ORDER_ARCHIVED = "ORDER_ARCHIVED"
    PASSENGER_NOT_FOUND = "PASSENGER_NOT_FOUND"
    CANNOT_REMOVE_LAST_PASSENGER = "CANNOT_REMOVE_LAST_PASSENGER"
    PASSENGER_HAS_PAID_SERVICES = "PASSENGER_HAS_PAID_SERVICES"
    SERVICE_LINE_NOT_FOUND = "SERVICE_LINE_NOT_FOUND"
    INSTALLMENT_NOT_FOUND = "INSTALLMENT_NOT_FOUND"
    LEDGER_UNAVAILABLE = "LEDGER_UNAVAILABLE"


class ErrorCategory(Enum):
    """How a caller is expected to react to an error."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    INFRASTRUCTURE = "infrastructure"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str
    category: ErrorCategory = ErrorCategory.VALIDATION

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    @property
    def retryable(self) -> bool:
        return self.category is ErrorCategory.INFRASTRUCTURE


class InvalidIdentifierError(DomainError):
    """Raised when an identifier is not a valid UUID."""

    def __init__(self, kind: str, value: object) -> None:
        super().__init__(
            code=ErrorCode.INVALID_IDENTIFIER,
            message=f"Invalid {kind} ID format",
        )
        self.kind = kind
        self.value = value


class InvalidAmountError(DomainError):
    """Raised when a monetary input is malformed, negative or not finite."""

    def __init__(
        self, field: str, value: object, reason: str = "must be a non-negative finite number"
    ) -> None:
        super().__init__(
            code=ErrorCode.INVALID_AMOUNT,
            message=f"{field} {reason}, got {value!r}",
        )
        self.field = field
        self.value = value


class InvalidBuyerError(DomainError):
    def __init__(self, reason: str) -> None:
        super().__init__(code=ErrorCode.INVALID_BUYER, message=reason)


class InvalidSeatCountError(DomainError):
    def __init__(self, count: object) -> None:
        super().__init__(
            code=ErrorCode.INVALID_SEAT_COUNT,
            message=f"Seat count must be a positive integer, got {count!r}",
        )
        self.count = count


class InvalidRequestError(DomainError):
    """Raised for malformed input that has no more specific error."""

    def __init__(self, reason: str) -> None:
        super().__init__(code=ErrorCode.INVALID_REQUEST, message=reason)


class TripNotFoundError(DomainError):
    def __init__(self, trip_id: object) -> None:
        super().__init__(
            code=ErrorCode.TRIP_NOT_FOUND,
            message=f"Trip {trip_id} not found",
            category=ErrorCategory.NOT_FOUND,
        )
        self.trip_id = trip_id


class TripArchivedError(DomainError):
    """Raised when selling on a trip that is no longer active."""

    def __init__(self, trip_id: object) -> None:
        super().__init__(
            code=ErrorCode.TRIP_ARCHIVED,
            message=f"Trip {trip_id} is archived and cannot sell seats",
            category=ErrorCategory.CONFLICT,
        )
        self.trip_id = trip_id


class TripAlreadyProvisionedError(DomainError):
    def __init__(self, trip_id: object, existing: int) -> None:
        super().__init__(
            code=ErrorCode.TRIP_ALREADY_PROVISIONED,
            message=f"Trip {trip_id} already has {existing} seats provisioned",
            category=ErrorCategory.CONFLICT,
        )
        self.trip_id = trip_id
        self.existing = existing


class SeatNotFoundError(DomainError):
    def __init__(self, trip_id: object, seat_number: int) -> None:
        super().__init__(
            code=ErrorCode.SEAT_NOT_FOUND,
            message=f"Seat {seat_number} does not exist on trip {trip_id}",
            category=ErrorCategory.NOT_FOUND,
        )
        self.trip_id = trip_id
        self.seat_number = seat_number


class SeatAlreadySoldError(DomainError):
    """Raised when a seat is not Free at the time of the sale."""

    def __init__(self, seat_number: int, sold_at: datetime | None = None) -> None:
        when = f" at {sold_at:%Y-%m-%d %H:%M}" if sold_at else ""
        super().__init__(
            code=ErrorCode.SEAT_ALREADY_SOLD,
            message=f"Seat {seat_number} already sold{when}",
            category=ErrorCategory.CONFLICT,
        )
        self.seat_number = seat_number
        self.sold_at = sold_at


class SeatNotSoldError(DomainError):
    def __init__(self, seat_number: int) -> None:
        super().__init__(
            code=ErrorCode.SEAT_NOT_SOLD,
            message=f"Seat {seat_number} is free, there is no sale to cancel",
            category=ErrorCategory.CONFLICT,
        )
        self.seat_number = seat_number


class NotAuthorizedError(DomainError):
    def __init__(self, actor_id: str, action: str) -> None:
        super().__init__(
            code=ErrorCode.NOT_AUTHORIZED,
            message=f"Actor {actor_id} is not allowed to {action}",
            category=ErrorCategory.FORBIDDEN,
        )
        self.actor_id = actor_id
        self.action = action


class OrderNotFoundError(DomainError):
    def __init__(self, order_id: object) -> None:
        super().__init__(
            code=ErrorCode.ORDER_NOT_FOUND,
            message=f"Ticket order {order_id} not found",
            category=ErrorCategory.NOT_FOUND,
        )
        self.order_id = order_id


class OrderArchivedError(DomainError):
    def __init__(self, order_id: object) -> None:
        super().__init__(
            code=ErrorCode.ORDER_ARCHIVED,
            message=f"Ticket order {order_id} is archived",
            category=ErrorCategory.CONFLICT,
        )
        self.order_id = order_id


class PassengerNotFoundError(DomainError):
    def __init__(self, passenger_id: object) -> None:
        super().__init__(
            code=ErrorCode.PASSENGER_NOT_FOUND,
            message=f"Passenger {passenger_id} not found",
            category=ErrorCategory.NOT_FOUND,
        )
        self.passenger_id = passenger_id


class CannotRemoveLastPassengerError(DomainError):
    """Raised when removing the only passenger of an order."""

    def __init__(self, order_id: object) -> None:
        super().__init__(
            code=ErrorCode.CANNOT_REMOVE_LAST_PASSENGER,
            message=f"Passenger is the only one on order {order_id}",
        )
        self.order_id = order_id


class PassengerHasPaidServicesError(DomainError):
    def __init__(self, passenger_id: object, paid_lines: int) -> None:
        super().__init__(
            code=ErrorCode.PASSENGER_HAS_PAID_SERVICES,
            message=f"Passenger {passenger_id} has {paid_lines} paid service(s)",
        )
        self.passenger_id = passenger_id
        self.paid_lines = paid_lines


class ServiceLineNotFoundError(DomainError):
    def __init__(self, line_id: object) -> None:
        super().__init__(
            code=ErrorCode.SERVICE_LINE_NOT_FOUND,
            message=f"Service line {line_id} not found",
            category=ErrorCategory.NOT_FOUND,
        )
        self.line_id = line_id


class InstallmentNotFoundError(DomainError):
    def __init__(self, order_id: object, number: int) -> None:
        super().__init__(
            code=ErrorCode.INSTALLMENT_NOT_FOUND,
            message=f"Installment {number} not found on order {order_id}",
            category=ErrorCategory.NOT_FOUND,
        )
        self.order_id = order_id
        self.number = number


class LedgerUnavailableError(DomainError):
    """Raised when the store times out or loses its connection.

    The transaction has been rolled back; re-read before retrying.
    """

    def __init__(self, detail: str) -> None:
        super().__init__(
            code=ErrorCode.LEDGER_UNAVAILABLE,
            message="The ledger is temporarily unavailable, try again",
            category=ErrorCategory.INFRASTRUCTURE,
        )
        self.detail = detail
