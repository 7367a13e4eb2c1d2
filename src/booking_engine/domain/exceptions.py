"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
Each subclass carries the structured data callers need to react (offer a
different quantity, reload and retry, ...).
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class PermissionDeniedError(DomainException):
    """The acting user may not perform the requested operation."""


class InsufficientCapacityError(DomainException):
    """An offering does not have enough capacity left for a reservation."""

    def __init__(self, offering_id: str, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient capacity for offering '{offering_id}' "
            f"(need {requested}, have {available} available)"
        )
        self.offering_id = offering_id
        self.requested = requested
        self.available = available


class IllegalTransitionError(DomainException):
    """A status change is not allowed from the booking's current status."""

    def __init__(self, current: str, target: str, detail: str | None = None) -> None:
        message = f"Illegal booking status transition: {current} -> {target}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.current = current
        self.target = target


class InvalidPaymentAmountError(DomainException):
    """A payment amount is malformed or would overpay the booking."""


class VersionConflictError(DomainException):
    """The booking was modified concurrently; reload and retry."""

    def __init__(self, booking_id: str, expected_version: int, actual_version: int | None) -> None:
        super().__init__(
            f"Booking {booking_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
        self.booking_id = booking_id
        self.expected_version = expected_version
        self.actual_version = actual_version
