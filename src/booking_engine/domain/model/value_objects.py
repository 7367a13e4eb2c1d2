"""Value Objects shared across the domain.

Value Objects are immutable and compared by value, not identity.
They encapsulate validation so invalid values can never exist.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

from booking_engine.domain.exceptions import ValidationError

DEFAULT_CURRENCY = "NPR"
_CENT = Decimal("0.01")


class ServiceType(Enum):
    """Closed set of things that can be booked."""

    SCHEDULED_TRANSPORT = "scheduled_transport"
    FREIGHT = "freight"
    TOUR = "tour"
    RENTAL = "rental"
    MATERIAL_ORDER = "material_order"


@dataclass(frozen=True)
class Money:
    """Non-negative monetary amount with currency.

    Uses Decimal to avoid floating-point rounding errors that would be
    unacceptable in financial calculations.  Amounts are always held at
    two decimal places (half-up rounding).
    """

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if not self.amount.is_finite():
            raise ValidationError(f"Money amount must be finite, got {self.amount}")
        if self.amount < Decimal("0"):
            raise ValidationError(
                f"Money amount cannot be negative, got {self.amount}"
            )
        object.__setattr__(self, "amount", self.amount.quantize(_CENT, ROUND_HALF_UP))

    # --- Arithmetic helpers ---------------------------------------------------

    def __add__(self, other: Money) -> Money:
        self._assert_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        self._assert_same_currency(other)
        result = self.amount - other.amount
        if result < Decimal("0"):
            raise ValidationError("Money subtraction would result in a negative amount")
        return Money(result, self.currency)

    def __mul__(self, factor: int) -> Money:
        if not isinstance(factor, int):
            raise TypeError(f"Can only multiply Money by int, got {type(factor).__name__}")
        return Money(self.amount * factor, self.currency)

    def __lt__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount <= other.amount

    def __gt__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount > other.amount

    def __ge__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount >= other.amount

    def percent(self, rate: Decimal) -> Money:
        """Return ``rate`` percent of this amount, e.g. ``percent(13)`` for VAT."""
        return Money(self.amount * Decimal(rate) / Decimal("100"), self.currency)

    def saturating_sub(self, other: Money) -> Money:
        """Subtract, flooring at zero instead of raising."""
        self._assert_same_currency(other)
        return Money(max(Decimal("0"), self.amount - other.amount), self.currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == Decimal("0")

    # --- Display --------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.currency} {self.amount:.2f}"

    # --- Internal helpers -----------------------------------------------------

    def _assert_same_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise ValidationError(
                f"Cannot combine {self.currency} with {other.currency}"
            )

    # --- Factories ------------------------------------------------------------

    @staticmethod
    def of(amount: str | float | int | Decimal, currency: str = DEFAULT_CURRENCY) -> Money:
        """Convenient factory that coerces to Decimal safely."""
        try:
            return Money(Decimal(str(amount)), currency)
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid money amount: {amount!r}") from exc

    @staticmethod
    def zero(currency: str = DEFAULT_CURRENCY) -> Money:
        return Money(Decimal("0"), currency)


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------
def as_utc(moment: datetime | None) -> datetime | None:
    """Normalize a timestamp to aware UTC; naive values are taken to be UTC."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


@dataclass(frozen=True)
class Quantity:
    """A positive integer quantity.

    Units are domain dependent: passengers, tonnes, rental days, bags.
    """

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValidationError(
                f"Quantity must be an integer, got {type(self.value).__name__}"
            )
        if self.value <= 0:
            raise ValidationError("Quantity must be positive")

    def __str__(self) -> str:
        return str(self.value)


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class ContactInfo:
    """Snapshot of who to contact about a booking.

    Copied at booking time, never a live link to the user profile.
    """

    name: str
    phone: str
    email: str
    alternate_phone: str | None = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Contact name is required")
        if not self.phone or not self.phone.strip():
            raise ValidationError("Contact phone is required")
        if not self.email or not _EMAIL_RE.match(self.email):
            raise ValidationError(f"Invalid contact email: {self.email!r}")


# ---------------------------------------------------------------------------
# Material specifications
# ---------------------------------------------------------------------------
SpecValue = str | int | float | bool

SPECIFICATION_SCHEMAS: dict[str, dict[str, type]] = {
    "cement": {"grade": str, "brand": str, "bag_weight_kg": int},
    "steel": {"grade": str, "diameter_mm": int, "length_m": float},
    "bricks": {"kind": str, "size": str, "fired": bool},
    "sand": {"kind": str, "washed": bool},
}


@dataclass(frozen=True)
class Specifications:
    """Typed key/value description of an ordered material.

    Validated against the schema of its ``category``: every key must be
    known and every value must have the declared primitive type.
    """

    category: str
    values: dict[str, SpecValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        schema = SPECIFICATION_SCHEMAS.get(self.category)
        if schema is None:
            raise ValidationError(f"Unknown material category: {self.category!r}")
        for key, value in self.values.items():
            expected = schema.get(key)
            if expected is None:
                raise ValidationError(
                    f"Unknown specification '{key}' for category {self.category}"
                )
            if not _matches(value, expected):
                raise ValidationError(
                    f"Specification '{key}' must be {expected.__name__}, "
                    f"got {type(value).__name__}"
                )
        object.__setattr__(self, "values", dict(self.values))


def _matches(value: object, expected: type) -> bool:
    # bool is a subclass of int; keep them apart.
    if isinstance(value, bool):
        return expected is bool
    if expected is float:
        return isinstance(value, (int, float))
    return isinstance(value, expected)
