"""Offering aggregate.

An offering is a sellable unit of capacity: a bus departure, a cargo slot,
a tour date, a rental machine, a material SKU.  Offerings live independently
of bookings; bookings take a price snapshot at creation time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from booking_engine.domain.exceptions import ValidationError
from booking_engine.domain.model.value_objects import Money, ServiceType, as_utc


@dataclass
class Offering:
    """A published offering.

    ``vat_rate`` and ``service_tax_rate`` are percentages; ``None`` means
    "use the configured default" for VAT and zero for service tax.
    """

    id: str
    name: str
    service_type: ServiceType
    base_price: Money
    capacity: int
    vat_rate: Decimal | None = None
    service_tax_rate: Decimal = Decimal("0")
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    is_active: bool = True

    def __post_init__(self) -> None:
        self.scheduled_start = as_utc(self.scheduled_start)
        self.scheduled_end = as_utc(self.scheduled_end)
        if not self.name or not self.name.strip():
            raise ValidationError("Offering name is required")
        if self.base_price.amount <= 0:
            raise ValidationError("Offering price must be greater than zero")
        if self.capacity < 0:
            raise ValidationError("Offering capacity cannot be negative")
        for rate in (self.vat_rate, self.service_tax_rate):
            if rate is not None and rate < 0:
                raise ValidationError("Tax rates cannot be negative")
        if (
            self.scheduled_start is not None
            and self.scheduled_end is not None
            and self.scheduled_end < self.scheduled_start
        ):
            raise ValidationError("Offering cannot end before it starts")

    @property
    def currency(self) -> str:
        return self.base_price.currency

    def deactivate(self) -> None:
        """Stop accepting new bookings; existing bookings are unaffected."""
        self.is_active = False
