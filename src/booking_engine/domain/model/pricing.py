"""Pricing snapshot of a booking.

Computed once when the booking is created and never re-priced afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from booking_engine.domain.exceptions import ValidationError
from booking_engine.domain.model.offering import Offering
from booking_engine.domain.model.value_objects import Money, Quantity

DEFAULT_VAT_RATE = Decimal("13")


@dataclass(frozen=True)
class TaxLine:
    name: str
    rate: Decimal  # percent
    amount: Money


@dataclass(frozen=True)
class Discount:
    type: str
    amount: Money
    reason: str = ""

    def __post_init__(self) -> None:
        if not self.type or not self.type.strip():
            raise ValidationError("Discount type is required")


@dataclass(frozen=True)
class Pricing:
    base_amount: Money
    taxes: tuple[TaxLine, ...] = field(default_factory=tuple)
    discounts: tuple[Discount, ...] = field(default_factory=tuple)

    @property
    def currency(self) -> str:
        return self.base_amount.currency

    @property
    def tax_total(self) -> Money:
        result = Money.zero(self.currency)
        for tax in self.taxes:
            result = result + tax.amount
        return result

    @property
    def discount_total(self) -> Money:
        result = Money.zero(self.currency)
        for discount in self.discounts:
            result = result + discount.amount
        return result

    @property
    def total_amount(self) -> Money:
        return (self.base_amount + self.tax_total) - self.discount_total

    @staticmethod
    def quote(
        offering: Offering,
        quantity: Quantity,
        discounts: list[Discount] | None = None,
        default_vat_rate: Decimal = DEFAULT_VAT_RATE,
    ) -> Pricing:
        """Price ``quantity`` units of ``offering``.

        base = price x quantity; VAT and service tax are percentages of the
        base; discounts are subtracted last and may not exceed base + taxes.
        """
        base = offering.base_price * quantity.value
        vat_rate = offering.vat_rate if offering.vat_rate is not None else default_vat_rate

        taxes = [TaxLine("vat", Decimal(vat_rate), base.percent(vat_rate))]
        if offering.service_tax_rate:
            taxes.append(
                TaxLine(
                    "service_tax",
                    Decimal(offering.service_tax_rate),
                    base.percent(offering.service_tax_rate),
                )
            )

        for discount in discounts or []:
            if discount.amount.currency != base.currency:
                raise ValidationError(
                    f"Discount currency {discount.amount.currency} does not "
                    f"match offering currency {base.currency}"
                )

        pricing = Pricing(
            base_amount=base,
            taxes=tuple(taxes),
            discounts=tuple(discounts or []),
        )
        if pricing.discount_total > pricing.base_amount + pricing.tax_total:
            raise ValidationError(
                f"Discounts {pricing.discount_total} exceed the gross amount "
                f"{pricing.base_amount + pricing.tax_total}"
            )
        return pricing
