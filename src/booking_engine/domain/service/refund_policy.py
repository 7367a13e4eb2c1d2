"""Cancellation & refund policy.

Pure functions of (paid amount, scheduled start, now).  No I/O, no clock
access; callers pass ``now`` explicitly so the boundaries are testable.

Default policy, measured as lead time = scheduled start - now:

    lead time >= 24h   -> 100 % of the paid amount
    2h <= lead < 24h   ->  50 %
    lead < 2h          ->   0 %  (includes bookings that already started)

When the start is unknown (e.g. a material order with no delivery date)
the lead time is taken to be 24 hours.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Protocol

from booking_engine.domain.exceptions import ValidationError
from booking_engine.domain.model.value_objects import Money, ServiceType, as_utc

UNKNOWN_START_LEAD_TIME = timedelta(hours=24)


@dataclass(frozen=True)
class RefundTier:
    """Refund ``percent`` of the paid amount when lead time >= ``min_lead``."""

    min_lead: timedelta
    percent: Decimal


DEFAULT_TIERS = (
    RefundTier(timedelta(hours=24), Decimal("100")),
    RefundTier(timedelta(hours=2), Decimal("50")),
)


class RefundPolicy(Protocol):

    def compute_refund(
        self, paid_amount: Money, scheduled_start: datetime | None, now: datetime
    ) -> Money:
        ...


def lead_time(scheduled_start: datetime | None, now: datetime) -> timedelta:
    if scheduled_start is None:
        return UNKNOWN_START_LEAD_TIME
    return as_utc(scheduled_start) - as_utc(now)


class TieredRefundPolicy:
    """Refund a percentage picked from the first tier whose lead time is met."""

    def __init__(self, tiers: tuple[RefundTier, ...] = DEFAULT_TIERS) -> None:
        ordered = tuple(sorted(tiers, key=lambda t: t.min_lead, reverse=True))
        for tier in ordered:
            if not Decimal("0") <= tier.percent <= Decimal("100"):
                raise ValidationError(f"Refund percent must be 0..100, got {tier.percent}")
        self._tiers = ordered

    def compute_refund(
        self, paid_amount: Money, scheduled_start: datetime | None, now: datetime
    ) -> Money:
        lead = lead_time(scheduled_start, now)
        for tier in self._tiers:
            if lead >= tier.min_lead:
                return paid_amount.percent(tier.percent)
        return Money.zero(paid_amount.currency)


_DEFAULT_POLICY = TieredRefundPolicy()


def compute_refund(paid_amount: Money, scheduled_start: datetime | None, now: datetime) -> Money:
    """Apply the default tiered policy."""
    return _DEFAULT_POLICY.compute_refund(paid_amount, scheduled_start, now)


class RefundPolicyRegistry:
    """Per-service-type policies with a shared fallback."""

    def __init__(
        self,
        default: RefundPolicy | None = None,
        overrides: dict[ServiceType, RefundPolicy] | None = None,
    ) -> None:
        self._default = default or _DEFAULT_POLICY
        self._overrides = dict(overrides or {})

    def register(self, service_type: ServiceType, policy: RefundPolicy) -> None:
        self._overrides[service_type] = policy

    def policy_for(self, service_type: ServiceType) -> RefundPolicy:
        return self._overrides.get(service_type, self._default)
