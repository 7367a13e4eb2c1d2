"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry data between the outer layers (CLI, HTTP adapters, gateway
callbacks) and the application layer without exposing domain internals.
Money is rendered as strings such as ``"NPR 1130.00"``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from booking_engine.domain.exceptions import ValidationError
from booking_engine.domain.model.booking import Booking, BookingStatus
from booking_engine.domain.model.payment import PaymentMethod, TransactionOutcome
from booking_engine.domain.model.value_objects import ServiceType


# --- Input --------------------------------------------------------------------


@dataclass(frozen=True)
class ScheduleInfo:
    """Requested start (travel/use/delivery date) and optional end."""

    start: datetime | None = None
    end: datetime | None = None


@dataclass(frozen=True)
class ContactDetails:
    name: str
    phone: str
    email: str
    alternate_phone: str | None = None


@dataclass(frozen=True)
class DiscountSpec:
    type: str
    amount: str
    reason: str = ""


def parse_enum(enum_cls, raw: str, label: str):
    """Map user input onto an enum member, raising ValidationError."""
    try:
        return enum_cls(raw.strip().lower())
    except (ValueError, AttributeError) as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {label} {raw!r} (expected one of: {allowed})") from exc


def parse_payment_method(raw: str | None) -> PaymentMethod | None:
    if raw is None:
        return None
    return parse_enum(PaymentMethod, raw, "payment method")


def parse_outcome(raw: str) -> TransactionOutcome:
    return parse_enum(TransactionOutcome, raw, "payment outcome")


def parse_status(raw: str) -> BookingStatus:
    return parse_enum(BookingStatus, raw, "booking status")


def parse_service_type(raw: str) -> ServiceType:
    return parse_enum(ServiceType, raw, "service type")


# --- Output -------------------------------------------------------------------


@dataclass(frozen=True)
class StatusChangeDTO:
    status: str
    timestamp: str
    actor: str
    note: str


@dataclass(frozen=True)
class TransactionDTO:
    id: str
    amount: str
    method: str | None
    status: str
    gateway_reference: str
    timestamp: str


@dataclass(frozen=True)
class CancellationDTO:
    reason: str
    requested_by: str
    requested_at: str
    refund_amount: str
    refund_status: str
    approved_by: str | None


@dataclass(frozen=True)
class BookingDTO:
    """Output: a complete booking as displayed to the user."""

    reference: str
    user_id: str
    offering_id: str
    service_type: str
    quantity: int
    status: str
    start: str | None
    end: str | None
    contact_name: str
    base_amount: str
    taxes: str
    discounts: str
    total: str
    paid: str
    due: str
    refunded: str
    payment_status: str
    payment_method: str | None
    transactions: list[TransactionDTO]
    status_history: list[StatusChangeDTO]
    cancellation: CancellationDTO | None
    created_at: str
    version: int


@dataclass(frozen=True)
class CancellationResultDTO:
    reference: str
    status: str
    refund_amount: str
    refund_status: str


def _fmt(moment: datetime | None) -> str | None:
    if moment is None:
        return None
    return moment.strftime("%Y-%m-%d %H:%M UTC")


def to_booking_dto(booking: Booking) -> BookingDTO:
    payment = booking.payment
    cancellation = booking.cancellation
    currency = payment.currency
    return BookingDTO(
        reference=booking.reference,
        user_id=booking.user_id,
        offering_id=booking.offering_id,
        service_type=booking.service_type.value,
        quantity=booking.quantity.value,
        status=booking.status.value,
        start=_fmt(booking.schedule.start),
        end=_fmt(booking.schedule.end),
        contact_name=booking.contact.name,
        base_amount=str(booking.pricing.base_amount),
        taxes=str(booking.pricing.tax_total),
        discounts=str(booking.pricing.discount_total),
        total=str(booking.pricing.total_amount),
        paid=str(payment.paid_amount),
        due=str(payment.due_amount),
        refunded=str(payment.refund_amount),
        payment_status=payment.status.value,
        payment_method=payment.method.value if payment.method else None,
        transactions=[
            TransactionDTO(
                id=txn.id,
                amount=f"{currency} {txn.amount:.2f}",
                method=txn.method.value if txn.method else None,
                status=txn.status,
                gateway_reference=txn.gateway_reference,
                timestamp=_fmt(txn.timestamp),  # type: ignore[arg-type]
            )
            for txn in payment.transactions
        ],
        status_history=[
            StatusChangeDTO(
                status=change.status.value,
                timestamp=_fmt(change.timestamp),  # type: ignore[arg-type]
                actor=change.actor,
                note=change.note,
            )
            for change in booking.status_history
        ],
        cancellation=(
            CancellationDTO(
                reason=cancellation.reason,
                requested_by=cancellation.requested_by,
                requested_at=_fmt(cancellation.requested_at),  # type: ignore[arg-type]
                refund_amount=str(cancellation.refund_amount),
                refund_status=cancellation.refund_status.value,
                approved_by=cancellation.approved_by,
            )
            if cancellation
            else None
        ),
        created_at=_fmt(booking.created_at),  # type: ignore[arg-type]
        version=booking.version,
    )
