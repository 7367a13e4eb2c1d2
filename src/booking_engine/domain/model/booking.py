"""Booking aggregate: the core of the domain.

The Booking owns its status, status history, pricing snapshot, payment
ledger and cancellation record.  Every status change goes through
``Booking.transition_to`` which enforces the transition table and appends
exactly one history entry.

The aggregate never talks to the inventory store itself.  Transitions that
give capacity back report how many units to release; the application
handler releases them after the booking has been saved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from booking_engine.domain.exceptions import IllegalTransitionError, ValidationError
from booking_engine.domain.model.offering import Offering
from booking_engine.domain.model.payment import (
    OVERPAYMENT_TOLERANCE,
    Payment,
    PaymentMethod,
    PaymentTransaction,
    TransactionOutcome,
)
from booking_engine.domain.model.pricing import Pricing
from booking_engine.domain.model.value_objects import (
    ContactInfo,
    Money,
    Quantity,
    ServiceType,
    Specifications,
    as_utc,
)

SYSTEM_ACTOR = "system"


class BookingStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


ACTIVE_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS}
)
TERMINAL_STATUSES = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REFUNDED}
)

# cancelled -> refunded is the only move out of a terminal status; it only
# records that money went back and never touches status-dependent state.
_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED}
    ),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED}
    ),
    BookingStatus.IN_PROGRESS: frozenset(
        {BookingStatus.COMPLETED, BookingStatus.CANCELLED}
    ),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset({BookingStatus.REFUNDED}),
    BookingStatus.REFUNDED: frozenset(),
}

# Targets reachable through ``advance``; the rest need their own operation.
MANUAL_TARGETS = frozenset(
    {BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED}
)


class RefundStatus(Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


@dataclass(frozen=True)
class StatusChange:
    """One entry of the append-only status history."""

    status: BookingStatus
    timestamp: datetime
    actor: str
    note: str = ""


@dataclass
class Cancellation:
    reason: str
    requested_by: str
    requested_at: datetime
    refund_amount: Money
    refund_status: RefundStatus = RefundStatus.PENDING
    approved_by: str | None = None
    approved_at: datetime | None = None


@dataclass
class Schedule:
    """Requested dates plus the moments each lifecycle step happened."""

    start: datetime | None = None
    end: datetime | None = None
    confirmed_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Booking:
    """Aggregate root for bookings.

    Use ``Booking.create()`` for new bookings; the ``__init__`` stays plain
    so the repository can reconstitute persisted bookings without
    re-validating.

    Invariants:
    - ``status_history`` is never empty and its last status equals ``status``
    - ``held_quantity > 0`` if and only if ``status`` is active
    - ``payment.paid_amount + payment.due_amount == pricing.total_amount``
    """

    reference: str
    user_id: str
    offering_id: str
    service_type: ServiceType
    quantity: Quantity
    contact: ContactInfo
    pricing: Pricing
    payment: Payment
    schedule: Schedule = field(default_factory=Schedule)
    status: BookingStatus = BookingStatus.PENDING
    status_history: list[StatusChange] = field(default_factory=list)
    cancellation: Cancellation | None = None
    specifications: Specifications | None = None
    notes: str | None = None
    held_quantity: int = 0
    created_at: datetime = field(default_factory=utcnow)
    version: int = 0

    # --- Factory (used for NEW bookings only) ---------------------------------

    @staticmethod
    def create(
        reference: str,
        user_id: str,
        offering: Offering,
        quantity: Quantity,
        contact: ContactInfo,
        pricing: Pricing,
        now: datetime,
        start: datetime | None = None,
        end: datetime | None = None,
        specifications: Specifications | None = None,
        notes: str | None = None,
        payment_method: PaymentMethod | None = None,
    ) -> Booking:
        """Create a pending booking whose capacity is already reserved.

        A booking with nothing due (discounted to zero) starts confirmed.

        Must only be called after the inventory store accepted a
        reservation of ``quantity`` units for ``offering``.
        """
        if not reference:
            raise ValidationError("Booking reference is required")
        if not user_id or not user_id.strip():
            raise ValidationError("Owning user is required")

        start = as_utc(start) if start is not None else offering.scheduled_start
        end = as_utc(end) if end is not None else offering.scheduled_end
        if start is not None and end is not None and end < start:
            raise ValidationError("Booking cannot end before it starts")

        if specifications is not None and offering.service_type is not ServiceType.MATERIAL_ORDER:
            raise ValidationError("Specifications are only accepted for material orders")

        booking = Booking(
            reference=reference,
            user_id=user_id.strip(),
            offering_id=offering.id,
            service_type=offering.service_type,
            quantity=quantity,
            contact=contact,
            pricing=pricing,
            payment=Payment(total_amount=pricing.total_amount, method=payment_method),
            schedule=Schedule(start=start, end=end),
            status=BookingStatus.PENDING,
            status_history=[
                StatusChange(BookingStatus.PENDING, now, user_id.strip(), "Booking created")
            ],
            specifications=specifications,
            notes=notes,
            held_quantity=quantity.value,
            created_at=now,
        )
        if booking.payment.is_settled:
            booking.transition_to(
                BookingStatus.CONFIRMED, SYSTEM_ACTOR, now, "Auto-confirmed, nothing due"
            )
        return booking

    # --- Queries --------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def holds_inventory(self) -> bool:
        return self.held_quantity > 0

    def can_transition_to(self, target: BookingStatus) -> bool:
        return target in _TRANSITIONS[self.status]

    # --- State transitions ----------------------------------------------------

    def transition_to(
        self,
        target: BookingStatus,
        actor: str,
        now: datetime,
        note: str = "",
    ) -> int:
        """Move to ``target`` if the transition table allows it.

        Appends one history entry and stamps the schedule.  Returns the
        number of capacity units the caller must release (non-zero only
        when entering ``cancelled`` or ``completed`` while still holding).
        """
        if not self.can_transition_to(target):
            raise IllegalTransitionError(self.status.value, target.value)

        released = 0
        if target in (BookingStatus.CANCELLED, BookingStatus.COMPLETED) and self.holds_inventory:
            released = self.held_quantity
            self.held_quantity = 0

        if target is BookingStatus.CONFIRMED:
            self.schedule.confirmed_at = now
        elif target is BookingStatus.IN_PROGRESS:
            self.schedule.started_at = now
        elif target is BookingStatus.COMPLETED:
            self.schedule.completed_at = now
        elif target is BookingStatus.CANCELLED:
            self.schedule.cancelled_at = now

        self.status = target
        self.status_history.append(
            StatusChange(target, now, actor, note or f"Status changed to {target.value}")
        )
        return released

    def advance(self, target: BookingStatus, actor: str, now: datetime, note: str = "") -> int:
        """Manual status change by an authorized actor."""
        if target not in MANUAL_TARGETS:
            raise IllegalTransitionError(
                self.status.value,
                target.value,
                "use the cancellation or refund operation instead",
            )
        return self.transition_to(target, actor, now, note)

    def record_payment(
        self,
        amount: Decimal,
        method: PaymentMethod | None,
        gateway_reference: str,
        outcome: TransactionOutcome,
        now: datetime,
        tolerance: Decimal = OVERPAYMENT_TOLERANCE,
    ) -> PaymentTransaction:
        """Apply a gateway confirmation.

        Auto-confirms a pending booking once nothing is due any more.
        """
        if outcome is TransactionOutcome.REFUNDED:
            raise ValidationError("Refunds are recorded through mark_refund_issued")
        if self.is_terminal:
            raise IllegalTransitionError(
                self.status.value, "payment", "booking no longer accepts payments"
            )

        txn = self.payment.record_transaction(
            amount, method, gateway_reference, outcome, now, tolerance
        )
        if (
            outcome is TransactionOutcome.CAPTURED
            and self.status is BookingStatus.PENDING
            and self.payment.is_settled
        ):
            self.transition_to(
                BookingStatus.CONFIRMED, SYSTEM_ACTOR, now, "Auto-confirmed after payment"
            )
        return txn

    def cancel(
        self,
        requested_by: str,
        reason: str,
        refund_amount: Money,
        now: datetime,
        approved: bool = False,
        refund_failed: bool = False,
    ) -> int:
        """Transition to ``cancelled`` and attach the cancellation record.

        Returns the number of capacity units to release.
        """
        if not self.can_transition_to(BookingStatus.CANCELLED):
            raise IllegalTransitionError(self.status.value, BookingStatus.CANCELLED.value)
        if refund_amount > self.payment.paid_amount:
            raise ValidationError(
                f"Refund {refund_amount} exceeds paid amount {self.payment.paid_amount}"
            )

        self.cancellation = Cancellation(
            reason=reason,
            requested_by=requested_by,
            requested_at=now,
            refund_amount=refund_amount,
            refund_status=RefundStatus.FAILED if refund_failed else RefundStatus.PENDING,
            approved_by=requested_by if approved else None,
            approved_at=now if approved else None,
        )
        return self.transition_to(BookingStatus.CANCELLED, requested_by, now, reason)

    def mark_refund_issued(self, gateway_reference: str, actor: str, now: datetime) -> PaymentTransaction:
        """Record that the refund was paid out and move to ``refunded``."""
        if not self.can_transition_to(BookingStatus.REFUNDED) or self.cancellation is None:
            raise IllegalTransitionError(self.status.value, BookingStatus.REFUNDED.value)
        if self.cancellation.refund_amount.is_zero:
            raise IllegalTransitionError(
                self.status.value, BookingStatus.REFUNDED.value, "no refund is owed"
            )

        txn = self.payment.record_transaction(
            self.cancellation.refund_amount.amount,
            self.payment.method,
            gateway_reference,
            TransactionOutcome.REFUNDED,
            now,
        )
        self.cancellation.refund_status = RefundStatus.PROCESSED
        self.transition_to(BookingStatus.REFUNDED, actor, now, "Refund issued")
        return txn
