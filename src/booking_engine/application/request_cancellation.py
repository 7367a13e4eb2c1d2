"""Application service: Request Cancellation use case.

Computes the refund entitlement, cancels the booking and gives its held
capacity back.  The cancelled booking (status, history, cancellation
record, held quantity cleared) is written in one versioned save before the
capacity is released, so a lost race never frees capacity for a booking
that is still active.  An external expiry sweeper uses ``expire``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from booking_engine.application.dto import CancellationResultDTO
from booking_engine.application.retry import DEFAULT_ATTEMPTS, retry_on_conflict
from booking_engine.domain.exceptions import EntityNotFoundError, IllegalTransitionError
from booking_engine.domain.model.booking import Booking, BookingStatus, utcnow
from booking_engine.domain.model.value_objects import Money
from booking_engine.domain.repository.booking_repository import BookingRepository
from booking_engine.domain.repository.inventory_store import InventoryStore
from booking_engine.domain.service.authorization import SYSTEM, Actor, ensure_owner_or_admin
from booking_engine.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)
from booking_engine.domain.service.refund_policy import RefundPolicyRegistry

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Cancelled by user"
EXPIRED_REASON = "expired"


class RequestCancellationHandler:

    def __init__(
        self,
        booking_repo: BookingRepository,
        inventory_store: InventoryStore,
        refund_policies: RefundPolicyRegistry | None = None,
        max_attempts: int = DEFAULT_ATTEMPTS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._booking_repo = booking_repo
        self._reservations = InventoryReservationService(inventory_store)
        self._refund_policies = refund_policies or RefundPolicyRegistry()
        self._max_attempts = max_attempts
        self._clock = clock

    def handle(
        self,
        reference: str,
        actor: Actor,
        reason: str | None = None,
        only_if_pending: bool = False,
    ) -> CancellationResultDTO:
        reason = (reason or "").strip() or DEFAULT_REASON

        def attempt() -> tuple[Booking, int]:
            booking = self._booking_repo.get_by_reference(reference)
            if booking is None:
                raise EntityNotFoundError(f"Booking {reference} not found")
            ensure_owner_or_admin(actor, booking)
            if only_if_pending and booking.status is not BookingStatus.PENDING:
                raise IllegalTransitionError(
                    booking.status.value,
                    BookingStatus.CANCELLED.value,
                    "only pending bookings expire",
                )
            if not booking.can_transition_to(BookingStatus.CANCELLED):
                raise IllegalTransitionError(booking.status.value, BookingStatus.CANCELLED.value)

            expected = booking.version
            now = self._clock()
            refund, refund_failed = self._refund_for(booking, now)
            released = booking.cancel(
                requested_by=actor.id,
                reason=reason,
                refund_amount=refund,
                now=now,
                approved=actor.is_admin,
                refund_failed=refund_failed,
            )
            self._booking_repo.save(booking, expected)
            return booking, released

        booking, released = retry_on_conflict(attempt, self._max_attempts)
        self._reservations.release(booking.offering_id, released)

        logger.info(
            "Booking %s cancelled by %s (%s): refund %s, released %d",
            reference, actor.id, reason, booking.cancellation.refund_amount, released,
        )
        return CancellationResultDTO(
            reference=booking.reference,
            status=booking.status.value,
            refund_amount=str(booking.cancellation.refund_amount),
            refund_status=booking.cancellation.refund_status.value,
        )

    def expire(self, reference: str) -> CancellationResultDTO:
        """Entry point for an external sweeper cancelling stale pending bookings."""
        return self.handle(reference, SYSTEM, reason=EXPIRED_REASON, only_if_pending=True)

    def _refund_for(self, booking: Booking, now: datetime) -> tuple[Money, bool]:
        """Refund entitlement; a policy failure must not block the cancellation."""
        policy = self._refund_policies.policy_for(booking.service_type)
        paid = booking.payment.paid_amount
        try:
            refund = policy.compute_refund(paid, booking.schedule.start, now)
        except Exception:
            logger.exception(
                "Refund policy failed for %s, recording refund as failed", booking.reference
            )
            return Money.zero(paid.currency), True

        if not (isinstance(refund, Money) and refund.currency == paid.currency and refund <= paid):
            logger.warning(
                "Refund policy returned %r for %s (paid %s), recording refund as failed",
                refund, booking.reference, paid,
            )
            return Money.zero(paid.currency), True
        return refund, False
