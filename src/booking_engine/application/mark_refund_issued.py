"""Application service: Mark Refund Issued use case.

Called once the refund for a cancelled booking was actually paid out.
Appends the negative ledger entry and moves the booking to ``refunded``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from booking_engine.application.dto import BookingDTO, to_booking_dto
from booking_engine.application.retry import DEFAULT_ATTEMPTS, retry_on_conflict
from booking_engine.domain.exceptions import EntityNotFoundError
from booking_engine.domain.model.booking import Booking, utcnow
from booking_engine.domain.repository.booking_repository import BookingRepository
from booking_engine.domain.service.authorization import Actor, ensure_admin

logger = logging.getLogger(__name__)


class MarkRefundIssuedHandler:

    def __init__(
        self,
        booking_repo: BookingRepository,
        max_attempts: int = DEFAULT_ATTEMPTS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._booking_repo = booking_repo
        self._max_attempts = max_attempts
        self._clock = clock

    def handle(self, reference: str, gateway_reference: str, actor: Actor) -> BookingDTO:
        ensure_admin(actor)

        def attempt() -> Booking:
            booking = self._booking_repo.get_by_reference(reference)
            if booking is None:
                raise EntityNotFoundError(f"Booking {reference} not found")
            expected = booking.version
            booking.mark_refund_issued(gateway_reference, actor.id, self._clock())
            self._booking_repo.save(booking, expected)
            return booking

        booking = retry_on_conflict(attempt, self._max_attempts)
        logger.info(
            "Refund of %s issued for %s via %s",
            booking.payment.refund_amount, reference, gateway_reference,
        )
        return to_booking_dto(booking)
