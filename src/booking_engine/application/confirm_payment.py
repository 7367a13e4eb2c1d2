"""Application service: Confirm Payment use case.

Applies a verified gateway confirmation ("amount X captured via reference
Y") to a booking's ledger.  A pending booking whose due amount reaches
zero is confirmed automatically in the same save.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable

from booking_engine.application.dto import (
    BookingDTO,
    parse_outcome,
    parse_payment_method,
    to_booking_dto,
)
from booking_engine.application.retry import DEFAULT_ATTEMPTS, retry_on_conflict
from booking_engine.domain.exceptions import EntityNotFoundError, InvalidPaymentAmountError
from booking_engine.domain.model.booking import Booking, utcnow
from booking_engine.domain.model.payment import OVERPAYMENT_TOLERANCE, to_amount
from booking_engine.domain.repository.booking_repository import BookingRepository

logger = logging.getLogger(__name__)


class ConfirmPaymentHandler:

    def __init__(
        self,
        booking_repo: BookingRepository,
        tolerance: Decimal = OVERPAYMENT_TOLERANCE,
        max_attempts: int = DEFAULT_ATTEMPTS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._booking_repo = booking_repo
        self._tolerance = tolerance
        self._max_attempts = max_attempts
        self._clock = clock

    def handle(
        self,
        reference: str,
        amount: str | int | Decimal,
        method: str | None,
        gateway_reference: str,
        outcome: str = "captured",
    ) -> BookingDTO:
        value = to_amount(amount)
        payment_method = parse_payment_method(method)
        payment_outcome = parse_outcome(outcome)

        def attempt() -> Booking:
            booking = self._booking_repo.get_by_reference(reference)
            if booking is None:
                raise EntityNotFoundError(f"Booking {reference} not found")
            expected = booking.version
            try:
                booking.record_payment(
                    value, payment_method, gateway_reference, payment_outcome,
                    self._clock(), self._tolerance,
                )
            except InvalidPaymentAmountError as exc:
                logger.warning("Payment rejected for %s: %s", reference, exc)
                raise
            self._booking_repo.save(booking, expected)
            return booking

        booking = retry_on_conflict(attempt, self._max_attempts)
        logger.info(
            "Payment %s %s for %s via %s: paid %s, due %s, status %s",
            payment_outcome.value, value, reference, gateway_reference,
            booking.payment.paid_amount, booking.payment.due_amount, booking.status.value,
        )
        return to_booking_dto(booking)
