"""Application service: Advance Status use case.

Manual status changes by an admin: confirm, start, complete.  Completing
a booking gives its held capacity back to the offering.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from booking_engine.application.dto import BookingDTO, parse_status, to_booking_dto
from booking_engine.application.retry import DEFAULT_ATTEMPTS, retry_on_conflict
from booking_engine.domain.exceptions import EntityNotFoundError
from booking_engine.domain.model.booking import Booking, utcnow
from booking_engine.domain.repository.booking_repository import BookingRepository
from booking_engine.domain.repository.inventory_store import InventoryStore
from booking_engine.domain.service.authorization import Actor, ensure_admin
from booking_engine.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)

logger = logging.getLogger(__name__)


class AdvanceStatusHandler:

    def __init__(
        self,
        booking_repo: BookingRepository,
        inventory_store: InventoryStore,
        max_attempts: int = DEFAULT_ATTEMPTS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._booking_repo = booking_repo
        self._reservations = InventoryReservationService(inventory_store)
        self._max_attempts = max_attempts
        self._clock = clock

    def handle(
        self,
        reference: str,
        target_status: str,
        actor: Actor,
        note: str | None = None,
    ) -> BookingDTO:
        ensure_admin(actor)
        target = parse_status(target_status)

        def attempt() -> tuple[Booking, int]:
            booking = self._booking_repo.get_by_reference(reference)
            if booking is None:
                raise EntityNotFoundError(f"Booking {reference} not found")
            expected = booking.version
            released = booking.advance(target, actor.id, self._clock(), note or "")
            self._booking_repo.save(booking, expected)
            return booking, released

        booking, released = retry_on_conflict(attempt, self._max_attempts)
        self._reservations.release(booking.offering_id, released)

        logger.info("Booking %s moved to %s by %s", reference, target.value, actor.id)
        return to_booking_dto(booking)
