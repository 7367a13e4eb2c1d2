"""Application service: Show Booking use case (query)."""

from __future__ import annotations

from booking_engine.application.dto import BookingDTO, to_booking_dto
from booking_engine.domain.exceptions import EntityNotFoundError
from booking_engine.domain.repository.booking_repository import BookingRepository


class ShowBookingHandler:

    def __init__(self, booking_repo: BookingRepository) -> None:
        self._booking_repo = booking_repo

    def handle(self, reference: str) -> BookingDTO:
        booking = self._booking_repo.get_by_reference(reference)
        if booking is None:
            raise EntityNotFoundError(f"Booking {reference} not found")
        return to_booking_dto(booking)
