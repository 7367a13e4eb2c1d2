"""Application service: List Bookings use case (query).

Mainly used by the expiry sweeper to find stale pending bookings.
"""

from __future__ import annotations

from datetime import datetime

from booking_engine.application.dto import BookingDTO, parse_status, to_booking_dto
from booking_engine.domain.repository.booking_repository import BookingRepository


class ListBookingsHandler:

    def __init__(self, booking_repo: BookingRepository) -> None:
        self._booking_repo = booking_repo

    def handle(
        self,
        status: str | None = None,
        created_before: datetime | None = None,
    ) -> list[BookingDTO]:
        wanted = parse_status(status) if status else None
        return [
            to_booking_dto(booking)
            for booking in self._booking_repo.list_all(status=wanted, created_before=created_before)
        ]
