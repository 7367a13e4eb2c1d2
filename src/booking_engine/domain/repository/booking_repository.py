"""Abstract repository for the Booking aggregate.

Saves use optimistic concurrency: every stored booking carries a version
that increases by one on each save, and a save only succeeds if the stored
version still equals the version the caller loaded.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from booking_engine.domain.model.booking import Booking, BookingStatus


class BookingRepository(ABC):

    @abstractmethod
    def next_reference(self, created_at: datetime) -> str:
        """Generate a human-readable reference such as ``BK2610190001``."""

    @abstractmethod
    def get_by_reference(self, reference: str) -> Booking | None:
        """Return a booking by its reference, or None if not found."""

    @abstractmethod
    def save(self, booking: Booking, expected_version: int) -> None:
        """Persist ``booking`` if the stored version equals ``expected_version``.

        ``expected_version == 0`` means the booking must not exist yet.
        On success ``booking.version`` becomes ``expected_version + 1``;
        otherwise VersionConflictError is raised and nothing is written.
        """

    @abstractmethod
    def list_all(
        self,
        status: BookingStatus | None = None,
        created_before: datetime | None = None,
    ) -> list[Booking]:
        """Return bookings, optionally filtered, oldest first."""
