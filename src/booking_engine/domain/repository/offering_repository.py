"""Abstract repository for Offering aggregate.

Defined in the domain layer so the domain never depends on
infrastructure. Concrete implementations (JSON, in-memory)
live in the infrastructure layer and in the test fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from booking_engine.domain.model.offering import Offering


class OfferingRepository(ABC):

    @abstractmethod
    def get_by_id(self, offering_id: str) -> Offering | None:
        """Return an offering by its ID, or None if not found."""

    @abstractmethod
    def list_all(self) -> list[Offering]:
        """Return every published offering."""

    @abstractmethod
    def save(self, offering: Offering) -> None:
        """Persist a new or updated offering."""
