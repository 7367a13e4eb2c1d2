"""Abstract store for InventoryCounter records.

``reserve`` and ``release`` are the only ways to change a counter once it
is published.  Implementations must apply each of them as one conditional
write ("take N only if at least N are available"), never as a separate
read followed by a write, so two callers racing for the last unit cannot
both win.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from booking_engine.domain.model.inventory import InventoryCounter


class InventoryStore(ABC):

    @abstractmethod
    def get(self, offering_id: str) -> InventoryCounter | None:
        """Return a snapshot of the counter for an offering, or None."""

    @abstractmethod
    def list_all(self) -> list[InventoryCounter]:
        """Return snapshots of every counter."""

    @abstractmethod
    def add(self, counter: InventoryCounter) -> None:
        """Create the counter for a newly published offering.

        Raises ValidationError if one already exists.
        """

    @abstractmethod
    def reserve(self, offering_id: str, quantity: int) -> InventoryCounter:
        """Atomically take ``quantity`` units.

        Raises InsufficientCapacityError (nothing changed) or
        EntityNotFoundError.  Returns the counter after the change.
        """

    @abstractmethod
    def release(self, offering_id: str, quantity: int) -> InventoryCounter:
        """Atomically give back ``quantity`` units.

        Raises ValidationError if that would exceed the total capacity.
        """
