"""InventoryCounter aggregate: tracks sellable capacity per offering.

Each offering has one InventoryCounter that knows how much capacity it was
published with and how much of it is still free to reserve.
"""

from __future__ import annotations

from dataclasses import dataclass

from booking_engine.domain.exceptions import InsufficientCapacityError, ValidationError


@dataclass
class InventoryCounter:
    """Aggregate root for capacity tracking.

    Invariants:
    - ``0 <= capacity_available <= capacity_total``

    The methods here only check and apply a change to one in-memory
    counter.  Concurrent callers must go through ``InventoryStore.reserve``
    which applies the change as a single conditional write.
    """

    offering_id: str
    capacity_total: int
    capacity_available: int | None = None

    def __post_init__(self) -> None:
        if self.capacity_total < 0:
            raise ValidationError("Capacity cannot be negative")
        if self.capacity_available is None:
            self.capacity_available = self.capacity_total
        if not 0 <= self.capacity_available <= self.capacity_total:
            raise ValidationError(
                f"Available capacity {self.capacity_available} outside "
                f"0..{self.capacity_total} for offering '{self.offering_id}'"
            )

    @property
    def capacity_reserved(self) -> int:
        return self.capacity_total - self.capacity_available

    def can_reserve(self, quantity: int) -> bool:
        return 0 < quantity <= self.capacity_available

    def reserve(self, quantity: int) -> None:
        """Take ``quantity`` units out of the available pool.

        Raises InsufficientCapacityError if not enough is left.
        """
        if quantity <= 0:
            raise ValidationError("Reservation quantity must be positive")
        if quantity > self.capacity_available:
            raise InsufficientCapacityError(
                self.offering_id, quantity, self.capacity_available
            )
        self.capacity_available -= quantity

    def release(self, quantity: int) -> None:
        """Return previously reserved units (cancellation, completion)."""
        if quantity <= 0:
            raise ValidationError("Release quantity must be positive")
        if quantity > self.capacity_reserved:
            raise ValidationError(
                f"Cannot release {quantity} for offering '{self.offering_id}' "
                f"- only {self.capacity_reserved} currently reserved"
            )
        self.capacity_available += quantity
