"""Domain service: Inventory Reservation.

Coordinates capacity changes between a booking and the inventory store.
Bookings remember how many units they hold; this service is the only code
that turns that bookkeeping into store calls, so a booking can never
release more than it reserved.
"""

from __future__ import annotations

import logging

from booking_engine.domain.exceptions import InsufficientCapacityError
from booking_engine.domain.model.value_objects import Quantity
from booking_engine.domain.repository.inventory_store import InventoryStore

logger = logging.getLogger(__name__)


class InventoryReservationService:

    def __init__(self, inventory_store: InventoryStore) -> None:
        self._inventory_store = inventory_store

    def reserve(self, offering_id: str, quantity: Quantity) -> None:
        """Reserve capacity for a new booking.

        The store applies the check and the decrement as one step; a
        failure leaves the counter untouched.
        """
        try:
            counter = self._inventory_store.reserve(offering_id, quantity.value)
        except InsufficientCapacityError as exc:
            logger.warning(
                "Reservation refused for %s: need %d, %d available",
                offering_id, exc.requested, exc.available,
            )
            raise
        logger.debug(
            "Reserved %d of %s (%d/%d left)",
            quantity.value, offering_id,
            counter.capacity_available, counter.capacity_total,
        )

    def release(self, offering_id: str, units: int) -> None:
        """Give back ``units`` previously held by a booking (no-op for 0)."""
        if units <= 0:
            return
        counter = self._inventory_store.release(offering_id, units)
        logger.debug(
            "Released %d of %s (%d/%d left)",
            units, offering_id,
            counter.capacity_available, counter.capacity_total,
        )
