"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from functools import lru_cache

from booking_engine.domain.service.authorization import Actor
from booking_engine.domain.service.refund_policy import RefundPolicyRegistry
from booking_engine.infrastructure.config import EngineSettings, load_settings
from booking_engine.infrastructure.persistence.json_booking_repository import (
    JsonBookingRepository,
)
from booking_engine.infrastructure.persistence.json_inventory_store import (
    JsonInventoryStore,
)
from booking_engine.infrastructure.persistence.json_offering_repository import (
    JsonOfferingRepository,
)


@lru_cache(maxsize=1)
def settings() -> EngineSettings:
    return load_settings()


def offering_repository() -> JsonOfferingRepository:
    return JsonOfferingRepository(settings().data_dir / "offerings.json")


def inventory_store() -> JsonInventoryStore:
    return JsonInventoryStore(settings().data_dir / "inventory.json")


def booking_repository() -> JsonBookingRepository:
    return JsonBookingRepository(
        settings().data_dir / "bookings.json",
        reference_prefix=settings().reference_prefix,
    )


def refund_policies() -> RefundPolicyRegistry:
    return RefundPolicyRegistry()


def actor(actor_id: str) -> Actor:
    """Resolve an actor id; admins are listed in ``BOOKING_ADMIN_IDS``."""
    return Actor(id=actor_id, is_admin=actor_id in settings().admins)
