"""Identity checks consumed from the outer layer.

Authentication happens elsewhere; the engine is handed an ``Actor`` that
already says who the caller is and whether they are an admin.
"""

from __future__ import annotations

from dataclasses import dataclass

from booking_engine.domain.exceptions import PermissionDeniedError
from booking_engine.domain.model.booking import SYSTEM_ACTOR, Booking


@dataclass(frozen=True)
class Actor:
    id: str
    is_admin: bool = False


SYSTEM = Actor(id=SYSTEM_ACTOR, is_admin=True)


def ensure_owner_or_admin(actor: Actor, booking: Booking) -> None:
    if actor.is_admin or actor.id == booking.user_id:
        return
    raise PermissionDeniedError(
        f"User '{actor.id}' may not modify booking {booking.reference}"
    )


def ensure_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError(f"User '{actor.id}' is not an admin")
