"""Application service: Publish Offering use case.

Adds an offering to the catalog and creates its inventory counter with
all capacity available.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation

from booking_engine.application.dto import parse_service_type
from booking_engine.domain.exceptions import ValidationError
from booking_engine.domain.model.inventory import InventoryCounter
from booking_engine.domain.model.offering import Offering
from booking_engine.domain.model.value_objects import DEFAULT_CURRENCY, Money
from booking_engine.domain.repository.inventory_store import InventoryStore
from booking_engine.domain.repository.offering_repository import OfferingRepository

logger = logging.getLogger(__name__)


def _rate(raw: str | None) -> Decimal | None:
    if raw is None:
        return None
    try:
        return Decimal(str(raw))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid tax rate: {raw!r}") from exc


class PublishOfferingHandler:

    def __init__(
        self,
        offering_repo: OfferingRepository,
        inventory_store: InventoryStore,
        currency: str = DEFAULT_CURRENCY,
    ) -> None:
        self._offering_repo = offering_repo
        self._inventory_store = inventory_store
        self._currency = currency

    def handle(
        self,
        name: str,
        service_type: str,
        price: str,
        capacity: int,
        vat_rate: str | None = None,
        service_tax_rate: str | None = None,
        scheduled_start: datetime | None = None,
        scheduled_end: datetime | None = None,
        offering_id: str | None = None,
    ) -> Offering:
        """Publish a new offering; IDs are auto-assigned unless given."""
        if offering_id is None:
            existing = self._offering_repo.list_all()
            numeric = [int(o.id) for o in existing if o.id.isdigit()]
            offering_id = str(max(numeric) + 1) if numeric else "1"
        elif self._offering_repo.get_by_id(offering_id) is not None:
            raise ValidationError(f"Offering '{offering_id}' already exists")

        offering = Offering(
            id=offering_id,
            name=name.strip() if name else name,
            service_type=parse_service_type(service_type),
            base_price=Money.of(price, self._currency),
            capacity=capacity,
            vat_rate=_rate(vat_rate),
            service_tax_rate=_rate(service_tax_rate) or Decimal("0"),
            scheduled_start=scheduled_start,
            scheduled_end=scheduled_end,
        )
        self._inventory_store.add(
            InventoryCounter(offering_id=offering.id, capacity_total=offering.capacity)
        )
        self._offering_repo.save(offering)

        logger.info(
            "Offering %s '%s' published: %s x %d at %s",
            offering.id, offering.name, offering.service_type.value,
            offering.capacity, offering.base_price,
        )
        return offering
