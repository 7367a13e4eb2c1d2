"""JSON-file-backed implementation of OfferingRepository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

from booking_engine.domain.model.offering import Offering
from booking_engine.domain.model.value_objects import DEFAULT_CURRENCY, Money, ServiceType
from booking_engine.domain.repository.offering_repository import OfferingRepository
from booking_engine.infrastructure.persistence.json_file import JsonFile


def _iso(moment: datetime | None) -> str | None:
    return moment.isoformat() if moment is not None else None


def _parse(raw: str | None) -> datetime | None:
    return datetime.fromisoformat(raw) if raw else None


class JsonOfferingRepository(OfferingRepository):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    # --- OfferingRepository interface -----------------------------------------

    def get_by_id(self, offering_id: str) -> Offering | None:
        return self._load().get(offering_id)

    def list_all(self) -> list[Offering]:
        return list(self._load().values())

    def save(self, offering: Offering) -> None:
        with self._file.locked():
            offerings = self._load()
            offerings[offering.id] = offering
            self._file.persist([self._to_raw(o) for o in offerings.values()])

    # --- Serialization helpers ------------------------------------------------

    def _load(self) -> dict[str, Offering]:
        return {raw["id"]: self._to_domain(raw) for raw in self._file.load()}

    @staticmethod
    def _to_raw(offering: Offering) -> dict:
        return {
            "id": offering.id,
            "name": offering.name,
            "service_type": offering.service_type.value,
            "price": str(offering.base_price.amount),
            "currency": offering.base_price.currency,
            "capacity": offering.capacity,
            "vat_rate": str(offering.vat_rate) if offering.vat_rate is not None else None,
            "service_tax_rate": str(offering.service_tax_rate),
            "scheduled_start": _iso(offering.scheduled_start),
            "scheduled_end": _iso(offering.scheduled_end),
            "is_active": offering.is_active,
        }

    @staticmethod
    def _to_domain(raw: dict) -> Offering:
        vat = raw.get("vat_rate")
        return Offering(
            id=raw["id"],
            name=raw["name"],
            service_type=ServiceType(raw["service_type"]),
            base_price=Money(Decimal(raw["price"]), raw.get("currency", DEFAULT_CURRENCY)),
            capacity=raw["capacity"],
            vat_rate=Decimal(vat) if vat is not None else None,
            service_tax_rate=Decimal(raw.get("service_tax_rate", "0")),
            scheduled_start=_parse(raw.get("scheduled_start")),
            scheduled_end=_parse(raw.get("scheduled_end")),
            is_active=raw.get("is_active", True),
        )
