"""JSON-file-backed implementation of InventoryStore."""

from __future__ import annotations

from pathlib import Path

from booking_engine.domain.exceptions import EntityNotFoundError, ValidationError
from booking_engine.domain.model.inventory import InventoryCounter
from booking_engine.domain.repository.inventory_store import InventoryStore
from booking_engine.infrastructure.persistence.json_file import JsonFile


class JsonInventoryStore(InventoryStore):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    # --- InventoryStore interface ---------------------------------------------

    def get(self, offering_id: str) -> InventoryCounter | None:
        for raw in self._file.load():
            if raw["offering_id"] == offering_id:
                return self._to_domain(raw)
        return None

    def list_all(self) -> list[InventoryCounter]:
        return [self._to_domain(raw) for raw in self._file.load()]

    def add(self, counter: InventoryCounter) -> None:
        with self._file.locked():
            records = self._file.load()
            if any(raw["offering_id"] == counter.offering_id for raw in records):
                raise ValidationError(
                    f"Inventory for offering '{counter.offering_id}' already exists"
                )
            records.append(self._to_raw(counter))
            self._file.persist(records)

    def reserve(self, offering_id: str, quantity: int) -> InventoryCounter:
        return self._update(offering_id, lambda counter: counter.reserve(quantity))

    def release(self, offering_id: str, quantity: int) -> InventoryCounter:
        return self._update(offering_id, lambda counter: counter.release(quantity))

    # --- Conditional update ---------------------------------------------------

    def _update(self, offering_id: str, change) -> InventoryCounter:
        # Check and write happen under one lock: a refused change writes nothing.
        with self._file.locked():
            records = self._file.load()
            for i, raw in enumerate(records):
                if raw["offering_id"] == offering_id:
                    counter = self._to_domain(raw)
                    change(counter)
                    records[i] = self._to_raw(counter)
                    self._file.persist(records)
                    return counter
        raise EntityNotFoundError(f"No inventory record for offering '{offering_id}'")

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(counter: InventoryCounter) -> dict:
        return {
            "offering_id": counter.offering_id,
            "capacity_total": counter.capacity_total,
            "capacity_available": counter.capacity_available,
        }

    @staticmethod
    def _to_domain(raw: dict) -> InventoryCounter:
        return InventoryCounter(
            offering_id=raw["offering_id"],
            capacity_total=raw["capacity_total"],
            capacity_available=raw["capacity_available"],
        )
