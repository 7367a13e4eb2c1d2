"""Application service: Show Inventory use case (query)."""

from __future__ import annotations

from dataclasses import dataclass

from booking_engine.domain.repository.inventory_store import InventoryStore
from booking_engine.domain.repository.offering_repository import OfferingRepository


@dataclass(frozen=True)
class InventoryLineDTO:
    offering_id: str
    offering_name: str
    total: int
    reserved: int
    available: int


class ShowInventoryHandler:

    def __init__(
        self,
        inventory_store: InventoryStore,
        offering_repo: OfferingRepository,
    ) -> None:
        self._inventory_store = inventory_store
        self._offering_repo = offering_repo

    def handle(self) -> list[InventoryLineDTO]:
        names = {o.id: o.name for o in self._offering_repo.list_all()}
        return [
            InventoryLineDTO(
                offering_id=counter.offering_id,
                offering_name=names.get(counter.offering_id, "?"),
                total=counter.capacity_total,
                reserved=counter.capacity_reserved,
                available=counter.capacity_available,
            )
            for counter in self._inventory_store.list_all()
        ]
