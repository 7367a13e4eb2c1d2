"""Tests for the JSON-file-backed stores, against real files under tmp_path."""

import json
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from booking_engine.domain.exceptions import (
    EntityNotFoundError,
    InsufficientCapacityError,
    ValidationError,
    VersionConflictError,
)
from booking_engine.domain.model.booking import Booking, BookingStatus
from booking_engine.domain.model.inventory import InventoryCounter
from booking_engine.domain.model.payment import PaymentMethod, TransactionOutcome
from booking_engine.domain.model.pricing import Discount, Pricing
from booking_engine.domain.model.value_objects import (
    ContactInfo,
    Money,
    Quantity,
    ServiceType,
    Specifications,
)
from booking_engine.infrastructure.persistence.json_booking_repository import (
    JsonBookingRepository,
)
from booking_engine.infrastructure.persistence.json_inventory_store import JsonInventoryStore
from booking_engine.infrastructure.persistence.json_offering_repository import (
    JsonOfferingRepository,
)
from tests.builders import NOW, bus_offering

CONTACT = ContactInfo(name="Ram", phone="9811111111", email="ram@example.com")


def _booking(reference: str = "BK2610190001", created_at: datetime = NOW, **kwargs) -> Booking:
    offering = kwargs.pop("offering", bus_offering(vat_rate=Decimal("13")))
    quantity = Quantity(kwargs.pop("quantity", 2))
    return Booking.create(
        reference=reference,
        user_id="u1",
        offering=offering,
        quantity=quantity,
        contact=CONTACT,
        pricing=Pricing.quote(offering, quantity, discounts=kwargs.pop("discounts", None)),
        now=created_at,
        start=created_at + timedelta(hours=30),
        payment_method=PaymentMethod.ESEWA,
        **kwargs,
    )


class TestJsonInventoryStore:

    def _store(self, tmp_path, capacity=5):
        store = JsonInventoryStore(tmp_path / "inventory.json")
        store.add(InventoryCounter("1", capacity))
        return store

    def test_reserve_and_release_are_persisted(self, tmp_path):
        store = self._store(tmp_path)
        store.reserve("1", 2)
        reopened = JsonInventoryStore(tmp_path / "inventory.json")
        assert reopened.get("1").capacity_available == 3
        reopened.release("1", 2)
        assert store.get("1").capacity_available == 5

    def test_refused_reservation_leaves_file_untouched(self, tmp_path):
        store = self._store(tmp_path)
        before = (tmp_path / "inventory.json").read_text()
        with pytest.raises(InsufficientCapacityError):
            store.reserve("1", 6)
        assert (tmp_path / "inventory.json").read_text() == before

    def test_over_release_refused(self, tmp_path):
        store = self._store(tmp_path)
        with pytest.raises(ValidationError, match="Cannot release"):
            store.release("1", 1)

    def test_unknown_offering(self, tmp_path):
        store = self._store(tmp_path)
        with pytest.raises(EntityNotFoundError):
            store.reserve("nope", 1)
        assert store.get("nope") is None

    def test_duplicate_counter(self, tmp_path):
        store = self._store(tmp_path)
        with pytest.raises(ValidationError, match="already exists"):
            store.add(InventoryCounter("1", 3))

    def test_concurrent_reservations_never_oversell(self, tmp_path):
        store = self._store(tmp_path, capacity=5)

        def attempt(_):
            try:
                store.reserve("1", 1)
            except InsufficientCapacityError:
                return False
            return True

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(attempt, range(12)))

        assert results.count(True) == 5
        assert store.get("1").capacity_available == 0

    def test_file_is_plain_json(self, tmp_path):
        self._store(tmp_path)
        raw = json.loads((tmp_path / "inventory.json").read_text())
        assert raw == [{"offering_id": "1", "capacity_total": 5, "capacity_available": 5}]


class TestJsonBookingRepository:

    def test_round_trip_of_a_full_lifecycle(self, tmp_path):
        repo = JsonBookingRepository(tmp_path / "bookings.json")
        booking = _booking(discounts=[Discount("promo", Money.of("30"), "returning")])
        repo.save(booking, expected_version=0)

        booking.record_payment(
            Decimal("1100.00"), PaymentMethod.ESEWA, "ES-1", TransactionOutcome.CAPTURED, NOW
        )
        booking.cancel("u1", "Sick", Money.of("1100"), NOW + timedelta(hours=1))
        repo.save(booking, expected_version=1)

        loaded = repo.get_by_reference(booking.reference)
        assert loaded.version == 2
        assert loaded.status is BookingStatus.CANCELLED
        assert loaded.pricing.total_amount == Money.of("1100.00")
        assert loaded.pricing.tax_total == Money.of("130.00")
        assert loaded.pricing.discount_total == Money.of("30.00")
        assert loaded.payment.paid_amount == Money.of("1100")
        assert loaded.payment.method is PaymentMethod.ESEWA
        assert loaded.payment.transactions == booking.payment.transactions
        assert loaded.status_history == booking.status_history
        assert loaded.cancellation == booking.cancellation
        assert loaded.schedule == booking.schedule
        assert loaded.held_quantity == 0
        assert loaded.contact == CONTACT

    def test_material_specifications_round_trip(self, tmp_path):
        repo = JsonBookingRepository(tmp_path / "bookings.json")
        cement = bus_offering(id="7", service_type=ServiceType.MATERIAL_ORDER)
        specs = Specifications("cement", {"grade": "PPC", "bag_weight_kg": 50})
        booking = _booking(offering=cement, specifications=specs)
        repo.save(booking, expected_version=0)
        assert repo.get_by_reference(booking.reference).specifications == specs

    def test_insert_twice_conflicts(self, tmp_path):
        repo = JsonBookingRepository(tmp_path / "bookings.json")
        repo.save(_booking(), expected_version=0)
        with pytest.raises(VersionConflictError):
            repo.save(_booking(), expected_version=0)

    def test_stale_version_conflicts_and_writes_nothing(self, tmp_path):
        repo = JsonBookingRepository(tmp_path / "bookings.json")
        booking = _booking()
        repo.save(booking, expected_version=0)

        first = repo.get_by_reference(booking.reference)
        second = repo.get_by_reference(booking.reference)
        first.transition_to(BookingStatus.CONFIRMED, "admin", NOW)
        repo.save(first, expected_version=1)

        second.transition_to(BookingStatus.IN_PROGRESS, "admin", NOW)
        with pytest.raises(VersionConflictError) as exc_info:
            repo.save(second, expected_version=1)
        assert exc_info.value.actual_version == 2
        assert repo.get_by_reference(booking.reference).status is BookingStatus.CONFIRMED

    def test_update_of_missing_row_conflicts(self, tmp_path):
        repo = JsonBookingRepository(tmp_path / "bookings.json")
        with pytest.raises(VersionConflictError):
            repo.save(_booking(), expected_version=3)

    def test_next_reference_counts_per_day(self, tmp_path):
        repo = JsonBookingRepository(tmp_path / "bookings.json", reference_prefix="TX")
        assert repo.next_reference(NOW) == "TX2610190001"
        repo.save(_booking(reference="TX2610190001"), expected_version=0)
        repo.save(_booking(reference="TX2610190002"), expected_version=0)
        assert repo.next_reference(NOW) == "TX2610190003"
        assert repo.next_reference(NOW + timedelta(days=1)) == "TX2610200001"

    def test_list_filters_and_orders_oldest_first(self, tmp_path):
        repo = JsonBookingRepository(tmp_path / "bookings.json")
        late = _booking(reference="BK2610190002", created_at=NOW + timedelta(hours=2))
        early = _booking(reference="BK2610190001", created_at=NOW)
        repo.save(late, expected_version=0)
        repo.save(early, expected_version=0)
        early.transition_to(BookingStatus.CONFIRMED, "admin", NOW)
        repo.save(early, expected_version=1)

        assert [b.reference for b in repo.list_all()] == ["BK2610190001", "BK2610190002"]
        assert [b.reference for b in repo.list_all(status=BookingStatus.PENDING)] == [
            "BK2610190002"
        ]
        assert [
            b.reference for b in repo.list_all(created_before=NOW + timedelta(hours=1))
        ] == ["BK2610190001"]

    def test_unknown_reference(self, tmp_path):
        repo = JsonBookingRepository(tmp_path / "bookings.json")
        assert repo.get_by_reference("BK0") is None


class TestJsonOfferingRepository:

    def test_round_trip(self, tmp_path):
        repo = JsonOfferingRepository(tmp_path / "offerings.json")
        start = datetime(2026, 11, 1, 7, 0, tzinfo=timezone.utc)
        offering = bus_offering(
            vat_rate=None,
            service_tax_rate=Decimal("5"),
            scheduled_start=start,
            scheduled_end=start + timedelta(hours=7),
        )
        repo.save(offering)
        assert repo.get_by_id("1") == offering
        assert repo.list_all() == [offering]

    def test_save_replaces(self, tmp_path):
        repo = JsonOfferingRepository(tmp_path / "offerings.json")
        offering = bus_offering()
        repo.save(offering)
        offering.deactivate()
        repo.save(offering)
        assert repo.get_by_id("1").is_active is False
        assert len(repo.list_all()) == 1
