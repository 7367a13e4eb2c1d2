"""Integration tests for the CreateBooking use case.

Uses in-memory fake repositories with no file I/O.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from threading import Barrier

import pytest

from booking_engine.application.dto import ContactDetails, DiscountSpec, ScheduleInfo
from booking_engine.domain.exceptions import (
    EntityNotFoundError,
    InsufficientCapacityError,
    ValidationError,
    VersionConflictError,
)
from booking_engine.domain.model.value_objects import ServiceType
from tests.builders import CONTACT, NOW, World, bus_offering
from tests.fakes import FakeBookingRepository


class AlwaysConflictingBookingRepository(FakeBookingRepository):

    def save(self, booking, expected_version):
        self.save_calls += 1
        raise VersionConflictError(booking.reference, expected_version, 99)


class TestCreateBookingHappyPath:

    def test_reserves_capacity_and_starts_pending(self):
        world = World()
        dto = world.book(quantity=2)
        assert dto.status == "pending"
        assert dto.total == "NPR 1000.00"
        assert dto.due == "NPR 1000.00"
        assert dto.paid == "NPR 0.00"
        assert dto.payment_method == "khalti"
        assert world.available() == 3

    def test_reference_is_human_readable(self):
        world = World()
        dto = world.book()
        assert dto.reference == "BK2610190001"

    def test_persists_booking_with_version(self):
        world = World()
        dto = world.book()
        saved = world.booking_repo.get_by_reference(dto.reference)
        assert saved is not None
        assert saved.version == 1
        assert saved.held_quantity == 2
        assert saved.contact.name == "Sita Sharma"
        assert dto.version == 1

    def test_history_has_one_pending_entry(self):
        world = World()
        dto = world.book()
        assert [h.status for h in dto.status_history] == ["pending"]

    def test_vat_from_offering_defaults(self):
        world = World(offerings=[bus_offering(vat_rate=None)])
        dto = world.book(quantity=2)
        assert dto.taxes == "NPR 130.00"
        assert dto.total == "NPR 1130.00"

    def test_discounts_reduce_total(self):
        world = World()
        dto = world.create().handle(
            user_id="u1",
            offering_id="1",
            quantity=2,
            contact=CONTACT,
            discounts=[DiscountSpec("promo", "100", "festival")],
        )
        assert dto.total == "NPR 900.00"

    def test_fully_discounted_booking_starts_confirmed(self):
        world = World()
        dto = world.create().handle(
            user_id="u1",
            offering_id="1",
            quantity=2,
            contact=CONTACT,
            discounts=[DiscountSpec("voucher", "1000", "prize")],
        )
        assert dto.total == "NPR 0.00"
        assert dto.status == "confirmed"
        assert dto.status_history[-1].actor == "system"
        assert world.available() == 3

    def test_material_order_with_specifications(self):
        cement = bus_offering(
            id="7", name="OPC cement bag", service_type=ServiceType.MATERIAL_ORDER, capacity=100
        )
        world = World(offerings=[cement])
        dto = world.create().handle(
            user_id="u1",
            offering_id="7",
            quantity=40,
            contact=CONTACT,
            specifications={"grade": "OPC 53", "bag_weight_kg": 50},
            specification_category="cement",
        )
        saved = world.booking_repo.get_by_reference(dto.reference)
        assert saved.specifications.values == {"grade": "OPC 53", "bag_weight_kg": 50}
        assert world.available("7") == 60


class TestCreateBookingFailures:

    def test_insufficient_capacity_persists_nothing(self):
        world = World()
        with pytest.raises(InsufficientCapacityError) as exc_info:
            world.book(quantity=6)
        assert exc_info.value.available == 5
        assert world.booking_repo.list_all() == []
        assert world.available() == 5

    def test_unknown_offering(self):
        world = World()
        with pytest.raises(EntityNotFoundError, match="not found"):
            world.book(offering_id="404")

    def test_inactive_offering(self):
        world = World(offerings=[bus_offering(is_active=False)])
        with pytest.raises(ValidationError, match="not available"):
            world.book()
        assert world.available() == 5

    def test_invalid_contact_rejected_before_reserving(self):
        world = World()
        with pytest.raises(ValidationError, match="email"):
            world.create().handle(
                user_id="u1",
                offering_id="1",
                quantity=1,
                contact=ContactDetails(name="Sita", phone="98", email="nope"),
            )
        assert world.available() == 5

    def test_invalid_payment_method_rejected(self):
        world = World()
        with pytest.raises(ValidationError, match="payment method"):
            world.create().handle(
                user_id="u1", offering_id="1", quantity=1, contact=CONTACT,
                payment_method="bitcoin",
            )
        assert world.available() == 5

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_non_positive_quantity_rejected(self, quantity):
        world = World()
        with pytest.raises(ValidationError, match="must be positive"):
            world.book(quantity=quantity)

    def test_reservation_released_when_booking_cannot_be_built(self):
        world = World()
        with pytest.raises(ValidationError, match="end before"):
            world.create().handle(
                user_id="u1",
                offering_id="1",
                quantity=2,
                contact=CONTACT,
                schedule=ScheduleInfo(start=NOW, end=NOW.replace(year=2025)),
            )
        assert world.available() == 5
        assert world.booking_repo.list_all() == []

    def test_naive_end_before_offering_start_is_a_validation_error(self):
        world = World(offerings=[bus_offering(scheduled_start=NOW + timedelta(hours=10))])
        with pytest.raises(ValidationError, match="end before"):
            world.create().handle(
                user_id="u1",
                offering_id="1",
                quantity=1,
                contact=CONTACT,
                schedule=ScheduleInfo(end=datetime(2026, 10, 19, 13, 0)),
            )
        assert world.available() == 5

    def test_reservation_released_when_insert_keeps_conflicting(self):
        repo = AlwaysConflictingBookingRepository()
        world = World(booking_repo=repo)
        with pytest.raises(VersionConflictError):
            world.book()
        assert repo.save_calls == 3
        assert world.available() == 5


class TestNoOversellUnderConcurrency:

    def test_exactly_capacity_requests_succeed(self):
        capacity, requests = 5, 20
        world = World(offerings=[bus_offering(capacity=capacity)])
        barrier = Barrier(requests)

        def attempt(i: int) -> str:
            barrier.wait()
            try:
                world.book(quantity=1, user_id=f"u{i}")
            except InsufficientCapacityError:
                return "refused"
            return "booked"

        with ThreadPoolExecutor(max_workers=requests) as pool:
            outcomes = list(pool.map(attempt, range(requests)))

        assert outcomes.count("booked") == capacity
        assert outcomes.count("refused") == requests - capacity
        assert world.available() == 0
        assert len(world.booking_repo.list_all()) == capacity
