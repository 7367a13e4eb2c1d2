"""Application service: Create Booking use case.

Validates the request, reserves capacity, then persists a ``pending``
booking.  If anything fails after the reservation succeeded, the
reservation is released again so no capacity leaks and no booking row is
left behind.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable

from booking_engine.application.dto import (
    BookingDTO,
    ContactDetails,
    DiscountSpec,
    ScheduleInfo,
    parse_payment_method,
    to_booking_dto,
)
from booking_engine.application.retry import DEFAULT_ATTEMPTS, retry_on_conflict
from booking_engine.domain.exceptions import EntityNotFoundError, ValidationError
from booking_engine.domain.model.booking import Booking, utcnow
from booking_engine.domain.model.offering import Offering
from booking_engine.domain.model.payment import PaymentMethod
from booking_engine.domain.model.pricing import DEFAULT_VAT_RATE, Discount, Pricing
from booking_engine.domain.model.value_objects import (
    ContactInfo,
    Money,
    Quantity,
    Specifications,
)
from booking_engine.domain.repository.booking_repository import BookingRepository
from booking_engine.domain.repository.inventory_store import InventoryStore
from booking_engine.domain.repository.offering_repository import OfferingRepository
from booking_engine.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)

logger = logging.getLogger(__name__)


class CreateBookingHandler:

    def __init__(
        self,
        booking_repo: BookingRepository,
        offering_repo: OfferingRepository,
        inventory_store: InventoryStore,
        default_vat_rate: Decimal = DEFAULT_VAT_RATE,
        max_attempts: int = DEFAULT_ATTEMPTS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._booking_repo = booking_repo
        self._offering_repo = offering_repo
        self._reservations = InventoryReservationService(inventory_store)
        self._default_vat_rate = default_vat_rate
        self._max_attempts = max_attempts
        self._clock = clock

    def handle(
        self,
        user_id: str,
        offering_id: str,
        quantity: int,
        contact: ContactDetails,
        schedule: ScheduleInfo | None = None,
        payment_method: str | None = None,
        discounts: list[DiscountSpec] | None = None,
        specifications: dict | None = None,
        specification_category: str | None = None,
        notes: str | None = None,
    ) -> BookingDTO:
        """Create a new booking.

        Steps:
        1. Resolve the offering and validate every input (no side effects).
        2. Reserve capacity (InsufficientCapacityError aborts here).
        3. Build and insert the booking; release the capacity on failure.
        """
        offering = self._offering_repo.get_by_id(offering_id)
        if offering is None:
            raise EntityNotFoundError(f"Offering '{offering_id}' not found")
        if not offering.is_active:
            raise ValidationError(f"Offering '{offering.name}' is not available for booking")

        qty = Quantity(quantity)
        contact_info = ContactInfo(
            name=contact.name,
            phone=contact.phone,
            email=contact.email,
            alternate_phone=contact.alternate_phone,
        )
        method = parse_payment_method(payment_method)
        pricing = Pricing.quote(
            offering,
            qty,
            discounts=[
                Discount(d.type, Money.of(d.amount, offering.currency), d.reason)
                for d in discounts or []
            ],
            default_vat_rate=self._default_vat_rate,
        )
        specs = None
        if specifications is not None or specification_category is not None:
            if specification_category is None:
                raise ValidationError("Specifications need a material category")
            specs = Specifications(specification_category, specifications or {})
        schedule = schedule or ScheduleInfo()

        self._reservations.reserve(offering.id, qty)
        try:
            booking = retry_on_conflict(
                lambda: self._insert(
                    user_id, offering, qty, contact_info, pricing,
                    schedule, specs, notes, method,
                ),
                self._max_attempts,
            )
        except Exception:
            logger.warning("Booking for %s failed after reservation; releasing %d", offering.id, qty.value)
            self._reservations.release(offering.id, qty.value)
            raise

        logger.info(
            "Booking %s created: %d x %s, total %s",
            booking.reference, qty.value, offering.id, booking.pricing.total_amount,
        )
        return to_booking_dto(booking)

    def _insert(
        self,
        user_id: str,
        offering: Offering,
        quantity: Quantity,
        contact: ContactInfo,
        pricing: Pricing,
        schedule: ScheduleInfo,
        specifications: Specifications | None,
        notes: str | None,
        method: PaymentMethod | None,
    ) -> Booking:
        now = self._clock()
        booking = Booking.create(
            reference=self._booking_repo.next_reference(now),
            user_id=user_id,
            offering=offering,
            quantity=quantity,
            contact=contact,
            pricing=pricing,
            now=now,
            start=schedule.start,
            end=schedule.end,
            specifications=specifications,
            notes=notes,
            payment_method=method,
        )
        self._booking_repo.save(booking, expected_version=0)
        return booking
