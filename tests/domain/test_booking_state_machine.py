"""Unit tests for the Booking aggregate and its status state machine."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from itertools import product

import pytest

from booking_engine.domain.exceptions import IllegalTransitionError, ValidationError
from booking_engine.domain.model.booking import (
    SYSTEM_ACTOR,
    Booking,
    BookingStatus,
    RefundStatus,
)
from booking_engine.domain.model.offering import Offering
from booking_engine.domain.model.payment import PaymentMethod, TransactionOutcome
from booking_engine.domain.model.pricing import Pricing
from booking_engine.domain.model.value_objects import (
    ContactInfo,
    Money,
    Quantity,
    ServiceType,
    Specifications,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
LATER = NOW + timedelta(hours=1)

P = BookingStatus.PENDING
C = BookingStatus.CONFIRMED
IP = BookingStatus.IN_PROGRESS
CO = BookingStatus.COMPLETED
X = BookingStatus.CANCELLED
R = BookingStatus.REFUNDED

LEGAL = {(P, C), (P, IP), (P, X), (C, IP), (C, X), (IP, CO), (IP, X), (X, R)}


def _offering(service_type: ServiceType = ServiceType.SCHEDULED_TRANSPORT) -> Offering:
    return Offering(
        id="1",
        name="Kathmandu - Pokhara 07:00",
        service_type=service_type,
        base_price=Money.of("500"),
        capacity=5,
        vat_rate=Decimal("0"),
        scheduled_start=NOW + timedelta(hours=30),
    )


def _make_booking(**overrides) -> Booking:
    offering = overrides.pop("offering", _offering())
    quantity = Quantity(overrides.pop("quantity", 2))
    fields = dict(
        reference="BK2610190001",
        user_id="u1",
        offering=offering,
        quantity=quantity,
        contact=ContactInfo(name="Sita", phone="9800000000", email="sita@example.com"),
        pricing=Pricing.quote(offering, quantity),
        now=NOW,
    )
    fields.update(overrides)
    return Booking.create(**fields)


def _pay(booking: Booking, amount: str, ref: str = "G-1"):
    return booking.record_payment(
        Decimal(amount), PaymentMethod.KHALTI, ref, TransactionOutcome.CAPTURED, LATER
    )


class TestBookingCreation:

    def test_starts_pending_and_holding(self):
        booking = _make_booking()
        assert booking.status == P
        assert booking.held_quantity == 2
        assert booking.holds_inventory
        assert booking.pricing.total_amount == Money.of("1000")
        assert booking.payment.due_amount == Money.of("1000")

    def test_history_starts_with_pending(self):
        booking = _make_booking()
        assert len(booking.status_history) == 1
        assert booking.status_history[-1].status == P
        assert booking.status_history[-1].actor == "u1"

    def test_schedule_defaults_to_offering(self):
        booking = _make_booking()
        assert booking.schedule.start == NOW + timedelta(hours=30)

    def test_requested_start_wins(self):
        booking = _make_booking(start=NOW + timedelta(days=3))
        assert booking.schedule.start == NOW + timedelta(days=3)

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError, match="end before"):
            _make_booking(start=NOW + timedelta(days=3), end=NOW + timedelta(days=2))

    def test_missing_user_rejected(self):
        with pytest.raises(ValidationError, match="user"):
            _make_booking(user_id=" ")

    def test_specifications_only_for_material_orders(self):
        spec = Specifications("cement", {"grade": "OPC 53"})
        with pytest.raises(ValidationError, match="material orders"):
            _make_booking(specifications=spec)
        booking = _make_booking(
            offering=_offering(ServiceType.MATERIAL_ORDER), specifications=spec
        )
        assert booking.specifications == spec


class TestTransitionTable:

    @pytest.mark.parametrize(("source", "target"), list(product(BookingStatus, BookingStatus)))
    def test_table(self, source, target):
        booking = _make_booking()
        booking.status = source
        assert booking.can_transition_to(target) == ((source, target) in LEGAL)

    def test_terminal_states_have_no_way_forward_except_refund(self):
        booking = _make_booking()
        for status in (CO, R):
            booking.status = status
            assert not any(booking.can_transition_to(t) for t in BookingStatus)

    def test_successful_transition_appends_exactly_one_entry(self):
        booking = _make_booking()
        booking.transition_to(C, "admin", LATER, "paid at counter")
        assert booking.status == C
        assert len(booking.status_history) == 2
        entry = booking.status_history[-1]
        assert (entry.status, entry.actor, entry.note) == (C, "admin", "paid at counter")
        assert booking.schedule.confirmed_at == LATER

    def test_illegal_transition_leaves_state_untouched(self):
        booking = _make_booking()
        with pytest.raises(IllegalTransitionError) as exc_info:
            booking.transition_to(CO, "admin", LATER)
        assert exc_info.value.current == "pending"
        assert exc_info.value.target == "completed"
        assert booking.status == P
        assert len(booking.status_history) == 1
        assert booking.held_quantity == 2

    def test_history_last_entry_tracks_status(self):
        booking = _make_booking()
        for target in (C, IP, CO):
            booking.transition_to(target, "admin", LATER)
            assert booking.status_history[-1].status == booking.status


class TestInventoryHolding:

    def test_completion_releases_held_units_once(self):
        booking = _make_booking()
        booking.transition_to(IP, "admin", LATER)
        assert booking.transition_to(CO, "admin", LATER) == 2
        assert booking.held_quantity == 0
        assert booking.schedule.completed_at == LATER

    def test_cancellation_releases_held_units(self):
        booking = _make_booking()
        assert booking.cancel("u1", "plans changed", Money.zero(), LATER) == 2
        assert not booking.holds_inventory

    def test_cancellation_does_not_release_twice(self):
        booking = _make_booking()
        booking.held_quantity = 0  # released by an earlier partial flow
        assert booking.cancel("u1", "plans changed", Money.zero(), LATER) == 0

    def test_non_terminal_moves_keep_holding(self):
        booking = _make_booking()
        assert booking.transition_to(C, "admin", LATER) == 0
        assert booking.transition_to(IP, "admin", LATER) == 0
        assert booking.held_quantity == 2


class TestPayments:

    def test_full_payment_auto_confirms(self):
        booking = _make_booking()
        _pay(booking, "1000")
        assert booking.status == C
        assert booking.payment.due_amount == Money.zero()
        assert len(booking.status_history) == 2
        assert booking.status_history[-1].actor == SYSTEM_ACTOR
        assert booking.status_history[-1].note == "Auto-confirmed after payment"

    def test_partial_payment_stays_pending(self):
        booking = _make_booking()
        _pay(booking, "400")
        assert booking.status == P
        assert len(booking.status_history) == 1

    def test_settling_a_confirmed_booking_does_not_add_history(self):
        booking = _make_booking()
        booking.transition_to(C, "admin", LATER)
        _pay(booking, "1000")
        assert booking.status == C
        assert len(booking.status_history) == 2

    def test_failed_payment_does_not_confirm(self):
        booking = _make_booking()
        booking.record_payment(
            Decimal("1000"), PaymentMethod.CARD, "G-1", TransactionOutcome.FAILED, LATER
        )
        assert booking.status == P
        assert booking.payment.paid_amount == Money.zero()

    def test_refund_outcome_not_accepted_as_payment(self):
        booking = _make_booking()
        with pytest.raises(ValidationError, match="mark_refund_issued"):
            booking.record_payment(
                Decimal("10"), None, "R-1", TransactionOutcome.REFUNDED, LATER
            )

    @pytest.mark.parametrize("terminal", [CO, X, R])
    def test_terminal_booking_rejects_payments(self, terminal):
        booking = _make_booking()
        booking.status = terminal
        with pytest.raises(IllegalTransitionError):
            _pay(booking, "100")
        assert booking.payment.transactions == []


class TestCancellationAndRefund:

    def test_cancel_records_cancellation(self):
        booking = _make_booking()
        _pay(booking, "1000")
        booking.cancel("u1", "plans changed", Money.of("1000"), LATER)
        assert booking.status == X
        assert booking.cancellation.refund_amount == Money.of("1000")
        assert booking.cancellation.refund_status == RefundStatus.PENDING
        assert booking.cancellation.approved_by is None
        assert booking.schedule.cancelled_at == LATER
        assert booking.status_history[-1].note == "plans changed"

    def test_admin_cancellation_is_approved(self):
        booking = _make_booking()
        booking.cancel("admin", "weather", Money.zero(), LATER, approved=True)
        assert booking.cancellation.approved_by == "admin"
        assert booking.cancellation.approved_at == LATER

    def test_refund_above_paid_rejected(self):
        booking = _make_booking()
        with pytest.raises(ValidationError, match="exceeds paid"):
            booking.cancel("u1", "x", Money.of("1"), LATER)
        assert booking.status == P

    def test_cancel_completed_rejected(self):
        booking = _make_booking()
        booking.transition_to(IP, "admin", LATER)
        booking.transition_to(CO, "admin", LATER)
        with pytest.raises(IllegalTransitionError):
            booking.cancel("u1", "x", Money.zero(), LATER)
        assert booking.cancellation is None

    def test_refund_issued(self):
        booking = _make_booking()
        _pay(booking, "1000")
        booking.cancel("u1", "plans changed", Money.of("1000"), LATER)
        txn = booking.mark_refund_issued("R-1", "admin", LATER)
        assert txn.amount == Decimal("-1000")
        assert booking.status == R
        assert booking.payment.paid_amount == Money.zero()
        assert booking.cancellation.refund_status == RefundStatus.PROCESSED
        assert booking.status_history[-1].status == R

    def test_refund_issued_requires_cancellation(self):
        booking = _make_booking()
        with pytest.raises(IllegalTransitionError):
            booking.mark_refund_issued("R-1", "admin", LATER)

    def test_refund_issued_requires_money_owed(self):
        booking = _make_booking()
        booking.cancel("u1", "x", Money.zero(), LATER)
        with pytest.raises(IllegalTransitionError, match="no refund"):
            booking.mark_refund_issued("R-1", "admin", LATER)
        assert booking.status == X


class TestManualAdvance:

    def test_advance_to_confirmed(self):
        booking = _make_booking()
        booking.advance(C, "admin", LATER)
        assert booking.status == C

    @pytest.mark.parametrize("target", [X, R, P])
    def test_advance_cannot_cancel_or_refund(self, target):
        booking = _make_booking()
        with pytest.raises(IllegalTransitionError):
            booking.advance(target, "admin", LATER)
        assert booking.status == P
