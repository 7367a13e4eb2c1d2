"""JSON-file-backed implementation of BookingRepository.

The version check and the write happen under the file lock, so of two
concurrent saves based on the same version exactly one succeeds.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

from booking_engine.domain.exceptions import VersionConflictError
from booking_engine.domain.model.booking import (
    Booking,
    BookingStatus,
    Cancellation,
    RefundStatus,
    Schedule,
    StatusChange,
)
from booking_engine.domain.model.payment import (
    Payment,
    PaymentMethod,
    PaymentStatus,
    PaymentTransaction,
    TransactionOutcome,
)
from booking_engine.domain.model.pricing import Discount, Pricing, TaxLine
from booking_engine.domain.model.value_objects import (
    ContactInfo,
    Money,
    Quantity,
    ServiceType,
    Specifications,
)
from booking_engine.domain.repository.booking_repository import BookingRepository
from booking_engine.infrastructure.persistence.json_file import JsonFile

DEFAULT_PREFIX = "BK"


def _iso(moment: datetime | None) -> str | None:
    return moment.isoformat() if moment is not None else None


def _parse(raw: str | None) -> datetime | None:
    return datetime.fromisoformat(raw) if raw else None


class JsonBookingRepository(BookingRepository):

    def __init__(self, file_path: Path, reference_prefix: str = DEFAULT_PREFIX) -> None:
        self._file = JsonFile(file_path)
        self._prefix = reference_prefix

    # --- BookingRepository interface ------------------------------------------

    def next_reference(self, created_at: datetime) -> str:
        day_prefix = f"{self._prefix}{created_at:%y%m%d}"
        sequences = [
            int(raw["reference"][len(day_prefix):])
            for raw in self._file.load()
            if raw["reference"].startswith(day_prefix)
        ]
        return f"{day_prefix}{max(sequences, default=0) + 1:04d}"

    def get_by_reference(self, reference: str) -> Booking | None:
        for raw in self._file.load():
            if raw["reference"] == reference:
                return self._to_domain(raw)
        return None

    def save(self, booking: Booking, expected_version: int) -> None:
        with self._file.locked():
            records = self._file.load()
            index = None
            for i, raw in enumerate(records):
                if raw["reference"] == booking.reference:
                    index = i
                    break

            stored_version = records[index]["version"] if index is not None else None
            if (stored_version or 0) != expected_version or (
                expected_version == 0 and index is not None
            ):
                raise VersionConflictError(booking.reference, expected_version, stored_version)

            booking.version = expected_version + 1
            if index is None:
                records.append(self._to_raw(booking))
            else:
                records[index] = self._to_raw(booking)
            self._file.persist(records)

    def list_all(
        self,
        status: BookingStatus | None = None,
        created_before: datetime | None = None,
    ) -> list[Booking]:
        bookings = [self._to_domain(raw) for raw in self._file.load()]
        if status is not None:
            bookings = [b for b in bookings if b.status is status]
        if created_before is not None:
            bookings = [b for b in bookings if b.created_at < created_before]
        return sorted(bookings, key=lambda b: b.created_at)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(booking: Booking) -> dict:
        pricing = booking.pricing
        payment = booking.payment
        cancellation = booking.cancellation
        return {
            "reference": booking.reference,
            "version": booking.version,
            "user_id": booking.user_id,
            "offering_id": booking.offering_id,
            "service_type": booking.service_type.value,
            "quantity": booking.quantity.value,
            "held_quantity": booking.held_quantity,
            "status": booking.status.value,
            "created_at": booking.created_at.isoformat(),
            "notes": booking.notes,
            "contact": {
                "name": booking.contact.name,
                "phone": booking.contact.phone,
                "email": booking.contact.email,
                "alternate_phone": booking.contact.alternate_phone,
            },
            "schedule": {
                "start": _iso(booking.schedule.start),
                "end": _iso(booking.schedule.end),
                "confirmed_at": _iso(booking.schedule.confirmed_at),
                "started_at": _iso(booking.schedule.started_at),
                "completed_at": _iso(booking.schedule.completed_at),
                "cancelled_at": _iso(booking.schedule.cancelled_at),
            },
            "pricing": {
                "currency": pricing.currency,
                "base_amount": str(pricing.base_amount.amount),
                "taxes": [
                    {"name": t.name, "rate": str(t.rate), "amount": str(t.amount.amount)}
                    for t in pricing.taxes
                ],
                "discounts": [
                    {"type": d.type, "amount": str(d.amount.amount), "reason": d.reason}
                    for d in pricing.discounts
                ],
                "total_amount": str(pricing.total_amount.amount),
            },
            "payment": {
                "status": payment.status.value,
                "method": payment.method.value if payment.method else None,
                "paid_amount": str(payment.paid_amount.amount),
                "due_amount": str(payment.due_amount.amount),
                "refund_amount": str(payment.refund_amount.amount),
                "transactions": [
                    {
                        "id": t.id,
                        "amount": str(t.amount),
                        "method": t.method.value if t.method else None,
                        "status": t.outcome.value,
                        "gateway_reference": t.gateway_reference,
                        "timestamp": t.timestamp.isoformat(),
                    }
                    for t in payment.transactions
                ],
            },
            "status_history": [
                {
                    "status": h.status.value,
                    "timestamp": h.timestamp.isoformat(),
                    "actor": h.actor,
                    "note": h.note,
                }
                for h in booking.status_history
            ],
            "cancellation": (
                {
                    "reason": cancellation.reason,
                    "requested_by": cancellation.requested_by,
                    "requested_at": cancellation.requested_at.isoformat(),
                    "approved_by": cancellation.approved_by,
                    "approved_at": _iso(cancellation.approved_at),
                    "refund_amount": str(cancellation.refund_amount.amount),
                    "refund_status": cancellation.refund_status.value,
                }
                if cancellation
                else None
            ),
            "specifications": (
                {
                    "category": booking.specifications.category,
                    "values": booking.specifications.values,
                }
                if booking.specifications
                else None
            ),
        }

    @staticmethod
    def _to_domain(raw: dict) -> Booking:
        currency = raw["pricing"]["currency"]

        def money(value: str) -> Money:
            return Money(Decimal(value), currency)

        pricing = Pricing(
            base_amount=money(raw["pricing"]["base_amount"]),
            taxes=tuple(
                TaxLine(t["name"], Decimal(t["rate"]), money(t["amount"]))
                for t in raw["pricing"]["taxes"]
            ),
            discounts=tuple(
                Discount(d["type"], money(d["amount"]), d.get("reason", ""))
                for d in raw["pricing"]["discounts"]
            ),
        )
        rp = raw["payment"]
        payment = Payment(
            total_amount=pricing.total_amount,
            transactions=[
                PaymentTransaction(
                    id=t["id"],
                    amount=Decimal(t["amount"]),
                    method=PaymentMethod(t["method"]) if t["method"] else None,
                    outcome=TransactionOutcome(t["status"]),
                    gateway_reference=t["gateway_reference"],
                    timestamp=datetime.fromisoformat(t["timestamp"]),
                )
                for t in rp["transactions"]
            ],
            paid_amount=money(rp["paid_amount"]),
            refund_amount=money(rp["refund_amount"]),
            method=PaymentMethod(rp["method"]) if rp["method"] else None,
            status=PaymentStatus(rp["status"]),
        )
        rs = raw["schedule"]
        rc = raw.get("cancellation")
        spec = raw.get("specifications")
        return Booking(
            reference=raw["reference"],
            user_id=raw["user_id"],
            offering_id=raw["offering_id"],
            service_type=ServiceType(raw["service_type"]),
            quantity=Quantity(raw["quantity"]),
            contact=ContactInfo(
                name=raw["contact"]["name"],
                phone=raw["contact"]["phone"],
                email=raw["contact"]["email"],
                alternate_phone=raw["contact"].get("alternate_phone"),
            ),
            pricing=pricing,
            payment=payment,
            schedule=Schedule(
                start=_parse(rs.get("start")),
                end=_parse(rs.get("end")),
                confirmed_at=_parse(rs.get("confirmed_at")),
                started_at=_parse(rs.get("started_at")),
                completed_at=_parse(rs.get("completed_at")),
                cancelled_at=_parse(rs.get("cancelled_at")),
            ),
            status=BookingStatus(raw["status"]),
            status_history=[
                StatusChange(
                    status=BookingStatus(h["status"]),
                    timestamp=datetime.fromisoformat(h["timestamp"]),
                    actor=h["actor"],
                    note=h.get("note", ""),
                )
                for h in raw["status_history"]
            ],
            cancellation=(
                Cancellation(
                    reason=rc["reason"],
                    requested_by=rc["requested_by"],
                    requested_at=datetime.fromisoformat(rc["requested_at"]),
                    refund_amount=money(rc["refund_amount"]),
                    refund_status=RefundStatus(rc["refund_status"]),
                    approved_by=rc.get("approved_by"),
                    approved_at=_parse(rc.get("approved_at")),
                )
                if rc
                else None
            ),
            specifications=(
                Specifications(spec["category"], spec["values"]) if spec else None
            ),
            notes=raw.get("notes"),
            held_quantity=raw["held_quantity"],
            created_at=datetime.fromisoformat(raw["created_at"]),
            version=raw["version"],
        )
