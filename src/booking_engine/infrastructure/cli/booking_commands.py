"""CLI commands for the Booking aggregate."""

from __future__ import annotations

from datetime import datetime, timedelta

import click

from booking_engine.application.advance_status import AdvanceStatusHandler
from booking_engine.application.confirm_payment import ConfirmPaymentHandler
from booking_engine.application.create_booking import CreateBookingHandler
from booking_engine.application.dto import BookingDTO, ContactDetails, DiscountSpec, ScheduleInfo
from booking_engine.application.list_bookings import ListBookingsHandler
from booking_engine.application.mark_refund_issued import MarkRefundIssuedHandler
from booking_engine.application.request_cancellation import RequestCancellationHandler
from booking_engine.application.show_booking import ShowBookingHandler
from booking_engine.domain.exceptions import DomainException
from booking_engine.domain.model.booking import utcnow
from booking_engine.domain.model.payment import PaymentMethod, TransactionOutcome
from booking_engine.infrastructure.bootstrap import (
    actor,
    booking_repository,
    inventory_store,
    offering_repository,
    refund_policies,
    settings,
)
from booking_engine.infrastructure.cli._options import DATETIME

_METHODS = [m.value for m in PaymentMethod]


def _parse_discounts(raw: tuple[str, ...]) -> list[DiscountSpec]:
    """Parse 'type:amount[:reason]' values into DiscountSpec list."""
    specs: list[DiscountSpec] = []
    for item in raw:
        parts = item.split(":", 2)
        if len(parts) < 2:
            raise click.BadParameter(
                f"Invalid discount '{item}'. Expected 'type:amount[:reason]'."
            )
        specs.append(DiscountSpec(parts[0].strip(), parts[1].strip(), parts[2] if len(parts) == 3 else ""))
    return specs


def _display_booking(dto: BookingDTO) -> None:
    """Shared formatting for displaying a booking."""
    click.echo(f"Booking {dto.reference}  (status={dto.status}, v{dto.version})")
    click.echo(f"Offering: {dto.offering_id} ({dto.service_type}) x {dto.quantity}")
    click.echo(f"Contact:  {dto.contact_name}")
    if dto.start:
        click.echo(f"Start:    {dto.start}")
    click.echo()
    click.echo(f"  {'Base':<12} {dto.base_amount:>16}")
    click.echo(f"  {'Taxes':<12} {dto.taxes:>16}")
    click.echo(f"  {'Discounts':<12} {dto.discounts:>16}")
    click.echo(f"  {'-' * 29}")
    click.echo(f"  {'Total':<12} {dto.total:>16}")
    click.echo(f"  {'Paid':<12} {dto.paid:>16}")
    click.echo(f"  {'Due':<12} {dto.due:>16}")
    click.echo(f"Payment:  {dto.payment_status}" + (f" ({dto.payment_method})" if dto.payment_method else ""))

    if dto.transactions:
        click.echo()
        for txn in dto.transactions:
            click.echo(
                f"  {txn.timestamp}  {txn.status:<9} {txn.amount:>16}  {txn.gateway_reference}"
            )
    click.echo()
    for change in dto.status_history:
        click.echo(f"  {change.timestamp}  {change.status:<12} {change.actor:<12} {change.note}")
    if dto.cancellation:
        click.echo()
        click.echo(
            f"Cancelled: {dto.cancellation.reason} "
            f"(refund {dto.cancellation.refund_amount}, {dto.cancellation.refund_status})"
        )


@click.command("create")
@click.option("--user", "user_id", required=True, help="Owning user ID.")
@click.option("--offering", "offering_id", required=True, help="Offering ID.")
@click.option("--quantity", required=True, type=int, help="Units of capacity to book.")
@click.option("--name", required=True, help="Contact name.")
@click.option("--phone", required=True, help="Contact phone.")
@click.option("--email", required=True, help="Contact email.")
@click.option("--start", type=DATETIME, default=None, help="Requested start (UTC).")
@click.option("--end", type=DATETIME, default=None, help="Requested end (UTC).")
@click.option("--method", type=click.Choice(_METHODS), default=None, help="Preferred payment method.")
@click.option("--discount", "discounts", multiple=True, help="Discount as 'type:amount[:reason]'.")
def booking_create(
    user_id: str,
    offering_id: str,
    quantity: int,
    name: str,
    phone: str,
    email: str,
    start: datetime | None,
    end: datetime | None,
    method: str | None,
    discounts: tuple[str, ...],
) -> None:
    """Create a booking (reserves capacity)."""
    cfg = settings()
    handler = CreateBookingHandler(
        booking_repo=booking_repository(),
        offering_repo=offering_repository(),
        inventory_store=inventory_store(),
        default_vat_rate=cfg.default_vat_rate,
        max_attempts=cfg.max_conflict_retries,
    )

    try:
        dto = handler.handle(
            user_id=user_id,
            offering_id=offering_id,
            quantity=quantity,
            contact=ContactDetails(name=name, phone=phone, email=email),
            schedule=ScheduleInfo(start=start, end=end),
            payment_method=method,
            discounts=_parse_discounts(discounts),
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Booking {dto.reference} created  (status={dto.status}, due={dto.due})")


@click.command("show")
@click.option("--ref", "reference", required=True, help="Booking reference.")
def booking_show(reference: str) -> None:
    """Show details of an existing booking."""
    handler = ShowBookingHandler(booking_repo=booking_repository())

    try:
        dto = handler.handle(reference)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_booking(dto)


@click.command("list")
@click.option("--status", default=None, help="Only bookings in this status.")
def booking_list(status: str | None) -> None:
    """List bookings, oldest first."""
    handler = ListBookingsHandler(booking_repo=booking_repository())

    try:
        bookings = handler.handle(status=status)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not bookings:
        click.echo("No bookings found.")
        return

    click.echo(f"{'Reference':<14} {'Status':<12} {'Offering':<9} {'Qty':>4} {'Total':>16} {'Due':>16}")
    click.echo("-" * 76)
    for b in bookings:
        click.echo(
            f"{b.reference:<14} {b.status:<12} {b.offering_id:<9} {b.quantity:>4} "
            f"{b.total:>16} {b.due:>16}"
        )


@click.command("pay")
@click.option("--ref", "reference", required=True, help="Booking reference.")
@click.option("--amount", required=True, help="Amount confirmed by the gateway.")
@click.option("--method", type=click.Choice(_METHODS), default=None, help="Payment method.")
@click.option("--gateway-ref", "gateway_reference", required=True, help="Gateway transaction reference.")
@click.option(
    "--outcome",
    type=click.Choice([TransactionOutcome.CAPTURED.value, TransactionOutcome.FAILED.value]),
    default=TransactionOutcome.CAPTURED.value,
    help="Gateway outcome.",
)
def booking_pay(
    reference: str,
    amount: str,
    method: str | None,
    gateway_reference: str,
    outcome: str,
) -> None:
    """Record a gateway payment confirmation."""
    cfg = settings()
    handler = ConfirmPaymentHandler(
        booking_repo=booking_repository(),
        tolerance=cfg.overpayment_tolerance,
        max_attempts=cfg.max_conflict_retries,
    )

    try:
        dto = handler.handle(reference, amount, method, gateway_reference, outcome)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Booking {reference}: paid {dto.paid}, due {dto.due}  (status={dto.status})")


def _cancellation_handler() -> RequestCancellationHandler:
    return RequestCancellationHandler(
        booking_repo=booking_repository(),
        inventory_store=inventory_store(),
        refund_policies=refund_policies(),
        max_attempts=settings().max_conflict_retries,
    )


@click.command("cancel")
@click.option("--ref", "reference", required=True, help="Booking reference.")
@click.option("--actor", "actor_id", required=True, help="Who asks for the cancellation.")
@click.option("--reason", default=None, help="Cancellation reason.")
def booking_cancel(reference: str, actor_id: str, reason: str | None) -> None:
    """Cancel a booking (releases capacity, computes refund)."""
    try:
        result = _cancellation_handler().handle(reference, actor(actor_id), reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Booking {reference} cancelled, refund {result.refund_amount} ({result.refund_status}).")


@click.command("expire")
@click.option(
    "--older-than", "older_than", type=int, default=30, show_default=True,
    help="Cancel pending bookings created more than this many minutes ago.",
)
def booking_expire(older_than: int) -> None:
    """Cancel stale pending bookings and free their capacity."""
    cutoff = utcnow() - timedelta(minutes=older_than)
    stale = ListBookingsHandler(booking_repository()).handle(status="pending", created_before=cutoff)
    handler = _cancellation_handler()

    expired = 0
    for dto in stale:
        try:
            handler.expire(dto.reference)
        except DomainException as exc:
            click.echo(f"Skipped {dto.reference}: {exc}", err=True)
            continue
        expired += 1

    click.echo(f"Expired {expired} of {len(stale)} stale pending booking(s).")


@click.command("refund")
@click.option("--ref", "reference", required=True, help="Booking reference.")
@click.option("--gateway-ref", "gateway_reference", required=True, help="Gateway refund reference.")
@click.option("--actor", "actor_id", required=True, help="Admin issuing the refund.")
def booking_refund(reference: str, gateway_reference: str, actor_id: str) -> None:
    """Record that the refund for a cancelled booking was paid out."""
    handler = MarkRefundIssuedHandler(
        booking_repo=booking_repository(),
        max_attempts=settings().max_conflict_retries,
    )

    try:
        dto = handler.handle(reference, gateway_reference, actor(actor_id))
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Booking {reference} refunded {dto.refunded}  (status={dto.status})")


@click.command("advance")
@click.option("--ref", "reference", required=True, help="Booking reference.")
@click.option(
    "--to", "target", required=True,
    type=click.Choice(["confirmed", "in_progress", "completed"]), help="Target status.",
)
@click.option("--actor", "actor_id", required=True, help="Admin performing the change.")
@click.option("--note", default=None, help="Note for the status history.")
def booking_advance(reference: str, target: str, actor_id: str, note: str | None) -> None:
    """Manually move a booking forward."""
    handler = AdvanceStatusHandler(
        booking_repo=booking_repository(),
        inventory_store=inventory_store(),
        max_attempts=settings().max_conflict_retries,
    )

    try:
        dto = handler.handle(reference, target, actor(actor_id), note)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Booking {reference} is now {dto.status}.")
