"""CLI commands for the Offering aggregate."""

from __future__ import annotations

from datetime import datetime

import click

from booking_engine.application.publish_offering import PublishOfferingHandler
from booking_engine.domain.exceptions import DomainException
from booking_engine.domain.model.value_objects import ServiceType
from booking_engine.infrastructure.bootstrap import (
    inventory_store,
    offering_repository,
    settings,
)
from booking_engine.infrastructure.cli._options import DATETIME


@click.command("publish")
@click.option("--name", required=True, help="Offering name.")
@click.option(
    "--type", "service_type", required=True,
    type=click.Choice([t.value for t in ServiceType]), help="Service type.",
)
@click.option("--price", required=True, help="Price per unit (e.g. 500.00).")
@click.option("--capacity", required=True, type=int, help="Units available for sale.")
@click.option("--vat", default=None, help="VAT percent (defaults to the configured rate).")
@click.option("--service-tax", default=None, help="Service tax percent.")
@click.option("--start", type=DATETIME, default=None, help="Scheduled start (UTC).")
@click.option("--end", type=DATETIME, default=None, help="Scheduled end (UTC).")
@click.option("--id", "offering_id", default=None, help="Explicit offering ID.")
def offering_publish(
    name: str,
    service_type: str,
    price: str,
    capacity: int,
    vat: str | None,
    service_tax: str | None,
    start: datetime | None,
    end: datetime | None,
    offering_id: str | None,
) -> None:
    """Publish a new offering and open its capacity for booking."""
    handler = PublishOfferingHandler(
        offering_repo=offering_repository(),
        inventory_store=inventory_store(),
        currency=settings().default_currency,
    )

    try:
        offering = handler.handle(
            name=name,
            service_type=service_type,
            price=price,
            capacity=capacity,
            vat_rate=vat,
            service_tax_rate=service_tax,
            scheduled_start=start,
            scheduled_end=end,
            offering_id=offering_id,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Offering #{offering.id} '{offering.name}' published: "
        f"{offering.capacity} x {offering.base_price}"
    )


@click.command("list")
def offering_list() -> None:
    """List all offerings."""
    offerings = offering_repository().list_all()

    if not offerings:
        click.echo("No offerings found.")
        return

    click.echo(f"{'ID':<6} {'Name':<24} {'Type':<20} {'Price':>14} {'Capacity':>9}")
    click.echo("-" * 77)
    for o in offerings:
        click.echo(
            f"{o.id:<6} {o.name:<24} {o.service_type.value:<20} "
            f"{str(o.base_price):>14} {o.capacity:>9}"
        )
