"""CLI commands for capacity inspection."""

from __future__ import annotations

import click

from booking_engine.application.show_inventory import ShowInventoryHandler
from booking_engine.infrastructure.bootstrap import inventory_store, offering_repository


@click.command("show")
def inventory_show() -> None:
    """Show current capacity per offering."""
    handler = ShowInventoryHandler(
        inventory_store=inventory_store(),
        offering_repo=offering_repository(),
    )
    lines = handler.handle()

    if not lines:
        click.echo("No inventory records found.")
        return

    click.echo(f"{'ID':<6} {'Offering':<24} {'Total':>8} {'Reserved':>10} {'Available':>10}")
    click.echo("-" * 62)
    for line in lines:
        click.echo(
            f"{line.offering_id:<6} {line.offering_name:<24} {line.total:>8} "
            f"{line.reserved:>10} {line.available:>10}"
        )
