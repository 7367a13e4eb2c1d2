import click

from booking_engine.infrastructure.bootstrap import settings
from booking_engine.infrastructure.cli.booking_commands import (
    booking_advance,
    booking_cancel,
    booking_create,
    booking_expire,
    booking_list,
    booking_pay,
    booking_refund,
    booking_show,
)
from booking_engine.infrastructure.cli.inventory_commands import inventory_show
from booking_engine.infrastructure.cli.offering_commands import offering_list, offering_publish
from booking_engine.infrastructure.logging_config import configure_logging


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log at DEBUG level.")
def cli(verbose: bool) -> None:
    """Booking lifecycle & payment reconciliation engine"""
    configure_logging("DEBUG" if verbose else settings().log_level)


@cli.group()
def offering() -> None:
    """Manage offerings."""


@cli.group()
def inventory() -> None:
    """Inspect capacity."""


@cli.group()
def booking() -> None:
    """Manage bookings."""


# Register subcommands
offering.add_command(offering_list)
offering.add_command(offering_publish)
inventory.add_command(inventory_show)
booking.add_command(booking_advance)
booking.add_command(booking_cancel)
booking.add_command(booking_create)
booking.add_command(booking_expire)
booking.add_command(booking_list)
booking.add_command(booking_pay)
booking.add_command(booking_refund)
booking.add_command(booking_show)
