"""CLI entry point for fxconv."""

import logging
import sys
import traceback

import click

from fxconv.cli import convert, quota, rates
from fxconv.cli.output import console
from fxconv.lib.errors import FxConvError, format_error_message, get_error_color
from fxconv.lib.logging_config import setup_logging


@click.group()  # type: ignore[misc]
@click.option("--debug", is_flag=True, help="Enable debug mode")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def main(ctx: click.Context, debug: bool) -> None:
    """Currency converter backed by Open Exchange Rates."""
    ctx.ensure_object(dict)
    ctx.obj["DEBUG"] = debug
    setup_logging(logging.DEBUG if debug else logging.WARNING)


def handle_exception(
    exc_type: type[BaseException], exc_value: BaseException, exc_traceback: object
) -> None:
    """
    Global exception handler for CLI.

    Formats exceptions with Rich colors and provides user-friendly messages.
    """
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)  # type: ignore[arg-type]
        return

    color = get_error_color(exc_value)
    console.print(f"\n[{color}]✗ Error: {format_error_message(exc_value)}[/{color}]\n")

    debug_mode = "--debug" in sys.argv
    if not isinstance(exc_value, FxConvError):
        console.print("[dim]Unexpected error occurred. Use --debug for full traceback.[/dim]")
    if debug_mode:
        console.print("[dim]Traceback:[/dim]")
        traceback.print_exception(exc_value)

    sys.exit(1)


sys.excepthook = handle_exception


@main.command()  # type: ignore[misc]
def version() -> None:
    """Show version information."""
    click.echo("fxconv version 0.1.0")


main.add_command(convert.convert)
main.add_command(rates.rates)
main.add_command(rates.currencies)
main.add_command(quota.quota)


if __name__ == "__main__":
    main()
