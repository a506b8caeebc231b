"""Shared console output for CLI commands."""

import sys
from typing import NoReturn

from rich.console import Console

from fxconv.lib.errors import format_error_message, get_error_color, is_retry_later

console = Console()


def fail(error: BaseException) -> NoReturn:
    """Print an error in its category color and exit with status 1."""
    color = get_error_color(error)
    console.print(f"[{color}]✗ Error: {format_error_message(error)}[/{color}]")
    if is_retry_later(error):
        console.print("[dim]The rate provider is unavailable. Try again later.[/dim]")
    sys.exit(1)
