"""Upstream quota command."""

import asyncio

import click
from rich.table import Table

from fxconv.cli.output import console, fail
from fxconv.lib.errors import FxConvError
from fxconv.services.rates_provider import OpenExchangeRatesProvider


@click.command()  # type: ignore[misc]
def quota() -> None:
    """Show Open Exchange Rates plan usage."""
    provider = OpenExchangeRatesProvider()

    try:
        usage_data = asyncio.run(provider.fetch_usage())
    except FxConvError as e:
        fail(e)

    usage = usage_data.usage
    used_pct = (usage.requests / usage.requests_quota) * 100 if usage.requests_quota > 0 else 0
    status = "🟢 OK" if used_pct < 80 else "🟡 Warning" if used_pct < 100 else "🔴 Exceeded"

    table = Table(title="API Quota Status", show_header=True, header_style="bold cyan")
    table.add_column("Plan", style="cyan")
    table.add_column("Used", style="yellow")
    table.add_column("Limit", style="green")
    table.add_column("Remaining", style="blue")
    table.add_column("Status", style="bold")
    table.add_row(
        usage_data.plan.name,
        str(usage.requests),
        str(usage.requests_quota),
        str(usage.requests_remaining),
        status,
    )

    console.print(table)
    console.print(
        f"\n📅 Day {usage.days_elapsed} of period, {usage.days_remaining} remaining "
        f"(~{usage.daily_average:.0f} requests/day)"
    )
