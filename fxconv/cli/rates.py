"""Rate listing commands."""

import asyncio
from datetime import datetime

import click
from rich.table import Table

from fxconv.cli.output import console, fail
from fxconv.lib.errors import FxConvError, InvalidInputError
from fxconv.lib.validators import validate_currency
from fxconv.models import RatesResponse
from fxconv.services.currency_service import CurrencyService


@click.command()  # type: ignore[misc]
@click.option("--symbols", help="Comma-separated currency codes to show (default: all)")  # type: ignore[misc]
def rates(symbols: str | None) -> None:
    """Show current exchange rates."""
    service = CurrencyService.from_env()

    try:
        wanted = (
            [validate_currency(s.strip().upper()) for s in symbols.split(",") if s.strip()]
            if symbols
            else []
        )
        if symbols and not wanted:
            raise InvalidInputError("--symbols lists no currency codes")
        rates_data: RatesResponse = asyncio.run(service.get_rates())
    except FxConvError as e:
        fail(e)

    codes = wanted or sorted(rates_data.rates)
    as_of = datetime.fromtimestamp(rates_data.timestamp).strftime("%Y-%m-%d %H:%M:%S")

    table = Table(
        title=f"Exchange Rates (base {rates_data.base_currency})",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Currency", style="cyan")
    table.add_column("Rate", justify="right", style="green")

    missing = []
    for code in codes:
        if code == rates_data.base_currency:
            table.add_row(code, "1.0000")
        elif code in rates_data.rates:
            table.add_row(code, f"{rates_data.rates[code]:.4f}")
        else:
            missing.append(code)

    console.print(table)
    console.print(f"\n📅 As of: {as_of}")
    if rates_data.stale:
        console.print("[yellow]⚠ Provider unreachable, showing cached rates[/yellow]")
    if missing:
        console.print(f"[yellow]Not quoted: {', '.join(missing)}[/yellow]")


@click.command()  # type: ignore[misc]
@click.option("--names", is_flag=True, help="Include official currency names")  # type: ignore[misc]
def currencies(names: bool) -> None:
    """List supported currency codes."""
    service = CurrencyService.from_env()

    async def load() -> list[str]:
        if names:
            await service.load_currency_metadata()
        return await service.get_supported_currencies()

    try:
        codes = asyncio.run(load())
    except FxConvError as e:
        fail(e)

    if not names:
        console.print(", ".join(codes))
        console.print(f"\n[dim]{len(codes)} currencies[/dim]")
        return

    table = Table(title="Supported Currencies", show_header=True, header_style="bold cyan")
    table.add_column("Code", style="cyan")
    table.add_column("Name")
    for code in codes:
        metadata = service.store.get_currency_metadata(code)
        table.add_row(code, metadata.name if metadata else "")
    console.print(table)
