"""Conversion command."""

import asyncio
import json

import click

from fxconv.cli.output import console, fail
from fxconv.lib.errors import FxConvError
from fxconv.services.currency_service import CurrencyService


@click.command()  # type: ignore[misc]
@click.argument("from_currency")  # type: ignore[misc]
@click.argument("to_currency")  # type: ignore[misc]
@click.argument("amount", type=float)  # type: ignore[misc]
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")  # type: ignore[misc]
def convert(from_currency: str, to_currency: str, amount: float, as_json: bool) -> None:
    """Convert AMOUNT from one currency to another."""
    service = CurrencyService.from_env()

    try:
        result = asyncio.run(
            service.convert_currency(from_currency, to_currency, amount, client_id="cli")
        )
    except FxConvError as e:
        fail(e)

    if as_json:
        click.echo(json.dumps(result.to_dict()))
        return

    console.print(
        f"[bold]{result.original_amount:,.2f} {result.from_currency}[/bold] = "
        f"[bold green]{result.converted_amount:,.4f} {result.to_currency}[/bold green]"
    )
    console.print(
        f"[dim]Rate: 1 {result.from_currency} = {result.rate_used:.4f} {result.to_currency}[/dim]"
    )
