"""
sovcoin preview — exchange preview against a settings file.

Usage:
    sovcoin preview CONFIG SYMBOL --settlement N
    sovcoin preview CONFIG SYMBOL --sovereign N

The settings are bootstrapped into a throwaway in-memory host; nothing is
written to the configured journal. The settings' logging block is applied
before bootstrap, with SOVCOIN_LOG_* variables taking precedence.

Exit codes:
    0  Preview printed
    2  Error (bad settings, unknown coin, missing price feed, bad input)
"""

import dataclasses
import json
import sys
from typing import Optional

import click

from sovcoin.config import load_settings
from sovcoin.core.exceptions import SovCoinError
from sovcoin.logging import configure_logging, load_logging_options_from_env
from sovcoin.runtime.context import SettlementContext
from sovcoin.settlement.preview import preview_exchange


@click.command(name="preview")
@click.argument("config", type=click.Path(exists=False))
@click.argument("symbol")
@click.option("--settlement", type=int, default=None, help="Settlement-asset amount to convert.")
@click.option("--sovereign", type=int, default=None, help="Sovereign-coin amount to convert.")
@click.option(
    "--format", "fmt",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    show_default=True,
)
def preview_command(
    config:     str,
    symbol:     str,
    settlement: Optional[int],
    sovereign:  Optional[int],
    fmt:        str,
) -> None:
    """
    Preview the conversion of a settlement or sovereign amount for SYMBOL.

    \b
    Examples:
      sovcoin preview settings.yaml MXNs --settlement 1000000
      sovcoin preview settings.yaml MXNs --sovereign 17250000 --format json
    """
    try:
        settings = load_settings(config)
        configure_logging(load_logging_options_from_env(settings.logging))
        settings = dataclasses.replace(settings, journal_path=None, journal_key_path=None)
        context = SettlementContext.from_settings(settings)
        result = preview_exchange(
            context.host, context.converter, symbol,
            settlement_amount=settlement,
            sovereign_amount=sovereign,
        )
    except SovCoinError as exc:
        if fmt == "json":
            click.echo(json.dumps({"error": exc.code, "message": str(exc)}))
        else:
            click.echo(f"Error [{exc.code}]: {exc}", err=True)
        sys.exit(2)

    if fmt == "json":
        click.echo(json.dumps({"symbol": symbol, **result.to_dict()}, indent=2))
        sys.exit(0)

    click.echo(f"  {'Coin':<18}{symbol}")
    click.echo(f"  {'Settlement':<18}{result.settlement_amount}")
    click.echo(f"  {'Sovereign':<18}{result.sovereign_amount}")
    if result.protocol_fee is not None:
        click.echo(f"  {'Protocol fee':<18}{result.protocol_fee}")
        click.echo(f"  {'Liquid reserve':<18}{result.reserve_amount}")
        click.echo(f"  {'Bond purchase':<18}{result.bond_amount}")
    sys.exit(0)
