"""CLI entry point for Price Pulse, a live terminal price and P&L dashboard.

Provides the ``price-pulse`` command with subcommands for running the live
dashboard, printing a one-shot snapshot, checking on-chain balances, and
writing a default settings file.

This is the ONLY module where ``print()`` is allowed. All other modules use
``logging``. Async internals are bridged to typer's synchronous interface via
``asyncio.run()``.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from Price_Pulse.dashboard import Dashboard
from Price_Pulse.logging_config import configure_logging
from Price_Pulse.reporting.terminal import (
    DashboardView,
    notify,
    render_balances,
    render_snapshot,
)
from Price_Pulse.services._helpers import build_http_client
from Price_Pulse.services.balances import BalanceRefresher, build_balance_providers
from Price_Pulse.settings import (
    DashboardSettings,
    load_settings,
    resolve_settings_path,
    save_settings,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Typer app
# ---------------------------------------------------------------------------

app = typer.Typer(name="price-pulse", help="Live price, position and P&L dashboard")

# Rich console for formatted output
console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Settings file (default: $PRICE_PULSE_CONFIG or data/settings.json)"),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logs")]
QuietOption = Annotated[bool, typer.Option("--quiet", "-q", help="Only show warnings and errors")]


def _uses_onchain_quantity(settings: DashboardSettings) -> bool:
    return settings.use_onchain_balance and bool(settings.addresses)


# ---------------------------------------------------------------------------
# run command
# ---------------------------------------------------------------------------


@app.command()
def run(
    config: ConfigOption = None,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
) -> None:
    """Start the live dashboard. Press Ctrl+C to exit."""
    configure_logging(verbose=verbose, quiet=quiet)
    settings = load_settings(config)
    try:
        with DashboardView(
            symbol=settings.asset.symbol,
            onchain_quantity=_uses_onchain_quantity(settings),
            target=console,
        ) as view:
            asyncio.run(_run_async(settings, view))
    except KeyboardInterrupt:
        console.print("[yellow]Stopped.[/yellow]")


async def _run_async(settings: DashboardSettings, view: DashboardView) -> None:
    async with build_http_client() as client:
        dashboard = Dashboard.from_settings(
            settings,
            client=client,
            render=view.update,
            notify=notify,
        )
        await dashboard.run()


# ---------------------------------------------------------------------------
# snapshot command
# ---------------------------------------------------------------------------


@app.command()
def snapshot(
    config: ConfigOption = None,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
) -> None:
    """Poll once, compute one snapshot, print it, and exit."""
    configure_logging(verbose=verbose, quiet=quiet)
    settings = load_settings(config)
    asyncio.run(_snapshot_async(settings))


async def _snapshot_async(settings: DashboardSettings) -> None:
    async with build_http_client() as client:
        dashboard = Dashboard.from_settings(settings, client=client, notify=notify)
        await dashboard.prime()
        result = dashboard.tick()
        # Flush webhook deliveries while the client is still open
        await dashboard.stop()

    if result.price is None:
        console.print("[red]No price provider answered.[/red]")
        raise typer.Exit(code=1)

    render_snapshot(
        result,
        "Snapshot (REST)",
        symbol=settings.asset.symbol,
        onchain_quantity=_uses_onchain_quantity(settings),
    )


# ---------------------------------------------------------------------------
# balance command
# ---------------------------------------------------------------------------


@app.command()
def balance(
    config: ConfigOption = None,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
) -> None:
    """Show the on-chain balance of each configured address."""
    configure_logging(verbose=verbose, quiet=quiet)
    settings = load_settings(config)
    if not settings.addresses:
        console.print("[yellow]No addresses configured.[/yellow]")
        raise typer.Exit(code=1)
    asyncio.run(_balance_async(settings))


async def _balance_async(settings: DashboardSettings) -> None:
    async with build_http_client() as client:
        refresher = BalanceRefresher(settings.addresses, build_balance_providers(settings, client))
        balances = await refresher.lookup_all()

    total = sum((b for b in balances.values() if b is not None), Decimal(0))
    render_balances(
        balances,
        float(total) if total > 0 else None,
        symbol=settings.asset.symbol,
    )


# ---------------------------------------------------------------------------
# init-config command
# ---------------------------------------------------------------------------


@app.command("init-config")
def init_config(
    config: ConfigOption = None,
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing file")] = False,
) -> None:
    """Write the default settings file."""
    configure_logging(quiet=True)
    path = resolve_settings_path(config)
    if path.exists() and not force:
        console.print(f"[red]{path} already exists. Use --force to overwrite.[/red]")
        raise typer.Exit(code=1)
    written = save_settings(DashboardSettings(), path)
    console.print(f"[green]Wrote default settings to {written}[/green]")
