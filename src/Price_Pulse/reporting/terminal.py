"""Rich-based live terminal dashboard and alert notifications.

Uses ``rich.live.Live`` to redraw one panel per tick. Color scheme:
green = up / profit, red = down / loss, yellow = no data.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Mapping
from decimal import Decimal
from types import TracebackType

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from Price_Pulse.models.snapshot import MetricsSnapshot
from Price_Pulse.reporting.formatters import (
    delta_style,
    direction_style,
    fmt_pct,
    fmt_quantity,
    fmt_targets,
    fmt_usd,
)

logger = logging.getLogger(__name__)

# Shared console instance for terminal output
console = Console()

COLOR_HEADER: str = "bold cyan"
COLOR_ALERT: str = "bold magenta"


def build_dashboard(
    snapshot: MetricsSnapshot,
    note: str,
    *,
    symbol: str,
    onchain_quantity: bool = False,
) -> Panel:
    """Lay out one snapshot as a panel. Pure: no console output."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Metric", style="bold")
    table.add_column("Value")

    price_text = fmt_usd(snapshot.price)
    table.add_row("Price", Text(price_text, style=f"bold {direction_style(snapshot.price_direction)}"))

    deltas = Text()
    deltas.append(fmt_pct(snapshot.delta_1h_pct), style=delta_style(snapshot.delta_1h_pct))
    deltas.append(" / ")
    deltas.append(fmt_pct(snapshot.delta_24h_pct), style=delta_style(snapshot.delta_24h_pct))
    table.add_row("Δ 1h / 24h", deltas)
    table.add_row("24h High / Low", f"{fmt_usd(snapshot.high_24h)} / {fmt_usd(snapshot.low_24h)}")

    position = snapshot.position
    qty_label = "Qty (on‑chain)" if onchain_quantity else "Qty"
    table.add_row("Lots", str(position.lot_count))
    table.add_row(qty_label, fmt_quantity(position.total_quantity, symbol))
    table.add_row(
        "Cost",
        f"{fmt_usd(position.total_invested_usd)} @ Avg {fmt_usd(position.average_cost, places=6)}",
    )
    table.add_row("Value", fmt_usd(snapshot.position_value))

    pnl = Text(
        f"{fmt_usd(snapshot.pnl_usd)} ({fmt_pct(snapshot.pnl_pct)})",
        style=delta_style(snapshot.pnl_usd),
    )
    table.add_row("P&L", pnl)
    table.add_row(
        "From Avg",
        Text(
            fmt_pct(snapshot.delta_from_average_cost_pct),
            style=delta_style(snapshot.delta_from_average_cost_pct),
        ),
    )
    table.add_row("Targets", fmt_targets(snapshot.targets))

    stamp = snapshot.computed_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")
    footer = Text(f"{note} • {stamp}", style="dim")
    return Panel(Group(table, footer), title=f"{symbol} Live", style=COLOR_HEADER)


class DashboardView:
    """Render sink redrawing the dashboard in place.

    Usage::

        with DashboardView(symbol="FIL") as view:
            view.update(snapshot, "Live (Coinbase WS)")
    """

    def __init__(
        self,
        *,
        symbol: str,
        onchain_quantity: bool = False,
        target: Console | None = None,
    ) -> None:
        self._symbol = symbol
        self._onchain_quantity = onchain_quantity
        self._console = target or console
        self._live = Live(
            Text("Waiting for first tick…", style="dim"),
            console=self._console,
            auto_refresh=False,
            transient=False,
        )

    def __enter__(self) -> DashboardView:
        self._live.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._live.stop()

    def update(self, snapshot: MetricsSnapshot, note: str) -> None:
        panel = build_dashboard(
            snapshot,
            note,
            symbol=self._symbol,
            onchain_quantity=self._onchain_quantity,
        )
        self._live.update(panel, refresh=True)


def render_snapshot(
    snapshot: MetricsSnapshot,
    note: str,
    *,
    symbol: str,
    onchain_quantity: bool = False,
) -> None:
    """Print a single snapshot (used by the one-shot ``snapshot`` command)."""
    console.print(build_dashboard(snapshot, note, symbol=symbol, onchain_quantity=onchain_quantity))


def notify(title: str, body: str) -> None:
    """Local notification sink: bell plus a highlighted panel above the dashboard."""
    console.bell()
    console.print(Panel(body, title=title, style=COLOR_ALERT))
    logger.info("%s: %s", title, body)


def render_balances(
    balances: Mapping[str, Decimal | None],
    total: float | None,
    *,
    symbol: str,
) -> None:
    """Table of per-address balances for the ``balance`` command."""
    table = Table(title=f"{symbol} balances")
    table.add_column("Address", style="bold")
    table.add_column("Balance", justify="right")
    for address, balance in balances.items():
        shown = f"{balance} {symbol}" if balance is not None else "[red]unavailable[/red]"
        table.add_row(address, shown)
    table.add_row("Total", fmt_quantity(total, symbol))
    console.print(table)
    console.print(f"[dim]Checked {datetime.datetime.now(datetime.UTC).isoformat()}[/dim]")
