"""Shared number formatting for the terminal dashboard.

Every formatter renders a missing value as an em dash, so callers can pass
``MetricsSnapshot`` fields straight through.
"""

from __future__ import annotations

from Price_Pulse.models.enums import PriceDirection, TargetKind
from Price_Pulse.models.snapshot import TargetDistance

MISSING: str = "—"

TARGET_LABELS: dict[TargetKind, str] = {
    TargetKind.TAKE_PROFIT: "TP",
    TargetKind.STOP_LOSS: "SL",
}


def fmt_number(value: float | None, places: int = 2) -> str:
    """Fixed-point number, e.g. ``3.21``."""
    if value is None:
        return MISSING
    return f"{value:.{places}f}"


def fmt_usd(value: float | None, places: int = 2) -> str:
    """Dollar amount, e.g. ``$3.21`` or ``$-4.00``."""
    if value is None:
        return MISSING
    return f"${value:.{places}f}"


def fmt_pct(value: float | None) -> str:
    """Signed percentage with two decimals, e.g. ``+1.25%``."""
    if value is None:
        return MISSING
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.2f}%"


def fmt_quantity(value: float | None, symbol: str) -> str:
    """Asset quantity with four decimals, e.g. ``40.3000 FIL``."""
    if value is None:
        return MISSING
    return f"{value:.4f} {symbol}"


def fmt_targets(targets: list[TargetDistance]) -> str:
    """``TP $3.50 (+9.38%) • SL $2.00 (-37.50%)``, or a dash when none apply."""
    if not targets:
        return MISSING
    return " • ".join(
        f"{TARGET_LABELS[t.kind]} {fmt_usd(t.threshold)} ({fmt_pct(t.distance_pct)})"
        for t in targets
    )


def direction_style(direction: PriceDirection) -> str:
    """Map a price direction to its terminal color."""
    if direction == PriceDirection.POSITIVE:
        return "green"
    if direction == PriceDirection.NEGATIVE:
        return "red"
    return "yellow"


def delta_style(value: float | None) -> str:
    """Green for non-negative changes, red for losses, dim when unknown."""
    if value is None:
        return "dim"
    return "green" if value >= 0 else "red"
