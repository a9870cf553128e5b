"""Reporting module: terminal dashboard rendering and number formatting.

Re-exports all public functions so consumers can import directly:
    from Price_Pulse.reporting import DashboardView, fmt_pct
"""

from Price_Pulse.reporting.formatters import (
    fmt_number,
    fmt_pct,
    fmt_quantity,
    fmt_targets,
    fmt_usd,
)
from Price_Pulse.reporting.terminal import (
    DashboardView,
    build_dashboard,
    notify,
    render_balances,
    render_snapshot,
)

__all__ = [
    # Formatters
    "fmt_number",
    "fmt_pct",
    "fmt_quantity",
    "fmt_targets",
    "fmt_usd",
    # Terminal
    "DashboardView",
    "build_dashboard",
    "notify",
    "render_balances",
    "render_snapshot",
]
