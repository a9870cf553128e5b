"""Pydantic v2 models, enums, and type definitions.

Re-exports all public models so consumers can import directly:
    from Price_Pulse.models import Sample, Position, MetricsSnapshot
"""

from Price_Pulse.models.alerts import AlertEvent
from Price_Pulse.models.enums import LinkState, PriceDirection, ProviderLink, TargetKind
from Price_Pulse.models.market_data import PriceRange, PriceUpdate, Sample, StatsWindow
from Price_Pulse.models.portfolio import CostBasisLot, LotConfig, Position
from Price_Pulse.models.snapshot import MetricsSnapshot, TargetDistance

__all__ = [
    # Enums
    "LinkState",
    "PriceDirection",
    "ProviderLink",
    "TargetKind",
    # Market data
    "PriceRange",
    "PriceUpdate",
    "Sample",
    "StatsWindow",
    # Portfolio
    "CostBasisLot",
    "LotConfig",
    "Position",
    # Snapshot
    "MetricsSnapshot",
    "TargetDistance",
    # Alerts
    "AlertEvent",
]
