"""Metrics snapshot: everything the render sink needs for one tick."""

import datetime

from pydantic import BaseModel, ConfigDict

from Price_Pulse.models.enums import PriceDirection, TargetKind
from Price_Pulse.models.portfolio import Position


class TargetDistance(BaseModel):
    """How far the current price is from a configured threshold, in percent."""

    model_config = ConfigDict(frozen=True)

    kind: TargetKind
    threshold: float
    distance_pct: float


class MetricsSnapshot(BaseModel):
    """Derived metrics for a single render tick.

    Every optional field is None when its inputs are unavailable; NaN and
    infinity never appear here.
    """

    model_config = ConfigDict(frozen=True)

    computed_at: datetime.datetime
    price: float | None
    price_direction: PriceDirection
    delta_1h_pct: float | None
    delta_24h_pct: float | None
    high_24h: float | None
    low_24h: float | None
    position: Position
    position_value: float | None
    pnl_usd: float | None
    pnl_pct: float | None
    delta_from_average_cost_pct: float | None
    targets: list[TargetDistance]
