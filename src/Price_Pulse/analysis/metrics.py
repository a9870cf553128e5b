"""Derived portfolio metrics for a single render tick.

``compute_snapshot`` is a pure function of its arguments: it reads the sample
buffer without mutating it and returns a frozen ``MetricsSnapshot``. Every
division is guarded so that a zero or missing denominator yields None
instead of infinity or NaN.
"""

from __future__ import annotations

import datetime
import logging
import math

from Price_Pulse.analysis.sample_buffer import SampleBuffer
from Price_Pulse.models.enums import PriceDirection, TargetKind
from Price_Pulse.models.market_data import StatsWindow
from Price_Pulse.models.portfolio import Position
from Price_Pulse.models.snapshot import MetricsSnapshot, TargetDistance

logger = logging.getLogger(__name__)

WINDOW_1H: datetime.timedelta = datetime.timedelta(hours=1)
WINDOW_24H: datetime.timedelta = datetime.timedelta(hours=24)


def _finite(value: float | None) -> float | None:
    """Return *value* unchanged if it is a finite number, else None."""
    if value is None or not math.isfinite(value):
        return None
    return value


def _pct(numerator: float | None, denominator: float | None) -> float | None:
    """``numerator / denominator * 100`` with None for a missing or zero denominator."""
    if numerator is None or denominator is None or denominator == 0:
        return None
    return _finite(numerator / denominator * 100)


def price_direction(current_price: float | None, buffer: SampleBuffer) -> PriceDirection:
    """Compare the current price against the previous buffered sample.

    With fewer than two samples the current price is compared with itself,
    which reads as positive.
    """
    current = _finite(current_price)
    if current is None:
        return PriceDirection.NEUTRAL
    previous = buffer.previous
    reference = previous.price if previous is not None else current
    return PriceDirection.POSITIVE if current >= reference else PriceDirection.NEGATIVE


def target_distances(
    current_price: float | None,
    *,
    stop_loss: float | None,
    take_profit: float | None,
) -> list[TargetDistance]:
    """Percent distance from the current price to each configured threshold.

    Take-profit is listed before stop-loss. Disabled thresholds (None or
    non-finite) are omitted, as are all targets when there is no price.
    """
    current = _finite(current_price)
    if current is None or current == 0:
        return []

    distances: list[TargetDistance] = []
    for kind, threshold in (
        (TargetKind.TAKE_PROFIT, _finite(take_profit)),
        (TargetKind.STOP_LOSS, _finite(stop_loss)),
    ):
        if threshold is None:
            continue
        distances.append(
            TargetDistance(
                kind=kind,
                threshold=threshold,
                distance_pct=(threshold / current - 1) * 100,
            )
        )
    return distances


def compute_snapshot(
    current_price: float | None,
    buffer: SampleBuffer,
    position: Position,
    stats: StatsWindow | None = None,
    *,
    stop_loss: float | None = None,
    take_profit: float | None = None,
    now: datetime.datetime | None = None,
) -> MetricsSnapshot:
    """Compute every displayed metric from already-cached state.

    Args:
        current_price: Latest accepted price, or None before the first one.
        buffer: Recent samples for windowed deltas and the fallback 24h range.
        position: Aggregated holding for this tick.
        stats: Exchange-reported 24h high/low; each side wins when finite.
        stop_loss: Stop-loss threshold, or None when disabled.
        take_profit: Take-profit threshold, or None when disabled.
        now: Reference instant for the windows (defaults to current UTC time).

    Returns:
        A frozen snapshot. Identical inputs give an equal snapshot.
    """
    computed_at = now or datetime.datetime.now(datetime.UTC)
    price = _finite(current_price)

    buffer_range = buffer.min_max_since(WINDOW_24H, now=computed_at)
    stats_high = _finite(stats.high) if stats is not None else None
    stats_low = _finite(stats.low) if stats is not None else None

    position_value = _finite(position.total_quantity * price) if price is not None else None
    pnl_usd = (
        position_value - position.total_invested_usd if position_value is not None else None
    )
    pnl_pct = _pct(pnl_usd, position.total_invested_usd) if position.total_invested_usd > 0 else None

    average_cost = _finite(position.average_cost)
    from_average = (
        _pct(price - average_cost, average_cost)
        if price is not None and average_cost is not None and average_cost > 0
        else None
    )

    return MetricsSnapshot(
        computed_at=computed_at,
        price=price,
        price_direction=price_direction(price, buffer),
        delta_1h_pct=buffer.percent_change_since(WINDOW_1H, now=computed_at),
        delta_24h_pct=buffer.percent_change_since(WINDOW_24H, now=computed_at),
        high_24h=stats_high if stats_high is not None else buffer_range.high,
        low_24h=stats_low if stats_low is not None else buffer_range.low,
        position=position,
        position_value=position_value,
        pnl_usd=pnl_usd,
        pnl_pct=pnl_pct,
        delta_from_average_cost_pct=from_average,
        targets=target_distances(price, stop_loss=stop_loss, take_profit=take_profit),
    )
