"""Stop-loss / take-profit threshold alerts with a cooldown.

The evaluator owns its ``AlertState`` and is the only thing that mutates it.
At most one event is produced per evaluation, and none while the cooldown
since the last event is still running.
"""

from __future__ import annotations

import datetime
import logging
import math
from dataclasses import dataclass

from Price_Pulse.models.alerts import AlertEvent
from Price_Pulse.models.enums import TargetKind

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN: datetime.timedelta = datetime.timedelta(minutes=60)


@dataclass
class AlertState:
    """When the last alert fired. None means never."""

    last_fired_at: datetime.datetime | None = None


def _enabled(threshold: float | None) -> float | None:
    if threshold is None or not math.isfinite(threshold):
        return None
    return threshold


class AlertEvaluator:
    """Detect threshold crossings for the current price.

    Usage::

        evaluator = AlertEvaluator(symbol="FIL", stop_loss=2.0, take_profit=3.5)
        event = evaluator.evaluate(1.5)
        if event is not None:
            dispatcher.dispatch(event)
    """

    def __init__(
        self,
        *,
        symbol: str,
        stop_loss: float | None = None,
        take_profit: float | None = None,
        cooldown: datetime.timedelta = DEFAULT_COOLDOWN,
        enabled: bool = True,
        state: AlertState | None = None,
    ) -> None:
        self._symbol = symbol
        self._stop_loss = _enabled(stop_loss)
        self._take_profit = _enabled(take_profit)
        self._cooldown = cooldown
        self._enabled = enabled
        self.state = state if state is not None else AlertState()

    def evaluate(
        self,
        price: float | None,
        now: datetime.datetime | None = None,
    ) -> AlertEvent | None:
        """Return one alert event if a threshold is crossed and the cooldown has passed.

        Stop-loss wins when both thresholds trigger at once.
        """
        if not self._enabled or price is None or not math.isfinite(price):
            return None

        hit_stop = self._stop_loss is not None and price <= self._stop_loss
        hit_take = self._take_profit is not None and price >= self._take_profit
        if not (hit_stop or hit_take):
            return None

        now = now or datetime.datetime.now(datetime.UTC)
        last = self.state.last_fired_at
        if last is not None and now - last < self._cooldown:
            logger.debug("Alert suppressed by cooldown (last fired at %s)", last.isoformat())
            return None

        if hit_stop:
            assert self._stop_loss is not None  # noqa: S101
            event = self._build_event(TargetKind.STOP_LOSS, price, self._stop_loss, now)
        else:
            assert self._take_profit is not None  # noqa: S101
            event = self._build_event(TargetKind.TAKE_PROFIT, price, self._take_profit, now)

        self.state.last_fired_at = now
        logger.info("Alert fired: %s", event.body)
        return event

    def _build_event(
        self,
        kind: TargetKind,
        price: float,
        threshold: float,
        now: datetime.datetime,
    ) -> AlertEvent:
        if kind == TargetKind.STOP_LOSS:
            body = f"🔻 {self._symbol} hit stop‑loss: ${price:.2f} (≤ ${threshold:.2f})"
        else:
            body = f"✅ {self._symbol} hit take‑profit: ${price:.2f} (≥ ${threshold:.2f})"
        return AlertEvent(
            kind=kind,
            price=price,
            threshold=threshold,
            title=f"{self._symbol} Target Alert",
            body=body,
            fired_at=now,
        )
