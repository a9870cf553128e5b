"""Bounded, time-ordered store of price samples with windowed queries.

At one sample per second the default capacity of 600 covers about ten
minutes, so 1h/24h figures computed here are approximations; the dashboard
prefers exchange-reported 24h stats when it has them.
"""

from __future__ import annotations

import datetime
import logging
import math
from collections import deque
from collections.abc import Iterator

from Price_Pulse.models.market_data import PriceRange, Sample

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY: int = 600


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class SampleBuffer:
    """FIFO ring of the most recent ``capacity`` samples.

    Usage::

        buffer = SampleBuffer(capacity=600)
        buffer.append(datetime.datetime.now(datetime.UTC), 3.21)
        change = buffer.percent_change_since(datetime.timedelta(hours=1))
        price_range = buffer.min_max_since(datetime.timedelta(hours=24))
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            msg = f"Sample buffer capacity must be at least 1, got {capacity}"
            raise ValueError(msg)
        self._samples: deque[Sample] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        """Maximum number of retained samples."""
        # maxlen is always set by __init__
        return self._samples.maxlen or 0

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    @property
    def latest(self) -> Sample | None:
        """Most recently appended sample, or None when empty."""
        return self._samples[-1] if self._samples else None

    @property
    def previous(self) -> Sample | None:
        """Second most recent sample, or None with fewer than two samples."""
        return self._samples[-2] if len(self._samples) > 1 else None

    def append(self, timestamp: datetime.datetime, price: float) -> None:
        """Append an observation, evicting the oldest samples past capacity.

        Non-finite prices are dropped without error.
        """
        if not math.isfinite(price):
            logger.debug("Dropping non-finite price %r at %s", price, timestamp)
            return
        self._samples.append(Sample(timestamp=timestamp, price=price))

    def percent_change_since(
        self,
        window: datetime.timedelta,
        now: datetime.datetime | None = None,
    ) -> float | None:
        """Percent change from the start of *window* to the latest sample.

        The reference is the earliest sample inside the window; when no sample
        is inside it, the oldest retained sample is used instead.

        Returns:
            ``(last - ref) / ref * 100``, or None when the buffer is empty,
            the reference price is zero, or either price is non-finite.
        """
        if not self._samples:
            return None

        cutoff = (now or _utcnow()) - window
        ref = next((s for s in self._samples if s.timestamp >= cutoff), self._samples[0])
        last = self._samples[-1]

        if not (math.isfinite(ref.price) and math.isfinite(last.price)) or ref.price == 0:
            return None
        return (last.price - ref.price) / ref.price * 100

    def min_max_since(
        self,
        window: datetime.timedelta,
        now: datetime.datetime | None = None,
    ) -> PriceRange:
        """High and low over samples inside *window*, or the whole buffer if none are."""
        if not self._samples:
            return PriceRange()

        cutoff = (now or _utcnow()) - window
        in_window = [s.price for s in self._samples if s.timestamp >= cutoff]
        prices = in_window or [s.price for s in self._samples]
        finite = [p for p in prices if math.isfinite(p)]
        if not finite:
            return PriceRange()
        return PriceRange(high=max(finite), low=min(finite))
