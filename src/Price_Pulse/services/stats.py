"""24h high/low from the exchange stats endpoint.

The stats window is only replaced when a fetch returns both sides as finite
numbers; otherwise the previous window stays in place.
"""

from __future__ import annotations

import datetime
import logging
import math

import httpx

from Price_Pulse.models.market_data import StatsWindow
from Price_Pulse.services._helpers import attempt, dig, request_json
from Price_Pulse.utils.exceptions import MalformedPayloadError

logger = logging.getLogger(__name__)


def _finite_number(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value))
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class StatsService:
    """Fetch the exchange-reported 24h range for one product.

    Usage::

        stats_service = StatsService(client, url=settings.endpoints.coinbase_stats, product="FIL-USD")
        stats = await stats_service.refresh(stats)
    """

    source: str = "coinbase-stats"

    def __init__(self, client: httpx.AsyncClient, *, url: str, product: str) -> None:
        self._client = client
        self._product = product
        self._url = url.format(product=product)

    async def fetch(self) -> StatsWindow | None:
        """Return a fresh stats window, or None if the endpoint failed."""
        return await attempt(self._fetch_stats, label=f"24h stats({self._product})")

    async def refresh(self, current: StatsWindow | None) -> StatsWindow | None:
        """Return a fresh window when available, else *current* unchanged."""
        fresh = await self.fetch()
        if fresh is None:
            return current
        logger.debug("24h stats refreshed: high=%s low=%s", fresh.high, fresh.low)
        return fresh

    async def _fetch_stats(self) -> StatsWindow:
        payload = await request_json(
            self._client, "GET", self._url, asset=self._product, source=self.source
        )
        high = _finite_number(dig(payload, "high"))
        low = _finite_number(dig(payload, "low"))
        if high is None or low is None:
            msg = f"{self.source} response lacks finite high/low: {payload!r}"
            raise MalformedPayloadError(msg, asset=self._product, source=self.source)
        return StatsWindow(high=high, low=low, fetched_at=datetime.datetime.now(datetime.UTC))
