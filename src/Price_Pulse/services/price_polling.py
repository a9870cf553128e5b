"""REST price providers and the polling aggregator.

The aggregator is the terminal link of the price source chain: every
``interval`` seconds it asks each provider in order and keeps the first
finite positive price. It never fails; a round where every provider fails
simply produces no update.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Final

import httpx

from Price_Pulse.models.market_data import PriceUpdate
from Price_Pulse.services._helpers import attempt, dig, request_json, safe_price
from Price_Pulse.settings import DashboardSettings
from Price_Pulse.utils.exceptions import MalformedPayloadError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS: Final[float] = 5.0
REST_VENDOR: Final[str] = "REST"


class RestPriceProvider(ABC):
    """A request/response price lookup: a finite positive number or nothing."""

    name: str = "rest"

    def __init__(self, client: httpx.AsyncClient, *, asset: str) -> None:
        self._client = client
        self._asset = asset

    async def attempt(self) -> float | None:
        """Fetch a price, returning None on any provider failure."""
        return await attempt(self._fetch_price, label=f"{self.name} price({self._asset})")

    @abstractmethod
    async def _fetch_price(self) -> float:
        """Fetch and validate a price. Raises a ``DataFetchError`` on failure."""

    def _require_price(self, value: object) -> float:
        price = safe_price(value)
        if price is None:
            msg = f"{self.name} response has no usable price: {value!r}"
            raise MalformedPayloadError(msg, asset=self._asset, source=self.name)
        return price


class CoinbaseSpotProvider(RestPriceProvider):
    """Coinbase retail spot price: ``{"data": {"amount": "3.21"}}``."""

    name = "coinbase"

    def __init__(self, client: httpx.AsyncClient, *, url: str, product: str) -> None:
        super().__init__(client, asset=product)
        self._url = url.format(product=product)

    async def _fetch_price(self) -> float:
        payload = await request_json(
            self._client, "GET", self._url, asset=self._asset, source=self.name
        )
        return self._require_price(dig(payload, "data", "amount"))


class KrakenTickerProvider(RestPriceProvider):
    """Kraken public ticker: last trade price is ``result[<pair>].c[0]``."""

    name = "kraken"

    def __init__(self, client: httpx.AsyncClient, *, url: str, pair: str) -> None:
        super().__init__(client, asset=pair)
        self._url = url
        self._pair = pair

    async def _fetch_price(self) -> float:
        payload = await request_json(
            self._client,
            "GET",
            self._url,
            asset=self._asset,
            source=self.name,
            params={"pair": self._pair},
        )
        result = dig(payload, "result")
        # Kraken keys the result by its own pair name (e.g. "FILUSD" or "XFILZUSD")
        first_key = next(iter(result), None) if isinstance(result, dict) else None
        if first_key is None:
            msg = f"kraken ticker has no result for {self._pair}"
            raise MalformedPayloadError(msg, asset=self._asset, source=self.name)
        return self._require_price(dig(result, first_key, "c", 0))


class CoinGeckoProvider(RestPriceProvider):
    """CoinGecko simple price: ``{"<coin id>": {"usd": 3.21}}``."""

    name = "coingecko"

    def __init__(self, client: httpx.AsyncClient, *, url: str, coin_id: str) -> None:
        super().__init__(client, asset=coin_id)
        self._url = url
        self._coin_id = coin_id

    async def _fetch_price(self) -> float:
        payload = await request_json(
            self._client,
            "GET",
            self._url,
            asset=self._asset,
            source=self.name,
            params={"ids": self._coin_id, "vs_currencies": "usd"},
        )
        return self._require_price(dig(payload, self._coin_id, "usd"))


def build_price_providers(
    settings: DashboardSettings,
    client: httpx.AsyncClient,
) -> list[RestPriceProvider]:
    """Build the ordered REST providers for the configured asset.

    Coinbase spot is consulted only when Coinbase is the preferred source.
    """
    asset = settings.asset
    endpoints = settings.endpoints
    providers: list[RestPriceProvider] = []
    if settings.preferred_price_source.lower() == "coinbase":
        providers.append(
            CoinbaseSpotProvider(client, url=endpoints.coinbase_spot, product=asset.coinbase_product)
        )
    providers.append(
        KrakenTickerProvider(client, url=endpoints.kraken_ticker, pair=asset.kraken_rest_pair)
    )
    providers.append(
        CoinGeckoProvider(client, url=endpoints.coingecko_price, coin_id=asset.coingecko_id)
    )
    return providers


class PollingAggregator:
    """Poll REST providers in priority order on a fixed interval.

    Usage::

        aggregator = PollingAggregator(build_price_providers(settings, client))
        update = await aggregator.poll_once()
        await aggregator.run(queue.put_nowait)  # never returns
    """

    def __init__(
        self,
        providers: Sequence[RestPriceProvider],
        *,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> None:
        self._providers = list(providers)
        self._interval = interval

    @property
    def interval(self) -> float:
        return self._interval

    async def poll_once(self) -> PriceUpdate | None:
        """Ask each provider in turn; the first valid price wins."""
        for provider in self._providers:
            price = await provider.attempt()
            if price is not None:
                logger.debug("Polled %.6f from %s", price, provider.name)
                return PriceUpdate(
                    timestamp=datetime.datetime.now(datetime.UTC),
                    price=price,
                    source=provider.name,
                )
        logger.warning("All %d REST price providers failed this round", len(self._providers))
        return None

    async def run(self, emit: Callable[[PriceUpdate], None]) -> None:
        """Poll forever, passing each successful update to *emit*.

        A round that raises is logged and skipped; the loop itself never ends.
        """
        while True:
            try:
                update = await self.poll_once()
                if update is not None:
                    emit(update)
            except Exception:
                logger.exception("REST polling round failed")
            await asyncio.sleep(self._interval)
