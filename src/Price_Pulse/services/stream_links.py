"""Real-time ticker stream links for the price source chain.

A link knows how to subscribe to one exchange's websocket ticker channel
and how to pull a price out of that exchange's messages. It does not own a
connection; ``PriceSourceChain`` opens, drives, and closes connections.
Messages for other products, heartbeats, and anything malformed parse to
None and are ignored.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod

from Price_Pulse.models.enums import ProviderLink
from Price_Pulse.services._helpers import dig, safe_price
from Price_Pulse.settings import DashboardSettings

logger = logging.getLogger(__name__)


class StreamLink(ABC):
    """One websocket price source."""

    vendor: str = "WS"

    def __init__(self, url: str, *, kind: ProviderLink) -> None:
        self.url = url
        self.kind = kind

    @abstractmethod
    def subscribe_message(self) -> dict[str, object]:
        """The message sent right after the connection opens."""

    @abstractmethod
    def extract_price(self, message: object) -> float | None:
        """Return the price carried by a decoded message, if it is ours."""

    def parse(self, raw: str | bytes) -> float | None:
        """Decode a raw frame and extract a finite positive price."""
        try:
            message = json.loads(raw or "{}")
        except ValueError:
            logger.debug("%s: ignoring non-JSON frame", self.vendor)
            return None
        return self.extract_price(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(url={self.url!r}, kind={self.kind.value})"


class CoinbaseTickerLink(StreamLink):
    """Coinbase Exchange ``ticker`` channel."""

    vendor = "Coinbase WS"

    def __init__(
        self,
        url: str,
        *,
        product: str,
        kind: ProviderLink = ProviderLink.PRIMARY_LIVE,
    ) -> None:
        super().__init__(url, kind=kind)
        self.product = product

    def subscribe_message(self) -> dict[str, object]:
        return {"type": "subscribe", "product_ids": [self.product], "channels": ["ticker"]}

    def extract_price(self, message: object) -> float | None:
        if dig(message, "type") != "ticker" or dig(message, "product_id") != self.product:
            return None
        return safe_price(dig(message, "price"))


class KrakenTickerLink(StreamLink):
    """Kraken v1 public ``ticker`` subscription.

    Ticker frames are arrays: ``[channel_id, {"c": [last, lot_volume], ...}, "ticker", pair]``.
    Event frames (heartbeat, subscriptionStatus) are objects and are skipped.
    """

    vendor = "Kraken WS"

    def __init__(
        self,
        url: str,
        *,
        pair: str,
        kind: ProviderLink = ProviderLink.SECONDARY_LIVE,
    ) -> None:
        super().__init__(url, kind=kind)
        self.pair = pair

    def subscribe_message(self) -> dict[str, object]:
        return {"event": "subscribe", "pair": [self.pair], "subscription": {"name": "ticker"}}

    def extract_price(self, message: object) -> float | None:
        if not isinstance(message, list) or len(message) < 4:
            return None
        if message[-1] != self.pair or message[-2] != "ticker":
            return None
        return safe_price(dig(message, 1, "c", 0))


def build_stream_links(settings: DashboardSettings) -> list[StreamLink]:
    """Primary and secondary real-time links, in failover order."""
    return [
        CoinbaseTickerLink(
            settings.endpoints.coinbase_ws,
            product=settings.asset.coinbase_product,
            kind=ProviderLink.PRIMARY_LIVE,
        ),
        KrakenTickerLink(
            settings.endpoints.kraken_ws,
            pair=settings.asset.kraken_pair,
            kind=ProviderLink.SECONDARY_LIVE,
        ),
    ]
