"""Price, balance, and stats providers plus alert delivery.

Re-exports all public service classes so consumers can import directly:
    from Price_Pulse.services import PriceSourceChain, BalanceRefresher
"""

from Price_Pulse.services.balances import (
    BalanceProvider,
    BalanceRefresher,
    FilfoxBalanceProvider,
    LotusRpcBalanceProvider,
    build_balance_providers,
    to_whole_units,
)
from Price_Pulse.services.notifications import AlertDispatcher, WebhookSink
from Price_Pulse.services.price_chain import PriceSourceChain, ProviderState
from Price_Pulse.services.price_polling import (
    CoinbaseSpotProvider,
    CoinGeckoProvider,
    KrakenTickerProvider,
    PollingAggregator,
    RestPriceProvider,
    build_price_providers,
)
from Price_Pulse.services.stats import StatsService
from Price_Pulse.services.stream_links import (
    CoinbaseTickerLink,
    KrakenTickerLink,
    StreamLink,
    build_stream_links,
)

__all__ = [
    # Price chain
    "PriceSourceChain",
    "ProviderState",
    "CoinbaseTickerLink",
    "KrakenTickerLink",
    "StreamLink",
    "build_stream_links",
    "CoinbaseSpotProvider",
    "CoinGeckoProvider",
    "KrakenTickerProvider",
    "PollingAggregator",
    "RestPriceProvider",
    "build_price_providers",
    # Balances
    "BalanceProvider",
    "BalanceRefresher",
    "FilfoxBalanceProvider",
    "LotusRpcBalanceProvider",
    "build_balance_providers",
    "to_whole_units",
    # Stats
    "StatsService",
    # Alerts
    "AlertDispatcher",
    "WebhookSink",
]
