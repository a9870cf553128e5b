"""StrEnum types for the live-feed domain.

Values are lowercase strings. Use enum members in business logic, never raw strings.
"""

from enum import StrEnum


class PriceDirection(StrEnum):
    """Tick-over-tick direction of the current price, used for coloring."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class ProviderLink(StrEnum):
    """Which link of the price source chain currently feeds the dashboard."""

    NONE = "none"
    PRIMARY_LIVE = "primary_live"
    SECONDARY_LIVE = "secondary_live"
    POLLING = "polling"


class LinkState(StrEnum):
    """Lifecycle of a single real-time stream link."""

    CONNECTING = "connecting"
    ACTIVE = "active"
    FAILED = "failed"


class TargetKind(StrEnum):
    """Price threshold kinds: exit on loss or exit on gain."""

    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
