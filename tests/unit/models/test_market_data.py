"""Tests for market data models and enums."""

from __future__ import annotations

import datetime

import pydantic
import pytest

from Price_Pulse.models import (
    LinkState,
    PriceDirection,
    PriceRange,
    PriceUpdate,
    ProviderLink,
    Sample,
    StatsWindow,
    TargetKind,
)


class TestSample:
    """Samples are immutable observations."""

    def test_frozen(self, t0: datetime.datetime) -> None:
        """Samples cannot be mutated."""
        sample = Sample(timestamp=t0, price=3.2)
        with pytest.raises(pydantic.ValidationError):
            sample.price = 3.3  # type: ignore[misc]

    def test_update_carries_source(self, t0: datetime.datetime) -> None:
        """A price update keeps the name of its source."""
        update = PriceUpdate(timestamp=t0, price=3.2, source="Coinbase WS")
        assert update.source == "Coinbase WS"


class TestRanges:
    """Empty ranges and stats default to None."""

    def test_price_range_defaults(self) -> None:
        """An empty range has no high or low."""
        assert PriceRange() == PriceRange(high=None, low=None)

    def test_stats_window_defaults(self) -> None:
        """An empty stats window has no values and no fetch time."""
        stats = StatsWindow()
        assert stats.high is None
        assert stats.fetched_at is None


class TestEnums:
    """StrEnum values are lowercase strings."""

    def test_values(self) -> None:
        """Enum members compare equal to their lowercase values."""
        assert PriceDirection.POSITIVE == "positive"
        assert ProviderLink.SECONDARY_LIVE == "secondary_live"
        assert LinkState.FAILED == "failed"
        assert TargetKind.STOP_LOSS == "stop_loss"

    def test_provider_link_members(self) -> None:
        """ProviderLink lists the chain positions in order."""
        assert [m.value for m in ProviderLink] == ["none", "primary_live", "secondary_live", "polling"]
