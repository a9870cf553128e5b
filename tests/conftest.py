"""Shared test fixtures for the Price Pulse test suite.

Provides a fixed clock origin, realistic settings and lots, and helpers
for building ``httpx.AsyncClient`` instances backed by ``MockTransport``
so no test touches the network.
"""

from __future__ import annotations

import datetime
from collections.abc import Callable

import httpx
import pytest

from Price_Pulse.models import CostBasisLot, LotConfig
from Price_Pulse.settings import AssetSettings, DashboardSettings

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture()
def t0() -> datetime.datetime:
    """A fixed UTC instant used as the origin of test timelines."""
    return datetime.datetime(2025, 3, 1, 12, 0, 0, tzinfo=datetime.UTC)


@pytest.fixture()
def sample_lot_configs() -> list[LotConfig]:
    """Two FIL acquisitions: one sized by quantity, one by USD."""
    return [
        LotConfig(price=4.0, qty=10.0, date="2024-11-02"),
        LotConfig(price=5.0, usd=25.0, date="2024-12-15"),
    ]


@pytest.fixture()
def sample_lots() -> list[CostBasisLot]:
    """Normalized lots: 10 FIL for $40 and 5 FIL for $25."""
    return [
        CostBasisLot(quantity=10.0, cost_usd=40.0, price=4.0, date="2024-11-02"),
        CostBasisLot(quantity=5.0, cost_usd=25.0, price=5.0, date="2024-12-15"),
    ]


@pytest.fixture()
def sample_settings(sample_lot_configs: list[LotConfig]) -> DashboardSettings:
    """Settings with lots, one address, and default thresholds."""
    return DashboardSettings(
        asset=AssetSettings(),
        addresses=["f1abcdefghijklmnopqrstuvwxyz"],
        lots=sample_lot_configs,
        stop_loss=2.0,
        take_profit=3.5,
    )


@pytest.fixture()
def mock_client() -> Callable[[Handler], httpx.AsyncClient]:
    """Factory for an AsyncClient whose requests are answered by *handler*."""

    def _build(handler: Handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _build
