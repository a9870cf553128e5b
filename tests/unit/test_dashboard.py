"""Tests for the dashboard runtime: tick, refreshers, and lifecycle.

Network collaborators are mocked; the price chain is real but never
reaches a socket because its links fail to connect and its poller is mocked.
"""

from __future__ import annotations

import asyncio
import datetime
from contextlib import AbstractAsyncContextManager
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from Price_Pulse.dashboard import Dashboard
from Price_Pulse.models import MetricsSnapshot, PriceUpdate, ProviderLink, StatsWindow, TargetKind
from Price_Pulse.services.balances import BalanceRefresher
from Price_Pulse.services.notifications import AlertDispatcher
from Price_Pulse.services.price_chain import PriceSourceChain, StreamConnection
from Price_Pulse.services.price_polling import PollingAggregator
from Price_Pulse.services.stats import StatsService
from Price_Pulse.services.stream_links import build_stream_links
from Price_Pulse.settings import DashboardSettings


def _refused(url: str) -> AbstractAsyncContextManager[StreamConnection]:
    raise OSError(f"refused: {url}")


async def _poll_forever(emit: object) -> None:
    await asyncio.Event().wait()


def _poller() -> MagicMock:
    poller = MagicMock(spec=PollingAggregator)
    poller.interval = 5.0
    poller.run = AsyncMock(side_effect=_poll_forever)
    poller.poll_once = AsyncMock(return_value=None)
    return poller


def _live_tasks(name: str) -> list[asyncio.Task[object]]:
    return [t for t in asyncio.all_tasks() if t.get_name() == name and not t.done()]


async def _settle(steps: int = 10) -> None:
    for _ in range(steps):
        await asyncio.sleep(0)


class Harness:
    """A dashboard plus handles on its mocked collaborators."""

    def __init__(self, settings: DashboardSettings) -> None:
        self.poller = _poller()
        self.chain = PriceSourceChain(build_stream_links(settings), self.poller, connect=_refused)
        self.balances = MagicMock(spec=BalanceRefresher)
        self.balances.refresh = AsyncMock(return_value=None)
        self.stats = MagicMock(spec=StatsService)
        self.stats.refresh = AsyncMock(side_effect=lambda current: current)
        self.notify = MagicMock()
        self.render = MagicMock()
        self.dispatcher = AlertDispatcher(self.notify)
        self.dashboard = Dashboard(
            settings,
            chain=self.chain,
            balances=self.balances,
            stats=self.stats,
            dispatcher=self.dispatcher,
            render=self.render,
        )

    def push(self, price: float, when: datetime.datetime, source: str = "Coinbase WS") -> None:
        self.chain.updates.put_nowait(PriceUpdate(timestamp=when, price=price, source=source))


@pytest.fixture()
def harness(sample_settings: DashboardSettings) -> Harness:
    return Harness(sample_settings)


# ---------------------------------------------------------------------------
# tick
# ---------------------------------------------------------------------------


class TestTick:
    """One synchronous render/evaluate cycle."""

    def test_drains_updates_in_order(self, harness: Harness, t0: datetime.datetime) -> None:
        """Queued updates are applied oldest first before computing."""
        harness.push(3.0, t0)
        harness.push(3.3, t0 + datetime.timedelta(seconds=1))

        snapshot = harness.dashboard.tick(now=t0 + datetime.timedelta(seconds=1))

        assert snapshot.price == pytest.approx(3.3)
        assert len(harness.dashboard.state.buffer) == 2
        assert harness.dashboard.state.current_price == pytest.approx(3.3)
        assert snapshot.delta_1h_pct == pytest.approx(10.0)

    def test_renders_with_status_note(self, harness: Harness, t0: datetime.datetime) -> None:
        """The render sink gets the snapshot and the live source."""
        harness.dashboard.state.provider.vendor = "Kraken WS"
        harness.push(3.0, t0)

        harness.dashboard.tick(now=t0)

        harness.render.assert_called_once()
        snapshot, note = harness.render.call_args.args
        assert isinstance(snapshot, MetricsSnapshot)
        assert note == "Live (Kraken WS)"

    def test_status_note_without_vendor(self, harness: Harness) -> None:
        """Before any link is active the note is just Live."""
        assert harness.dashboard.status_note() == "Live"

    def test_recent_notice_shown_then_expires(self, harness: Harness, t0: datetime.datetime) -> None:
        """A chain notice shows for a few seconds, then the live source returns."""
        provider = harness.dashboard.state.provider
        provider.vendor = "REST"
        provider.notice = "Disconnected (Kraken WS). Falling back to REST…"
        provider.notice_at = t0

        assert harness.dashboard.status_note(t0 + datetime.timedelta(seconds=2)) == provider.notice
        assert harness.dashboard.status_note(t0 + datetime.timedelta(seconds=10)) == "Live (REST)"

    def test_position_from_lots(self, harness: Harness, t0: datetime.datetime) -> None:
        """Without an on-chain quantity the lots size the position."""
        harness.push(5.0, t0)
        snapshot = harness.dashboard.tick(now=t0)
        assert snapshot.position.total_quantity == pytest.approx(15.0)
        assert snapshot.pnl_usd == pytest.approx(10.0)

    def test_no_price_yet(self, harness: Harness, t0: datetime.datetime) -> None:
        """No price renders an empty snapshot and fires nothing."""
        snapshot = harness.dashboard.tick(now=t0)
        assert snapshot.price is None
        harness.notify.assert_not_called()

    def test_stop_loss_alert_respects_cooldown(self, harness: Harness, t0: datetime.datetime) -> None:
        """A stop-loss alert fires once and then waits out the cooldown."""
        harness.push(1.5, t0)
        harness.dashboard.tick(now=t0)
        harness.push(1.4, t0 + datetime.timedelta(minutes=5))
        harness.dashboard.tick(now=t0 + datetime.timedelta(minutes=5))

        harness.notify.assert_called_once()
        title, body = harness.notify.call_args.args
        assert title == "FIL Target Alert"
        assert "$1.50" in body
        assert harness.dashboard.state.alert.last_fired_at == t0

    def test_targets_in_snapshot(self, harness: Harness, t0: datetime.datetime) -> None:
        """Both target distances appear in the snapshot."""
        harness.push(3.2, t0)
        snapshot = harness.dashboard.tick(now=t0)
        assert [t.kind for t in snapshot.targets] == [TargetKind.TAKE_PROFIT, TargetKind.STOP_LOSS]


# ---------------------------------------------------------------------------
# Refreshers
# ---------------------------------------------------------------------------


class TestRefreshers:
    """Cached quantity and stats feed the next tick."""

    @pytest.mark.asyncio()
    async def test_onchain_quantity_overrides_lots(self, harness: Harness, t0: datetime.datetime) -> None:
        """A refreshed on-chain quantity sizes the next tick."""
        harness.balances.refresh.return_value = 20.0
        assert await harness.dashboard.refresh_quantity() == pytest.approx(20.0)

        harness.push(5.0, t0)
        snapshot = harness.dashboard.tick(now=t0)

        assert snapshot.position.total_quantity == pytest.approx(20.0)
        assert snapshot.position.uses_live_quantity is True
        assert snapshot.position_value == pytest.approx(100.0)

    @pytest.mark.asyncio()
    async def test_stats_window_used(self, harness: Harness, t0: datetime.datetime) -> None:
        """A refreshed stats window feeds the 24h range."""
        window = StatsWindow(high=3.9, low=2.7, fetched_at=t0)
        harness.stats.refresh.side_effect = None
        harness.stats.refresh.return_value = window

        await harness.dashboard.refresh_stats()
        harness.push(3.0, t0)
        snapshot = harness.dashboard.tick(now=t0)

        assert snapshot.high_24h == pytest.approx(3.9)
        assert snapshot.low_24h == pytest.approx(2.7)

    @pytest.mark.asyncio()
    async def test_prime_fills_caches(self, harness: Harness, t0: datetime.datetime) -> None:
        """prime() polls once and refreshes quantity and stats."""
        harness.poller.poll_once.return_value = PriceUpdate(timestamp=t0, price=3.1, source="kraken")

        await harness.dashboard.prime()
        snapshot = harness.dashboard.tick(now=t0)

        assert snapshot.price == pytest.approx(3.1)
        harness.balances.refresh.assert_awaited_once()
        harness.stats.refresh.assert_awaited_once()


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    """run() drives the loops until cancelled, then cleans up."""

    @pytest.mark.asyncio()
    async def test_run_and_cancel(self, sample_settings: DashboardSettings) -> None:
        """run() drives every loop until cancelled, then stops the chain."""
        settings = sample_settings.model_copy(
            update={
                "render_interval_seconds": 0.01,
                "quantity_refresh_seconds": 0.01,
                "stats_refresh_seconds": 0.01,
            }
        )
        harness = Harness(settings)

        task = asyncio.create_task(harness.dashboard.run())
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert harness.render.call_count >= 1
        harness.balances.refresh.assert_awaited()
        harness.stats.refresh.assert_awaited()
        assert not harness.chain.running
        # Both links refused, so the chain fell through to polling
        assert harness.dashboard.state.provider.active_link == ProviderLink.POLLING

    @pytest.mark.asyncio()
    async def test_chain_failure_ends_run_and_still_drains(self, harness: Harness) -> None:
        """A dead price chain ends run(); shutdown still flushes pending alerts."""
        harness.poller.run.side_effect = RuntimeError("poller bug")
        harness.dispatcher.drain = AsyncMock()  # type: ignore[method-assign]

        with pytest.raises(RuntimeError, match="poller bug"):
            await asyncio.wait_for(harness.dashboard.run(), timeout=1.0)

        harness.dispatcher.drain.assert_awaited_once()
        assert not harness.chain.running
        assert _live_tasks("render-tick") == []

    @pytest.mark.asyncio()
    async def test_restart_keeps_one_of_each_loop(self, harness: Harness) -> None:
        """Starting twice cancels the first chain and loops before replacing them."""
        harness.dashboard.start()
        await _settle()
        harness.dashboard.start()
        await _settle()

        for name in ("price-source-chain", "quantity-refresh", "stats-refresh", "render-tick"):
            assert len(_live_tasks(name)) == 1, name
        assert harness.poller.run.await_count == 2

        await harness.dashboard.stop()
        assert _live_tasks("render-tick") == []
        assert _live_tasks("price-source-chain") == []


class TestFromSettings:
    """Wiring from settings alone."""

    @pytest.mark.asyncio()
    async def test_builds(self, sample_settings: DashboardSettings) -> None:
        """from_settings wires one shared provider state."""
        async with httpx.AsyncClient() as client:
            dashboard = Dashboard.from_settings(sample_settings, client=client)
        assert dashboard.state.buffer.capacity == sample_settings.buffer_capacity
        assert dashboard.chain.state is dashboard.state.provider
        assert dashboard.status_note() == "Live"
