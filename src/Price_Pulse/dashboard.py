"""Dashboard runtime: owned state, periodic loops, and the render tick.

One asyncio event loop drives everything. The price source chain runs as
its own task and queues price updates; two refresh loops keep the on-chain
quantity and the 24h stats current; the render loop calls ``tick()`` on a
fixed cadence. ``tick()`` is synchronous and never awaits network I/O: it
drains queued updates into the sample buffer, computes a snapshot from
cached state, evaluates alerts, and hands the snapshot to the render sink.
"""

from __future__ import annotations

import asyncio
import contextlib
import datetime
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import httpx

from Price_Pulse.analysis.alerts import AlertEvaluator, AlertState
from Price_Pulse.analysis.metrics import compute_snapshot
from Price_Pulse.analysis.position import compute_position, normalize_lots
from Price_Pulse.analysis.sample_buffer import SampleBuffer
from Price_Pulse.models.market_data import StatsWindow
from Price_Pulse.models.portfolio import CostBasisLot
from Price_Pulse.models.snapshot import MetricsSnapshot
from Price_Pulse.services.balances import BalanceRefresher, build_balance_providers
from Price_Pulse.services.notifications import AlertDispatcher, NotifySink, WebhookSink
from Price_Pulse.services.price_chain import ConnectFn, PriceSourceChain, ProviderState
from Price_Pulse.services.price_polling import PollingAggregator, build_price_providers
from Price_Pulse.services.stats import StatsService
from Price_Pulse.services.stream_links import build_stream_links
from Price_Pulse.settings import DashboardSettings

logger = logging.getLogger(__name__)

RenderSink = Callable[[MetricsSnapshot, str], None]

NOTICE_DISPLAY: datetime.timedelta = datetime.timedelta(seconds=5)


@dataclass
class DashboardState:
    """All mutable state of a run, owned by one ``Dashboard``.

    Nothing here survives a restart.
    """

    buffer: SampleBuffer
    provider: ProviderState = field(default_factory=ProviderState)
    alert: AlertState = field(default_factory=AlertState)
    current_price: float | None = None
    quantity: float | None = None
    stats: StatsWindow | None = None


async def _every(
    interval: float,
    action: Callable[[], Awaitable[object]],
    *,
    name: str,
) -> None:
    """Run *action* now and then every *interval* seconds, forever."""
    while True:
        try:
            await action()
        except Exception:
            logger.exception("%s loop iteration failed", name)
        await asyncio.sleep(interval)


class Dashboard:
    """Wire the price chain, refreshers, and evaluators around one state object.

    Usage::

        async with httpx.AsyncClient() as client:
            dashboard = Dashboard.from_settings(settings, client=client, render=view.update)
            await dashboard.run()
    """

    def __init__(
        self,
        settings: DashboardSettings,
        *,
        chain: PriceSourceChain,
        balances: BalanceRefresher,
        stats: StatsService,
        dispatcher: AlertDispatcher,
        render: RenderSink | None = None,
        state: DashboardState | None = None,
    ) -> None:
        self._settings = settings
        self.state = state or DashboardState(
            buffer=SampleBuffer(settings.buffer_capacity),
            provider=chain.state,
        )
        self.chain = chain
        self.chain.state = self.state.provider
        self._balances = balances
        self._stats = stats
        self._dispatcher = dispatcher
        self._render = render
        self._lots: list[CostBasisLot] = normalize_lots(settings.lots)
        self._alerts = AlertEvaluator(
            symbol=settings.asset.symbol,
            stop_loss=settings.stop_loss,
            take_profit=settings.take_profit,
            cooldown=datetime.timedelta(minutes=settings.alert_cooldown_minutes),
            enabled=settings.alerts_enabled,
            state=self.state.alert,
        )
        self._tasks: list[asyncio.Task[None]] = []
        self._chain_task: asyncio.Task[None] | None = None

        if not self._lots:
            logger.warning("No valid cost-basis lots configured; P&L will be unavailable")

    @classmethod
    def from_settings(
        cls,
        settings: DashboardSettings,
        *,
        client: httpx.AsyncClient,
        render: RenderSink | None = None,
        notify: NotifySink | None = None,
        connect: ConnectFn | None = None,
    ) -> Dashboard:
        """Build every provider from *settings*, sharing one HTTP client."""
        poller = PollingAggregator(
            build_price_providers(settings, client),
            interval=settings.poll_interval_seconds,
        )
        chain_kwargs = {"connect": connect} if connect is not None else {}
        chain = PriceSourceChain(build_stream_links(settings), poller, **chain_kwargs)
        balances = BalanceRefresher(
            settings.addresses,
            build_balance_providers(settings, client),
            enabled=settings.use_onchain_balance,
        )
        stats = StatsService(
            client,
            url=settings.endpoints.coinbase_stats,
            product=settings.asset.coinbase_product,
        )
        webhook = WebhookSink(client, settings.webhook_url) if settings.webhook_url else None
        dispatcher = AlertDispatcher(notify=notify or _log_notification, webhook=webhook)
        return cls(
            settings,
            chain=chain,
            balances=balances,
            stats=stats,
            dispatcher=dispatcher,
            render=render,
        )

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def apply_pending_updates(self) -> int:
        """Move queued price updates into the buffer, oldest first."""
        updates = self.chain.drain()
        for update in updates:
            self.state.buffer.append(update.timestamp, update.price)
            self.state.current_price = update.price
        return len(updates)

    def status_note(self, now: datetime.datetime | None = None) -> str:
        """Recent chain notice (connect, disconnect, fallback), else the live source."""
        provider = self.state.provider
        now = now or datetime.datetime.now(datetime.UTC)
        if provider.notice_at is not None:
            age = now - provider.notice_at
            if datetime.timedelta(0) <= age < NOTICE_DISPLAY:
                return provider.notice
        return f"Live ({provider.vendor})" if provider.vendor else "Live"

    def tick(self, now: datetime.datetime | None = None) -> MetricsSnapshot:
        """One render/evaluate cycle over already-cached state."""
        now = now or datetime.datetime.now(datetime.UTC)
        self.apply_pending_updates()

        position = compute_position(self._lots, self.state.quantity)
        snapshot = compute_snapshot(
            self.state.current_price,
            self.state.buffer,
            position,
            self.state.stats,
            stop_loss=self._settings.stop_loss,
            take_profit=self._settings.take_profit,
            now=now,
        )

        event = self._alerts.evaluate(snapshot.price, now=now)
        if event is not None:
            self._dispatcher.dispatch(event)

        if self._render is not None:
            self._render(snapshot, self.status_note(now))
        return snapshot

    # ------------------------------------------------------------------
    # Refreshers
    # ------------------------------------------------------------------

    async def refresh_quantity(self) -> float | None:
        self.state.quantity = await self._balances.refresh()
        return self.state.quantity

    async def refresh_stats(self) -> StatsWindow | None:
        self.state.stats = await self._stats.refresh(self.state.stats)
        return self.state.stats

    async def prime(self) -> None:
        """Fill every cache once without starting any loop (one-shot snapshots)."""
        await self.chain.poll_once()
        await self.refresh_quantity()
        await self.refresh_stats()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the price chain and all periodic loops. Idempotent restart."""
        self._cancel_loops()
        settings = self._settings
        self._chain_task = self.chain.start()
        self._tasks = [
            asyncio.create_task(
                _every(settings.quantity_refresh_seconds, self.refresh_quantity, name="quantity"),
                name="quantity-refresh",
            ),
            asyncio.create_task(
                _every(settings.stats_refresh_seconds, self.refresh_stats, name="stats"),
                name="stats-refresh",
            ),
            asyncio.create_task(self._render_loop(), name="render-tick"),
        ]
        logger.info(
            "Dashboard started: tick=%.1fs quantity=%.0fs stats=%.0fs",
            settings.render_interval_seconds,
            settings.quantity_refresh_seconds,
            settings.stats_refresh_seconds,
        )

    async def stop(self) -> None:
        """Cancel every loop, close the active link, and flush pending alerts."""
        tasks = self._cancel_loops()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._chain_task = None
        await self.chain.stop()
        await self._dispatcher.drain()
        logger.info("Dashboard stopped")

    async def run(self) -> None:
        """Run until cancelled, or until the price chain dies."""
        self.start()
        try:
            await asyncio.gather(self._chain_task, *self._tasks)
        finally:
            await self.stop()

    async def _render_loop(self) -> None:
        interval = self._settings.render_interval_seconds
        while True:
            try:
                self.tick()
            except Exception:
                logger.exception("Render tick failed")
            await asyncio.sleep(interval)

    def _cancel_loops(self) -> list[asyncio.Task[None]]:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        return tasks


def _log_notification(title: str, body: str) -> None:
    logger.warning("%s: %s", title, body)
