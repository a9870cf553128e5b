"""Strict-priority failover chain of price sources.

The chain runs its stream links one after another. Each link goes
Connecting -> Active -> Failed; a failure (transport error, or any close,
clean or not) moves on to the next link. After the last stream link the
polling aggregator takes over for good, so "no price" is only ever a
transient state.

Links never touch shared state directly. Accepted prices become
``PriceUpdate`` messages on ``updates``; the dashboard tick drains that
queue before computing metrics, which keeps network events and ticks
strictly ordered.
"""

from __future__ import annotations

import asyncio
import datetime
import json
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Final, Protocol

import websockets
from websockets.exceptions import WebSocketException

from Price_Pulse.models.enums import LinkState, ProviderLink
from Price_Pulse.models.market_data import PriceUpdate
from Price_Pulse.services.price_polling import REST_VENDOR, PollingAggregator
from Price_Pulse.services.stream_links import StreamLink

logger = logging.getLogger(__name__)

POLLING_NOTICE: Final[str] = "REST polling"


class StreamConnection(Protocol):
    """The subset of a websocket client connection the chain relies on."""

    async def send(self, message: str) -> None: ...

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...


ConnectFn = Callable[[str], AbstractAsyncContextManager[StreamConnection]]


@dataclass
class ProviderState:
    """Which link feeds the dashboard, plus the latest notice for the status line."""

    active_link: ProviderLink = ProviderLink.NONE
    vendor: str | None = None
    link_state: LinkState | None = None
    last_price: float | None = None
    notice: str = "Starting…"
    notice_at: datetime.datetime | None = None


class PriceSourceChain:
    """Run stream links in priority order, then poll forever.

    Usage::

        chain = PriceSourceChain(build_stream_links(settings), aggregator)
        chain.start()
        ...
        for update in chain.drain():
            buffer.append(update.timestamp, update.price)
        ...
        await chain.stop()
    """

    def __init__(
        self,
        links: Sequence[StreamLink],
        poller: PollingAggregator,
        *,
        connect: ConnectFn = websockets.connect,
        state: ProviderState | None = None,
    ) -> None:
        self._links = list(links)
        self._poller = poller
        self._connect = connect
        self.state = state if state is not None else ProviderState()
        self.updates: asyncio.Queue[PriceUpdate] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task[None]:
        """Start (or restart) the chain from its first link.

        Any previous run is cancelled first so two chains never poll or
        stream at the same time.
        """
        if self._task is not None and not self._task.done():
            logger.info("Restarting price source chain")
            self._task.cancel()
        self._task = asyncio.create_task(self.run(), name="price-source-chain")
        return self._task

    async def stop(self) -> None:
        """Cancel the running chain and wait for its connection to close.

        A chain that already died is logged here rather than re-raised, so
        callers can go on with their own shutdown.
        """
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Price source chain failed")

    async def run(self) -> None:
        """Walk the chain. Returns only if cancelled."""
        for link in self._links:
            await self._run_link(link)
        await self._run_polling()

    async def poll_once(self) -> PriceUpdate | None:
        """Run a single REST polling round outside the chain and queue its result."""
        update = await self._poller.poll_once()
        if update is not None:
            self._enqueue(update)
        return update

    def drain(self) -> list[PriceUpdate]:
        """Take every queued update, oldest first, without waiting."""
        drained: list[PriceUpdate] = []
        while True:
            try:
                drained.append(self.updates.get_nowait())
            except asyncio.QueueEmpty:
                return drained

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    async def _run_link(self, link: StreamLink) -> None:
        """Drive one stream link until it fails. The connection is closed on return."""
        self.state.link_state = LinkState.CONNECTING
        logger.info("Connecting to %s at %s", link.vendor, link.url)
        try:
            async with self._connect(link.url) as connection:
                await connection.send(json.dumps(link.subscribe_message()))
                self._activate(link)
                async for raw in connection:
                    price = link.parse(raw)
                    if price is not None:
                        self._emit(price, link.vendor)
        except (WebSocketException, OSError, TimeoutError) as exc:
            logger.warning("%s transport error: %s", link.vendor, exc)

        self.state.link_state = LinkState.FAILED
        is_last = link is self._links[-1]
        suffix = "Falling back to REST…" if is_last else "Falling back…"
        self._notice(f"Disconnected ({link.vendor}). {suffix}")

    def _activate(self, link: StreamLink) -> None:
        self.state.active_link = link.kind
        self.state.vendor = link.vendor
        self.state.link_state = LinkState.ACTIVE
        self._notice(f"Connected ({link.vendor})")

    async def _run_polling(self) -> None:
        self.state.active_link = ProviderLink.POLLING
        self.state.vendor = REST_VENDOR
        self.state.link_state = None
        logger.info("Price source chain on terminal REST polling (every %.1fs)", self._poller.interval)
        await self._poller.run(self._accept_polled)

    def _accept_polled(self, update: PriceUpdate) -> None:
        self._enqueue(update)
        # Announce once per fallback; later polls leave the notice to expire
        if self.state.notice != POLLING_NOTICE:
            self._notice(POLLING_NOTICE)

    # ------------------------------------------------------------------
    # State updates
    # ------------------------------------------------------------------

    def _emit(self, price: float, source: str) -> None:
        self._enqueue(
            PriceUpdate(
                timestamp=datetime.datetime.now(datetime.UTC),
                price=price,
                source=source,
            )
        )

    def _enqueue(self, update: PriceUpdate) -> None:
        self.state.last_price = update.price
        self.updates.put_nowait(update)

    def _notice(self, text: str) -> None:
        if text != self.state.notice:
            logger.info(text)
        self.state.notice = text
        self.state.notice_at = datetime.datetime.now(datetime.UTC)
