"""Alert delivery: local notification plus an optional chat webhook.

Both sinks are fire-and-forget. Dispatching never awaits network I/O, so it
is safe to call from the render tick; webhook failures are logged at debug
level and otherwise ignored.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

import httpx

from Price_Pulse.models.alerts import AlertEvent

logger = logging.getLogger(__name__)

NotifySink = Callable[[str, str], None]


class WebhookSink:
    """POST alert text to a Discord-style webhook (``{"content": ...}``)."""

    def __init__(self, client: httpx.AsyncClient, url: str) -> None:
        self._client = client
        self._url = url

    async def send(self, text: str) -> None:
        payload = {"content": text, "allowed_mentions": {"parse": []}}
        try:
            response = await self._client.post(self._url, json=payload)
        except httpx.HTTPError as exc:
            logger.debug("Webhook delivery failed: %s", exc)
            return
        if response.is_error:
            logger.debug("Webhook returned HTTP %d", response.status_code)


class AlertDispatcher:
    """Fan an alert out to the notification sink and the webhook.

    Usage::

        dispatcher = AlertDispatcher(notify=terminal.notify, webhook=WebhookSink(client, url))
        dispatcher.dispatch(event)
        await dispatcher.drain()  # on shutdown
    """

    def __init__(self, notify: NotifySink, webhook: WebhookSink | None = None) -> None:
        self._notify = notify
        self._webhook = webhook
        self._pending: set[asyncio.Task[None]] = set()

    def dispatch(self, event: AlertEvent) -> None:
        """Deliver *event* without blocking the caller."""
        try:
            self._notify(event.title, event.body)
        except Exception:
            logger.warning("Notification sink failed for %s", event.kind, exc_info=True)

        if self._webhook is not None:
            task = asyncio.create_task(self._webhook.send(event.body))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for in-flight webhook deliveries."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
