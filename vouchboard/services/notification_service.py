"""
vouchboard.services.notification_service — Best-effort vouch fan-out
=====================================================================

After a vouch mutation is persisted, the route publishes a
:class:`~vouchboard.engine.events.VouchEvent` here.  A background drain
task delivers each event to two optional targets:

1. The Discord webhook: ``{"embeds": [...]}`` built by
   :mod:`vouchboard.services.embeds`.
2. The sibling bot's leaderboard-update endpoint: a small JSON ping so it
   can refresh its pinned leaderboard message.

Every delivery failure is wrapped in :class:`NotificationError`, logged and
dropped.  Nothing is retried and nothing propagates back to the request.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

import httpx

from vouchboard.engine.events import VouchEvent, VouchEventKind
from vouchboard.errors import NotificationError
from vouchboard.services.embeds import build_vouch_created_embed, build_vouch_deleted_embed

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


def build_webhook_payload(event: VouchEvent) -> dict:
    if event.kind is VouchEventKind.CREATED:
        embed = build_vouch_created_embed(event.vouch, event.next_id)
    else:
        embed = build_vouch_deleted_embed(event.vouch, event.next_id)
    return {"embeds": [embed.to_dict()]}


def build_leaderboard_payload(event: VouchEvent) -> dict:
    return {
        "guildId": event.guild_id,
        "event": event.kind.value,
        "vouchId": event.vouch.id,
        "nextId": event.next_id,
        "timestamp": event.timestamp,
    }


class NotificationRelay:
    """Queue + drain task for outbound vouch notifications.

    ``publish`` never blocks and never raises; ``start``/``stop`` are
    called from the API lifespan.  ``deliver`` can be awaited directly.
    """

    def __init__(
        self,
        webhook_url: str | None = None,
        leaderboard_update_url: str | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.leaderboard_update_url = leaderboard_update_url
        self.timeout = timeout
        self._transport = transport
        self._queue: asyncio.Queue[VouchEvent] | None = None
        self._drain_task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    # -- producer side -----------------------------------------------------
    def publish(self, event: VouchEvent) -> None:
        """Hand *event* to the drain task.  Dropped (with a warning) if the
        relay isn't running."""
        if self._queue is None or not self.running:
            logger.warning(
                "Notification relay not running; dropping %s for vouch #%d",
                event.kind.value, event.vouch.id,
            )
            return
        self._queue.put_nowait(event)

    # -- delivery ----------------------------------------------------------
    async def _post(self, client: httpx.AsyncClient, target: str, url: str, payload: dict) -> None:
        try:
            resp = await client.post(url, json=payload)
        except httpx.HTTPError as exc:
            raise NotificationError(f"{target} request failed: {exc!r}") from exc
        if resp.is_error:
            raise NotificationError(f"{target} returned HTTP {resp.status_code}")

    async def deliver(self, event: VouchEvent) -> None:
        """Send *event* to every configured target.  Never raises
        :class:`NotificationError`."""
        targets = []
        if self.webhook_url:
            targets.append(("webhook", self.webhook_url, build_webhook_payload(event)))
        if self.leaderboard_update_url:
            targets.append(
                ("leaderboard update", self.leaderboard_update_url, build_leaderboard_payload(event))
            )
        if not targets:
            return

        transport = self._transport or httpx.AsyncHTTPTransport(retries=1)
        async with httpx.AsyncClient(timeout=self.timeout, transport=transport) as client:
            for target, url, payload in targets:
                try:
                    await self._post(client, target, url, payload)
                except NotificationError as exc:
                    logger.warning(
                        "Notification for vouch #%d (%s) not delivered: %s",
                        event.vouch.id, event.kind.value, exc.message,
                    )

    # -- lifecycle -----------------------------------------------------------
    def start(self) -> None:
        """Start the drain task on the running loop.  Idempotent."""
        if self.running:
            return
        self._queue = asyncio.Queue()

        async def _drain_loop() -> None:
            while True:
                event = await self._queue.get()
                try:
                    await self.deliver(event)
                except Exception:
                    logger.exception("Notification drain error")
                finally:
                    self._queue.task_done()

        self._drain_task = asyncio.get_running_loop().create_task(
            _drain_loop(), name="vouch-notify-drain"
        )

    async def join(self) -> None:
        """Wait until every published event has been handled."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        """Cancel the drain task.  Undelivered events are dropped."""
        if self._drain_task is None:
            return
        self._drain_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._drain_task
        self._drain_task = None
        self._queue = None
