"""Single source of truth for the signed-in identity's unread count."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from chat_client.application.background import BackgroundTasks
from chat_client.application.dispatcher import EventBus
from chat_client.application.dto.protocol import ChatMessage, ProtocolMessage
from chat_client.application.exceptions import RequestError
from chat_client.application.ports.api import ChatApi
from chat_client.application.topics import (
    CONVERSATION_MARKED_READ,
    FRAME_RECEIVED,
    UNREAD_COUNT_CHANGED,
)
from chat_client.config import settings
from chat_client.domain.events.conversation_marked_read import ConversationMarkedRead
from chat_client.domain.events.unread_count_changed import UnreadCountChanged

logger = logging.getLogger(__name__)


class UnreadAggregator:
    """Keeps the unread count in line with the server.

    The REST endpoint is the only source of the value; push events and the
    poll timer only decide when to ask for it again.
    """

    def __init__(
        self,
        api: ChatApi,
        bus: EventBus,
        *,
        poll_seconds: float = settings.UNREAD_POLL_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._api = api
        self._bus = bus
        self._poll_seconds = poll_seconds
        self._sleep = sleep
        self._identity: str | None = None
        self._count = 0
        self._requested = 0
        self._applied = 0
        self._poll_task: asyncio.Task[None] | None = None
        self._tasks = BackgroundTasks("unread")

    @property
    def count(self) -> int:
        return self._count

    @property
    def identity(self) -> str | None:
        return self._identity

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def set_identity(self, identity: str | None) -> None:
        if identity == self._identity:
            return
        await self._stop()
        self._identity = identity
        if identity is None:
            self._set_count(0)
            return

        self._bus.subscribe(FRAME_RECEIVED, self._on_frame)
        self._bus.subscribe(CONVERSATION_MARKED_READ, self._on_marked_read)
        self._poll_task = asyncio.create_task(
            self._poll_loop(identity), name=f"unread-poll-{identity}",
        )
        try:
            await self.refresh()
        except RequestError as exc:
            logger.warning("Initial unread refresh failed for %s: %s", identity, exc.detail)

    async def refresh(self) -> int:
        identity = self._identity
        if identity is None:
            self._set_count(0)
            return 0

        self._requested += 1
        request_no = self._requested
        count = await self._api.get_unread_count(identity)
        if identity != self._identity:
            logger.debug("Discarding unread count for former identity %s", identity)
            return self._count
        if request_no < self._applied:
            return self._count
        self._applied = request_no
        self._set_count(count)
        return count

    def schedule_refresh(self) -> None:
        if self._identity is None:
            return
        self._tasks.spawn(self._refresh_logged(), "refresh")

    async def wait_idle(self) -> None:
        await self._tasks.wait()

    async def close(self) -> None:
        await self.set_identity(None)

    async def _stop(self) -> None:
        self._bus.unsubscribe(FRAME_RECEIVED, self._on_frame)
        self._bus.unsubscribe(CONVERSATION_MARKED_READ, self._on_marked_read)
        task, self._poll_task = self._poll_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._tasks.cancel_all()

    async def _poll_loop(self, identity: str) -> None:
        while identity == self._identity:
            await self._sleep(self._poll_seconds)
            await self._refresh_logged()

    async def _refresh_logged(self) -> None:
        try:
            await self.refresh()
        except RequestError as exc:
            logger.warning("Unread refresh failed: %s", exc.detail)

    def _set_count(self, count: int) -> None:
        previous = self._count
        self._count = count
        if previous != count:
            self._bus.publish(
                UNREAD_COUNT_CHANGED,
                UnreadCountChanged(identity=self._identity, previous=previous, current=count),
            )

    def _on_frame(self, message: ProtocolMessage) -> None:
        if isinstance(message, ChatMessage):
            self.schedule_refresh()

    def _on_marked_read(self, event: ConversationMarkedRead) -> None:
        if event.identity == self._identity:
            self.schedule_refresh()
