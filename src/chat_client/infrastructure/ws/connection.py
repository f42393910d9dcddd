"""Client-side WebSocket connection manager."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from chat_client.application.dispatcher import Dispatcher, EventBus
from chat_client.application.dto.protocol import Ping, ProtocolMessage
from chat_client.application.exceptions import ProtocolDecodeError
from chat_client.application.ports.transport import Transport, TransportConnection
from chat_client.application.topics import CONNECTION_STATE_CHANGED, FRAME_RECEIVED
from chat_client.config import settings
from chat_client.domain.events.connection_state_changed import ConnectionStateChanged
from chat_client.domain.value_objects.enums import ConnectionState
from chat_client.infrastructure.ws.protocol import decode_frame, encode_frame

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay before reconnect ``attempt`` (1-based): base, 2*base, 4*base, ..."""
    return base_delay * (2 ** (attempt - 1))


class ConnectionManager:
    """Owns the single duplex connection of the signed-in identity.

    Transport failures never escape this class: they move the state machine
    to RECONNECTING, and after ``max_attempts`` failed reconnects to CLOSED.
    Decoded frames are fanned out through the FRAME_RECEIVED dispatcher.
    """

    def __init__(
        self,
        transport: Transport,
        bus: EventBus,
        *,
        url_for: Callable[[str], str] = settings.ws_url_for,
        heartbeat_seconds: float = settings.WS_HEARTBEAT_SECONDS,
        base_delay: float = settings.WS_RECONNECT_BASE_DELAY,
        max_attempts: int = settings.WS_RECONNECT_MAX_ATTEMPTS,
        sleep: Sleep = asyncio.sleep,
        heartbeat_sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._bus = bus
        self._frames: Dispatcher[ProtocolMessage] = bus.dispatcher(FRAME_RECEIVED)
        self._url_for = url_for
        self._heartbeat_seconds = heartbeat_seconds
        self._base_delay = base_delay
        self._max_attempts = max_attempts
        self._sleep = sleep
        self._heartbeat_sleep = heartbeat_sleep

        self._identity: str | None = None
        self._state = ConnectionState.IDLE
        self._attempts = 0
        self._connection: TransportConnection | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None

    @property
    def identity(self) -> str | None:
        return self._identity

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def is_open(self) -> bool:
        return self._state is ConnectionState.OPEN

    @property
    def dispatcher(self) -> Dispatcher[ProtocolMessage]:
        return self._frames

    async def connect(self, identity: str) -> None:
        if identity == self._identity and self._state in (
            ConnectionState.OPEN,
            ConnectionState.CONNECTING,
        ):
            logger.debug("WS already %s for %s", self._state, identity)
            return
        if self._identity is not None and identity != self._identity:
            logger.info("WS identity changed %s -> %s", self._identity, identity)
            await self.disconnect()

        await _cancel(self._reconnect_task)
        self._reconnect_task = None
        self._identity = identity
        self._attempts = 0
        await self._open()

    async def send(self, message: ProtocolMessage) -> bool:
        """Send one frame. Returns False when it could not be delivered."""
        conn = self._connection
        if self._state is not ConnectionState.OPEN or conn is None:
            logger.error(
                "WS not connected (state=%s), dropping %s frame",
                self._state,
                message.message_type,
            )
            return False
        try:
            await conn.send_text(encode_frame(message))
        except Exception as exc:
            logger.warning("WS send of %s failed: %s", message.message_type, exc)
            return False
        return True

    async def disconnect(self) -> None:
        identity = self._identity
        conn = self._connection
        self._identity = None
        self._attempts = 0
        self._connection = None
        self._set_state(ConnectionState.IDLE, identity)

        for task in (self._reconnect_task, self._heartbeat_task, self._reader_task):
            await _cancel(task)
        self._reconnect_task = self._heartbeat_task = self._reader_task = None

        if conn is not None:
            try:
                await conn.close()
            except Exception as exc:
                logger.debug("WS close failed: %s", exc)
        if identity is not None:
            logger.info("WS disconnected: %s", identity)

    async def _open(self) -> None:
        identity = self._identity
        if identity is None:
            return
        self._set_state(ConnectionState.CONNECTING)
        try:
            conn = await self._transport.connect(self._url_for(identity))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("WS connect failed for %s: %s", identity, exc)
            self._schedule_reconnect()
            return

        if identity != self._identity or self._state is not ConnectionState.CONNECTING:
            # disconnect() or another connect() won while we were connecting
            await conn.close()
            return

        self._connection = conn
        self._attempts = 0
        self._set_state(ConnectionState.OPEN)
        logger.info("WS connected: %s", identity)
        self._heartbeat_task = asyncio.create_task(
            self._heartbeat(conn), name=f"ws-heartbeat-{identity}",
        )
        self._reader_task = asyncio.create_task(
            self._read_loop(conn), name=f"ws-reader-{identity}",
        )

    async def _heartbeat(self, conn: TransportConnection) -> None:
        while True:
            await self._heartbeat_sleep(self._heartbeat_seconds)
            if self._state is not ConnectionState.OPEN or conn is not self._connection:
                logger.debug("WS heartbeat stopped")
                return
            await self.send(Ping())

    async def _read_loop(self, conn: TransportConnection) -> None:
        try:
            async for raw in conn.iter_text():
                self._handle_raw(raw)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("WS transport error for %s: %s", self._identity, exc)
        await self._on_closed(conn)

    def _handle_raw(self, raw: str) -> None:
        try:
            message = decode_frame(raw)
        except ProtocolDecodeError as exc:
            logger.warning("Dropping malformed frame: %s", exc.detail)
            return
        if message is None:
            logger.debug("Dropping frame of unknown type")
            return
        self._frames.dispatch(message)

    async def _on_closed(self, conn: TransportConnection) -> None:
        if conn is not self._connection:
            return
        self._connection = None
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            self._heartbeat_task = None
        self._reader_task = None
        logger.info("WS closed for %s", self._identity)
        if self._identity is None or self._state is not ConnectionState.OPEN:
            return
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._identity is None:
            return
        if self._attempts >= self._max_attempts:
            logger.error(
                "WS giving up on %s after %d reconnect attempts",
                self._identity,
                self._attempts,
            )
            self._set_state(ConnectionState.CLOSED)
            return
        self._attempts += 1
        delay = backoff_delay(self._attempts, self._base_delay)
        self._set_state(ConnectionState.RECONNECTING)
        logger.info(
            "WS reconnecting %s in %.1fs (attempt %d/%d)",
            self._identity,
            delay,
            self._attempts,
            self._max_attempts,
        )
        self._reconnect_task = asyncio.create_task(
            self._reconnect_after(delay), name=f"ws-reconnect-{self._identity}",
        )

    async def _reconnect_after(self, delay: float) -> None:
        await self._sleep(delay)
        if self._state is ConnectionState.RECONNECTING:
            await self._open()

    def _set_state(self, state: ConnectionState, identity: str | None = None) -> None:
        previous = self._state
        if previous is state:
            return
        self._state = state
        self._bus.publish(
            CONNECTION_STATE_CHANGED,
            ConnectionStateChanged(
                identity=identity or self._identity,
                previous=previous,
                current=state,
                attempt=self._attempts,
            ),
        )


async def _cancel(task: asyncio.Task[Any] | None) -> None:
    if task is None or task.done() or task is asyncio.current_task():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
