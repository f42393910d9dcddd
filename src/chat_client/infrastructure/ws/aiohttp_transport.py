"""aiohttp-backed duplex transport."""
from __future__ import annotations

import logging
from typing import AsyncIterator

import aiohttp

from chat_client.application.exceptions import TransportError

logger = logging.getLogger(__name__)


class AiohttpConnection:
    def __init__(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        self._ws = ws

    async def send_text(self, data: str) -> None:
        try:
            await self._ws.send_str(data)
        except (aiohttp.ClientError, ConnectionError) as exc:
            raise TransportError(str(exc)) from exc

    async def iter_text(self) -> AsyncIterator[str]:
        while True:
            msg = await self._ws.receive()
            if msg.type == aiohttp.WSMsgType.TEXT:
                yield msg.data
            elif msg.type == aiohttp.WSMsgType.BINARY:
                yield msg.data.decode("utf-8", errors="replace")
            elif msg.type == aiohttp.WSMsgType.ERROR:
                raise TransportError(str(self._ws.exception() or "WebSocket error"))
            elif msg.type in (
                aiohttp.WSMsgType.CLOSE,
                aiohttp.WSMsgType.CLOSING,
                aiohttp.WSMsgType.CLOSED,
            ):
                return

    async def close(self) -> None:
        await self._ws.close()


class AiohttpTransport:
    """Implements application.ports.transport.Transport."""

    def __init__(self, session: aiohttp.ClientSession | None = None) -> None:
        self._session = session
        self._owns_session = session is None

    async def connect(self, url: str) -> AiohttpConnection:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        try:
            # autoping answers control-frame pings; chat-level pings come from ConnectionManager.
            ws = await self._session.ws_connect(url, autoping=True)
        except (aiohttp.ClientError, OSError) as exc:
            raise TransportError(f"Cannot connect to {url}: {exc}") from exc
        logger.debug("WS transport connected: %s", url)
        return AiohttpConnection(ws)

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
