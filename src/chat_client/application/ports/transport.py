from __future__ import annotations

from typing import AsyncIterator, Protocol

from chat_client.application.dto.protocol import ProtocolMessage


class TransportConnection(Protocol):
    async def send_text(self, data: str) -> None: ...

    def iter_text(self) -> AsyncIterator[str]:
        """Yield inbound text frames until the peer closes.

        Raises TransportError when the connection fails.
        """
        ...

    async def close(self) -> None: ...


class Transport(Protocol):
    async def connect(self, url: str) -> TransportConnection: ...


class MessageSender(Protocol):
    async def send(self, message: ProtocolMessage) -> bool: ...
