from __future__ import annotations

from typing import Any


class ChatClientError(Exception):
    """Base client error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class TransportError(ChatClientError):
    """Connection-level failure. Consumed by the connection manager."""


class RequestError(ChatClientError):
    """A single REST call failed."""

    def __init__(self, detail: str = "", status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(detail)


class ProtocolDecodeError(ChatClientError):
    pass


class HandlerError(ChatClientError):
    """A subscriber raised while a message was being dispatched."""

    def __init__(self, handler: Any, original: BaseException) -> None:
        self.handler = handler
        self.original = original
        name = getattr(handler, "__qualname__", repr(handler))
        super().__init__(f"{name} failed: {original!r}")


class ValidationError(ChatClientError):
    pass
