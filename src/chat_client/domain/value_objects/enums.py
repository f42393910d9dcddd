from __future__ import annotations

from enum import StrEnum


class ConnectionState(StrEnum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


class FrameType(StrEnum):
    PING = "ping"
    PONG = "pong"
    SEND_MESSAGE = "message"
    NEW_MESSAGE = "new_message"
    MESSAGE_SENT = "message_sent"
