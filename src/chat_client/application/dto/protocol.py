"""Typed protocol messages exchanged over the duplex connection."""
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from chat_client.domain.entities.message import Message
from chat_client.domain.value_objects.enums import FrameType


@dataclass(frozen=True, slots=True)
class ProtocolMessage:
    message_type: ClassVar[FrameType]


@dataclass(frozen=True, slots=True)
class Ping(ProtocolMessage):
    message_type: ClassVar[FrameType] = FrameType.PING


@dataclass(frozen=True, slots=True)
class Pong(ProtocolMessage):
    message_type: ClassVar[FrameType] = FrameType.PONG


@dataclass(frozen=True, slots=True)
class SendMessage(ProtocolMessage):
    """Client → Server chat message."""

    message_type: ClassVar[FrameType] = FrameType.SEND_MESSAGE

    receiver_id: str
    content: str


@dataclass(frozen=True, slots=True)
class ChatMessage(ProtocolMessage):
    """Server → Client: a message addressed to the signed-in identity."""

    message_type: ClassVar[FrameType] = FrameType.NEW_MESSAGE

    data: Message


@dataclass(frozen=True, slots=True)
class MessageSent(ProtocolMessage):
    """Server → Client: confirmation of a message this identity sent."""

    message_type: ClassVar[FrameType] = FrameType.MESSAGE_SENT

    data: Message
