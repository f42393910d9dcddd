"""WebSocket frame envelope and codec."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ValidationError

from chat_client.application.dto.protocol import (
    ChatMessage,
    MessageSent,
    Ping,
    Pong,
    ProtocolMessage,
    SendMessage,
)
from chat_client.application.exceptions import ProtocolDecodeError
from chat_client.domain.value_objects.enums import FrameType
from chat_client.infrastructure.http.mappers import message_to_entity
from chat_client.infrastructure.http.schemas import MessageSchema


class WsFrame(BaseModel):
    message_type: str  # ping | pong | message | new_message | message_sent
    data: dict[str, Any] | None = None


def encode_frame(message: ProtocolMessage) -> str:
    data: dict[str, Any] | None = None
    if isinstance(message, SendMessage):
        data = {"receiver_id": message.receiver_id, "content": message.content}
    elif isinstance(message, (ChatMessage, MessageSent)):
        m = message.data
        data = MessageSchema(
            id=m.id,
            conversation_id=m.conversation_id,
            sender_id=m.sender_id,
            receiver_id=m.receiver_id,
            content=m.content,
            timestamp=m.timestamp,
            read=m.read,
        ).model_dump()
    frame = WsFrame(message_type=message.message_type.value, data=data)
    return frame.model_dump_json(exclude_none=True)


def decode_frame(raw: str | bytes) -> ProtocolMessage | None:
    """Decode one inbound frame.

    Returns None for frame types this client does not handle. Raises
    ProtocolDecodeError when the frame is not a valid envelope or a known
    frame carries an invalid payload.
    """
    try:
        frame = WsFrame.model_validate_json(raw)
    except ValidationError as exc:
        raise ProtocolDecodeError(f"Invalid frame: {exc.error_count()} error(s)") from exc

    if frame.message_type == FrameType.PING:
        return Ping()
    if frame.message_type == FrameType.PONG:
        return Pong()
    if frame.message_type in (FrameType.NEW_MESSAGE, FrameType.MESSAGE_SENT):
        if frame.data is None:
            raise ProtocolDecodeError(f"{frame.message_type} frame without data")
        try:
            message = message_to_entity(MessageSchema.model_validate(frame.data))
        except ValidationError as exc:
            raise ProtocolDecodeError(f"Invalid {frame.message_type} payload") from exc
        if frame.message_type == FrameType.NEW_MESSAGE:
            return ChatMessage(data=message)
        return MessageSent(data=message)
    return None
