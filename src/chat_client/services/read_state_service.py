from __future__ import annotations

from chat_client.application.dispatcher import EventBus
from chat_client.application.exceptions import ValidationError
from chat_client.application.ports.api import ChatApi
from chat_client.application.topics import CONVERSATION_MARKED_READ
from chat_client.domain.events.conversation_marked_read import ConversationMarkedRead


async def mark_read(
    identity: str,
    conversation_id: str,
    api: ChatApi,
    bus: EventBus,
) -> None:
    """Mark a conversation read on the server and announce it.

    Raises ValidationError for a pending conversation (no id yet) and
    RequestError when the server call fails; nothing is published in either
    case.
    """
    if not conversation_id:
        raise ValidationError("Conversation has no id yet")
    await api.mark_read(identity, conversation_id)
    bus.publish(
        CONVERSATION_MARKED_READ,
        ConversationMarkedRead(identity=identity, conversation_id=conversation_id),
    )
