from __future__ import annotations

from chat_client.domain.entities.conversation import Conversation
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.peer import PeerProfile
from chat_client.infrastructure.http.schemas import (
    ConversationSchema,
    MessageSchema,
    UserSchema,
)


def message_to_entity(schema: MessageSchema) -> Message:
    return Message(
        id=schema.id,
        conversation_id=schema.conversation_id,
        sender_id=schema.sender_id,
        receiver_id=schema.receiver_id,
        content=schema.content,
        timestamp=schema.timestamp,
        read=schema.read,
    )


def conversation_to_entity(schema: ConversationSchema) -> Conversation:
    return Conversation(
        conversation_id=schema.conversation_id,
        other_user_id=schema.other_user_id,
        other_user_name=schema.other_user_name,
        other_user_email=schema.other_user_email,
        other_user_role=schema.other_user_role,
        last_message=schema.last_message,
        last_message_time=schema.last_message_time,
        unread_count=schema.unread_count,
    )


def user_to_peer(schema: UserSchema) -> PeerProfile:
    return PeerProfile(
        id=schema.id,
        name=schema.full_name or schema.email,
        email=schema.email,
        role=schema.role,
    )
