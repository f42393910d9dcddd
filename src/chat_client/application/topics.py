from __future__ import annotations

from chat_client.application.dispatcher import Topic
from chat_client.application.dto.protocol import ProtocolMessage
from chat_client.domain.events.connection_state_changed import ConnectionStateChanged
from chat_client.domain.events.conversation_marked_read import ConversationMarkedRead
from chat_client.domain.events.profile_updated import ProfileUpdated
from chat_client.domain.events.unread_count_changed import UnreadCountChanged

FRAME_RECEIVED: Topic[ProtocolMessage] = Topic("chat.frame_received", ProtocolMessage)
CONNECTION_STATE_CHANGED: Topic[ConnectionStateChanged] = Topic(
    "chat.connection_state_changed", ConnectionStateChanged,
)
CONVERSATION_MARKED_READ: Topic[ConversationMarkedRead] = Topic(
    "chat.conversation_marked_read", ConversationMarkedRead,
)
UNREAD_COUNT_CHANGED: Topic[UnreadCountChanged] = Topic(
    "chat.unread_count_changed", UnreadCountChanged,
)
PROFILE_UPDATED: Topic[ProfileUpdated] = Topic("user.profile_updated", ProfileUpdated)
