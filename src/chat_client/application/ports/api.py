from __future__ import annotations

from typing import Protocol

from chat_client.domain.entities.conversation import Conversation
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.peer import PeerProfile


class ChatApi(Protocol):
    async def list_conversations(self, identity: str) -> list[Conversation]: ...

    async def list_messages(
        self,
        identity: str,
        conversation_id: str,
        *,
        limit: int | None = None,
    ) -> list[Message]: ...

    async def send_message(
        self, identity: str, receiver_id: str, content: str,
    ) -> Message: ...

    async def mark_read(self, identity: str, conversation_id: str) -> None: ...

    async def get_unread_count(self, identity: str) -> int: ...


class UsersApi(Protocol):
    async def get_user(self, user_id: str) -> PeerProfile: ...
