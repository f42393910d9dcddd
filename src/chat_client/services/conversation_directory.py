"""Client-side list of the signed-in identity's conversations."""
from __future__ import annotations

import logging
from dataclasses import replace

from chat_client.application.background import BackgroundTasks
from chat_client.application.dispatcher import EventBus
from chat_client.application.dto.protocol import ChatMessage, MessageSent, ProtocolMessage
from chat_client.application.ports.api import ChatApi, UsersApi
from chat_client.application.topics import (
    CONVERSATION_MARKED_READ,
    FRAME_RECEIVED,
    PROFILE_UPDATED,
)
from chat_client.domain.entities.conversation import Conversation, sort_conversations
from chat_client.domain.events.conversation_marked_read import ConversationMarkedRead
from chat_client.domain.events.profile_updated import ProfileUpdated
from chat_client.services import read_state_service

logger = logging.getLogger(__name__)


class ConversationDirectory:
    """Snapshot of the conversation list, refreshed from REST.

    The server list always replaces the local one. The only rows kept across
    a reload are pending conversations whose peer the server does not know
    about yet.
    """

    def __init__(
        self,
        identity: str,
        api: ChatApi,
        users: UsersApi,
        bus: EventBus,
    ) -> None:
        self._identity = identity
        self._api = api
        self._users = users
        self._bus = bus
        self._conversations: list[Conversation] = []
        self._requested = 0
        self._applied = 0
        self._tasks = BackgroundTasks(f"directory-{identity}")
        self._attached = False

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def conversations(self) -> list[Conversation]:
        return sort_conversations(self._conversations)

    def get(self, conversation_id: str) -> Conversation | None:
        if not conversation_id:
            return None
        for conv in self._conversations:
            if conv.conversation_id == conversation_id:
                return conv
        return None

    def find_by_peer(self, peer_id: str) -> Conversation | None:
        for conv in self._conversations:
            if conv.other_user_id == peer_id:
                return conv
        return None

    def attach(self) -> None:
        if self._attached:
            return
        self._bus.subscribe(FRAME_RECEIVED, self._on_frame)
        self._bus.subscribe(CONVERSATION_MARKED_READ, self._on_marked_read)
        self._bus.subscribe(PROFILE_UPDATED, self._on_profile_updated)
        self._attached = True

    async def detach(self) -> None:
        self._bus.unsubscribe(FRAME_RECEIVED, self._on_frame)
        self._bus.unsubscribe(CONVERSATION_MARKED_READ, self._on_marked_read)
        self._bus.unsubscribe(PROFILE_UPDATED, self._on_profile_updated)
        self._attached = False
        await self._tasks.cancel_all()

    async def wait_idle(self) -> None:
        await self._tasks.wait()

    async def load_conversations(self) -> list[Conversation]:
        self._requested += 1
        request_no = self._requested
        fetched = await self._api.list_conversations(self._identity)
        if request_no < self._applied:
            logger.debug("Discarding stale conversation list #%d", request_no)
            return self.conversations
        self._applied = request_no

        known_peers = {c.other_user_id for c in fetched}
        pending = [
            c for c in self._conversations
            if c.is_pending and c.other_user_id not in known_peers
        ]
        self._conversations = list(fetched) + pending
        logger.debug(
            "Loaded %d conversations for %s (%d pending)",
            len(fetched), self._identity, len(pending),
        )
        return self.conversations

    async def start_conversation(self, peer_id: str) -> Conversation:
        existing = self.find_by_peer(peer_id)
        if existing is not None:
            return existing

        peer = await self._users.get_user(peer_id)
        # get_user may have raced with a reload that brought the peer in
        existing = self.find_by_peer(peer_id)
        if existing is not None:
            return existing

        conv = Conversation(
            conversation_id="",
            other_user_id=peer_id,
            other_user_name=peer.name,
            other_user_email=peer.email,
            other_user_role=peer.role,
            unread_count=0,
        )
        self._conversations.append(conv)
        logger.info("Started pending conversation with %s", peer_id)
        return conv

    async def mark_read(self, conversation_id: str) -> None:
        await read_state_service.mark_read(
            self._identity, conversation_id, self._api, self._bus,
        )
        self._zero_unread(conversation_id)

    def _zero_unread(self, conversation_id: str) -> None:
        self._conversations = [
            c.mark_read() if c.conversation_id == conversation_id else c
            for c in self._conversations
        ]

    def _on_frame(self, message: ProtocolMessage) -> None:
        if isinstance(message, (ChatMessage, MessageSent)):
            self._tasks.spawn(self.load_conversations(), "reload")

    def _on_marked_read(self, event: ConversationMarkedRead) -> None:
        if event.identity == self._identity:
            self._zero_unread(event.conversation_id)

    def _on_profile_updated(self, event: ProfileUpdated) -> None:
        conv = self.find_by_peer(event.user_id)
        if conv is None:
            return
        if not conv.is_pending:
            self._tasks.spawn(self.load_conversations(), "reload-profile")
            return
        # Pending rows exist only locally, so patch their display cache.
        patched = replace(
            conv,
            other_user_name=event.name or conv.other_user_name,
            other_user_email=event.email or conv.other_user_email,
            other_user_role=event.role or conv.other_user_role,
        )
        self._conversations = [patched if c is conv else c for c in self._conversations]
