"""View-model of the currently open conversation."""
from __future__ import annotations

import logging
import uuid
from dataclasses import replace

from chat_client.application.dispatcher import EventBus
from chat_client.application.dto.pending_send import PendingSend
from chat_client.application.dto.protocol import (
    ChatMessage,
    MessageSent,
    ProtocolMessage,
    SendMessage,
)
from chat_client.application.exceptions import RequestError, ValidationError
from chat_client.application.ports.api import ChatApi
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.transport import MessageSender
from chat_client.application.topics import FRAME_RECEIVED
from chat_client.config import settings
from chat_client.domain.entities.conversation import Conversation
from chat_client.domain.entities.message import Message
from chat_client.services import read_state_service

logger = logging.getLogger(__name__)


class MessageThread:
    """Ordered message log of one open conversation.

    Messages are appended at most once (keyed by id). Sent messages show up
    only when the server confirms them; until then they are tracked as
    PendingSend entries.
    """

    def __init__(
        self,
        identity: str,
        api: ChatApi,
        sender: MessageSender,
        bus: EventBus,
        *,
        history_limit: int = settings.MESSAGE_HISTORY_LIMIT,
        clock: Clock | None = None,
    ) -> None:
        self._identity = identity
        self._api = api
        self._sender = sender
        self._bus = bus
        self._history_limit = history_limit
        self._clock = clock or SystemClock()

        self._conversation: Conversation | None = None
        self._messages: list[Message] = []
        self._seen: set[str] = set()
        self._pending: list[PendingSend] = []
        self._generation = 0
        self._bus.subscribe(FRAME_RECEIVED, self._on_frame)

    @property
    def conversation(self) -> Conversation | None:
        return self._conversation

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def pending(self) -> list[PendingSend]:
        return list(self._pending)

    async def open(self, conversation: Conversation) -> list[Message]:
        """Show ``conversation`` and load its recent history.

        When another conversation is opened (or the view closed) before the
        history arrives, the fetched messages are returned but not applied.
        """
        self._generation += 1
        generation = self._generation
        self._conversation = conversation
        self._messages = []
        self._seen = set()
        self._pending = []

        if conversation.is_pending:
            return []

        cid = conversation.conversation_id
        history = await self._api.list_messages(
            self._identity, cid, limit=self._history_limit,
        )
        history = sorted(history, key=lambda m: m.timestamp)
        if generation != self._generation:
            logger.debug("Ignoring history of %s, view has moved on", cid)
            return history

        # Pushes that arrived while the history was loading stay in the log.
        history_ids = {m.id for m in history}
        live = [m for m in self._messages if m.id not in history_ids]
        self._messages = []
        self._seen = set()
        for message in [*history, *live]:
            self._append(message)

        try:
            await read_state_service.mark_read(self._identity, cid, self._api, self._bus)
        except RequestError as exc:
            logger.warning("Could not mark %s read: %s", cid, exc.detail)
        return self.messages

    def close(self) -> None:
        self._generation += 1
        self._conversation = None
        self._messages = []
        self._seen = set()
        self._pending = []

    def dispose(self) -> None:
        self.close()
        self._bus.unsubscribe(FRAME_RECEIVED, self._on_frame)

    def append_incoming(self, message: Message) -> bool:
        conv = self._conversation
        if conv is None or not message.conversation_id:
            return False

        if conv.is_pending:
            if message.peer_of(self._identity) != conv.other_user_id:
                return False
            self._conversation = replace(conv, conversation_id=message.conversation_id)
            logger.info(
                "Conversation with %s promoted to %s",
                conv.other_user_id,
                message.conversation_id,
            )
        elif message.conversation_id != conv.conversation_id:
            return False

        if message.sender_id == self._identity:
            self._settle_pending(message)
        return self._append(message)

    async def send_optimistic(self, content: str) -> PendingSend:
        conv = self._require_conversation(content)
        pending = PendingSend(
            nonce=uuid.uuid4().hex,
            receiver_id=conv.other_user_id,
            content=content,
            created_at=self._clock.now(),
        )
        delivered = await self._sender.send(
            SendMessage(receiver_id=conv.other_user_id, content=content),
        )
        if not delivered:
            return replace(pending, delivered=False)
        self._pending.append(pending)
        return pending

    async def send(self, content: str) -> Message:
        """Send through REST and show the stored message right away."""
        conv = self._require_conversation(content)
        generation = self._generation
        message = await self._api.send_message(self._identity, conv.other_user_id, content)
        if generation == self._generation:
            self.append_incoming(message)
        return message

    def _require_conversation(self, content: str) -> Conversation:
        if self._conversation is None:
            raise ValidationError("No conversation is open")
        if not content.strip():
            raise ValidationError("Message content is empty")
        return self._conversation

    def _append(self, message: Message) -> bool:
        if message.id in self._seen:
            logger.debug("Skipping duplicate message %s", message.id)
            return False
        self._seen.add(message.id)
        self._messages.append(message)
        return True

    def _settle_pending(self, message: Message) -> None:
        for i, pending in enumerate(self._pending):
            if pending.receiver_id == message.receiver_id and pending.content == message.content:
                del self._pending[i]
                return

    def _on_frame(self, frame: ProtocolMessage) -> None:
        if isinstance(frame, (ChatMessage, MessageSent)):
            self.append_incoming(frame.data)
