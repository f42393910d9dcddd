"""Entrypoint: python -m chat_client

Signs in as CHAT_IDENTITY with CHAT_TOKEN and logs what arrives until
interrupted.
"""
from __future__ import annotations

import asyncio
import logging

from chat_client.app import create_client
from chat_client.application.dto.protocol import ChatMessage, MessageSent, ProtocolMessage
from chat_client.application.exceptions import RequestError
from chat_client.application.topics import CONNECTION_STATE_CHANGED, UNREAD_COUNT_CHANGED
from chat_client.config import settings
from chat_client.domain.events.connection_state_changed import ConnectionStateChanged
from chat_client.domain.events.unread_count_changed import UnreadCountChanged
from chat_client.infrastructure.auth.token_provider import StaticTokenProvider

logger = logging.getLogger("chat_client")


def _log_frame(message: ProtocolMessage) -> None:
    if isinstance(message, (ChatMessage, MessageSent)):
        m = message.data
        logger.info("[%s] %s -> %s: %s", m.conversation_id, m.sender_id, m.receiver_id, m.content)


def _log_unread(event: UnreadCountChanged) -> None:
    logger.info("Unread messages: %d", event.current)


def _log_state(event: ConnectionStateChanged) -> None:
    logger.info("Connection %s -> %s", event.previous, event.current)


async def run_listener(identity: str, token: str) -> None:
    async with create_client(StaticTokenProvider(token)) as client:
        await client.login(identity)
        client.frames.subscribe(_log_frame)
        client.bus.subscribe(UNREAD_COUNT_CHANGED, _log_unread)
        client.bus.subscribe(CONNECTION_STATE_CHANGED, _log_state)

        assert client.directory is not None
        try:
            conversations = await client.directory.load_conversations()
        except RequestError as exc:
            logger.error("Could not load conversations: %s", exc.detail)
        else:
            for conv in conversations:
                logger.info(
                    "%s (%s): %s [%d unread]",
                    conv.other_user_name or conv.other_user_id,
                    conv.conversation_id,
                    conv.last_message or "",
                    conv.unread_count,
                )
        logger.info("Unread messages: %d", client.unread.count)

        await asyncio.Event().wait()


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.CHAT_IDENTITY or not settings.CHAT_TOKEN:
        raise SystemExit("CHAT_IDENTITY and CHAT_TOKEN must be set")
    try:
        asyncio.run(run_listener(settings.CHAT_IDENTITY, settings.CHAT_TOKEN))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
