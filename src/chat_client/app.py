from __future__ import annotations

import logging
from types import TracebackType

import httpx

from chat_client.application.dispatcher import Dispatcher, EventBus
from chat_client.application.dto.protocol import ProtocolMessage
from chat_client.application.ports.api import ChatApi, UsersApi
from chat_client.application.ports.auth import TokenProvider
from chat_client.application.ports.clock import Clock
from chat_client.application.ports.transport import Transport
from chat_client.application.topics import FRAME_RECEIVED, PROFILE_UPDATED
from chat_client.config import Settings, settings as default_settings
from chat_client.domain.events.profile_updated import ProfileUpdated
from chat_client.infrastructure.http.chat_api import HttpChatApi
from chat_client.infrastructure.http.users_api import HttpUsersApi
from chat_client.infrastructure.ws.aiohttp_transport import AiohttpTransport
from chat_client.infrastructure.ws.connection import ConnectionManager
from chat_client.services.conversation_directory import ConversationDirectory
from chat_client.services.message_thread import MessageThread
from chat_client.services.unread_aggregator import UnreadAggregator

logger = logging.getLogger(__name__)


class ChatClient:
    """Ties the messaging components to the signed-in identity.

    Login creates the per-identity directory and starts the connection and
    the unread poll; logout closes the connection, stops the poll and clears
    every subscription.
    """

    def __init__(
        self,
        *,
        transport: Transport,
        chat_api: ChatApi,
        users_api: UsersApi,
        settings: Settings = default_settings,
        clock: Clock | None = None,
        resources: list[object] | None = None,
    ) -> None:
        self._settings = settings
        self._chat_api = chat_api
        self._users_api = users_api
        self._clock = clock
        self._resources = resources or []
        self.bus = EventBus()
        self.connection = ConnectionManager(
            transport,
            self.bus,
            url_for=settings.ws_url_for,
            heartbeat_seconds=settings.WS_HEARTBEAT_SECONDS,
            base_delay=settings.WS_RECONNECT_BASE_DELAY,
            max_attempts=settings.WS_RECONNECT_MAX_ATTEMPTS,
        )
        self.unread = UnreadAggregator(
            chat_api, self.bus, poll_seconds=settings.UNREAD_POLL_SECONDS,
        )
        self.directory: ConversationDirectory | None = None
        self._threads: list[MessageThread] = []
        self._identity: str | None = None

    @property
    def identity(self) -> str | None:
        return self._identity

    @property
    def frames(self) -> Dispatcher[ProtocolMessage]:
        return self.bus.dispatcher(FRAME_RECEIVED)

    async def login(self, identity: str) -> None:
        if identity == self._identity:
            await self.connection.connect(identity)
            return
        if self._identity is not None:
            await self.logout()

        self._identity = identity
        self.directory = ConversationDirectory(
            identity, self._chat_api, self._users_api, self.bus,
        )
        self.directory.attach()
        await self.connection.connect(identity)
        await self.unread.set_identity(identity)
        logger.info("Chat session started for %s", identity)

    async def logout(self) -> None:
        identity = self._identity
        if identity is None:
            return
        for thread in self._threads:
            thread.dispose()
        self._threads.clear()
        if self.directory is not None:
            await self.directory.detach()
            self.directory = None
        await self.unread.set_identity(None)
        await self.connection.disconnect()
        self.bus.clear()
        self._identity = None
        logger.info("Chat session ended for %s", identity)

    def open_thread(self) -> MessageThread:
        if self._identity is None:
            raise RuntimeError("open_thread() requires a signed-in identity")
        thread = MessageThread(
            self._identity,
            self._chat_api,
            self.connection,
            self.bus,
            history_limit=self._settings.MESSAGE_HISTORY_LIMIT,
            clock=self._clock,
        )
        self._threads.append(thread)
        return thread

    def close_thread(self, thread: MessageThread) -> None:
        thread.dispose()
        if thread in self._threads:
            self._threads.remove(thread)

    def notify_profile_updated(
        self,
        user_id: str,
        *,
        name: str | None = None,
        email: str | None = None,
        role: str | None = None,
    ) -> None:
        self.bus.publish(
            PROFILE_UPDATED,
            ProfileUpdated(user_id=user_id, name=name, email=email, role=role),
        )

    async def aclose(self) -> None:
        await self.logout()
        for resource in self._resources:
            await resource.aclose()  # type: ignore[attr-defined]

    async def __aenter__(self) -> ChatClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def create_client(
    tokens: TokenProvider,
    settings: Settings = default_settings,
) -> ChatClient:
    timeout = httpx.Timeout(settings.HTTP_TIMEOUT_SECONDS)
    chat_http = httpx.AsyncClient(base_url=settings.CHAT_API_URL, timeout=timeout)
    users_http = httpx.AsyncClient(base_url=settings.USERS_API_URL, timeout=timeout)
    transport = AiohttpTransport()
    return ChatClient(
        transport=transport,
        chat_api=HttpChatApi(chat_http, tokens),
        users_api=HttpUsersApi(users_http, tokens),
        settings=settings,
        resources=[chat_http, users_http, transport],
    )
