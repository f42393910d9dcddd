"""End-to-end flows through ChatClient with in-memory collaborators."""
from __future__ import annotations

import pytest

from chat_client.app import ChatClient, create_client
from chat_client.config import Settings
from chat_client.domain.entities.message import Message
from chat_client.domain.value_objects.enums import ConnectionState
from chat_client.infrastructure.auth.token_provider import StaticTokenProvider
from tests.conftest import (
    FakeChatApi,
    FakeTransport,
    FakeUsersApi,
    frame,
    make_conversation,
    message_payload,
    settle,
)


def _settings() -> Settings:
    return Settings(
        CHAT_WS_URL="ws://chat.test",
        WS_HEARTBEAT_SECONDS=30,
        UNREAD_POLL_SECONDS=30,
        MESSAGE_HISTORY_LIMIT=50,
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def client(transport: FakeTransport, chat_api: FakeChatApi, users_api: FakeUsersApi) -> ChatClient:
    return ChatClient(
        transport=transport, chat_api=chat_api, users_api=users_api, settings=_settings(),
    )


async def _drain(client: ChatClient) -> None:
    await settle()
    if client.directory is not None:
        await client.directory.wait_idle()
    await client.unread.wait_idle()


@pytest.mark.asyncio
async def test_new_message_reaches_thread_directory_and_unread(client, transport, chat_api):
    chat_api.conversations["u1"] = [make_conversation(conversation_id="c1", other_user_id="u2")]
    await client.login("u1")
    assert transport.urls == ["ws://chat.test/ws/u1"]
    await client.directory.load_conversations()
    thread = client.open_thread()
    await thread.open(client.directory.get("c1"))

    payload = {
        "id": "m1",
        "conversation_id": "c1",
        "sender_id": "u2",
        "receiver_id": "u1",
        "content": "hi",
        "timestamp": 1700000000,
        "read": False,
    }
    chat_api.store_message("u2", "u1", "hi")
    transport.last.push(frame("new_message", payload))
    await _drain(client)

    assert thread.messages == [Message(**payload)]
    await client.directory.load_conversations()
    assert client.directory.get("c1").last_message == "hi"
    assert client.unread.count == 1
    await client.aclose()


@pytest.mark.asyncio
async def test_pending_conversation_promotion_without_duplicates(client, transport, chat_api):
    await client.login("u1")
    directory = client.directory
    pending = await directory.start_conversation("u3")
    assert pending.conversation_id == ""

    thread = client.open_thread()
    await thread.open(pending)
    await thread.send_optimistic("hello Ana")
    assert transport.last.sent_frames[-1] == {
        "message_type": "message",
        "data": {"receiver_id": "u3", "content": "hello Ana"},
    }

    # the server stores the message and echoes it back
    stored = chat_api.store_message("u1", "u3", "hello Ana")
    transport.last.push(frame("message_sent", message_payload(stored)))
    await _drain(client)

    assert thread.conversation.conversation_id == stored.conversation_id
    assert thread.pending == []
    conversations = await directory.load_conversations()
    assert [c.other_user_id for c in conversations].count("u3") == 1
    assert directory.find_by_peer("u3").conversation_id == stored.conversation_id
    await client.aclose()


@pytest.mark.asyncio
async def test_login_with_other_identity_replaces_session(client, transport):
    await client.login("u1")
    first_directory = client.directory
    first_socket = transport.last

    await client.login("u2")

    assert first_socket.closed is True
    assert client.directory is not first_directory
    assert client.directory.identity == "u2"
    assert client.connection.identity == "u2"
    assert client.unread.identity == "u2"
    await client.aclose()


@pytest.mark.asyncio
async def test_logout_tears_everything_down(client, transport, chat_api):
    await client.login("u1")
    thread = client.open_thread()

    await client.logout()

    assert client.connection.state is ConnectionState.IDLE
    assert client.unread.polling is False
    assert client.directory is None
    assert thread.conversation is None
    assert transport.last.closed is True
    assert len(client.frames) == 0
    with pytest.raises(RuntimeError):
        client.open_thread()


@pytest.mark.asyncio
async def test_profile_update_notification_refreshes_directory(client, chat_api):
    chat_api.conversations["u1"] = [make_conversation(conversation_id="c1", other_user_id="u2")]
    await client.login("u1")
    await client.directory.load_conversations()
    calls_before = len(chat_api.calls_to("list_conversations"))

    client.notify_profile_updated("u2", name="Marko J.")
    await _drain(client)

    assert len(chat_api.calls_to("list_conversations")) == calls_before + 1
    await client.aclose()


@pytest.mark.asyncio
async def test_missed_push_recovered_by_reopening(client, transport, chat_api):
    chat_api.conversations["u1"] = [make_conversation(conversation_id="c1", other_user_id="u2")]
    await client.login("u1")
    thread = client.open_thread()
    await thread.open(make_conversation(conversation_id="c1"))

    # connection drops; the message is stored but never pushed
    transport.last.drop()
    stored = chat_api.store_message("u2", "u1", "while you were away")
    await _drain(client)

    await thread.open(make_conversation(conversation_id="c1"))
    assert thread.messages[-1] == stored
    await client.aclose()


@pytest.mark.asyncio
async def test_create_client_wires_real_collaborators():
    async with create_client(StaticTokenProvider("token"), settings=_settings()) as client:
        assert client.identity is None
        assert client.connection.state is ConnectionState.IDLE
        assert client.unread.count == 0
