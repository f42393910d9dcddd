"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import itertools
import json
from dataclasses import dataclass, field, replace
from typing import Any, AsyncIterator

import pytest

from chat_client.application.dispatcher import EventBus
from chat_client.application.exceptions import RequestError, TransportError
from chat_client.domain.entities.conversation import Conversation
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.peer import PeerProfile

_ids = itertools.count(1)


def make_message(
    *,
    message_id: str | None = None,
    conversation_id: str = "c1",
    sender_id: str = "u2",
    receiver_id: str = "u1",
    content: str = "hi",
    timestamp: int = 1700000000,
    read: bool = False,
) -> Message:
    return Message(
        id=message_id or f"m{next(_ids)}",
        conversation_id=conversation_id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=content,
        timestamp=timestamp,
        read=read,
    )


def make_conversation(
    *,
    conversation_id: str = "c1",
    other_user_id: str = "u2",
    last_message: str | None = None,
    last_message_time: int | None = None,
    unread_count: int = 0,
) -> Conversation:
    return Conversation(
        conversation_id=conversation_id,
        other_user_id=other_user_id,
        other_user_name=f"User {other_user_id}",
        other_user_email=f"{other_user_id}@example.com",
        other_user_role="physiotherapist",
        last_message=last_message,
        last_message_time=last_message_time,
        unread_count=unread_count,
    )


def frame(message_type: str, data: dict[str, Any] | None = None) -> str:
    payload: dict[str, Any] = {"message_type": message_type}
    if data is not None:
        payload["data"] = data
    return json.dumps(payload)


def message_payload(message: Message) -> dict[str, Any]:
    return {
        "id": message.id,
        "conversation_id": message.conversation_id,
        "sender_id": message.sender_id,
        "receiver_id": message.receiver_id,
        "content": message.content,
        "timestamp": message.timestamp,
        "read": message.read,
    }


async def settle(rounds: int = 20) -> None:
    """Let scheduled tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@dataclass
class FakeChatApi:
    """In-memory stand-in for the chat REST service."""

    conversations: dict[str, list[Conversation]] = field(default_factory=dict)
    messages: dict[str, list[Message]] = field(default_factory=dict)
    calls: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)
    failing: set[str] = field(default_factory=set)
    gates: dict[str, asyncio.Event] = field(default_factory=dict)
    _next_cid: int = 100

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.failing:
            raise RequestError(f"{name} unavailable", status_code=503)

    def calls_to(self, name: str) -> list[tuple[Any, ...]]:
        return [args for n, args in self.calls if n == name]

    async def list_conversations(self, identity: str) -> list[Conversation]:
        self._record("list_conversations", identity)
        rows = list(self.conversations.get(identity, []))
        gate = self.gates.get("list_conversations")
        if gate is not None:
            await gate.wait()
        return rows

    async def list_messages(
        self, identity: str, conversation_id: str, *, limit: int | None = None,
    ) -> list[Message]:
        self._record("list_messages", identity, conversation_id, limit)
        msgs = list(self.messages.get(conversation_id, []))
        gate = self.gates.get(conversation_id)
        if gate is not None:
            await gate.wait()
        return msgs[-limit:] if limit else msgs

    async def send_message(self, identity: str, receiver_id: str, content: str) -> Message:
        self._record("send_message", identity, receiver_id, content)
        return self.store_message(identity, receiver_id, content)

    async def mark_read(self, identity: str, conversation_id: str) -> None:
        self._record("mark_read", identity, conversation_id)
        self.conversations[identity] = [
            replace(c, unread_count=0) if c.conversation_id == conversation_id else c
            for c in self.conversations.get(identity, [])
        ]

    async def get_unread_count(self, identity: str) -> int:
        self._record("get_unread_count", identity)
        return sum(c.unread_count for c in self.conversations.get(identity, []))

    def store_message(
        self, sender_id: str, receiver_id: str, content: str, *, timestamp: int = 1700000000,
    ) -> Message:
        """Persist a message the way the server does and update both inboxes."""
        cid = self._conversation_between(sender_id, receiver_id)
        message = make_message(
            conversation_id=cid,
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            timestamp=timestamp,
        )
        self.messages.setdefault(cid, []).append(message)
        for owner, peer in ((sender_id, receiver_id), (receiver_id, sender_id)):
            rows = self.conversations.setdefault(owner, [])
            existing = next((c for c in rows if c.conversation_id == cid), None)
            row = existing or make_conversation(conversation_id=cid, other_user_id=peer)
            row = replace(
                row,
                last_message=content,
                last_message_time=timestamp,
                unread_count=row.unread_count + (1 if owner == receiver_id else 0),
            )
            self.conversations[owner] = [c for c in rows if c is not existing] + [row]
        return message

    def _conversation_between(self, a: str, b: str) -> str:
        for owner, peer in ((a, b), (b, a)):
            for row in self.conversations.get(owner, []):
                if row.other_user_id == peer:
                    return row.conversation_id
        self._next_cid += 1
        return f"c{self._next_cid}"


@dataclass
class FakeUsersApi:
    profiles: dict[str, PeerProfile] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    async def get_user(self, user_id: str) -> PeerProfile:
        self.calls.append(user_id)
        profile = self.profiles.get(user_id)
        if profile is None:
            raise RequestError("Failed to fetch user", status_code=404)
        return profile


class FakeConnection:
    def __init__(self, url: str) -> None:
        self.url = url
        self.sent: list[str] = []
        self.closed = False
        self.fail_sends = False
        self._inbox: asyncio.Queue[str | BaseException | None] = asyncio.Queue()

    @property
    def sent_frames(self) -> list[dict[str, Any]]:
        return [json.loads(raw) for raw in self.sent]

    async def send_text(self, data: str) -> None:
        if self.closed or self.fail_sends:
            raise TransportError("socket closed")
        self.sent.append(data)

    async def iter_text(self) -> AsyncIterator[str]:
        while True:
            item = await self._inbox.get()
            if item is None:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(None)

    def push(self, raw: str) -> None:
        self._inbox.put_nowait(raw)

    def drop(self, error: BaseException | None = None) -> None:
        """Simulate the server going away."""
        self._inbox.put_nowait(error)


class FakeTransport:
    def __init__(self, *, failures: int = 0, always_fail: bool = False) -> None:
        self.failures = failures
        self.always_fail = always_fail
        self.urls: list[str] = []
        self.connections: list[FakeConnection] = []

    @property
    def last(self) -> FakeConnection:
        return self.connections[-1]

    async def connect(self, url: str) -> FakeConnection:
        self.urls.append(url)
        if self.always_fail or self.failures > 0:
            self.failures -= 1
            raise TransportError(f"Cannot connect to {url}")
        conn = FakeConnection(url)
        self.connections.append(conn)
        return conn


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class ManualTicker:
    """Sleep replacement whose sleepers only wake on ``tick()``."""

    def __init__(self) -> None:
        self.delays: list[float] = []
        self._waiters: list[asyncio.Future[None]] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        await waiter

    @property
    def sleeping(self) -> int:
        return sum(1 for w in self._waiters if not w.done())

    async def tick(self) -> None:
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)
        await settle()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def chat_api() -> FakeChatApi:
    return FakeChatApi()


@pytest.fixture
def users_api() -> FakeUsersApi:
    return FakeUsersApi(
        profiles={
            "u3": PeerProfile(id="u3", name="Ana Petrovic", email="ana@example.com", role="physiotherapist"),
        }
    )
