"""httpx client for the chat REST service."""
from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from chat_client.application.exceptions import RequestError
from chat_client.application.ports.auth import TokenProvider
from chat_client.domain.entities.conversation import Conversation
from chat_client.domain.entities.message import Message
from chat_client.infrastructure.http.mappers import (
    conversation_to_entity,
    message_to_entity,
)
from chat_client.infrastructure.http.schemas import (
    ConversationsResponse,
    MessageSchema,
    MessagesResponse,
    SendMessageRequest,
    UnreadCountResponse,
)

logger = logging.getLogger(__name__)


def _error_detail(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return default


async def send_authorized(
    client: httpx.AsyncClient,
    tokens: TokenProvider,
    method: str,
    url: str,
    *,
    failure: str,
    **kwargs: Any,
) -> httpx.Response:
    """Issue one request with the current bearer token.

    Every failure (missing token, network error, non-2xx status) is raised
    as RequestError carrying ``failure`` or the server's ``error`` message.
    """
    token = tokens.get_token()
    headers = {"Authorization": f"Bearer {token}"}
    try:
        response = await client.request(method, url, headers=headers, **kwargs)
    except httpx.HTTPError as exc:
        logger.warning("%s %s failed: %s", method, url, exc)
        raise RequestError(failure) from exc
    if response.is_error:
        detail = _error_detail(response, failure)
        logger.warning("%s %s -> %d: %s", method, url, response.status_code, detail)
        raise RequestError(detail, status_code=response.status_code)
    return response


class HttpChatApi:
    """Implements application.ports.api.ChatApi."""

    def __init__(self, client: httpx.AsyncClient, tokens: TokenProvider) -> None:
        self._client = client
        self._tokens = tokens

    async def _send(self, method: str, url: str, *, failure: str, **kwargs: Any) -> httpx.Response:
        return await send_authorized(
            self._client, self._tokens, method, url, failure=failure, **kwargs,
        )

    async def list_conversations(self, identity: str) -> list[Conversation]:
        failure = "Failed to fetch conversations"
        resp = await self._send("GET", f"/users/{identity}/conversations", failure=failure)
        try:
            payload = ConversationsResponse.model_validate_json(resp.content)
        except PydanticValidationError as exc:
            raise RequestError(failure) from exc
        return [conversation_to_entity(c) for c in payload.conversations]

    async def list_messages(
        self,
        identity: str,
        conversation_id: str,
        *,
        limit: int | None = None,
    ) -> list[Message]:
        failure = "Failed to fetch messages"
        params = {"limit": limit} if limit else {}
        resp = await self._send(
            "GET",
            f"/users/{identity}/conversations/{conversation_id}/messages",
            failure=failure,
            params=params,
        )
        try:
            payload = MessagesResponse.model_validate_json(resp.content)
        except PydanticValidationError as exc:
            raise RequestError(failure) from exc
        return [message_to_entity(m) for m in payload.messages]

    async def send_message(self, identity: str, receiver_id: str, content: str) -> Message:
        failure = "Failed to send message"
        body = SendMessageRequest(receiver_id=receiver_id, content=content)
        resp = await self._send(
            "POST",
            f"/users/{identity}/messages",
            failure=failure,
            json=body.model_dump(),
        )
        try:
            return message_to_entity(MessageSchema.model_validate_json(resp.content))
        except PydanticValidationError as exc:
            raise RequestError(failure) from exc

    async def mark_read(self, identity: str, conversation_id: str) -> None:
        await self._send(
            "POST",
            f"/users/{identity}/conversations/{conversation_id}/read",
            failure="Failed to mark conversation as read",
        )

    async def get_unread_count(self, identity: str) -> int:
        failure = "Failed to get unread count"
        resp = await self._send("GET", f"/users/{identity}/unread", failure=failure)
        try:
            return UnreadCountResponse.model_validate_json(resp.content).unread_count
        except PydanticValidationError as exc:
            raise RequestError(failure) from exc
