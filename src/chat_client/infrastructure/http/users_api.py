from __future__ import annotations

import httpx
from pydantic import ValidationError as PydanticValidationError

from chat_client.application.exceptions import RequestError
from chat_client.application.ports.auth import TokenProvider
from chat_client.domain.entities.peer import PeerProfile
from chat_client.infrastructure.http.chat_api import send_authorized
from chat_client.infrastructure.http.mappers import user_to_peer
from chat_client.infrastructure.http.schemas import UserSchema


class HttpUsersApi:
    """Reads display data of other users from the users service."""

    def __init__(self, client: httpx.AsyncClient, tokens: TokenProvider) -> None:
        self._client = client
        self._tokens = tokens

    async def get_user(self, user_id: str) -> PeerProfile:
        failure = "Failed to fetch user"
        resp = await send_authorized(
            self._client, self._tokens, "GET", f"/users/{user_id}", failure=failure,
        )
        try:
            return user_to_peer(UserSchema.model_validate_json(resp.content))
        except PydanticValidationError as exc:
            raise RequestError(failure) from exc
