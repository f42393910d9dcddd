from __future__ import annotations

import logging

import jwt

from chat_client.application.exceptions import RequestError

logger = logging.getLogger(__name__)


class StaticTokenProvider:
    """Holds the bearer token handed over by the session layer.

    The token is only inspected, never verified: signature checks belong to
    the services that receive it. Tokens that are not JWTs are passed
    through as opaque strings.
    """

    def __init__(self, token: str | None = None) -> None:
        self._token = token

    def set_token(self, token: str | None) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None

    def get_token(self) -> str:
        if not self._token:
            raise RequestError("Not authenticated")
        try:
            jwt.decode(
                self._token,
                options={"verify_signature": False, "verify_exp": True},
            )
        except jwt.ExpiredSignatureError as exc:
            raise RequestError("Session expired") from exc
        except jwt.DecodeError:
            logger.debug("Bearer token is not a JWT, sending as-is")
        return self._token
