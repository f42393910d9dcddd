from __future__ import annotations

import time

import jwt
import pytest

from chat_client.application.exceptions import RequestError
from chat_client.infrastructure.auth.token_provider import StaticTokenProvider


def _make_token(exp_offset: int) -> str:
    return jwt.encode(
        {"sub": "u1", "exp": int(time.time()) + exp_offset},
        "test-secret",
        algorithm="HS256",
    )


def test_valid_jwt_is_returned():
    token = _make_token(3600)
    assert StaticTokenProvider(token).get_token() == token


def test_expired_jwt_is_a_request_error():
    with pytest.raises(RequestError, match="Session expired"):
        StaticTokenProvider(_make_token(-60)).get_token()


def test_missing_token_is_a_request_error():
    provider = StaticTokenProvider("abc")
    provider.clear()

    with pytest.raises(RequestError, match="Not authenticated"):
        provider.get_token()


def test_opaque_token_passes_through():
    assert StaticTokenProvider("opaque-session-token").get_token() == "opaque-session-token"
