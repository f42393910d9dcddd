from __future__ import annotations

from typing import Protocol


class TokenProvider(Protocol):
    def get_token(self) -> str:
        """Return the current bearer token or raise RequestError."""
        ...
