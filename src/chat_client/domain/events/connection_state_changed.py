from __future__ import annotations

from dataclasses import dataclass

from chat_client.domain.value_objects.enums import ConnectionState


@dataclass(frozen=True, slots=True)
class ConnectionStateChanged:
    identity: str | None
    previous: ConnectionState
    current: ConnectionState
    attempt: int = 0
