from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ConversationMarkedRead:
    identity: str
    conversation_id: str
