from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Message:
    id: str
    conversation_id: str
    sender_id: str
    receiver_id: str
    content: str
    timestamp: int
    read: bool = False

    def peer_of(self, identity: str) -> str:
        """Return the other participant from ``identity``'s point of view."""
        return self.receiver_id if self.sender_id == identity else self.sender_id
