from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True, slots=True)
class Conversation:
    conversation_id: str
    other_user_id: str
    other_user_name: str = ""
    other_user_email: str = ""
    other_user_role: str = ""
    last_message: str | None = None
    last_message_time: int | None = None
    unread_count: int = 0

    @property
    def is_pending(self) -> bool:
        """A local placeholder the server has not assigned an id to yet."""
        return not self.conversation_id

    @property
    def sort_key(self) -> int:
        return self.last_message_time or 0

    def mark_read(self) -> Conversation:
        return replace(self, unread_count=0)


def sort_conversations(conversations: list[Conversation]) -> list[Conversation]:
    """Most recent activity first; conversations without messages last."""
    return sorted(conversations, key=lambda c: c.sort_key, reverse=True)
