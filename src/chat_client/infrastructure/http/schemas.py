"""Payload models for the chat and users REST services."""
from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class MessageSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    conversation_id: str = ""
    sender_id: str
    receiver_id: str
    content: str
    timestamp: int
    read: bool = False


class ConversationSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    conversation_id: str
    other_user_id: str
    other_user_name: str = ""
    other_user_email: str = ""
    other_user_role: str = ""
    last_message: str | None = None
    last_message_time: int | None = None
    unread_count: int = 0

    @field_validator("unread_count")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        return max(v, 0)


class ConversationsResponse(BaseModel):
    conversations: list[ConversationSchema] = []


class MessagesResponse(BaseModel):
    messages: list[MessageSchema] = []


class UnreadCountResponse(BaseModel):
    unread_count: int

    @field_validator("unread_count")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        return max(v, 0)


class SendMessageRequest(BaseModel):
    receiver_id: str
    content: str


class UserSchema(BaseModel):
    """Users service payload; accepts snake_case and camelCase keys."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: str = ""
    first_name: str = Field("", validation_alias=AliasChoices("first_name", "firstName"))
    last_name: str = Field("", validation_alias=AliasChoices("last_name", "lastName"))
    role: str = "patient"

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)
