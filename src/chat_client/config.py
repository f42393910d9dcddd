from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    CHAT_API_URL: str = "http://localhost:8003"
    CHAT_WS_URL: str = "ws://localhost:8003"
    USERS_API_URL: str = "http://localhost:8001"

    HTTP_TIMEOUT_SECONDS: float = 10.0

    WS_HEARTBEAT_SECONDS: float = 30.0
    WS_RECONNECT_BASE_DELAY: float = 1.0
    WS_RECONNECT_MAX_ATTEMPTS: int = 5

    UNREAD_POLL_SECONDS: float = 30.0
    MESSAGE_HISTORY_LIMIT: int = 50

    LOG_LEVEL: str = "INFO"

    CHAT_IDENTITY: str | None = None
    CHAT_TOKEN: str | None = None

    def ws_url_for(self, identity: str) -> str:
        return f"{self.CHAT_WS_URL.rstrip('/')}/ws/{identity}"

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
