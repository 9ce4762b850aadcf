from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    BASE_URL: str = "http://localhost:8000"
    WS_URL: str = "ws://localhost:8000/ws/internal_chat"
    HTTP_TIMEOUT: float = 10.0
    RECONNECT_DELAY: float = 1.0
    MAX_RECONNECT_FAILURES: int = 5
    PAGE_SIZE: int = 50

    model_config = SettingsConfigDict(
        env_prefix="INTERNAL_CHAT_",
        env_file=".env",
        extra="ignore",
    )
