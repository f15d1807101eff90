from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    SERVER_URL: str = "http://localhost:3000"
    API_PREFIX: str = "/api"
    HEALTH_PATH: str = "/api/auth/health"
    SOCKETIO_PATH: str = "socket.io"

    AUTH_TOKEN: str | None = None

    HTTP_TIMEOUT: float = 10.0
    CONNECT_TIMEOUT: float = 10.0
    JOIN_ACK_TIMEOUT: float = 10.0

    RECONNECT_ATTEMPTS: int = 5
    RECONNECT_DELAY: float = 1.0
    FORCE_RECONNECT_COOLDOWN: float = 1.0

    TYPING_IDLE_SECONDS: float = 1.0

    PROBE_TIMEOUT: float = 5.0
    PROBE_INTERVAL: float = 30.0
    PROBE_AFTER_RESTORE: float = 1.0

    REDIS_URL: str = "redis://localhost:6379/0"
    PINNED_ROOMS_KEY: str = "chat:pinned_rooms"

    BRIDGE_HOST: str = "127.0.0.1"
    BRIDGE_PORT: int = 8765
    CORS_ORIGINS: list[str] = ["*"]
    UI_HEARTBEAT_SECONDS: int = 30
    SLOW_REQUEST_MS: float = 500.0

    LOG_LEVEL: str = "INFO"

    @property
    def api_base_url(self) -> str:
        return f"{self.SERVER_URL.rstrip('/')}{self.API_PREFIX}"

    @property
    def health_url(self) -> str:
        return f"{self.SERVER_URL.rstrip('/')}{self.HEALTH_PATH}"

    model_config = ConfigDict(
        env_file=".env",
        env_prefix="CHAT_",
        extra="ignore",
    )


settings = Settings()
