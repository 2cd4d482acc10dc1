# telebridge/config.py
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    ENV: str = "dev"
    APP_NAME: str = "Telehealth Telephony Bridge"
    LOG_LEVEL: str = "INFO"
    PORT: int = 3000

    # Twilio config
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_PHONE_NUMBER: Optional[str] = None  # our Twilio caller ID

    # Public URL Twilio uses to reach our webhooks (ngrok etc.)
    PUBLIC_BASE_URL: Optional[str] = None

    # LiveKit config
    LIVEKIT_WS_URL: Optional[str] = None
    LIVEKIT_API_KEY: Optional[str] = None
    LIVEKIT_API_SECRET: Optional[str] = None
    LIVEKIT_SIP_DOMAIN: Optional[str] = None

    ROOM_EMPTY_TIMEOUT_SECONDS: int = 600
    ROOM_MAX_PARTICIPANTS: int = 10
    TOKEN_TTL_SECONDS: int = 3600

    # Rooms dispatched straight from the SIP trunk: twilio-tgl-<caller number>
    SIP_ROOM_PREFIX: str = "twilio-tgl-"

    # Voice flow
    DIAL_TIMEOUT_SECONDS: int = 30
    HOLD_POLL_SECONDS: int = 3
    HOLD_MAX_WAIT_SECONDS: int = 300
    HOLD_MUSIC_URL: Optional[str] = None

    CALL_LOG_LIMIT: int = 50

    # Call registry backing store
    CALL_STORE_BACKEND: Literal["memory", "sql"] = "memory"
    DATABASE_URL: str = "sqlite:///./telebridge.db"

    STATIC_DIR: str = "public"
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def twilio_configured(self) -> bool:
        return bool(self.TWILIO_ACCOUNT_SID and self.TWILIO_AUTH_TOKEN)

    @property
    def livekit_configured(self) -> bool:
        return bool(self.LIVEKIT_API_KEY and self.LIVEKIT_API_SECRET)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
