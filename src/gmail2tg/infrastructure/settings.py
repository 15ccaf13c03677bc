"""Application settings using Pydantic Settings for configuration management."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Secret files mounted by hosted deployments (e.g. Render)
SECRETS_DIR = Path("/etc/secrets")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    log_level: Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Telegram
    tg_token: SecretStr
    tg_chat_id: int

    # Polling
    poll_seconds: int = Field(default=15, ge=1)
    max_per_tick: int = Field(default=10, ge=1)
    forwarded_label_name: str = "TG_FORWARDED"

    # Text caps (Telegram hard limit is 4096)
    body_max_chars: int = Field(default=3500, ge=1)
    header_max_chars: int = Field(default=200, ge=1)

    # Dedup set compaction
    processed_high_water: int = Field(default=800, ge=1)
    processed_low_water: int = Field(default=500, ge=0)

    # Files
    state_path: Path = Path("state.json")
    gmail_credentials_path: Path = Path("credentials.json")
    gmail_token_path: Path = Path("token.json")

    # Liveness endpoint
    health_enabled: bool = True
    health_host: str = "0.0.0.0"
    port: int = 10000

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        return value.strip().upper() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_consistency(self) -> "Settings":
        if not self.tg_token.get_secret_value().strip():
            raise ValueError("TG_TOKEN must not be empty")
        if self.tg_chat_id == 0:
            raise ValueError("TG_CHAT_ID must be a non-zero chat id (run gmail2tg-chat-id to find it)")
        if self.processed_low_water > self.processed_high_water:
            raise ValueError("PROCESSED_LOW_WATER must not exceed PROCESSED_HIGH_WATER")
        return self

    def resolved_credentials_path(self) -> Path:
        """Prefer the mounted secret file when it exists."""
        secret = SECRETS_DIR / "credentials.json"
        return secret if secret.exists() else self.gmail_credentials_path

    def resolved_token_path(self) -> Path:
        secret = SECRETS_DIR / "token.json"
        return secret if secret.exists() else self.gmail_token_path


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
