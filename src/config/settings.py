"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    # Upstream realtime provider (relay side)
    openai_api_key: str | None = Field(
        default=None,
        description="Long-lived secret used to mint ephemeral keys. Never sent to clients.",
    )
    openai_api_base: str = Field(default="https://api.openai.com/v1")
    realtime_model: str = Field(default="gpt-4o-realtime-preview-2024-12-17")
    realtime_voice: str = Field(default="verse")
    realtime_instructions: str = Field(
        default=(
            "You are a friendly sales-training voice assistant. "
            "Keep responses short and conversational."
        ),
    )
    transcription_model: str = Field(default="gpt-4o-transcribe")
    turn_detection_type: str = Field(default="server_vad")
    upstream_timeout_seconds: float | None = Field(
        default=None,
        description="Timeout for outbound HTTP calls. Unset means wait indefinitely.",
    )

    # Realtime session client
    relay_token_url: str = Field(default="http://localhost:8000/api/token")
    ice_servers: list[str] = Field(default_factory=lambda: ["stun:stun.l.google.com:19302"])
    control_channel_label: str = Field(default="oai-events")
    microphone_device: str = Field(
        default="default",
        description="FFmpeg input device, e.g. 'default' (pulse), ':0' (avfoundation).",
    )
    microphone_format: str = Field(default="pulse")
    remote_audio_path: Path | None = Field(
        default=None,
        description="If set, assistant audio is recorded to this file instead of discarded.",
    )
    default_scenario: str = Field(default="default")

    @field_validator("openai_api_base")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("openai_api_key")
    @classmethod
    def blank_key_is_missing(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value

    @property
    def realtime_sessions_url(self) -> str:
        return f"{self.openai_api_base}/realtime/sessions"

    @property
    def realtime_calls_url(self) -> str:
        return f"{self.openai_api_base}/realtime"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
