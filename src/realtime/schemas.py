"""Data types shared by the realtime session client."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant", "system"]


@dataclass(frozen=True)
class Credential:
    """Ephemeral key returned by the relay. Valid for one session."""

    ephemeral_key: str
    model: str


class SessionState(str, Enum):
    IDLE = "idle"
    REQUESTING_CREDENTIAL = "requesting_credential"
    NEGOTIATING_SESSION = "negotiating_session"
    CONNECTED = "connected"
    TALKING = "talking"
    DISCONNECTED = "disconnected"
    FAILED = "failed"


STATUS_TEXT: dict[SessionState, str] = {
    SessionState.IDLE: "idle",
    SessionState.REQUESTING_CREDENTIAL: "requesting token",
    SessionState.NEGOTIATING_SESSION: "negotiating",
    SessionState.CONNECTED: "connected",
    SessionState.TALKING: "talking",
    SessionState.DISCONNECTED: "disconnected",
    SessionState.FAILED: "error",
}


@dataclass(frozen=True)
class LogEntry:
    role: Role
    text: str


class ServerEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str


class TextDeltaEvent(ServerEvent):
    type: Literal["response.output_text.delta"]
    delta: str


class AudioTranscriptDeltaEvent(ServerEvent):
    type: Literal["response.audio_transcript.delta"]
    delta: str


class TranscriptCompletedEvent(ServerEvent):
    type: Literal["conversation.item.input_audio_transcription.completed"]
    transcript: str


class ResponseCompletedEvent(ServerEvent):
    type: Literal["response.completed"]


class ErrorDetail(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: str = "unknown error"


class ErrorEvent(ServerEvent):
    type: Literal["error"]
    error: ErrorDetail = Field(default_factory=ErrorDetail)


class IgnoredEvent(ServerEvent):
    """Any well-formed event the client does not act on."""
