"""Parsing of inbound control-channel events and the user-visible activity log."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator

from pydantic import ValidationError

from realtime.schemas import (
    AudioTranscriptDeltaEvent,
    ErrorEvent,
    IgnoredEvent,
    LogEntry,
    ResponseCompletedEvent,
    Role,
    ServerEvent,
    TextDeltaEvent,
    TranscriptCompletedEvent,
)

LOGGER = logging.getLogger(__name__)

EVENT_MODELS: dict[str, type[ServerEvent]] = {
    "response.output_text.delta": TextDeltaEvent,
    "response.audio_transcript.delta": AudioTranscriptDeltaEvent,
    "conversation.item.input_audio_transcription.completed": TranscriptCompletedEvent,
    "response.completed": ResponseCompletedEvent,
    "error": ErrorEvent,
}

ROLE_PREFIX: dict[str, str] = {
    "user": "YOU: ",
    "assistant": "AI: ",
    "system": "[system] ",
}


def parse_server_event(raw: str | bytes) -> ServerEvent | None:
    """Parse one data-channel message.

    Returns None for payloads that are not a JSON object with a string ``type``.
    Known types with an unexpected shape come back as ``IgnoredEvent``.
    """

    try:
        message = json.loads(raw)
    except (TypeError, ValueError, RecursionError):
        return None
    if not isinstance(message, dict) or not isinstance(message.get("type"), str):
        return None

    model = EVENT_MODELS.get(message["type"], IgnoredEvent)
    try:
        return model.model_validate(message)
    except ValidationError:
        return IgnoredEvent(type=message["type"])


def render_entry(entry: LogEntry) -> str:
    return ROLE_PREFIX[entry.role] + entry.text


class ActivityLog:
    """Append-only transcript of the session, in arrival order."""

    def __init__(self, listener: Callable[[LogEntry], None] | None = None) -> None:
        self._entries: list[LogEntry] = []
        self._listener = listener

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self._entries)

    @property
    def entries(self) -> tuple[LogEntry, ...]:
        return tuple(self._entries)

    def append(self, role: Role, text: str) -> LogEntry:
        entry = LogEntry(role=role, text=text)
        self._entries.append(entry)
        LOGGER.debug("%s", render_entry(entry))
        if self._listener is not None:
            self._listener(entry)
        return entry

    def apply(self, event: ServerEvent) -> LogEntry | None:
        """Append the log entry an event maps to, if any."""

        if isinstance(event, (TextDeltaEvent, AudioTranscriptDeltaEvent)):
            return self.append("assistant", event.delta)
        if isinstance(event, TranscriptCompletedEvent):
            return self.append("user", event.transcript)
        if isinstance(event, ResponseCompletedEvent):
            return self.append("system", "Response complete.")
        if isinstance(event, ErrorEvent):
            return self.append("system", f"Realtime error: {event.error.message}")
        return None
