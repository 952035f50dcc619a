"""Client-side exceptions raised while opening a realtime session."""

from __future__ import annotations


class RealtimeClientError(Exception):
    default_detail: str = "Realtime client error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class CredentialFetchFailedError(RealtimeClientError):
    default_detail = "Key fetch failed"


class NegotiationFailedError(RealtimeClientError):
    default_detail = "Session negotiation failed"


class MediaAcquisitionFailedError(RealtimeClientError):
    default_detail = "Microphone could not be opened"
