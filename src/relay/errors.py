"""Relay-side exceptions mapped to HTTP error responses.

These exceptions are safe to import from API layers without pulling in httpx clients.
"""

from __future__ import annotations

from typing import Any


class RelayError(Exception):
    status_code: int = 500
    default_detail: str = "Relay error"

    def __init__(self, detail: str | None = None, *, details: Any = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.detail}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class MethodNotAllowedError(RelayError):
    status_code = 405
    default_detail = "Method not allowed"


class MisconfiguredServerError(RelayError):
    status_code = 500
    default_detail = "OPENAI_API_KEY is not set on the server"


class UpstreamMintFailedError(RelayError):
    status_code = 500
    default_detail = "Failed to create session"


class InternalRelayError(RelayError):
    status_code = 500
    default_detail = "Unexpected error"
