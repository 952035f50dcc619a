"""API-facing Pydantic models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class TokenResponse(BaseModel):
    ephemeralKey: str = Field(description="Short-lived credential for one realtime session.")
    model: str = Field(description="Model the credential was minted for.")


class ErrorResponse(BaseModel):
    error: str
    details: Any | None = None
