"""Client for the upstream realtime "mint session" endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from config.settings import Settings, get_settings
from relay.errors import MisconfiguredServerError, UpstreamMintFailedError

LOGGER = logging.getLogger(__name__)

REDACTED = "[redacted]"


@dataclass(frozen=True)
class MintedCredential:
    ephemeral_key: str
    model: str


def redact_secret(value: Any, secret: str) -> Any:
    """Return a copy of ``value`` with every occurrence of ``secret`` replaced."""

    if isinstance(value, str):
        return value.replace(secret, REDACTED)
    if isinstance(value, dict):
        return {redact_secret(k, secret): redact_secret(v, secret) for k, v in value.items()}
    if isinstance(value, list):
        return [redact_secret(item, secret) for item in value]
    return value


class CredentialMinter:
    """Exchanges the server-side API key for a short-lived realtime credential."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._settings.openai_api_key)

    def session_payload(self) -> dict[str, Any]:
        settings = self._settings
        return {
            "model": settings.realtime_model,
            "voice": settings.realtime_voice,
            "instructions": settings.realtime_instructions,
            "input_audio_transcription": {"model": settings.transcription_model},
            "turn_detection": {"type": settings.turn_detection_type},
        }

    async def mint(self) -> MintedCredential:
        api_key = self._settings.openai_api_key
        if not api_key:
            raise MisconfiguredServerError()

        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.upstream_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self._settings.realtime_sessions_url,
                    json=self.session_payload(),
                    headers=headers,
                )
        except httpx.HTTPError as exc:
            LOGGER.error("Upstream session mint request failed: %s", type(exc).__name__)
            raise UpstreamMintFailedError(
                details=redact_secret(f"{type(exc).__name__}: {exc}", api_key)
            ) from exc

        try:
            data = response.json()
        except ValueError:
            data = response.text

        if response.is_error:
            LOGGER.error("Upstream session mint returned HTTP %s", response.status_code)
            raise UpstreamMintFailedError(details=redact_secret(data, api_key))

        client_secret = data.get("client_secret") if isinstance(data, dict) else None
        ephemeral_key = client_secret.get("value") if isinstance(client_secret, dict) else None
        if not isinstance(ephemeral_key, str) or not ephemeral_key or api_key in ephemeral_key:
            LOGGER.error("Upstream session mint response has no usable client secret")
            raise UpstreamMintFailedError(details=redact_secret(data, api_key))

        model = redact_secret(str(data.get("model") or self._settings.realtime_model), api_key)
        LOGGER.info("Minted realtime session credential for model %s", model)
        return MintedCredential(ephemeral_key=ephemeral_key, model=model)
