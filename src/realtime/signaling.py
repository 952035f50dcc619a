"""HTTP calls made by the client: ephemeral key fetch and SDP offer/answer exchange."""

from __future__ import annotations

import logging

import httpx

from realtime.errors import CredentialFetchFailedError, NegotiationFailedError
from realtime.schemas import Credential

LOGGER = logging.getLogger(__name__)


def _error_text(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or f"HTTP {response.status_code}"
    if isinstance(data, dict) and data.get("error"):
        text = str(data["error"])
        if data.get("details") is not None:
            text += f" ({data['details']})"
        return text
    return f"HTTP {response.status_code}"


async def fetch_credential(client: httpx.AsyncClient, token_url: str) -> Credential:
    """Ask the relay for an ephemeral key."""

    try:
        response = await client.get(token_url)
    except httpx.HTTPError as exc:
        raise CredentialFetchFailedError(f"Key fetch failed: {exc}") from exc

    if response.is_error:
        raise CredentialFetchFailedError(
            f"Key fetch failed ({response.status_code}): {_error_text(response)}"
        )

    try:
        data = response.json()
    except ValueError as exc:
        raise CredentialFetchFailedError("Key fetch failed: relay returned invalid JSON") from exc

    ephemeral_key = data.get("ephemeralKey") if isinstance(data, dict) else None
    model = data.get("model") if isinstance(data, dict) else None
    if not ephemeral_key or not model:
        raise CredentialFetchFailedError("Key fetch failed: relay response is missing ephemeralKey or model")

    return Credential(ephemeral_key=str(ephemeral_key), model=str(model))


async def exchange_sdp(
    client: httpx.AsyncClient,
    realtime_url: str,
    credential: Credential,
    offer_sdp: str,
) -> str:
    """POST the local offer to the realtime endpoint and return the answer SDP."""

    headers = {
        "Authorization": f"Bearer {credential.ephemeral_key}",
        "Content-Type": "application/sdp",
    }
    try:
        response = await client.post(
            realtime_url,
            params={"model": credential.model},
            content=offer_sdp.encode("utf-8"),
            headers=headers,
        )
    except httpx.HTTPError as exc:
        raise NegotiationFailedError(f"SDP exchange failed: {exc}") from exc

    if response.is_error:
        raise NegotiationFailedError(
            f"SDP exchange failed ({response.status_code}): {_error_text(response)}"
        )

    answer = response.text
    if not answer.strip():
        raise NegotiationFailedError("SDP exchange failed: empty answer")
    LOGGER.debug("Received SDP answer (%d bytes)", len(answer))
    return answer
