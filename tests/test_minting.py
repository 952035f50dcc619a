from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from relay.errors import MisconfiguredServerError, UpstreamMintFailedError
from relay.minting import REDACTED, CredentialMinter, redact_secret


def _run(coro):
    return asyncio.run(coro)


def test_mint_posts_fixed_session_config_with_bearer_secret(settings, upstream_secret):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "id": "sess_1",
                "model": "gpt-4o-realtime-preview-2024-12-17",
                "client_secret": {"value": "ek_abc", "expires_at": 1700000000},
            },
        )

    minter = CredentialMinter(settings, transport=httpx.MockTransport(handler))
    credential = _run(minter.mint())

    assert credential.ephemeral_key == "ek_abc"
    assert credential.model == "gpt-4o-realtime-preview-2024-12-17"

    assert len(seen) == 1
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://upstream.test/v1/realtime/sessions"
    assert request.headers["authorization"] == f"Bearer {upstream_secret}"
    body = json.loads(request.content)
    assert body == {
        "model": "gpt-4o-realtime-preview-2024-12-17",
        "voice": "verse",
        "instructions": settings.realtime_instructions,
        "input_audio_transcription": {"model": "gpt-4o-transcribe"},
        "turn_detection": {"type": "server_vad"},
    }


def test_mint_without_secret_raises_before_any_request():
    from config.settings import Settings

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("upstream must not be called")

    minter = CredentialMinter(
        Settings(_env_file=None, openai_api_key="   "),
        transport=httpx.MockTransport(handler),
    )

    assert minter.configured is False
    with pytest.raises(MisconfiguredServerError):
        _run(minter.mint())


def test_mint_non_success_status_carries_upstream_payload(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": {"message": "Invalid model"}})

    minter = CredentialMinter(settings, transport=httpx.MockTransport(handler))

    with pytest.raises(UpstreamMintFailedError) as excinfo:
        _run(minter.mint())

    assert excinfo.value.status_code == 500
    assert excinfo.value.details == {"error": {"message": "Invalid model"}}


def test_mint_response_without_client_secret_fails(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"model": "gpt-4o-realtime-preview-2024-12-17"})

    minter = CredentialMinter(settings, transport=httpx.MockTransport(handler))

    with pytest.raises(UpstreamMintFailedError):
        _run(minter.mint())


def test_mint_transport_error_is_upstream_failure(settings, upstream_secret):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError(f"cannot reach upstream with {upstream_secret}", request=request)

    minter = CredentialMinter(settings, transport=httpx.MockTransport(handler))

    with pytest.raises(UpstreamMintFailedError) as excinfo:
        _run(minter.mint())

    assert upstream_secret not in str(excinfo.value.details)
    assert "ConnectError" in excinfo.value.details


def test_redact_secret_walks_nested_payloads():
    payload = {"error": {"message": "key sk-1 rejected", "hints": ["sk-1", 3]}, "sk-1": True}

    assert redact_secret(payload, "sk-1") == {
        "error": {"message": f"key {REDACTED} rejected", "hints": [REDACTED, 3]},
        REDACTED: True,
    }
