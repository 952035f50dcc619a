from __future__ import annotations

import httpx
import pytest

from relay.errors import UpstreamMintFailedError
from relay.minting import MintedCredential


class FakeMinter:
    def __init__(self, *, configured: bool = True, error: Exception | None = None) -> None:
        self.configured = configured
        self._error = error
        self.mint_calls = 0

    async def mint(self) -> MintedCredential:
        self.mint_calls += 1
        if self._error is not None:
            raise self._error
        return MintedCredential(ephemeral_key="ek_test_123", model="gpt-4o-realtime-preview-2024-12-17")


def _use_minter(app, minter) -> None:
    import api.dependencies as deps

    app.dependency_overrides[deps.get_minter] = lambda: minter


def test_get_token_returns_ephemeral_key_and_model(app, client):
    minter = FakeMinter()
    _use_minter(app, minter)

    response = client.get("/api/token")

    assert response.status_code == 200
    assert response.json() == {
        "ephemeralKey": "ek_test_123",
        "model": "gpt-4o-realtime-preview-2024-12-17",
    }
    assert minter.mint_calls == 1


@pytest.mark.parametrize("method", ["POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"])
def test_non_get_methods_are_rejected_without_upstream_call(app, client, method):
    minter = FakeMinter()
    _use_minter(app, minter)

    response = client.request(method, "/api/token")

    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed"}
    assert response.headers["allow"] == "GET"
    assert minter.mint_calls == 0


def test_missing_secret_returns_misconfigured_server(app, client):
    minter = FakeMinter(configured=False)
    _use_minter(app, minter)

    response = client.get("/api/token")

    assert response.status_code == 500
    assert response.json() == {"error": "OPENAI_API_KEY is not set on the server"}
    assert minter.mint_calls == 0


def test_missing_secret_in_settings_skips_upstream_call(app, client):
    from config.settings import Settings
    from relay.minting import CredentialMinter

    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    minter = CredentialMinter(
        Settings(_env_file=None, openai_api_key=None),
        transport=httpx.MockTransport(handler),
    )
    _use_minter(app, minter)

    response = client.get("/api/token")

    assert response.status_code == 500
    assert response.json()["error"] == "OPENAI_API_KEY is not set on the server"
    assert calls == []


def test_upstream_failure_surfaces_details(app, client):
    _use_minter(app, FakeMinter(error=UpstreamMintFailedError(details={"error": {"message": "bad model"}})))

    response = client.get("/api/token")

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to create session",
        "details": {"error": {"message": "bad model"}},
    }


def test_unexpected_exception_maps_to_internal_error(app, client, upstream_secret):
    _use_minter(app, FakeMinter(error=KeyError(upstream_secret)))

    response = client.get("/api/token")

    assert response.status_code == 500
    assert response.json() == {"error": "Unexpected error"}
    assert upstream_secret not in response.text


@pytest.mark.parametrize("upstream_status", [200, 401, 500])
def test_secret_never_appears_in_response(app, client, settings, upstream_secret, upstream_status):
    from relay.minting import CredentialMinter

    def handler(request: httpx.Request) -> httpx.Response:
        # Upstream echoing the authorization header back.
        echoed = request.headers["authorization"]
        if upstream_status == 200:
            return httpx.Response(200, json={"model": echoed, "client_secret": {"value": "ek_1"}})
        return httpx.Response(upstream_status, json={"error": {"message": f"bad key {echoed}"}})

    _use_minter(app, CredentialMinter(settings, transport=httpx.MockTransport(handler)))

    response = client.get("/api/token")

    assert upstream_secret not in response.text
    if upstream_status == 200:
        assert response.status_code == 200
        assert response.json()["ephemeralKey"] == "ek_1"
    else:
        assert response.status_code == 500
        assert response.json()["error"] == "Failed to create session"
