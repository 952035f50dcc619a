from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

TEST_SECRET = "sk-test-long-lived-secret-1234567890"


@pytest.fixture(scope="session")
def app():
    os.environ["OPENAI_API_KEY"] = TEST_SECRET
    os.environ["LOG_LEVEL"] = "DEBUG"

    import importlib

    # Ensure clean import with the test settings.
    for module_name in [
        "config.settings",
        "relay.minting",
        "api.dependencies",
        "api.routes",
        "main",
    ]:
        sys.modules.pop(module_name, None)

    main = importlib.import_module("main")
    return main.app


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def upstream_secret() -> str:
    return TEST_SECRET


@pytest.fixture()
def settings():
    from config.settings import Settings

    return Settings(
        _env_file=None,
        openai_api_key=TEST_SECRET,
        openai_api_base="https://upstream.test/v1",
        relay_token_url="http://relay.test/api/token",
    )
