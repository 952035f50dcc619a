"""Shared FastAPI dependencies.

Separated so tests can override the minter without touching route modules.
"""

from __future__ import annotations

from config.settings import get_settings
from relay.minting import CredentialMinter


def get_minter() -> CredentialMinter:
    # The key is checked per request, so a missing key is a request-time error, not a startup crash.
    return CredentialMinter(get_settings())
