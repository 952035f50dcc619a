"""FastAPI routes exposing the credential relay."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_minter
from api.schemas import ErrorResponse, TokenResponse
from relay.errors import (
    InternalRelayError,
    MethodNotAllowedError,
    MisconfiguredServerError,
    RelayError,
)
from relay.minting import CredentialMinter

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["relay"])

# Every method is routed here so non-GET requests get the relay's JSON error body.
TOKEN_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@router.api_route(
    "/token",
    methods=TOKEN_METHODS,
    response_model=TokenResponse,
    responses={405: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def issue_credential(
    request: Request,
    minter: CredentialMinter = Depends(get_minter),
) -> TokenResponse:
    if request.method != "GET":
        raise MethodNotAllowedError()
    if not minter.configured:
        LOGGER.error("Token requested but OPENAI_API_KEY is not configured")
        raise MisconfiguredServerError()

    try:
        credential = await minter.mint()
    except RelayError:
        raise
    except Exception as exc:
        LOGGER.exception("Credential minting failed: %s", type(exc).__name__)
        raise InternalRelayError() from exc

    return TokenResponse(ephemeralKey=credential.ephemeral_key, model=credential.model)
