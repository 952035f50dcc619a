"""Entry point for the realtime voice credential relay service."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.routes import router as api_router
from config.settings import get_settings
from relay.errors import MethodNotAllowedError, RelayError

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(
    title="Realtime Voice Relay",
    description="Mints short-lived realtime voice credentials for browser and desktop clients.",
)
app.include_router(api_router, prefix="/api")


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    headers = {"Allow": "GET"} if isinstance(exc, MethodNotAllowedError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Methods the router never registered (TRACE, custom verbs) land here.
    if exc.status_code == 405:
        return JSONResponse(status_code=405, content=MethodNotAllowedError().to_payload(), headers={"Allow": "GET"})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)
