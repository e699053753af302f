"""FastAPI surface for the image generation proxy.

Endpoints:
- GET /health
- POST /api/generate  { "prompt": "..." }   (OPTIONS answered for CORS preflight)
"""
from __future__ import annotations
import json
import logging
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from imagegen_proxy.common.logging_setup import setup_logging
from imagegen_proxy.common.schema import MalformedBody, ProxyResult, ResultKind
from imagegen_proxy.common.settings import API_KEY_ENV, Settings
from imagegen_proxy.serve.handler import FORWARD_METHOD, PREFLIGHT_METHOD, ImageGenerationHandler
from imagegen_proxy.upstream.retry_client import Sleep

LOGGER = logging.getLogger("imagegen_proxy.serve.app")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": f"{FORWARD_METHOD}, {PREFLIGHT_METHOD}",
    "Access-Control-Allow-Headers": "Content-Type",
}

def render(result: ProxyResult) -> Response:
    if result.kind is ResultKind.PREFLIGHT:
        return Response(status_code=result.status, headers=CORS_HEADERS)
    return JSONResponse(result.body, status_code=result.status, headers=CORS_HEADERS)

async def _read_json(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        return MalformedBody(e)

def create_app(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    sleep: Sleep | None = None,
) -> FastAPI:
    """
    Build the app around one handler instance.

    Args:
        settings: Injected configuration; read from the environment when omitted.
        transport: Optional httpx transport for the upstream client.
        sleep: Optional retry delay function.
    """
    if settings is None:
        settings = Settings.from_env()
    handler_kwargs: dict[str, Any] = {"transport": transport}
    if sleep is not None:
        handler_kwargs["sleep"] = sleep
    handler = ImageGenerationHandler(settings, **handler_kwargs)

    app = FastAPI(title="imagegen-proxy")
    app.state.handler = handler

    @app.on_event("startup")
    def _check_credential_on_startup() -> None:
        """Warn early when the credential is missing; requests will answer 500."""
        if not settings.api_key:
            LOGGER.warning("%s is not set; /api/generate will fail until it is configured", API_KEY_ENV)
        LOGGER.info(
            "Proxying to %s with variant=%s model=%s",
            settings.upstream_url, settings.variant, settings.options.model,
        )

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "model": settings.options.model, "variant": settings.variant}

    async def generate(request: Request) -> Response:
        body = await _read_json(request) if request.method == FORWARD_METHOD else None
        return render(await handler.handle(request.method, body))

    # No method restriction: the handler answers every method, CORS headers included.
    app.add_route("/api/generate", generate)

    return app


def get_app() -> FastAPI:
    """uvicorn factory entry (`--factory imagegen_proxy.serve.fastapi_app:get_app`)."""
    setup_logging()
    return create_app()
