"""Forwarding handler: validates the call, injects the credential, maps the upstream answer.

Every exit path returns a ProxyResult; nothing raised inside `handle` reaches the caller.
"""
from __future__ import annotations
import asyncio
import logging
import traceback
from typing import Any

import httpx
from pydantic import ValidationError

from imagegen_proxy.common.schema import GenerateIn, MalformedBody, ProxyResult, ResultKind
from imagegen_proxy.common.settings import API_KEY_ENV, Settings
from imagegen_proxy.upstream.retry_client import Sleep, post_with_retry

LOGGER = logging.getLogger("imagegen_proxy.serve.handler")

FORWARD_METHOD = "POST"
PREFLIGHT_METHOD = "OPTIONS"

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please wait a moment and try again."
AUTH_FAILURE_MESSAGE = f"Invalid API key. Please check your {API_KEY_ENV} configuration."
GENERIC_UPSTREAM_MESSAGE = "Failed to generate image"
REDACTED = "[REDACTED]"


def _upstream_message(error_data: Any) -> str | None:
    """Pull a human-readable message out of an upstream error body, if any."""
    if not isinstance(error_data, dict):
        return None
    err = error_data.get("error")
    if isinstance(err, dict) and isinstance(err.get("message"), str):
        return err["message"]
    if isinstance(err, str) and err:
        return err
    msg = error_data.get("message")
    if isinstance(msg, str) and msg:
        return msg
    return None


def _preview(prompt: str, limit: int = 80) -> str:
    return prompt if len(prompt) <= limit else prompt[:limit] + "..."


class ImageGenerationHandler:
    """Proxy one image-generation call to the upstream API.

    Args:
        settings: Immutable configuration, credential included.
        transport: Optional httpx transport (tests pass a MockTransport).
        sleep: Awaitable delay used between retries.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self._transport = transport
        self._sleep = sleep

    async def handle(self, method: str, body: Any) -> ProxyResult:
        method = method.upper()
        if method == PREFLIGHT_METHOD:
            return ProxyResult(kind=ResultKind.PREFLIGHT, status=200)
        if method != FORWARD_METHOD:
            LOGGER.warning("Rejected %s request", method)
            return ProxyResult.failure(ResultKind.METHOD_NOT_ALLOWED, 405, "Method not allowed")

        if not self.settings.api_key:
            LOGGER.error("%s is not configured", API_KEY_ENV)
            return ProxyResult.failure(
                ResultKind.CONFIGURATION,
                500,
                "Server configuration error",
                message=f"{API_KEY_ENV} environment variable is not set",
            )

        if isinstance(body, MalformedBody):
            LOGGER.error("Could not decode request body: %s", body.error)
            return self._internal_error(ResultKind.INTERNAL, body.error)
        if not isinstance(body, dict):
            LOGGER.warning("Rejected request with non-object body")
            return ProxyResult.failure(
                ResultKind.VALIDATION, 400, "Request body must be a JSON object with a prompt"
            )
        try:
            request = GenerateIn.model_validate(body)
        except ValidationError:
            LOGGER.warning("Rejected request without a prompt")
            return ProxyResult.failure(ResultKind.VALIDATION, 400, "Prompt is required")

        return await self.generate(request.prompt)

    async def generate(self, prompt: str) -> ProxyResult:
        """Forward a validated prompt upstream and map the response."""
        try:
            return await self._forward(prompt)
        except httpx.TransportError as e:
            LOGGER.error("Upstream unreachable: %s", self._redact(str(e)))
            return self._internal_error(ResultKind.TRANSPORT, e)
        except Exception as e:
            LOGGER.exception("Server error while generating image")
            return self._internal_error(ResultKind.INTERNAL, e)

    async def _forward(self, prompt: str) -> ProxyResult:
        settings = self.settings
        payload = settings.options.to_payload(prompt)
        headers = {
            "Authorization": f"Bearer {settings.api_key}",
            "Content-Type": "application/json",
        }
        LOGGER.info(
            "Generating image with %s (%dx%d, %d steps): %r",
            settings.options.model, settings.options.width, settings.options.height,
            settings.options.steps, _preview(prompt),
        )

        async with httpx.AsyncClient(timeout=settings.timeout, transport=self._transport) as client:
            r = await post_with_retry(
                client,
                settings.upstream_url,
                headers=headers,
                json=payload,
                max_retries=settings.max_retries,
                sleep=self._sleep,
            )

        if r.status_code == 429:
            LOGGER.warning("Upstream rate limit hit")
            return ProxyResult.failure(ResultKind.UPSTREAM_RATE_LIMIT, 429, RATE_LIMIT_MESSAGE)
        if r.status_code == 401:
            LOGGER.error("Upstream rejected the API key")
            return ProxyResult.failure(ResultKind.UPSTREAM_AUTH, 401, AUTH_FAILURE_MESSAGE)
        if not r.is_success:
            error_data = r.json()
            LOGGER.error("Upstream error %d: %s", r.status_code, error_data)
            return ProxyResult.failure(
                ResultKind.UPSTREAM,
                r.status_code,
                _upstream_message(error_data) or GENERIC_UPSTREAM_MESSAGE,
                details=error_data,
                status=r.status_code,
            )

        data = r.json()
        LOGGER.info("Image generated successfully")
        return ProxyResult(kind=ResultKind.SUCCESS, status=200, body=data)

    def _internal_error(self, kind: ResultKind, exc: Exception) -> ProxyResult:
        extra: dict[str, Any] = {"message": self._redact(str(exc))}
        if not self.settings.is_production:
            extra["stack"] = self._redact(
                "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            )
        return ProxyResult.failure(kind, 500, "Internal server error", **extra)

    def _redact(self, text: str) -> str:
        key = self.settings.api_key
        return text.replace(key, REDACTED) if key else text
