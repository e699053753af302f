"""Bounded exponential-backoff retry around a single upstream POST.

Retried: transport failures, 429 and 5xx responses.
Not retried: success, and 4xx other than 429.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

LOGGER = logging.getLogger("imagegen_proxy.upstream.retry")

TRANSPORT_RETRY_DELAY = 1.0

Sleep = Callable[[float], Awaitable[Any]]

def backoff_delay(attempt: int) -> float:
    """Delay before retrying after a transient response: 1s, 2s, 4s, ..."""
    return float(2 ** attempt)

def is_terminal(status_code: int) -> bool:
    """Success, or a client error the upstream will keep rejecting."""
    if 200 <= status_code < 300:
        return True
    return 400 <= status_code < 500 and status_code != 429

async def post_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    headers: dict[str, str],
    json: dict[str, Any],  # noqa: A002
    max_retries: int = 2,
    sleep: Sleep = asyncio.sleep,
) -> httpx.Response:
    """
    POST to `url`, retrying transient failures up to `max_retries` times.

    Args:
        client: Open async client used for every attempt.
        url: Destination.
        headers: Outbound headers, sent unchanged on each attempt.
        json: Outbound JSON body, sent unchanged on each attempt.
        max_retries: Extra attempts after the first one.
        sleep: Awaitable delay function.

    Returns:
        The first terminal response, or the last response once retries run out.

    Raises:
        httpx.TransportError: when the final attempt fails at the network level.
    """
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")

    for attempt in range(max_retries + 1):
        last = attempt == max_retries
        try:
            response = await client.post(url, headers=headers, json=json)
        except httpx.TransportError as e:
            if last:
                LOGGER.error("Upstream request failed after %d attempt(s): %s", attempt + 1, e)
                raise
            LOGGER.warning(
                "Upstream request error on attempt %d/%d: %s; retrying in %.0fs",
                attempt + 1, max_retries + 1, e, TRANSPORT_RETRY_DELAY,
            )
            await sleep(TRANSPORT_RETRY_DELAY)
            continue

        if is_terminal(response.status_code) or last:
            return response

        delay = backoff_delay(attempt)
        LOGGER.warning(
            "Upstream returned %d on attempt %d/%d; retrying in %.0fs",
            response.status_code, attempt + 1, max_retries + 1, delay,
        )
        await response.aclose()
        await sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover
