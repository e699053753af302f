from __future__ import annotations

from typing import Callable

import httpx
import pytest

from imagegen_proxy.common.options import resolve_options
from imagegen_proxy.common.settings import Settings

TEST_KEY = "sk-test-secret-key"
UPSTREAM_URL = "https://upstream.test/v1/images/generations"


class _Upstream:
    """Scripted upstream: pops one reply per call, repeating the last one."""

    def __init__(self, replies: list[httpx.Response | Exception]) -> None:
        self.replies = list(replies)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def calls(self) -> int:
        return len(self.requests)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class _Sleeps:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def upstream() -> Callable[..., _Upstream]:
    def make(*replies: httpx.Response | Exception) -> _Upstream:
        return _Upstream(list(replies))
    return make


@pytest.fixture
def sleeps() -> _Sleeps:
    return _Sleeps()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_key=TEST_KEY,
        environment="development",
        upstream_url=UPSTREAM_URL,
        options=resolve_options("free"),
    )
