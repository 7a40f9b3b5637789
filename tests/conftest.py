"""
Pytest configuration and fixtures for fetch-stream tests.

Responses are served by an in-process httpx.MockTransport whose bodies are
async generators, so tests control exactly how the body is chunked and when
each chunk becomes available.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any

import httpx
import pytest

# A scripted body item: bytes are yielded, events are waited on, exceptions
# are raised from the body iterator.
BodyItem = bytes | asyncio.Event | BaseException


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class ChunkedServer:
    """
    Scripted HTTP server for a single URL.

    Each positional argument is the body script for one request; the last
    script is reused for any further requests. A sequence of status codes
    is consumed the same way.
    """

    def __init__(
        self,
        *bodies: Sequence[BodyItem],
        status_code: int | Sequence[int] = 200,
        headers: dict[str, str] | None = None,
        on_request: Callable[[int, httpx.Request], None] | None = None,
        connect_error: Exception | None = None,
    ) -> None:
        self.bodies = list(bodies) or [[]]
        self.status_codes = (
            [status_code] if isinstance(status_code, int) else list(status_code)
        )
        self.headers = headers or {"content-type": "application/x-ndjson"}
        self.on_request = on_request
        self.connect_error = connect_error
        self.requests: list[httpx.Request] = []
        self.delivered: list[bytes] = []
        self.requested = asyncio.Event()

    async def handler(self, request: httpx.Request) -> httpx.Response:
        index = len(self.requests)
        self.requests.append(request)
        self.requested.set()
        if self.on_request is not None:
            self.on_request(index, request)
        if self.connect_error is not None:
            raise self.connect_error

        script = self.bodies[min(index, len(self.bodies) - 1)]
        status_code = self.status_codes[min(index, len(self.status_codes) - 1)]
        return httpx.Response(
            status_code,
            headers=self.headers,
            content=self._iterate(script),
        )

    async def _iterate(self, script: Sequence[BodyItem]) -> AsyncIterator[bytes]:
        for item in script:
            if isinstance(item, asyncio.Event):
                await item.wait()
            elif isinstance(item, BaseException):
                raise item
            else:
                self.delivered.append(item)
                yield item

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class Recorder:
    """Collects handler invocations for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def handler(self, name: str) -> Callable[..., None]:
        def record(*args: Any) -> None:
            self.calls.append((name, args))

        return record

    def async_handler(self, name: str) -> Callable[..., Any]:
        async def record(*args: Any) -> None:
            self.calls.append((name, args))

        return record

    def args(self, name: str) -> list[tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


def split_every(data: bytes, size: int) -> list[bytes]:
    """Split bytes into consecutive pieces of at most ``size`` bytes."""
    return [data[i : i + size] for i in range(0, len(data), size)]


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
