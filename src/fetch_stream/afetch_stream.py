"""
AsyncFetchStream - incremental reader for a streamed HTTP response body.

The handle exposes live state (status, data, error) and control methods,
while the outcome of the current invocation is awaited separately through
wait(), the task property, or by awaiting the handle itself.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Generator
from contextlib import aclosing
from typing import Any

import httpx

from fetch_stream._abort import AbortHandle
from fetch_stream._errors import NetworkError, error_from_status
from fetch_stream._parse import parse_httpx_headers
from fetch_stream._types import (
    DEFAULT_TIMEOUT,
    NULL_BODY_STATUSES,
    BytesFinishHandler,
    ChunkHandler,
    ErrorHandler,
    HeadersLike,
    Method,
    ParamsLike,
    StreamStatus,
    UrlLike,
)
from fetch_stream._util import (
    build_url_with_params,
    call_handler,
    encode_body,
    resolve_headers_async,
    resolve_params_async,
    resolve_url,
)

logger = logging.getLogger(__name__)

_METHODS = ("GET", "POST")


async def _aiter_body(response: httpx.Response, url: str) -> AsyncIterator[bytes]:
    """Iterate body chunks, converting httpx read failures to NetworkError."""
    try:
        async for chunk in response.aiter_bytes():
            yield chunk
    except httpx.HTTPError as e:
        raise NetworkError(f"Failed to read response body: {e}", url=url) from e


class AsyncFetchStream:
    """
    A reusable handle that streams an HTTP response body chunk by chunk.

    Each call to start() or refresh() is a fresh, independent invocation.
    Starting a new invocation aborts the previous one and waits for its
    teardown before the new request is sent.

    Example:
        >>> async def on_chunk(chunk: bytes) -> None:
        ...     print(len(chunk))
        >>>
        >>> reader = AsyncFetchStream("https://example.com/feed", on_chunk=on_chunk)
        >>> reader.start()
        >>> await reader
        >>> reader.status
        <StreamStatus.SUCCESS: 'success'>
    """

    def __init__(
        self,
        url: UrlLike,
        *,
        method: Method = "GET",
        headers: HeadersLike | None = None,
        params: ParamsLike | None = None,
        body: bytes | str | Any | None = None,
        keep_data: bool = True,
        on_chunk: ChunkHandler | None = None,
        on_finish: BytesFinishHandler | None = None,
        on_error: ErrorHandler | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | httpx.Timeout | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Create a stream handle. No network IO is performed by the constructor.

        Args:
            url: Request URL, or a callable returning it for each invocation
            method: HTTP method ("GET" or "POST")
            headers: HTTP headers (static strings or callables)
            params: Query parameters (static strings or callables)
            body: Request body (bytes, str, or JSON-serializable value)
            keep_data: Accumulate received bytes in ``data``
            on_chunk: Called with each chunk, awaited before the next read
            on_finish: Called with all accumulated bytes at end of stream
            on_error: Called with the error on transport/network failure
            client: Optional httpx.AsyncClient to use (will not be closed)
            timeout: Request timeout
            **kwargs: Additional arguments passed to httpx build_request()
        """
        method_upper = method.upper()
        if method_upper not in _METHODS:
            raise ValueError(f"Unsupported method {method!r}, expected GET or POST")

        self._url = url
        self._method = method_upper
        self._headers = headers
        self._params = params
        self._body = body
        self._keep_data = keep_data
        self._on_chunk = on_chunk
        self._on_finish = on_finish
        self._on_error = on_error
        self._timeout = timeout
        self._kwargs = kwargs

        self._own_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout or DEFAULT_TIMEOUT)
        self._closed = False

        # Per-invocation state
        self._status = StreamStatus.IDLE
        self._error: Exception | None = None
        self._data = bytearray()
        self._abort_handle: AbortHandle | None = None
        self._task: asyncio.Task[None] | None = None
        self._last_task: asyncio.Task[None] | None = None

    # === Live state ===

    @property
    def status(self) -> StreamStatus:
        return self._status

    @property
    def is_streaming(self) -> bool:
        """True while an invocation is pending."""
        return self._status is StreamStatus.PENDING

    @property
    def error(self) -> Exception | None:
        """The error that ended the current invocation, if any."""
        return self._error

    @property
    def data(self) -> bytes:
        """Bytes received so far (always empty when keep_data is False)."""
        return bytes(self._data)

    @property
    def task(self) -> asyncio.Task[None] | None:
        """The asyncio task running the current invocation."""
        return self._task

    @property
    def abort_handle(self) -> AbortHandle | None:
        return self._abort_handle

    @property
    def closed(self) -> bool:
        return self._closed

    # === Control ===

    def start(self) -> asyncio.Task[None]:
        """
        Begin a new invocation and return the task running it.

        Any previous invocation is cleared first. Must be called with a
        running event loop. When called from one of this handle's own
        handlers, the new invocation does not wait for the calling one to
        unwind, so the caller may await it in place.
        """
        if self._closed:
            raise RuntimeError("Cannot start a closed stream")

        previous = self._last_task
        if previous is not None and previous is asyncio.current_task():
            previous = None
        self.clear()

        handle = AbortHandle()
        data = bytearray()
        self._abort_handle = handle
        self._data = data
        self._status = StreamStatus.PENDING

        task = asyncio.create_task(self._run(handle, data, previous))
        handle.bind(task)
        self._task = task
        self._last_task = task
        return task

    async def refresh(self) -> AsyncFetchStream:
        """Clear any previous invocation, re-issue the request and await it."""
        self.start()
        return await self.wait()

    def abort(self) -> None:
        """
        Abort the pending invocation.

        The status becomes ``aborted`` immediately; the read loop unwinds at
        its next suspension point. No-op when nothing is pending.
        """
        if self._status is not StreamStatus.PENDING:
            return
        self._status = StreamStatus.ABORTED
        logger.debug("Aborting stream %s", self._url)
        if self._abort_handle is not None:
            self._abort_handle.abort()

    def clear(self) -> None:
        """Cancel any in-flight invocation and reset all state to idle."""
        if self._abort_handle is not None:
            self._abort_handle.abort()
        self._abort_handle = None
        self._task = None
        self._data = bytearray()
        self._error = None
        self._status = StreamStatus.IDLE

    async def wait(self) -> AsyncFetchStream:
        """
        Wait for the current invocation to settle.

        Returns:
            This handle, after success or abort

        Raises:
            The invocation's error if it failed
        """
        task = self._task
        handle = self._abort_handle
        if task is None:
            return self
        await asyncio.wait([task])
        if task.cancelled():
            # Cancelled by someone other than abort()/clear()
            if handle is not None and not handle.aborted:
                raise asyncio.CancelledError()
            return self
        task.result()
        return self

    def __await__(self) -> Generator[Any, None, AsyncFetchStream]:
        """Allow: await reader"""
        return self.wait().__await__()

    async def aclose(self) -> None:
        """Abort any invocation, wait for its teardown and release resources."""
        if self._closed:
            return
        self._closed = True
        last = self._last_task
        self.clear()
        if last is not None and not last.done():
            await asyncio.wait([last])
        if self._own_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncFetchStream:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    # === Invocation ===

    def _is_current(self, handle: AbortHandle) -> bool:
        return self._abort_handle is handle

    async def _run(
        self,
        handle: AbortHandle,
        data: bytearray,
        previous: asyncio.Task[None] | None,
    ) -> None:
        url: str | None = None
        try:
            # The superseded invocation must be fully torn down first
            if previous is not None and not previous.done():
                await asyncio.wait([previous])

            url = resolve_url(self._url)
            logger.debug("Starting stream %s %s", self._method, url)
            await self._stream(handle, data, url)

        except asyncio.CancelledError:
            if handle.aborted:
                logger.debug("Stream aborted: %s", url)
                return
            raise

        except Exception as e:
            if handle.aborted or not self._is_current(handle):
                logger.debug("Ignoring error from aborted stream %s: %r", url, e)
                return
            self._error = e
            self._status = StreamStatus.ERROR
            logger.warning("Stream failed: %s: %s", url, e)
            await call_handler(self._on_error, e)
            if handle.aborted:
                # Superseded from inside on_error, e.g. a retry via refresh()
                logger.debug("Stream %s was superseded from its error handler", url)
                return
            raise

    async def _stream(self, handle: AbortHandle, data: bytearray, url: str) -> None:
        resolved_headers = await resolve_headers_async(self._headers)
        resolved_params = await resolve_params_async(self._params)
        request_url = build_url_with_params(url, resolved_params)

        request_kwargs = dict(self._kwargs)
        if self._timeout is not None:
            request_kwargs["timeout"] = self._timeout
        if self._body is not None:
            request_kwargs["content"] = encode_body(self._body)

        request = self._client.build_request(
            self._method,
            request_url,
            headers=resolved_headers,
            **request_kwargs,
        )

        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise NetworkError(f"Request failed: {e}", url=url) from e

        try:
            if not response.is_success or response.status_code in NULL_BODY_STATUSES:
                # For errors, read body for error details
                try:
                    body_bytes = await response.aread()
                except httpx.HTTPError as e:
                    logger.debug("Could not read error body from %s: %s", url, e)
                    body_bytes = b""
                raise error_from_status(
                    response.status_code,
                    url,
                    body=body_bytes.decode("utf-8", errors="replace"),
                    headers=parse_httpx_headers(response.headers),
                )

            async with aclosing(_aiter_body(response, url)) as chunks:
                async for chunk in chunks:
                    if self._keep_data:
                        data.extend(chunk)
                    await call_handler(self._on_chunk, chunk)
                    # An abort raised from inside a handler ends the loop here
                    if handle.aborted:
                        return

            await call_handler(self._on_finish, bytes(data))
            if handle.aborted:
                return
            self._status = StreamStatus.SUCCESS
            logger.debug("Stream finished: %s", url)
        finally:
            await response.aclose()


def fetch_stream(
    url: UrlLike,
    *,
    immediate: bool = True,
    **options: Any,
) -> AsyncFetchStream:
    """
    Create a stream handle and, by default, start reading immediately.

    Args:
        url: Request URL, or a callable returning it for each invocation
        immediate: Start the first invocation now (requires a running loop);
            when False, call start() or refresh() later
        **options: Keyword options accepted by AsyncFetchStream

    Returns:
        AsyncFetchStream handle, which can also be awaited for the outcome

    Example:
        >>> reader = fetch_stream("https://example.com/feed", keep_data=True)
        >>> await reader
        >>> print(reader.data)
    """
    reader = AsyncFetchStream(url, **options)
    if immediate:
        reader.start()
    return reader
