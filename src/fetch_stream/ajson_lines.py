"""
AsyncJSONLinesStream - newline-delimited record decoding over AsyncFetchStream.

Raw chunks are decoded incrementally, reassembled into lines across chunk
boundaries, and each complete line is parsed into a record.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Generator
from typing import Any, Generic

import httpx

from fetch_stream._abort import AbortHandle
from fetch_stream._errors import LineParseError
from fetch_stream._parse import (
    DecoderFactory,
    LineDecoder,
    default_decoder_factory,
    parse_json_line,
)
from fetch_stream._types import (
    DEFAULT_ENCODING,
    DEFAULT_LINE_BREAK,
    ErrorHandler,
    HeadersLike,
    LineParser,
    Method,
    ParamsLike,
    ParseErrorHandler,
    RecordHandler,
    RecordsFinishHandler,
    StreamStatus,
    T,
    UrlLike,
)
from fetch_stream._util import call_handler
from fetch_stream.afetch_stream import AsyncFetchStream

logger = logging.getLogger(__name__)


class _LineState(Generic[T]):
    """Decoding state owned by one invocation."""

    __slots__ = ("handle", "last_parse_error", "line_number", "lines", "records")

    def __init__(self, lines: LineDecoder | None = None) -> None:
        self.lines = lines
        self.records: list[T] = []
        self.line_number = 0
        self.last_parse_error: LineParseError | None = None
        self.handle: AbortHandle | None = None


class AsyncJSONLinesStream(Generic[T]):
    """
    A reusable handle that streams newline-delimited records.

    Wraps an AsyncFetchStream and exposes the same handle surface, with
    ``data`` holding the parsed records of the current invocation.

    A line that fails to parse is reported to ``on_parse_error``. By default
    this also aborts the whole invocation; pass
    ``finish_on_parse_error=False`` to skip the bad line and keep going.
    Parse failures never reach ``on_error``.

    Example:
        >>> records = AsyncJSONLinesStream(
        ...     "https://example.com/events.jsonl",
        ...     on_line_parsed=print,
        ... )
        >>> await records.refresh()
        >>> records.data
        [{'id': 1}, {'id': 2}]
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
        on_line_parsed: RecordHandler | None = None,
        on_parse_error: ParseErrorHandler | None = None,
        on_finish: RecordsFinishHandler | None = None,
        on_error: ErrorHandler | None = None,
        encoding: str = DEFAULT_ENCODING,
        decoder: DecoderFactory | None = None,
        line_break: str = DEFAULT_LINE_BREAK,
        parse: LineParser = parse_json_line,
        finish_on_parse_error: bool = True,
        client: httpx.AsyncClient | None = None,
        timeout: float | httpx.Timeout | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Create a record stream handle. No network IO is performed.

        Args:
            url: Request URL, or a callable returning it for each invocation
            method: HTTP method ("GET" or "POST")
            headers: HTTP headers (static strings or callables)
            params: Query parameters (static strings or callables)
            body: Request body (bytes, str, or JSON-serializable value)
            keep_data: Accumulate parsed records in ``data``
            on_line_parsed: Called with each parsed record, in line order
            on_parse_error: Called with (LineParseError, raw line)
            on_finish: Called with the record list at end of stream
            on_error: Called with the error on transport/network failure
            encoding: Body text encoding used by the default decoder
            decoder: Factory for a fresh incremental decoder per invocation
            line_break: Record delimiter
            parse: Line parser, JSON by default
            finish_on_parse_error: Abort the invocation on the first bad line
            client: Optional httpx.AsyncClient to use (will not be closed)
            timeout: Request timeout
            **kwargs: Additional arguments passed to httpx build_request()
        """
        if not line_break:
            raise ValueError("line_break must be a non-empty string")

        self._keep_data = keep_data
        self._on_line_parsed = on_line_parsed
        self._on_parse_error = on_parse_error
        self._on_finish = on_finish
        self._decoder_factory = decoder or default_decoder_factory(encoding)
        self._line_break = line_break
        self._parse = parse
        self._finish_on_parse_error = finish_on_parse_error

        self._state: _LineState[T] = _LineState()

        # Byte accumulation is not needed underneath, only records are kept
        self._stream = AsyncFetchStream(
            url,
            method=method,
            headers=headers,
            params=params,
            body=body,
            keep_data=False,
            on_chunk=self._handle_chunk,
            on_finish=self._handle_finish,
            on_error=on_error,
            client=client,
            timeout=timeout,
            **kwargs,
        )

    # === Live state ===

    @property
    def status(self) -> StreamStatus:
        return self._stream.status

    @property
    def is_streaming(self) -> bool:
        return self._stream.is_streaming

    @property
    def error(self) -> Exception | None:
        return self._stream.error

    @property
    def data(self) -> list[T]:
        """Records parsed so far (always empty when keep_data is False)."""
        return self._state.records

    @property
    def last_parse_error(self) -> LineParseError | None:
        """The most recent line parse failure of the current invocation."""
        return self._state.last_parse_error

    @property
    def pending_text(self) -> str:
        """Decoded text after the last delimiter, not yet parsed."""
        lines = self._state.lines
        return lines.pending if lines is not None else ""

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._stream.task

    @property
    def finish_on_parse_error(self) -> bool:
        return self._finish_on_parse_error

    # === Control ===

    def start(self) -> asyncio.Task[None]:
        """Begin a new invocation and return the task running it."""
        self.clear()
        state: _LineState[T] = _LineState(
            LineDecoder(self._line_break, self._decoder_factory())
        )
        self._state = state
        task = self._stream.start()
        # The task has not run yet, so no chunk can reach a state without handle
        state.handle = self._stream.abort_handle
        return task

    async def refresh(self) -> AsyncJSONLinesStream[T]:
        """Clear any previous invocation, re-issue the request and await it."""
        self.start()
        return await self.wait()

    def abort(self) -> None:
        self._stream.abort()

    def clear(self) -> None:
        """Cancel any in-flight invocation and drop all records and buffers."""
        self._state = _LineState()
        self._stream.clear()

    async def wait(self) -> AsyncJSONLinesStream[T]:
        await self._stream.wait()
        return self

    def __await__(self) -> Generator[Any, None, AsyncJSONLinesStream[T]]:
        return self.wait().__await__()

    async def aclose(self) -> None:
        await self._stream.aclose()

    async def __aenter__(self) -> AsyncJSONLinesStream[T]:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    # === Line processing ===

    # Handlers run inside the invocation's task and capture its state before
    # any await, so a restart from a user handler never mixes invocations.

    async def _handle_chunk(self, chunk: bytes) -> None:
        state = self._state
        if state.lines is None:
            return
        await self._process_lines(state, state.lines.feed(chunk))

    async def _handle_finish(self, _data: bytes) -> None:
        state = self._state
        if state.lines is not None:
            # The final record may have no trailing delimiter
            await self._process_lines(state, state.lines.finish())

        if state.handle is None or state.handle.aborted:
            return
        await call_handler(self._on_finish, state.records)

    async def _process_lines(self, state: _LineState[T], lines: list[str]) -> None:
        handle = state.handle

        for line in lines:
            if handle is None or handle.aborted:
                break

            state.line_number += 1
            if not line.strip():
                continue

            try:
                record = self._parse(line)
            except Exception as e:
                error = LineParseError(
                    f"Failed to parse line: {e}",
                    line=line,
                    line_number=state.line_number,
                )
                error.__cause__ = e
                state.last_parse_error = error
                logger.warning("%s", error)

                await call_handler(self._on_parse_error, error, line)
                if self._finish_on_parse_error:
                    if not handle.aborted:
                        self._stream.abort()
                    break
                continue

            if self._keep_data:
                state.records.append(record)
            await call_handler(self._on_line_parsed, record)


def fetch_json_lines(
    url: UrlLike,
    *,
    immediate: bool = True,
    **options: Any,
) -> AsyncJSONLinesStream[Any]:
    """
    Create a record stream handle and, by default, start reading immediately.

    Args:
        url: Request URL, or a callable returning it for each invocation
        immediate: Start the first invocation now (requires a running loop)
        **options: Keyword options accepted by AsyncJSONLinesStream

    Returns:
        AsyncJSONLinesStream handle, which can also be awaited

    Example:
        >>> stream = fetch_json_lines("https://example.com/events.jsonl")
        >>> await stream
        >>> for record in stream.data:
        ...     print(record)
    """
    stream: AsyncJSONLinesStream[Any] = AsyncJSONLinesStream(url, **options)
    if immediate:
        stream.start()
    return stream
