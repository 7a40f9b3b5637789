"""
fetch-stream

An incremental HTTP response streaming engine built on httpx.

This package provides an async reader that hands each response chunk to a
caller-supplied handler, and a newline-delimited record decoder layered on
top of it that surfaces each parsed record as it arrives.

Example usage:
    >>> from fetch_stream import fetch_stream, fetch_json_lines
    >>>
    >>> # Raw chunks
    >>> reader = fetch_stream("https://example.com/feed", on_chunk=handle)
    >>> await reader
    >>>
    >>> # JSON lines
    >>> records = fetch_json_lines(
    ...     "https://example.com/events.jsonl",
    ...     on_line_parsed=print,
    ... )
    >>> await records
    >>> records.status
    <StreamStatus.SUCCESS: 'success'>
"""

from importlib.metadata import PackageNotFoundError, version

from fetch_stream._abort import AbortHandle
from fetch_stream._errors import (
    FetchStreamError,
    LineParseError,
    NetworkError,
    TransportError,
)
from fetch_stream._parse import LineBuffer, LineDecoder, model_parser
from fetch_stream._types import (
    HeadersLike,
    ParamsLike,
    StreamStatus,
    UrlLike,
)
from fetch_stream.afetch_stream import AsyncFetchStream, fetch_stream
from fetch_stream.ajson_lines import AsyncJSONLinesStream, fetch_json_lines

__all__ = [
    # Types
    "StreamStatus",
    "HeadersLike",
    "ParamsLike",
    "UrlLike",
    "AbortHandle",
    # Errors
    "FetchStreamError",
    "TransportError",
    "NetworkError",
    "LineParseError",
    # Parsing
    "LineBuffer",
    "LineDecoder",
    "model_parser",
    # Top-level functions
    "fetch_stream",
    "fetch_json_lines",
    # Handle classes
    "AsyncFetchStream",
    "AsyncJSONLinesStream",
]

try:
    __version__ = version("fetch-stream")
except PackageNotFoundError:
    __version__ = "0.1.0"
