"""
Core types for the fetch-stream engine.

This module defines the fundamental types and constants used throughout the
library.
"""

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Literal, TypeVar

# Type parameter for parsed records
T = TypeVar("T")


class StreamStatus(str, Enum):
    """
    Lifecycle state of a stream invocation.

    Transitions are monotonic within one invocation:
    idle -> pending -> success | aborted | error
    """

    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ABORTED = "aborted"
    ERROR = "error"


# Supported request methods
Method = Literal["GET", "POST"]

# URL can be static or computed per invocation
UrlLike = str | Callable[[], str]

# Type for headers - can be static strings or callables
HeadersLike = dict[str, str | Callable[[], Any]]

# Type for params - can be static strings or callables
ParamsLike = dict[str, str | Callable[[], Any] | None]

# Handlers may be plain functions or coroutine functions
ChunkHandler = Callable[[bytes], Awaitable[None] | None]
BytesFinishHandler = Callable[[bytes], Awaitable[None] | None]
ErrorHandler = Callable[[Exception], Awaitable[None] | None]
RecordHandler = Callable[[Any], Awaitable[None] | None]
RecordsFinishHandler = Callable[[list[Any]], Awaitable[None] | None]
ParseErrorHandler = Callable[[Exception, str], Awaitable[None] | None]

# Line parser: raw line text -> record
LineParser = Callable[[str], Any]


# Defaults
DEFAULT_TIMEOUT = 30.0
DEFAULT_LINE_BREAK = "\n"
DEFAULT_ENCODING = "utf-8"

# Statuses whose responses never carry a body
NULL_BODY_STATUSES = frozenset({101, 103, 204, 205, 304})
