"""
Parsing utilities for newline-delimited record streams.

This module handles incremental byte-to-text decoding, line reassembly
across chunk boundaries, and the default record parsers.
"""

import codecs
import json
from collections.abc import Callable
from typing import Any

from pydantic import TypeAdapter

from fetch_stream._types import DEFAULT_ENCODING, DEFAULT_LINE_BREAK, T

# Factory returning a fresh incremental decoder
DecoderFactory = Callable[[], codecs.IncrementalDecoder]


def default_decoder_factory(
    encoding: str = DEFAULT_ENCODING, errors: str = "replace"
) -> DecoderFactory:
    """
    Build a factory for incremental decoders of the given encoding.

    Args:
        encoding: Text encoding of the response body
        errors: Codec error handling scheme

    Returns:
        Zero-argument callable creating a new IncrementalDecoder

    Raises:
        LookupError: If the encoding is unknown
    """
    decoder_cls = codecs.getincrementaldecoder(encoding)
    return lambda: decoder_cls(errors)


class LineBuffer:
    """
    Incremental line splitter.

    Holds the text after the last delimiter seen so far. After every call to
    feed() the pending tail contains no delimiter.

    Text without a delimiter is only appended, and each feed searches just the
    new text plus the few characters before it that could begin a delimiter,
    so one long record spread over many chunks is reassembled in linear time.
    """

    def __init__(self, line_break: str = DEFAULT_LINE_BREAK) -> None:
        if not line_break:
            raise ValueError("line_break must be a non-empty string")
        self._line_break = line_break
        self._overlap = len(line_break) - 1
        self._parts: list[str] = []
        # Last len(line_break) - 1 characters of the pending tail
        self._edge = ""

    @property
    def line_break(self) -> str:
        return self._line_break

    @property
    def pending(self) -> str:
        """Text received after the last delimiter."""
        return "".join(self._parts)

    def feed(self, text: str) -> list[str]:
        """
        Feed decoded text and return every completed segment.

        The last split segment is always kept as the new tail, since more
        text for it may still arrive.

        Args:
            text: Decoded text chunk

        Returns:
            Completed segments in order (may include blank segments)
        """
        if not text:
            return []

        window = self._edge + text
        if self._line_break not in window:
            self._parts.append(text)
            self._edge = window[-self._overlap :] if self._overlap else ""
            return []

        self._parts.append(text)
        *lines, tail = "".join(self._parts).split(self._line_break)
        self._parts = [tail] if tail else []
        self._edge = tail[-self._overlap :] if self._overlap else ""
        return lines

    def finish(self) -> list[str]:
        """
        Flush the tail as a final segment if it holds non-whitespace text.

        Returns:
            A list with the unterminated final segment, or an empty list
        """
        tail = self.pending
        self._parts = []
        self._edge = ""
        if tail.strip():
            return [tail]
        return []


class LineDecoder:
    """
    Bytes-to-lines decoder for a single stream invocation.

    Combines a stateful incremental text decoder, so that multi-byte
    characters split across chunks decode correctly, with a LineBuffer.
    """

    def __init__(
        self,
        line_break: str = DEFAULT_LINE_BREAK,
        decoder: codecs.IncrementalDecoder | None = None,
    ) -> None:
        self._decoder = decoder or default_decoder_factory()()
        self._lines = LineBuffer(line_break)

    @property
    def pending(self) -> str:
        return self._lines.pending

    def feed(self, chunk: bytes) -> list[str]:
        """Decode a raw chunk and return the lines it completes."""
        text = self._decoder.decode(chunk)
        if not text:
            return []
        return self._lines.feed(text)

    def finish(self) -> list[str]:
        """Flush the decoder and return any remaining lines."""
        lines = self._lines.feed(self._decoder.decode(b"", final=True))
        lines.extend(self._lines.finish())
        return lines


def parse_json_line(line: str) -> Any:
    """
    Default line parser: one JSON value per line.

    Args:
        line: Raw line text

    Returns:
        Parsed JSON value

    Raises:
        json.JSONDecodeError: If the line is not valid JSON
    """
    return json.loads(line)


def model_parser(model: type[T] | TypeAdapter[T]) -> Callable[[str], T]:
    """
    Build a line parser that validates each JSON line into a typed record.

    Args:
        model: A pydantic model, any type pydantic can validate, or a
            ready-made TypeAdapter

    Returns:
        Parser suitable for the ``parse`` option

    Example:
        >>> class Event(BaseModel):
        ...     id: int
        >>> parse = model_parser(Event)
        >>> parse('{"id": 1}')
        Event(id=1)
    """
    adapter: TypeAdapter[T] = (
        model if isinstance(model, TypeAdapter) else TypeAdapter(model)
    )

    def parse(line: str) -> T:
        return adapter.validate_json(line)

    return parse


def parse_httpx_headers(headers: Any) -> dict[str, str]:
    """
    Convert httpx Headers object to a plain dict.

    Args:
        headers: httpx Headers object

    Returns:
        Plain dict of headers
    """
    return dict(headers.items())
