"""
Exception hierarchy for the fetch-stream engine.

This module defines all exceptions that can be raised by the library.
Aborting a stream is not an error and has no exception here.
"""


class FetchStreamError(Exception):
    """
    Base exception for all fetch-stream errors.

    Attributes:
        message: Human-readable error message
        status: HTTP status code (if applicable)
        url: The URL that was being fetched (if known)
        code: Error code for programmatic handling
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        url: str | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.url = url
        self.code = code

    def __str__(self) -> str:
        parts = [self.message]
        if self.status is not None:
            parts.append(f"(status={self.status})")
        if self.code is not None:
            parts.append(f"[{self.code}]")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"status={self.status!r}, "
            f"code={self.code!r})"
        )


class TransportError(FetchStreamError):
    """
    Exception for responses the engine cannot stream.

    Raised for a non-success HTTP status or for a response that has no body
    to read.

    Attributes:
        headers: Response headers (if available)
        body: Decoded response body (if available)
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        url: str | None = None,
        code: str | None = "HTTP_ERROR",
        headers: dict[str, str] | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message, status=status, url=url, code=code)
        self.headers = headers or {}
        self.body = body


class NetworkError(FetchStreamError):
    """
    Exception for failures while sending the request or reading the body.

    The underlying httpx exception is available as ``__cause__``.
    """

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message, url=url, code="NETWORK_ERROR")


class LineParseError(FetchStreamError, ValueError):
    """
    Exception raised when a single line cannot be parsed into a record.

    Never reported through ``on_error``; it is handed to ``on_parse_error``.

    Attributes:
        line: The raw line text that failed to parse
        line_number: 1-based index of the line within the invocation
    """

    def __init__(
        self,
        message: str,
        line: str,
        line_number: int | None = None,
    ) -> None:
        super().__init__(message, code="PARSE_ERROR")
        self.line = line
        self.line_number = line_number

    def __str__(self) -> str:
        preview = self.line[:100] + "..." if len(self.line) > 100 else self.line
        location = f" at line {self.line_number}" if self.line_number else ""
        return f"{self.message}{location}: {preview!r}"


def error_from_status(
    status: int,
    url: str,
    body: str | None = None,
    headers: dict[str, str] | None = None,
) -> TransportError:
    """
    Create an appropriate error from an HTTP status code.

    Args:
        status: The HTTP status code
        url: The URL that was requested
        body: The response body (if available)
        headers: The response headers (if available)

    Returns:
        A TransportError with a status-specific code
    """
    known = {
        400: ("Bad request", "BAD_REQUEST"),
        401: ("Unauthorized", "UNAUTHORIZED"),
        403: ("Forbidden", "FORBIDDEN"),
        404: ("Not found", "NOT_FOUND"),
        429: ("Rate limited", "RATE_LIMITED"),
        503: ("Service unavailable", "BUSY"),
    }

    if status in known:
        label, code = known[status]
        return TransportError(
            f"{label}: {url}",
            status=status,
            url=url,
            code=code,
            headers=headers,
            body=body,
        )

    if 200 <= status < 300:
        # Success status that cannot carry a body (e.g. 204)
        return TransportError(
            f"Response body is empty: {url}",
            status=status,
            url=url,
            code="EMPTY_BODY",
            headers=headers,
            body=body,
        )

    return TransportError(
        f"HTTP error {status} at {url}",
        status=status,
        url=url,
        code="HTTP_ERROR",
        headers=headers,
        body=body,
    )
