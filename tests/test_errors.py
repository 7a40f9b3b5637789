"""Tests for error handling."""

import pytest

from fetch_stream._errors import (
    FetchStreamError,
    LineParseError,
    NetworkError,
    TransportError,
    error_from_status,
)


class TestFetchStreamError:
    """Tests for FetchStreamError."""

    def test_basic_error(self) -> None:
        error = FetchStreamError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.status is None
        assert error.code is None

    def test_error_with_status_and_code(self) -> None:
        error = FetchStreamError("Not found", status=404, code="NOT_FOUND")
        assert "(status=404)" in str(error)
        assert "[NOT_FOUND]" in str(error)
        assert "NOT_FOUND" in repr(error)


class TestSpecificErrors:
    """Tests for specific error types."""

    def test_transport_error_defaults(self) -> None:
        error = TransportError("HTTP error 500", status=500, body="boom")
        assert error.code == "HTTP_ERROR"
        assert error.headers == {}
        assert error.body == "boom"
        assert isinstance(error, FetchStreamError)

    def test_network_error(self) -> None:
        error = NetworkError("Request failed", url="https://example.com")
        assert error.code == "NETWORK_ERROR"
        assert error.url == "https://example.com"
        assert error.status is None

    def test_line_parse_error(self) -> None:
        error = LineParseError("Failed to parse line", line="{bad", line_number=3)
        assert error.code == "PARSE_ERROR"
        assert error.line == "{bad"
        assert "line 3" in str(error)
        assert "'{bad'" in str(error)
        assert isinstance(error, ValueError)

    def test_line_parse_error_truncates_long_lines(self) -> None:
        error = LineParseError("Failed", line="x" * 500)
        assert len(str(error)) < 150
        assert "..." in str(error)


class TestErrorFromStatus:
    """Tests for error_from_status."""

    @pytest.mark.parametrize(
        ("status", "code"),
        [
            (400, "BAD_REQUEST"),
            (401, "UNAUTHORIZED"),
            (403, "FORBIDDEN"),
            (404, "NOT_FOUND"),
            (429, "RATE_LIMITED"),
            (503, "BUSY"),
        ],
    )
    def test_known_statuses(self, status: int, code: str) -> None:
        error = error_from_status(status, "https://example.com/feed")
        assert error.status == status
        assert error.code == code
        assert error.url == "https://example.com/feed"

    def test_generic_status(self) -> None:
        error = error_from_status(502, "https://example.com/feed", body="bad gateway")
        assert error.code == "HTTP_ERROR"
        assert error.body == "bad gateway"
        assert "502" in str(error)

    def test_success_without_body(self) -> None:
        error = error_from_status(204, "https://example.com/feed")
        assert error.code == "EMPTY_BODY"
        assert "empty" in error.message

    def test_headers_are_kept(self) -> None:
        error = error_from_status(
            500, "https://example.com", headers={"retry-after": "5"}
        )
        assert error.headers == {"retry-after": "5"}
