"""Error taxonomy shared by the fetcher, parser, assembler and API.

Client-caused failures (:class:`ValidationError`) map to HTTP 400 and never
reach the network.  Network-caused failures (:class:`FetchError`) map to
HTTP 500.  :class:`ParseFailureError` is recoverable: the assembler falls back
to the raw HTML.
"""

from __future__ import annotations

from enum import StrEnum
from http import HTTPStatus
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from readerproxy.items import ErrorRecord


class ErrorKind(StrEnum):
    INVALID_URL = "invalid_url"
    TIMEOUT = "timeout"
    TOO_MANY_REDIRECTS = "too_many_redirects"
    DNS_FAILURE = "dns_failure"
    HTTP_STATUS = "http_status"
    CONNECTION = "connection"
    PARSE_FAILURE = "parse_failure"
    INTERNAL = "internal"


class ReaderProxyError(RuntimeError):
    """Base class for every error raised by readerproxy.

    Attributes:
        url    -- the URL being processed ("" when unknown)
        detail -- raw diagnostic (the underlying exception text)
    """

    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = 500
    default_summary = "Failed to fetch URL"

    def __init__(self, detail: str = "", url: str = "") -> None:
        super().__init__(detail or self.default_summary)
        self.url = url
        self.detail = detail or self.default_summary

    @property
    def summary(self) -> str:
        """Short human-readable message returned as ``error`` in the API."""
        return self.default_summary

    def to_record(self) -> ErrorRecord:
        from readerproxy.items import ErrorRecord

        return ErrorRecord(kind=self.kind, message=self.summary, detail=self.detail)


# ---------------------------------------------------------------------------
# Client errors (400)
# ---------------------------------------------------------------------------

class ValidationError(ReaderProxyError):
    status_code = 400


class MissingURLError(ValidationError):
    kind = ErrorKind.INVALID_URL
    default_summary = "URL parameter is required"


class InvalidURLError(ValidationError):
    kind = ErrorKind.INVALID_URL
    default_summary = "Invalid URL format"


# ---------------------------------------------------------------------------
# Network errors (500)
# ---------------------------------------------------------------------------

class FetchError(ReaderProxyError):
    """Raised when a URL cannot be retrieved."""


class FetchTimeoutError(FetchError):
    kind = ErrorKind.TIMEOUT
    default_summary = "Request timeout"


class DNSFailureError(FetchError):
    kind = ErrorKind.DNS_FAILURE
    default_summary = "DNS resolution failed"


class TooManyRedirectsError(FetchError):
    kind = ErrorKind.TOO_MANY_REDIRECTS
    default_summary = "Too many redirects"


class ConnectionFailureError(FetchError):
    kind = ErrorKind.CONNECTION


class HttpStatusError(FetchError):
    """Final response had a non-2xx status."""

    kind = ErrorKind.HTTP_STATUS

    def __init__(self, status: int, reason: str = "", detail: str = "", url: str = "") -> None:
        if not reason:
            try:
                reason = HTTPStatus(status).phrase
            except ValueError:
                reason = ""
        self.status = status
        self.reason = reason
        super().__init__(detail or f"Request failed with status code {status}", url=url)

    @property
    def summary(self) -> str:
        if self.reason:
            return f"HTTP {self.status}: {self.reason}"
        return f"HTTP {self.status}"

    def to_record(self) -> ErrorRecord:
        record = super().to_record()
        return record.model_copy(update={"status": self.status, "reason": self.reason})


# ---------------------------------------------------------------------------
# Parse errors (recoverable)
# ---------------------------------------------------------------------------

class ParseFailureError(ReaderProxyError):
    kind = ErrorKind.PARSE_FAILURE
    default_summary = "Failed to parse HTML"
