"""readerproxy.fetcher - single-attempt HTTP retrieval.

Uses only the stdlib (``urllib``) for HTTP.  Every call is one attempt: no
retries, a bounded number of redirects, and a timeout that bounds the whole
call rather than each socket operation.

Usage::

    from readerproxy.fetcher import fetch_page

    raw = fetch_page("https://example.com/blog/post", timeout_ms=5000)
    print(raw.final_url, raw.content_type, len(raw.html))
"""

from __future__ import annotations

import gzip
import http.client
import logging
import socket
import time
import urllib.error
import urllib.request
import zlib
from dataclasses import dataclass
from email.message import Message

import brotli
from bs4 import UnicodeDammit

from readerproxy import settings
from readerproxy.errors import (
    ConnectionFailureError,
    DNSFailureError,
    FetchError,
    FetchTimeoutError,
    HttpStatusError,
    TooManyRedirectsError,
)
from readerproxy.urls import validate_url

logger = logging.getLogger(__name__)

_READ_CHUNK = 64 * 1024


@dataclass
class RawDocument:
    """A fetched page, before any parsing."""

    html: str
    content: bytes
    final_url: str
    content_type: str = ""
    status: int = 200
    encoding: str | None = None


def browser_headers(user_agent: str | None = None) -> dict[str, str]:
    """Headers that make the request look like a regular desktop browser."""
    return {
        "User-Agent": user_agent or settings.USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": settings.ACCEPT_LANGUAGE,
        "Accept-Encoding": "gzip, deflate, br",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
    }


# ---------------------------------------------------------------------------
# Redirect bound
# ---------------------------------------------------------------------------

class _BoundedRedirectHandler(urllib.request.HTTPRedirectHandler):
    """Follow at most *max_redirects* redirects, then raise TooManyRedirectsError.

    urllib's own loop detection (``max_repeats`` / ``max_redirections``) is
    pushed past our bound so that every overflow is reported the same way.
    """

    def __init__(self, max_redirects: int) -> None:
        super().__init__()
        self.max_redirects = max_redirects
        self.max_repeats = max_redirects + 1
        self.max_redirections = max_redirects + 1

    def redirect_request(self, req, fp, code, msg, headers, newurl):  # noqa: ANN001
        followed = sum(getattr(req, "redirect_dict", {}).values())
        if followed >= self.max_redirects:
            raise TooManyRedirectsError(
                f"Maximum number of redirects exceeded ({self.max_redirects}) "
                f"at {req.full_url} -> {newurl}",
                url=req.full_url,
            )
        logger.debug("Redirect %d %s -> %s", code, req.full_url, newurl)
        return super().redirect_request(req, fp, code, msg, headers, newurl)


# ---------------------------------------------------------------------------
# Body decoding
# ---------------------------------------------------------------------------

def _decompress(raw: bytes, content_encoding: str, url: str) -> bytes:
    encoding = content_encoding.lower().strip()
    try:
        if encoding in ("gzip", "x-gzip"):
            return gzip.decompress(raw)
        if encoding in ("deflate", "zlib"):
            try:
                return zlib.decompress(raw)
            except zlib.error:
                # Some servers send raw deflate without the zlib header
                return zlib.decompress(raw, -zlib.MAX_WBITS)
        if encoding == "br":
            return brotli.decompress(raw)
    except (OSError, EOFError, zlib.error, brotli.error) as exc:
        raise ConnectionFailureError(
            f"{encoding} decompression failed for {url}: {exc}", url=url,
        ) from exc
    return raw


def _decode_text(raw: bytes, headers: Message | None) -> tuple[str, str | None]:
    """Decode *raw* to text: header charset, then sniffing, then UTF-8."""
    charset = headers.get_content_charset() if headers is not None else None
    if charset:
        try:
            return raw.decode(charset, errors="replace"), charset
        except LookupError:
            logger.debug("Unknown charset %r in Content-Type, sniffing instead", charset)

    dammit = UnicodeDammit(raw, is_html=True)
    if dammit.unicode_markup is not None:
        return dammit.unicode_markup, dammit.original_encoding
    return raw.decode("utf-8", errors="replace"), "utf-8"


def _response_socket(resp) -> socket.socket | None:  # noqa: ANN001
    raw = getattr(getattr(resp, "fp", None), "raw", None)
    sock = getattr(raw, "_sock", None)
    return sock if isinstance(sock, socket.socket) else None


def _read_body(resp, deadline: float, url: str) -> bytes:  # noqa: ANN001
    """Read the whole body, never blocking past *deadline*.

    ``read1`` returns whatever has arrived instead of waiting for a full
    chunk, and the socket timeout shrinks to the time left before each read.
    """
    sock = _response_socket(resp)
    chunks: list[bytes] = []
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise FetchTimeoutError(f"Reading response body from {url} exceeded the timeout", url=url)
        if sock is not None:
            sock.settimeout(remaining)
        chunk = resp.read1(_READ_CHUNK)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def _is_timeout(reason: object) -> bool:
    return isinstance(reason, (TimeoutError, socket.timeout))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def fetch_page(
    url: str,
    *,
    timeout_ms: int = settings.FETCH_TIMEOUT_MS,
    max_redirects: int = settings.MAX_REDIRECTS,
    user_agent: str | None = None,
    proxy: str | None = settings.PROXY,
) -> RawDocument:
    """Fetch *url* once and return a :class:`RawDocument`.

    Args:
        url:           Absolute http(s) URL.  Validated before any network I/O.
        timeout_ms:    Hard bound on the whole call, in milliseconds.
        max_redirects: Maximum number of redirects to follow.
        user_agent:    Override the default browser User-Agent string.
        proxy:         Optional proxy URL; environment proxies apply otherwise.

    Raises:
        InvalidURLError:       *url* is not an absolute http(s) URL.
        FetchTimeoutError:     the call exceeded *timeout_ms*.
        TooManyRedirectsError: more than *max_redirects* redirects.
        DNSFailureError:       the host name could not be resolved.
        HttpStatusError:       the final response was not 2xx.
        ConnectionFailureError: any other transport failure.
    """
    url = validate_url(url)
    timeout_s = timeout_ms / 1000.0
    deadline = time.monotonic() + timeout_s

    handlers: list[urllib.request.BaseHandler] = [_BoundedRedirectHandler(max_redirects)]
    if proxy:
        handlers.append(urllib.request.ProxyHandler({"http": proxy, "https": proxy}))
    opener = urllib.request.build_opener(*handlers)
    req = urllib.request.Request(url, headers=browser_headers(user_agent), method="GET")

    started = time.monotonic()
    try:
        with opener.open(req, timeout=timeout_s) as resp:
            raw = _read_body(resp, deadline, url)
            raw = _decompress(raw, resp.headers.get("Content-Encoding", ""), url)
            html, encoding = _decode_text(raw, resp.headers)
            final_url = resp.geturl() or url
            content_type = resp.headers.get("Content-Type", "")
            status = resp.status

    except urllib.error.HTTPError as exc:
        exc.close()
        reason = exc.reason if isinstance(exc.reason, str) else ""
        raise HttpStatusError(
            exc.code,
            reason,
            detail=f"Request failed with status code {exc.code}",
            url=url,
        ) from exc

    except urllib.error.URLError as exc:
        if _is_timeout(exc.reason):
            raise FetchTimeoutError(f"timeout of {timeout_ms}ms exceeded", url=url) from exc
        if isinstance(exc.reason, socket.gaierror):
            raise DNSFailureError(f"getaddrinfo failed for {url}: {exc.reason}", url=url) from exc
        raise ConnectionFailureError(f"URL error fetching {url}: {exc.reason}", url=url) from exc

    except FetchError:
        raise

    except TimeoutError as exc:
        raise FetchTimeoutError(f"timeout of {timeout_ms}ms exceeded", url=url) from exc

    except http.client.HTTPException as exc:
        raise ConnectionFailureError(f"Malformed response from {url}: {exc!r}", url=url) from exc

    except OSError as exc:
        raise ConnectionFailureError(f"Network error fetching {url}: {exc}", url=url) from exc

    logger.debug(
        "Fetched %s -> %s (%d, %d bytes, %.0fms)",
        url, final_url, status, len(raw), (time.monotonic() - started) * 1000,
    )
    return RawDocument(
        html=html,
        content=raw,
        final_url=final_url,
        content_type=content_type,
        status=status,
        encoding=encoding,
    )
