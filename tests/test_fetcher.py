"""Tests for readerproxy.fetcher against a local HTTP server."""

from __future__ import annotations

import socket
import time
from unittest.mock import patch

import pytest

from readerproxy.errors import (
    ConnectionFailureError,
    DNSFailureError,
    FetchTimeoutError,
    HttpStatusError,
    InvalidURLError,
    TooManyRedirectsError,
)
from readerproxy.fetcher import RawDocument, browser_headers, fetch_page

# Matches the sleep in the local server's /slow route
SLOW_RESPONSE_S = 1.5
# Matches the local server's /drip route: 20 bytes, one every 0.2s
DRIP_TOTAL_S = 20 * 0.2


# ---------------------------------------------------------------------------
# Successful fetches
# ---------------------------------------------------------------------------

class TestFetchPage:
    def test_returns_raw_document(self, page_server, article_html):
        raw = fetch_page(f"{page_server}/article")
        assert isinstance(raw, RawDocument)
        assert raw.html == article_html
        assert raw.status == 200
        assert raw.content_type.startswith("text/html")
        assert raw.final_url == f"{page_server}/article"

    def test_final_url_after_redirect(self, page_server):
        raw = fetch_page(f"{page_server}/moved")
        assert raw.final_url == f"{page_server}/article"

    def test_gzip_body_decoded(self, page_server, article_html):
        raw = fetch_page(f"{page_server}/gzip")
        assert raw.html == article_html

    def test_header_charset(self, page_server):
        raw = fetch_page(f"{page_server}/latin1")
        assert "café au lait" in raw.html
        assert raw.encoding == "iso-8859-1"

    def test_meta_charset_sniffed(self, page_server):
        raw = fetch_page(f"{page_server}/meta-charset")
        assert "naïve café" in raw.html

    def test_empty_body(self, page_server):
        raw = fetch_page(f"{page_server}/empty")
        assert raw.html == ""
        assert raw.content == b""


# ---------------------------------------------------------------------------
# Redirect bound
# ---------------------------------------------------------------------------

class TestRedirects:
    def test_five_redirects_followed(self, page_server):
        raw = fetch_page(f"{page_server}/hop/5")
        assert raw.final_url == f"{page_server}/hop/0"
        assert "Landed" in raw.html

    def test_sixth_redirect_fails(self, page_server):
        with pytest.raises(TooManyRedirectsError) as exc_info:
            fetch_page(f"{page_server}/hop/6")
        assert exc_info.value.summary == "Too many redirects"

    def test_redirect_loop(self, page_server):
        with pytest.raises(TooManyRedirectsError):
            fetch_page(f"{page_server}/loop")

    def test_custom_bound(self, page_server):
        with pytest.raises(TooManyRedirectsError):
            fetch_page(f"{page_server}/hop/2", max_redirects=1)
        assert fetch_page(f"{page_server}/hop/1", max_redirects=1).final_url == f"{page_server}/hop/0"

    def test_zero_redirects(self, page_server):
        with pytest.raises(TooManyRedirectsError):
            fetch_page(f"{page_server}/moved", max_redirects=0)


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestFailures:
    def test_http_404(self, page_server):
        with pytest.raises(HttpStatusError) as exc_info:
            fetch_page(f"{page_server}/missing")
        err = exc_info.value
        assert err.status == 404
        assert err.summary == "HTTP 404: Not Found"
        assert err.detail == "Request failed with status code 404"

    def test_http_500(self, page_server):
        with pytest.raises(HttpStatusError) as exc_info:
            fetch_page(f"{page_server}/broken")
        assert exc_info.value.summary == "HTTP 500: Internal Server Error"

    def test_timeout(self, page_server):
        started = time.monotonic()
        with pytest.raises(FetchTimeoutError) as exc_info:
            fetch_page(f"{page_server}/slow", timeout_ms=300)
        elapsed = time.monotonic() - started
        assert elapsed < SLOW_RESPONSE_S
        assert exc_info.value.summary == "Request timeout"

    def test_trickled_body_bounded_by_timeout(self, page_server):
        started = time.monotonic()
        with pytest.raises(FetchTimeoutError):
            fetch_page(f"{page_server}/drip", timeout_ms=1000)
        elapsed = time.monotonic() - started
        assert elapsed < 1.8
        assert elapsed < DRIP_TOTAL_S

    def test_error_response_closed(self, page_server):
        with pytest.raises(HttpStatusError) as exc_info:
            fetch_page(f"{page_server}/missing")
        assert exc_info.value.__cause__.fp.closed

    def test_dns_failure(self):
        gaierror = socket.gaierror(socket.EAI_NONAME, "Name or service not known")
        with patch("socket.getaddrinfo", side_effect=gaierror), pytest.raises(DNSFailureError) as exc_info:
            fetch_page("http://no-such-host.invalid/")
        assert exc_info.value.summary == "DNS resolution failed"

    def test_connection_refused(self):
        with socket.socket() as sock:
            sock.bind(("127.0.0.1", 0))
            port = sock.getsockname()[1]
        with pytest.raises(ConnectionFailureError) as exc_info:
            fetch_page(f"http://127.0.0.1:{port}/")
        assert exc_info.value.summary == "Failed to fetch URL"

    def test_corrupt_gzip(self, page_server):
        with pytest.raises(ConnectionFailureError):
            fetch_page(f"{page_server}/bad-gzip")

    def test_invalid_url_never_hits_network(self):
        with patch("urllib.request.OpenerDirector.open") as opener, pytest.raises(InvalidURLError):
            fetch_page("not-a-url")
        opener.assert_not_called()


class TestHeaders:
    def test_browser_headers(self):
        headers = browser_headers()
        assert headers["User-Agent"].startswith("Mozilla/5.0")
        assert headers["Accept-Encoding"] == "gzip, deflate, br"
        assert "Accept-Language" in headers

    def test_custom_user_agent(self):
        assert browser_headers("TestAgent/1.0")["User-Agent"] == "TestAgent/1.0"
