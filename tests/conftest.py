"""Shared pytest fixtures."""

from __future__ import annotations

import gzip
import threading
import time
from collections.abc import Iterator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"

_PROXY_VARS = (
    "http_proxy", "https_proxy", "all_proxy", "no_proxy",
    "HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "NO_PROXY",
)

SLOW_RESPONSE_S = 1.5
DRIP_BYTES = 20
DRIP_INTERVAL_S = 0.2


def _read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def article_html() -> str:
    return _read_fixture("article.html")


@pytest.fixture
def short_html() -> str:
    return _read_fixture("short.html")


@pytest.fixture
def nav_footer_html() -> str:
    return _read_fixture("nav_footer.html")


@pytest.fixture(autouse=True)
def _no_env_proxies(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep requests to the local test server off any configured proxy."""
    for name in _PROXY_VARS:
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# Local HTTP server
# ---------------------------------------------------------------------------

class _PageHandler(BaseHTTPRequestHandler):
    def log_message(self, format, *args):  # noqa: A002
        pass

    def _send(self, status: int, body: bytes, content_type: str = "text/html; charset=utf-8",
              headers: dict[str, str] | None = None) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        for name, value in (headers or {}).items():
            self.send_header(name, value)
        self.end_headers()
        self.wfile.write(body)

    def _redirect(self, location: str, status: int = 302) -> None:
        self.send_response(status)
        self.send_header("Location", location)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def _drip(self) -> None:
        """Announce DRIP_BYTES of body, then send one byte per DRIP_INTERVAL_S."""
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(DRIP_BYTES))
        self.end_headers()
        try:
            for _ in range(DRIP_BYTES):
                self.wfile.write(b"x")
                self.wfile.flush()
                time.sleep(DRIP_INTERVAL_S)
        except (BrokenPipeError, ConnectionResetError):
            pass

    def do_GET(self) -> None:  # noqa: N802
        path = self.path.split("?", 1)[0]

        if path == "/article":
            self._send(200, _read_fixture("article.html").encode("utf-8"))
        elif path == "/nav-footer":
            self._send(200, _read_fixture("nav_footer.html").encode("utf-8"))
        elif path == "/short":
            self._send(200, _read_fixture("short.html").encode("utf-8"))
        elif path.startswith("/hop/"):
            remaining = int(path.rsplit("/", 1)[1])
            if remaining > 0:
                self._redirect(f"/hop/{remaining - 1}")
            else:
                self._send(200, b"<html><body><p>Landed after the redirect chain.</p></body></html>")
        elif path == "/loop":
            self._redirect("/loop")
        elif path == "/moved":
            self._redirect("/article", status=301)
        elif path == "/missing":
            self._send(404, b"<html><body><h1>Not here</h1></body></html>")
        elif path == "/broken":
            self._send(500, b"<html><body><h1>Oops</h1></body></html>")
        elif path == "/slow":
            time.sleep(SLOW_RESPONSE_S)
            try:
                self._send(200, b"<html><body><p>Too late.</p></body></html>")
            except (BrokenPipeError, ConnectionResetError):
                pass
        elif path == "/drip":
            self._drip()
        elif path == "/gzip":
            body = gzip.compress(_read_fixture("article.html").encode("utf-8"))
            self._send(200, body, headers={"Content-Encoding": "gzip"})
        elif path == "/bad-gzip":
            self._send(200, b"definitely not gzip", headers={"Content-Encoding": "gzip"})
        elif path == "/latin1":
            body = "<html><body><p>Un café au lait, s'il vous plaît.</p></body></html>"
            self._send(200, body.encode("iso-8859-1"), content_type="text/html; charset=iso-8859-1")
        elif path == "/meta-charset":
            body = (
                '<html><head><meta charset="windows-1252"></head>'
                "<body><p>A naïve café review.</p></body></html>"
            )
            self._send(200, body.encode("windows-1252"), content_type="text/html")
        elif path == "/empty":
            self._send(200, b"")
        else:
            self._send(404, b"")


@pytest.fixture(scope="session")
def page_server() -> Iterator[str]:
    """Base URL of a threaded local server serving the routes above."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _PageHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"
    server.shutdown()
    server.server_close()
