"""HTTP API: ``GET /api/fetch`` and ``GET /health``.

Run with::

    python -m readerproxy serve --port 3001

or any ASGI server::

    uvicorn readerproxy.api:app
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from readerproxy import __version__, settings
from readerproxy.assembler import assemble, error_response
from readerproxy.errors import FetchTimeoutError, MissingURLError, ReaderProxyError
from readerproxy.fetcher import fetch_page
from readerproxy.items import FetchRequest, HealthResponse
from readerproxy.urls import validate_url

logger = logging.getLogger(__name__)

_FALSE_VALUES: frozenset[str] = frozenset({"false", "0", "no", "off"})


def parse_flag(value: str | None, default: bool = True) -> bool:
    """Query-string boolean: anything but false/0/no/off counts as true."""
    if value is None:
        return default
    return value.strip().lower() not in _FALSE_VALUES


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with milliseconds and a ``Z`` suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _error_json(exc: BaseException) -> JSONResponse:
    status_code, payload = error_response(exc)
    return JSONResponse(status_code=status_code, content=payload)


async def _fetch(request: Request, url: str | None, extract_main: str | None) -> Any:
    if url is None or not url.strip():
        raise MissingURLError("Query parameter 'url' is missing or empty")

    fetch_request = FetchRequest(url=validate_url(url), extract_main=parse_flag(extract_main))
    logger.info("Fetching %s (extractMain=%s)", fetch_request.url, fetch_request.extract_main)

    backstop_s = fetch_request.timeout_ms / 1000.0 + settings.FETCH_TIMEOUT_GRACE_S
    try:
        raw = await asyncio.wait_for(
            run_in_threadpool(
                fetch_page,
                fetch_request.url,
                timeout_ms=fetch_request.timeout_ms,
                max_redirects=fetch_request.max_redirects,
            ),
            timeout=backstop_s,
        )
    except TimeoutError as exc:
        raise FetchTimeoutError(
            f"timeout of {fetch_request.timeout_ms}ms exceeded", url=fetch_request.url,
        ) from exc

    if await request.is_disconnected():
        logger.info("Client went away while fetching %s; skipping extraction", fetch_request.url)
        return JSONResponse(status_code=499, content={"error": "Client disconnected"})

    response = await run_in_threadpool(
        assemble, raw, extract_main=fetch_request.extract_main,
    )
    return response.model_dump()


async def fetch_endpoint(
    request: Request,
    url: str | None = Query(None),
    extract_main: str | None = Query(None, alias="extractMain"),
) -> Any:
    try:
        return await _fetch(request, url, extract_main)
    except ReaderProxyError:
        raise
    except Exception as exc:
        logger.exception("Unexpected error fetching %s", url)
        return _error_json(exc)


async def health_endpoint() -> Any:
    return HealthResponse(timestamp=utc_timestamp()).model_dump()


async def reader_proxy_error_handler(request: Request, exc: ReaderProxyError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("Fetch failed for %s: %s (%s)", exc.url or request.url, exc.summary, exc.detail)
    else:
        logger.info("Rejected request %s: %s", request.url, exc.detail)
    return _error_json(exc)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error serving %s", request.url)
    return _error_json(exc)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("readerproxy %s ready (CORS origins: %s)", __version__, ", ".join(settings.CORS_ORIGINS))
    yield
    logger.info("readerproxy shutting down")


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    app = FastAPI(
        title="readerproxy",
        description="Fetch a web page and return its main readable content",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_api_route("/api/fetch", fetch_endpoint, methods=["GET"])
    app.add_api_route("/health", health_endpoint, methods=["GET"])
    app.add_exception_handler(ReaderProxyError, reader_proxy_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    return app


app = create_app()
