"""readerproxy.assembler - turn fetch and extraction outcomes into API payloads.

Basic usage::

    from readerproxy.assembler import process

    response = process(FetchRequest(url="https://example.com/blog/post"))
    print(response.title)
    print(response.html)

Low-level access::

    from readerproxy.fetcher import fetch_page
    from readerproxy.assembler import assemble, error_response

    raw = fetch_page("https://example.com/blog/post")
    response = assemble(raw, extract_main=True)
"""

from __future__ import annotations

import logging
from typing import Any

from readerproxy.dom import parse_html
from readerproxy.errors import ParseFailureError, ReaderProxyError
from readerproxy.extractors.main_content import ExtractOptions, extract
from readerproxy.fetcher import RawDocument, fetch_page
from readerproxy.items import FetchRequest, FetchResponse

logger = logging.getLogger(__name__)

DEFAULT_ERROR = "Failed to fetch URL"


def assemble(
    raw: RawDocument,
    *,
    extract_main: bool = True,
    options: ExtractOptions | None = None,
) -> FetchResponse:
    """Build the success payload for *raw*.

    Extraction problems never fail the request: an unparsable document or a
    region below the character threshold degrades to the raw HTML with
    ``extracted=False``.
    """
    if not extract_main:
        return FetchResponse(html=raw.html, url=raw.final_url, title="", extracted=False)

    try:
        document = parse_html(raw.html, base_url=raw.final_url)
    except ParseFailureError as exc:
        logger.warning("Returning raw HTML for %s: %s", raw.final_url, exc.detail)
        return FetchResponse(html=raw.html, url=raw.final_url, title="", extracted=False)

    result = extract(document, options)
    if not result.success:
        logger.info(
            "Extracted only %d characters from %s; returning raw HTML",
            result.text_length, raw.final_url,
        )
        return FetchResponse(html=raw.html, url=raw.final_url, title=result.title, extracted=False)

    return FetchResponse(
        html=result.content_html,
        url=raw.final_url,
        title=result.title,
        extracted=True,
    )


def error_response(exc: BaseException) -> tuple[int, dict[str, Any]]:
    """Map *exc* to ``(http_status, payload)``.

    Validation errors carry only ``error``; everything else also carries
    the raw diagnostic as ``details``.
    """
    if isinstance(exc, ReaderProxyError):
        record = exc.to_record()
        include_detail = exc.status_code >= 500
        return exc.status_code, record.to_payload(include_detail=include_detail)
    return 500, {"error": DEFAULT_ERROR, "details": str(exc) or exc.__class__.__name__}


def process(request: FetchRequest, options: ExtractOptions | None = None) -> FetchResponse:
    """Fetch ``request.url`` and assemble the response in one blocking call.

    Raises:
        :class:`~readerproxy.errors.ValidationError`: the URL is invalid.
        :class:`~readerproxy.errors.FetchError`: the page could not be fetched.
    """
    logger.info("fetch: %s (extract_main=%s)", request.url, request.extract_main)
    raw = fetch_page(
        request.url,
        timeout_ms=request.timeout_ms,
        max_redirects=request.max_redirects,
    )
    return assemble(raw, extract_main=request.extract_main, options=options)
