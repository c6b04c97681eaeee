"""readerproxy - fetch any web page and return its main readable content.

Quick single-URL usage::

    from readerproxy import FetchRequest, process

    response = process(FetchRequest(url="https://example.com/blog/some-post"))
    print(response.title)
    print(response.html)

Extraction over HTML you already have::

    from readerproxy import extract, parse_html

    document = parse_html(html, base_url="https://example.com/blog/some-post")
    result = extract(document)
    if result.success:
        print(result.content_html)

HTTP API::

    python -m readerproxy serve --port 3001
    curl 'http://localhost:3001/api/fetch?url=https://example.com/'
"""

__version__ = "0.1.0"

from readerproxy.assembler import assemble, error_response, process
from readerproxy.dom import parse_html
from readerproxy.errors import FetchError, ReaderProxyError
from readerproxy.extractors import ExtractOptions, extract
from readerproxy.fetcher import fetch_page
from readerproxy.items import FetchRequest, FetchResponse

__all__ = [
    "ExtractOptions",
    "FetchError",
    "FetchRequest",
    "FetchResponse",
    "ReaderProxyError",
    "assemble",
    "error_response",
    "extract",
    "fetch_page",
    "parse_html",
    "process",
]
