"""URL validation and resolution helpers."""

from __future__ import annotations

import re
from urllib.parse import quote, urljoin, urlparse, urlsplit

from readerproxy.errors import InvalidURLError

_FETCHABLE_SCHEMES: frozenset[str] = frozenset({"http", "https"})

# Schemes left untouched when resolving relative references
_OPAQUE_SCHEMES: tuple[str, ...] = ("#", "mailto:", "tel:", "data:", "sms:", "javascript:")

_WHITESPACE_RE = re.compile(r"\s")

# Left as-is when percent-encoding whitespace in path, query and fragment
_PATH_SAFE = "/:@!$&'()*+,;=%~"
_QUERY_SAFE = _PATH_SAFE + "?"

# Media extensions allowed to survive cleanup inside extracted content
MEDIA_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".mp3",
        ".mp4",
        ".m4a",
        ".ogg",
        ".oga",
        ".ogv",
        ".wav",
        ".webm",
        ".flac",
        ".mov",
    },
)


def validate_url(url: str) -> str:
    """Return *url* stripped of surrounding whitespace if it is an absolute
    http(s) URL with a host.

    Whitespace inside the path, query or fragment is percent-encoded.

    Raises:
        InvalidURLError: for relative URLs, other schemes, a missing host,
            whitespace in the host or an unparsable port.
    """
    candidate = (url or "").strip()
    if not candidate:
        raise InvalidURLError(f"Invalid URL: {url!r}", url=url)
    try:
        parsed = urlparse(candidate)
        # Accessing .port validates it (raises ValueError when out of range)
        parsed.port  # noqa: B018
    except ValueError as exc:
        raise InvalidURLError(f"Invalid URL: {url!r} ({exc})", url=url) from exc

    if parsed.scheme.lower() not in _FETCHABLE_SCHEMES:
        raise InvalidURLError(f"Unsupported URL scheme: {parsed.scheme!r}", url=url)
    if not parsed.hostname:
        raise InvalidURLError(f"URL has no host: {url!r}", url=url)
    if _WHITESPACE_RE.search(parsed.netloc):
        raise InvalidURLError(f"Whitespace in URL host: {url!r}", url=url)
    return _encode_whitespace(candidate)


def _encode_whitespace(url: str) -> str:
    if not _WHITESPACE_RE.search(url):
        return url
    parts = urlsplit(url)
    return parts._replace(
        path=quote(parts.path, safe=_PATH_SAFE),
        query=quote(parts.query, safe=_QUERY_SAFE),
        fragment=quote(parts.fragment, safe=_QUERY_SAFE),
    ).geturl()


def is_valid_url(url: str) -> bool:
    try:
        validate_url(url)
    except InvalidURLError:
        return False
    return True


def resolve_url(base_url: str, ref: str) -> str:
    """Resolve *ref* against *base_url*; fragments and opaque schemes pass through."""
    ref = ref.strip()
    if not ref or not base_url or ref.lower().startswith(_OPAQUE_SCHEMES):
        return ref
    return urljoin(base_url, ref)


def is_script_url(ref: str) -> bool:
    return ref.strip().lower().startswith("javascript:")


def has_media_extension(ref: str) -> bool:
    """Return True if the path of *ref* ends with an approved media extension."""
    try:
        path = urlparse(ref.strip()).path.lower()
    except ValueError:
        return False
    _, dot, ext = path.rpartition(".")
    return bool(dot) and f".{ext}" in MEDIA_EXTENSIONS
