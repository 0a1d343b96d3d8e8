from __future__ import annotations

import logging
from urllib.parse import quote, urlsplit

logger = logging.getLogger(__name__)

# Only web bookmarks are importable
_ALLOWED_SCHEMES: frozenset[str] = frozenset(["http", "https"])

_DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}

_MAX_URL_LENGTH = 8192

# Path characters a browser percent-encodes; existing escapes are left alone
_PATH_ESCAPE_CHARS: frozenset[str] = frozenset(' "<>`{}')

_SINGLE_DOT_SEGMENTS = frozenset([".", "%2e"])
_DOUBLE_DOT_SEGMENTS = frozenset(["..", ".%2e", "%2e.", "%2e%2e"])


def _normalize_path(path: str) -> str:
    """Percent-encode unsafe characters and resolve ``.``/``..`` segments.

    Mirrors how a browser serialises the path of an http(s) URL, so that
    ``/a b`` and ``/a%20b``, or ``/./x`` and ``/x``, share one key.
    """
    path = path.replace("\\", "/") or "/"
    encoded = "".join(
        quote(char, safe="") if char in _PATH_ESCAPE_CHARS or not char.isascii() else char
        for char in path
    )

    segments = encoded.split("/")
    output: list[str] = []
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        lowered = segment.lower()
        if lowered in _SINGLE_DOT_SEGMENTS:
            if last:
                output.append("")
            continue
        if lowered in _DOUBLE_DOT_SEGMENTS:
            if len(output) > 1:
                output.pop()
            if last:
                output.append("")
            continue
        output.append(segment)
    return "/".join(output) or "/"


def _validate_url_input(url: str) -> None:
    """Validate raw URL input before parsing.

    Args:
        url: URL string to validate

    Raises:
        ValueError: If URL is empty, oversized or contains control characters

    """
    if not isinstance(url, str):
        msg = "URL must be a string"
        raise ValueError(msg)
    if not url.strip():
        msg = "URL cannot be empty"
        raise ValueError(msg)
    if len(url) > _MAX_URL_LENGTH:
        msg = "URL too long"
        raise ValueError(msg)
    if "\x00" in url:
        msg = "URL contains null bytes"
        raise ValueError(msg)
    if any(ord(char) < 32 for char in url.strip()):
        msg = "URL contains control characters"
        raise ValueError(msg)


def _split_canonical(url: str) -> tuple[str, str, str]:
    """Return ``(scheme, host[:port], path)`` for an absolute http(s) URL."""
    _validate_url_input(url)
    parts = urlsplit(url.strip())

    scheme = parts.scheme.lower()
    if scheme not in _ALLOWED_SCHEMES:
        msg = f"Unsupported URL scheme: {parts.scheme or '<none>'}"
        raise ValueError(msg)

    hostname = parts.hostname
    if not hostname:
        msg = "Invalid URL: missing hostname"
        raise ValueError(msg)
    if ":" in hostname:
        hostname = f"[{hostname}]"

    port = parts.port  # raises ValueError for out-of-range ports
    host = hostname
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        host = f"{hostname}:{port}"

    return scheme, host, _normalize_path(parts.path)


def canonical_url(url: str) -> str | None:
    """Reduce a bookmark URL to its dedup key.

    The key is ``scheme://host[:port]/path``: query string and fragment are
    dropped, scheme and host are lower-cased, default ports are omitted and
    the path keeps its case and any trailing slash, with unsafe characters
    percent-encoded and dot segments resolved.

    Returns:
        The canonical form, or ``None`` when the input is not a valid
        absolute http(s) URL.

    """
    try:
        scheme, host, path = _split_canonical(url)
    except ValueError as exc:
        logger.debug(
            "canonical_url_rejected",
            extra={"url": str(url)[:100], "reason": str(exc)},
        )
        return None
    return f"{scheme}://{host}{path}"
