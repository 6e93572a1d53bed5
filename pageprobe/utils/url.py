"""
URL utility functions for grouping captured requests.
"""

from __future__ import annotations

import hashlib
from urllib import parse

_DEFAULT_PORTS = {
    "http": 80,
    "https": 443,
    "ws": 80,
    "wss": 443,
    "ftp": 21,
}

# Origins of URLs without a host (data:, about:, javascript: ...) are opaque.
OPAQUE_ORIGIN = "null"


def get_origin(url: str) -> str | None:
    """Return the serialised origin of *url*, or ``None`` when unparsable.

    Follows the WHATWG rules closely enough for grouping purposes:
    hierarchical schemes yield ``scheme://host[:port]`` with the
    default port omitted, ``blob:`` URLs take the origin of the URL
    they wrap, and every other scheme has an opaque ``"null"`` origin.

    Args:
        url: Any URL string reported by the browser.

    Returns:
        The origin string, or ``None`` when *url* is not a URL at all.
    """
    try:
        parts = parse.urlsplit(url)
        scheme = parts.scheme.lower()
        if not scheme:
            return None

        if scheme == "blob":
            return get_origin(parts.path) or OPAQUE_ORIGIN

        if scheme not in _DEFAULT_PORTS:
            return OPAQUE_ORIGIN

        host = parts.hostname
        if not host:
            return None
        port = parts.port
    except ValueError:
        return None

    if ":" in host:
        host = f"[{host}]"
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        return f"{scheme}://{host}:{port}"
    return f"{scheme}://{host}"


def is_data_uri(url: str) -> bool:
    """Return ``True`` for inline ``data:`` URIs."""
    return url[:5].lower() == "data:"


def hash_url(url: str) -> str:
    """Return a short stable digest of *url* used as a map key."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()


def data_uri_mime_type(url: str) -> str:
    """Extract the media type of a ``data:`` URI (``text/plain`` when absent)."""
    header = url[5:].split(",", 1)[0]
    mime = header.split(";", 1)[0].strip()
    return mime or "text/plain"
