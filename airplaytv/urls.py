"""URL escaping, host extraction and the component-URL codec."""

from __future__ import annotations

import base64
import binascii
import json
import re
from urllib.parse import quote_plus, unquote_to_bytes, urlsplit, urlunsplit

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def query_escape(s: str) -> str:
    """Escape text for use in a query string; spaces become '+'."""
    return quote_plus(s, safe="")


def query_unescape(s: str) -> str:
    """Reverse query_escape; raises ValueError on a malformed escape."""
    if _BAD_ESCAPE.search(s):
        raise ValueError(f"invalid URL escape in {s!r}")
    return unquote_to_bytes(s.replace("+", " ")).decode("utf-8", errors="replace")


def encode_component_url(url: str) -> str:
    """Wrap a URL in a base64 JSON envelope for passing as one parameter."""
    payload = json.dumps({"url": query_escape(url)}, separators=(",", ":"))
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def decode_component_url(encoded: str) -> str:
    """Unwrap encode_component_url; returns an empty string on any failure."""
    try:
        raw = base64.b64decode(encoded, validate=True)
        document = json.loads(raw) if raw.strip() else None
    except (binascii.Error, ValueError):
        return ""
    if not isinstance(document, dict):
        return ""
    value = document.get("url")
    if value is None:
        return ""
    if not isinstance(value, str):
        value = json.dumps(value)
    try:
        return query_unescape(value)
    except ValueError:
        return ""


def parse_url_host(url: str) -> str:
    """Return 'scheme://host' of an absolute URL, or an empty string."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return ""
    if not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}"


def fill_url_host(host_url: str, path_url: str) -> str:
    """Give path_url the scheme and host of host_url unless it has its own."""
    try:
        path_parts = urlsplit(path_url)
    except ValueError:
        return path_url
    if path_parts.scheme and path_parts.netloc:
        return path_url
    try:
        host_parts = urlsplit(host_url)
    except ValueError:
        return path_url
    if not host_parts.netloc:
        return path_url
    return urlunsplit(
        (host_parts.scheme, host_parts.netloc, path_parts.path, path_parts.query, path_parts.fragment)
    )