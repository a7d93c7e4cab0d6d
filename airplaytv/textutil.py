"""Number parsing, HTML-to-text and JSON encoding helpers."""

from __future__ import annotations

import json
import re
from html.parser import HTMLParser
from typing import Any

from .models import to_jsonable

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_HTML_ESCAPES = str.maketrans({"&": "&amp;", "'": "&#39;", "<": "&lt;", ">": "&gt;", '"': "&#34;"})
_JSON_ESCAPES = str.maketrans(
    {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026", "\u2028": "\\u2028", "\u2029": "\\u2029"}
)


def parse_number(s: str) -> int:
    """Parse a decimal integer, returning 0 when it is not one."""
    if not _INT_PATTERN.fullmatch(s):
        return 0
    n = int(s)
    if not _INT64_MIN <= n <= _INT64_MAX:
        return 0
    return n


class _TextExtractor(HTMLParser):
    _SKIP = frozenset({"script", "style"})

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in self._SKIP:
            self._skip_depth += 1

    def handle_endtag(self, tag):
        if tag in self._SKIP and self._skip_depth:
            self._skip_depth -= 1

    def handle_data(self, data):
        if not self._skip_depth:
            self.parts.append(data.translate(_HTML_ESCAPES))


def html_to_text(html: str) -> str:
    """Strip every tag (and script/style content), keeping escaped text."""
    parser = _TextExtractor()
    parser.feed(html)
    parser.close()
    return "".join(parser.parts).strip()


def to_json(value: Any, pretty: bool = False) -> str:
    """Encode value as JSON; returns an empty string if it cannot be encoded."""
    try:
        if pretty:
            text = json.dumps(to_jsonable(value), ensure_ascii=False, allow_nan=False, indent="\t")
        else:
            text = json.dumps(to_jsonable(value), ensure_ascii=False, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError):
        return ""
    return text.translate(_JSON_ESCAPES)