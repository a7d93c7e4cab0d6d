"""Application directory, file helpers and saved HTTP headers."""

from __future__ import annotations

import json
import os
import sys

from .crypto import string_md5
from .textutil import to_json


def app_path() -> str:
    """Absolute directory of the running program."""
    if sys.argv and sys.argv[0]:
        return os.path.dirname(os.path.abspath(sys.argv[0]))
    return os.getcwd()


def read_file(filename: str | os.PathLike) -> bytes | None:
    """Return the file's bytes, or None if it cannot be read."""
    try:
        with open(filename, "rb") as fh:
            return fh.read()
    except OSError:
        return None


def write_file(filename: str | os.PathLike, data: bytes) -> None:
    """Create or truncate the file and write data to it."""
    with open(filename, "wb") as fh:
        fh.write(data)


def _header_path(source: str) -> str:
    return os.path.join(app_path(), "file", f"http_header_{string_md5(source)[:8]}.json")


def save_http_header(source: str, headers: dict[str, str]) -> str:
    """Store a source's request headers; returns the file written."""
    path = _header_path(source)
    write_file(path, to_json(headers, pretty=True).encode("utf-8"))
    return path


def load_http_header(source: str) -> dict[str, str]:
    """Load headers saved for a source.

    Raises FileNotFoundError if none were saved and ValueError if the file is invalid.
    """
    path = _header_path(source)
    raw = read_file(path)
    if raw is None:
        raise FileNotFoundError(path)
    document = json.loads(raw)
    if not isinstance(document, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in document.items()
    ):
        raise ValueError(f"{path} does not hold a string mapping")
    return document