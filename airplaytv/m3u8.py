"""HLS playlist inspection and URL normalisation."""

from __future__ import annotations

import enum
import posixpath
import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from .handlers.base import USER_AGENT
from .httpclient import HttpClient, HttpError
from .urls import parse_url_host

MAX_PLAY_URLS = 3

_KEY_URI = re.compile(r'URI="([^"]*)"')
_MEDIA_TAGS = ("#EXTINF", "#EXT-X-TARGETDURATION", "#EXT-X-MEDIA-SEQUENCE", "#EXT-X-ENDLIST")


class ListType(enum.IntEnum):
    UNKNOWN = 0
    MASTER = 1
    MEDIA = 2


class M3u8Error(Exception):
    """A playlist could not be parsed or processed."""


@dataclass
class _Playlist:
    kind: ListType
    lines: list[str]

    def uris(self) -> list[str]:
        return [line for line in self.lines if not line.startswith("#")]


def _decode(data: bytes | str) -> _Playlist:
    text = data.decode("utf-8", errors="replace") if isinstance(data, (bytes, bytearray)) else data
    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line]
    if lines:
        lines[0] = lines[0].lstrip("\ufeff")
    if not lines or not lines[0].startswith("#EXTM3U"):
        raise M3u8Error("#EXTM3U absent")
    if any(line.startswith("#EXT-X-STREAM-INF") for line in lines):
        return _Playlist(ListType.MASTER, lines)
    if any(line.startswith(_MEDIA_TAGS) for line in lines):
        return _Playlist(ListType.MEDIA, lines)
    raise M3u8Error("can't detect playlist type")


def playlist_type(data: bytes | str) -> ListType:
    """The kind of playlist data holds, or UNKNOWN if it is not one."""
    try:
        return _decode(data).kind
    except M3u8Error:
        return ListType.UNKNOWN


def fix_url_host(url: str, source_url: str) -> str:
    """Make a playlist entry absolute relative to the playlist's own address."""
    if not url:
        return ""
    if url.startswith("/"):
        return f"{parse_url_host(source_url)}/{url.lstrip('/')}"
    try:
        if urlsplit(url).scheme in ("http", "https"):
            return url
    except ValueError:
        pass
    try:
        parts = urlsplit(source_url)
    except ValueError:
        return ""
    joined = posixpath.normpath(posixpath.join(posixpath.dirname(parts.path), url))
    return f"{parts.scheme}://{parts.netloc}/{joined.lstrip('/')}"


def format_m3u8_url(data: bytes | str, source_url: str) -> bytes:
    """Rewrite every entry of a playlist to an absolute address.

    In a media playlist only the first encryption key is kept, so that players
    do not see the stream announced as encrypted twice.
    """
    if not parse_url_host(source_url):
        raise M3u8Error("sourceUrl地址错误")
    playlist = _decode(data)
    out: list[str] = []
    key_seen = False
    for line in playlist.lines:
        if not line.startswith("#"):
            out.append(fix_url_host(line, source_url))
            continue
        if playlist.kind is ListType.MEDIA and line.startswith("#EXT-X-KEY:"):
            if key_seen:
                continue
            key_seen = True
            line = _KEY_URI.sub(lambda m: f'URI="{fix_url_host(m.group(1), source_url)}"', line)
        out.append(line)
    return ("\n".join(out) + "\n").encode("utf-8")


def playlist_urls(data: bytes | str) -> list[str]:
    """Segment addresses of a media playlist or variant addresses of a master one."""
    return _decode(data).uris()


def parse_play_url_list(m3u8_url: str, client: HttpClient | None = None) -> list[str]:
    """Resolve up to three segment addresses reachable from a playlist address."""
    if client is None:
        client = HttpClient({"User-Agent": USER_AGENT})
    _, body = client.get_response(m3u8_url)
    kind = playlist_type(body)
    if kind is ListType.MEDIA:
        return playlist_urls(format_m3u8_url(body, m3u8_url))[:MAX_PLAY_URLS]
    if kind is ListType.MASTER:
        urls: list[str] = []
        for variant in playlist_urls(format_m3u8_url(body, m3u8_url))[:MAX_PLAY_URLS]:
            try:
                found = parse_play_url_list(variant, client)
            except (HttpError, M3u8Error):
                continue
            if found:
                urls.append(found[0])
        return urls
    raise M3u8Error("播放文件解析失败")