"""Shared behaviour and helpers for video source handlers."""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import urlsplit

from ..httpclient import HttpClient, HttpError
from ..models import M3U8_PROXY_HOSTS, CmsZyOption, Video
from ..textutil import parse_number
from ..urls import encode_component_url

SOURCE_TYPE_AUTO = "auto"
SOURCE_TYPE_HLS = "hls"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36"
)

API_M3U8_PROXY_URL = "https://airplay-api.artools.cc/api/m3u8p"

CZZY_HOST = "https://www.cz233.com"
CZZY_TAG_URL = "https://www.cz233.com/{tag}/page/{page}"
CZZY_SEARCH_URL = "https://www.cz233.com/daoyongjiekoshibushiy0ubing?q={keyword}&f=_all&p={page}"
CZZY_DETAIL_URL = "https://www.cz233.com/movie/{id}.html"
CZZY_PLAY_URL = "https://www.cz233.com/v_play/{id}.html"

MAYI_HOST = "https://www.mayiyingshi.tv"
MAYI_TAG_URL = "https://www.mayiyingshi.tv/vodtype/{tag}-{page}.html"
MAYI_SEARCH_URL = "https://www.mayiyingshi.tv/vodsearch/{keyword}----------{page}---.html"
MAYI_DETAIL_URL = "https://www.mayiyingshi.tv/voddetail/{id}.html"
MAYI_PLAY_URL = "https://www.mayiyingshi.tv/vodplay/{id}.html"
MAYI_PARSE_URL = "https://zj.sp-flv.com:8443/?url={url}"


def parse_page_number(s: str) -> int:
    """Parse a page number; anything invalid or below 1 becomes 1."""
    n = parse_number(s)
    return n if n > 0 else 1


def simple_regex(text: str, pattern: str) -> str:
    """Return the first capture group of the first match, or an empty string."""
    match = re.search(pattern, text)
    if match is None or not match.groups():
        return ""
    return match.group(1) or ""


def simple_regex_list(text: str, pattern: str) -> list[str]:
    """Return the whole match followed by its groups, or an empty list."""
    match = re.search(pattern, text)
    if match is None or not match.groups():
        return []
    return [match.group(0)] + [g or "" for g in match.groups()]


def parse_video_type(url: str) -> str:
    """Guess the player type of a play address."""
    if ".m3u8" in url or url.endswith("m3u8"):
        return SOURCE_TYPE_HLS
    if url.endswith(".mp4"):
        return SOURCE_TYPE_AUTO
    return ""


def handle_m3u8p_url(url: str) -> str:
    """Route addresses on hosts that need it through the m3u8 proxy."""
    try:
        host = urlsplit(url).netloc
    except ValueError:
        return url
    if host not in M3U8_PROXY_HOSTS:
        return url
    return f"{API_M3U8_PROXY_URL}?url={encode_component_url(url)}"


def _json_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


class VideoHandler(ABC):
    """A video source: listing, search, detail and play-address lookup."""

    def __init__(self, option: CmsZyOption | None = None, http_client: HttpClient | None = None) -> None:
        self.option = option if option is not None else CmsZyOption()
        self.http_client = http_client if http_client is not None else HttpClient()

    @property
    def name(self) -> str:
        return self.option.name

    @abstractmethod
    def tag_list(self) -> Any:
        """The categories the source can list."""

    @abstractmethod
    def video_list(self, tag: str, page: str) -> Any:
        """One page of videos in a category."""

    @abstractmethod
    def search(self, keyword: str, page: str) -> Any:
        """One page of search results."""

    @abstractmethod
    def detail(self, id: str) -> Any:
        """A video with its play links."""

    @abstractmethod
    def source(self, pid: str, vid: str) -> Any:
        """The play address of one link of a video."""

    def airplay(self, pid: str, vid: str) -> dict:
        return {}

    def update_header(self, header: dict[str, str]) -> None:
        """Apply extra request headers; sources without cookies ignore them."""

    def hold_cookie(self) -> None:
        """Keep a session alive; sources without cookies have nothing to do."""

    def handle_video_list_thumb(self, detail_api_url: str, videos: list[Video]) -> list[Video]:
        """Fill thumbnails from a detail API; detail_api_url holds '%s' for the ids."""
        if not videos:
            return videos
        ids = ",".join(video.id for video in videos)
        try:
            raw = self.http_client.get(detail_api_url.replace("%s", ids, 1))
            document = json.loads(raw)
        except (HttpError, ValueError):
            return videos
        items = document.get("list") if isinstance(document, dict) else None
        if not isinstance(items, list):
            return videos
        thumbs = {
            _json_str(item.get("vod_id")): _json_str(item.get("vod_pic"))
            for item in items
            if isinstance(item, dict)
        }
        for video in videos:
            if video.id in thumbs:
                video.thumb = thumbs[video.id]
        return videos