"""Handler for the 厂长资源 web site."""

from __future__ import annotations

import json
import logging
import re
from datetime import timedelta
from typing import Any

from bs4 import BeautifulSoup

from ..cache import with_cache
from ..crypto import decrypt_by_aes
from ..httpclient import HttpClient, HttpError
from ..models import CmsZyOption, Error, Link, Pager, Source, Success, Video, new_error, new_success
from ..storage import save_http_header
from ..textutil import parse_number
from .base import (
    CZZY_DETAIL_URL,
    CZZY_HOST,
    CZZY_PLAY_URL,
    CZZY_SEARCH_URL,
    CZZY_TAG_URL,
    USER_AGENT,
    VideoHandler,
    handle_m3u8p_url,
    parse_page_number,
    parse_video_type,
    simple_regex,
)

log = logging.getLogger(__name__)

CZZY_NAME = "厂长资源"
RESULT_V3_KEY = b"VFBTzdujpR9FWBhe"
ENCRYPTED_MARKER = "md5.AES.decrypt"
DECRYPT_MARKER = "decrypted.toString(md5.enc.Utf8"

_TAGS = (
    ("电影", "movie_bt"),
    ("国产剧", "gcj"),
    ("美剧", "meijutt"),
    ("韩剧", "hanjutv"),
    ("番剧", "fanju"),
    ("最新电影", "zuixindianying"),
    ("豆瓣Top250", "dbtop250"),
    ("高分影视", "gaofenyingshi"),
)
_HEX_PAIR = re.compile(r"[0-9A-Fa-f]{2}")
_PADDING_LENGTH = 7


def _select_text(root, selector: str) -> str:
    return "".join(el.get_text() for el in root.select(selector))


def _attr(element, name: str) -> str:
    if element is None:
        return ""
    value = element.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return value


def _select_attr(root, selector: str, name: str) -> str:
    return _attr(root.select_one(selector), name)


def find_encrypted_line(html: str) -> str:
    """The first line of html that carries the encrypted player setup, or ''."""
    for line in html.split("\n"):
        if ENCRYPTED_MARKER in line:
            return line
    return ""


def parse_video_source(js: str) -> Source:
    """Decrypt the player setup found in one script line.

    Raises ValueError with "解析失败" or "解密失败" when it cannot be read.
    """
    data = key = iv = ""
    for index, part in enumerate(js.strip().split(";")[:3]):
        if index == 0:
            match = re.search(r'"\S+"', part)
            data = match.group(0).strip('"') if match else ""
        elif index == 1:
            match = re.search(r'"(\S+)"', part)
            key = match.group(1) if match else ""
        else:
            match = re.search(r"\((\S+)\)", part)
            iv = match.group(1) if match else ""
    log.debug("parsing player setup with key %s and iv %s", key, iv)
    if not key and not data:
        raise ValueError("解析失败")
    try:
        plain = decrypt_by_aes(key, iv, data).decode("utf-8", errors="replace")
    except ValueError as exc:
        raise ValueError("解密失败") from exc
    source = Source(
        source=simple_regex(plain, r'video: {url: "(\S+?)",'),
        type=simple_regex(plain, r',type:"(\S+?)",'),
    )
    if not source.source:
        raise ValueError("解析失败")
    return source


def decode_result_v2(result: str) -> str:
    """Decode the reversed-hex address with seven filler characters in its middle.

    Raises ValueError when the text cannot hold such an address.
    """
    chars = result[::-1]
    decoded = bytearray()
    for start in range(0, len(chars), 2):
        pair = chars[start:start + 2]
        if len(pair) < 2:
            raise ValueError("odd number of hex digits")
        if not _HEX_PAIR.fullmatch(pair):
            log.debug("stopping at non-hex pair %r", pair)
            break
        decoded.append(int(pair, 16))
    if len(decoded) < _PADDING_LENGTH:
        raise ValueError("decoded address is too short")
    cut = (len(decoded) - _PADDING_LENGTH) // 2
    return bytes(decoded[:cut] + decoded[cut + _PADDING_LENGTH:]).decode("utf-8", errors="replace")


def decode_result_v3(rand: str, player: str) -> str:
    """Decrypt the player document and return its url field.

    Raises ValueError when the data cannot be decrypted or is not JSON.
    """
    plain = decrypt_by_aes(RESULT_V3_KEY, rand, player)
    document = json.loads(plain)
    value = document.get("url") if isinstance(document, dict) else None
    if value is None:
        return ""
    return value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)


class CzzyHandler(VideoHandler):
    """Scrapes listings, details and play addresses from the 厂长资源 site."""

    def __init__(self, option: CmsZyOption | None = None, http_client: HttpClient | None = None) -> None:
        super().__init__(option, http_client)
        self.http_client.add_header("User-Agent", USER_AGENT)
        self.http_client.add_header("Referer", CZZY_HOST)

    @property
    def name(self) -> str:
        return CZZY_NAME

    def tag_list(self) -> list[dict]:
        return [{"name": name, "value": value} for name, value in _TAGS]

    def video_list(self, tag: str, page: str) -> Any:
        key = f"czzy-video-list::{self.name}_{tag}_{page}"
        return with_cache(key, timedelta(hours=6), lambda: self._video_list(tag, page))

    def search(self, keyword: str, page: str) -> Any:
        key = f"czzy-video-search::{self.name}_{keyword}_{page}"
        return with_cache(key, timedelta(hours=6), lambda: self._search(keyword, page))

    def detail(self, id: str) -> Any:
        key = f"czzy-video-detail::{self.name}_{id}"
        return with_cache(key, timedelta(hours=6), lambda: self._detail(id))

    def source(self, pid: str, vid: str) -> Any:
        key = f"czzy-video-source::{self.name}_{pid}_{vid}"
        return with_cache(key, timedelta(hours=2), lambda: self._source(pid, vid))

    def _video_list(self, tag: str, page: str) -> Any:
        n = parse_page_number(page)
        try:
            raw = self.http_client.get(CZZY_TAG_URL.format(tag=tag, page=n))
        except HttpError as exc:
            return new_error(f"获取数据失败：{exc}")
        doc = BeautifulSoup(raw, "html.parser")
        pager = Pager(limit=25, page=n)
        for item in doc.select(".mi_cont .mi_ne_kd ul li"):
            href = _select_attr(item, ".dytit a", "href")
            pager.items.append(
                Video(
                    id=simple_regex(href, r"(\d+).html"),
                    name=_select_text(item, ".dytit a"),
                    thumb=_select_attr(item, "img.thumb", "data-original"),
                    url=href,
                    actors=_select_text(item, ".inzhuy").strip(),
                    tag=_select_text(item, ".nostag"),
                    resolution=_select_text(item, ".hdinfo span"),
                )
            )
        for anchor in doc.select(".pagenavi_txt a"):
            number = parse_page_number(simple_regex(_attr(anchor, "href"), r"/page/(\d+)"))
            pager.total = max(pager.total, number * pager.limit)
            pager.pages = max(pager.pages, number)
        pager.page = parse_number(_select_text(doc, ".pagenavi_txt .current"))
        if not pager.items:
            return new_error("暂无数据")
        return new_success(pager)

    def _search(self, keyword: str, page: str) -> Any:
        pager = Pager(limit=20, page=parse_page_number(page))
        try:
            raw = self.http_client.get(CZZY_SEARCH_URL.format(keyword=keyword, page=pager.page))
        except HttpError as exc:
            return new_error(f"获取数据失败：{exc}")
        if b"challenge-error-text" in raw:
            return new_error("challenge失败")
        doc = BeautifulSoup(raw, "html.parser")
        for item in doc.select(".search_list ul li"):
            href = _select_attr(item, ".dytit a", "href")
            pager.items.append(
                Video(
                    id=simple_regex(href, r"(\d+)"),
                    name=_select_text(item, ".dytit a"),
                    thumb=_select_attr(item, "img", "src"),
                    url=href,
                    actors=_select_text(item, ".inzhuy").strip(),
                    tag=_select_text(item, ".nostag"),
                )
            )
        for anchor in doc.select(".pagenavi_txt a"):
            number = parse_page_number(anchor.get_text())
            if anchor.has_attr("class") and _attr(anchor, "class") == "current":
                pager.page = number
            pager.pages = max(pager.pages, number)
        spans = doc.select(".mi_ne_kd .dy_tit_big span")
        pager.total = parse_number(spans[0].get_text()) if spans else 0
        return new_success(pager)

    def _detail(self, id: str) -> Any:
        try:
            raw = self.http_client.get(CZZY_DETAIL_URL.format(id=id))
        except HttpError as exc:
            return new_error(f"获取数据失败：{exc}")
        doc = BeautifulSoup(raw, "html.parser")
        video = Video(id=id)
        for anchor in doc.select(".paly_list_btn a"):
            href = _attr(anchor, "href")
            video.links.append(
                Link(
                    id=simple_regex(href, r"/v_play/(\S+).html"),
                    name=anchor.get_text().replace("厂长", ""),
                    url=href,
                    group="资源1",
                )
            )
        video.thumb = _select_attr(doc, ".dyxingq .dyimg img", "src")
        video.name = _select_text(doc, ".dyxingq .moviedteail_tt h1")
        video.intro = _select_text(doc, ".yp_context").strip()
        if not video.name:
            return new_error("获取数据失败")
        return new_success(video)

    def _source(self, pid: str, vid: str) -> Any:
        source = Source(id=pid, vid=vid)
        try:
            raw = self.http_client.get(CZZY_PLAY_URL.format(id=pid))
        except HttpError as exc:
            return new_error(f"获取数据失败：{exc}")
        html = raw.decode("utf-8", errors="replace")
        doc = BeautifulSoup(raw, "html.parser")
        source.name = _select_text(doc, ".pclist .jujiinfo h3")
        iframe = doc.select_one(".videoplay iframe")

        if ENCRYPTED_MARKER in html and DECRYPT_MARKER in html:
            line = find_encrypted_line(html)
            if not line:
                return new_error("获取数据失败：无解析数据")
            try:
                parsed = parse_video_source(line)
            except ValueError as exc:
                return new_error(str(exc))
            source.source = parsed.source
        elif iframe is not None:
            iframe_url = _attr(iframe, "src")
            log.debug("iframe url %s", iframe_url)
            try:
                content = self._iframe_content(iframe_url)
            except HttpError as exc:
                return new_error(str(exc))
            result_v2 = simple_regex(content, r'var result_v2 = {"data":"(\S+?)"')
            rand = simple_regex(content, r'var rand = "(\S+)";')
            player = simple_regex(content, r'var player = "(\S+)";')
            play_url = simple_regex(content, r"const mysvg = '(\S+)';")
            try:
                if play_url:
                    source.source = play_url
                elif result_v2:
                    source.source = decode_result_v2(result_v2)
                elif rand and player:
                    source.source = decode_result_v3(rand, player)
                else:
                    return new_error("未知解析逻辑1")
            except ValueError as exc:
                log.warning("cannot decode play address: %s", exc)
                source.source = ""
        else:
            return new_error("未知解析逻辑")

        if not source.source:
            return new_error("播放地址解析失败")
        source.type = parse_video_type(source.source)
        source.url = handle_m3u8p_url(source.source)
        return new_success(source)

    def _iframe_content(self, iframe_url: str) -> str:
        self.http_client.add_header("referer", CZZY_HOST)
        self.http_client.add_header("sec-fetch-dest", "iframe")
        self.http_client.add_header("sec-fetch-mode", "navigate")
        return self.http_client.get(iframe_url).decode("utf-8", errors="replace")

    def update_header(self, header: dict[str, str] | None) -> None:
        """Apply headers if a test search succeeds with them, and save them.

        Raises ValueError when header is None or the search fails; on failure
        the previous headers are restored.
        """
        if header is None:
            raise ValueError("header数据不能为空")
        previous = dict(self.http_client.headers)
        self.http_client.headers.update(header)
        if not isinstance(self.search("我的", "1"), Success):
            self.http_client.headers = previous
            raise ValueError("cookie无效")
        try:
            save_http_header(self.name, dict(self.http_client.headers))
        except OSError as exc:
            log.warning("cannot save headers of %s: %s", self.name, exc)

    def hold_cookie(self) -> None:
        """Run a search to keep the session alive; raises RuntimeError if it fails."""
        result = self.search("我的", "1")
        if isinstance(result, Success):
            return
        if isinstance(result, Error):
            raise RuntimeError(result.msg)
        raise RuntimeError("未知错误")