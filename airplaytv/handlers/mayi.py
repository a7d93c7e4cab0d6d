"""Handler for the 蚂蚁影视 web site."""

from __future__ import annotations

import json
import logging
from typing import Any

from bs4 import BeautifulSoup

from ..httpclient import HttpClient, HttpError
from ..models import CmsZyOption, Link, Pager, Source, Video, new_error, new_success
from .base import (
    MAYI_DETAIL_URL,
    MAYI_HOST,
    MAYI_PARSE_URL,
    MAYI_PLAY_URL,
    MAYI_SEARCH_URL,
    MAYI_TAG_URL,
    USER_AGENT,
    VideoHandler,
    parse_page_number,
    parse_video_type,
    simple_regex,
    simple_regex_list,
)

log = logging.getLogger(__name__)

MAYI_NAME = "蚂蚁影视"

_TAGS = (
    ("电影", "1"),
    ("电视剧", "2"),
    ("综艺", "3"),
    ("动漫", "4"),
)


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


def _apply_pages(doc, pager: Pager) -> None:
    matches = simple_regex_list(_select_text(doc, ".stui-page .num"), r"(\d+)/(\d+)")
    if len(matches) == 3:
        pager.pages = parse_page_number(matches[2])
        pager.page = parse_page_number(matches[1])
        pager.total = pager.limit * pager.pages
    else:
        pager.pages = 1
        pager.page = 1
        pager.total = pager.limit


def _player_url(player_data: str) -> str:
    try:
        document = json.loads(player_data)
    except ValueError:
        return ""
    value = document.get("url") if isinstance(document, dict) else None
    if value is None:
        return ""
    return value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)


class MaYiHandler(VideoHandler):
    """Scrapes listings, details and play addresses from the 蚂蚁影视 site."""

    def __init__(self, option: CmsZyOption | None = None, http_client: HttpClient | None = None) -> None:
        super().__init__(option, http_client)
        self.http_client.add_header("User-Agent", USER_AGENT)
        self.http_client.add_header("Origin", MAYI_HOST)
        self.http_client.add_header("Referer", MAYI_HOST)

    @property
    def name(self) -> str:
        return MAYI_NAME

    def tag_list(self) -> list[dict]:
        return [{"name": name, "value": value} for name, value in _TAGS]

    def video_list(self, tag: str, page: str) -> Any:
        n = parse_page_number(page)
        try:
            raw = self.http_client.get(MAYI_TAG_URL.format(tag=tag, page=n))
        except HttpError as exc:
            return new_error(f"获取数据失败：{exc}")
        doc = BeautifulSoup(raw, "html.parser")
        pager = Pager(limit=36, page=n)
        for box in doc.select(".stui-vodlist .stui-vodlist__box"):
            href = _select_attr(box, ".title a", "href")
            label = _select_text(box, ".stui-vodlist__thumb .pic-text")
            pager.items.append(
                Video(
                    id=simple_regex(href, r"(\d+)"),
                    name=_select_text(box, ".title a"),
                    thumb=_select_attr(box, ".stui-vodlist__thumb", "data-original"),
                    url=href,
                    actors=_select_text(box, "p.text").strip(),
                    tag=label,
                    resolution=label,
                )
            )
        _apply_pages(doc, pager)
        if not pager.items:
            return new_error("暂无数据")
        return new_success(pager)

    def search(self, keyword: str, page: str) -> Any:
        pager = Pager(limit=10, page=parse_page_number(page))
        try:
            raw = self.http_client.get(MAYI_SEARCH_URL.format(keyword=keyword, page=pager.page))
        except HttpError as exc:
            return new_error(f"获取数据失败：{exc}")
        doc = BeautifulSoup(raw, "html.parser")
        for item in doc.select(".col-lg-wide-75 .stui-vodlist__media li"):
            href = _select_attr(item, ".title a", "href")
            pager.items.append(
                Video(
                    id=simple_regex(href, r"(\d+)"),
                    name=_select_text(item, ".title a"),
                    thumb=_select_attr(item, ".v-thumb", "data-original"),
                    url=href,
                    tag=_select_text(item, ".pic-text"),
                )
            )
        _apply_pages(doc, pager)
        if not pager.items:
            return new_error("暂无数据")
        return new_success(pager)

    def detail(self, id: str) -> Any:
        try:
            raw = self.http_client.get(MAYI_DETAIL_URL.format(id=id))
        except HttpError as exc:
            return new_error(f"获取数据失败：{exc}")
        doc = BeautifulSoup(raw, "html.parser")
        video = Video(id=id)
        groups = {
            _attr(title, "data-mid"): title.get_text().strip()
            for title in doc.select(".play_source .title")
        }
        for block in doc.select(".play_source_list .play_source_list_item"):
            mid = _attr(block, "data-mid")
            group = groups[mid].strip() if mid in groups else f"group_{mid}"
            for anchor in block.select("li a"):
                href = _attr(anchor, "href")
                video.links.append(
                    Link(
                        id=simple_regex(href, r"/vodplay/(\d+-\d+-\d+).html"),
                        name=anchor.get_text().strip(),
                        url=href,
                        group=group,
                    )
                )
        video.thumb = _select_attr(doc, ".col-md-wide-75 .lazyload", "data-original")
        video.name = _select_attr(doc, ".col-md-wide-75 .picture", "title")
        video.intro = _select_text(doc, ".col-md-wide-75 .detail-content").strip()
        video.tag = _select_text(doc, ".col-md-wide-75 .pic-text").strip()
        return new_success(video)

    def source(self, pid: str, vid: str) -> Any:
        source = Source(id=pid, vid=vid)
        try:
            raw = self.http_client.get(MAYI_PLAY_URL.format(id=pid))
        except HttpError as exc:
            return new_error(f"获取数据失败：{exc}")
        html = raw.decode("utf-8", errors="replace")
        doc = BeautifulSoup(raw, "html.parser")
        source.name = _select_text(doc, ".stui-player__detail .title")

        encrypted = _player_url(simple_regex(html, r"var player_data=(\S+)</script>"))
        try:
            parsed = self.http_client.get(MAYI_PARSE_URL.format(url=encrypted))
        except HttpError as exc:
            return new_error(f"获取解析数据失败：{exc}")

        source.source = simple_regex(parsed.decode("utf-8", errors="replace"), r"var video_url = '(\S+)';")
        source.type = parse_video_type(source.source)
        source.url = source.source
        if not source.source:
            return new_error("播放地址处理失败")
        return new_success(source)