"""Handler for sources that expose the common CMS collection API."""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from datetime import timedelta
from typing import Any
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from ..cache import get_set_cache, with_cache
from ..httpclient import HttpClient, HttpError
from ..models import KV1, CmsZyOption, Link, Pager, Source, Video, new_error, new_success
from ..storage import app_path, read_file, write_file
from ..textutil import html_to_text, parse_number
from ..urls import parse_url_host, query_escape
from .base import USER_AGENT, VideoHandler, parse_page_number, parse_video_type, simple_regex, simple_regex_list

log = logging.getLogger(__name__)

HONGNIU_NAME = "红牛资源"
HONGNIU_THROTTLE_KEY = "cms-hongniu-search-sleep-5s"
TAG_REFRESH_AGE = 86400 * 2


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except ValueError:
            return 0
    return 0


def _load(raw: bytes) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return None


def _field(document: Any, key: str) -> Any:
    return document.get(key) if isinstance(document, dict) else None


def _items(document: Any) -> list[dict]:
    items = _field(document, "list")
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def _select_text(root, selector: str) -> str:
    return "".join(el.get_text() for el in root.select(selector))


def parse_source_list(
    source_name: str, play_from: str, play_note: str, play_url: str, pid: str
) -> tuple[list[Link], Link | None]:
    """Split the packed play fields into links; also return the link whose id is pid.

    Raises ValueError when an entry has no '$' separator or a group has no name.
    """
    names = [source_name]
    groups = [play_url]
    if play_note:
        names = play_from.split(play_note)
        groups = play_url.split(play_note)
    links: list[Link] = []
    found: Link | None = None
    for i, group in enumerate(groups):
        if i >= len(names):
            raise ValueError(f"play group {i} has no name")
        for j, entry in enumerate(group.strip("#").split("#")):
            parts = entry.split("$")
            if len(parts) < 2:
                raise ValueError(f"malformed play entry {entry!r}")
            link = Link(id=f"{i}-{j}", name=parts[0], url=parts[1], group=names[i])
            links.append(link)
            if link.id == pid:
                found = Link(id=link.id, name=link.name, url=link.url, group=link.group)
    return links, found


def format_tags(tags: dict[str, str]) -> list[KV1]:
    """Tags as name/value pairs ordered by value."""
    return sorted((KV1(name=k, value=v) for k, v in tags.items()), key=lambda kv: kv.value)


class CmsZyHandler(VideoHandler):
    """A source configured by an API address of the CMS collection kind."""

    def __init__(
        self,
        option: CmsZyOption,
        http_client: HttpClient | None = None,
        app_dir: str | None = None,
    ) -> None:
        super().__init__(option, http_client)
        self.http_client.add_header("User-Agent", USER_AGENT)
        self.app_dir = app_dir

    def api_url(self) -> str:
        """The API address without trailing slashes, or an empty string if it is invalid."""
        try:
            parts = urlsplit(self.option.api)
        except ValueError:
            return ""
        if parts.scheme and parts.netloc:
            return f"{parts.scheme}://{parts.netloc}/{parts.path.strip('/')}"
        return ""

    def _fetch_json(self, url: str) -> Any:
        return _load(self.http_client.get(url))

    def video_list(self, tag: str, page: str) -> Any:
        key = f"cms-video-list::{self.name}_{tag}_{page}"
        return with_cache(key, timedelta(hours=6), lambda: self._video_list(tag, page))

    def search(self, keyword: str, page: str) -> Any:
        if self.name == HONGNIU_NAME and get_set_cache(HONGNIU_THROTTLE_KEY, timedelta(seconds=5)):
            return new_error("该源限制5s内连续搜索")
        key = f"cms-video-search::{self.name}_{keyword}_{page}"
        return with_cache(key, timedelta(hours=6), lambda: self._search(keyword, page))

    def detail(self, id: str) -> Any:
        key = f"cms-video-detail::{self.name}_{id}"
        return with_cache(key, timedelta(hours=6), lambda: self._detail(id))

    def source(self, pid: str, vid: str) -> Any:
        key = f"cms-video-source::{self.name}_{pid}_{vid}"
        return with_cache(key, timedelta(hours=2), lambda: self._source(pid, vid))

    def _pager_from(self, document: Any, pager: Pager) -> Pager:
        pager.total = _int(_field(document, "total"))
        pager.pages = _int(_field(document, "pagecount"))
        pager.page = _int(_field(document, "page"))
        pager.limit = _int(_field(document, "limit"))
        pager.items = [
            Video(
                id=_text(item.get("vod_id")),
                name=_text(item.get("vod_name")),
                thumb=_text(item.get("vod_pic")),
                intro=_text(item.get("vod_blurb")).strip(),
                resolution=_text(item.get("vod_remarks")),
                updated_at=_text(item.get("vod_time")),
            )
            for item in _items(document)
        ]
        return pager

    def _video_list(self, tag: str, page: str) -> Any:
        n = parse_page_number(page)
        try:
            document = self._fetch_json(f"{self.api_url()}/?ac=list&pg={n}&t={tag}")
        except HttpError as exc:
            return new_error(f"获取数据失败：{exc}")
        pager = self._pager_from(document, Pager(limit=20, page=n))
        pager.items = self.handle_video_list_thumb(f"{self.api_url()}/?ac=detail&ids=%s", pager.items)
        if not pager.items:
            return new_error("暂无数据")
        return new_success(pager)

    def _search(self, keyword: str, page: str) -> Any:
        if self.name == HONGNIU_NAME:
            return self._hongniu_search(keyword, page)
        return self._api_search(keyword, page)

    def _hongniu_search(self, keyword: str, page: str) -> Any:
        n = parse_page_number(page)
        url = f"{parse_url_host(self.option.host)}/index.php/vod/search/page/{n}/wd/{keyword}.html?ac=detail"
        try:
            raw = self.http_client.get(url)
        except HttpError as exc:
            return new_error(f"获取数据失败：{exc}")
        doc = BeautifulSoup(raw, "html.parser")
        pager = Pager(limit=51, page=n)
        matches = simple_regex_list(_select_text(doc, ".pages .page_tip"), r"共(\d+)条数据,当前(\d+)/(\d+)页")
        if len(matches) > 3:
            pager.total = parse_number(matches[1])
            pager.pages = parse_number(matches[3])
            pager.page = parse_number(matches[2])
        for item in doc.select(".xing_vb ul li"):
            anchor = item.select_one("a")
            href = anchor.get("href", "") if anchor is not None else ""
            vid = simple_regex(href if isinstance(href, str) else "", r"id/(\S+).html")
            if not vid:
                continue
            pager.items.append(
                Video(
                    id=vid,
                    name=_select_text(item, "a"),
                    tag=_select_text(item, ".xing_vb5"),
                    updated_at=_select_text(item, ".xing_vb7"),
                )
            )
        return new_success(pager)

    def _api_search(self, keyword: str, page: str) -> Any:
        n = parse_page_number(page)
        url = f"{self.api_url()}/?ac=list&pg={n}&t=&wd={query_escape(keyword)}"
        try:
            document = self._fetch_json(url)
        except HttpError as exc:
            return new_error(f"获取数据失败：{exc}")
        pager = self._pager_from(document, Pager(limit=20, page=n))
        if not pager.items:
            return new_error("暂无数据")
        pager.items = self.handle_video_list_thumb(f"{self.api_url()}/?ac=detail&ids=%s", pager.items)
        return new_success(pager)

    def _detail(self, id: str) -> Any:
        try:
            document = self._fetch_json(f"{self.api_url()}/?ac=detail&ids={id}")
        except HttpError as exc:
            return new_error(f"获取数据失败：{exc}")
        video = Video(id=id)
        if _int(_field(document, "total")) > 0:
            for item in _items(document):
                video.name = _text(item.get("vod_name"))
                video.thumb = _text(item.get("vod_pic"))
                video.intro = html_to_text(_text(item.get("vod_content")))
                video.actors = _text(item.get("vod_actor"))
                video.updated_at = _text(item.get("vod_time"))
                video.links, _ = parse_source_list(
                    self.option.name,
                    _text(item.get("vod_play_from")),
                    _text(item.get("vod_play_note")),
                    _text(item.get("vod_play_url")),
                    "",
                )
        return new_success(video)

    def _source(self, pid: str, vid: str) -> Any:
        try:
            document = self._fetch_json(f"{self.api_url()}/?ac=detail&ids={vid}")
        except HttpError as exc:
            return new_error(f"获取数据失败：{exc}")
        source = Source(id=pid, vid=vid)
        if _int(_field(document, "total")) > 0:
            for item in _items(document):
                source.name = _text(item.get("vod_name"))
                source.thumb = _text(item.get("vod_pic"))
                _, link = parse_source_list(
                    self.option.name,
                    _text(item.get("vod_play_from")),
                    _text(item.get("vod_play_note")),
                    _text(item.get("vod_play_url")),
                    pid,
                )
                source.url = link.url if link else ""
                source.source = source.url
        source.type = parse_video_type(source.source)
        if not source.url:
            return new_error("暂无数据")
        return new_success(source)

    def _tag_cache_file(self) -> str:
        base = self.app_dir if self.app_dir is not None else app_path()
        return os.path.join(base, "cache", "tags", f"{self.option.id}.json")

    def tag_list(self) -> list[KV1]:
        """Categories read from the local tag cache; the cache is refreshed in the background."""
        filename = self._tag_cache_file()
        tags = {"全部": ""}
        classes = _field(_load(read_file(filename) or b"null"), "class")
        if isinstance(classes, list):
            for entry in classes:
                if isinstance(entry, dict):
                    tags[_text(entry.get("type_name"))] = _text(entry.get("type_id"))
        threading.Thread(target=self.save_tag_list_local, args=(filename,), daemon=True).start()
        return format_tags(tags)

    def save_tag_list_local(self, filename: str) -> None:
        """Fetch the category list into filename unless a copy under two days old exists."""
        try:
            os.makedirs(os.path.dirname(filename), exist_ok=True)
        except OSError as exc:
            log.warning("cannot create tag cache directory: %s", exc)
            return
        try:
            if time.time() - os.stat(filename).st_mtime <= TAG_REFRESH_AGE:
                return
        except OSError:
            pass
        try:
            os.remove(filename)
        except OSError:
            pass
        log.info("refreshing tags of %s from %s", self.option.name, self.option.api)
        try:
            try:
                raw = self.http_client.get(self.option.api)
            except HttpError as exc:
                write_file(f"{filename}.error", str(exc).encode("utf-8"))
                return
            classes = _field(_load(raw), "class")
            if isinstance(classes, list) and classes:
                write_file(filename, raw)
            else:
                write_file(f"{filename}.error", raw)
        except OSError as exc:
            log.warning("cannot write tag cache: %s", exc)