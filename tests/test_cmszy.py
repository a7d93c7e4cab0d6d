import json
import os
from urllib.parse import parse_qs, urlsplit

import pytest
import requests
import responses

from airplaytv.cache import shared_cache
from airplaytv.handlers.cmszy import CmsZyHandler, format_tags, parse_source_list
from airplaytv.models import Error, KV1, Link, Success
from airplaytv.storage import read_file

API = "https://cms.example.com/api.php/provide/vod/"
BASE = "https://cms.example.com/api.php/provide/vod/"


@pytest.fixture(autouse=True)
def _clear_cache():
    shared_cache().clear()
    yield
    shared_cache().clear()


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def make_handler(name="Example CMS", api=API, host="", app_dir=None):
    from airplaytv.models import CmsZyOption

    return CmsZyHandler(CmsZyOption(id="ex", name=name, host=host, api=api, searchable=True), app_dir=app_dir)


LIST_DOC = {
    "total": 2,
    "pagecount": 1,
    "page": 1,
    "limit": 20,
    "list": [
        {"vod_id": 1, "vod_name": "A", "vod_pic": "old-a", "vod_blurb": "  blurb  ", "vod_remarks": "HD", "vod_time": "t1"},
        {"vod_id": 2, "vod_name": "B", "vod_pic": "old-b", "vod_blurb": "", "vod_remarks": "", "vod_time": "t2"},
    ],
}

DETAIL_DOC = {
    "total": 1,
    "list": [
        {
            "vod_id": 1,
            "vod_name": "A",
            "vod_pic": "pic-a",
            "vod_content": "<p>Story</p>",
            "vod_actor": "Someone",
            "vod_time": "t1",
            "vod_play_from": "line1$$$line2",
            "vod_play_note": "$$$",
            "vod_play_url": "E1$https://v.example.com/1.m3u8#E2$https://v.example.com/2.m3u8$$$E1$https://w.example.com/1.mp4",
        }
    ],
}


def _callback(request):
    query = parse_qs(urlsplit(request.url).query)
    if query.get("ac") == ["list"]:
        return 200, {}, json.dumps(LIST_DOC)
    return 200, {}, json.dumps({"total": 1, "list": [{"vod_id": 1, "vod_pic": "new-a"}]})


def test_parse_source_list_single_group():
    links, found = parse_source_list(
        "src", "", "", "#ep1$https://a.example.com/1.m3u8#ep2$https://a.example.com/2.m3u8#", "0-1"
    )
    assert [link.id for link in links] == ["0-0", "0-1"]
    assert all(link.group == "src" for link in links)
    assert found == Link(id="0-1", name="ep2", url="https://a.example.com/2.m3u8", group="src")


def test_parse_source_list_multiple_groups_and_errors():
    links, found = parse_source_list("src", "g1$$$g2", "$$$", "a$u1$$$b$u2", "")
    assert [(link.id, link.group, link.url) for link in links] == [("0-0", "g1", "u1"), ("1-0", "g2", "u2")]
    assert found is None
    with pytest.raises(ValueError):
        parse_source_list("src", "", "", "", "")
    with pytest.raises(ValueError):
        parse_source_list("src", "g1", "$$$", "a$u1$$$b$u2", "")


def test_format_tags_sorted_by_value():
    result = format_tags({"B": "2", "全部": "", "A": "1"})
    assert result == [KV1("全部", ""), KV1("A", "1"), KV1("B", "2")]


def test_api_url():
    assert make_handler().api_url() == "https://cms.example.com/api.php/provide/vod"
    assert make_handler(api="not a url").api_url() == ""


def test_video_list_fills_thumbs_and_is_cached(mocked):
    mocked.add_callback(responses.GET, BASE, callback=_callback)
    handler = make_handler()
    resp = handler.video_list("", "1")
    assert isinstance(resp, Success)
    pager = resp.data
    assert (pager.total, pager.pages, pager.page, pager.limit) == (2, 1, 1, 20)
    assert [v.id for v in pager.items] == ["1", "2"]
    assert pager.items[0].thumb == "new-a"
    assert pager.items[1].thumb == "old-b"
    assert pager.items[0].intro == "blurb"
    calls = len(mocked.calls)
    assert handler.video_list("", "1") is resp
    assert len(mocked.calls) == calls


def test_video_list_empty_and_failure(mocked):
    mocked.add(responses.GET, BASE, json={"total": 0, "list": []})
    assert make_handler(name="Empty").video_list("", "1") == Error("暂无数据")
    mocked.replace(responses.GET, BASE, body=requests.ConnectionError("down"))
    failed = make_handler(name="Down").video_list("", "1")
    assert isinstance(failed, Error)
    assert failed.msg.startswith("获取数据失败：")


def test_api_search_escapes_keyword(mocked):
    mocked.add_callback(responses.GET, BASE, callback=_callback)
    resp = make_handler().search("a b", "1")
    assert isinstance(resp, Success)
    assert "wd=a+b" in mocked.calls[0].request.url
    assert [v.name for v in resp.data.items] == ["A", "B"]


HONGNIU_HTML = """
<div class="xing_vb"><ul>
<li><span class="xing_vb4"><a href="/index.php/vod/detail/id/77.html">Movie A</a></span>
<span class="xing_vb5">Action</span><span class="xing_vb7">2024-01-02</span></li>
<li><span>header</span></li>
</ul></div>
<div class="pages"><span class="page_tip">共1条数据,当前1/1页</span></div>
"""


def test_hongniu_search_and_throttle(mocked):
    mocked.add(
        responses.GET,
        "https://hn.example.com/index.php/vod/search/page/1/wd/abc.html",
        body=HONGNIU_HTML,
    )
    handler = make_handler(name="红牛资源", host="https://hn.example.com/")
    resp = handler.search("abc", "1")
    assert isinstance(resp, Success)
    assert (resp.data.total, resp.data.page, resp.data.pages) == (1, 1, 1)
    assert len(resp.data.items) == 1
    video = resp.data.items[0]
    assert (video.id, video.name, video.tag, video.updated_at) == ("77", "Movie A", "Action", "2024-01-02")
    assert handler.search("abc", "1") == Error("该源限制5s内连续搜索")


def test_detail_and_source(mocked):
    mocked.add(responses.GET, BASE, json=DETAIL_DOC)
    handler = make_handler()
    detail = handler.detail("1")
    assert isinstance(detail, Success)
    video = detail.data
    assert video.name == "A"
    assert video.intro == "Story"
    assert [(link.id, link.group) for link in video.links] == [("0-0", "line1"), ("0-1", "line1"), ("1-0", "line2")]

    source = handler.source("0-1", "1")
    assert isinstance(source, Success)
    assert source.data.url == "https://v.example.com/2.m3u8"
    assert source.data.source == source.data.url
    assert source.data.type == "hls"

    assert handler.source("5-5", "1") == Error("暂无数据")


def test_tag_list_reads_fresh_cache(tmp_path):
    tag_dir = tmp_path / "cache" / "tags"
    tag_dir.mkdir(parents=True)
    document = {"class": [{"type_id": 2, "type_name": "TV"}, {"type_id": 1, "type_name": "Film"}]}
    (tag_dir / "ex.json").write_text(json.dumps(document), encoding="utf-8")
    tags = make_handler(app_dir=str(tmp_path)).tag_list()
    assert tags == [KV1("全部", ""), KV1("Film", "1"), KV1("TV", "2")]


def test_save_tag_list_local_writes_file(mocked, tmp_path):
    body = {"class": [{"type_id": 1, "type_name": "Film"}]}
    mocked.add(responses.GET, API, json=body)
    target = os.path.join(str(tmp_path), "tags", "ex.json")
    make_handler().save_tag_list_local(target)
    assert json.loads(read_file(target)) == body
    calls = len(mocked.calls)
    make_handler().save_tag_list_local(target)
    assert len(mocked.calls) == calls


def test_save_tag_list_local_records_errors(mocked, tmp_path):
    mocked.add(responses.GET, API, json={"class": []})
    target = os.path.join(str(tmp_path), "ex.json")
    make_handler().save_tag_list_local(target)
    assert not os.path.exists(target)
    assert json.loads(read_file(target + ".error")) == {"class": []}