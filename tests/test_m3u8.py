import pytest
import requests
import responses

from airplaytv.httpclient import HttpError
from airplaytv.m3u8 import (
    ListType,
    M3u8Error,
    fix_url_host,
    format_m3u8_url,
    parse_play_url_list,
    playlist_type,
    playlist_urls,
)

SOURCE = "https://cdn.example.com/v/1/index.m3u8"

MEDIA = (
    "#EXTM3U\n"
    "#EXT-X-VERSION:3\n"
    "#EXT-X-TARGETDURATION:10\n"
    '#EXT-X-KEY:METHOD=AES-128,URI="key.key"\n'
    "#EXTINF:10,\n"
    "seg0.ts\n"
    '#EXT-X-KEY:METHOD=AES-128,URI="key2.key"\n'
    "#EXTINF:10,\n"
    "/abs/seg1.ts\n"
    "#EXTINF:10,\n"
    "https://other.example.com/seg2.ts\n"
    "#EXTINF:10,\n"
    "seg3.ts\n"
    "#EXT-X-ENDLIST\n"
)

MASTER = (
    "#EXTM3U\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=800000\n"
    "low/index.m3u8\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=1600000\n"
    "high/index.m3u8\n"
)


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def test_playlist_type_detection():
    assert playlist_type(MEDIA.encode()) is ListType.MEDIA
    assert playlist_type(MASTER.encode()) is ListType.MASTER
    assert playlist_type(b"not a playlist") is ListType.UNKNOWN
    assert playlist_type(b"#EXTM3U\n") is ListType.UNKNOWN


def test_fix_url_host_cases():
    assert fix_url_host("", SOURCE) == ""
    assert fix_url_host("/abs/seg1.ts", SOURCE) == "https://cdn.example.com/abs/seg1.ts"
    assert fix_url_host("https://other.example.com/a.ts", SOURCE) == "https://other.example.com/a.ts"
    assert fix_url_host("seg0.ts", SOURCE) == "https://cdn.example.com/v/1/seg0.ts"
    assert fix_url_host("../x.ts", SOURCE) == "https://cdn.example.com/v/x.ts"


def test_format_rewrites_entries_and_keeps_one_key():
    out = format_m3u8_url(MEDIA.encode(), SOURCE).decode()
    urls = playlist_urls(out)
    assert urls == [
        "https://cdn.example.com/v/1/seg0.ts",
        "https://cdn.example.com/abs/seg1.ts",
        "https://other.example.com/seg2.ts",
        "https://cdn.example.com/v/1/seg3.ts",
    ]
    key_lines = [line for line in out.splitlines() if line.startswith("#EXT-X-KEY")]
    assert key_lines == ['#EXT-X-KEY:METHOD=AES-128,URI="https://cdn.example.com/v/1/key.key"']
    assert playlist_type(out) is ListType.MEDIA


def test_format_master_variants():
    out = format_m3u8_url(MASTER, SOURCE)
    assert playlist_urls(out) == [
        "https://cdn.example.com/v/1/low/index.m3u8",
        "https://cdn.example.com/v/1/high/index.m3u8",
    ]


def test_format_errors():
    with pytest.raises(M3u8Error):
        format_m3u8_url(MEDIA, "relative/index.m3u8")
    with pytest.raises(M3u8Error):
        format_m3u8_url(b"garbage", SOURCE)
    with pytest.raises(M3u8Error):
        playlist_urls(b"garbage")


def test_parse_play_url_list_media_is_capped(mocked):
    mocked.add(responses.GET, SOURCE, body=MEDIA)
    urls = parse_play_url_list(SOURCE)
    assert urls == [
        "https://cdn.example.com/v/1/seg0.ts",
        "https://cdn.example.com/abs/seg1.ts",
        "https://other.example.com/seg2.ts",
    ]


def test_parse_play_url_list_master_takes_first_of_each_variant(mocked):
    mocked.add(responses.GET, SOURCE, body=MASTER)
    mocked.add(
        responses.GET,
        "https://cdn.example.com/v/1/low/index.m3u8",
        body="#EXTM3U\n#EXTINF:5,\na.ts\n#EXTINF:5,\nb.ts\n",
    )
    mocked.add(
        responses.GET,
        "https://cdn.example.com/v/1/high/index.m3u8",
        body=requests.ConnectionError("down"),
    )
    assert parse_play_url_list(SOURCE) == ["https://cdn.example.com/v/1/low/a.ts"]


def test_parse_play_url_list_errors(mocked):
    mocked.add(responses.GET, SOURCE, body="hello")
    with pytest.raises(M3u8Error):
        parse_play_url_list(SOURCE)
    missing = "https://cdn.example.com/missing.m3u8"
    mocked.add(responses.GET, missing, status=404, body="")
    with pytest.raises(HttpError):
        parse_play_url_list(missing)