"""Data types exchanged between video sources and the HTTP API."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Iterable, Mapping

M3U8_PROXY_HOSTS = ("yundunm.nowm3.xyz:2083",)


def _json_name(f) -> str:
    return f.metadata.get("json", f.name)


@dataclass
class Success:
    """A successful API response."""

    data: Any = None
    code: int = 200
    msg: str = ""

    def to_dict(self) -> dict:
        out: dict = {"code": self.code}
        if self.msg:
            out["msg"] = self.msg
        out["data"] = to_jsonable(self.data)
        return out


@dataclass
class Error:
    """A failed API response."""

    msg: str
    code: int = 500
    data: Any = None

    def to_dict(self) -> dict:
        out: dict = {"code": self.code, "msg": self.msg}
        if self.data is not None:
            out["data"] = to_jsonable(self.data)
        return out


@dataclass
class Link:
    id: str = ""
    name: str = ""
    url: str = ""
    group: str = ""


@dataclass
class Video:
    id: str = ""
    name: str = ""
    thumb: str = ""
    intro: str = ""
    url: str = ""
    actors: str = ""
    tag: str = ""
    resolution: str = ""
    updated_at: str = ""
    links: list = field(default_factory=list)


@dataclass
class Pager:
    """One page of a video listing."""

    total: int = 0
    pages: int = 0
    page: int = 0
    limit: int = 0
    items: list = field(default_factory=list, metadata={"json": "list"})


@dataclass
class Source:
    """A resolved play address for one episode."""

    id: str = ""
    vid: str = ""
    name: str = ""
    thumb: str = ""
    url: str = ""
    type: str = ""
    source: str = ""


@dataclass
class VideoResolution:
    """Result of probing one source for a playable stream."""

    source: str = ""
    name: str = ""
    vid: str = ""
    pid: str = ""
    url: str = ""
    ts_url: str = ""
    width: int = 0
    height: int = 0
    time: str = ""
    err: str = ""


@dataclass
class Control:
    """A remote-control command relayed to a websocket group."""

    source: str = field(default="", metadata={"json": "_source"})
    client_id: str = ""
    group: str = ""
    event: str = ""
    value: Any = None


@dataclass
class KV1:
    name: str = ""
    value: str = ""


@dataclass
class CmsZyOption:
    """Options a source handler is created with."""

    id: str = ""
    name: str = ""
    host: str = ""
    api: str = ""
    disable: bool = False
    searchable: bool = False


@dataclass
class CmsApiConfig:
    """One `source` entry of the configuration file."""

    id: str = ""
    name: str = ""
    host: str = ""
    api: str = ""
    disable: bool = False
    searchable: bool = False


@dataclass
class SourceHandler:
    """A registered source: its sort position and its handler."""

    sort: int
    handler: Any


def new_success(data: Any) -> Success:
    return Success(data=data)


def new_error(msg: str, code: int = 500) -> Error:
    return Error(msg=msg, code=code)


def new_error_with_data(msg: str, data: Any, code: int = 500) -> Error:
    return Error(msg=msg, code=code, data=data)


def to_jsonable(value: Any) -> Any:
    """Convert responses, dataclasses and containers into plain JSON values."""
    if isinstance(value, (Success, Error)):
        return value.to_dict()
    if is_dataclass(value) and not isinstance(value, type):
        return {_json_name(f): to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(value[k]) for k in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def _str_field(data: Mapping, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


def _bool_field(data: Mapping, key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"field {key!r} must be a boolean")
    return value


def parse_api_configs(items: Iterable[Mapping] | None) -> list[CmsApiConfig]:
    """Build source configurations from raw mappings (keys match case-insensitively)."""
    configs = []
    for item in items or ():
        if not isinstance(item, Mapping):
            raise ValueError("source entry must be a mapping")
        lowered = {str(k).lower(): v for k, v in item.items()}
        configs.append(
            CmsApiConfig(
                id=_str_field(lowered, "id"),
                name=_str_field(lowered, "name"),
                host=_str_field(lowered, "host"),
                api=_str_field(lowered, "api"),
                disable=_bool_field(lowered, "disable"),
                searchable=_bool_field(lowered, "searchable"),
            )
        )
    return configs


def parse_control(data: Any) -> Control:
    """Build a Control from a JSON document or an already decoded mapping."""
    if isinstance(data, (bytes, bytearray, str)):
        try:
            data = json.loads(data)
        except ValueError as exc:
            raise ValueError("invalid control payload") from exc
    if not isinstance(data, Mapping):
        raise ValueError("control payload must be an object")
    kwargs = {}
    for f in fields(Control):
        key = _json_name(f)
        if key not in data:
            continue
        value = data[key]
        if f.name == "value":
            kwargs[f.name] = value
            continue
        if value is None:
            continue
        if not isinstance(value, str):
            raise ValueError(f"field {key!r} must be a string")
        kwargs[f.name] = value
    return Control(**kwargs)