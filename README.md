# airplaytv

A library that gathers several online video sources behind one interface.
For each source it can list the catalogue by category, search, fetch a title's
episode links and resolve a playable stream address. It also has a small hub
that relays remote-control messages between websocket clients.

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Configuration

`airplaytv.registry.load_config(path)` reads a YAML (or JSON) file. `path` may
name the file itself or a directory holding `config.yaml`, `config.yml` or
`config.json`. Two top-level keys are used:

- `source`: a list of CMS collection APIs, each with `id`, `name`, `host`,
  `api`, `disable` and `searchable`.
- `mode`: a mapping from a mode name to the list of source names that mode
  exposes.

```yaml
source:
  - id: example
    name: Example CMS
    host: https://cms.example.com
    api: https://cms.example.com/api.php/provide/vod
    disable: false
    searchable: true
mode:
  default:
    - Example CMS
    - 蚂蚁影视
```

Besides the configured sources, two built-in site handlers are always
registered: `CzzyHandler` (厂长资源) and `MaYiHandler` (蚂蚁影视). Disabled
configured sources are skipped.

## Usage

```python
from airplaytv.models import Success
from airplaytv.registry import load_registry

registry = load_registry(".")
entry = registry.find("default", "蚂蚁影视")   # LookupError if absent or disabled
result = entry.handler.search("keyword", "1")
if isinstance(result, Success):
    for video in result.data.items:
        print(video.id, video.name)
else:
    print(result.msg)
```

- `SourceRegistry.for_mode(mode)` returns the sources of a mode; the mode
  `aptv-all` gives every source and an unknown mode falls back to `default`.
- Every handler (`airplaytv.handlers.base.VideoHandler`) offers `tag_list()`,
  `video_list(tag, page)`, `search(keyword, page)`, `detail(id)` and
  `source(pid, vid)`. They return a `Success` holding a `Pager`, `Video` or
  `Source`, or an `Error` with a message. `to_dict()` and
  `airplaytv.models.to_jsonable` turn them into plain JSON values.
- `CmsZyHandler` and `CzzyHandler` cache their results in the process-wide
  `airplaytv.cache.shared_cache()` for a few hours.
- `CzzyHandler.update_header(header)` applies a cookie and user agent only if a
  test search succeeds with them, and saves them under the program's `file`
  directory; `init_http_headers` reapplies saved headers when a registry loads.

Other helpers:

- `airplaytv.m3u8`: playlist type detection, making entries absolute
  (`format_m3u8_url`) and resolving up to three segment addresses
  (`parse_play_url_list`).
- `airplaytv.urls`: `encode_component_url` / `decode_component_url`, host
  extraction and filling.
- `airplaytv.crypto`: AES-CBC with PKCS#7 padding and MD5.
- `airplaytv.httpclient.HttpClient`: requests with a fixed header set; failures
  raise `HttpError`.

## Websocket hub

`airplaytv.websocket_hub.WebsocketHub` works with any object that has an
awaitable `send_text(str)` method. `connect(websocket)` registers it, sends a
greeting with its `client_id` and returns the id. `handle(client_id, message)`
accepts JSON messages:

- `{"event": "join-group", "data": {"group": "living-room"}}` joins a group.
- `{"event": "send-to-group", "data": {"group": "living-room", ...}}` forwards
  the data to every member of the group.

`send_to_group(group, message)` can also be called directly, for example to
deliver a `Control` built with `airplaytv.models.parse_control`.

## What this package does not do

It has no HTTP server and no command-line program: there are no API routes,
no server-sent search stream, no playlist proxy endpoint, no QR code or
network-check endpoints, and nothing that collects or serves per-source
resolution statistics. The hub must be wired to a websocket server by the
application that uses it.