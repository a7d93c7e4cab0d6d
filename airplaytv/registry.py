"""Registry of video sources built from the configuration file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .handlers.base import VideoHandler
from .handlers.cmszy import CmsZyHandler
from .handlers.czzy import CZZY_NAME, CzzyHandler
from .handlers.mayi import MAYI_NAME, MaYiHandler
from .models import CmsApiConfig, CmsZyOption, SourceHandler, parse_api_configs
from .storage import load_http_header

log = logging.getLogger(__name__)

ALL_SOURCES_MODE = "aptv-all"
DEFAULT_MODE = "default"
CONFIG_NAMES = ("config.yaml", "config.yml", "config.json")
_FIRST_CONFIGURED_SORT = 20


def _config_file(path: str | os.PathLike) -> Path:
    candidate = Path(path)
    if candidate.is_dir():
        for name in CONFIG_NAMES:
            if (candidate / name).is_file():
                return candidate / name
        raise FileNotFoundError(f"no configuration file in {candidate}")
    if not candidate.is_file():
        raise FileNotFoundError(str(candidate))
    return candidate


def _parse_modes(raw: Any) -> dict[str, list[str]]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ValueError("mode must be a mapping")
    modes: dict[str, list[str]] = {}
    for name, members in raw.items():
        if members is None:
            members = []
        if not isinstance(members, list) or not all(isinstance(m, str) for m in members):
            raise ValueError(f"mode {name!r} must be a list of source names")
        modes[str(name).lower()] = list(members)
    return modes


def load_config(path: str | os.PathLike = ".") -> tuple[list[CmsApiConfig], dict[str, list[str]]]:
    """Read the source list and the mode map from a configuration file.

    path may name the file or a directory holding config.yaml, config.yml or
    config.json. Raises FileNotFoundError or ValueError.
    """
    filename = _config_file(path)
    with open(filename, encoding="utf-8") as fh:
        try:
            document = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ValueError(f"cannot parse {filename}: {exc}") from exc
    if document is None:
        document = {}
    if not isinstance(document, Mapping):
        raise ValueError(f"{filename} must hold a mapping")
    lowered = {str(k).lower(): v for k, v in document.items()}
    sources = lowered.get("source")
    if sources is not None and not isinstance(sources, list):
        raise ValueError("source must be a list")
    return parse_api_configs(sources), _parse_modes(lowered.get("mode"))


def build_source_map(api_configs: list[CmsApiConfig]) -> dict[str, SourceHandler]:
    """The built-in sources followed by every enabled configured source."""
    sources: dict[str, SourceHandler] = {
        CZZY_NAME: SourceHandler(
            sort=1,
            handler=CzzyHandler(CmsZyOption(id="czzy", name=CZZY_NAME, searchable=True)),
        ),
        MAYI_NAME: SourceHandler(
            sort=4,
            handler=MaYiHandler(CmsZyOption(id="mayi", name=MAYI_NAME, searchable=True)),
        ),
    }
    sort = _FIRST_CONFIGURED_SORT
    for config in api_configs:
        if config.disable:
            continue
        sort += 1
        handler = CmsZyHandler(
            CmsZyOption(
                id=config.id,
                name=config.name,
                host=config.host,
                api=config.api,
                disable=config.disable,
                searchable=config.searchable,
            )
        )
        sources[config.name] = SourceHandler(sort=sort, handler=handler)
    return sources


def build_mode_map(
    source_map: Mapping[str, SourceHandler], modes: Mapping[str, list[str]]
) -> dict[str, dict[str, SourceHandler]]:
    """For each mode, the registered sources it lists."""
    return {
        mode: {name: entry for name, entry in source_map.items() if name in members}
        for mode, members in modes.items()
    }


@dataclass
class SourceRegistry:
    """All registered sources and the subsets each mode exposes."""

    sources: dict[str, SourceHandler] = field(default_factory=dict)
    modes: dict[str, dict[str, SourceHandler]] = field(default_factory=dict)

    def for_mode(self, mode: str) -> dict[str, SourceHandler]:
        """Sources of a mode; 'aptv-all' gives every source, unknown modes the default."""
        if mode in self.modes:
            return self.modes[mode]
        if mode == ALL_SOURCES_MODE:
            return self.sources
        return self.modes.get(DEFAULT_MODE, {})

    def find(self, mode: str, name: str) -> SourceHandler:
        """The named source of a mode; raises LookupError if it is absent or disabled."""
        entry = self.for_mode(mode).get(name.strip())
        if entry is None or entry.handler.option.disable:
            raise LookupError("数据源错误")
        return entry


def init_http_headers(source_map: Mapping[str, SourceHandler]) -> list[str]:
    """Apply saved request headers to each source; returns the names that took them."""
    applied = []
    for entry in source_map.values():
        handler: VideoHandler = entry.handler
        try:
            header = load_http_header(handler.name)
        except (OSError, ValueError):
            continue
        try:
            handler.update_header(header)
        except Exception as exc:  # a failing source must not stop the others
            log.warning("cannot apply saved headers to %s: %s", handler.name, exc)
            continue
        applied.append(handler.name)
    return applied


def load_registry(config_path: str | os.PathLike = ".") -> SourceRegistry:
    """Build the registry from a configuration file and apply saved headers."""
    api_configs, modes = load_config(config_path)
    source_map = build_source_map(api_configs)
    init_http_headers(source_map)
    return SourceRegistry(sources=source_map, modes=build_mode_map(source_map, modes))


def hold_cookie(handler: VideoHandler) -> bool:
    """Keep a source's session alive; returns whether it succeeded."""
    try:
        handler.hold_cookie()
    except Exception as exc:  # any failure of a source is only reported
        log.warning("hold cookie failed for %s: %s", handler.name, exc)
        return False
    log.info("hold cookie succeeded for %s", handler.name)
    return True