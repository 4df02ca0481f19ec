"""Config sources for the replay tool.

Each source yields a plain nested dict. ConfigManager stacks them, later
sources overriding earlier ones key by key:

  defaults  <  file (.toml / .json)  <  TAPE_* env  <  CLI overrides
"""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Protocol, runtime_checkable

from tapereplay.errors import ConfigError
from tapereplay.logging import get_logger

log = get_logger("tapereplay.config")

_BOOL_WORDS = {"true": True, "yes": True, "on": True, "false": False, "no": False, "off": False}

_FILE_READERS: Dict[str, Callable[[str], Dict[str, Any]]] = {
    ".json": json.loads,
    ".toml": tomllib.loads,
}


@runtime_checkable
class ConfigProvider(Protocol):
    name: str

    def load(self) -> Dict[str, Any]: ...


def merged(base: Mapping[str, Any], top: Mapping[str, Any]) -> Dict[str, Any]:
    """New dict with `top` laid over `base`; nested tables merge, anything else is replaced."""
    out = dict(base)
    for key, value in top.items():
        below = out.get(key)
        if isinstance(value, Mapping) and isinstance(below, Mapping):
            out[key] = merged(below, value)
        else:
            out[key] = value
    return out


def env_value(raw: str) -> Any:
    """TAPE_* values: on/off words, then JSON literals (numbers, lists), else text."""
    text = raw.strip()
    word = _BOOL_WORDS.get(text.lower())
    if word is not None:
        return word
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


@dataclass
class DictProvider:
    name: str = "dict"
    data: Dict[str, Any] = field(default_factory=dict)

    def load(self) -> Dict[str, Any]:
        return dict(self.data)


@dataclass
class EnvProvider:
    """TAPE_PLAYBACK__TICK_PERIOD_MS=50 -> {"playback": {"tick_period_ms": 50}}.

    Names in `skip` are read by the CLI itself and kept out of the tree.
    """

    name: str = "env"
    prefix: str = "TAPE_"
    sep: str = "__"
    skip: FrozenSet[str] = frozenset({"CONFIG", "LOG_LEVEL"})

    def load(self) -> Dict[str, Any]:
        tree: Dict[str, Any] = {}
        for var in sorted(os.environ):
            if not var.startswith(self.prefix):
                continue
            rest = var[len(self.prefix):]
            if rest in self.skip:
                continue
            path = [p.lower() for p in rest.split(self.sep) if p]
            if not path:
                continue
            node = tree
            for part in path[:-1]:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = node[part] = {}
                node = child
            node[path[-1]] = env_value(os.environ[var])
        return tree


@dataclass
class FileProvider:
    """A .toml or .json file. A missing file is an error unless `optional`."""

    name: str = "file"
    path: str = ""
    optional: bool = True

    def load(self) -> Dict[str, Any]:
        if not self.path:
            return {}
        p = Path(self.path)
        reader = _FILE_READERS.get(p.suffix.lower())
        if reader is None:
            raise ConfigError(f"unsupported config format {p.suffix!r}: {p} (use .toml or .json)")
        try:
            text = p.read_text(encoding="utf-8")
        except FileNotFoundError:
            if self.optional:
                return {}
            raise ConfigError(f"config file not found: {p}") from None
        try:
            data = reader(text)
        except (json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"cannot parse {p}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{p} must hold a table at the top level")
        return data


@dataclass
class ConfigManager:
    """Stack of providers, lowest precedence first."""

    providers: List[ConfigProvider]

    def load(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for provider in self.providers:
            layer = provider.load()
            if not layer:
                continue
            log.debug("config layer", extra={"provider": provider.name, "keys": sorted(layer)})
            out = merged(out, layer)
        return out
