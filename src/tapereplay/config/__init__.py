"""Config module.

  - load_config(defaults, file_path, ...) -> dict   (layered: defaults < file < env < overrides)
  - ReplaySettings.from_dict(cfg)                  (typed view used by the session)
"""

from __future__ import annotations

from .loader import load_config
from .providers import (
    ConfigManager,
    ConfigProvider,
    DictProvider,
    EnvProvider,
    FileProvider,
)
from .settings import DEFAULTS, SPEED_OPTIONS, ReplaySettings

__all__ = [
    "load_config",
    "ConfigProvider",
    "ConfigManager",
    "DictProvider",
    "EnvProvider",
    "FileProvider",
    "DEFAULTS",
    "SPEED_OPTIONS",
    "ReplaySettings",
]
