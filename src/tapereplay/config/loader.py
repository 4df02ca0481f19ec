from __future__ import annotations

from typing import Any, Dict, List, Optional

from .providers import ConfigManager, ConfigProvider, DictProvider, EnvProvider, FileProvider


def load_config(
    defaults: Optional[Dict[str, Any]] = None,
    file_path: Optional[str] = None,
    *,
    use_env: bool = True,
    env_prefix: str = "TAPE_",
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """defaults < file < env < overrides. An explicit file_path must exist."""
    stack: List[ConfigProvider] = [DictProvider(name="defaults", data=dict(defaults or {}))]
    if file_path:
        stack.append(FileProvider(path=file_path, optional=False))
    if use_env:
        stack.append(EnvProvider(prefix=env_prefix))
    stack.append(DictProvider(name="overrides", data=dict(overrides or {})))
    return ConfigManager(stack).load()
