# src/quickact/services/settings.py
from __future__ import annotations
from dataclasses import dataclass, replace
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from quickact.config import const

log = logging.getLogger(__name__)


def _parse_env_file(path: str) -> Dict[str, str]:
    data: Dict[str, str] = {}
    p = Path(path)
    if not p.exists():
        return data
    for line in p.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" in line:
            k, v = line.split("=", 1)
            data[k.strip()] = v.strip().strip('"').strip("'")
    return data


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        log.warning("settings.yaml_invalid", extra={"extra": {"path": str(path), "error": str(e)}})
        return {}
    return data if isinstance(data, dict) else {}


def _default_base_dir() -> Path:
    xdg = os.getenv("XDG_CONFIG_HOME")
    root = Path(xdg) if xdg else Path.home() / ".config"
    return root / const.APP_DIR_NAME


@dataclass(frozen=True, slots=True)
class Settings:
    base_dir: Path
    profile: str = "default"
    shell: str = const.DEFAULT_SHELL
    kill_timeout_s: float = const.DEFAULT_KILL_TIMEOUT_S
    log_level: str = const.DEFAULT_LOG_LEVEL

    @staticmethod
    def from_sources(env_file: Optional[str] = ".env") -> "Settings":
        """
        Priority: process ENV > .env > <base_dir>/config.yaml > constants.
        """
        env_file_vars = _parse_env_file(env_file) if env_file else {}

        def pick_env(key: str) -> str:
            return os.environ.get(key) or env_file_vars.get(key) or ""

        override_base = pick_env("QUICKACT_BASE_DIR")
        base = Path(override_base).expanduser().resolve() if override_base else _default_base_dir().resolve()
        conf = _read_yaml(base / const.CONFIG_FILE_NAME)

        def pick(key: str, yaml_key: str, default: Any) -> Any:
            return pick_env(key) or conf.get(yaml_key) or default

        try:
            kill_timeout = float(pick("QUICKACT_KILL_TIMEOUT", "kill_timeout", const.DEFAULT_KILL_TIMEOUT_S))
        except (TypeError, ValueError):
            kill_timeout = const.DEFAULT_KILL_TIMEOUT_S

        return Settings(
            base_dir=base,
            profile=pick_env("QUICKACT_PROFILE") or "default",
            shell=str(pick("QUICKACT_SHELL", "shell", const.DEFAULT_SHELL)),
            kill_timeout_s=kill_timeout,
            log_level=str(pick("QUICKACT_LOG_LEVEL", "log_level", const.DEFAULT_LOG_LEVEL)).upper(),
        )

    def with_overrides(self, **kw) -> "Settings":
        # перегружать можно ТОЛЬКО безопасные поля
        safe = {k: v for k, v in kw.items() if k in {"base_dir", "profile", "log_level"} and v is not None}
        if "base_dir" in safe:
            safe["base_dir"] = Path(safe["base_dir"]).expanduser().resolve()
        return replace(self, **safe)
