# src/quickact/adapters/fs/path_provider.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path

from quickact.config import const
from quickact.services.settings import Settings


@dataclass(slots=True, init=False)
class PathProvider:
    """Единая точка истины для путей. Всегда работает с pathlib.Path."""

    base: Path

    def __init__(self, settings: Settings):
        self.base = Path(settings.base_dir).expanduser().resolve()

    def base_dir(self) -> Path:
        return self.base

    def actions_dir(self) -> Path:
        return self.base / const.ACTIONS_DIR_NAME

    def logs_dir(self) -> Path:
        return self.base / "logs"

    def config_file(self) -> Path:
        return self.base / const.CONFIG_FILE_NAME

    def ensure_tree(self) -> None:
        # actions_dir не трогаем: его отсутствие = первый запуск (см. ActionTree.ensure)
        for p in (self.base_dir(), self.logs_dir()):
            p.mkdir(parents=True, exist_ok=True)
