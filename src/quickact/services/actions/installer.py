# src/quickact/services/actions/installer.py
from __future__ import annotations

import importlib.resources as ir
import logging
import os
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Iterator, Optional

from quickact.domain import InstallError
from quickact.ports import EventBus
from quickact.services.eventbus import emit

log = logging.getLogger(__name__)

EXTRAS_DIR = "extra"
_SKIP = {"__init__.py", "__pycache__"}


def _bundled_source() -> Traversable:
    """Default actions shipped inside the package (quickact/default_actions)."""
    try:
        return ir.files("quickact") / "default_actions"
    except ModuleNotFoundError as e:
        raise InstallError(f"bundled actions unavailable: {e}") from e


def _walk(node: Traversable, rel: tuple[str, ...] = ()) -> Iterator[tuple[tuple[str, ...], Traversable]]:
    for child in sorted(node.iterdir(), key=lambda t: t.name):
        if child.name in _SKIP or child.name.startswith("."):
            continue
        if child.is_dir():
            yield from _walk(child, rel + (child.name,))
        elif child.is_file():
            yield rel + (child.name,), child


class DefaultActionsInstaller:
    """
    Copy-if-absent установщик действий по умолчанию:
      - никогда не перезаписывает существующие файлы (правки пользователя важнее)
      - extra/* ставится только по явному запросу (include_extras=True)
      - установленные файлы помечаются исполняемыми
    """

    def __init__(self, source: Optional[Traversable | Path] = None, *, bus: Optional[EventBus] = None) -> None:
        self._source = source
        self._bus = bus

    def _root_source(self) -> Traversable:
        src = self._source if self._source is not None else _bundled_source()
        if not src.is_dir():
            raise InstallError(f"default actions source is not a directory: {src}")
        return src

    def install_defaults(self, root: Path, *, include_extras: bool = False) -> list[Path]:
        root = Path(root)
        root.mkdir(parents=True, exist_ok=True)
        src = self._root_source()

        installed: list[Path] = []
        for rel, item in _walk(src):
            if rel[0] == EXTRAS_DIR:
                if not include_extras or len(rel) == 1:
                    continue
                rel = rel[1:]
            target = root.joinpath(*rel)
            if self._copy_if_absent(item, target):
                installed.append(target)

        log.info(
            "actions.defaults_installed",
            extra={"extra": {"root": str(root), "installed": len(installed), "extras": include_extras}},
        )
        if self._bus is not None:
            emit(self._bus, "actions.installed", {"root": str(root), "installed": len(installed)}, "installer")
        return installed

    @staticmethod
    def _copy_if_absent(item: Traversable, target: Path) -> bool:
        if target.exists() or target.is_symlink():
            return False
        target.parent.mkdir(parents=True, exist_ok=True)
        data = item.read_bytes()
        try:
            # "x": если файл успели создать, не трогаем его
            with open(target, "xb") as f:
                f.write(data)
        except FileExistsError:
            return False
        if os.name == "posix":
            target.chmod(0o755)
        return True
