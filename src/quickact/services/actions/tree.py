# src/quickact/services/actions/tree.py
from __future__ import annotations

import logging
from pathlib import Path
from threading import RLock
from typing import Dict, Iterable, Optional, Sequence

from quickact.domain import ActionDefinition, ActionTier, ClassificationUnavailable, MimeType
from quickact.ports import DefaultsInstaller, MimeClassifier
from quickact.services.actions.spec import parse

log = logging.getLogger(__name__)


def common_mime(mimes: Iterable[Optional[MimeType]]) -> Optional[MimeType]:
    """
    Самый специфичный общий MIME для выделения:
      - все совпадают            -> base/sub
      - base совпадает, sub нет  -> base/ (sub = "")
      - разные base или неизвестен хотя бы один -> None (только Universal)
    """
    common: Optional[MimeType] = None
    first = True
    for mime in mimes:
        if mime is None:
            return None
        if first:
            common, first = mime, False
            continue
        assert common is not None
        if mime.base != common.base:
            return None
        if mime.sub != common.sub:
            common = MimeType(common.base, "")
    return common


class ActionTree:
    """
    Read-only индекс каталога действий:
      {root}/              -> Universal
      {root}/{base}/       -> BaseType
      {root}/{base}/{sub}/ -> SubType
    Отсутствующий каталог ничего не добавляет. Листинги кэшируются до явного refresh().
    """

    def __init__(self, root: Path, *, installer: Optional[DefaultsInstaller] = None) -> None:
        self.root = Path(root)
        self._installer = installer
        self._cache: Dict[Path, tuple[ActionDefinition, ...]] = {}
        self._lock = RLock()

    # ---------- lifecycle ----------

    def ensure(self) -> bool:
        """Create the root on first use and ask the installer to populate it. Returns True if it was created."""
        with self._lock:
            if self.root.exists():
                return False
            self.root.mkdir(parents=True, exist_ok=True)
            log.info("actions.root_created", extra={"extra": {"root": str(self.root)}})
            if self._installer is not None:
                try:
                    self._installer.install_defaults(self.root)
                except Exception:
                    # без дефолтов дерево остаётся рабочим (пустым)
                    log.exception("actions.install_failed", extra={"extra": {"root": str(self.root)}})
            self._cache.clear()
            return True

    def refresh(self) -> None:
        with self._lock:
            self._cache.clear()

    # ---------- resolution ----------

    def tier_dirs(self, mime: Optional[MimeType]) -> list[tuple[ActionTier, Path]]:
        dirs = [(ActionTier.UNIVERSAL, self.root)]
        if mime is None or not _safe_segment(mime.base):
            return dirs
        dirs.append((ActionTier.BASE, self.root / mime.base))
        if mime.sub and _safe_segment(mime.sub):
            dirs.append((ActionTier.SUB, self.root / mime.base / mime.sub))
        return dirs

    def resolve(self, mime: Optional[MimeType], selection_count: int = 1) -> list[ActionDefinition]:
        if selection_count <= 0:
            return []
        self.ensure()
        result: list[ActionDefinition] = []
        for tier, directory in self.tier_dirs(mime):
            result.extend(self._listing(tier, directory))
        log.debug(
            "actions.resolved",
            extra={"extra": {"mime": str(mime) if mime else None, "count": len(result), "selection": selection_count}},
        )
        return result

    def resolve_paths(self, paths: Sequence[str | Path], classifier: MimeClassifier) -> tuple[Optional[MimeType], list[ActionDefinition]]:
        mime = common_mime(_classify(classifier, p) for p in paths) if paths else None
        return mime, self.resolve(mime, len(paths))

    def find(self, name: str, mime: Optional[MimeType], *, tier: Optional[ActionTier] = None) -> Optional[ActionDefinition]:
        """Most specific action with the given display name (or file name)."""
        hits = [
            a
            for a in self.resolve(mime)
            if (a.display_name == name or a.path.name == name) and (tier is None or a.tier is tier)
        ]
        return hits[-1] if hits else None

    def _listing(self, tier: ActionTier, directory: Path) -> tuple[ActionDefinition, ...]:
        with self._lock:
            cached = self._cache.get(directory)
            if cached is not None:
                return cached
        items = _scan(tier, directory)
        with self._lock:
            self._cache[directory] = items
        return items


def _safe_segment(s: str) -> bool:
    return bool(s) and s not in (".", "..") and "/" not in s and "\\" not in s


def _classify(classifier: MimeClassifier, path: str | Path) -> Optional[MimeType]:
    try:
        return MimeType.parse(classifier.classify(path))
    except (ClassificationUnavailable, ValueError) as e:
        log.debug("actions.mime_unavailable", extra={"extra": {"path": str(path), "error": str(e)}})
        return None


def _scan(tier: ActionTier, directory: Path) -> tuple[ActionDefinition, ...]:
    try:
        entries = list(directory.iterdir())
    except (FileNotFoundError, NotADirectoryError):
        return ()
    except OSError as e:
        log.warning("actions.scan_failed", extra={"extra": {"dir": str(directory), "error": str(e)}})
        return ()

    defs: list[ActionDefinition] = []
    for entry in entries:
        if entry.name.startswith(".") or entry.is_dir():
            continue
        spec = parse(entry.name)
        defs.append(
            ActionDefinition(
                path=entry,
                display_name=spec.display_name,
                prompts=spec.prompts,
                foreground=spec.foreground,
                tier=tier,
            )
        )
    # одинаковые имена в одном тире: по пути
    defs.sort(key=lambda d: (d.display_name, str(d.path)))
    return tuple(defs)
