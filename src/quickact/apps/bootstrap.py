# src/quickact/apps/bootstrap.py
from __future__ import annotations
from typing import Optional
from threading import RLock

from quickact.services.settings import Settings
from quickact.services.app_context import AppContext, set_ctx
from quickact.adapters.fs.path_provider import PathProvider
from quickact.adapters.mime.mimetypes_classifier import MimetypesClassifier
from quickact.services.eventbus import LocalEventBus
from quickact.services.logging import setup_logging, attach_event_logger
from quickact.services.actions.installer import DefaultActionsInstaller
from quickact.services.runtime.supervisor import ProcessSupervisor


class _CtxHolder:
    _ctx: Optional[AppContext] = None
    _lock = RLock()

    @classmethod
    def init(cls, settings: Optional[Settings] = None) -> AppContext:
        with cls._lock:
            cls._ctx = cls._build(settings or Settings.from_sources())
            set_ctx(cls._ctx)
            return cls._ctx

    @classmethod
    def reload(cls, **overrides) -> AppContext:
        """Иммутабельная перегрузка: создаём новый Settings и пересобираем контекст."""
        with cls._lock:
            old = cls._ctx or cls._build(Settings.from_sources())
            new_settings = old.settings.with_overrides(**overrides)
            cls._ctx = cls._build(new_settings)
            set_ctx(cls._ctx)
            return cls._ctx

    @staticmethod
    def _build(settings: Settings) -> AppContext:
        paths = PathProvider(settings)
        paths.ensure_tree()

        bus = LocalEventBus()
        root_logger = setup_logging(paths, settings.log_level)
        attach_event_logger(bus, root_logger.getChild("events"))

        supervisor = ProcessSupervisor(bus, shell=settings.shell, kill_timeout_s=settings.kill_timeout_s)

        return AppContext(
            settings=settings,
            paths=paths,
            bus=bus,
            supervisor=supervisor,
            installer=DefaultActionsInstaller(bus=bus),
            classifier=MimetypesClassifier(),
        )


# ── публичные функции (удобные фасады) ─────────────────────────────────────────


def get_ctx() -> AppContext:
    """Shim: проксируем на services.app_context.get_ctx()."""
    from quickact.services.app_context import get_ctx as _get

    return _get()


def init_ctx(settings: Optional[Settings] = None) -> AppContext:
    """Явная инициализация приложения и публикация контекста."""
    return _CtxHolder.init(settings)


def reload_ctx(**overrides) -> AppContext:
    """Пересборка с overrides и публикация контекста."""
    return _CtxHolder.reload(**overrides)
