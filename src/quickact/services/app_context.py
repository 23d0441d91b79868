# src/quickact/services/app_context.py
from __future__ import annotations
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Optional

from quickact.services.settings import Settings
from quickact.ports import EventBus, MimeClassifier, PathProvider, DefaultsInstaller, PromptCollector
from quickact.services.actions.tree import ActionTree
from quickact.services.actions.invoke import ActionInvoker
from quickact.services.runtime.supervisor import ProcessSupervisor

_CTX: ContextVar[Optional["AppContext"]] = ContextVar("quickact_app_ctx", default=None)


def set_ctx(ctx: AppContext) -> None:
    """Устанавливает текущий AppContext (делает доступным через get_ctx)."""
    _CTX.set(ctx)


def get_ctx() -> AppContext:
    """Возвращает текущий AppContext или бросает ошибку, если не инициализирован."""
    ctx = _CTX.get()
    if ctx is None:
        raise RuntimeError("AppContext is not initialized. Call set_ctx(...) during app bootstrap.")
    return ctx


def clear_ctx() -> None:
    """Очищает текущий контекст (для тестов/завершения)."""
    _CTX.set(None)


@dataclass(slots=True)
class AppContext:
    settings: Settings
    paths: PathProvider
    bus: EventBus
    supervisor: ProcessSupervisor
    installer: DefaultsInstaller
    classifier: MimeClassifier

    # приватные кэши под slots
    _actions: Optional[ActionTree] = field(default=None, init=False, repr=False)

    @property
    def actions(self) -> ActionTree:
        tree = self._actions
        if tree is None:
            tree = ActionTree(self.paths.actions_dir(), installer=self.installer)
            self._actions = tree
        return tree

    def invoker(self, collector: Optional[PromptCollector] = None) -> ActionInvoker:
        return ActionInvoker(self.supervisor, bus=self.bus, collector=collector)
