from __future__ import annotations
from pathlib import Path
from typing import Any, Awaitable, Callable, Protocol

from quickact.domain import Event


class EventBus(Protocol):
    def subscribe(self, type_prefix: str, handler: Callable[[Event], Any]) -> None: ...
    def unsubscribe(self, type_prefix: str, handler: Callable[[Event], Any]) -> None: ...
    def publish(self, event: Event) -> None: ...


class MimeClassifier(Protocol):
    """``classify(path) -> "base/sub"``; raises ClassificationUnavailable on failure."""

    def classify(self, path: str | Path) -> str: ...


class PromptCollector(Protocol):
    """Asks the user for one prompt value; raises PromptCancelled on abort. Empty input is a valid answer."""

    def ask(self, key: str) -> Awaitable[str]: ...


class DefaultsInstaller(Protocol):
    def install_defaults(self, root: Path, *, include_extras: bool = False) -> list[Path]: ...
