"""Exceptions shared by the action and process services."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

__all__ = [
    "QuickactError",
    "ProcessNotFound",
    "RemoveLiveProcess",
    "PromptCancelled",
    "ClassificationUnavailable",
    "InstallError",
]


class QuickactError(RuntimeError):
    """Base error for the quickact services."""


class ProcessNotFound(QuickactError, KeyError):
    """Raised when a process id is unknown to the supervisor (never spawned or already removed)."""

    def __init__(self, proc_id: int) -> None:
        self.proc_id = proc_id
        super().__init__(f"no such process: {proc_id}")

    def __str__(self) -> str:
        return self.args[0]


class RemoveLiveProcess(QuickactError):
    """Raised by ``remove`` on a running record; the caller has to ``kill`` it first."""

    def __init__(self, proc_id: int) -> None:
        self.proc_id = proc_id
        super().__init__(f"cannot remove a live process: {proc_id}")


class PromptCancelled(QuickactError):
    """Raised by a prompt collector when the user aborts input."""

    def __init__(self, key: str, *, message: str | None = None) -> None:
        self.key = key
        super().__init__(message or f"prompt cancelled: {key}")


class ClassificationUnavailable(QuickactError):
    """Raised by a MIME classifier that cannot tell the type of a path."""

    def __init__(self, path: str | Path, *, detail: Optional[str] = None) -> None:
        self.path = str(path)
        self.detail = detail
        msg = f"mime type unavailable: {self.path}"
        super().__init__(msg if detail is None else f"{msg}: {detail}")


class InstallError(QuickactError):
    """Raised when the bundled default actions cannot be located or copied."""
