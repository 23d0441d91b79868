# src/quickact/domain/types.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class Event:
    type: str
    payload: Mapping[str, Any]
    source: str
    ts: float


@dataclass(frozen=True, slots=True)
class MimeType:
    base: str
    sub: str = ""

    @classmethod
    def parse(cls, value: str) -> "MimeType":
        """``"image/png"`` -> MimeType("image", "png"); parameters after ``;`` are dropped."""
        value = value.split(";", 1)[0].strip().lower()
        base, _, sub = value.partition("/")
        base, sub = base.strip(), sub.strip()
        if not base or base == "*":
            raise ValueError(f"not a mime type: {value!r}")
        return cls(base=base, sub="" if sub == "*" else sub)

    def __str__(self) -> str:
        return f"{self.base}/{self.sub}"


class ActionTier(int, Enum):
    # порядок значений = порядок показа
    UNIVERSAL = 0
    BASE = 1
    SUB = 2

    @property
    def label(self) -> str:
        return {0: "universal", 1: "base", 2: "sub"}[self.value]


@dataclass(frozen=True, slots=True)
class ActionSpec:
    display_name: str
    prompts: tuple[str, ...] = ()
    foreground: bool = False


@dataclass(frozen=True, slots=True)
class ActionDefinition:
    path: Path
    display_name: str
    prompts: tuple[str, ...]
    foreground: bool
    tier: ActionTier

    def render(self) -> str:
        """Display form: ``convert:width?:height?``."""
        return self.display_name + "".join(f":{q}?" for q in self.prompts)


@dataclass(frozen=True, slots=True)
class ProcessSpec:
    command: str
    args: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)
    cwd: str | None = None
    short_cmd: str | None = None  # то, что показываем в списке вместо полного argv

    @property
    def display(self) -> str:
        if self.short_cmd:
            return self.short_cmd
        return " ".join((self.command, *self.args))


class ProcState(str, Enum):
    RUNNING = "running"
    EXITED = "exited"
    KILLED = "killed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ProcStatus:
    state: ProcState
    code: int | None = None
    reason: str | None = None

    @classmethod
    def running(cls) -> "ProcStatus":
        return cls(ProcState.RUNNING)

    @classmethod
    def exited(cls, code: int) -> "ProcStatus":
        return cls(ProcState.EXITED, code=code)

    @classmethod
    def killed(cls) -> "ProcStatus":
        return cls(ProcState.KILLED)

    @classmethod
    def failed(cls, reason: str) -> "ProcStatus":
        return cls(ProcState.FAILED, reason=reason)

    @property
    def terminal(self) -> bool:
        return self.state is not ProcState.RUNNING

    def __str__(self) -> str:
        if self.state is ProcState.EXITED:
            return f"exited({self.code})"
        if self.state is ProcState.FAILED:
            return f"failed({self.reason})"
        return self.state.value


class StreamName(str, Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass(frozen=True, slots=True)
class OutputLine:
    stream: StreamName
    text: str


@dataclass(frozen=True, slots=True)
class ProcessSnapshot:
    """Read-only copy of a supervisor record."""

    id: int
    command: str
    args: tuple[str, ...]
    env: Mapping[str, str]
    cwd: str | None
    display: str
    pid: int | None
    status: ProcStatus
    output: tuple[OutputLine, ...]
    foreground: bool = False

    @property
    def failed(self) -> bool:
        if self.status.state is ProcState.FAILED:
            return True
        return self.status.state is ProcState.EXITED and self.status.code != 0

    def text(self, stream: StreamName | None = None) -> str:
        return "\n".join(ln.text for ln in self.output if stream is None or ln.stream is stream)
