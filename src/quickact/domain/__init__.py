from .types import (
    Event,
    MimeType,
    ActionTier,
    ActionSpec,
    ActionDefinition,
    ProcessSpec,
    ProcState,
    ProcStatus,
    StreamName,
    OutputLine,
    ProcessSnapshot,
)
from .errors import (
    QuickactError,
    ProcessNotFound,
    RemoveLiveProcess,
    PromptCancelled,
    ClassificationUnavailable,
    InstallError,
)

__all__ = [
    "Event",
    "MimeType",
    "ActionTier",
    "ActionSpec",
    "ActionDefinition",
    "ProcessSpec",
    "ProcState",
    "ProcStatus",
    "StreamName",
    "OutputLine",
    "ProcessSnapshot",
    "QuickactError",
    "ProcessNotFound",
    "RemoveLiveProcess",
    "PromptCancelled",
    "ClassificationUnavailable",
    "InstallError",
]
