from .contracts import EventBus, MimeClassifier, PromptCollector, DefaultsInstaller
from .paths import PathProvider

__all__ = [
    "EventBus",
    "MimeClassifier",
    "PromptCollector",
    "DefaultsInstaller",
    "PathProvider",
]
