"""Lexical parser for action file names.

An action's behaviour is encoded in its file name::

    name ('?' prompt_key)* '!'? '.' extension

``convert?width?height!.sh`` is an action shown as ``convert`` that asks for
``width`` and then ``height`` and runs in the foreground.  The file is never
opened; everything comes from the name.  Names that do not follow the grammar
are still usable: they become zero-prompt background actions.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePath

from quickact.config import const
from quickact.domain import ActionSpec

log = logging.getLogger(__name__)

_BAD_KEY_CHARS = ("=", "\0", const.FOREGROUND_MARK)


def _stem(file_name: str | PurePath) -> str:
    name = PurePath(file_name).name
    # ".hidden" / "name" без расширения: берём имя целиком
    if "." not in name.lstrip("."):
        return name
    return name.rsplit(".", 1)[0]


def _permissive(stem: str) -> ActionSpec:
    head = stem.split(const.PROMPT_SEP, 1)[0]
    return ActionSpec(display_name=head or stem, prompts=(), foreground=False)


def parse(file_name: str | Path) -> ActionSpec:
    stem = _stem(file_name)
    head, *keys = stem.split(const.PROMPT_SEP)

    foreground = False
    tail = keys[-1] if keys else head
    if tail.endswith(const.FOREGROUND_MARK):
        foreground = True
        tail = tail[: -len(const.FOREGROUND_MARK)]
        if keys:
            keys[-1] = tail
        else:
            head = tail

    if not head or const.FOREGROUND_MARK in head or any(not k or any(c in k for c in _BAD_KEY_CHARS) for k in keys):
        log.debug("action.name_malformed", extra={"extra": {"name": str(file_name)}})
        return _permissive(stem)

    return ActionSpec(display_name=head, prompts=tuple(keys), foreground=foreground)
