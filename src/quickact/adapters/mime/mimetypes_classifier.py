from __future__ import annotations

import mimetypes
from pathlib import Path

import filetype

from quickact.domain import ClassificationUnavailable

_SNIFF_BYTES = 8192


class MimetypesClassifier:
    """
    Guesses ``base/sub`` from the file name using the stdlib mimetypes database.
    Files without an extension are sniffed by content: binary signatures via
    ``filetype``, otherwise UTF-8 text without NUL bytes is ``text/plain``.
    """

    def __init__(self, *, strict: bool = False) -> None:
        self._strict = strict

    def classify(self, path: str | Path) -> str:
        p = Path(path)
        if p.is_dir():
            raise ClassificationUnavailable(p, detail="is a directory")
        if not p.exists():
            raise ClassificationUnavailable(p, detail="no such file")
        mime, _encoding = mimetypes.guess_type(p.name, strict=self._strict)
        if mime:
            return mime
        if not p.suffix:
            sniffed = self._sniff(p)
            if sniffed:
                return sniffed
        raise ClassificationUnavailable(p, detail="unknown type")

    @staticmethod
    def _sniff(p: Path) -> str | None:
        try:
            with p.open("rb") as f:
                head = f.read(_SNIFF_BYTES)
        except OSError:
            return None
        if not head:
            return None
        mime = filetype.guess_mime(head)
        if mime:
            return mime
        if b"\0" in head:
            return None
        try:
            head.decode("utf-8")
        except UnicodeDecodeError as e:
            # обрезали посреди многобайтового символа
            if e.start < len(head) - 3:
                return None
        return "text/plain"
