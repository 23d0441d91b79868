from __future__ import annotations

import asyncio

import click
import typer

from quickact.domain import PromptCancelled


class ConsolePromptCollector:
    """
    Prompt collector for the terminal.
    typer.prompt блокирует, поэтому уходит в отдельный поток: event loop продолжает
    вычитывать вывод уже запущенных процессов.
    """

    def __init__(self, *, prefix: str = "") -> None:
        self._prefix = prefix

    def _ask_blocking(self, key: str) -> str:
        try:
            return typer.prompt(f"{self._prefix}{key}", default="", show_default=False)
        except (click.exceptions.Abort, EOFError, KeyboardInterrupt) as e:
            raise PromptCancelled(key) from e

    async def ask(self, key: str) -> str:
        return await asyncio.to_thread(self._ask_blocking, key)
