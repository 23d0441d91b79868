# src/quickact/apps/cli/app.py
from __future__ import annotations

import os
import traceback
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv, find_dotenv
import typer

# загружаем .env один раз (QUICKACT_BASE_DIR, QUICKACT_SHELL, ...)
load_dotenv(find_dotenv(usecwd=True))

from quickact.services.settings import Settings
from quickact.apps.bootstrap import init_ctx, get_ctx, reload_ctx
from quickact.domain import ClassificationUnavailable
from quickact.apps.cli.commands import actions, procs

app = typer.Typer(help="quickact: quick actions and background processes for a file browser")


# -------- вспомогательные --------


def _run_safe(func):
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception:
            if os.getenv("QUICKACT_CLI_DEBUG") == "1":
                traceback.print_exc()
            raise

    return wrapper


# -------- корневой callback (composition root) --------


@_run_safe
@app.callback()
def main(
    ctx: typer.Context,
    base_dir: Optional[str] = typer.Option(None, "--base-dir", help="Каталог конфигурации (по умолчанию ~/.config/quickact или из .env/ENV)"),
    profile: Optional[str] = typer.Option(None, "--profile", help="Профиль настроек"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG | INFO | WARNING | ERROR"),
    reload: bool = typer.Option(False, "--reload", help="Пересобрать контекст с новыми настройками"),
):
    """
    Вызывается перед любыми подкомандами: строит (или пересобирает) контекст приложения.
    """
    # 1) базовые настройки (константы/config.yaml/.env/ENV)
    settings = Settings.from_sources()

    # 2) CLI-переопределения только для безопасных полей
    settings = settings.with_overrides(base_dir=base_dir, profile=profile, log_level=log_level.upper() if log_level else None)

    # 3) создать/пересобрать единый контекст процесса
    if reload:
        reload_ctx(base_dir=base_dir, profile=profile)
    else:
        init_ctx(settings)


# -------- команды обслуживания --------


@app.command("where")
def where():
    """Показать каталоги конфигурации."""
    ctx = get_ctx()
    typer.echo(f"base_dir: {ctx.paths.base_dir()}")
    typer.echo(f"actions_dir: {ctx.paths.actions_dir()}")
    typer.echo(f"config_file: {ctx.paths.config_file()}")
    typer.echo(f"logs_dir: {ctx.paths.logs_dir()}")


@app.command("mime")
def mime(path: Path = typer.Argument(..., help="Файл для классификации")):
    """Напечатать MIME-тип файла (код выхода 1, если тип не определён)."""
    ctx = get_ctx()
    try:
        typer.echo(ctx.classifier.classify(path))
    except ClassificationUnavailable as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1)


# -------- подкоманды --------

app.add_typer(actions.app, name="actions")
app.add_typer(procs.app, name="procs")

if __name__ == "__main__":
    app()
