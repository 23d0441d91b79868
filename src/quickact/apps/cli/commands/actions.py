# src/quickact/apps/cli/commands/actions.py
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import typer

from quickact.adapters.prompt.console_prompt import ConsolePromptCollector
from quickact.apps.bootstrap import get_ctx
from quickact.apps.cli.render import OutputFollower, actions_table, console, procs_table
from quickact.domain import ActionTier, ProcStatus
from quickact.services.app_context import AppContext

app = typer.Typer(help="Quick actions for a file selection")

_TIERS = {t.label: t for t in ActionTier}


def substitutions(ctx: AppContext, paths: List[Path]) -> dict[str, str]:
    """Переменные подстановки, которые CLI передаёт действию как уже готовые строки."""
    return {
        "QUICKACT_SELECTION": "\n".join(str(p.resolve()) for p in paths),
        "QUICKACT_CWD": str(Path.cwd()),
        "QUICKACT_ACTIONS_DIR": str(ctx.paths.actions_dir()),
    }


@app.command("list")
def list_actions(paths: List[Path] = typer.Argument(..., help="Выделенные файлы")):
    """Показать действия, доступные для выделения."""
    ctx = get_ctx()
    mime, actions = ctx.actions.resolve_paths(paths, ctx.classifier)
    title = f"QuickActions for MIME: {mime}" if mime else "QuickActions (universal)"
    if not actions:
        typer.echo("No actions found.")
        raise typer.Exit(0)
    console.print(actions_table(actions, title))


@app.command("run")
def run_action(
    name: str = typer.Argument(..., help="Имя действия (как в списке) или имя файла"),
    paths: List[Path] = typer.Argument(..., help="Выделенные файлы"),
    tier: Optional[str] = typer.Option(None, "--tier", help="universal | base | sub"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Убить фоновый процесс через N секунд"),
):
    """Запустить действие: спросить промпты, затем выполнить (в фоне с выводом или на переднем плане)."""
    if tier is not None and tier not in _TIERS:
        raise typer.BadParameter("Allowed: universal, base, sub")
    ctx = get_ctx()
    mime, _ = ctx.actions.resolve_paths(paths, ctx.classifier)
    action = ctx.actions.find(name, mime, tier=_TIERS.get(tier) if tier else None)
    if action is None:
        typer.echo(f"action not found: {name}", err=True)
        raise typer.Exit(2)

    async def _run() -> int:
        sup = ctx.supervisor
        try:
            outcome = await ctx.invoker(ConsolePromptCollector()).invoke(
                action, [str(p) for p in paths], substitutions=substitutions(ctx, paths)
            )
            if outcome.cancelled:
                typer.echo("cancelled")
                return 1
            assert outcome.proc_id is not None
            if outcome.foreground:
                snap = sup.snapshot(outcome.proc_id)
            else:
                snap = await OutputFollower(sup, outcome.proc_id).follow(timeout=timeout)
            console.print(procs_table([snap]))
            return 0 if snap.status == ProcStatus.exited(0) else 1
        finally:
            await sup.shutdown()

    raise typer.Exit(asyncio.run(_run()))


@app.command("install")
def install(extras: bool = typer.Option(False, "--extras", help="Также поставить дополнительные действия из extra/")):
    """Доустановить действия по умолчанию (существующие файлы не трогаются)."""
    ctx = get_ctx()
    installed = ctx.installer.install_defaults(ctx.paths.actions_dir(), include_extras=extras)
    ctx.actions.refresh()
    for p in installed:
        typer.echo(f"installed: {p}")
    typer.echo(f"{len(installed)} file(s) installed into {ctx.paths.actions_dir()}")


@app.command("refresh")
def refresh():
    """Сбросить кэш действий и доустановить недостающие действия по умолчанию."""
    ctx = get_ctx()
    ctx.actions.refresh()
    if not ctx.actions.ensure():
        ctx.installer.install_defaults(ctx.paths.actions_dir())
    typer.echo("ok")
