import asyncio
from pathlib import Path
from typing import Optional

import typer

from quickact.apps.bootstrap import get_ctx
from quickact.apps.cli.render import OutputFollower, console, procs_table
from quickact.domain import ProcStatus

app = typer.Typer(help="Process supervisor")


@app.command("run")
def run_cmd(
    cmdline: str = typer.Argument(..., help="Команда для shell (пример: quickact procs run \"ls -l\")"),
    cwd: Optional[Path] = typer.Option(None, "--cwd", help="Рабочий каталог"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Убить процесс через N секунд"),
):
    """Запустить shell-команду под супервизором и показывать её вывод до завершения."""
    ctx = get_ctx()

    async def _run() -> int:
        sup = ctx.supervisor
        try:
            proc_id = await sup.spawn_shell(cmdline, cwd=str(cwd) if cwd else None)
            snap = await OutputFollower(sup, proc_id).follow(timeout=timeout)
            console.print(procs_table([snap]))
            return 0 if snap.status == ProcStatus.exited(0) else 1
        finally:
            await sup.shutdown()

    raise typer.Exit(asyncio.run(_run()))
