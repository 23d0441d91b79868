from __future__ import annotations

import asyncio
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from quickact.domain import ActionDefinition, Event, ProcessNotFound, ProcessSnapshot, ProcState, StreamName
from quickact.services.runtime.supervisor import ProcessSupervisor

console = Console()
err_console = Console(stderr=True)

_STATUS_STYLE = {
    ProcState.RUNNING: "yellow",
    ProcState.EXITED: "green",
    ProcState.KILLED: "magenta",
    ProcState.FAILED: "red",
}


def status_markup(snap: ProcessSnapshot) -> str:
    style = "red" if snap.failed else _STATUS_STYLE[snap.status.state]
    return f"[{style}]{escape(str(snap.status))}[/{style}]"


def actions_table(actions: list[ActionDefinition], title: str) -> Table:
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("tier")
    table.add_column("action")
    table.add_column("mode")
    for i, a in enumerate(actions):
        table.add_row(str(i), a.tier.label, escape(a.render()), "foreground" if a.foreground else "background")
    return table


def procs_table(snaps: list[ProcessSnapshot]) -> Table:
    table = Table(title="Processes")
    table.add_column("id", justify="right")
    table.add_column("pid", justify="right")
    table.add_column("command")
    table.add_column("lines", justify="right")
    table.add_column("status")
    for s in snaps:
        table.add_row(str(s.id), str(s.pid or "-"), escape(s.display), str(len(s.output)), status_markup(s))
    return table


class OutputFollower:
    """Печатает новые строки записи по уведомлениям супервизора (перечитывая snapshot)."""

    def __init__(self, supervisor: ProcessSupervisor, proc_id: int) -> None:
        self._sup = supervisor
        self._id = proc_id
        self._printed = 0

    def __call__(self, ev: Event) -> None:
        if ev.payload.get("id") != self._id:
            return
        self.flush()

    def flush(self) -> Optional[ProcessSnapshot]:
        try:
            snap = self._sup.snapshot(self._id)
        except ProcessNotFound:
            return None
        for line in snap.output[self._printed :]:
            if line.stream is StreamName.STDERR:
                err_console.print(escape(line.text), style="dim red", highlight=False)
            else:
                console.print(escape(line.text), highlight=False)
        self._printed = len(snap.output)
        return snap

    async def follow(self, timeout: Optional[float] = None) -> ProcessSnapshot:
        self._sup.subscribe(self)
        try:
            try:
                await self._sup.wait(self._id, timeout=timeout)
            except asyncio.TimeoutError:
                await self._sup.kill(self._id)
                await self._sup.wait(self._id)
        finally:
            self._sup.unsubscribe(self)
        self.flush()
        return self._sup.snapshot(self._id)
