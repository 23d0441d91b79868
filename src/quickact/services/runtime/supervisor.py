# src/quickact/services/runtime/supervisor.py
from __future__ import annotations

import asyncio
import itertools
import logging
import os
import signal
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Sequence

import psutil

from quickact.config import const
from quickact.domain import (
    Event,
    OutputLine,
    ProcessNotFound,
    ProcessSnapshot,
    ProcessSpec,
    ProcStatus,
    RemoveLiveProcess,
    StreamName,
)
from quickact.ports import EventBus
from quickact.services.eventbus import emit

log = logging.getLogger(__name__)

_IS_POSIX = os.name == "posix"
_SOURCE = "supervisor"

Listener = Callable[[Event], Any]


@dataclass(slots=True)
class _Record:
    id: int
    spec: ProcessSpec
    foreground: bool = False
    status: ProcStatus = field(default_factory=ProcStatus.running)
    pid: Optional[int] = None
    output: list[OutputLine] = field(default_factory=list)
    proc: Optional[asyncio.subprocess.Process] = None
    task: Optional[asyncio.Task] = None
    kill_requested: bool = False
    escalation: Optional[asyncio.TimerHandle] = None


def _reason(e: BaseException) -> str:
    if isinstance(e, OSError) and e.strerror:
        return f"{e.strerror}: {e.filename}" if e.filename else e.strerror
    return str(e) or e.__class__.__name__


def _signal_tree(pid: int, sig: int) -> bool:
    """Send sig to pid and all its descendants. Returns False if pid is already gone."""
    try:
        parent = psutil.Process(pid)
        if parent.status() == psutil.STATUS_ZOMBIE:
            # уже вышел, ждёт reap: сигнал "дойдёт", но ничего не убьёт
            return False
    except psutil.NoSuchProcess:
        return False
    try:
        children = parent.children(recursive=True)
    except psutil.Error:
        children = []
    for c in children:
        try:
            c.send_signal(sig)
        except psutil.Error:
            pass
    try:
        parent.send_signal(sig)
    except psutil.NoSuchProcess:
        return False
    return True


class ProcessSupervisor:
    """
    Владелец всех запущенных процессов:
      - spawn/spawn_shell: фоновый запуск, stdout/stderr читаются непрерывно (по задаче на поток)
      - run_foreground: ребёнок получает терминал, вывод не перехватываем, статус пишем в историю
      - kill/remove/snapshot/list: узкий интерфейс к таблице записей
    Статусы монотонны: running -> exited(code) | killed | failed(reason).
    Каждое изменение публикуется в шину как proc.* с payload {"id": ...}; слушатели
    перечитывают состояние через snapshot(), поэтому дубликаты и пропуски безвредны.

    spawn/kill/wait/shutdown вызываются из потока event loop,
    snapshot/list/remove можно звать из любого потока.
    """

    def __init__(
        self,
        bus: EventBus,
        *,
        shell: str = const.DEFAULT_SHELL,
        kill_timeout_s: float = const.DEFAULT_KILL_TIMEOUT_S,
        drain_grace_s: float = const.DRAIN_GRACE_S,
    ) -> None:
        self._bus = bus
        self._records: Dict[int, _Record] = {}
        self._lock = RLock()
        self._ids = itertools.count(1)
        self._shell = shell
        self._kill_timeout_s = kill_timeout_s
        self._drain_grace_s = drain_grace_s

    # ---------- API ----------

    async def spawn(
        self,
        command: str,
        args: Sequence[str] = (),
        env: Optional[Mapping[str, str]] = None,
        *,
        cwd: Optional[str] = None,
        short_cmd: Optional[str] = None,
    ) -> int:
        spec = ProcessSpec(command=command, args=tuple(args), env=dict(env or {}), cwd=cwd, short_cmd=short_cmd)
        rec = self._register(spec, foreground=False)
        rec.task = asyncio.create_task(self._supervise(rec), name=f"proc-{rec.id}")
        return rec.id

    async def spawn_shell(self, cmdline: str, env: Optional[Mapping[str, str]] = None, *, cwd: Optional[str] = None) -> int:
        return await self.spawn(self._shell, ("-c", cmdline), env, cwd=cwd, short_cmd=cmdline)

    async def run_foreground(
        self,
        command: str,
        args: Sequence[str] = (),
        env: Optional[Mapping[str, str]] = None,
        *,
        cwd: Optional[str] = None,
    ) -> int:
        """Run with the caller's terminal and wait for exit. The record is kept for history."""
        spec = ProcessSpec(command=command, args=tuple(args), env=dict(env or {}), cwd=cwd)
        rec = self._register(spec, foreground=True)
        rec.task = asyncio.create_task(self._supervise(rec), name=f"proc-{rec.id}")
        await rec.task
        return rec.id

    async def kill(self, proc_id: int) -> bool:
        """
        Request termination. Returns True if a signal was (or will be) sent.
        The transition to killed is observed later, via proc.status.
        """
        with self._lock:
            rec = self._get(proc_id)
            if rec.status.terminal or rec.kill_requested:
                return False
            proc = rec.proc
            if proc is not None and proc.returncode is not None:
                # уже завершился, watcher вот-вот выставит exited
                return False
            rec.kill_requested = True
        if proc is None:
            # процесс ещё создаётся, сигнал отправит _supervise, как только узнает pid
            log.info("proc.kill_deferred", extra={"extra": {"id": proc_id}})
            return True
        return self._deliver_kill(rec)

    def remove(self, proc_id: int) -> None:
        with self._lock:
            rec = self._get(proc_id)
            if not rec.status.terminal:
                raise RemoveLiveProcess(proc_id)
            del self._records[proc_id]
        log.info("proc.removed", extra={"extra": {"id": proc_id}})
        self._notify("proc.removed", proc_id)

    def status(self, proc_id: int) -> ProcStatus:
        with self._lock:
            return self._get(proc_id).status

    def snapshot(self, proc_id: int) -> ProcessSnapshot:
        with self._lock:
            return self._snapshot(self._get(proc_id))

    def list(self) -> list[ProcessSnapshot]:
        with self._lock:
            return [self._snapshot(r) for r in self._records.values()]

    def running(self) -> list[int]:
        with self._lock:
            return [r.id for r in self._records.values() if not r.status.terminal]

    def subscribe(self, listener: Listener) -> None:
        self._bus.subscribe("proc.", listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._bus.unsubscribe("proc.", listener)

    async def wait(self, proc_id: int, timeout: Optional[float] = None) -> ProcessSnapshot:
        """Wait until the record reaches a terminal status and return its snapshot."""
        with self._lock:
            rec = self._get(proc_id)
            task = rec.task
        if task is not None and not task.done():
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        return self._snapshot_of(rec)

    async def shutdown(self, timeout_s: Optional[float] = None) -> None:
        """Best effort: kill everything still running and wait for the watchers."""
        timeout_s = self._kill_timeout_s + self._drain_grace_s if timeout_s is None else timeout_s
        ids = self.running()
        for proc_id in ids:
            try:
                await self.kill(proc_id)
            except ProcessNotFound:
                pass
        with self._lock:
            tasks = [r.task for r in self._records.values() if r.task is not None and not r.task.done()]
        if not tasks:
            return
        _, pending = await asyncio.wait(tasks, timeout=timeout_s)
        for t in pending:
            t.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        log.info("supervisor.shutdown", extra={"extra": {"killed": len(ids), "forced": len(pending)}})

    # ---------- внутренняя логика ----------

    def _get(self, proc_id: int) -> _Record:
        rec = self._records.get(proc_id)
        if rec is None:
            raise ProcessNotFound(proc_id)
        return rec

    def _register(self, spec: ProcessSpec, *, foreground: bool) -> _Record:
        with self._lock:
            rec = _Record(id=next(self._ids), spec=spec, foreground=foreground)
            self._records[rec.id] = rec
        log.info(
            "proc.spawn",
            extra={"extra": {"id": rec.id, "cmd": spec.display, "cwd": spec.cwd, "foreground": foreground}},
        )
        self._notify("proc.spawned", rec.id)
        return rec

    def _snapshot(self, rec: _Record) -> ProcessSnapshot:
        return ProcessSnapshot(
            id=rec.id,
            command=rec.spec.command,
            args=rec.spec.args,
            env=dict(rec.spec.env),
            cwd=rec.spec.cwd,
            display=rec.spec.display,
            pid=rec.pid,
            status=rec.status,
            output=tuple(rec.output),
            foreground=rec.foreground,
        )

    def _snapshot_of(self, rec: _Record) -> ProcessSnapshot:
        with self._lock:
            return self._snapshot(rec)

    def _notify(self, type_: str, proc_id: int) -> None:
        try:
            emit(self._bus, type_, {"id": proc_id}, _SOURCE)
        except Exception:
            # сломанный слушатель не должен останавливать чтение вывода
            log.exception("supervisor.listener_failed", extra={"extra": {"type": type_, "id": proc_id}})

    def _finish(self, rec: _Record, status: ProcStatus) -> bool:
        with self._lock:
            if rec.status.terminal:
                return False
            rec.status = status
            if rec.escalation is not None:
                rec.escalation.cancel()
                rec.escalation = None
        log.info("proc.finished", extra={"extra": {"id": rec.id, "status": str(status)}})
        self._notify("proc.status", rec.id)
        return True

    def _deliver_kill(self, rec: _Record) -> bool:
        assert rec.pid is not None
        if not _signal_tree(rec.pid, signal.SIGTERM):
            with self._lock:
                rec.kill_requested = False
            return False
        log.info("proc.kill", extra={"extra": {"id": rec.id, "pid": rec.pid}})
        loop = asyncio.get_running_loop()
        with self._lock:
            rec.escalation = loop.call_later(self._kill_timeout_s, self._escalate, rec)
        return True

    def _escalate(self, rec: _Record) -> None:
        with self._lock:
            rec.escalation = None
            if rec.status.terminal or rec.pid is None:
                return
        kill_sig = getattr(signal, "SIGKILL", signal.SIGTERM)
        log.warning("proc.kill_escalated", extra={"extra": {"id": rec.id, "pid": rec.pid}})
        _signal_tree(rec.pid, kill_sig)

    async def _start(self, rec: _Record) -> asyncio.subprocess.Process:
        spec = rec.spec
        env = {**os.environ, **spec.env}
        if rec.foreground:
            return await asyncio.create_subprocess_exec(spec.command, *spec.args, cwd=spec.cwd, env=env)
        return await asyncio.create_subprocess_exec(
            spec.command,
            *spec.args,
            cwd=spec.cwd,
            env=env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            # фоновые дети не получают SIGINT/SIGHUP от терминала интерфейса
            start_new_session=_IS_POSIX,
        )

    async def _supervise(self, rec: _Record) -> None:
        try:
            proc = await self._start(rec)
        except (OSError, ValueError) as e:
            log.warning("proc.spawn_failed", extra={"extra": {"id": rec.id, "error": _reason(e)}})
            self._finish(rec, ProcStatus.failed(_reason(e)))
            return
        except asyncio.CancelledError:
            self._finish(rec, ProcStatus.failed("cancelled before start"))
            raise

        with self._lock:
            rec.proc = proc
            rec.pid = proc.pid
            deferred_kill = rec.kill_requested
        self._notify("proc.started", rec.id)
        if deferred_kill:
            self._deliver_kill(rec)

        drains: list[asyncio.Task] = []
        if proc.stdout is not None:
            drains.append(asyncio.create_task(self._drain(rec, proc.stdout, StreamName.STDOUT)))
        if proc.stderr is not None:
            drains.append(asyncio.create_task(self._drain(rec, proc.stderr, StreamName.STDERR)))

        try:
            code = await proc.wait()
            if drains:
                # потомки могут держать пайп открытым после выхода родителя
                _, pending = await asyncio.wait(drains, timeout=self._drain_grace_s)
                for t in pending:
                    t.cancel()
                if pending:
                    log.warning("proc.pipes_held_open", extra={"extra": {"id": rec.id, "streams": len(pending)}})
                    await asyncio.gather(*pending, return_exceptions=True)
        except asyncio.CancelledError:
            for t in drains:
                t.cancel()
            if proc.returncode is None:
                _signal_tree(proc.pid, getattr(signal, "SIGKILL", signal.SIGTERM))
            self._finish(rec, ProcStatus.killed() if rec.kill_requested else ProcStatus.failed("supervisor shutdown"))
            raise

        with self._lock:
            killed = rec.kill_requested
        self._finish(rec, ProcStatus.killed() if killed else ProcStatus.exited(code))

    async def _drain(self, rec: _Record, reader: asyncio.StreamReader, stream: StreamName) -> None:
        buf = bytearray()
        while True:
            try:
                chunk = await reader.read(const.READ_CHUNK)
            except (ConnectionResetError, BrokenPipeError):
                break
            if not chunk:
                break
            buf.extend(chunk)
            idx = buf.rfind(b"\n")
            if idx < 0:
                continue
            complete = bytes(buf[:idx])
            del buf[: idx + 1]
            self._append(rec, stream, complete.split(b"\n"))
        if buf:
            self._append(rec, stream, [bytes(buf)])

    def _append(self, rec: _Record, stream: StreamName, raw_lines: Iterable[bytes]) -> None:
        lines = [OutputLine(stream, raw.decode("utf-8", errors="replace").rstrip("\r")) for raw in raw_lines]
        with self._lock:
            rec.output.extend(lines)
        self._notify("proc.output", rec.id)
