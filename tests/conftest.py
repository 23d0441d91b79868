# tests/conftest.py
from __future__ import annotations
import asyncio
import os
import sys
from pathlib import Path

import pytest

from quickact.adapters.fs.path_provider import PathProvider
from quickact.domain import ClassificationUnavailable, PromptCancelled
from quickact.services.actions.installer import DefaultActionsInstaller
from quickact.services.app_context import AppContext, set_ctx, clear_ctx
from quickact.services.eventbus import LocalEventBus
from quickact.services.logging import setup_logging, attach_event_logger  # важное: создаёт файл-лог
from quickact.services.runtime.supervisor import ProcessSupervisor
from quickact.services.settings import Settings

_MIN_PY = tuple(map(int, os.getenv("QUICKACT_MIN_PY", "3.11").split(".")))


# ---- классификатор по словарю: имя файла -> mime ----
class FakeClassifier:
    def __init__(self, table: dict[str, str] | None = None):
        self.table = dict(table or {})

    def classify(self, path) -> str:
        name = Path(path).name
        if name not in self.table:
            raise ClassificationUnavailable(path, detail="not in table")
        return self.table[name]


# ---- промпты по сценарию: ответы по порядку, None = отмена ----
class ScriptedPrompts:
    def __init__(self, answers: list[str | None]):
        self.answers = list(answers)
        self.asked: list[str] = []

    async def ask(self, key: str) -> str:
        self.asked.append(key)
        answer = self.answers.pop(0)
        if answer is None:
            raise PromptCancelled(key)
        return answer


def make_action(root: Path, rel: str, body: str = "#!/bin/sh\necho ok\n") -> Path:
    p = root / rel
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(body, encoding="utf-8")
    p.chmod(0o755)
    return p


def py_cmd(code: str) -> tuple[str, tuple[str, ...]]:
    return sys.executable, ("-c", code)


# ---------- фикстура CLI-приложения ----------
@pytest.fixture
def cli_app():
    from quickact.apps.cli.app import app

    return app


@pytest.fixture
def loop():
    """Локальный event loop на тест (без pytest-asyncio)."""
    lp = asyncio.new_event_loop()
    try:
        yield lp
    finally:
        lp.close()


@pytest.fixture
def supervisor(ctx_fixture) -> ProcessSupervisor:
    return ctx_fixture.supervisor


@pytest.fixture
def actions_root(ctx_fixture) -> Path:
    root = ctx_fixture.paths.actions_dir()
    root.mkdir(parents=True, exist_ok=True)
    return root


# ---------- автofixture: поднимаем AppContext для каждого теста ----------
@pytest.fixture(autouse=True)
def ctx_fixture(tmp_path, monkeypatch):
    base_dir = tmp_path / "base"
    monkeypatch.setenv("QUICKACT_BASE_DIR", str(base_dir))
    monkeypatch.delenv("QUICKACT_SHELL", raising=False)
    monkeypatch.delenv("QUICKACT_KILL_TIMEOUT", raising=False)

    settings = Settings.from_sources(env_file=None).with_overrides(base_dir=str(base_dir), profile="test")
    paths = PathProvider(settings)
    paths.ensure_tree()

    bus = LocalEventBus()
    logger = setup_logging(paths, "DEBUG")
    attach_event_logger(bus, logger.getChild("events"))

    ctx = AppContext(
        settings=settings,
        paths=paths,
        bus=bus,
        supervisor=ProcessSupervisor(bus, kill_timeout_s=1.0, drain_grace_s=1.0),
        installer=DefaultActionsInstaller(bus=bus),
        classifier=FakeClassifier(),
    )
    set_ctx(ctx)
    try:
        yield ctx
    finally:
        clear_ctx()


def pytest_sessionstart(session):
    if sys.version_info < _MIN_PY:
        from _pytest.outcomes import Exit

        msg = [
            f"quickact tests require Python >= {'.'.join(map(str, _MIN_PY))}.",
            f"Current: {sys.executable} ({sys.version.split()[0]}).",
            "",
            "Tip: create/use a venv with a newer Python and re-run tests.",
        ]
        raise Exit("\n".join(msg), returncode=2)
