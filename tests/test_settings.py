"""Settings priority and the paths derived from them."""

from __future__ import annotations

from pathlib import Path

from quickact.adapters.fs.path_provider import PathProvider
from quickact.services.app_context import get_ctx
from quickact.services.settings import Settings


def test_yaml_is_used_below_env(tmp_path, monkeypatch):
    base = tmp_path / "cfg"
    base.mkdir()
    (base / "config.yaml").write_text("shell: /bin/bash\nkill_timeout: 7\nlog_level: debug\n", encoding="utf-8")
    monkeypatch.setenv("QUICKACT_BASE_DIR", str(base))
    monkeypatch.delenv("QUICKACT_LOG_LEVEL", raising=False)

    s = Settings.from_sources(env_file=None)
    assert s.base_dir == base.resolve()
    assert s.shell == "/bin/bash"
    assert s.kill_timeout_s == 7.0
    assert s.log_level == "DEBUG"

    monkeypatch.setenv("QUICKACT_SHELL", "/bin/dash")
    assert Settings.from_sources(env_file=None).shell == "/bin/dash"


def test_env_file_is_read(tmp_path, monkeypatch):
    monkeypatch.delenv("QUICKACT_PROFILE", raising=False)
    env = tmp_path / ".env"
    env.write_text('QUICKACT_PROFILE="work"\n# comment\n', encoding="utf-8")

    assert Settings.from_sources(env_file=str(env)).profile == "work"


def test_bad_yaml_and_bad_timeout_fall_back(tmp_path, monkeypatch):
    base = tmp_path / "cfg"
    base.mkdir()
    (base / "config.yaml").write_text("shell: [unclosed\n", encoding="utf-8")
    monkeypatch.setenv("QUICKACT_BASE_DIR", str(base))
    monkeypatch.setenv("QUICKACT_KILL_TIMEOUT", "soon")

    s = Settings.from_sources(env_file=None)
    assert s.shell == "/bin/sh"
    assert s.kill_timeout_s == 3.0


def test_overrides_only_touch_safe_fields(tmp_path):
    s = Settings.from_sources(env_file=None)
    t = s.with_overrides(base_dir=tmp_path / "x", profile="p", shell="/bin/evil", log_level=None)
    assert t.base_dir == (tmp_path / "x").resolve()
    assert t.profile == "p"
    assert t.shell == s.shell
    assert t.log_level == s.log_level


def test_path_provider_layout(tmp_path):
    settings = Settings.from_sources(env_file=None).with_overrides(base_dir=tmp_path / "qa")
    provider = PathProvider(settings)
    provider.ensure_tree()

    base = (tmp_path / "qa").resolve()
    assert provider.actions_dir() == base / "actions"
    assert provider.config_file() == base / "config.yaml"
    assert provider.logs_dir().is_dir()
    # каталог действий создаёт только ActionTree при первом запуске
    assert not provider.actions_dir().exists()


def test_context_paths_live_under_base_dir():
    ctx = get_ctx()
    assert Path(ctx.paths.actions_dir()).parent == Path(ctx.paths.base_dir())
