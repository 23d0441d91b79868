# tests/test_installer.py
from __future__ import annotations
import os

import pytest

from quickact.domain import InstallError
from quickact.services.actions.installer import DefaultActionsInstaller
from quickact.services.eventbus import LocalEventBus


def _tree(root):
    return sorted(str(p.relative_to(root)) for p in root.rglob("*") if p.is_file())


def test_bundled_defaults_are_installed(tmp_path):
    root = tmp_path / "actions"
    installed = DefaultActionsInstaller().install_defaults(root)

    assert _tree(root) == ["Add Action?type?name!.sh", "youtube_music?url.sh"]
    assert sorted(p.name for p in installed) == ["Add Action?type?name!.sh", "youtube_music?url.sh"]
    if os.name == "posix":
        assert all(os.access(p, os.X_OK) for p in installed)


def test_extras_only_on_request(tmp_path):
    root = tmp_path / "actions"
    DefaultActionsInstaller().install_defaults(root, include_extras=True)

    assert "application/extract.sh" in _tree(root)
    assert not (root / "extra").exists()


def test_existing_files_are_never_overwritten(tmp_path):
    root = tmp_path / "actions"
    root.mkdir()
    mine = root / "youtube_music?url.sh"
    mine.write_text("#!/bin/sh\necho mine\n")

    installed = DefaultActionsInstaller().install_defaults(root)

    assert mine.read_text() == "#!/bin/sh\necho mine\n"
    assert [p.name for p in installed] == ["Add Action?type?name!.sh"]
    # повторный запуск ничего не ставит
    assert DefaultActionsInstaller().install_defaults(root) == []


def test_custom_source_and_event(tmp_path):
    src = tmp_path / "src"
    (src / "image" / "png").mkdir(parents=True)
    (src / "image" / "png" / "optimize!.sh").write_text("#!/bin/sh\n")
    (src / ".hidden.sh").write_text("#!/bin/sh\n")
    (src / "__pycache__").mkdir()
    (src / "__pycache__" / "x.pyc").write_bytes(b"")

    bus = LocalEventBus()
    events = []
    bus.subscribe("actions.", events.append)

    root = tmp_path / "actions"
    DefaultActionsInstaller(src, bus=bus).install_defaults(root)

    assert _tree(root) == ["image/png/optimize!.sh"]
    assert [e.type for e in events] == ["actions.installed"]
    assert events[0].payload["installed"] == 1


def test_missing_source_raises(tmp_path):
    with pytest.raises(InstallError):
        DefaultActionsInstaller(tmp_path / "nope").install_defaults(tmp_path / "actions")
