# tests/test_invoke.py
from __future__ import annotations

from quickact.domain import ProcStatus, StreamName
from quickact.services.actions.invoke import build_env
from quickact.services.actions.tree import ActionTree

from conftest import ScriptedPrompts, make_action

ECHO_ENV = '#!/bin/sh\necho "w=$width h=$height"\necho "args=$*"\npwd\n'


def _only(tree: ActionTree, name: str):
    hit = tree.find(name, None)
    assert hit is not None, name
    return hit


def test_prompts_become_env_in_declared_order(loop, ctx_fixture, actions_root, tmp_path):
    make_action(actions_root, "convert?width?height.sh", ECHO_ENV)
    selected = tmp_path / "pics" / "a.png"
    selected.parent.mkdir()
    selected.write_bytes(b"")

    prompts = ScriptedPrompts(["640", "480"])
    action = _only(ctx_fixture.actions, "convert")

    async def main():
        outcome = await ctx_fixture.invoker(prompts).invoke(action, [str(selected)])
        snap = await ctx_fixture.supervisor.wait(outcome.proc_id, timeout=10)
        return outcome, snap

    outcome, snap = loop.run_until_complete(main())

    assert prompts.asked == ["width", "height"]
    assert not outcome.cancelled and not outcome.foreground
    assert snap.status == ProcStatus.exited(0)
    assert snap.env == {"width": "640", "height": "480"}
    lines = snap.text(StreamName.STDOUT).splitlines()
    assert lines[0] == "w=640 h=480"
    assert lines[1] == f"args={selected}"
    assert lines[2] == str(selected.parent.resolve())
    assert snap.display == "convert a.png"


def test_cancelled_prompt_spawns_nothing(loop, ctx_fixture, actions_root):
    make_action(actions_root, "convert?width?height.sh", ECHO_ENV)
    prompts = ScriptedPrompts(["640", None])
    events = []
    ctx_fixture.bus.subscribe("actions.", events.append)

    action = _only(ctx_fixture.actions, "convert")
    outcome = loop.run_until_complete(ctx_fixture.invoker(prompts).invoke(action, ["a.png"]))

    assert outcome.cancelled
    assert prompts.asked == ["width", "height"]
    assert ctx_fixture.supervisor.list() == []
    assert [e.type for e in events] == ["actions.cancelled"]


def test_missing_collector_counts_as_cancel(loop, ctx_fixture, actions_root):
    make_action(actions_root, "tag?label.sh")
    action = _only(ctx_fixture.actions, "tag")

    outcome = loop.run_until_complete(ctx_fixture.invoker().invoke(action, ["a.txt"]))

    assert outcome.cancelled
    assert ctx_fixture.supervisor.list() == []


def test_known_values_skip_asking(loop, ctx_fixture, actions_root):
    make_action(actions_root, "convert?width?height.sh", ECHO_ENV)
    prompts = ScriptedPrompts(["480"])
    action = _only(ctx_fixture.actions, "convert")

    async def main():
        outcome = await ctx_fixture.invoker(prompts).invoke(action, ["a.png"], {"width": "640"})
        return await ctx_fixture.supervisor.wait(outcome.proc_id, timeout=10)

    snap = loop.run_until_complete(main())
    assert prompts.asked == ["height"]
    assert snap.env == {"width": "640", "height": "480"}


def test_empty_answer_is_empty_string(loop, ctx_fixture, actions_root):
    make_action(actions_root, "convert?width?height.sh", ECHO_ENV)
    action = _only(ctx_fixture.actions, "convert")

    async def main():
        outcome = await ctx_fixture.invoker(ScriptedPrompts(["", "1"])).invoke(action, ["a.png"])
        return await ctx_fixture.supervisor.wait(outcome.proc_id, timeout=10)

    snap = loop.run_until_complete(main())
    assert snap.env["width"] == ""
    assert snap.text(StreamName.STDOUT).splitlines()[0] == "w= h=1"


def test_foreground_action_is_awaited_and_recorded(loop, ctx_fixture, actions_root):
    make_action(actions_root, "open!.sh", "#!/bin/sh\nexit 4\n")
    events = []
    ctx_fixture.bus.subscribe("actions.", events.append)
    action = _only(ctx_fixture.actions, "open")
    assert action.foreground

    outcome = loop.run_until_complete(ctx_fixture.invoker().invoke(action, ["a.txt"]))

    assert outcome.foreground
    snap = ctx_fixture.supervisor.snapshot(outcome.proc_id)
    assert snap.foreground
    assert snap.status == ProcStatus.exited(4)
    assert [e.type for e in events] == ["actions.invoked"]
    assert events[0].payload == {"action": "open", "tier": "universal", "id": outcome.proc_id}


def test_substitutions_are_overridden_by_prompts():
    env = build_env({"QUICKACT_CWD": "prompted", "name": "x"}, {"QUICKACT_CWD": "/tmp", "QUICKACT_SELECTION": "a b"})
    assert env == {"QUICKACT_CWD": "prompted", "QUICKACT_SELECTION": "a b", "name": "x"}


def test_invoked_action_fails_when_script_exits_nonzero(loop, ctx_fixture, actions_root):
    make_action(actions_root, "broken.sh", "#!/bin/sh\necho nope >&2\nexit 2\n")
    action = _only(ctx_fixture.actions, "broken")

    async def main():
        outcome = await ctx_fixture.invoker().invoke(action, ["x"])
        return await ctx_fixture.supervisor.wait(outcome.proc_id, timeout=10)

    snap = loop.run_until_complete(main())
    assert snap.failed
    assert snap.text(StreamName.STDERR) == "nope"
