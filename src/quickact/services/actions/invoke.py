"""Running a resolved action against a selection.

Prompts are asked in declared order; the answers become environment variables
named after the prompt keys.  A cancelled prompt aborts the whole invocation
before anything is spawned.  Foreground actions take over the terminal and are
awaited; background ones are handed to the supervisor and tracked there.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence

from quickact.domain import ActionDefinition, PromptCancelled
from quickact.ports import EventBus, PromptCollector
from quickact.services.eventbus import emit
from quickact.services.runtime.supervisor import ProcessSupervisor

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SpawnOutcome:
    action: ActionDefinition
    proc_id: Optional[int]
    foreground: bool = False

    @property
    def cancelled(self) -> bool:
        return self.proc_id is None


async def collect_prompts(
    definition: ActionDefinition,
    collector: Optional[PromptCollector],
    known: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """Answers for every declared prompt, in order. Raises PromptCancelled on abort."""
    known = known or {}
    answers: dict[str, str] = {}
    for key in definition.prompts:
        if key in known:
            answers[key] = known[key]
            continue
        if collector is None:
            raise PromptCancelled(key, message=f"no value for prompt '{key}' and no collector")
        answers[key] = await collector.ask(key)
    return answers


def build_env(prompts: Mapping[str, str], substitutions: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    env = dict(substitutions or {})
    env.update(prompts)
    return env


class ActionInvoker:
    def __init__(
        self,
        supervisor: ProcessSupervisor,
        *,
        bus: Optional[EventBus] = None,
        collector: Optional[PromptCollector] = None,
    ) -> None:
        self._supervisor = supervisor
        self._bus = bus
        self._collector = collector

    async def invoke(
        self,
        definition: ActionDefinition,
        selected_paths: Sequence[str | Path],
        prompt_values: Optional[Mapping[str, str]] = None,
        *,
        substitutions: Optional[Mapping[str, str]] = None,
        collector: Optional[PromptCollector] = None,
    ) -> SpawnOutcome:
        try:
            answers = await collect_prompts(definition, collector or self._collector, prompt_values)
        except PromptCancelled as e:
            log.info("action.cancelled", extra={"extra": {"action": str(definition.path), "prompt": e.key}})
            self._emit("actions.cancelled", definition, None)
            return SpawnOutcome(action=definition, proc_id=None, foreground=definition.foreground)

        env = build_env(answers, substitutions)
        args = [str(p) for p in selected_paths]
        cwd = str(Path(selected_paths[0]).resolve().parent) if selected_paths else None
        command = str(definition.path)

        if definition.foreground:
            proc_id = await self._supervisor.run_foreground(command, args, env, cwd=cwd)
        else:
            short = " ".join([definition.display_name, *(Path(a).name for a in args)])
            proc_id = await self._supervisor.spawn(command, args, env, cwd=cwd, short_cmd=short)

        self._emit("actions.invoked", definition, proc_id)
        return SpawnOutcome(action=definition, proc_id=proc_id, foreground=definition.foreground)

    def _emit(self, type_: str, definition: ActionDefinition, proc_id: Optional[int]) -> None:
        if self._bus is None:
            return
        emit(
            self._bus,
            type_,
            {"action": definition.display_name, "tier": definition.tier.label, "id": proc_id},
            "invoker",
        )
