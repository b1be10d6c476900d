"""Release transaction pipeline.

Stages run strictly in order, each consuming what the previous ones
produced:

    clone -> mutate -> identity -> commit -> tag -> push

The first failing stage stops the run; its error is returned with the
stage name attached. An unchanged working tree after mutation ends the
run early with ``NothingToCommit``, which is not an error. Nothing is
retried and nothing is rolled back: the clone is ephemeral and removed
by the caller before the next run.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from relpkg.core.result import Err, Ok, Result
from relpkg.output.console import ConsoleProtocol
from relpkg.release.clone import clone_repository
from relpkg.release.commit import commit_changes
from relpkg.release.errors import ReleaseError
from relpkg.release.identity import Prompter, resolve_identity, terminal_prompt
from relpkg.release.model import (
    CommitResult,
    Identity,
    NothingToCommit,
    ReleaseConfig,
    Released,
    ReleaseOutcome,
    Tag,
    WorkingRepository,
)
from relpkg.release.push import push_release
from relpkg.release.tag import create_tag
from relpkg.release.workspace import mutate_workspace


@dataclass(slots=True)
class _RunState:
    """Values threaded between stages during one run."""

    workspace: WorkingRepository | None = None
    identity: Identity | None = None
    commit: CommitResult | None = None
    tag: Tag | None = None
    pushed: bool = False


# A stage either finishes (Ok(None)), ends the run early (Ok(NothingToCommit)) or fails.
StageResult = Result[NothingToCommit | None, ReleaseError]
Stage = tuple[str, Callable[[_RunState], StageResult]]


class ReleasePipeline:
    """Runs one release for an immutable ``ReleaseConfig``."""

    def __init__(
        self,
        config: ReleaseConfig,
        *,
        console: ConsoleProtocol,
        prompt: Prompter = terminal_prompt,
    ) -> None:
        self._config = config
        self._console = console
        self._prompt = prompt

    @property
    def config(self) -> ReleaseConfig:
        return self._config

    def stages(self) -> list[Stage]:
        return [
            ("clone", self._clone),
            ("mutate", self._mutate),
            ("identity", self._identity),
            ("commit", self._commit),
            ("tag", self._tag),
            ("push", self._push),
        ]

    def run(self) -> Result[ReleaseOutcome, ReleaseError]:
        state = _RunState()
        for name, stage in self.stages():
            result = stage(state)
            if isinstance(result, Err):
                return Err(result.error.in_stage(name))
            if result.value is not None:
                self._console.warning("Nothing to commit")
                return Ok(result.value)

        assert state.commit is not None and state.tag is not None
        return Ok(Released(commit=state.commit, tag=state.tag, pushed=state.pushed))

    def _clone(self, state: _RunState) -> StageResult:
        result = clone_repository(config=self._config, console=self._console)
        if isinstance(result, Err):
            return result
        state.workspace = result.value
        return Ok(None)

    def _mutate(self, state: _RunState) -> StageResult:
        assert state.workspace is not None
        result = mutate_workspace(
            workspace=state.workspace,
            config=self._config,
            console=self._console,
        )
        if isinstance(result, Err):
            return result
        return Ok(None)

    def _identity(self, state: _RunState) -> StageResult:
        result = resolve_identity(
            name=self._config.committer_name,
            email=self._config.committer_email,
            prompt=self._prompt,
            console=self._console,
        )
        if isinstance(result, Err):
            return result
        state.identity = result.value
        return Ok(None)

    def _commit(self, state: _RunState) -> StageResult:
        assert state.workspace is not None and state.identity is not None
        result = commit_changes(
            workspace=state.workspace,
            config=self._config,
            identity=state.identity,
            console=self._console,
        )
        if isinstance(result, Err):
            return result
        if isinstance(result.value, NothingToCommit):
            return Ok(result.value)
        state.commit = result.value
        return Ok(None)

    def _tag(self, state: _RunState) -> StageResult:
        assert state.workspace is not None and state.commit is not None
        result = create_tag(
            workspace=state.workspace,
            config=self._config,
            commit=state.commit,
            console=self._console,
        )
        if isinstance(result, Err):
            return result
        state.tag = result.value
        return Ok(None)

    def _push(self, state: _RunState) -> StageResult:
        assert state.workspace is not None and state.tag is not None
        result = push_release(
            workspace=state.workspace,
            config=self._config,
            tag=state.tag,
            console=self._console,
        )
        if isinstance(result, Err):
            return result
        state.pushed = result.value
        return Ok(None)


def run_release(
    config: ReleaseConfig,
    *,
    console: ConsoleProtocol,
    prompt: Prompter = terminal_prompt,
) -> Result[ReleaseOutcome, ReleaseError]:
    """Run the full release pipeline once."""
    return ReleasePipeline(config, console=console, prompt=prompt).run()
