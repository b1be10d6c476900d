from __future__ import annotations

from relpkg.core.result import Err, Ok, Result
from relpkg.git.repository import GitError
from relpkg.output.console import ConsoleProtocol, Style
from relpkg.release.errors import ReleaseError
from relpkg.release.model import PushRefSpec, ReleaseConfig, Tag, WorkingRepository


def push_refspecs(*, tag: Tag, branch: str) -> tuple[PushRefSpec, PushRefSpec]:
    """Tag ref and branch head ref, each pushed to the same name on the remote."""
    tag_ref = f"refs/tags/{tag.name}"
    head_ref = f"refs/heads/{branch}"
    return (PushRefSpec(tag_ref, tag_ref), PushRefSpec(head_ref, head_ref))


def push_message(branch: str) -> str:
    return f"Push to {branch}"


def _push_error(remote: str, e: GitError) -> ReleaseError:
    if e.timed_out:
        return ReleaseError(kind="transport_failed", message=f"push to {remote} timed out")
    return ReleaseError(
        kind="transport_failed",
        message=f"push to {remote} failed",
        hint=e.message or None,
    )


def push_release(
    *,
    workspace: WorkingRepository,
    config: ReleaseConfig,
    tag: Tag,
    console: ConsoleProtocol,
) -> Result[bool, ReleaseError]:
    """Push the tag and the branch head in one push.

    Returns:
        Ok(False) when pushing is disabled, Ok(True) after a successful push.
    """
    if not config.push_enabled:
        console.info("Push disabled, remember to push manually if necessary")
        return Ok(False)

    repo = workspace.repo
    remote = config.push_remote

    url = repo.remote_url(remote)
    if isinstance(url, Err):
        return Err(
            ReleaseError(
                kind="config_invalid",
                message=f"unknown remote: {remote}",
                hint=url.error.message or None,
            )
        )

    transport = config.callbacks.transport_for(url.value)
    if isinstance(transport, Err):
        return transport

    refspecs = [str(spec) for spec in push_refspecs(tag=tag, branch=workspace.branch)]
    console.print(f"git push {remote} {' '.join(refspecs)}", Style.DIM)
    pushed = repo.push(
        remote,
        refspecs,
        reflog_action=push_message(workspace.branch),
        transport=transport.value,
    )
    if isinstance(pushed, Err):
        return Err(_push_error(remote, pushed.error))

    console.success(f"Pushed {tag.name} and {workspace.branch} to {remote}")
    return Ok(True)
