from __future__ import annotations

from pathlib import Path

from relpkg.core.result import Err, Ok, Result
from relpkg.git.repository import GitError, Repository
from relpkg.output.console import ConsoleProtocol, Style
from relpkg.release.errors import ReleaseError
from relpkg.release.model import ReleaseConfig, WorkingRepository


def _ensure_empty_work_dir(work_dir: Path) -> Result[None, ReleaseError]:
    if not work_dir.exists():
        return Ok(None)
    if not work_dir.is_dir() or any(work_dir.iterdir()):
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"work directory is not empty: {work_dir}",
                hint="Remove it before releasing (relpkg release --clean).",
            )
        )
    return Ok(None)


def _transport_error(e: GitError, url: str) -> ReleaseError:
    if e.timed_out:
        return ReleaseError(kind="transport_failed", message=f"clone of {url} timed out")
    return ReleaseError(
        kind="transport_failed",
        message=f"failed to clone {url}",
        hint=e.message or None,
    )


def clone_repository(
    *,
    config: ReleaseConfig,
    console: ConsoleProtocol,
) -> Result[WorkingRepository, ReleaseError]:
    """Clone ``config.repository_url`` on ``config.branch`` into ``config.work_dir``."""
    url = config.repository_url
    empty = _ensure_empty_work_dir(config.work_dir)
    if isinstance(empty, Err):
        return empty

    transport = config.callbacks.transport_for(url)
    if isinstance(transport, Err):
        return transport

    console.print(f"Cloning {url}", Style.DIM)
    cloned = Repository.clone(
        url,
        config.work_dir,
        branch=config.branch,
        transport=transport.value,
    )
    if isinstance(cloned, Err):
        return Err(_transport_error(cloned.error, url))

    repo = cloned.value
    head = repo.resolve_commit("HEAD")
    if isinstance(head, Err):
        return Err(
            ReleaseError(
                kind="vcs_failed",
                message=f"cloned branch {config.branch} has no commit",
                hint=head.error.message or None,
            )
        )

    console.success(f"Cloned {url} into {repo.path}")
    return Ok(WorkingRepository(repo=repo, branch=config.branch, head=head.value))
