"""Commit stage: stage everything in the clone and commit it on HEAD."""

from __future__ import annotations

from relpkg.core.result import Err, Ok, Result
from relpkg.git.repository import GitError
from relpkg.output.console import ConsoleProtocol, Style
from relpkg.release.errors import ReleaseError
from relpkg.release.model import (
    ChangeSet,
    CommitResult,
    Identity,
    NothingToCommit,
    ReleaseConfig,
    WorkingRepository,
)


def _vcs_error(message: str, e: GitError) -> ReleaseError:
    return ReleaseError(kind="vcs_failed", message=message, hint=e.message or None)


def collect_changes(workspace: WorkingRepository) -> Result[ChangeSet, ReleaseError]:
    """Refresh the index, then list every changed or untracked path."""
    repo = workspace.repo

    refreshed = repo.refresh_index()
    if isinstance(refreshed, Err):
        return Err(_vcs_error("failed to read index", refreshed.error))

    status = repo.status()
    if isinstance(status, Err):
        return Err(_vcs_error("failed to query status", status.error))
    return Ok(ChangeSet(entries=status.value.entries))


def commit_changes(
    *,
    workspace: WorkingRepository,
    config: ReleaseConfig,
    identity: Identity,
    console: ConsoleProtocol,
) -> Result[CommitResult | NothingToCommit, ReleaseError]:
    """Commit every change in the clone with exactly one parent, the current HEAD.

    Returns:
        Ok(NothingToCommit) when the working tree is unchanged.
    """
    repo = workspace.repo

    changes = collect_changes(workspace)
    if isinstance(changes, Err):
        return changes
    if changes.value.is_empty:
        return Ok(NothingToCommit(work_dir=workspace.root))

    staged = repo.add_all()
    if isinstance(staged, Err):
        return Err(_vcs_error("failed to stage changes", staged.error))
    for path in staged.value:
        console.print(f"Staging {path}", Style.DIM)

    tree = repo.write_tree()
    if isinstance(tree, Err):
        return Err(_vcs_error("failed to write tree", tree.error))

    parent = repo.resolve_commit("HEAD")
    if isinstance(parent, Err):
        return Err(_vcs_error("failed to resolve HEAD", parent.error))

    signature = identity.signature()
    message = config.commit_message

    commit = repo.commit_tree(
        tree.value,
        parents=[parent.value],
        message=message,
        author=signature,
        committer=signature,
    )
    if isinstance(commit, Err):
        return Err(_vcs_error("failed to create commit", commit.error))

    first_line = message.splitlines()[0] if message else ""
    moved = repo.update_ref(
        "HEAD",
        commit.value,
        old=parent.value,
        reflog_message=f"commit: {first_line}",
        committer=signature,
    )
    if isinstance(moved, Err):
        return Err(_vcs_error("failed to advance HEAD", moved.error))

    console.print(f"Created commit {commit.value}", Style.DIM)
    return Ok(
        CommitResult(
            commit=commit.value,
            parent=parent.value,
            message=message,
            signature=signature,
            staged=tuple(staged.value),
        )
    )
