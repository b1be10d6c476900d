from __future__ import annotations

from relpkg.core.result import Err, Ok, Result
from relpkg.output.console import ConsoleProtocol, Style
from relpkg.release.errors import ReleaseError
from relpkg.release.model import CommitResult, ReleaseConfig, Tag, WorkingRepository


def create_tag(
    *,
    workspace: WorkingRepository,
    config: ReleaseConfig,
    commit: CommitResult,
    console: ConsoleProtocol,
) -> Result[Tag, ReleaseError]:
    """Create the annotated release tag on ``commit``, tagged by the committer."""
    repo = workspace.repo
    name = config.tag_name
    ref = f"refs/tags/{name}"

    if not repo.is_valid_ref_name(ref):
        return Err(
            ReleaseError(
                kind="invalid_tag",
                message=f"invalid tag name: {name!r}",
                hint="Check tag_name in the release config.",
            )
        )
    if repo.ref_exists(ref):
        return Err(
            ReleaseError(
                kind="tag_exists",
                message=f"tag already exists: {name}",
                hint="Bump the version or delete the tag from the repository.",
            )
        )

    message = config.tag_message
    created = repo.create_annotated_tag(
        name,
        commit.commit,
        message=message,
        tagger=commit.signature,
    )
    if isinstance(created, Err):
        e = created.error
        return Err(
            ReleaseError(
                kind="vcs_failed",
                message=f"failed to create tag {name}",
                hint=e.message or None,
            )
        )

    console.print(f"Created tag {name}", Style.DIM)
    return Ok(Tag(name=name, message=message, target=commit.commit, oid=created.value))
