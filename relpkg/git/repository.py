"""Git repository abstraction.

``Repository`` wraps the ``git`` executable for one working copy. Every
operation returns a ``Result`` so the release stages can turn failures
into their own error kinds.

Usage:
    match Repository.clone(url, Path("tmp"), branch="master"):
        case Ok(repo):
            status = repo.status()
        case Err(e):
            print(f"clone failed: {e.message}")
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from relpkg.core.result import Err, Ok, Result
from relpkg.platform.process import ProcessError
from relpkg.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_PUSH_TIMEOUT_SECONDS = 3 * 60.0
_GIT_CLONE_TIMEOUT_SECONDS = 15 * 60.0

_ADD_VERBOSE_RE = re.compile(r"^(add|remove) '(.*)'$")

__all__ = [
    "GitError",
    "GitStatus",
    "Repository",
    "Signature",
    "StatusEntry",
    "TransportOptions",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message (git's stderr when available)
        returncode: Process return code
        timed_out: True when git was killed after its timeout
    """

    command: str
    message: str
    returncode: int = 1
    timed_out: bool = False


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single entry in git status.

    Attributes:
        xy: Two-character status code (e.g., "M ", " M", "??")
        path: File path
    """

    xy: str
    path: str


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Parsed ``git status --porcelain=v1`` output.

    Attributes:
        entries: All status entries (staged, unstaged, untracked)
    """

    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class Signature:
    """Author/committer/tagger identity with a fixed timestamp."""

    name: str
    email: str
    when: datetime

    @classmethod
    def now(cls, name: str, email: str) -> Signature:
        return cls(name=name, email=email, when=datetime.now().astimezone())

    def git_date(self) -> str:
        """Git internal date format: ``<unix-timestamp> <tz-offset>``."""
        offset = self.when.strftime("%z") or "+0000"
        return f"{int(self.when.timestamp())} {offset}"

    def author_env(self) -> dict[str, str]:
        return {
            "GIT_AUTHOR_NAME": self.name,
            "GIT_AUTHOR_EMAIL": self.email,
            "GIT_AUTHOR_DATE": self.git_date(),
        }

    def committer_env(self) -> dict[str, str]:
        return {
            "GIT_COMMITTER_NAME": self.name,
            "GIT_COMMITTER_EMAIL": self.email,
            "GIT_COMMITTER_DATE": self.git_date(),
        }


@dataclass(frozen=True, slots=True)
class TransportOptions:
    """Extra environment and ``-c key=value`` settings for network commands."""

    env: Mapping[str, str] = field(default_factory=dict)
    config: tuple[tuple[str, str], ...] = ()


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Absolute path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path.resolve()

    @classmethod
    def clone(
        cls,
        url: str,
        dest: Path,
        *,
        branch: str,
        transport: TransportOptions | None = None,
    ) -> Result[Repository, GitError]:
        """Clone ``url`` into ``dest`` with ``branch`` checked out.

        This is a full clone. ``dest`` must not exist or be empty; its
        parent directory is created if needed. A relative ``dest`` is
        taken relative to the current directory.
        """
        transport = transport or TransportOptions()
        dest = dest.resolve()
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Err(GitError(command="clone", message=str(e), returncode=-1))

        result = run_process(
            [
                "git",
                *_config_args(transport.config),
                "clone",
                "--branch",
                branch,
                "--",
                url,
                str(dest),
            ],
            cwd=dest.parent,
            env=_merged_env(transport.env),
            timeout=_GIT_CLONE_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            return Err(_git_error("clone", result.error, "clone failed"))
        return Ok(cls(dest))

    def status(self) -> Result[GitStatus, GitError]:
        """Get repository status (untracked files included)."""
        result = self._run(["status", "--porcelain=v1"])
        match result:
            case Err(e):
                return Err(_git_error("status", e, "git status failed"))
            case Ok(stdout):
                return Ok(self._parse_status(stdout))

    def refresh_index(self) -> Result[None, GitError]:
        """Re-read the index from disk and refresh its stat information."""
        result = self._run(["update-index", "-q", "--refresh"])
        if isinstance(result, Err):
            return Err(_git_error("update-index", result.error, "failed to read index"))
        return Ok(None)

    def add_all(self) -> Result[list[str], GitError]:
        """Stage every addition, modification and deletion in the working tree.

        Returns:
            The paths git reported as added or removed from the index.
        """
        result = self._run(["add", "--all", "--verbose"])
        if isinstance(result, Err):
            return Err(_git_error("add", result.error, "git add failed"))

        staged: list[str] = []
        for line in result.value.splitlines():
            match = _ADD_VERBOSE_RE.match(line.strip())
            if match:
                staged.append(match.group(2))
        return Ok(staged)

    def write_tree(self) -> Result[str, GitError]:
        """Write the index as a tree object and return its id."""
        result = self._run(["write-tree"])
        if isinstance(result, Err):
            return Err(_git_error("write-tree", result.error, "failed to write tree"))
        return Ok(result.value.strip())

    def resolve_commit(self, rev: str = "HEAD") -> Result[str, GitError]:
        """Resolve a revision to a commit id."""
        result = self._run(["rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}"])
        if isinstance(result, Err):
            return Err(_git_error("rev-parse", result.error, f"cannot resolve {rev}"))
        return Ok(result.value.strip())

    def commit_tree(
        self,
        tree: str,
        *,
        parents: Sequence[str],
        message: str,
        author: Signature,
        committer: Signature,
    ) -> Result[str, GitError]:
        """Create a commit object for ``tree`` without moving any ref."""
        args = ["commit-tree", tree]
        for parent in parents:
            args.extend(["-p", parent])
        args.extend(["-m", message])

        result = self._run(args, env={**author.author_env(), **committer.committer_env()})
        if isinstance(result, Err):
            return Err(_git_error("commit-tree", result.error, "failed to create commit"))
        return Ok(result.value.strip())

    def update_ref(
        self,
        ref: str,
        new: str,
        *,
        old: str,
        reflog_message: str,
        committer: Signature,
    ) -> Result[None, GitError]:
        """Point ``ref`` at ``new``, only if it still points at ``old``."""
        result = self._run(
            ["update-ref", "-m", reflog_message, ref, new, old],
            env=committer.committer_env(),
        )
        if isinstance(result, Err):
            return Err(_git_error("update-ref", result.error, f"failed to update {ref}"))
        return Ok(None)

    def ref_exists(self, ref: str) -> bool:
        return isinstance(self._run(["rev-parse", "--verify", "--quiet", ref]), Ok)

    def is_valid_ref_name(self, ref: str) -> bool:
        return isinstance(self._run(["check-ref-format", ref]), Ok)

    def create_annotated_tag(
        self,
        name: str,
        target: str,
        *,
        message: str,
        tagger: Signature,
    ) -> Result[str, GitError]:
        """Create an annotated tag and return the tag object's id."""
        result = self._run(
            ["tag", "--annotate", "--message", message, name, target],
            env=tagger.committer_env(),
        )
        if isinstance(result, Err):
            return Err(_git_error("tag", result.error, f"failed to create tag {name}"))

        resolved = self._run(["rev-parse", "--verify", f"refs/tags/{name}"])
        if isinstance(resolved, Err):
            return Err(_git_error("rev-parse", resolved.error, f"cannot resolve tag {name}"))
        return Ok(resolved.value.strip())

    def remote_url(self, name: str) -> Result[str, GitError]:
        result = self._run(["remote", "get-url", name])
        if isinstance(result, Err):
            return Err(_git_error("remote", result.error, f"no such remote: {name}"))
        return Ok(result.value.strip())

    def push(
        self,
        remote: str,
        refspecs: Sequence[str],
        *,
        reflog_action: str,
        transport: TransportOptions | None = None,
    ) -> Result[str, GitError]:
        """Push all ``refspecs`` in one atomic push.

        Returns:
            git's porcelain push report.
        """
        transport = transport or TransportOptions()
        result = self._run(
            ["push", "--porcelain", "--atomic", remote, *refspecs],
            env={**transport.env, "GIT_REFLOG_ACTION": reflog_action},
            config=transport.config,
            timeout=_GIT_PUSH_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            return Err(_git_error("push", result.error, "push failed"))
        return Ok(result.value.strip())

    def _run(
        self,
        args: list[str],
        *,
        env: Mapping[str, str] | None = None,
        config: tuple[tuple[str, str], ...] = (),
        timeout: float = _GIT_TIMEOUT_SECONDS,
    ) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        return run_process(
            ["git", *_config_args(config), "-C", str(self.path), *args],
            cwd=self.path,
            env=_merged_env(env or {}),
            timeout=timeout,
        )

    def _parse_status(self, output: str) -> GitStatus:
        """Parse git status --porcelain=v1 output."""
        entries: list[StatusEntry] = []
        for line in output.splitlines():
            entry = self._parse_entry(line)
            if entry:
                entries.append(entry)
        return GitStatus(entries=tuple(entries))

    def _parse_entry(self, line: str) -> StatusEntry | None:
        if len(line) < 4:
            return None

        if line.startswith("?? "):
            return StatusEntry(xy="??", path=line[3:])

        return StatusEntry(xy=line[:2], path=line[3:])


def _config_args(config: tuple[tuple[str, str], ...]) -> list[str]:
    args: list[str] = []
    for key, value in config:
        args.extend(["-c", f"{key}={value}"])
    return args


def _merged_env(extra: Mapping[str, str]) -> dict[str, str]:
    return {**os.environ, **extra}


def _git_error(command: str, error: ProcessError, fallback: str) -> GitError:
    return GitError(
        command=command,
        message=error.stderr.strip() or error.stdout.strip() or fallback,
        returncode=error.returncode,
        timed_out=error.timed_out,
    )
