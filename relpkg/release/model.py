from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from relpkg.git.repository import Repository, Signature, StatusEntry
from relpkg.release.credentials import RemoteCallbacks

VERSION_PLACEHOLDER = "%VERSION%"

# Manifests rewritten with the release version, relative to the clone root.
MANIFEST_FILES: tuple[str, ...] = ("bower.json", "package.json")

DEFAULT_BRANCH = "master"
DEFAULT_REMOTE = "origin"
DEFAULT_COMMIT_MESSAGE = "v%VERSION%"
DEFAULT_TAG_NAME = "v%VERSION%"
DEFAULT_TAG_MESSAGE = "Release v%VERSION%"
DEFAULT_JSON_INDENTATION = 2

# `True` copies the source file's mode, an int is applied as-is.
FileMode = bool | int


def apply_version(template: str, version: str) -> str:
    """Substitute the first ``%VERSION%`` placeholder in ``template``."""
    return template.replace(VERSION_PLACEHOLDER, version, 1)


@dataclass(frozen=True, slots=True)
class FileCopyInstruction:
    """One file or directory to materialize in the clone.

    ``destination`` is relative to the clone root.
    """

    source: Path
    destination: Path
    is_directory: bool = False


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Immutable configuration for one release invocation."""

    work_dir: Path
    repository_url: str
    version: str
    branch: str = DEFAULT_BRANCH
    push_remote: str = DEFAULT_REMOTE
    push_enabled: bool = True
    commit_message_template: str = DEFAULT_COMMIT_MESSAGE
    tag_name_template: str = DEFAULT_TAG_NAME
    tag_message_template: str = DEFAULT_TAG_MESSAGE
    committer_name: str | None = None
    committer_email: str | None = None
    file_copy_instructions: tuple[FileCopyInstruction, ...] = ()
    manifest_files: tuple[str, ...] = MANIFEST_FILES
    json_indentation: int = DEFAULT_JSON_INDENTATION
    preserve_timestamps: bool = False
    file_mode: FileMode | None = None
    callbacks: RemoteCallbacks = field(default_factory=RemoteCallbacks)

    @property
    def commit_message(self) -> str:
        return apply_version(self.commit_message_template, self.version)

    @property
    def tag_name(self) -> str:
        return apply_version(self.tag_name_template, self.version)

    @property
    def tag_message(self) -> str:
        return apply_version(self.tag_message_template, self.version)


@dataclass(frozen=True, slots=True)
class WorkingRepository:
    """The ephemeral clone, owned by one pipeline run."""

    repo: Repository
    branch: str
    head: str

    @property
    def root(self) -> Path:
        return self.repo.path


@dataclass(frozen=True, slots=True)
class MaterializeReport:
    directories: int = 0
    files: int = 0


@dataclass(frozen=True, slots=True)
class Identity:
    name: str
    email: str

    def signature(self) -> Signature:
        return Signature.now(self.name, self.email)


@dataclass(frozen=True, slots=True)
class ChangeSet:
    entries: tuple[StatusEntry, ...]

    @property
    def is_empty(self) -> bool:
        return not self.entries


@dataclass(frozen=True, slots=True)
class CommitResult:
    commit: str
    parent: str
    message: str
    signature: Signature
    staged: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Tag:
    name: str
    message: str
    target: str
    oid: str


@dataclass(frozen=True, slots=True)
class PushRefSpec:
    local: str
    remote: str

    def __str__(self) -> str:
        return f"{self.local}:{self.remote}"


@dataclass(frozen=True, slots=True)
class Released:
    """The pipeline committed and tagged; ``pushed`` tells whether refs left the clone."""

    commit: CommitResult
    tag: Tag
    pushed: bool


@dataclass(frozen=True, slots=True)
class NothingToCommit:
    """The clone had no changes after mutation; no commit, tag or push happened."""

    work_dir: Path


ReleaseOutcome = Released | NothingToCommit
