"""Git operations module.

Usage:
    from relpkg.git import Repository

    repo = Repository(Path("tmp"))
    status = repo.status()
    if status.is_ok():
        print(f"{len(status.unwrap().entries)} changed paths")
"""

from relpkg.git.repository import (
    GitError,
    GitStatus,
    Repository,
    Signature,
    StatusEntry,
    TransportOptions,
)

__all__ = [
    "GitError",
    "GitStatus",
    "Repository",
    "Signature",
    "StatusEntry",
    "TransportOptions",
]
