"""Expansion of ``[[files]]`` copy groups into copy instructions.

A group lists glob patterns (``**`` allowed, ``!pattern`` removes earlier
matches) and a destination inside the clone. A destination ending in
``/`` is a directory: every match lands at ``dest/<match>``. Otherwise the
destination names exactly one file.
"""

from __future__ import annotations

import glob
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from relpkg.core.result import Err, Ok, Result
from relpkg.release.errors import ReleaseError
from relpkg.release.model import FileCopyInstruction


@dataclass(frozen=True, slots=True)
class CopyGroup:
    src: tuple[str, ...]
    dest: str
    cwd: str | None = None
    expand: bool = False

    def dest_is_directory(self) -> bool:
        return self.dest == "" or self.dest.endswith("/")


def match_patterns(root: Path, patterns: Sequence[str]) -> list[str]:
    """Glob ``patterns`` under ``root`` in pattern order, without duplicates."""
    matches: list[str] = []
    seen: set[str] = set()
    for pattern in patterns:
        if pattern.startswith("!"):
            excluded = set(_glob(root, pattern[1:]))
            matches = [m for m in matches if m not in excluded]
            seen -= excluded
            continue
        for match in _glob(root, pattern):
            if match not in seen:
                seen.add(match)
                matches.append(match)
    return matches


def _glob(root: Path, pattern: str) -> list[str]:
    found = glob.glob(pattern, root_dir=str(root), recursive=True)
    return sorted(Path(p).as_posix().rstrip("/") for p in found)


def expand_copy_groups(
    groups: Sequence[CopyGroup],
    *,
    base_dir: Path,
) -> Result[tuple[FileCopyInstruction, ...], ReleaseError]:
    """Turn copy groups into the ordered instruction list the workspace stage consumes."""
    instructions: list[FileCopyInstruction] = []

    for group in groups:
        root = base_dir / group.cwd if group.expand and group.cwd else base_dir
        matches = match_patterns(root, group.src)

        if not group.dest_is_directory() and len(matches) > 1:
            return Err(
                ReleaseError(
                    kind="invalid_input",
                    message=f"{len(matches)} files match {list(group.src)} but dest is a file: "
                    f"{group.dest}",
                    hint="End dest with '/' to copy into a directory.",
                )
            )

        for match in matches:
            source = root / match
            if group.dest_is_directory():
                destination = Path(group.dest or ".") / match
            else:
                destination = Path(group.dest)
            instructions.append(
                FileCopyInstruction(
                    source=source,
                    destination=destination,
                    is_directory=source.is_dir(),
                )
            )

    return Ok(tuple(instructions))
