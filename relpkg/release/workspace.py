"""Workspace mutation: materialize release files and bump manifest versions.

Both steps only touch the clone's working tree. Nothing is staged here.
A failure part-way leaves earlier copies in place; the clone is thrown
away by the next run's cleanup.
"""

from __future__ import annotations

import json
import os
import shutil
import stat
from collections.abc import Mapping, Sequence
from pathlib import Path

from relpkg.core.result import Err, Ok, Result
from relpkg.core.structured import as_str_dict
from relpkg.output.console import ConsoleProtocol, Style
from relpkg.platform.files import atomic_write_text, file_md5
from relpkg.release.errors import ReleaseError
from relpkg.release.model import (
    FileCopyInstruction,
    FileMode,
    MaterializeReport,
    ReleaseConfig,
    WorkingRepository,
)

# JSON.stringify-compatible indentation limit
_MAX_JSON_INDENT = 10


def sync_timestamp(source: Path, destination: Path) -> bool:
    """Copy access/modification times from ``source`` onto ``destination``.

    Skipped when the base names differ, or when ``source`` is a file whose
    content differs from ``destination``.

    Returns:
        True if the timestamps were written.
    """
    st = os.lstat(source)
    if source.name != destination.name:
        return False

    if stat.S_ISREG(st.st_mode) and file_md5(source) != file_md5(destination):
        return False

    os.utime(destination, ns=(st.st_atime_ns, st.st_mtime_ns))
    return True


def directory_sync_order(directories: Mapping[Path, Path]) -> list[Path]:
    """Destination directories ordered longest path first.

    Children are synced before their parents so a parent's timestamp is
    not bumped again by a later write inside it.
    """
    return sorted(directories, key=lambda d: len(str(d)), reverse=True)


def resolve_destination(root: Path, destination: Path) -> Result[Path, ReleaseError]:
    """Resolve ``destination`` against the clone root, refusing paths outside it."""
    resolved = Path(os.path.normpath(root / destination))
    if not resolved.is_relative_to(root):
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"destination escapes the work directory: {destination}",
            )
        )
    return Ok(resolved)


def _apply_mode(source: Path, destination: Path, mode: FileMode) -> None:
    if mode is True:
        os.chmod(destination, stat.S_IMODE(os.lstat(source).st_mode))
    elif mode is not False:
        os.chmod(destination, mode)


def _io_error(action: str, path: Path, e: OSError) -> ReleaseError:
    return ReleaseError(kind="io_failed", message=f"failed to {action} {path}: {e}")


def materialize_files(
    *,
    root: Path,
    instructions: Sequence[FileCopyInstruction],
    preserve_timestamps: bool,
    file_mode: FileMode | None,
    console: ConsoleProtocol,
) -> Result[MaterializeReport, ReleaseError]:
    """Create directories and copy files into the clone, in instruction order."""
    root = root.resolve()
    directories: dict[Path, Path] = {}
    dir_count = 0
    file_count = 0

    for item in instructions:
        dest_result = resolve_destination(root, item.destination)
        if isinstance(dest_result, Err):
            return dest_result
        dest = dest_result.value

        if item.is_directory:
            console.print(f"Creating {dest}", Style.DIM)
            try:
                dest.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                return Err(_io_error("create directory", dest, e))
            if preserve_timestamps:
                directories[dest] = item.source
            dir_count += 1
            continue

        console.print(f"Copying {item.source} -> {dest}", Style.DIM)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(item.source, dest)
            if preserve_timestamps:
                sync_timestamp(item.source, dest)
            if file_mode is not None:
                _apply_mode(item.source, dest, file_mode)
        except OSError as e:
            return Err(_io_error("copy", item.source, e))
        file_count += 1

    for dest in directory_sync_order(directories):
        try:
            sync_timestamp(directories[dest], dest)
        except OSError as e:
            return Err(_io_error("sync timestamp of", dest, e))

    summary: list[str] = []
    if dir_count:
        noun = "directory" if dir_count == 1 else "directories"
        summary.append(f"Created {dir_count} {noun}")
    if file_count:
        noun = "file" if file_count == 1 else "files"
        summary.append(f"{'copied' if dir_count else 'Copied'} {file_count} {noun}")
    if summary:
        console.print(", ".join(summary))

    return Ok(MaterializeReport(directories=dir_count, files=file_count))


def render_manifest(data: Mapping[str, object], indentation: int) -> str:
    """Serialize a manifest the way ``JSON.stringify(data, null, indentation)`` does."""
    indent = min(indentation, _MAX_JSON_INDENT)
    if indent <= 0:
        return json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    return json.dumps(data, ensure_ascii=False, indent=indent)


def bump_manifest_version(
    path: Path,
    *,
    version: str,
    indentation: int,
) -> Result[None, ReleaseError]:
    """Overwrite the ``version`` key of one JSON manifest."""
    try:
        data_obj: object = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        return Err(_io_error("read", path, e))
    except json.JSONDecodeError as e:
        return Err(ReleaseError(kind="io_failed", message=f"invalid JSON in {path}: {e}"))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(
            ReleaseError(kind="io_failed", message=f"{path.name} root must be a JSON object")
        )

    data["version"] = version
    try:
        atomic_write_text(path, render_manifest(data, indentation))
    except OSError as e:
        return Err(_io_error("write", path, e))
    return Ok(None)


def bump_manifest_versions(
    *,
    root: Path,
    manifest_files: Sequence[str],
    version: str,
    indentation: int,
    console: ConsoleProtocol,
) -> Result[tuple[Path, ...], ReleaseError]:
    """Rewrite the version of every manifest present at the clone root."""
    updated: list[Path] = []
    for name in manifest_files:
        path = root / name
        if not path.is_file():
            console.print(f"Package file {name} not found, skipping", Style.DIM)
            continue

        result = bump_manifest_version(path, version=version, indentation=indentation)
        if isinstance(result, Err):
            return result
        console.print(f"Updated {path}")
        updated.append(path)
    return Ok(tuple(updated))


def mutate_workspace(
    *,
    workspace: WorkingRepository,
    config: ReleaseConfig,
    console: ConsoleProtocol,
) -> Result[MaterializeReport, ReleaseError]:
    copied = materialize_files(
        root=workspace.root,
        instructions=config.file_copy_instructions,
        preserve_timestamps=config.preserve_timestamps,
        file_mode=config.file_mode,
        console=console,
    )
    if isinstance(copied, Err):
        return copied

    bumped = bump_manifest_versions(
        root=workspace.root,
        manifest_files=config.manifest_files,
        version=config.version,
        indentation=config.json_indentation,
        console=console,
    )
    if isinstance(bumped, Err):
        return bumped
    return copied
