"""Release configuration loading.

``release.toml`` is read once per invocation into an immutable
``ReleaseConfig``. Relative paths resolve against the config file's
directory. Missing required values are reported before any stage runs.
"""

from __future__ import annotations

import json
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from relpkg.core.result import Err, Ok, Result
from relpkg.core.structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_int,
    get_list,
    get_raw_str,
    get_str,
    get_str_list,
    get_table,
)
from relpkg.release.credentials import CERTIFICATE_POLICIES, RemoteCallbacks
from relpkg.release.errors import ReleaseError
from relpkg.release.files import CopyGroup, expand_copy_groups
from relpkg.release.model import (
    DEFAULT_BRANCH,
    DEFAULT_COMMIT_MESSAGE,
    DEFAULT_JSON_INDENTATION,
    DEFAULT_REMOTE,
    DEFAULT_TAG_MESSAGE,
    DEFAULT_TAG_NAME,
    FileMode,
    ReleaseConfig,
)

__all__ = [
    "DEFAULT_CONFIG_NAME",
    "ConfigOverrides",
    "load_release_config",
    "parse_release_config",
]

DEFAULT_CONFIG_NAME = "release.toml"


@dataclass(frozen=True, slots=True)
class ConfigOverrides:
    """Command-line values that take precedence over the config file."""

    version: str | None = None
    branch: str | None = None
    push: bool | None = None


def _invalid(message: str, path: Path | None = None, hint: str | None = None) -> ReleaseError:
    where = f"{path}: " if path else ""
    return ReleaseError(kind="config_invalid", message=f"{where}{message}", hint=hint)


def _parse_toml(path: Path) -> Result[StrDict, ReleaseError]:
    try:
        data_obj: object = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return Err(_invalid("config file not found", path, hint="Pass --config PATH"))
    except PermissionError:
        return Err(_invalid("permission denied reading config", path))
    except tomllib.TOMLDecodeError as e:
        return Err(_invalid(f"invalid TOML syntax: {e}", path))
    except (OSError, UnicodeDecodeError) as e:
        return Err(_invalid(f"error reading config: {e}", path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(_invalid("config root must be a TOML table", path))
    return Ok(data)


def _package_version(base_dir: Path) -> str | None:
    """``version`` of the project's own package.json, if any."""
    path = base_dir / "package.json"
    try:
        data = as_str_dict(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError):
        return None
    return get_str(data, "version") if data is not None else None


def _parse_mode(raw: object) -> Result[FileMode | None, ReleaseError]:
    if raw is None or raw is False:
        return Ok(None)
    if raw is True:
        return Ok(True)
    if isinstance(raw, int):
        return Ok(raw)
    if isinstance(raw, str):
        try:
            return Ok(int(raw, 8))
        except ValueError:
            pass
    return Err(_invalid(f"mode must be true, false or an octal mode, got {raw!r}"))


def _parse_copy_groups(data: Mapping[str, object]) -> Result[list[CopyGroup], ReleaseError]:
    raw_groups = get_list(data, "files")
    if raw_groups is None:
        if "files" in data:
            return Err(_invalid("'files' must be an array of tables ([[files]])"))
        return Ok([])

    groups: list[CopyGroup] = []
    for index, raw in enumerate(raw_groups):
        item = as_str_dict(raw)
        if item is None:
            return Err(_invalid(f"files[{index}] must be a table"))

        src = get_str_list(item, "src")
        if not src:
            return Err(_invalid(f"files[{index}].src must be a pattern or list of patterns"))

        expand = get_bool(item, "expand") or False
        cwd = get_str(item, "cwd")
        if cwd is not None and not expand:
            return Err(_invalid(f"files[{index}].cwd requires expand = true"))

        groups.append(
            CopyGroup(
                src=tuple(src),
                dest=get_raw_str(item, "dest") or "",
                cwd=cwd,
                expand=expand,
            )
        )
    return Ok(groups)


def parse_release_config(
    data: Mapping[str, object],
    *,
    base_dir: Path,
    overrides: ConfigOverrides | None = None,
) -> Result[ReleaseConfig, ReleaseError]:
    """Build a ``ReleaseConfig`` from parsed TOML data.

    Args:
        data: Parsed config document
        base_dir: Directory relative paths resolve against
        overrides: Command-line values applied on top of the file
    """
    overrides = overrides or ConfigOverrides()
    base_dir = base_dir.resolve()
    release: StrDict = get_table(data, "release") or {}

    repository = get_str(release, "repository")
    if repository is None:
        return Err(_invalid("missing release.repository"))

    work_dir_raw = get_str(release, "work_dir")
    if work_dir_raw is None:
        return Err(_invalid("missing release.work_dir", hint="e.g. work_dir = \"tmp\""))
    work_dir = base_dir / work_dir_raw

    version = overrides.version or get_str(release, "version") or _package_version(base_dir)
    if version is None:
        return Err(
            _invalid(
                "no release version",
                hint="Set release.version, pass --version, or add package.json with a version",
            )
        )

    indentation = get_int(release, "json_indentation")
    if indentation is not None and indentation < 0:
        return Err(_invalid("release.json_indentation must be >= 0"))

    mode = _parse_mode(release.get("mode"))
    if isinstance(mode, Err):
        return mode

    policy_name = get_str(release, "certificate_check") or "accept"
    certificate_check = CERTIFICATE_POLICIES.get(policy_name)
    if certificate_check is None:
        choices = ", ".join(sorted(CERTIFICATE_POLICIES))
        return Err(_invalid(f"release.certificate_check must be one of: {choices}"))

    groups = _parse_copy_groups(data)
    if isinstance(groups, Err):
        return groups
    instructions = expand_copy_groups(groups.value, base_dir=base_dir)
    if isinstance(instructions, Err):
        return instructions

    push = get_bool(release, "push")
    config = ReleaseConfig(
        work_dir=work_dir,
        repository_url=repository,
        version=version,
        branch=get_str(release, "branch") or DEFAULT_BRANCH,
        push_remote=get_str(release, "push_to") or DEFAULT_REMOTE,
        push_enabled=True if push is None else push,
        commit_message_template=get_raw_str(release, "commit_message") or DEFAULT_COMMIT_MESSAGE,
        tag_name_template=get_raw_str(release, "tag_name") or DEFAULT_TAG_NAME,
        tag_message_template=get_raw_str(release, "tag_message") or DEFAULT_TAG_MESSAGE,
        committer_name=get_str(release, "committer_name"),
        committer_email=get_str(release, "committer_email"),
        file_copy_instructions=instructions.value,
        json_indentation=DEFAULT_JSON_INDENTATION if indentation is None else indentation,
        preserve_timestamps=get_bool(release, "timestamp") or False,
        file_mode=mode.value,
        callbacks=RemoteCallbacks(certificate_check=certificate_check),
    )

    if overrides.branch:
        config = replace(config, branch=overrides.branch)
    if overrides.push is not None:
        config = replace(config, push_enabled=overrides.push)
    return Ok(config)


def load_release_config(
    path: Path,
    *,
    overrides: ConfigOverrides | None = None,
) -> Result[ReleaseConfig, ReleaseError]:
    """Load and validate a release config file.

    Returns:
        Ok(ReleaseConfig) on success, Err(ReleaseError) with kind
        ``config_invalid`` (or ``invalid_input`` for bad copy groups)
    """
    parsed = _parse_toml(path)
    if isinstance(parsed, Err):
        return parsed
    return parse_release_config(parsed.value, base_dir=path.parent, overrides=overrides)
