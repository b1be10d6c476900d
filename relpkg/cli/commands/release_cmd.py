"""``relpkg release``: run the release pipeline from a config file."""

from __future__ import annotations

import shutil
from pathlib import Path

import typer

from relpkg.cli.commands._helpers import exit_with_release_error
from relpkg.cli.context import build_context
from relpkg.core.result import Err
from relpkg.output.console import ConsoleProtocol, Style
from relpkg.release.config import DEFAULT_CONFIG_NAME, ConfigOverrides, load_release_config
from relpkg.release.errors import ReleaseError
from relpkg.release.identity import terminal_prompt
from relpkg.release.model import NothingToCommit, Released
from relpkg.release.pipeline import run_release


def clean_work_dir(work_dir: Path, console: ConsoleProtocol) -> ReleaseError | None:
    """Remove a previous run's clone."""
    if not work_dir.exists():
        return None
    console.print(f"Removing {work_dir}", Style.DIM)
    try:
        if work_dir.is_dir() and not work_dir.is_symlink():
            shutil.rmtree(work_dir)
        else:
            work_dir.unlink()
    except OSError as e:
        return ReleaseError(kind="io_failed", message=f"failed to remove {work_dir}: {e}")
    return None


def release(
    config_path: Path = typer.Option(
        Path(DEFAULT_CONFIG_NAME),
        "--config",
        "-c",
        help="Release config file",
    ),
    version: str | None = typer.Option(None, "--version", help="Release version"),
    branch: str | None = typer.Option(None, "--branch", help="Branch to clone and push"),
    push: bool | None = typer.Option(
        None,
        "--push/--no-push",
        help="Push the tag and branch (default: config value)",
    ),
    clean: bool = typer.Option(
        True,
        "--clean/--no-clean",
        help="Remove the work directory before cloning",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show every step"),
) -> None:
    """Clone, update, commit, tag and push a release."""
    ctx = build_context(verbose=verbose)

    loaded = load_release_config(
        config_path,
        overrides=ConfigOverrides(version=version, branch=branch, push=push),
    )
    if isinstance(loaded, Err):
        exit_with_release_error(loaded.error, ctx)
    config = loaded.value

    if clean:
        cleaned = clean_work_dir(config.work_dir, ctx.console)
        if cleaned is not None:
            exit_with_release_error(cleaned, ctx)

    ctx.console.header(f"Release {config.version}")
    outcome = run_release(config, console=ctx.console, prompt=terminal_prompt)
    if isinstance(outcome, Err):
        exit_with_release_error(outcome.error, ctx)

    match outcome.value:
        case NothingToCommit(work_dir=work_dir):
            ctx.console.info(f"No changes in {work_dir}, nothing released")
        case Released(commit=commit, tag=tag, pushed=pushed):
            ctx.console.success(f"Committed {commit.commit[:12]} and tagged {tag.name}")
            if not pushed:
                ctx.console.print(f"Clone left in {config.work_dir}")
