"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import typer

from relpkg.release.errors import ReleaseError

if TYPE_CHECKING:
    from relpkg.cli.context import CLIContext


def exit_with_release_error(error: ReleaseError, ctx: CLIContext) -> NoReturn:
    """Print a release error with its hint and exit with the matching code."""
    ctx.console.error(error.message if not error.stage else f"{error.stage}: {error.message}")
    if error.hint:
        ctx.console.print(f"hint: {error.hint}")
    raise typer.Exit(code=int(error.exit_code))
