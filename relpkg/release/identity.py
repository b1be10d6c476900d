"""Committer identity resolution.

When the config lacks a committer name or email, the operator is asked
for them on the terminal, name first. Prompts block without a timeout:
unattended runs must configure both values.
"""

from __future__ import annotations

from collections.abc import Callable

import typer

from relpkg.core.result import Err, Ok, Result
from relpkg.output.console import ConsoleProtocol
from relpkg.release.errors import ReleaseError
from relpkg.release.model import Identity

# Returns the operator's answer, or None when the input stream is closed.
Prompter = Callable[[str], str | None]


def terminal_prompt(label: str) -> str | None:
    try:
        answer: str = typer.prompt(label)
    except typer.Abort:
        return None
    return answer.strip()


def resolve_identity(
    *,
    name: str | None,
    email: str | None,
    prompt: Prompter,
    console: ConsoleProtocol,
) -> Result[Identity, ReleaseError]:
    if name and email:
        return Ok(Identity(name=name, email=email))

    console.warning("Committer name or email missing, please enter:")

    if not name:
        name = prompt("- Committer name")
        if not name:
            return Err(_missing("name"))

    if not email:
        email = prompt("- Committer email")
        if not email:
            return Err(_missing("email"))

    return Ok(Identity(name=name, email=email))


def _missing(field: str) -> ReleaseError:
    return ReleaseError(
        kind="identity_missing",
        message=f"committer {field} was not provided",
        hint="Set committer_name and committer_email in the release config.",
    )
