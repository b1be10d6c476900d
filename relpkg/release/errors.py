"""Error type for the release pipeline."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

from relpkg.core.errors import ErrorCode

ReleaseErrorKind = Literal[
    "config_invalid",
    "invalid_input",
    "auth_failed",
    "transport_failed",
    "vcs_failed",
    "tag_exists",
    "invalid_tag",
    "io_failed",
    "identity_missing",
]

_EXIT_CODES: dict[str, ErrorCode] = {
    "config_invalid": ErrorCode.USER_ERROR,
    "invalid_input": ErrorCode.USER_ERROR,
    "identity_missing": ErrorCode.USER_ERROR,
    "auth_failed": ErrorCode.NETWORK_ERROR,
    "transport_failed": ErrorCode.NETWORK_ERROR,
    "vcs_failed": ErrorCode.VCS_ERROR,
    "tag_exists": ErrorCode.VCS_ERROR,
    "invalid_tag": ErrorCode.VCS_ERROR,
    "io_failed": ErrorCode.IO_ERROR,
}


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """A fatal pipeline failure.

    ``stage`` names the pipeline stage that failed; the orchestrator fills
    it in when the error leaves a stage.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None
    stage: str | None = None

    def pretty(self) -> str:
        text = f"[{self.stage}] {self.message}" if self.stage else self.message
        if self.hint:
            return f"{text} (hint: {self.hint})"
        return text

    def in_stage(self, stage: str) -> ReleaseError:
        return self if self.stage else replace(self, stage=stage)

    @property
    def exit_code(self) -> ErrorCode:
        return _EXIT_CODES.get(self.kind, ErrorCode.USER_ERROR)
