"""Release transaction pipeline.

Modules, in pipeline order:
- credentials: SSH-agent credentials and certificate policy
- clone: ephemeral clone of the target repository
- workspace: file materialization and manifest version bump
- identity: committer name/email, prompted when missing
- commit / tag / push: the version-control transaction
- pipeline: stage sequencing and outcome reporting
"""

from __future__ import annotations

from relpkg.release.config import ConfigOverrides, load_release_config
from relpkg.release.errors import ReleaseError
from relpkg.release.model import (
    FileCopyInstruction,
    NothingToCommit,
    ReleaseConfig,
    Released,
    ReleaseOutcome,
)
from relpkg.release.pipeline import ReleasePipeline, run_release

__all__ = [
    "ConfigOverrides",
    "FileCopyInstruction",
    "NothingToCommit",
    "ReleaseConfig",
    "ReleaseError",
    "ReleaseOutcome",
    "ReleasePipeline",
    "Released",
    "load_release_config",
    "run_release",
]
