"""Shared fixtures: throwaway bare remotes reachable over file://."""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import pytest


def run_git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        raise RuntimeError(
            f"git {' '.join(args)} failed (code {result.returncode}): {result.stderr.strip()}"
        )
    return result.stdout.strip()


@dataclass(frozen=True)
class RemoteRepo:
    """A bare repository seeded with one commit, reachable over file://."""

    url: str
    bare: Path
    seed: Path
    branch: str

    def rev(self, rev: str) -> str:
        return run_git(self.bare, "rev-parse", "--verify", rev)

    def has_ref(self, ref: str) -> bool:
        try:
            self.rev(ref)
        except RuntimeError:
            return False
        return True


MakeRemote = Callable[..., RemoteRepo]


@pytest.fixture
def git() -> Callable[..., str]:
    if shutil.which("git") is None:
        pytest.skip("git not available")
    return run_git


@pytest.fixture
def make_remote(tmp_path: Path) -> MakeRemote:
    if shutil.which("git") is None:
        pytest.skip("git not available")

    def _make(
        files: dict[str, str] | None = None,
        *,
        name: str = "dist",
        branch: str = "master",
    ) -> RemoteRepo:
        bare = tmp_path / f"{name}.git"
        seed = tmp_path / f"{name}-seed"

        run_git(tmp_path, "init", "--bare", str(bare))

        seed.mkdir()
        run_git(seed, "init", "-b", branch)
        run_git(seed, "config", "user.email", "seed@example.com")
        run_git(seed, "config", "user.name", "Seed")

        for rel, content in (files or {"README.md": "# dist\n"}).items():
            path = seed / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        run_git(seed, "add", "--all")
        run_git(seed, "commit", "-m", "init")

        url = bare.as_uri()
        run_git(seed, "remote", "add", "origin", url)
        run_git(seed, "push", "-u", "origin", branch)

        return RemoteRepo(url=url, bare=bare, seed=seed, branch=branch)

    return _make
