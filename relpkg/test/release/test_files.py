"""Tests for relpkg.release.files module."""

from __future__ import annotations

from pathlib import Path

import pytest

from relpkg.core.result import Err, Ok
from relpkg.release.files import CopyGroup, expand_copy_groups, match_patterns


@pytest.fixture
def project(tmp_path: Path) -> Path:
    for rel in (
        "README.md",
        "LICENSE",
        "dist/app.js",
        "dist/app.min.js",
        "dist/css/app.css",
        "build/out/site.js",
    ):
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(rel, encoding="utf-8")
    return tmp_path


class TestMatchPatterns:
    def test_keeps_pattern_order(self, project: Path) -> None:
        assert match_patterns(project, ["README.md", "LICENSE"]) == ["README.md", "LICENSE"]

    def test_deduplicates(self, project: Path) -> None:
        assert match_patterns(project, ["dist/*.js", "dist/app.js"]) == [
            "dist/app.js",
            "dist/app.min.js",
        ]

    def test_negation_removes_earlier_matches(self, project: Path) -> None:
        assert match_patterns(project, ["dist/*.js", "!dist/*.min.js"]) == ["dist/app.js"]

    def test_recursive_glob_includes_directories(self, project: Path) -> None:
        matches = match_patterns(project, ["dist/**"])
        assert "dist" in matches
        assert "dist/css" in matches
        assert "dist/css/app.css" in matches

    def test_no_match_is_empty(self, project: Path) -> None:
        assert match_patterns(project, ["*.txt"]) == []


def test_directory_destination_keeps_relative_paths(project: Path) -> None:
    result = expand_copy_groups(
        [CopyGroup(src=("README.md", "dist/*.js"), dest="")],
        base_dir=project,
    )

    assert isinstance(result, Ok)
    assert [(i.source, i.destination) for i in result.value] == [
        (project / "README.md", Path("README.md")),
        (project / "dist/app.js", Path("dist/app.js")),
        (project / "dist/app.min.js", Path("dist/app.min.js")),
    ]


def test_file_destination_renames(project: Path) -> None:
    result = expand_copy_groups(
        [CopyGroup(src=("dist/app.min.js",), dest="app.js")],
        base_dir=project,
    )

    assert isinstance(result, Ok)
    (instruction,) = result.value
    assert instruction.source == project / "dist/app.min.js"
    assert instruction.destination == Path("app.js")


def test_expand_with_cwd_strips_prefix(project: Path) -> None:
    result = expand_copy_groups(
        [CopyGroup(src=("**/*.js",), dest="lib/", cwd="build", expand=True)],
        base_dir=project,
    )

    assert isinstance(result, Ok)
    (instruction,) = result.value
    assert instruction.source == project / "build" / "out/site.js"
    assert instruction.destination == Path("lib/out/site.js")


def test_directories_are_flagged(project: Path) -> None:
    result = expand_copy_groups([CopyGroup(src=("dist/**",), dest="")], base_dir=project)

    assert isinstance(result, Ok)
    flagged = {i.destination.as_posix(): i.is_directory for i in result.value}
    assert flagged["dist"] is True
    assert flagged["dist/css"] is True
    assert flagged["dist/app.js"] is False


def test_many_matches_into_file_destination_is_rejected(project: Path) -> None:
    result = expand_copy_groups(
        [CopyGroup(src=("dist/*.js",), dest="bundle.js")],
        base_dir=project,
    )

    assert isinstance(result, Err)
    assert result.error.kind == "invalid_input"
    assert "bundle.js" in result.error.message


@pytest.mark.parametrize(
    ("dest", "expected"),
    [("", True), ("lib/", True), ("lib", False), ("lib/app.js", False)],
)
def test_dest_is_directory(dest: str, expected: bool) -> None:
    assert CopyGroup(src=("x",), dest=dest).dest_is_directory() is expected
