"""Tests for relpkg.release.pipeline module."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from relpkg.core.result import Err, Ok
from relpkg.output.console import MockConsole
from relpkg.release.model import (
    FileCopyInstruction,
    NothingToCommit,
    ReleaseConfig,
    Released,
)
from relpkg.release.pipeline import ReleasePipeline, run_release

GitFn = Callable[..., str]


def _no_prompt(label: str) -> str | None:
    raise AssertionError(f"unexpected prompt: {label}")


def _readme_source(tmp_path: Path, content: str = "# dist\n\nRelease notes for 1.2.0\n") -> Path:
    src_dir = tmp_path / "src"
    src_dir.mkdir(exist_ok=True)
    readme = src_dir / "README.md"
    readme.write_text(content, encoding="utf-8")
    return readme


def _config(tmp_path: Path, url: str, **kwargs: Any) -> ReleaseConfig:
    values: dict[str, Any] = {
        "work_dir": tmp_path / "tmp",
        "repository_url": url,
        "version": "1.2.0",
        "commit_message_template": "v%VERSION%",
        "committer_name": "Release Bot",
        "committer_email": "release@example.com",
    }
    values.update(kwargs)
    return ReleaseConfig(**values)


def test_stages_run_in_fixed_order(tmp_path: Path) -> None:
    pipeline = ReleasePipeline(
        _config(tmp_path, "file:///nowhere.git"),
        console=MockConsole(),
        prompt=_no_prompt,
    )
    assert [name for name, _ in pipeline.stages()] == [
        "clone",
        "mutate",
        "identity",
        "commit",
        "tag",
        "push",
    ]


def test_release_commits_tags_and_pushes(tmp_path: Path, make_remote: Any, git: GitFn) -> None:
    remote = make_remote({"README.md": "# dist\n"})
    initial_head = remote.rev("refs/heads/master")
    readme = _readme_source(tmp_path)

    config = _config(
        tmp_path,
        remote.url,
        file_copy_instructions=(FileCopyInstruction(readme, Path("README.md")),),
    )
    console = MockConsole()

    result = run_release(config, console=console, prompt=_no_prompt)

    assert isinstance(result, Ok)
    outcome = result.value
    assert isinstance(outcome, Released)
    assert outcome.pushed is True
    assert outcome.commit.parent == initial_head
    assert outcome.commit.message == "v1.2.0"
    assert outcome.commit.staged == ("README.md",)
    assert outcome.tag.name == "v1.2.0"
    assert outcome.tag.message == "Release v1.2.0"
    assert outcome.tag.target == outcome.commit.commit

    clone = config.work_dir
    assert git(clone, "log", "-1", "--format=%B") == "v1.2.0"
    assert git(clone, "rev-parse", "HEAD") == outcome.commit.commit
    # exactly one parent
    assert git(clone, "rev-list", "--parents", "-n", "1", "HEAD").split() == [
        outcome.commit.commit,
        initial_head,
    ]
    assert git(clone, "cat-file", "-t", "v1.2.0") == "tag"
    assert git(clone, "rev-parse", "v1.2.0^{commit}") == outcome.commit.commit
    assert (clone / "README.md").read_bytes() == readme.read_bytes()

    assert remote.rev("refs/heads/master") == outcome.commit.commit
    assert remote.rev("refs/tags/v1.2.0") == outcome.tag.oid
    assert console.find("Pushed v1.2.0 and master to origin")


def test_release_without_push_keeps_remote_untouched(
    tmp_path: Path, make_remote: Any, git: GitFn
) -> None:
    remote = make_remote()
    initial_head = remote.rev("refs/heads/master")
    readme = _readme_source(tmp_path)

    config = _config(
        tmp_path,
        remote.url,
        push_enabled=False,
        file_copy_instructions=(FileCopyInstruction(readme, Path("README.md")),),
    )
    console = MockConsole()

    result = run_release(config, console=console, prompt=_no_prompt)

    assert isinstance(result, Ok)
    assert isinstance(result.value, Released)
    assert result.value.pushed is False
    assert git(config.work_dir, "rev-parse", "v1.2.0^{commit}") == result.value.commit.commit
    assert remote.rev("refs/heads/master") == initial_head
    assert not remote.has_ref("refs/tags/v1.2.0")
    assert console.find("Push disabled")


@pytest.mark.parametrize("work_dir", ["tmp", "build/tmp"])
def test_relative_work_dir_is_taken_from_cwd(
    tmp_path: Path,
    make_remote: Any,
    git: GitFn,
    monkeypatch: pytest.MonkeyPatch,
    work_dir: str,
) -> None:
    remote = make_remote()
    readme = _readme_source(tmp_path)
    monkeypatch.chdir(tmp_path)

    config = _config(
        tmp_path,
        remote.url,
        work_dir=Path(work_dir),
        file_copy_instructions=(FileCopyInstruction(readme, Path("README.md")),),
    )

    result = run_release(config, console=MockConsole(), prompt=_no_prompt)

    assert isinstance(result, Ok)
    assert isinstance(result.value, Released)
    clone = tmp_path / work_dir
    assert git(clone, "rev-parse", "HEAD") == result.value.commit.commit
    assert (clone / "README.md").read_bytes() == readme.read_bytes()
    assert not (clone / work_dir).exists()
    assert remote.rev("refs/tags/v1.2.0") == result.value.tag.oid


def test_unchanged_clone_is_nothing_to_commit(
    tmp_path: Path, make_remote: Any, git: GitFn
) -> None:
    remote = make_remote({"README.md": "# dist\n"})
    initial_head = remote.rev("refs/heads/master")
    config = _config(tmp_path, remote.url)
    console = MockConsole()

    result = run_release(config, console=console, prompt=_no_prompt)

    assert isinstance(result, Ok)
    assert result.value == NothingToCommit(work_dir=config.work_dir)
    assert git(config.work_dir, "rev-parse", "HEAD") == initial_head
    assert git(config.work_dir, "tag", "--list") == ""
    assert remote.rev("refs/heads/master") == initial_head
    assert console.has_warning()


def test_identical_copy_is_nothing_to_commit(tmp_path: Path, make_remote: Any) -> None:
    remote = make_remote({"README.md": "same\n"})
    readme = _readme_source(tmp_path, "same\n")
    config = _config(
        tmp_path,
        remote.url,
        file_copy_instructions=(FileCopyInstruction(readme, Path("README.md")),),
    )

    result = run_release(config, console=MockConsole(), prompt=_no_prompt)

    assert isinstance(result, Ok)
    assert isinstance(result.value, NothingToCommit)


def test_missing_identity_is_prompted_name_then_email(
    tmp_path: Path, make_remote: Any, git: GitFn
) -> None:
    remote = make_remote()
    readme = _readme_source(tmp_path)
    config = _config(
        tmp_path,
        remote.url,
        committer_name=None,
        committer_email=None,
        push_enabled=False,
        file_copy_instructions=(FileCopyInstruction(readme, Path("README.md")),),
    )
    answers = {"- Committer name": "Jane Operator", "- Committer email": "jane@example.com"}
    asked: list[str] = []

    def prompt(label: str) -> str | None:
        asked.append(label)
        return answers[label]

    result = run_release(config, console=MockConsole(), prompt=prompt)

    assert isinstance(result, Ok)
    assert isinstance(result.value, Released)
    assert asked == ["- Committer name", "- Committer email"]
    assert git(config.work_dir, "log", "-1", "--format=%an <%ae>|%cn <%ce>") == (
        "Jane Operator <jane@example.com>|Jane Operator <jane@example.com>"
    )
    tagger = git(config.work_dir, "for-each-ref", "--format=%(taggername)", "refs/tags/v1.2.0")
    assert tagger == "Jane Operator"


def test_manifest_version_is_bumped_and_committed(
    tmp_path: Path, make_remote: Any, git: GitFn
) -> None:
    manifest = json.dumps({"name": "dist", "version": "0.1.0"}, indent=2)
    remote = make_remote({"package.json": manifest})
    config = _config(tmp_path, remote.url)

    result = run_release(config, console=MockConsole(), prompt=_no_prompt)

    assert isinstance(result, Ok)
    assert isinstance(result.value, Released)
    pushed = git(remote.bare, "show", "master:package.json")
    assert json.loads(pushed) == {"name": "dist", "version": "1.2.0"}


def test_existing_tag_stops_before_push(tmp_path: Path, make_remote: Any, git: GitFn) -> None:
    remote = make_remote()
    git(remote.seed, "tag", "-a", "v1.2.0", "-m", "old release")
    git(remote.seed, "push", "origin", "v1.2.0")
    initial_head = remote.rev("refs/heads/master")
    readme = _readme_source(tmp_path)
    config = _config(
        tmp_path,
        remote.url,
        file_copy_instructions=(FileCopyInstruction(readme, Path("README.md")),),
    )

    result = run_release(config, console=MockConsole(), prompt=_no_prompt)

    assert isinstance(result, Err)
    assert result.error.kind == "tag_exists"
    assert result.error.stage == "tag"
    assert remote.rev("refs/heads/master") == initial_head


def test_clone_failure_is_a_transport_error(tmp_path: Path, git: GitFn) -> None:
    missing = (tmp_path / "missing.git").as_uri()
    config = _config(tmp_path, missing)

    result = run_release(config, console=MockConsole(), prompt=_no_prompt)

    assert isinstance(result, Err)
    assert result.error.kind == "transport_failed"
    assert result.error.stage == "clone"


def test_unknown_branch_is_a_transport_error(tmp_path: Path, make_remote: Any) -> None:
    remote = make_remote()
    config = _config(tmp_path, remote.url, branch="does-not-exist")

    result = run_release(config, console=MockConsole(), prompt=_no_prompt)

    assert isinstance(result, Err)
    assert result.error.stage == "clone"


def test_non_empty_work_dir_is_refused(tmp_path: Path, make_remote: Any) -> None:
    remote = make_remote()
    work_dir = tmp_path / "tmp"
    work_dir.mkdir()
    (work_dir / "leftover.txt").write_text("x", encoding="utf-8")
    config = _config(tmp_path, remote.url, work_dir=work_dir)

    result = run_release(config, console=MockConsole(), prompt=_no_prompt)

    assert isinstance(result, Err)
    assert result.error.kind == "invalid_input"
    assert result.error.stage == "clone"


def test_unknown_push_remote_fails_in_push_stage(tmp_path: Path, make_remote: Any) -> None:
    remote = make_remote()
    readme = _readme_source(tmp_path)
    config = _config(
        tmp_path,
        remote.url,
        push_remote="upstream",
        file_copy_instructions=(FileCopyInstruction(readme, Path("README.md")),),
    )

    result = run_release(config, console=MockConsole(), prompt=_no_prompt)

    assert isinstance(result, Err)
    assert result.error.kind == "config_invalid"
    assert result.error.stage == "push"


def test_rejected_push_is_fatal(tmp_path: Path, make_remote: Any, git: GitFn) -> None:
    remote = make_remote()
    readme = _readme_source(tmp_path)
    config = _config(
        tmp_path,
        remote.url,
        committer_email=None,
        file_copy_instructions=(FileCopyInstruction(readme, Path("README.md")),),
    )

    def prompt_while_remote_moves(label: str) -> str | None:
        # Someone else pushes while the release waits for input.
        (remote.seed / "other.txt").write_text("concurrent\n", encoding="utf-8")
        git(remote.seed, "add", "other.txt")
        git(remote.seed, "commit", "-m", "concurrent change")
        git(remote.seed, "push", "origin", "master")
        return "release@example.com"

    result = run_release(config, console=MockConsole(), prompt=prompt_while_remote_moves)

    assert isinstance(result, Err)
    assert result.error.kind == "transport_failed"
    assert result.error.stage == "push"
    assert not remote.has_ref("refs/tags/v1.2.0")


def test_closed_prompt_input_is_identity_error(tmp_path: Path, make_remote: Any) -> None:
    remote = make_remote()
    config = _config(tmp_path, remote.url, committer_name=None)

    result = run_release(config, console=MockConsole(), prompt=lambda _label: None)

    assert isinstance(result, Err)
    assert result.error.kind == "identity_missing"
    assert result.error.stage == "identity"


@pytest.mark.parametrize("template", ["release %VERSION%", "%VERSION%"])
def test_commit_message_template(tmp_path: Path, make_remote: Any, template: str) -> None:
    remote = make_remote()
    readme = _readme_source(tmp_path)
    config = _config(
        tmp_path,
        remote.url,
        push_enabled=False,
        commit_message_template=template,
        file_copy_instructions=(FileCopyInstruction(readme, Path("README.md")),),
    )

    result = run_release(config, console=MockConsole(), prompt=_no_prompt)

    assert isinstance(result, Ok)
    assert isinstance(result.value, Released)
    assert result.value.commit.message == template.replace("%VERSION%", "1.2.0")
