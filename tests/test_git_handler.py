from __future__ import annotations

import subprocess
from pathlib import Path

import pytest
from conftest import git, remote_subjects

from auto_push.git_handler import GitHandler, PublishResult


def _flaky(results: list[bool]):
    calls = []

    def push_once() -> bool:
        calls.append(1)
        return results[len(calls) - 1]

    return push_once, calls


def _fail(*args, **kwargs):
    raise AssertionError("should not be called")


def test_publish_commits_and_pushes(repo: Path, remote: Path, make_config) -> None:
    (repo / "data.txt").write_text("a")
    handler = GitHandler(make_config())

    assert handler.publish("Auto-commit: Changes detected in data.txt") is PublishResult.PUSHED
    assert remote_subjects(remote) == ["Auto-commit: Changes detected in data.txt"]
    assert git(repo, "status", "--porcelain") == ""


def test_publish_without_changes_is_noop(repo: Path, make_config, monkeypatch) -> None:
    handler = GitHandler(make_config())
    monkeypatch.setattr(handler, "commit", _fail)
    monkeypatch.setattr(handler, "push", _fail)

    result = handler.publish("nothing")

    assert result is PublishResult.NO_CHANGES
    assert result.ok


def test_stage_failure_aborts(repo: Path, make_config, monkeypatch) -> None:
    handler = GitHandler(make_config())

    def broken_add():
        raise subprocess.CalledProcessError(128, ["git", "add", "-A"], stderr="fatal: index.lock exists")

    monkeypatch.setattr(handler, "stage_all", broken_add)
    monkeypatch.setattr(handler, "commit", _fail)

    result = handler.publish("msg")

    assert result is PublishResult.STAGE_FAILED
    assert not result.ok


def test_commit_failure_skips_push(repo: Path, make_config, monkeypatch) -> None:
    (repo / "data.txt").write_text("a")
    handler = GitHandler(make_config())
    monkeypatch.setattr(handler, "commit", lambda message: False)
    monkeypatch.setattr(handler, "push", _fail)

    assert handler.publish("msg") is PublishResult.COMMIT_FAILED


def test_push_succeeds_on_last_attempt(make_config) -> None:
    sleeps = []
    handler = GitHandler(make_config(push_retries=3, push_retry_delay=7), sleep=sleeps.append)
    handler._push_once, calls = _flaky([False, False, True])

    assert handler.push() is True
    assert len(calls) == 3
    assert sleeps == [7, 7]


def test_push_gives_up_after_max_attempts(make_config) -> None:
    sleeps = []
    handler = GitHandler(make_config(push_retries=4, push_retry_delay=2), sleep=sleeps.append)
    handler._push_once, calls = _flaky([False] * 4)

    assert handler.push() is False
    assert len(calls) == 4
    assert sleeps == [2, 2, 2]


def test_push_failure_keeps_local_commit(repo: Path, make_config) -> None:
    (repo / "data.txt").write_text("a")
    sleeps = []
    handler = GitHandler(make_config(git_remote="nowhere", push_retries=2), sleep=sleeps.append)

    assert handler.publish("local only") is PublishResult.PUSH_FAILED
    assert handler.head_message() == "local only"
    assert len(sleeps) == 1


def test_unpushed_commit_goes_out_with_next_push(repo: Path, remote: Path, make_config) -> None:
    (repo / "data.txt").write_text("a")
    offline = GitHandler(make_config(git_remote="nowhere", push_retries=1))
    assert offline.publish("first") is PublishResult.PUSH_FAILED

    (repo / "data.txt").write_text("b")
    assert GitHandler(make_config()).publish("second") is PublishResult.PUSHED

    assert remote_subjects(remote) == ["second", "first"]


def test_head_inspection(repo: Path, make_config) -> None:
    handler = GitHandler(make_config())
    assert handler.is_git_repo()
    assert not handler.has_commits()

    (repo / "data.txt").write_text("a")
    handler.stage_all()
    assert handler.has_staged_changes()
    assert handler.commit("Add data\n\nwith a body")

    assert handler.has_commits()
    assert not handler.has_staged_changes()
    assert handler.head_short_hash() == git(repo, "rev-parse", "--short", "HEAD")
    assert handler.head_message() == "Add data\n\nwith a body"


def test_not_a_repository(tmp_path: Path, make_config) -> None:
    plain = tmp_path / "plain"
    plain.mkdir()
    handler = GitHandler(make_config(repo_root=plain))
    # tmp_path itself must not sit inside a work tree for this to hold
    if subprocess.run(["git", "-C", str(tmp_path), "rev-parse"], capture_output=True).returncode == 0:
        pytest.skip("temporary directory is inside a git work tree")
    assert not handler.is_git_repo()


def test_ensure_available_without_git(monkeypatch) -> None:
    from auto_push import git_handler

    monkeypatch.setattr(git_handler.shutil, "which", lambda name: None)
    with pytest.raises(git_handler.GitUnavailableError):
        GitHandler.ensure_available()
