from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from auto_push.config import Config


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", "-C", str(cwd), *args],
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def remote_subjects(remote: Path, branch: str = "main") -> list[str]:
    """Commit subjects on the remote branch, newest first."""
    result = subprocess.run(
        ["git", "--git-dir", str(remote), "log", branch, "--format=%s"],
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        return []
    return result.stdout.splitlines()


@pytest.fixture
def remote(tmp_path: Path) -> Path:
    bare = tmp_path / "remote.git"
    subprocess.run(["git", "init", "--bare", str(bare)], capture_output=True, check=True)
    return bare


@pytest.fixture
def repo(tmp_path: Path, remote: Path) -> Path:
    work = tmp_path / "work"
    work.mkdir()
    git(work, "init")
    git(work, "symbolic-ref", "HEAD", "refs/heads/main")
    git(work, "config", "user.name", "Monitor Test")
    git(work, "config", "user.email", "monitor@example.com")
    git(work, "config", "commit.gpgsign", "false")
    git(work, "remote", "add", "origin", str(remote))
    return work.resolve()


@pytest.fixture
def make_config(repo: Path):
    def _make(**overrides) -> Config:
        values = dict(
            repo_root=repo,
            target="data.txt",
            poll_interval=0,
            push_retries=3,
            push_retry_delay=0,
        )
        values.update(overrides)
        return Config(**values)

    return _make
