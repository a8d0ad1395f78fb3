"""
Git operations handler for the monitor.

Handles:
- Tool and repository checks
- Staging and committing
- Push operations with bounded retry
- HEAD inspection for notifications
"""

import logging
import shutil
import subprocess
import time
from enum import Enum
from pathlib import Path
from typing import Callable

from auto_push.config import Config

logger = logging.getLogger(__name__)


class GitUnavailableError(RuntimeError):
    """Raised when the git executable cannot be found."""


class PublishResult(Enum):
    """Outcome of a stage/commit/push cycle."""
    PUSHED = "pushed"
    NO_CHANGES = "no_changes"
    STAGE_FAILED = "stage_failed"
    COMMIT_FAILED = "commit_failed"
    PUSH_FAILED = "push_failed"

    @property
    def ok(self) -> bool:
        """Whether the cycle may go on to notify."""
        return self in (PublishResult.PUSHED, PublishResult.NO_CHANGES)


class GitHandler:
    """
    Handles Git operations for the monitor.

    All commands run synchronously against the configured working tree.
    """

    def __init__(self, config: Config, sleep: Callable[[float], None] = time.sleep):
        """
        Initialize git handler.

        Args:
            config: Configuration instance.
            sleep: Called with the retry delay between push attempts.
        """
        self.config = config
        self.repo_root = config.repo_root
        self._sleep = sleep

    def _run_git(
        self,
        *args: str,
        capture_output: bool = True,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        """Run a git command."""
        cmd = ["git", "-C", str(self.repo_root)] + list(args)

        logger.debug("Running: %s", " ".join(cmd))

        return subprocess.run(
            cmd,
            capture_output=capture_output,
            text=True,
            check=check,
        )

    @staticmethod
    def ensure_available() -> None:
        """
        Check that git is installed.

        Raises:
            GitUnavailableError: If git is not on PATH.
        """
        if shutil.which("git") is None:
            raise GitUnavailableError("git is required but not installed")

    def is_git_repo(self) -> bool:
        """Check if repo_root is a git repository."""
        try:
            self._run_git("rev-parse", "--git-dir")
            return True
        except subprocess.CalledProcessError:
            return False

    def has_commits(self) -> bool:
        """Check if the repository has any commits."""
        try:
            self._run_git("rev-parse", "--verify", "HEAD")
            return True
        except subprocess.CalledProcessError:
            return False

    def head_short_hash(self) -> str:
        """Short hash of HEAD."""
        return self._run_git("rev-parse", "--short", "HEAD").stdout.strip()

    def head_message(self) -> str:
        """Full message of the HEAD commit."""
        return self._run_git("log", "-1", "--pretty=%B").stdout.strip()

    def stage_all(self) -> None:
        """Stage all changes."""
        self._run_git("add", "-A")

    def stage_files(self, paths: list[Path]) -> None:
        """Stage specific files."""
        for path in paths:
            self._run_git("add", str(path))

    def has_staged_changes(self) -> bool:
        """Check if anything is staged for commit."""
        result = self._run_git("diff", "--cached", "--quiet", check=False)
        return result.returncode != 0

    def commit(self, message: str) -> bool:
        """
        Create a commit from the staged changes.

        Hooks are bypassed.

        Args:
            message: Commit message.

        Returns:
            True if the commit was created.
        """
        try:
            self._run_git("commit", "--no-verify", "-m", message)
        except subprocess.CalledProcessError as e:
            logger.error("git commit failed: %s", _stderr(e))
            return False

        logger.info("Committed: %s", message.split("\n")[0])
        return True

    def _push_once(self) -> bool:
        try:
            self._run_git("push", self.config.git_remote, self.config.git_branch)
            return True
        except subprocess.CalledProcessError as e:
            logger.debug("git push stderr: %s", _stderr(e))
            return False

    def push(self) -> bool:
        """
        Push to the configured remote and branch.

        Retries up to push_retries attempts with a fixed delay between them.

        Returns:
            True if any attempt succeeded.
        """
        attempts = self.config.push_retries
        delay = self.config.push_retry_delay

        for attempt in range(1, attempts + 1):
            if self._push_once():
                return True

            if attempt < attempts:
                logger.warning(
                    "git push failed (attempt %d/%d); retrying in %ss...",
                    attempt, attempts, f"{delay:g}",
                )
                self._sleep(delay)
            else:
                logger.warning("git push failed (attempt %d/%d)", attempt, attempts)

        return False

    def publish(self, message: str) -> PublishResult:
        """
        Stage all changes, commit them and push.

        Args:
            message: Commit message.

        Returns:
            PublishResult describing how far the cycle got.
        """
        try:
            self.stage_all()
        except subprocess.CalledProcessError as e:
            logger.error("git add failed: %s", _stderr(e))
            return PublishResult.STAGE_FAILED

        if not self.has_staged_changes():
            logger.info("No changes to commit.")
            return PublishResult.NO_CHANGES

        return self.commit_and_push_staged(message)

    def commit_and_push_staged(self, message: str) -> PublishResult:
        """Commit whatever is already staged, then push."""
        if not self.commit(message):
            return PublishResult.COMMIT_FAILED

        remote, branch = self.config.git_remote, self.config.git_branch
        logger.info("Pushing to %s/%s...", remote, branch)
        if self.push():
            logger.info("Push succeeded.")
            return PublishResult.PUSHED

        logger.error("Push failed after retries.")
        return PublishResult.PUSH_FAILED


def _stderr(error: subprocess.CalledProcessError) -> str:
    return (error.stderr or "").strip() or str(error)
