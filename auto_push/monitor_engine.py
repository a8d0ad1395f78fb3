"""
Main monitor engine.

Orchestrates one polling loop:
- Fingerprint the target
- Compare against the stored fingerprint
- Publish the change
- Write and publish a notification entry
"""

import logging
import subprocess
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from auto_push.checksum import FingerprintStore, compute_checksum
from auto_push.config import Config
from auto_push.git_handler import GitHandler, PublishResult
from auto_push.notifier import NotificationWriter

logger = logging.getLogger(__name__)


class MonitorState(Enum):
    """Where the engine currently is in its cycle."""
    WAITING = "waiting"
    CHECKING = "checking"
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    PUBLISHING = "publishing"
    NOTIFYING = "notifying"
    PUBLISHING_NOTIFICATION = "publishing_notification"


@dataclass
class CycleResult:
    """Result of a single check cycle."""

    target_missing: bool = False
    changed: bool = False
    publish: Optional[PublishResult] = None
    notified: bool = False
    notification_publish: Optional[PublishResult] = None


class MonitorEngine:
    """
    Polls the target and publishes changes.

    Runs on the calling thread; the only pause is the sleep between cycles
    (and between push retries).
    """

    def __init__(
        self,
        config: Config,
        git_handler: Optional[GitHandler] = None,
        notifier: Optional[NotificationWriter] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize monitor engine.

        Args:
            config: Configuration instance.
            git_handler: Git collaborator. Built from config when omitted.
            notifier: Notification writer. Built from config when omitted.
            sleep: Called with the poll interval at the end of every cycle.
        """
        self.config = config
        self.git_handler = git_handler or GitHandler(config, sleep=sleep)
        self.notifier = notifier or NotificationWriter(config, self.git_handler)
        self.store = FingerprintStore(config.checksum_path)
        self.state = MonitorState.WAITING
        self._sleep = sleep

    @property
    def commit_message(self) -> str:
        return f"Auto-commit: Changes detected in {self.config.target}"

    def fingerprint(self) -> Optional[str]:
        """Fingerprint the target, leaving out the monitor's own files."""
        return compute_checksum(self.config.target_path, exclude=self.config.monitor_files)

    def establish_baseline(self) -> bool:
        """
        Store an initial fingerprint if none exists.

        The first fingerprint is never treated as a change.

        Returns:
            True if a baseline was written.
        """
        if self.store.exists():
            return False

        self.store.write(self.fingerprint())
        logger.info("Baseline fingerprint stored at %s", self.store.path)
        return True

    def check_once(self) -> CycleResult:
        """Run one check cycle and publish if the target changed."""
        result = CycleResult()
        target = self.config.target

        self.state = MonitorState.CHECKING
        new_checksum = self.fingerprint()

        if not new_checksum:
            result.target_missing = True
            logger.warning(
                "Target missing or empty: %s. Sleeping %ss",
                target, f"{self.config.poll_interval:g}",
            )
            return result

        if new_checksum == self.store.read():
            self.state = MonitorState.UNCHANGED
            logger.debug("No change in %s", target)
            return result

        self.state = MonitorState.CHANGED
        result.changed = True
        logger.info("Change detected in %s", target)
        self.store.write(new_checksum)

        self.state = MonitorState.PUBLISHING
        result.publish = self.git_handler.publish(self.commit_message)
        if not result.publish.ok:
            logger.error("Commit & push step failed; skipping notification.")
            return result

        logger.info("Commit & push completed.")

        self.state = MonitorState.NOTIFYING
        remote, branch = self.config.git_remote, self.config.git_branch
        result.notified = True
        self.notifier.write(
            title=f"Auto-notify: Changes pushed to {remote}/{branch}",
            body=(
                f"Changes detected in target: {target}\n\n"
                f"Auto-commit message: {self.commit_message}\n\n"
                "(See the commit on the remote or pull to get the latest code.)"
            ),
        )

        self.state = MonitorState.PUBLISHING_NOTIFICATION
        result.notification_publish = self._publish_notification()
        return result

    def _publish_notification(self) -> PublishResult:
        if not self.git_handler.has_staged_changes():
            logger.info("No additional staged changes to commit (notification file unchanged).")
            return PublishResult.NO_CHANGES

        outcome = self.git_handler.commit_and_push_staged(
            f"Add notification entry: {self.config.target} changed"
        )
        if outcome is PublishResult.PUSHED:
            logger.info("Notification commit pushed.")
        elif outcome is PublishResult.COMMIT_FAILED:
            logger.error("Failed to commit notification file.")
        else:
            logger.error("Failed to push notification commit after retries.")
        return outcome

    def run_cycle(self) -> Optional[CycleResult]:
        """
        Run one check cycle, logging instead of raising on OS and git errors.

        Returns:
            The cycle result, or None if the cycle failed.
        """
        try:
            return self.check_once()
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("Check cycle failed: %s", e)
            logger.debug("Check cycle traceback", exc_info=True)
            return None

    def run(self, max_cycles: Optional[int] = None) -> None:
        """
        Poll until killed.

        Args:
            max_cycles: Stop after this many cycles. Runs forever when None.
        """
        self.establish_baseline()
        logger.info(
            "Monitor started. Repo: %s Target: %s",
            self.config.repo_root, self.config.target,
        )

        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            self.run_cycle()
            cycles += 1
            self.state = MonitorState.WAITING
            self._sleep(self.config.poll_interval)
