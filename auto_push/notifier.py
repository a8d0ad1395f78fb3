"""
Repository-based notifications.

Appends a markdown record to NOTIFICATIONS.md for every published
change and stages the file so it can be committed separately.
"""

import logging
import subprocess
from datetime import datetime
from typing import Callable, Optional

from auto_push.config import Config
from auto_push.git_handler import GitHandler

logger = logging.getLogger(__name__)

HEADER = "# Notifications\n\n"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %z"


class NotificationWriter:
    """Writes notification entries into the monitored repository."""

    def __init__(
        self,
        config: Config,
        git_handler: GitHandler,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        self.git_handler = git_handler
        self._clock = clock or (lambda: datetime.now().astimezone())

    def format_entry(self, title: str, body: str) -> str:
        """
        Build one markdown notification block.

        The commit lines are only present when HEAD exists.
        """
        lines = [
            f"## {title}",
            "",
            f"- **Time:** {self._clock().strftime(TIMESTAMP_FORMAT)}",
            f"- **Repository path:** {self.config.repo_root}",
        ]

        if self.git_handler.has_commits():
            lines.append(f"- **Commit:** {self.git_handler.head_short_hash()}")
            lines.append(f"- **Commit message:** {self.git_handler.head_message()}")

        lines += ["", body, "", "---", "", ""]
        return "\n".join(lines)

    def write(self, title: str, body: str) -> bool:
        """
        Append a notification entry and stage the notification file.

        Args:
            title: Entry heading.
            body: Free-text body.

        Returns:
            True if the file was staged.
        """
        path = self.config.notifications_path
        entry = self.format_entry(title, body)

        if not path.exists():
            path.write_text(HEADER, encoding="utf-8")

        with open(path, "a", encoding="utf-8") as f:
            f.write(entry)

        try:
            self.git_handler.stage_files([path.relative_to(self.config.repo_root)])
        except subprocess.CalledProcessError as e:
            logger.warning("Failed to stage %s: %s", path.name, e)
            return False

        return True
