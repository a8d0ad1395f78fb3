"""
Configuration management for the auto-push monitor.

Loads settings from a key-value config file (config.cfg) and the
environment, and provides structured, read-only configuration for
all monitor components.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values

NOTIFICATIONS_FILENAME = "NOTIFICATIONS.md"

DEFAULTS = {
    "LOG_FILE": "monitor.log",
    "CHECKSUM_STORE": ".monitor_checksum",
    "GIT_REMOTE": "origin",
    "GIT_BRANCH": "main",
    "POLL_INTERVAL": "10",
    "GIT_PUSH_RETRIES": "3",
    "GIT_PUSH_RETRY_DELAY": "5",
}

KNOWN_KEYS = ("REPO_PATH", "TARGET") + tuple(DEFAULTS)


class ConfigError(ValueError):
    """Raised when the configuration cannot be loaded or is invalid."""


@dataclass(frozen=True)
class Config:
    """
    Central configuration for the monitor.

    Loaded once at startup and never mutated afterwards.
    """

    repo_root: Path
    target: str

    log_file: str = DEFAULTS["LOG_FILE"]
    checksum_store: str = DEFAULTS["CHECKSUM_STORE"]

    # Git settings
    git_remote: str = DEFAULTS["GIT_REMOTE"]
    git_branch: str = DEFAULTS["GIT_BRANCH"]

    # Timing
    poll_interval: float = 10.0
    push_retries: int = 3
    push_retry_delay: float = 5.0

    debug: bool = False

    @property
    def target_path(self) -> Path:
        """Absolute path of the monitored file or directory."""
        return self.repo_root / self.target

    @property
    def log_path(self) -> Path:
        """Path to the append-only log file."""
        return self.repo_root / self.log_file

    @property
    def checksum_path(self) -> Path:
        """Path to the stored fingerprint."""
        return self.repo_root / self.checksum_store

    @property
    def notifications_path(self) -> Path:
        """Path to NOTIFICATIONS.md inside the repository."""
        return self.repo_root / NOTIFICATIONS_FILENAME

    @property
    def monitor_files(self) -> tuple[Path, ...]:
        """Files the monitor itself writes; never part of the fingerprint."""
        return (self.checksum_path, self.log_path, self.notifications_path)

    @classmethod
    def from_file(
        cls,
        path: Path,
        environ: Optional[Mapping[str, str]] = None,
        debug: bool = False,
    ) -> "Config":
        """
        Load configuration from a config file.

        Environment variables with the same names as the config keys
        take precedence over values from the file.

        Args:
            path: Path to the config file (KEY=VALUE lines).
            environ: Environment to read overrides from. Defaults to os.environ.
            debug: Enable debug output.

        Returns:
            Configured Config instance.

        Raises:
            ConfigError: If the file is missing, a value is invalid, or
                REPO_PATH cannot be resolved.
        """
        path = Path(path)
        if not path.is_file():
            raise ConfigError(f"Missing config file: {path}")

        if environ is None:
            environ = os.environ

        values = {**DEFAULTS}
        values.update({k: v for k, v in dotenv_values(path).items() if v is not None})
        values.update({k: environ[k] for k in KNOWN_KEYS if environ.get(k)})

        for key in ("REPO_PATH", "TARGET"):
            if not (values.get(key) or "").strip():
                raise ConfigError(f"{key} is required in {path}")

        repo_root = resolve_repo_path(values["REPO_PATH"], base_dir=path.parent)

        return cls(
            repo_root=repo_root,
            target=values["TARGET"].strip(),
            log_file=values["LOG_FILE"],
            checksum_store=values["CHECKSUM_STORE"],
            git_remote=values["GIT_REMOTE"],
            git_branch=values["GIT_BRANCH"],
            poll_interval=_number(values, "POLL_INTERVAL", float, minimum=0),
            push_retries=_number(values, "GIT_PUSH_RETRIES", int, minimum=1),
            push_retry_delay=_number(values, "GIT_PUSH_RETRY_DELAY", float, minimum=0),
            debug=debug,
        )


def resolve_repo_path(raw: str, base_dir: Path) -> Path:
    """
    Resolve REPO_PATH to an absolute directory.

    "~" is expanded; relative paths are taken relative to the directory
    that holds the config file.

    Raises:
        ConfigError: If the path does not name an existing directory.
    """
    repo = Path(raw.strip()).expanduser()
    if not repo.is_absolute():
        repo = base_dir / repo

    if not repo.is_dir():
        raise ConfigError(f"Cannot resolve REPO_PATH ({raw}).")

    return repo.resolve()


def _number(values: Mapping[str, str], key: str, kind: type, minimum: float):
    raw = values[key]
    try:
        number = kind(str(raw).strip())
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None

    if number < minimum:
        raise ConfigError(f"{key} must be at least {minimum}, got {raw!r}")
    return number
