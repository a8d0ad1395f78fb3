"""
Content fingerprinting for the monitored target.

A file is fingerprinted by the SHA-256 of its bytes. A directory is
fingerprinted by the SHA-256 of a sha256sum-style manifest of every
regular file beneath it, sorted by relative path.
"""

import hashlib
import logging
import os
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
SKIPPED_DIRS = {".git"}


def hash_file(path: Path) -> str:
    """Return the SHA-256 hex digest of a file's content."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def iter_files(root: Path, exclude: Iterable[Path] = ()) -> list[str]:
    """
    List regular files beneath a directory.

    Symlinks, .git directories and any path in exclude are skipped.

    Returns:
        Relative POSIX paths, sorted lexicographically.
    """
    root = Path(root).resolve()
    skipped = {Path(p).resolve() for p in exclude}

    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d not in SKIPPED_DIRS]
        for name in filenames:
            full = Path(dirpath) / name
            if full in skipped or full.is_symlink() or not full.is_file():
                continue
            found.append(full.relative_to(root).as_posix())
    return sorted(found)


def compute_checksum(path: Path, exclude: Iterable[Path] = ()) -> Optional[str]:
    """
    Compute a stable fingerprint for a file or directory.

    Args:
        path: File or directory to fingerprint.
        exclude: Files to leave out of a directory fingerprint.

    Returns:
        Hex digest, or None if the path is missing or holds no files.
    """
    path = Path(path)

    if path.is_file():
        try:
            return hash_file(path)
        except OSError as e:
            logger.warning("Could not read %s: %s", path, e)
            return None

    if not path.is_dir():
        return None

    manifest = []
    for rel in iter_files(path, exclude):
        try:
            file_hash = hash_file(path / rel)
        except OSError as e:
            # File vanished or became unreadable mid-walk
            logger.warning("Skipping %s: %s", rel, e)
            continue
        manifest.append(f"{file_hash}  ./{rel}\n")

    if not manifest:
        return None

    return hashlib.sha256("".join(manifest).encode("utf-8")).hexdigest()


class FingerprintStore:
    """Plain-text file holding the last computed fingerprint."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> Optional[str]:
        """Return the stored fingerprint, or None if nothing is stored."""
        try:
            return self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None

    def write(self, fingerprint: Optional[str]) -> None:
        """Overwrite the stored fingerprint. None is stored as an empty line."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(f"{fingerprint or ''}\n", encoding="utf-8")
