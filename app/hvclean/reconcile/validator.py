"""Scan path validation.

Checks that user-supplied scan directories exist, are directories and
can be read, and removes duplicates.
"""

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from hvclean.reconcile.models import normalize_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class InvalidPath:
    """A rejected scan path.

    Attributes:
        path: Path as supplied by the user.
        reason: Human-readable rejection reason.
    """

    path: str
    reason: str


@dataclass(frozen=True, slots=True)
class PathValidation:
    """Outcome of validating a list of scan paths.

    Attributes:
        valid: Absolute, deduplicated directories in first-seen order.
        invalid: Rejected paths with reasons.
    """

    valid: tuple[Path, ...]
    invalid: tuple[InvalidPath, ...]

    @property
    def ok(self) -> bool:
        """Check if every supplied path was accepted."""
        return not self.invalid


def check_directory(path: Path) -> str | None:
    """Check a single scan directory.

    Args:
        path: Directory to check.

    Returns:
        Rejection reason, or None if the directory is usable.
    """
    if not path.exists():
        return "does not exist"
    if not path.is_dir():
        return "is not a directory"
    if not os.access(path, os.R_OK | os.X_OK):
        return "is not readable"
    return None


def validate_scan_paths(paths: Iterable[str | Path]) -> PathValidation:
    """Validate and deduplicate scan directories.

    Blank entries are ignored. Duplicates are detected case-insensitively
    after expanding ``~`` and making each path absolute.

    Args:
        paths: Directories supplied by the user or configuration.

    Returns:
        PathValidation with accepted and rejected paths.
    """
    valid: list[Path] = []
    invalid: list[InvalidPath] = []
    seen: set[str] = set()

    for raw in paths:
        text = str(raw).strip()
        if not text:
            continue

        path = Path(text).expanduser().absolute()
        key = normalize_path(path)
        if key in seen:
            logger.debug("Ignoring duplicate scan path: %s", text)
            continue
        seen.add(key)

        reason = check_directory(path)
        if reason is not None:
            logger.warning("Scan path %s %s", text, reason)
            invalid.append(InvalidPath(path=text, reason=reason))
            continue

        valid.append(path)

    return PathValidation(valid=tuple(valid), invalid=tuple(invalid))
