"""Disk scanner for VM-related files.

Recursively walks the validated scan directories and collects every
file whose extension is on the VM file allow-list.
"""

import logging
import os
from datetime import UTC, datetime
from pathlib import Path

from hvclean.reconcile.models import (
    CONFIG_EXTENSIONS,
    DISK_EXTENSIONS,
    ISO_EXTENSION,
    CandidateFile,
    normalize_path,
)

logger = logging.getLogger(__name__)


class DiskScanner:
    """Finds VM configuration, disk and (optionally) ISO files on disk.

    Directories that cannot be read, or that vanish during the walk, are
    skipped with a warning. Results are deduplicated by path and sorted
    so that repeated scans produce the same listing.

    Args:
        include_isos: If True, also collect .iso files.
    """

    def __init__(self, *, include_isos: bool = False) -> None:
        extensions = set(CONFIG_EXTENSIONS | DISK_EXTENSIONS)
        if include_isos:
            extensions.add(ISO_EXTENSION)
        self._extensions: frozenset[str] = frozenset(extensions)

    @property
    def extensions(self) -> frozenset[str]:
        """Lower-cased extensions this scanner collects."""
        return self._extensions

    def scan(self, directories: list[Path] | tuple[Path, ...]) -> list[CandidateFile]:
        """Scan directories recursively for matching files.

        Args:
            directories: Validated directories to walk.

        Returns:
            Candidate files sorted by normalized path.
        """
        found: dict[str, CandidateFile] = {}

        for directory in directories:
            for candidate in self._scan_directory(directory):
                found.setdefault(normalize_path(candidate.path), candidate)

        return [found[key] for key in sorted(found)]

    def matches(self, path: Path) -> bool:
        """Check if a file's extension is on the allow-list (case-insensitive)."""
        return path.suffix.lower() in self._extensions

    def _scan_directory(self, directory: Path) -> list[CandidateFile]:
        if not directory.is_dir():
            logger.warning("Scan directory no longer exists: %s", directory)
            return []

        candidates: list[CandidateFile] = []
        for root, _dirs, files in os.walk(directory, onerror=self._on_walk_error):
            for filename in files:
                path = Path(root) / filename
                if not self.matches(path):
                    continue
                candidate = self._build_candidate(path)
                if candidate is not None:
                    candidates.append(candidate)

        return candidates

    @staticmethod
    def _build_candidate(path: Path) -> CandidateFile | None:
        """Stat a file and build its CandidateFile, or None if it vanished."""
        try:
            stat = path.stat()
        except OSError as e:
            logger.warning("Cannot read file %s: %s", path, e)
            return None

        mtime = datetime.fromtimestamp(stat.st_mtime, tz=UTC).isoformat()
        return CandidateFile.from_path(path, size_bytes=stat.st_size, mtime=mtime)

    @staticmethod
    def _on_walk_error(error: OSError) -> None:
        logger.warning("Skipping unreadable directory %s: %s", error.filename, error.strerror)
