"""Orphan file removal.

Deletes single orphaned files, reporting failures per file instead of
raising, so one undeletable file never stops a cleanup run.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FileActionResult:
    """Result of a single file deletion.

    Attributes:
        path: Absolute path that was operated on.
        success: Whether the file was removed.
        error: Error message if the deletion failed, None otherwise.
    """

    path: str
    success: bool
    error: str | None = None


class FileRemover:
    """Removes orphaned VM files.

    Only regular files are removed. Directories are refused, since the
    scanner never reports them and removing one would be a bug.
    """

    def remove(self, path: str) -> FileActionResult:
        """Delete a single file.

        Args:
            path: Absolute path of the file to delete.

        Returns:
            FileActionResult indicating success or failure.
        """
        target = Path(path)

        try:
            if target.is_dir() and not target.is_symlink():
                return FileActionResult(
                    path=path,
                    success=False,
                    error=f"Refusing to delete a directory: {path}",
                )

            if not (target.exists() or target.is_symlink()):
                return FileActionResult(
                    path=path,
                    success=False,
                    error=f"File does not exist: {path}",
                )

            target.unlink()
        except OSError as e:
            logger.warning("Failed to delete %s: %s", path, e)
            return FileActionResult(path=path, success=False, error=str(e))

        logger.info("Deleted %s", path)
        return FileActionResult(path=path, success=True)
