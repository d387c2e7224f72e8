"""Local filesystem primitives used by the rename and import workflows."""

from __future__ import annotations

import os
import shutil

from loguru import logger


class LocalFileSystem:
    """Thin wrapper over `os`/`shutil` that never overwrites silently."""

    def exists(self, path: str) -> bool:
        """Return True if `path` exists (file or directory)."""
        return os.path.lexists(path)

    def move(self, source: str, target: str) -> None:
        """Rename `source` to `target` within one volume.

        Raises `FileExistsError` if `target` is taken by another file, and
        `OSError` (EXDEV) for cross-volume moves instead of copying.
        """
        if os.path.lexists(target) and not _same_file(source, target):
            raise FileExistsError(f"Target already exists: {target}")
        os.rename(source, target)
        logger.debug("Moved {} -> {}", source, target)

    def copy(self, source: str, target: str) -> None:
        """Copy `source` to `target` with metadata; refuses to overwrite."""
        if os.path.lexists(target):
            raise FileExistsError(f"Target already exists: {target}")
        shutil.copy2(source, target)
        logger.debug("Copied {} -> {}", source, target)

    def delete(self, path: str) -> None:
        """Permanently remove the file at `path`."""
        os.remove(path)

    def list_dir(self, directory: str) -> list[str]:
        """Absolute paths of the direct children of `directory`, sorted by name."""
        with os.scandir(directory) as it:
            return sorted(os.path.abspath(entry.path) for entry in it)


def _same_file(a: str, b: str) -> bool:
    """True when `a` and `b` resolve to the same inode (case-only renames)."""
    try:
        return os.path.samefile(a, b)
    except OSError:
        return False
