"""Apply merge plans: bring new files into an ordered batch on disk.

The importer copies new files into the target directory and renames the
existing entries so that the whole batch ends up numbered contiguously under
one prefix, in the order chosen by `BatchMerger`.
"""

from __future__ import annotations

from collections.abc import Sequence
import os

from loguru import logger

from core.models import ImportMode, MergePlan, PhotoEntry
from core.services.interfaces import FileSystem, ImportResult
from core.services.merge_service import BatchMerger
from core.services.rename_service import BatchRenamer, format_target_name
from infrastructure.utils import filter_image_files, is_in_directory

TEMP_SUFFIX = ".tmp_import"


class ImportService:
    """Coordinates the copy/move sequence for a merge plan."""

    def __init__(self, fs: FileSystem, merger: BatchMerger | None = None) -> None:
        self._fs = fs
        self._merger = merger or BatchMerger()

    def import_files(
        self,
        source_files: Sequence[str],
        existing: Sequence[PhotoEntry],
        target_directory: str,
        prefix: str,
        mode: ImportMode = ImportMode.APPEND,
    ) -> ImportResult:
        """Merge `source_files` into `existing` and renumber everything under `prefix`.

        Existing entry objects are updated in place (path, name, order) so that
        their thumbnails survive; new files get fresh entries without thumbnails.
        """
        if not source_files:
            return ImportResult(False, "No files to import.")
        if not target_directory or not os.path.isdir(target_directory):
            return ImportResult(False, "Target directory does not exist.")
        if not BatchRenamer.validate_prefix(prefix):
            return ImportResult(False, "Please enter a valid rename prefix first.")

        supported = filter_image_files(source_files)
        if not supported:
            return ImportResult(False, "No supported image files found in the selection.")
        to_import = [p for p in supported if not is_in_directory(p, target_directory)]
        if not to_import:
            return ImportResult(False, "All selected files are already in the target directory.")

        plan = self._merger.plan(existing, to_import, mode)
        current = {e.path: e for e in existing if not e.is_container}
        targets = self._final_paths(plan, target_directory, prefix)

        leftover = self._find_leftover_temp(plan.existing_paths)
        if leftover is not None:
            name = os.path.basename(leftover)
            logger.warning("Import refused, temporary file already exists: {}", leftover)
            return ImportResult(
                False, f"Temporary file already exists: {name}. Please remove it and try again."
            )
        blocked = self._find_blocked_target(targets.values(), current)
        if blocked is not None:
            name = os.path.basename(blocked)
            logger.warning("Import refused, target exists outside batch: {}", blocked)
            return ImportResult(
                False, f"File already exists: {name}. Please choose a different prefix."
            )

        # Phase 1: park existing files under temporary names.
        parked: dict[str, str] = {}
        for path in plan.existing_paths:
            temp_path = path + TEMP_SUFFIX
            try:
                self._fs.move(path, temp_path)
            except OSError as ex:
                return self._failure(path, ex)
            parked[path] = temp_path

        # Phase 2: copy new files and move parked ones to their final names.
        entries: list[PhotoEntry] = []
        for item in plan:
            final_path = targets[item.final_index]
            try:
                if item.is_new_file:
                    self._fs.copy(item.source_path, final_path)
                else:
                    self._fs.move(parked[item.source_path], final_path)
            except OSError as ex:
                return self._failure(item.source_path, ex)

            if item.is_new_file:
                entry = PhotoEntry(path=final_path, display_order=item.final_index)
            else:
                entry = current[item.source_path]
                entry.set_path(final_path)
                entry.display_order = item.final_index
            entries.append(entry)

        mode_text = "distributed" if mode is ImportMode.DISTRIBUTE else "appended"
        logger.info(
            "Imported {} file(s) into {} ({}), batch size now {}",
            len(to_import),
            target_directory,
            mode_text,
            len(entries),
        )
        return ImportResult(
            True,
            f"Successfully {mode_text} {len(to_import)} file(s).",
            entries=entries,
            imported_count=len(to_import),
        )

    def _final_paths(self, plan: MergePlan, directory: str, prefix: str) -> dict[int, str]:
        targets: dict[int, str] = {}
        for item in plan:
            ext = os.path.splitext(item.source_path)[1]
            targets[item.final_index] = os.path.join(
                directory, format_target_name(prefix, item.final_index, ext)
            )
        return targets

    def _find_blocked_target(self, targets, current: dict[str, PhotoEntry]) -> str | None:
        batch = {os.path.normcase(p) for p in current}
        for target in targets:
            if os.path.normcase(target) in batch:
                continue
            if self._fs.exists(target):
                return target
        return None

    def _find_leftover_temp(self, paths: Sequence[str]) -> str | None:
        for path in paths:
            temp_path = path + TEMP_SUFFIX
            if self._fs.exists(temp_path):
                return temp_path
        return None

    def _failure(self, path: str, ex: OSError) -> ImportResult:
        name = os.path.basename(path)
        logger.error("Import failed on {}: {}", path, ex)
        return ImportResult(False, f"Error during import of {name}: {ex}")
