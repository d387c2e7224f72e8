"""Recycle-bin deletion of photo entries.

Files are moved to the recycle bin with send2trash (never unlinked), and each
delete writes an audit CSV next to the application logs.
"""

from __future__ import annotations

from collections.abc import Iterable
import csv
from datetime import datetime
import os
from pathlib import Path

from loguru import logger
from send2trash import send2trash

from core.models import PhotoEntry
from core.services.interfaces import DeleteResult
from infrastructure.logging import get_log_directory


class DeleteService:
    """Coordinates delete operations and audit logging."""

    def __init__(self, log_dir: str | None = None) -> None:
        self._log_dir = log_dir

    def delete(self, entries: Iterable[PhotoEntry], write_log: bool = True) -> DeleteResult:
        """Send the files behind `entries` to the recycle bin.

        Folder placeholders are skipped. Entry objects are not modified; the
        caller drops the succeeded ones from its batch.
        """
        files = [e for e in entries if not e.is_container]
        result = self.delete_to_recycle([e.path for e in files])
        if write_log and files:
            orders = {e.path: e.display_order for e in files}
            result.log_path = self._write_log(result, orders)
        return result

    def delete_to_recycle(self, paths: list[str]) -> DeleteResult:
        """Send files to recycle bin and report per-path results."""
        success: list[str] = []
        failed: list[tuple[str, str]] = []
        for p in paths:
            normalized_path = os.path.normpath(p)
            if not os.path.exists(normalized_path):
                logger.error("File does not exist: {}", normalized_path)
                failed.append((p, "File does not exist"))
                continue
            try:
                send2trash(normalized_path)
                success.append(p)
            except (UnicodeEncodeError, OSError) as ex:
                # Some shells reject relative or mixed-separator paths.
                logger.warning("Failed to delete with normalized path {}: {}", normalized_path, ex)
                try:
                    send2trash(os.path.abspath(p))
                    success.append(p)
                except (UnicodeEncodeError, OSError) as ex2:
                    logger.error("All delete methods failed for {}: {} / {}", p, ex, ex2)
                    failed.append((p, f"Multiple delete failures: {ex}, {ex2}"))
        logger.info("Deleted {} file(s), {} failed", len(success), len(failed))
        return DeleteResult(success_paths=success, failed=failed)

    def _write_log(self, result: DeleteResult, orders: dict[str, int]) -> str | None:
        base_dir = self._log_dir or os.path.join(
            os.path.dirname(get_log_directory()), "delete_logs"
        )
        try:
            Path(base_dir).mkdir(parents=True, exist_ok=True)
            ts = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_path = os.path.join(base_dir, f"delete_{ts}.csv")
            with open(log_path, "w", encoding="utf-8", newline="") as f:
                writer = csv.writer(f)
                writer.writerow(["DisplayOrder", "FilePath", "Success", "Reason"])
                for p in result.success_paths:
                    writer.writerow([orders.get(p, 0), p, 1, ""])
                for p, reason in result.failed:
                    writer.writerow([orders.get(p, 0), p, 0, reason])
        except (OSError, ValueError) as ex:
            logger.error("Write delete log failed: {}", ex)
            return None
        logger.info("Delete log written: {}", log_path)
        return log_path
