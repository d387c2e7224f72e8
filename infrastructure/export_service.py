"""Parallel format conversion of photo entries (WebP, PNG, JPG).

Converted files land in a sub-folder named after the format. Existing outputs
are resolved up-front through an overwrite decision callback, then every file
is converted on a `WorkerPool` with a staggered start.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import os
import threading

from PIL import Image, ImageOps
from loguru import logger

from core.models import ExportFormat, OverwriteOption, PhotoEntry
from core.services.interfaces import ExportResult, OverwriteDecider, ProgressCallback
from core.services.worker_pool import CancellationToken, WorkerPool


@dataclass(frozen=True)
class _ExportJob:
    entry: PhotoEntry
    target: str


class ExportService:
    """Converts entries into another image format in parallel."""

    def __init__(
        self,
        worker_count: int | None = None,
        stagger_delay: float = 0.1,
        quality: int = 90,
    ) -> None:
        self._worker_count = worker_count or max(1, os.cpu_count() or 1)
        self._stagger_delay = stagger_delay
        self._quality = quality

    @staticmethod
    def output_path(entry: PhotoEntry, output_dir: str, fmt: ExportFormat) -> str:
        """Where `entry` is written for `fmt`."""
        return os.path.join(output_dir, entry.stem + fmt.extension)

    def export(
        self,
        entries: Sequence[PhotoEntry],
        directory: str,
        fmt: ExportFormat,
        overwrite_decider: OverwriteDecider | None = None,
        progress: ProgressCallback | None = None,
        token: CancellationToken | None = None,
    ) -> ExportResult:
        """Convert `entries` into `<directory>/<format folder>`.

        Args:
            entries: Entries to convert; folder placeholders are ignored.
            directory: Base directory of the batch.
            fmt: Target format.
            overwrite_decider: Asked once with the names of outputs that exist.
            progress: Called with (current, total, status) from worker threads.
            token: Cancels queued and in-flight conversions.
        """
        files = [e for e in entries if not e.is_container]
        if not files:
            return ExportResult(False, "No photos to export.")
        if not directory or not os.path.isdir(directory):
            return ExportResult(False, "Invalid directory path.")

        output_dir = os.path.join(directory, fmt.folder_name)
        try:
            os.makedirs(output_dir, exist_ok=True)
        except OSError as ex:
            return ExportResult(False, f"Error during {fmt.folder_name} export: {ex}")

        jobs = [_ExportJob(e, self.output_path(e, output_dir, fmt)) for e in files]
        existing = [os.path.basename(j.target) for j in jobs if os.path.exists(j.target)]
        option = OverwriteOption.OVERWRITE_ALL
        if existing and overwrite_decider is not None:
            option = overwrite_decider(existing)
            if option is OverwriteOption.CANCEL:
                return ExportResult(False, "Export cancelled by user.", output_dir=output_dir)

        total = len(jobs)
        result = ExportResult(False, "", output_dir=output_dir)
        lock = threading.Lock()

        def _report() -> None:
            done = len(result.exported) + len(result.skipped) + len(result.failed)
            if progress is not None:
                progress(done, total, f"Completed {done} of {total}")

        def _on_completed(job: _ExportJob) -> None:
            with lock:
                result.exported.append(job.target)
                _report()

        def _on_failed(job: _ExportJob, error: BaseException) -> None:
            with lock:
                result.failed.append((job.entry.display_name, str(error) or type(error).__name__))
                _report()

        with WorkerPool(
            self._worker_count,
            self._stagger_delay,
            on_completed=_on_completed,
            on_failed=_on_failed,
            name="export",
        ) as pool:
            for job in jobs:
                if token is not None and token.is_cancelled:
                    break
                if option is OverwriteOption.SKIP_EXISTING and os.path.exists(job.target):
                    with lock:
                        result.skipped.append(job.entry.path)
                        _report()
                    continue
                pool.submit(job, lambda j, t: self._convert(j, fmt, t), token)
            pool.drain()

        if progress is not None:
            progress(len(result.exported) + len(result.skipped) + len(result.failed), total, "Complete")
        result.success = bool(result.exported)
        result.message = self._summary(result, total, fmt)
        logger.info("Export {}: {}", fmt.folder_name, result.message.splitlines()[0])
        return result

    def _convert(self, job: _ExportJob, fmt: ExportFormat, token: CancellationToken) -> None:
        token.raise_if_cancelled()
        with Image.open(job.entry.path) as im:
            try:
                im = ImageOps.exif_transpose(im)
            except (OSError, ValueError, AttributeError):
                pass
            if fmt is ExportFormat.JPG and im.mode not in ("RGB", "L"):
                im = im.convert("RGB")
            token.raise_if_cancelled()
            im.save(job.target, fmt.pillow_format, **self._save_options(fmt))

    def _save_options(self, fmt: ExportFormat) -> dict:
        if fmt is ExportFormat.WEBP:
            return {"quality": self._quality, "lossless": False}
        if fmt is ExportFormat.JPG:
            return {"quality": self._quality}
        return {"optimize": True, "compress_level": 9}

    @staticmethod
    def _summary(result: ExportResult, total: int, fmt: ExportFormat) -> str:
        exported, skipped, failed = len(result.exported), len(result.skipped), len(result.failed)
        if exported == total:
            return (
                f"Successfully exported {exported} photo(s) to {fmt.folder_name} format "
                f"in '{result.output_dir}'"
            )
        failed_lines = "\n".join(f"{name}: {reason}" for name, reason in result.failed)
        if exported or skipped:
            parts = []
            if exported:
                parts.append(f"{exported} exported")
            if skipped:
                parts.append(f"{skipped} skipped")
            if failed:
                parts.append(f"{failed} failed")
            message = f"Export complete: {', '.join(parts)} of {total} photo(s)."
            if failed:
                message += f"\n\nFailed files:\n{failed_lines}"
            return message
        if not failed:
            return "Export cancelled."
        return f"Failed to export photos:\n{failed_lines}"
