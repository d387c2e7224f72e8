"""ViewModel for orchestrating an ordered photo batch.

The view-model owns the entry list and is the only thing that mutates it.
Background work (thumbnail decodes) runs on a `WorkerPool`; its outcomes are
applied here, on the owning thread, via `apply_thumbnail_outcomes`.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import os
from typing import Any

from loguru import logger

from app.viewmodels.photo_vm import PhotoVM
from core.models import ExportFormat, ImportMode, PhotoEntry
from core.services.interfaces import (
    DeleteResult,
    ExportResult,
    FileSystem,
    ImageDecoder,
    ImportResult,
    OverwriteDecider,
    ProgressCallback,
    RenameResult,
    UpscaleResult,
    Upscaler,
)
from core.services.order_service import OrderService
from core.services.rename_service import BatchRenamer, detect_common_prefix
from core.services.worker_pool import CancellationToken, WorkerPool
from infrastructure.delete_service import DeleteService
from infrastructure.export_service import ExportService
from infrastructure.file_system import LocalFileSystem
from infrastructure.import_service import ImportService
from infrastructure.utils import filter_image_files


@dataclass
class _ThumbnailRequest:
    """Decode job for one entry; `path` is the path at submission time."""

    entry: PhotoEntry
    path: str
    image: Any | None = None


class MainVM:
    """Main application view-model.

    Mediates between the filesystem-facing services and whatever UI shows the
    batch (Qt widgets or the CLI).
    """

    def __init__(
        self,
        decoder: ImageDecoder | None = None,
        fs: FileSystem | None = None,
        *,
        settings: Any | None = None,
        pool: WorkerPool | None = None,
        exporter: ExportService | None = None,
        deleter: DeleteService | None = None,
        upscaler: Upscaler | None = None,
    ) -> None:
        """Create a MainVM.

        Args:
            decoder: Thumbnail decoder; thumbnails are skipped when None.
            fs: Filesystem primitives (defaults to `LocalFileSystem`).
            settings: `JsonSettings`-like object for worker and thumbnail sizing.
            pool: Worker pool for thumbnail decodes; created from settings if None.
            exporter: Format export service.
            deleter: Recycle-bin delete service.
            upscaler: Optional external upscaling tool.
        """
        self._fs = fs or LocalFileSystem()
        self._decoder = decoder
        self._orderer = OrderService()
        self._renamer = BatchRenamer(self._fs, self._orderer)
        self._importer = ImportService(self._fs)
        self._deleter = deleter or DeleteService()
        self._upscaler = upscaler
        self._thumb_size = 200
        worker_count = max(1, os.cpu_count() or 1)
        stagger = 0.1
        quality = 90
        if settings is not None:
            self._thumb_size = settings.thumbnail_size
            worker_count = settings.worker_count
            stagger = settings.stagger_delay
            quality = int(settings.get("export.quality", 90))
        self._exporter = exporter or ExportService(worker_count, stagger, quality=quality)
        self._pool = pool or WorkerPool(worker_count, stagger, name="thumbnail")
        self._thumb_token = CancellationToken()

        self.entries: list[PhotoEntry] = []
        self.directory: str | None = None
        self.rename_prefix: str = ""
        self.status_message: str = "Ready"
        self._dirty = False

    # Public API
    @property
    def has_unsaved_changes(self) -> bool:
        """True when the on-screen order differs from what is on disk."""
        return self._dirty

    @property
    def needs_rename(self) -> bool:
        """False when the files on disk already follow `rename_prefix` in order."""
        if self._dirty:
            return True
        return not BatchRenamer.files_already_use_prefix(self.files, self.rename_prefix)

    @property
    def files(self) -> list[PhotoEntry]:
        """File entries in display order."""
        return self._orderer.files_only(self._orderer.sorted_by_order(self.entries))

    def rows(self) -> list[PhotoVM]:
        """Bindable rows for every entry in display order."""
        return [PhotoVM(e) for e in self._orderer.sorted_by_order(self.entries)]

    def load_directory(self, directory: str) -> int:
        """Replace the batch with the contents of `directory`.

        Sub-folders come first as container entries, then supported images,
        each group sorted by name. Returns the number of file entries.
        """
        self._reset_thumbnails()
        children = self._fs.list_dir(directory)
        subfolders = [p for p in children if os.path.isdir(p)]
        images = filter_image_files(p for p in children if os.path.isfile(p))

        entries = [PhotoEntry(path=p, is_container=True) for p in subfolders]
        entries.extend(PhotoEntry(path=p) for p in images)
        self._orderer.renumber(entries)

        self.entries = entries
        self.directory = directory
        self.rename_prefix = detect_common_prefix(os.path.basename(p) for p in images)
        self._dirty = False
        self.status_message = f"Loaded {len(images)} photo(s)"
        logger.info(
            "Loaded directory {}: {} folder(s), {} photo(s), prefix '{}'",
            directory,
            len(subfolders),
            len(images),
            self.rename_prefix,
        )
        self._request_thumbnails(e for e in entries if not e.is_container)
        return len(images)

    def move_entry(self, from_index: int, to_index: int) -> None:
        """Move the entry at `from_index` (display order) to `to_index`."""
        ordered = self._orderer.sorted_by_order(self.entries)
        self._orderer.move(ordered, from_index, to_index)
        self.entries = ordered
        if from_index != to_index:
            self._dirty = True

    def update_display_order(self) -> None:
        """Renumber after the list itself was reordered (e.g. by a view)."""
        self._orderer.renumber(self.entries)
        self._dirty = True

    def apply_rename(self, prefix: str | None = None) -> RenameResult:
        """Rename the batch on disk to match the current order."""
        prefix = self.rename_prefix if prefix is None else prefix
        result = self._renamer.rename(self._orderer.sorted_by_order(self.entries), prefix)
        self.status_message = result.message
        if result.success:
            self.rename_prefix = prefix
            self._dirty = False
        return result

    def import_files(
        self, paths: Sequence[str], mode: ImportMode = ImportMode.APPEND
    ) -> ImportResult:
        """Merge `paths` into the loaded directory under the current prefix."""
        if self.directory is None:
            result = ImportResult(False, "No directory loaded.")
        else:
            result = self._importer.import_files(
                paths, self.entries, self.directory, self.rename_prefix, mode
            )
        self.status_message = result.message
        if not result.success:
            return result

        containers = [e for e in self.entries if e.is_container]
        self.entries = containers + result.entries
        self._orderer.renumber(self.entries)
        self._dirty = False
        self._request_thumbnails(e for e in result.entries if e.thumbnail is None)
        return result

    def delete_entries(self, entries: Sequence[PhotoEntry]) -> DeleteResult:
        """Send `entries` to the recycle bin and drop the deleted ones."""
        result = self._deleter.delete(entries)
        removed = set(result.success_paths)
        if removed:
            kept = [
                e
                for e in self._orderer.sorted_by_order(self.entries)
                if e.is_container or e.path not in removed
            ]
            self._orderer.renumber(kept)
            self.entries = kept
        self.status_message = f"Deleted {len(removed)} file(s)"
        if result.failed:
            self.status_message += f", {len(result.failed)} failed"
        return result

    def export_entries(
        self,
        fmt: ExportFormat,
        overwrite_decider: OverwriteDecider | None = None,
        progress: ProgressCallback | None = None,
        token: CancellationToken | None = None,
    ) -> ExportResult:
        """Convert the current batch into `fmt` next to the loaded directory."""
        if self.directory is None:
            result = ExportResult(False, "No directory loaded.")
        else:
            result = self._exporter.export(
                self.files, self.directory, fmt, overwrite_decider, progress, token
            )
        self.status_message = result.message.splitlines()[0]
        return result

    def upscale_entries(self, output_dir: str) -> UpscaleResult:
        """Hand the current file paths to the external upscaler."""
        if self._upscaler is None:
            result = UpscaleResult(False, "No upscaler configured.")
        elif not self.files:
            result = UpscaleResult(False, "No photos to upscale.")
        else:
            result = self._upscaler.upscale([e.path for e in self.files], output_dir)
        self.status_message = result.message
        return result

    def apply_thumbnail_outcomes(self) -> int:
        """Apply finished thumbnail decodes; return how many were applied.

        Outcomes for entries that left the batch, or were renamed since the
        request was made, are dropped.
        """
        current = {id(e) for e in self.entries}
        applied = 0
        for outcome in self._pool.poll_outcomes():
            request = outcome.payload
            if not isinstance(request, _ThumbnailRequest):
                continue
            if not outcome.succeeded:
                if not outcome.cancelled:
                    logger.debug("Thumbnail failed for {}: {}", request.path, outcome.error)
                continue
            entry = request.entry
            if id(entry) not in current or entry.path != request.path:
                continue
            entry.thumbnail = request.image
            applied += 1
        return applied

    def wait_for_thumbnails(self, timeout: float | None = None) -> bool:
        """Block until queued decodes finish; mostly for headless callers."""
        return self._pool.drain(timeout)

    def close(self) -> None:
        """Cancel outstanding decodes and stop the worker pool."""
        self._thumb_token.cancel()
        self._pool.close()

    # Internal helpers
    def _reset_thumbnails(self) -> None:
        self._thumb_token.cancel()
        self._thumb_token = CancellationToken()
        self._pool.poll_outcomes()

    def _request_thumbnails(self, entries) -> None:
        if self._decoder is None:
            return
        for entry in entries:
            self._pool.submit(
                _ThumbnailRequest(entry, entry.path), self._decode_thumbnail, self._thumb_token
            )

    def _decode_thumbnail(self, request: _ThumbnailRequest, token: CancellationToken) -> None:
        token.raise_if_cancelled()
        request.image = self._decoder.decode(request.path, self._thumb_size)
