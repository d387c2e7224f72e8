from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from PySide6.QtCore import QObject, Signal
from loguru import logger

from core.services.interfaces import ImageDecoder
from core.services.worker_pool import CancellationToken, WorkerPool


@dataclass
class _ThumbnailJob:
    path: str
    side: int
    image: Any | None = None


class ThumbnailLoader(QObject):
    """Decodes thumbnails on a `WorkerPool` and re-emits results as Qt signals.

    Outcomes arrive on worker threads; emitting through a Signal lets Qt queue
    them onto the thread that owns the connected receiver (usually the GUI
    thread), which is the only place entries may be updated.
    """

    thumbnailLoaded = Signal(str, object)
    thumbnailFailed = Signal(str, str)

    def __init__(
        self,
        decoder: ImageDecoder,
        *,
        worker_count: int,
        stagger_delay: float = 0.0,
        side: int = 200,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._decoder = decoder
        self._side = side
        self._token = CancellationToken()
        self._pool = WorkerPool(
            worker_count,
            stagger_delay,
            on_completed=self._on_completed,
            on_failed=self._on_failed,
            name="qt-thumbnail",
            collect_outcomes=False,
        )

    def request(self, path: str, side: int | None = None) -> None:
        """Queue a decode of `path`; the result is emitted later."""
        job = _ThumbnailJob(path, side or self._side)
        self._pool.submit(job, self._run, self._token)

    def cancel_pending(self) -> None:
        """Drop queued requests (e.g. when the user navigates away)."""
        self._token.cancel()
        self._token = CancellationToken()

    def wait(self, timeout: float | None = None) -> bool:
        return self._pool.drain(timeout)

    def shutdown(self) -> None:
        self._token.cancel()
        self._pool.close()

    def _run(self, job: _ThumbnailJob, token: CancellationToken) -> None:
        token.raise_if_cancelled()
        job.image = self._decoder.decode(job.path, job.side)

    def _on_completed(self, job: _ThumbnailJob) -> None:
        self.thumbnailLoaded.emit(job.path, job.image)

    def _on_failed(self, job: _ThumbnailJob, error: BaseException) -> None:
        logger.debug("Thumbnail task failed: {} | {}", job.path, error)
        self.thumbnailFailed.emit(job.path, str(error))
