"""Bounded worker pool for per-file background jobs.

A fixed number of persistent threads pull work items from one shared FIFO
queue. Every submitted item produces exactly one outcome, delivered both to the
optional `on_completed`/`on_failed` callbacks (on the worker thread) and to an
outcome channel that the owning thread drains with `poll_outcomes()`.

Callbacks run on worker threads: they must not mutate `PhotoEntry` objects
owned by the caller. Apply outcomes from the owning thread instead.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
import inspect
import queue
import threading
import time
from typing import Any

from loguru import logger

from core.errors import (
    InvalidArgumentError,
    InvalidConfigurationError,
    PoolClosedError,
    WorkCancelledError,
)


class CancellationToken:
    """Cooperative cancellation flag that work actions poll or wait on."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: dict[int, Callable[[], None]] = {}
        self._next_handle = 0
        self._links: list[tuple[CancellationToken, int]] = []

    @classmethod
    def linked(cls, *parents: CancellationToken | None) -> CancellationToken:
        """Return a token that is cancelled as soon as any parent is."""
        child = cls()
        for parent in parents:
            if parent is None:
                continue
            handle = parent.register(child.cancel)
            if handle is not None:
                child._links.append((parent, handle))
        return child

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Trigger cancellation and notify registered listeners once."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()
        for callback in callbacks:
            try:
                callback()
            except Exception:  # pragma: no cover - listener bug
                logger.exception("Cancellation listener failed")

    def register(self, callback: Callable[[], None]) -> int | None:
        """Call `callback` on cancellation; runs it immediately if already cancelled.

        Returns a handle for `unregister`, or None when the callback already ran.
        """
        with self._lock:
            if not self._event.is_set():
                handle = self._next_handle
                self._next_handle += 1
                self._callbacks[handle] = callback
                return handle
        callback()
        return None

    def unregister(self, handle: int) -> None:
        with self._lock:
            self._callbacks.pop(handle, None)

    def release(self) -> None:
        """Detach from the parents this token was linked to."""
        links, self._links = self._links, []
        for parent, handle in links:
            parent.unregister(handle)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or `timeout` elapses; return True if cancelled."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise WorkCancelledError("Operation was cancelled")


WorkAction = Callable[[Any, CancellationToken], Any]


@dataclass
class _WorkItem:
    payload: Any
    action: WorkAction
    token: CancellationToken | None


@dataclass(frozen=True)
class WorkOutcome:
    """Tagged result of one work item: `error` is None on success."""

    payload: Any
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def cancelled(self) -> bool:
        return isinstance(self.error, WorkCancelledError)


class PoolState(Enum):
    """Lifecycle of a `WorkerPool`."""

    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


_STOP = object()


class WorkerPool:
    """Run submitted jobs on `worker_count` threads with FIFO hand-out.

    Args:
        worker_count: Number of worker threads; must be positive.
        stagger_delay: Seconds; worker `i` waits `i * stagger_delay` once,
            before consuming its first item, to smooth the initial I/O burst.
        on_completed: Called as `on_completed(payload)` from a worker thread.
        on_failed: Called as `on_failed(payload, error)` from a worker thread.
        name: Thread name prefix.
        collect_outcomes: Keep outcomes for `poll_outcomes()`. Callback-only
            owners pass False so finished payloads are not retained.
    """

    def __init__(
        self,
        worker_count: int,
        stagger_delay: float = 0.0,
        *,
        on_completed: Callable[[Any], None] | None = None,
        on_failed: Callable[[Any, BaseException], None] | None = None,
        name: str = "worker",
        collect_outcomes: bool = True,
    ) -> None:
        if isinstance(worker_count, bool) or not isinstance(worker_count, int) or worker_count <= 0:
            raise InvalidConfigurationError(
                f"Worker count must be greater than zero, got {worker_count!r}"
            )
        if stagger_delay is None or stagger_delay < 0:
            raise InvalidConfigurationError(
                f"Stagger delay must not be negative, got {stagger_delay!r}"
            )
        self._worker_count = worker_count
        self._stagger_delay = float(stagger_delay)
        self._on_completed = on_completed
        self._on_failed = on_failed
        self._collect_outcomes = collect_outcomes
        self._queue: queue.Queue[Any] = queue.Queue()
        self._outcomes: queue.Queue[WorkOutcome] = queue.Queue()
        self._cond = threading.Condition()
        self._pending = 0
        self._state = PoolState.RUNNING
        self._closed = False
        self._shutdown_token = CancellationToken()
        self._local = threading.local()
        self._workers = [
            threading.Thread(
                target=self._worker_loop, args=(index,), name=f"{name}-{index}", daemon=True
            )
            for index in range(worker_count)
        ]
        for worker in self._workers:
            worker.start()
        logger.debug(
            "WorkerPool started: workers={} stagger={}s name={}",
            worker_count,
            self._stagger_delay,
            name,
        )

    # Public API
    @property
    def worker_count(self) -> int:
        return self._worker_count

    @property
    def state(self) -> PoolState:
        with self._cond:
            return self._state

    @property
    def pending_count(self) -> int:
        """Queued plus in-flight items. Racy by nature; meant for progress display."""
        with self._cond:
            return self._pending

    def submit(self, payload: Any, action: WorkAction, token: CancellationToken | None = None) -> None:
        """Enqueue `action(payload, token)` for the next idle worker.

        Raises:
            InvalidArgumentError: `payload` or `action` is missing.
            PoolClosedError: the pool has begun shutting down.
        """
        if payload is None:
            raise InvalidArgumentError("payload must not be None")
        if action is None or not callable(action):
            raise InvalidArgumentError("action must be a callable")
        with self._cond:
            if self._state is not PoolState.RUNNING:
                raise PoolClosedError("WorkerPool no longer accepts work")
            self._pending += 1
            self._queue.put(_WorkItem(payload, action, token))

    def drain(self, timeout: float | None = None) -> bool:
        """Block until no work is pending; return False if `timeout` elapsed first."""
        with self._cond:
            return self._cond.wait_for(lambda: self._pending == 0, timeout)

    def poll_outcomes(self, max_items: int | None = None) -> list[WorkOutcome]:
        """Return outcomes reported since the last poll without blocking."""
        results: list[WorkOutcome] = []
        while max_items is None or len(results) < max_items:
            try:
                results.append(self._outcomes.get_nowait())
            except queue.Empty:
                break
        return results

    def shutdown(self) -> None:
        """Stop accepting work, finish everything queued, then join the workers."""
        with self._cond:
            first_stop = self._state is PoolState.RUNNING
            if first_stop:
                self._state = PoolState.DRAINING
        if first_stop:
            logger.debug("WorkerPool shutdown: pending={}", self.pending_count)
            self._post_stop_markers()
        self._join(timeout=None)
        self._mark_stopped()

    def close(self, grace_period: float = 5.0) -> None:
        """Cancel cooperatively and join workers within `grace_period` seconds.

        In-flight items see their token cancelled; items still queued are
        reported as cancelled without running. Safe to call repeatedly.
        """
        with self._cond:
            if self._closed:
                return
            self._closed = True
            first_stop = self._state is PoolState.RUNNING
            if first_stop:
                self._state = PoolState.DRAINING
        logger.debug("WorkerPool close: pending={}", self.pending_count)
        self._shutdown_token.cancel()
        if first_stop:
            self._post_stop_markers()
        self._join(timeout=grace_period)
        self._mark_stopped()

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Internal helpers
    def _post_stop_markers(self) -> None:
        for _ in self._workers:
            self._queue.put(_STOP)

    def _join(self, timeout: float | None) -> None:
        current = threading.current_thread()
        deadline = None if timeout is None else time.monotonic() + timeout
        for worker in self._workers:
            if worker is current:
                continue
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            worker.join(remaining)
            if worker.is_alive():
                logger.warning("Worker {} did not stop within the grace period", worker.name)

    def _mark_stopped(self) -> None:
        if any(w.is_alive() for w in self._workers if w is not threading.current_thread()):
            return
        with self._cond:
            self._state = PoolState.STOPPED

    def _worker_loop(self, index: int) -> None:
        if index and self._stagger_delay:
            self._shutdown_token.wait(index * self._stagger_delay)
        try:
            while True:
                item = self._queue.get()
                if item is _STOP:
                    break
                try:
                    error = self._execute(item)
                    self._report(item, error)
                finally:
                    self._finish_one()
        finally:
            loop = getattr(self._local, "loop", None)
            if loop is not None:
                loop.close()

    def _execute(self, item: _WorkItem) -> BaseException | None:
        token = CancellationToken.linked(item.token, self._shutdown_token)
        error: BaseException | None = None
        try:
            token.raise_if_cancelled()
            result = item.action(item.payload, token)
            if inspect.isawaitable(result):
                self._event_loop().run_until_complete(result)
        except asyncio.CancelledError:
            error = WorkCancelledError(f"Work item {item.payload!r} was cancelled")
        except Exception as ex:  # pylint: disable=broad-exception-caught
            error = ex
        finally:
            token.release()

        if item.token is not None and item.token.is_cancelled and not isinstance(
            error, WorkCancelledError
        ):
            cancelled = WorkCancelledError(f"Work item {item.payload!r} was cancelled")
            cancelled.__cause__ = error
            error = cancelled
        return error

    def _event_loop(self) -> asyncio.AbstractEventLoop:
        loop = getattr(self._local, "loop", None)
        if loop is None:
            loop = asyncio.new_event_loop()
            self._local.loop = loop
        return loop

    def _report(self, item: _WorkItem, error: BaseException | None) -> None:
        if self._collect_outcomes:
            self._outcomes.put(WorkOutcome(item.payload, error))
        if error is not None and not isinstance(error, WorkCancelledError):
            logger.warning("Work item failed: {} | {}", item.payload, error)
        try:
            if error is None:
                if self._on_completed is not None:
                    self._on_completed(item.payload)
            elif self._on_failed is not None:
                self._on_failed(item.payload, error)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Outcome callback raised for {}", item.payload)

    def _finish_one(self) -> None:
        with self._cond:
            self._pending -= 1
            if self._pending == 0:
                self._cond.notify_all()
