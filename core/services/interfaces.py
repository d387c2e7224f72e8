"""Core service interfaces and shared data structures.

This module defines the result dataclasses returned by the rename, import,
export and delete workflows, plus the protocols describing the external
collaborators (decoder, filesystem, upscaler) the core depends on.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from core.models import OverwriteOption, PhotoEntry


class RenameErrorKind(Enum):
    """Reasons a batch rename can be refused or interrupted."""

    INVALID_PREFIX = "invalid_prefix"
    NO_WORK = "no_work"
    NAME_CONFLICT = "name_conflict"
    IO_FAILURE = "io_failure"


@dataclass
class RenameResult:
    """Outcome of a batch rename.

    Attributes:
        success: True when every planned move completed.
        message: Human-readable summary.
        error: Error kind when `success` is False.
        offending_file: File name that caused the failure, when known.
        moved_count: Entries actually moved (already-correct names excluded).
    """

    success: bool
    message: str
    error: RenameErrorKind | None = None
    offending_file: str | None = None
    moved_count: int = 0


@dataclass
class ImportResult:
    """Outcome of merging new files into a batch.

    Attributes:
        success: True when the merge was applied.
        message: Human-readable summary.
        entries: The rebuilt, ordered batch (empty on failure).
        imported_count: Number of new files copied in.
    """

    success: bool
    message: str
    entries: list[PhotoEntry] = field(default_factory=list)
    imported_count: int = 0


@dataclass
class ExportResult:
    """Outcome of a format conversion batch.

    Attributes:
        success: True when at least one file was exported.
        message: Human-readable summary ("N exported, M skipped ...").
        output_dir: Folder that received the converted files.
        exported: Paths written.
        skipped: Source paths skipped because the output already existed.
        failed: Tuples of (file name, reason).
    """

    success: bool
    message: str
    output_dir: str | None = None
    exported: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class DeleteResult:
    """Outcome of a delete operation.

    Attributes:
        success_paths: Paths successfully deleted.
        failed: Tuples of (path, reason) for failures.
        log_path: Audit CSV written for this delete, if any.
    """

    success_paths: list[str]
    failed: list[tuple[str, str]]
    log_path: str | None = None


@dataclass
class UpscaleResult:
    """Outcome reported by an external upscaler."""

    success: bool
    message: str
    output_paths: list[str] = field(default_factory=list)


OverwriteDecider = Callable[[list[str]], OverwriteOption]
ProgressCallback = Callable[[int, int, str], None]


class ImageDecoder(Protocol):
    """Decodes a file into a bounded thumbnail image."""

    def decode(self, path: str, max_dimension: int) -> Any:
        """Return an image no larger than `max_dimension`; raise `DecodeError` on failure."""
        ...


class FileSystem(Protocol):
    """Synchronous filesystem primitives with POSIX-like semantics."""

    def exists(self, path: str) -> bool:
        """Return True if `path` exists."""
        ...

    def move(self, source: str, target: str) -> None:
        """Atomically rename `source` to `target` on the same volume."""
        ...

    def copy(self, source: str, target: str) -> None:
        """Copy `source` to `target`, failing if `target` exists."""
        ...

    def delete(self, path: str) -> None:
        """Remove `path`."""
        ...

    def list_dir(self, directory: str) -> list[str]:
        """Return absolute paths of the direct children of `directory`."""
        ...


class Upscaler(Protocol):
    """External image-upscaling tool, handed final entry paths only."""

    def upscale(self, paths: list[str], output_dir: str) -> UpscaleResult:
        """Upscale `paths` into `output_dir`."""
        ...
