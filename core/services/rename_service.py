"""Two-phase batch rename for ordered photo entries.

Entries are renamed to `{prefix}-{n:05d}{ext}` following their display order.
Planning is exhaustive and all-or-nothing: a target occupied by a file outside
the batch aborts before anything moves. Execution goes through temporary
sibling names first so that targets held by other entries of the same batch
never collide mid-flight.

A failure during execution is reported, not rolled back: entries already moved
in the first pass keep their `.tmp_rename` names.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import os

from loguru import logger

from core.models import PhotoEntry, RenameOperation
from core.services.interfaces import FileSystem, RenameErrorKind, RenameResult
from core.services.order_service import OrderService

TEMP_SUFFIX = ".tmp_rename"
NUMBER_WIDTH = 5
RESERVED_CHARS = frozenset('<>:"/\\|?*') | frozenset(chr(c) for c in range(32))
_TRAILING_NOISE = "0123456789-_ \t"


def format_target_name(prefix: str, index: int, extension: str) -> str:
    """Return the file name for zero-based position `index`."""
    return f"{prefix}-{index + 1:0{NUMBER_WIDTH}d}{extension}"


def trim_trailing_numbers_and_separators(text: str) -> str:
    """Strip trailing digits, `-`, `_` and whitespace."""
    return text.rstrip(_TRAILING_NOISE)


def detect_common_prefix(names: Iterable[str]) -> str:
    """Guess the naming prefix shared by `names` (extensions ignored)."""
    stems = [os.path.splitext(name)[0] for name in names]
    if not stems:
        return ""
    common = os.path.commonprefix(stems)
    return trim_trailing_numbers_and_separators(common)


class BatchRenamer:
    """Validates prefixes and applies contiguous rename sequences."""

    def __init__(self, fs: FileSystem, orderer: OrderService | None = None) -> None:
        self._fs = fs
        self._orderer = orderer or OrderService()

    @staticmethod
    def validate_prefix(prefix: str | None) -> bool:
        """False for empty/whitespace-only input or reserved filename characters."""
        if prefix is None or not prefix.strip():
            return False
        return not any(ch in RESERVED_CHARS for ch in prefix)

    def plan(self, entries: Sequence[PhotoEntry], prefix: str) -> list[RenameOperation]:
        """Compute one `RenameOperation` per file entry, in display order."""
        ordered = self._orderer.sorted_by_order(self._orderer.files_only(entries))
        operations: list[RenameOperation] = []
        for index, entry in enumerate(ordered):
            directory = os.path.dirname(entry.path)
            target = os.path.join(directory, format_target_name(prefix, index, entry.extension))
            operations.append(RenameOperation(entry.path, target, entry))
        return operations

    def find_conflict(self, operations: Sequence[RenameOperation]) -> RenameOperation | None:
        """Return the first operation that cannot run without clobbering a file.

        That is a target held by a file outside the batch, or a temporary
        sibling (`source + .tmp_rename`) left behind by an earlier run.
        """
        found = self._first_blocked(operations)
        return None if found is None else found[0]

    def rename(self, entries: Sequence[PhotoEntry], prefix: str) -> RenameResult:
        """Rename `entries` to the numbered `prefix` sequence.

        Returns a `RenameResult`; never raises for planning or I/O failures.
        """
        files = self._orderer.files_only(entries)
        if not files:
            return RenameResult(False, "No photos to rename.", RenameErrorKind.NO_WORK)
        if not self.validate_prefix(prefix):
            return RenameResult(
                False,
                "Invalid prefix. Please use only valid filename characters.",
                RenameErrorKind.INVALID_PREFIX,
            )

        operations = self.plan(files, prefix)
        blocked = self._first_blocked(operations)
        if blocked is not None:
            _, blocked_path = blocked
            name = os.path.basename(blocked_path)
            if blocked_path.endswith(TEMP_SUFFIX):
                logger.warning("Rename refused, temporary file already exists: {}", blocked_path)
                message = f"Temporary file already exists: {name}. Please remove it and try again."
            else:
                logger.warning("Rename refused, target exists outside batch: {}", blocked_path)
                message = f"File already exists: {name}. Please choose a different prefix."
            return RenameResult(False, message, RenameErrorKind.NAME_CONFLICT, offending_file=name)

        # Pass A: park every entry that needs to move under a temporary name.
        parked: list[tuple[str, RenameOperation]] = []
        for op in operations:
            if op.is_noop:
                continue
            temp_path = op.source_path + TEMP_SUFFIX
            try:
                self._fs.move(op.source_path, temp_path)
            except OSError as ex:
                return self._io_failure(op.source_path, ex, parked)
            parked.append((temp_path, op))

        # Pass B: temporary name -> final name.
        for temp_path, op in parked:
            try:
                self._fs.move(temp_path, op.final_path)
            except OSError as ex:
                return self._io_failure(op.source_path, ex, parked)
            op.entry.set_path(op.final_path)

        logger.info(
            "Renamed {} of {} file(s) with prefix '{}'", len(parked), len(operations), prefix
        )
        return RenameResult(
            True, f"Successfully renamed {len(parked)} file(s).", moved_count=len(parked)
        )

    @staticmethod
    def files_already_use_prefix(entries: Sequence[PhotoEntry], prefix: str) -> bool:
        """True when every file entry is already named `{prefix}-<digits>`."""
        files = [e for e in entries if not e.is_container]
        if not files or not prefix or not prefix.strip():
            return False
        head = prefix.lower() + "-"
        for entry in files:
            stem = entry.stem
            if not stem.lower().startswith(head):
                return False
            tail = stem[len(head) :]
            if not tail or not tail.isdigit():
                return False
        return True

    def _first_blocked(
        self, operations: Sequence[RenameOperation]
    ) -> tuple[RenameOperation, str] | None:
        batch_paths = {os.path.normcase(op.source_path) for op in operations}
        for op in operations:
            if op.is_noop:
                continue
            temp_path = op.source_path + TEMP_SUFFIX
            if self._fs.exists(temp_path):
                return op, temp_path
            if os.path.normcase(op.final_path) in batch_paths:
                continue
            if self._fs.exists(op.final_path):
                return op, op.final_path
        return None

    def _io_failure(
        self, path: str, ex: OSError, parked: list[tuple[str, RenameOperation]]
    ) -> RenameResult:
        name = os.path.basename(path)
        stranded = [temp for temp, op in parked if op.entry.path != op.final_path]
        logger.error(
            "Rename failed on {}: {} | {} file(s) left under temporary names",
            path,
            ex,
            len(stranded),
        )
        return RenameResult(
            False,
            f"Error during rename of {name}: {ex}",
            RenameErrorKind.IO_FAILURE,
            offending_file=name,
            moved_count=sum(1 for _, op in parked if op.entry.path == op.final_path),
        )
