"""Exception hierarchy shared by the core services."""

from __future__ import annotations


class PhotoSequencerError(Exception):
    """Base class for all custom errors raised by photo-sequencer."""


class InvalidConfigurationError(PhotoSequencerError, ValueError):
    """Raised when a service is constructed with unusable settings."""


class InvalidArgumentError(PhotoSequencerError, ValueError):
    """Raised when a required argument is missing or unusable."""


class PoolClosedError(PhotoSequencerError, RuntimeError):
    """Raised when work is submitted to a pool that is shutting down."""


class WorkCancelledError(PhotoSequencerError):
    """Raised inside a work item when its cancellation token was triggered."""


class DecodeError(PhotoSequencerError):
    """Raised when an image cannot be decoded into a thumbnail."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Could not decode '{path}': {reason}")
        self.path = path
        self.reason = reason
