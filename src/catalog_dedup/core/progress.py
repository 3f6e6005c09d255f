"""Progress reporting and cancellation for long running phases."""

import logging
import threading
from typing import Protocol

logger = logging.getLogger(__name__)


class ProgressCallback(Protocol):
    """Protocol for progress callback functions."""

    def __call__(self, current: int, total: int | None = None, message: str = "") -> None:
        """Called to report progress during building, comparison and grouping."""
        ...


class CancellationToken:
    """Thread-safe flag that long running phases poll between units of work."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request that the running phase stops at its next check."""
        if not self._event.is_set():
            logger.info("Cancellation requested")
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._event.is_set()


def progress_interval(total: int, steps: int) -> int:
    """Number of units between two progress updates for roughly `steps` updates."""
    return max(total // steps, 1)
