"""Progress reporting and cooperative cancellation for long runs."""

from __future__ import annotations

import threading
from typing import Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)


class ProgressSink(Protocol):
    """Receives progress updates and is polled for cancellation between firms."""

    def update(self, fraction: float, label: Optional[str] = None) -> None:
        ...

    def is_cancelled(self) -> bool:
        ...

    def close(self) -> None:
        ...


class NullProgress:
    """Progress sink that reports nothing and is never cancelled."""

    def update(self, fraction: float, label: Optional[str] = None) -> None:
        pass

    def is_cancelled(self) -> bool:
        return False

    def close(self) -> None:
        pass


class LoggingProgress:
    """Progress sink writing structured log lines.

    ``cancel()`` may be called from any thread (or a signal handler); the
    pipeline observes it before starting the next firm.
    """

    def __init__(self) -> None:
        self._cancelled = threading.Event()
        self._closed = False
        self.fraction = 0.0
        self.label: Optional[str] = None

    def update(self, fraction: float, label: Optional[str] = None) -> None:
        self.fraction = min(max(float(fraction), 0.0), 1.0)
        if label is not None:
            self.label = label
        logger.info("progress", fraction=round(self.fraction, 4), label=self.label)

    def cancel(self) -> None:
        if not self._cancelled.is_set():
            logger.warning("progress_cancel_requested")
        self._cancelled.set()

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            logger.info("progress_closed", fraction=round(self.fraction, 4))
