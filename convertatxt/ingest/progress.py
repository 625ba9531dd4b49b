from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum

from convertatxt.extraction.types import ErrorKind


class BatchStatus(str, Enum):
    """How a batch run ended."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(slots=True, frozen=True)
class BatchProgress:
    total: int = 0
    processed_count: int = 0
    failed_count: int = 0

    @property
    def success_count(self) -> int:
        return self.processed_count - self.failed_count


@dataclass(slots=True, frozen=True)
class ErrorLogEntry:
    file_name: str
    message: str
    kind: ErrorKind = ErrorKind.EXTRACTION_ERROR

    def __str__(self) -> str:
        return f"Error processing {self.file_name}: {self.message}"


class CancellationToken:
    """One-way cancellation flag shared between a host and a batch run."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def request_cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class BatchMonitor:
    """Live view of a batch run: progress counters, error log and cancellation.

    Counters only grow. ``progress`` always returns a consistent snapshot, so
    a presentation layer may poll it from another thread.
    """

    def __init__(self, token: CancellationToken | None = None) -> None:
        self.token = token or CancellationToken()
        self._lock = threading.Lock()
        self._progress = BatchProgress()
        self._errors: list[ErrorLogEntry] = []

    def start(self, total: int) -> None:
        with self._lock:
            self._progress = BatchProgress(total=total)
            self._errors = []

    def record_success(self) -> BatchProgress:
        with self._lock:
            current = self._progress
            self._progress = BatchProgress(
                total=current.total,
                processed_count=current.processed_count + 1,
                failed_count=current.failed_count,
            )
            return self._progress

    def record_failure(self, entry: ErrorLogEntry) -> BatchProgress:
        with self._lock:
            current = self._progress
            self._progress = BatchProgress(
                total=current.total,
                processed_count=current.processed_count + 1,
                failed_count=current.failed_count + 1,
            )
            self._errors.append(entry)
            return self._progress

    def request_cancel(self) -> None:
        self.token.request_cancel()

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    @property
    def progress(self) -> BatchProgress:
        with self._lock:
            return self._progress

    @property
    def errors(self) -> list[ErrorLogEntry]:
        with self._lock:
            return list(self._errors)


__all__ = [
    "BatchMonitor",
    "BatchProgress",
    "BatchStatus",
    "CancellationToken",
    "ErrorLogEntry",
]
