from __future__ import annotations

import threading
import time
from collections.abc import Mapping
from concurrent.futures import Future, wait
from dataclasses import dataclass, field

from convertatxt.extraction.types import (
    ErrorKind,
    ExtractionError,
    ExtractionOutcome,
    ExtractionStrategy,
    Failure,
    FormatTag,
    ProcessedFile,
    Success,
)
from convertatxt.ingest.detector import FormatClassifier
from convertatxt.ingest.sources import SourceFile

DEFAULT_TIMEOUT_MS = 30_000


def build_header(source: SourceFile) -> str:
    """Return the metadata block written before the extracted text."""

    date = source.modified_at.strftime("%Y-%m-%d %H:%M:%S") if source.modified_at else "N/A"
    return (
        "File Information:\n"
        f"Path: {source.relative_path}\n"
        f"Name: {source.name}\n"
        f"Date: {date}\n"
        f"Size: {source.size_bytes} bytes\n"
        "\n"
        "Content:\n"
    )


class SerialGate:
    """Let one extraction at a time use a shared engine.

    A waiter queues for as long as the current holder is inside its own time
    box. Once the holder overruns, the engine is considered stuck and waiters
    give up instead of queueing behind it.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._busy = False
        self._holder_deadline = 0.0

    def acquire(self, timeout_seconds: float) -> bool:
        with self._condition:
            while self._busy:
                remaining = self._holder_deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._condition.wait(remaining)
            self._busy = True
            self._holder_deadline = time.monotonic() + timeout_seconds
            return True

    def release(self) -> None:
        with self._condition:
            self._busy = False
            self._condition.notify_all()


@dataclass(slots=True)
class PendingExtraction:
    """Extraction handed to a worker, resolved with ``TaskRunner.resolve``.

    ``deadline`` is set by the worker when the strategy starts; ``started``
    is also set when the worker gives up before starting.
    """

    source: SourceFile
    tag: FormatTag | None = None
    future: Future[str] | None = None
    started: threading.Event = field(default_factory=threading.Event)
    deadline: float = 0.0
    outcome: ExtractionOutcome | None = None


class TaskRunner:
    """Run one extraction under a wall-clock timeout and capture its outcome.

    Extractions run on daemon threads: a timed-out one is abandoned, keeps
    running in the background and never holds up interpreter exit.
    """

    def __init__(
        self,
        classifier: FormatClassifier,
        strategies: Mapping[FormatTag, ExtractionStrategy],
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        gates: Mapping[FormatTag, SerialGate] | None = None,
    ) -> None:
        if timeout_ms <= 0:
            msg = "timeout_ms must be positive"
            raise ValueError(msg)
        self.classifier = classifier
        self.strategies = dict(strategies)
        self.timeout_ms = timeout_ms
        self.gates = dict(gates or {})

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    def run(self, source: SourceFile) -> ExtractionOutcome:
        """Classify, extract and wrap a single file."""

        return self.resolve(self.dispatch(source))

    def dispatch(self, source: SourceFile) -> PendingExtraction:
        """Start the extraction of ``source`` on a worker thread without waiting."""

        tag = self.classifier.classify(source)
        strategy = self.strategies.get(tag) if tag is not None else None
        if tag is None or strategy is None:
            hint = FormatClassifier.extension(source.name) or source.declared_media_type or "unknown"
            failure = Failure(ErrorKind.UNSUPPORTED_FORMAT, f"Unsupported file type ({hint})")
            return PendingExtraction(source=source, tag=tag, outcome=failure)

        future: Future[str] = Future()
        pending = PendingExtraction(source=source, tag=tag, future=future)
        worker = threading.Thread(
            target=self._work,
            args=(pending, future, strategy, self.gates.get(tag)),
            name="convertatxt-extract",
            daemon=True,
        )
        worker.start()
        return pending

    def resolve(self, pending: PendingExtraction) -> ExtractionOutcome:
        """Wait for a pending extraction until its deadline and build the outcome.

        The time box starts when the strategy starts, so queueing for a shared
        engine does not count against it. A late result is discarded.
        """

        if pending.outcome is not None:
            return pending.outcome
        future = pending.future
        if future is None or pending.tag is None:
            msg = "pending extraction was never dispatched"
            raise ValueError(msg)

        pending.started.wait()
        remaining = max(0.0, pending.deadline - time.monotonic())
        done, _ = wait([future], timeout=remaining)
        if not done:
            outcome: ExtractionOutcome = Failure(
                ErrorKind.TIMEOUT,
                f"Extraction exceeded {self.timeout_ms} ms",
            )
        else:
            outcome = self._collect(pending.source, pending.tag, future)
        pending.outcome = outcome
        return outcome

    def _work(
        self,
        pending: PendingExtraction,
        future: Future[str],
        strategy: ExtractionStrategy,
        gate: SerialGate | None,
    ) -> None:
        if gate is not None and not gate.acquire(self.timeout_seconds):
            message = "engine still busy with a timed-out extraction"
            future.set_exception(ExtractionError(pending.tag or "unknown", message))
            pending.started.set()
            return
        try:
            pending.deadline = time.monotonic() + self.timeout_seconds
            pending.started.set()
            future.set_result(strategy(pending.source.read()))
        except Exception as error:
            future.set_exception(error)
        finally:
            if gate is not None:
                gate.release()

    def _collect(self, source: SourceFile, tag: FormatTag, future: Future[str]) -> ExtractionOutcome:
        error = future.exception()
        if isinstance(error, ExtractionError):
            return Failure(ErrorKind.EXTRACTION_ERROR, str(error))
        if error is not None:
            message = str(error) or type(error).__name__
            return Failure(ErrorKind.EXTRACTION_ERROR, f"{tag.value}: {message}")
        text = future.result()
        processed = ProcessedFile(
            name=source.name,
            relative_path=source.relative_path,
            format_tag=tag,
            content=build_header(source) + text,
        )
        return Success(text=text, file=processed)


__all__ = ["DEFAULT_TIMEOUT_MS", "PendingExtraction", "SerialGate", "TaskRunner", "build_header"]
