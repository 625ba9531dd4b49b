from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from types import TracebackType

from convertatxt.config import Settings, settings
from convertatxt.extraction.image import OcrEngine
from convertatxt.extraction.registry import build_strategies
from convertatxt.extraction.types import (
    ErrorKind,
    ExtractionStrategy,
    FormatTag,
    ProcessedFile,
    Success,
)
from convertatxt.ingest.detector import FormatClassifier
from convertatxt.ingest.progress import BatchMonitor, BatchProgress, BatchStatus, ErrorLogEntry
from convertatxt.ingest.runner import PendingExtraction, SerialGate, TaskRunner
from convertatxt.ingest.sources import SourceFile
from convertatxt.utils.audit import AuditTrail

ProgressCallback = Callable[[BatchProgress], None]


@dataclass(slots=True)
class BatchResult:
    """Ordered extraction results of a batch run."""

    files: list[ProcessedFile] = field(default_factory=list)
    progress: BatchProgress = field(default_factory=BatchProgress)
    errors: list[ErrorLogEntry] = field(default_factory=list)
    status: BatchStatus = BatchStatus.COMPLETED

    @property
    def cancelled(self) -> bool:
        return self.status is BatchStatus.CANCELLED


def partition(sources: Sequence[SourceFile], size: int) -> list[list[SourceFile]]:
    """Split sources into consecutive groups of at most ``size`` files."""

    if size <= 0:
        msg = "batch size must be positive"
        raise ValueError(msg)
    return [list(sources[start : start + size]) for start in range(0, len(sources), size)]


class BatchService:
    """Drive extractions over fixed-size concurrent groups of source files.

    The service owns the OCR engine it creates; use it as a context manager
    (or call ``close``) to release it.
    """

    def __init__(
        self,
        config: Settings = settings,
        classifier: FormatClassifier | None = None,
        strategies: Mapping[FormatTag, ExtractionStrategy] | None = None,
        ocr_engine: OcrEngine | None = None,
    ) -> None:
        self.config = config
        self.classifier = classifier or FormatClassifier()
        self._owns_engine = ocr_engine is None
        self.ocr_engine = ocr_engine or OcrEngine(
            language=config.ocr_language,
            tesseract_cmd=config.tesseract_cmd,
        )
        self.strategies = dict(strategies) if strategies is not None else build_strategies(
            self.ocr_engine
        )
        self.runner = TaskRunner(
            classifier=self.classifier,
            strategies=self.strategies,
            timeout_ms=config.timeout_ms,
            gates={FormatTag.IMAGE: SerialGate()},
        )

    def __enter__(self) -> BatchService:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_engine:
            self.ocr_engine.close()

    def process_all(
        self,
        sources: Sequence[SourceFile],
        batch_size: int | None = None,
        monitor: BatchMonitor | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult:
        """Extract every source, group by group, preserving input order.

        Cancellation is checked before each group and before each dispatch;
        a cancelled run returns everything resolved so far.
        """

        size = batch_size or self.config.batch_size
        groups = partition(sources, size)
        monitor = monitor or BatchMonitor()
        monitor.start(total=len(sources))
        audit = self._new_audit()
        audit.record("info", "batch.started", total=len(sources), batch_size=size)

        results: list[ProcessedFile] = []
        status = BatchStatus.COMPLETED
        for index, group in enumerate(groups, start=1):
            if monitor.cancelled:
                status = BatchStatus.CANCELLED
                break
            outcomes, complete = self._run_group(group, monitor, audit)
            results.extend(outcomes)
            progress = monitor.progress
            audit.record(
                "info",
                "batch.group_completed",
                group=index,
                groups=len(groups),
                processed=progress.processed_count,
                failed=progress.failed_count,
            )
            if on_progress is not None:
                on_progress(progress)
            if not complete:
                status = BatchStatus.CANCELLED
                break

        progress = monitor.progress
        if status is BatchStatus.CANCELLED:
            audit.record(
                "warning",
                "batch.cancelled",
                kind=ErrorKind.CANCELLED,
                processed=progress.processed_count,
                total=progress.total,
            )
        audit.record(
            "info",
            "batch.completed",
            status=status,
            succeeded=progress.success_count,
            failed=progress.failed_count,
        )
        return BatchResult(
            files=results,
            progress=progress,
            errors=monitor.errors,
            status=status,
        )

    def _run_group(
        self,
        group: list[SourceFile],
        monitor: BatchMonitor,
        audit: AuditTrail,
    ) -> tuple[list[ProcessedFile], bool]:
        pending: list[PendingExtraction] = []
        for source in group:
            if monitor.cancelled:
                break
            dispatched = self.runner.dispatch(source)
            audit.record(
                "info",
                "file.classified",
                path=source.relative_path,
                format=dispatched.tag,
            )
            pending.append(dispatched)

        processed: list[ProcessedFile] = []
        for item in pending:
            outcome = self.runner.resolve(item)
            if isinstance(outcome, Success):
                monitor.record_success()
                processed.append(outcome.file)
                audit.record(
                    "info",
                    "file.extracted",
                    path=outcome.file.relative_path,
                    format=outcome.file.format_tag,
                    characters=len(outcome.text),
                )
                continue
            monitor.record_failure(
                ErrorLogEntry(
                    file_name=item.source.name,
                    message=outcome.message,
                    kind=outcome.kind,
                )
            )
            audit.record(
                "error",
                "file.failed",
                path=item.source.relative_path,
                kind=outcome.kind,
                error=outcome.message,
            )
        return processed, len(pending) == len(group)

    def _new_audit(self) -> AuditTrail:
        log_dir = self.config.log_dir if self.config.audit_enabled else None
        return AuditTrail(log_dir)


__all__ = ["BatchResult", "BatchService", "ProgressCallback", "partition"]
