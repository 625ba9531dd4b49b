from __future__ import annotations

import os
import subprocess
import sys
import threading
import time
from datetime import datetime
from pathlib import Path

import pytest

from convertatxt.extraction.types import ErrorKind, ExtractionError, Failure, FormatTag, Success
from convertatxt.ingest.detector import FormatClassifier
from convertatxt.ingest.runner import SerialGate, TaskRunner, build_header
from convertatxt.ingest.sources import SourceFile

ROOT = Path(__file__).resolve().parents[1]
STUCK_EXTRACTION_SCRIPT = """
import threading

from convertatxt.extraction.types import FormatTag
from convertatxt.ingest.detector import FormatClassifier
from convertatxt.ingest.runner import TaskRunner
from convertatxt.ingest.sources import SourceFile


def stuck(data):
    threading.Event().wait(60)
    return "late"


runner = TaskRunner(FormatClassifier(), {FormatTag.PLAIN_TEXT: stuck}, timeout_ms=100)
print(runner.run(SourceFile.from_bytes(name="stuck.txt", data=b"")).kind.value)
"""


def decode(data: bytes) -> str:
    return data.decode("utf-8")


def test_build_header_layout() -> None:
    source = SourceFile.from_bytes(
        name="a.txt",
        data=b"hello",
        relative_path="docs/a.txt",
        modified_at=datetime(2024, 3, 9, 14, 5, 7),
    )

    assert build_header(source) == (
        "File Information:\n"
        "Path: docs/a.txt\n"
        "Name: a.txt\n"
        "Date: 2024-03-09 14:05:07\n"
        "Size: 5 bytes\n"
        "\n"
        "Content:\n"
    )


def test_build_header_without_date() -> None:
    source = SourceFile.from_bytes(name="a.txt", data=b"")
    assert "Date: N/A\n" in build_header(source)


def test_run_wraps_text_with_header() -> None:
    runner = TaskRunner(FormatClassifier(), {FormatTag.PLAIN_TEXT: decode})
    source = SourceFile.from_bytes(name="a.txt", data=b"hello")

    outcome = runner.run(source)

    assert isinstance(outcome, Success)
    assert outcome.text == "hello"
    assert outcome.file.format_tag is FormatTag.PLAIN_TEXT
    assert outcome.file.content == build_header(source) + "hello"


def test_run_rejects_unknown_format_without_extracting() -> None:
    calls: list[bytes] = []

    def strategy(data: bytes) -> str:
        calls.append(data)
        return ""

    runner = TaskRunner(FormatClassifier(), {FormatTag.PLAIN_TEXT: strategy})
    outcome = runner.run(SourceFile.from_bytes(name="archive.xyz", data=b"\x00"))

    assert isinstance(outcome, Failure)
    assert outcome.kind is ErrorKind.UNSUPPORTED_FORMAT
    assert "xyz" in outcome.message
    assert calls == []


def test_run_rejects_format_without_strategy() -> None:
    runner = TaskRunner(FormatClassifier(), {FormatTag.PLAIN_TEXT: decode})
    outcome = runner.run(SourceFile.from_bytes(name="report.pdf", data=b"%PDF"))

    assert isinstance(outcome, Failure)
    assert outcome.kind is ErrorKind.UNSUPPORTED_FORMAT


def test_run_reports_extraction_errors() -> None:
    def broken(data: bytes) -> str:
        raise ExtractionError(FormatTag.PDF, "corrupt xref table")

    runner = TaskRunner(FormatClassifier(), {FormatTag.PDF: broken})
    outcome = runner.run(SourceFile.from_bytes(name="b.pdf", data=b"%PDF"))

    assert outcome == Failure(ErrorKind.EXTRACTION_ERROR, "pdf: corrupt xref table")


def test_run_reports_unexpected_errors() -> None:
    def broken(data: bytes) -> str:
        raise RuntimeError("boom")

    runner = TaskRunner(FormatClassifier(), {FormatTag.PLAIN_TEXT: broken})
    outcome = runner.run(SourceFile.from_bytes(name="c.txt", data=b""))

    assert outcome == Failure(ErrorKind.EXTRACTION_ERROR, "text: boom")


def test_run_reports_unreadable_source() -> None:
    def unreadable() -> bytes:
        raise OSError("permission denied")

    source = SourceFile(name="d.txt", relative_path="d.txt", _reader=unreadable)
    runner = TaskRunner(FormatClassifier(), {FormatTag.PLAIN_TEXT: decode})

    outcome = runner.run(source)

    assert isinstance(outcome, Failure)
    assert outcome.kind is ErrorKind.EXTRACTION_ERROR
    assert "permission denied" in outcome.message


def test_run_times_out_without_waiting_for_the_worker() -> None:
    release = threading.Event()

    def stuck(data: bytes) -> str:
        release.wait(5)
        return "late"

    runner = TaskRunner(FormatClassifier(), {FormatTag.PLAIN_TEXT: stuck}, timeout_ms=100)
    started = time.monotonic()
    try:
        outcome = runner.run(SourceFile.from_bytes(name="slow.txt", data=b""))
        elapsed = time.monotonic() - started
    finally:
        release.set()

    assert outcome == Failure(ErrorKind.TIMEOUT, "Extraction exceeded 100 ms")
    assert elapsed < 0.5


def test_runner_requires_positive_timeout() -> None:
    with pytest.raises(ValueError):
        TaskRunner(FormatClassifier(), {}, timeout_ms=0)


def test_abandoned_extraction_does_not_hold_process_exit() -> None:
    env = {**os.environ, "PYTHONPATH": os.pathsep.join([str(ROOT), os.environ.get("PYTHONPATH", "")])}
    started = time.monotonic()
    completed = subprocess.run(
        [sys.executable, "-c", STUCK_EXTRACTION_SCRIPT],
        capture_output=True,
        text=True,
        timeout=30,
        env=env,
        check=False,
    )
    elapsed = time.monotonic() - started

    assert completed.returncode == 0, completed.stderr
    assert completed.stdout.strip() == "timeout"
    assert elapsed < 20


def test_queueing_for_a_shared_engine_is_outside_the_time_box() -> None:
    def slow(data: bytes) -> str:
        time.sleep(0.1)
        return data.decode()

    runner = TaskRunner(
        FormatClassifier(),
        {FormatTag.PLAIN_TEXT: slow},
        timeout_ms=250,
        gates={FormatTag.PLAIN_TEXT: SerialGate()},
    )
    sources = [SourceFile.from_bytes(name=f"{name}.txt", data=name.encode()) for name in "abc"]

    pending = [runner.dispatch(source) for source in sources]
    outcomes = [runner.resolve(item) for item in pending]

    assert all(isinstance(outcome, Success) for outcome in outcomes)
    assert [outcome.text for outcome in outcomes if isinstance(outcome, Success)] == ["a", "b", "c"]


def test_waiters_give_up_on_a_stuck_shared_engine() -> None:
    release = threading.Event()

    def strategy(data: bytes) -> str:
        if data == b"stuck":
            release.wait(5)
        return data.decode()

    runner = TaskRunner(
        FormatClassifier(),
        {FormatTag.PLAIN_TEXT: strategy},
        timeout_ms=100,
        gates={FormatTag.PLAIN_TEXT: SerialGate()},
    )
    try:
        first = runner.dispatch(SourceFile.from_bytes(name="stuck.txt", data=b"stuck"))
        first.started.wait()
        second = runner.dispatch(SourceFile.from_bytes(name="next.txt", data=b"next"))
        stuck_outcome = runner.resolve(first)
        next_outcome = runner.resolve(second)
    finally:
        release.set()

    assert stuck_outcome == Failure(ErrorKind.TIMEOUT, "Extraction exceeded 100 ms")
    assert isinstance(next_outcome, Failure)
    assert next_outcome.kind is ErrorKind.EXTRACTION_ERROR
    assert "busy with a timed-out extraction" in next_outcome.message
