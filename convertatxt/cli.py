from __future__ import annotations

import sys
from pathlib import Path
from threading import Thread
from typing import Any

import typer
import uvicorn

from convertatxt import __version__
from convertatxt.config import Settings, settings
from convertatxt.export.normalize import ConversionOptions, LineEnding, TextEncoding, normalize
from convertatxt.export.package import ResultExporter
from convertatxt.ingest.progress import BatchMonitor, BatchProgress
from convertatxt.ingest.service import BatchResult, BatchService
from convertatxt.ingest.sources import SourceFile, collect_sources
from convertatxt.utils.files import write_payload

app = typer.Typer(
    help="ConvertaTXT: extract and normalize text from documents.",
    add_completion=False,
)


def _version_callback(
    ctx: typer.Context,
    param: Any,
    value: bool,
) -> bool:
    if value:
        typer.echo(__version__)
        raise typer.Exit()
    return value


@app.callback()
def _main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Root entry point."""


def _options(
    encoding: TextEncoding,
    line_ending: LineEnding,
    remove_empty_lines: bool,
    trim_whitespace: bool,
) -> ConversionOptions:
    return ConversionOptions(
        encoding=encoding,
        line_ending=line_ending,
        remove_empty_lines=remove_empty_lines,
        trim_whitespace=trim_whitespace,
    )


def _echo_progress(progress: BatchProgress) -> None:
    percent = progress.processed_count / progress.total * 100 if progress.total else 100.0
    typer.echo(
        f"Processed {progress.processed_count} of {progress.total} files ({percent:.1f}%)"
    )


def _run_batch(
    service: BatchService,
    sources: list[SourceFile],
    monitor: BatchMonitor,
) -> BatchResult:
    """Run the batch in a worker thread so Ctrl-C becomes a cancellation request.

    A second Ctrl-C abandons the run and exits with status 130.
    """

    holder: dict[str, BatchResult] = {}
    errors: list[BaseException] = []

    def _target() -> None:
        try:
            holder["result"] = service.process_all(
                sources,
                monitor=monitor,
                on_progress=_echo_progress,
            )
        except Exception as exc:  # pragma: no cover - surfaced below
            errors.append(exc)

    worker = Thread(target=_target, name="convertatxt-batch", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.2)
    except KeyboardInterrupt:
        typer.echo("Cancelling after the current group...", err=True)
        monitor.request_cancel()
        try:
            worker.join()
        except KeyboardInterrupt:
            typer.echo("Aborted.", err=True)
            raise typer.Exit(code=130) from None
    if errors:
        raise errors[0]
    return holder["result"]


@app.command(help="Extract text from files or folders and write a .txt or .zip.")
def convert(
    paths: list[Path] = typer.Argument(..., help="Files or folders to convert."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Destination file."),
    encoding: TextEncoding = typer.Option(TextEncoding.UTF_8, "--encoding", help="Encoding label."),
    line_ending: LineEnding = typer.Option(LineEnding.LF, "--line-ending", help="Line terminator."),
    remove_empty_lines: bool = typer.Option(
        False,
        "--remove-empty-lines/--keep-empty-lines",
        help="Drop blank lines.",
    ),
    trim_whitespace: bool = typer.Option(
        False,
        "--trim-whitespace/--keep-whitespace",
        help="Trim every line.",
    ),
    batch_size: int | None = typer.Option(None, "--batch-size", min=1, help="Files per group."),
    timeout_ms: int | None = typer.Option(None, "--timeout-ms", min=1, help="Per-file timeout."),
) -> None:
    try:
        sources = collect_sources(paths)
    except FileNotFoundError as exc:
        raise typer.BadParameter(str(exc)) from exc
    if not sources:
        typer.echo("No files found.", err=True)
        raise typer.Exit(code=1)

    config = _config_with(settings, batch_size=batch_size, timeout_ms=timeout_ms)
    monitor = BatchMonitor()
    with BatchService(config=config) as service:
        result = _run_batch(service, sources, monitor)

    for entry in result.errors:
        typer.echo(str(entry), err=True)
    progress = result.progress
    typer.echo(
        f"Done: {progress.success_count} converted, {progress.failed_count} failed, "
        f"{progress.total} total."
    )
    if result.cancelled:
        typer.echo("Processing cancelled.", err=True)
    if not result.files:
        typer.echo("Nothing was converted.", err=True)
        raise typer.Exit(code=1)

    options = _options(encoding, line_ending, remove_empty_lines, trim_whitespace)
    payload = ResultExporter(options=options, config=config).export(result.files)
    destination = write_payload(output or Path(payload.filename), payload.data)
    typer.echo(f"Wrote {destination}")


@app.command("normalize", help="Normalize a text file (or stdin with '-') without extraction.")
def normalize_text(
    source: str = typer.Argument("-", help="Text file to normalize, '-' for stdin."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Destination file."),
    encoding: TextEncoding = typer.Option(TextEncoding.UTF_8, "--encoding", help="Encoding label."),
    line_ending: LineEnding = typer.Option(LineEnding.LF, "--line-ending", help="Line terminator."),
    remove_empty_lines: bool = typer.Option(
        False,
        "--remove-empty-lines/--keep-empty-lines",
        help="Drop blank lines.",
    ),
    trim_whitespace: bool = typer.Option(
        False,
        "--trim-whitespace/--keep-whitespace",
        help="Trim every line.",
    ),
) -> None:
    if source == "-":
        text = sys.stdin.read()
    else:
        path = Path(source)
        if not path.is_file():
            raise typer.BadParameter(f"{path} is not a file")
        text = path.read_text(encoding="utf-8", errors="replace")

    options = _options(encoding, line_ending, remove_empty_lines, trim_whitespace)
    if output is None:
        typer.echo(normalize(text, options), nl=False)
        return
    payload = ResultExporter(options=options).export_single(text)
    typer.echo(f"Wrote {write_payload(output, payload.data)}")


@app.command(help="Start the HTTP API.")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address."),
    port: int = typer.Option(8000, "--port", help="HTTP port."),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload."),
) -> None:
    uvicorn.run("convertatxt.api.main:app", host=host, port=port, reload=reload, factory=False)


def _config_with(config: Settings, **overrides: int | None) -> Settings:
    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return config
    return config.model_copy(update=updates)


def main() -> None:  # pragma: no cover - delegated to Typer
    app()


__all__ = ["app", "main"]
