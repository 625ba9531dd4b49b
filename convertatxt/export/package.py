from __future__ import annotations

import zipfile
from collections.abc import Sequence
from dataclasses import dataclass
from io import BytesIO

from convertatxt.config import Settings, settings
from convertatxt.export.normalize import ConversionOptions, normalize
from convertatxt.extraction.types import ProcessedFile
from convertatxt.utils.files import text_output_name

TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"
ZIP_MEDIA_TYPE = "application/zip"


@dataclass(slots=True, frozen=True)
class ExportPayload:
    filename: str
    media_type: str
    data: bytes


def combine_text(files: Sequence[ProcessedFile]) -> str:
    """Concatenate processed files into one text, each under a path banner."""

    return "\n".join(f"=== {file.relative_path} ===\n{file.content}\n" for file in files)


class ResultExporter:
    """Build downloadable payloads from processed files.

    Every payload is normalized with the same options, so a file inside an
    archive reads exactly like its block in the combined text.
    """

    def __init__(self, options: ConversionOptions | None = None, config: Settings = settings) -> None:
        self.options = options or ConversionOptions()
        self.config = config

    def export(self, files: Sequence[ProcessedFile], text: str | None = None) -> ExportPayload:
        """Return an archive for several files, otherwise a single text payload."""

        if len(files) > 1:
            return self.export_archive(files)
        if files:
            return self.export_single(combine_text(files))
        if text is not None:
            return self.export_single(text)
        msg = "Nothing to export: no processed files and no text"
        raise ValueError(msg)

    def export_single(self, text: str) -> ExportPayload:
        data = normalize(text, self.options).encode("utf-8")
        return ExportPayload(
            filename=self.config.single_name,
            media_type=TEXT_MEDIA_TYPE,
            data=data,
        )

    def export_archive(self, files: Sequence[ProcessedFile]) -> ExportPayload:
        buffer = BytesIO()
        with zipfile.ZipFile(
            buffer,
            "w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=9,
        ) as archive:
            used: set[str] = set()
            for file in files:
                archive.writestr(
                    _unique_name(text_output_name(file.relative_path), used),
                    normalize(file.content, self.options).encode("utf-8"),
                )
        return ExportPayload(
            filename=self.config.archive_name,
            media_type=ZIP_MEDIA_TYPE,
            data=buffer.getvalue(),
        )


def _unique_name(name: str, used: set[str]) -> str:
    # report.doc and report.pdf both map to report.txt
    candidate = name
    counter = 2
    while candidate in used:
        candidate = f"{name[: -len('.txt')]}-{counter}.txt"
        counter += 1
    used.add(candidate)
    return candidate


__all__ = ["ExportPayload", "ResultExporter", "TEXT_MEDIA_TYPE", "ZIP_MEDIA_TYPE", "combine_text"]
