from __future__ import annotations

from pathlib import PurePosixPath

from convertatxt.extraction.types import FormatTag
from convertatxt.ingest.sources import SourceFile

_EXTENSIONS: dict[str, FormatTag] = {
    ".txt": FormatTag.PLAIN_TEXT,
    ".doc": FormatTag.WORD,
    ".docx": FormatTag.WORD,
    ".xls": FormatTag.SPREADSHEET,
    ".xlsx": FormatTag.SPREADSHEET,
    ".ppt": FormatTag.PRESENTATION,
    ".pptx": FormatTag.PRESENTATION,
    ".pdf": FormatTag.PDF,
    ".png": FormatTag.IMAGE,
    ".jpg": FormatTag.IMAGE,
    ".jpeg": FormatTag.IMAGE,
    ".gif": FormatTag.IMAGE,
    ".bmp": FormatTag.IMAGE,
    ".tif": FormatTag.IMAGE,
    ".tiff": FormatTag.IMAGE,
    ".webp": FormatTag.IMAGE,
}

_MEDIA_TYPES: dict[str, FormatTag] = {
    "application/pdf": FormatTag.PDF,
    "application/x-pdf": FormatTag.PDF,
    "application/msword": FormatTag.WORD,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": FormatTag.WORD,
    "application/vnd.ms-excel": FormatTag.SPREADSHEET,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": FormatTag.SPREADSHEET,
    "application/vnd.ms-powerpoint": FormatTag.PRESENTATION,
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": (
        FormatTag.PRESENTATION
    ),
}


class FormatClassifier:
    """Map a source file to the extraction strategy able to read it."""

    def classify(self, source: SourceFile) -> FormatTag | None:
        """Return the strategy tag, or None when the file is unsupported.

        A recognized declared media type wins over the extension.
        """

        by_media_type = self._map_media_type(source.declared_media_type)
        if by_media_type is not None:
            return by_media_type
        return _EXTENSIONS.get(self.extension(source.name))

    @staticmethod
    def extension(name: str) -> str:
        return PurePosixPath(name).suffix.lower()

    def _map_media_type(self, media_type: str) -> FormatTag | None:
        lowered = media_type.split(";", 1)[0].strip().lower()
        if not lowered:
            return None
        if lowered.startswith("text/"):
            return FormatTag.PLAIN_TEXT
        if lowered.startswith("image/"):
            return FormatTag.IMAGE
        return _MEDIA_TYPES.get(lowered)


__all__ = ["FormatClassifier"]
