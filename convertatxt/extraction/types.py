from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias


class FormatTag(str, Enum):
    """Extraction strategy families."""

    PLAIN_TEXT = "text"
    IMAGE = "image"
    PDF = "pdf"
    WORD = "word"
    SPREADSHEET = "spreadsheet"
    PRESENTATION = "presentation"


class ErrorKind(str, Enum):
    """Failure taxonomy for extraction outcomes and batch runs."""

    UNSUPPORTED_FORMAT = "unsupported_format"
    TIMEOUT = "timeout"
    EXTRACTION_ERROR = "extraction_error"
    CANCELLED = "cancelled"


class ExtractionError(Exception):
    """Raised by a strategy when the input cannot be turned into text."""

    def __init__(self, format: FormatTag | str, message: str) -> None:
        super().__init__(message)
        self.format = format.value if isinstance(format, FormatTag) else format
        self.message = message

    def __str__(self) -> str:
        return f"{self.format}: {self.message}"


@dataclass(slots=True, frozen=True)
class ProcessedFile:
    """Text produced from one successfully extracted source file."""

    name: str
    relative_path: str
    format_tag: FormatTag
    content: str


@dataclass(slots=True, frozen=True)
class Success:
    text: str
    file: ProcessedFile


@dataclass(slots=True, frozen=True)
class Failure:
    kind: ErrorKind
    message: str


ExtractionOutcome: TypeAlias = Success | Failure
ExtractionStrategy: TypeAlias = Callable[[bytes], str]


__all__ = [
    "ErrorKind",
    "ExtractionError",
    "ExtractionOutcome",
    "ExtractionStrategy",
    "Failure",
    "FormatTag",
    "ProcessedFile",
    "Success",
]
