from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class LineEnding(str, Enum):
    LF = "LF"
    CRLF = "CRLF"
    CR = "CR"


class TextEncoding(str, Enum):
    """Encoding label carried with the options; payloads are always UTF-8."""

    UTF_8 = "UTF-8"
    ISO_8859_1 = "ISO-8859-1"
    WINDOWS_1252 = "Windows-1252"


@dataclass(slots=True, frozen=True)
class ConversionOptions:
    encoding: TextEncoding = TextEncoding.UTF_8
    line_ending: LineEnding = LineEnding.LF
    remove_empty_lines: bool = False
    trim_whitespace: bool = False


_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")
_BARE_LF_RE = re.compile(r"(?<!\r)\n")


def normalize(text: str, options: ConversionOptions) -> str:
    """Apply trimming, blank-line removal and line-ending conversion, in that order.

    Re-applying the same options to the result leaves it unchanged.
    """

    if options.trim_whitespace or options.remove_empty_lines:
        lines = _LINE_BREAK_RE.split(text)
        if options.trim_whitespace:
            lines = [line.strip() for line in lines]
        if options.remove_empty_lines:
            lines = [line for line in lines if line.strip()]
        text = "\n".join(lines)

    if options.line_ending is LineEnding.CRLF:
        return _BARE_LF_RE.sub("\r\n", text)
    if options.line_ending is LineEnding.CR:
        return text.replace("\r\n", "\r").replace("\n", "\r")
    return text


__all__ = ["ConversionOptions", "LineEnding", "TextEncoding", "normalize"]
