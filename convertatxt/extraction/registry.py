from __future__ import annotations

from convertatxt.extraction.image import OcrEngine
from convertatxt.extraction.pdf import extract_pdf
from convertatxt.extraction.presentation import extract_presentation
from convertatxt.extraction.spreadsheet import extract_spreadsheet
from convertatxt.extraction.text import extract_text
from convertatxt.extraction.types import ExtractionStrategy, FormatTag
from convertatxt.extraction.word import extract_word


def build_strategies(ocr_engine: OcrEngine) -> dict[FormatTag, ExtractionStrategy]:
    """Return the default strategy for every format tag."""

    return {
        FormatTag.PLAIN_TEXT: extract_text,
        FormatTag.IMAGE: ocr_engine.recognize,
        FormatTag.PDF: extract_pdf,
        FormatTag.WORD: extract_word,
        FormatTag.SPREADSHEET: extract_spreadsheet,
        FormatTag.PRESENTATION: extract_presentation,
    }


__all__ = ["build_strategies"]
