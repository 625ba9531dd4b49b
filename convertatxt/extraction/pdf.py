from __future__ import annotations

from collections.abc import Iterable, Iterator
from io import BytesIO

from pdfminer.high_level import extract_pages
from pdfminer.layout import LTItem, LTTextContainer
from pdfminer.pdfdocument import PDFEncryptionError, PDFTextExtractionNotAllowed
from pdfminer.pdfparser import PDFSyntaxError
from pdfminer.psparser import PSException

from convertatxt.extraction.types import ExtractionError, FormatTag


def extract_pdf(data: bytes) -> str:
    """Extract text page by page, each page prefixed with its 1-indexed number."""

    chunks: list[str] = []
    try:
        for number, page in enumerate(extract_pages(BytesIO(data)), start=1):
            page_text = " ".join(_fragments(page))
            chunks.append(f"Page {number}\n{page_text}\n\n")
    except (PDFSyntaxError, PDFEncryptionError, PDFTextExtractionNotAllowed, PSException) as error:
        raise ExtractionError(FormatTag.PDF, str(error) or type(error).__name__) from error
    return "".join(chunks)


def _fragments(items: Iterable[LTItem]) -> Iterator[str]:
    for item in items:
        if isinstance(item, LTTextContainer):
            fragment = " ".join(item.get_text().split())
            if fragment:
                yield fragment


__all__ = ["extract_pdf"]
