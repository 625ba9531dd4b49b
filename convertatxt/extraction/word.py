from __future__ import annotations

from io import BytesIO
from zipfile import BadZipFile

from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from convertatxt.extraction.types import ExtractionError, FormatTag
from convertatxt.utils.files import is_ole_container


def extract_word(data: bytes) -> str:
    """Extract raw paragraph and table text from a word-processing document."""

    if is_ole_container(data):
        msg = "legacy binary .doc documents are not supported, save as .docx"
        raise ExtractionError(FormatTag.WORD, msg)
    try:
        document = Document(BytesIO(data))
    except (BadZipFile, PackageNotFoundError, KeyError, ValueError) as error:
        raise ExtractionError(FormatTag.WORD, f"unreadable document: {error}") from error

    lines = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            if any(cells):
                lines.append("\t".join(cells))
    return "\n".join(lines)


__all__ = ["extract_word"]
