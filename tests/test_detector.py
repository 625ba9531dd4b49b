from __future__ import annotations

import pytest

from convertatxt.extraction.types import FormatTag
from convertatxt.ingest.detector import FormatClassifier
from convertatxt.ingest.sources import SourceFile


def make_source(name: str, media_type: str = "") -> SourceFile:
    return SourceFile.from_bytes(name=name, data=b"", media_type=media_type)


@pytest.mark.parametrize(
    ("name", "media_type", "expected"),
    [
        ("notes.txt", "", FormatTag.PLAIN_TEXT),
        ("REPORT.PDF", "", FormatTag.PDF),
        ("letter.doc", "", FormatTag.WORD),
        ("letter.docx", "", FormatTag.WORD),
        ("budget.xls", "", FormatTag.SPREADSHEET),
        ("budget.xlsx", "", FormatTag.SPREADSHEET),
        ("deck.ppt", "", FormatTag.PRESENTATION),
        ("deck.pptx", "", FormatTag.PRESENTATION),
        ("scan.jpeg", "", FormatTag.IMAGE),
        ("data.csv", "text/csv", FormatTag.PLAIN_TEXT),
        ("photo", "image/png", FormatTag.IMAGE),
    ],
)
def test_classifier_routes_known_formats(name: str, media_type: str, expected: FormatTag) -> None:
    source = make_source(name, media_type=media_type)
    assert FormatClassifier().classify(source) is expected


def test_recognized_media_type_wins_over_extension() -> None:
    source = make_source("scan.txt", media_type="application/pdf")
    assert FormatClassifier().classify(source) is FormatTag.PDF


def test_unrecognized_media_type_falls_back_to_extension() -> None:
    source = make_source("letter.docx", media_type="application/octet-stream")
    assert FormatClassifier().classify(source) is FormatTag.WORD


def test_media_type_parameters_are_ignored() -> None:
    source = make_source("readme", media_type="Text/Plain; charset=utf-8")
    assert FormatClassifier().classify(source) is FormatTag.PLAIN_TEXT


def test_unknown_extension_without_media_type_is_unsupported() -> None:
    assert FormatClassifier().classify(make_source("archive.xyz")) is None
    assert FormatClassifier().classify(make_source("notes.rtf", media_type="application/rtf")) is None
