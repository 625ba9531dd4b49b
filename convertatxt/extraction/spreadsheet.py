from __future__ import annotations

import csv
from collections.abc import Iterable, Sequence
from io import BytesIO, StringIO
from typing import Any
from zipfile import BadZipFile

import xlrd
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from convertatxt.extraction.types import ExtractionError, FormatTag
from convertatxt.utils.files import is_ole_container


def extract_spreadsheet(data: bytes) -> str:
    """Render every sheet as CSV, in workbook order, under a sheet-name header."""

    if is_ole_container(data):
        sheets = _read_legacy_workbook(data)
    else:
        sheets = _read_workbook(data)
    return "".join(f"Sheet: {name}\n{_to_csv(rows)}\n\n" for name, rows in sheets)


def _read_workbook(data: bytes) -> list[tuple[str, list[Sequence[Any]]]]:
    try:
        workbook = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError, ValueError) as error:
        raise ExtractionError(FormatTag.SPREADSHEET, f"unreadable workbook: {error}") from error
    try:
        return [
            (name, list(workbook[name].iter_rows(values_only=True)))
            for name in workbook.sheetnames
        ]
    finally:
        workbook.close()


def _read_legacy_workbook(data: bytes) -> list[tuple[str, list[Sequence[Any]]]]:
    try:
        book = xlrd.open_workbook(file_contents=data)
    except xlrd.XLRDError as error:
        raise ExtractionError(FormatTag.SPREADSHEET, f"unreadable workbook: {error}") from error
    return [
        (sheet.name, [sheet.row_values(index) for index in range(sheet.nrows)])
        for sheet in book.sheets()
    ]


def _to_csv(rows: Iterable[Sequence[Any]]) -> str:
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for row in rows:
        writer.writerow([_cell_text(value) for value in row])
    return buffer.getvalue().rstrip("\n")


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


__all__ = ["extract_spreadsheet"]
